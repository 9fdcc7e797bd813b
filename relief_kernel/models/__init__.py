"""Relief Kernel data models."""

from relief_kernel.models.catalog import ExpenseType, YesNo
from relief_kernel.models.checklist import (
    Checklist,
    ChecklistItem,
    MissingSection,
    SectionKey,
    SectionStatus,
)
from relief_kernel.models.decision import (
    AdjudicationContext,
    AdjudicationResult,
    ApplicationStatus,
    Decision,
    DecisionOutcome,
    GrantBalance,
    NormalizedEvent,
    PolicyHit,
    ProgramPolicy,
)
from relief_kernel.models.draft import Agreement, ApplicationDraft
from relief_kernel.models.event import EventRecord, Expense
from relief_kernel.models.fund import Fund, FundLimits
from relief_kernel.models.profile import Address, Profile

__all__ = [
    "AdjudicationContext",
    "AdjudicationResult",
    "Address",
    "Agreement",
    "ApplicationDraft",
    "ApplicationStatus",
    "Checklist",
    "ChecklistItem",
    "Decision",
    "DecisionOutcome",
    "EventRecord",
    "Expense",
    "ExpenseType",
    "Fund",
    "FundLimits",
    "GrantBalance",
    "MissingSection",
    "NormalizedEvent",
    "PolicyHit",
    "Profile",
    "ProgramPolicy",
    "SectionKey",
    "SectionStatus",
    "YesNo",
]
