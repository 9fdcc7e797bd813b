"""Checklist: the resolver's view of what a draft still needs."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class SectionKey(str, Enum):
    """The five collection sections, in disclosure order."""

    ADDITIONAL_DETAILS = "additional_details"
    ACKNOWLEDGEMENTS = "acknowledgements"
    EVENT_DETAILS = "event_details"
    EXPENSES = "expenses"
    AGREEMENTS = "agreements"


SECTION_ORDER: List[SectionKey] = list(SectionKey)

SECTION_TITLES = {
    SectionKey.ADDITIONAL_DETAILS: "Additional Details",
    SectionKey.ACKNOWLEDGEMENTS: "Profile Acknowledgements",
    SectionKey.EVENT_DETAILS: "Event Details",
    SectionKey.EXPENSES: "Expense Details",
    SectionKey.AGREEMENTS: "Final Agreements",
}


class ChecklistItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    prompt: str
    complete: bool


class SectionStatus(BaseModel):
    """
    One section's state.

    `visible` is False while an earlier section is incomplete; `missing` is
    then always empty so callers never ask out of order.
    """

    model_config = ConfigDict(frozen=True)

    section: SectionKey
    title: str
    items: List[ChecklistItem]
    complete: bool
    visible: bool
    missing: List[ChecklistItem] = []


class MissingSection(BaseModel):
    """Projection handed to the collaborator: what to ask next, per section."""

    model_config = ConfigDict(frozen=True)

    section: SectionKey
    items: List[ChecklistItem]


class Checklist(BaseModel):
    model_config = ConfigDict(frozen=True)

    sections: List[SectionStatus]
    active_section: Optional[SectionKey] = None

    def section(self, key: SectionKey) -> SectionStatus:
        return next(s for s in self.sections if s.section == key)

    def is_complete(self, key: SectionKey) -> bool:
        return self.section(key).complete

    def missing_fields(self) -> List[MissingSection]:
        return [
            MissingSection(section=s.section, items=s.missing)
            for s in self.sections
        ]
