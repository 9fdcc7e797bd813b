"""
Field Dependency Resolver: what a draft still needs, and in what order.

Behavioral Contract:
- Accepts an ApplicationDraft and the applicant's stored base Profile
- Evaluates a declarative requirement table: each entry names its section,
  the condition under which it is asked, and what counts as complete
- Recomputes every section from scratch; completeness is not monotonic
- Gates disclosure: section N reports missing items only once sections
  1..N-1 are complete
- Pure: identical input yields identical output, input is never mutated
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from relief_kernel.models.catalog import (
    NAMED_STORM_EVENT,
    NOT_LISTED_EVENT,
    REQUIRED_EXPENSE_TYPES,
    ExpenseType,
    YesNo,
)
from relief_kernel.models.checklist import (
    SECTION_ORDER,
    SECTION_TITLES,
    Checklist,
    ChecklistItem,
    MissingSection,
    SectionKey,
    SectionStatus,
)
from relief_kernel.models.draft import Agreement, ApplicationDraft
from relief_kernel.models.event import EventRecord
from relief_kernel.models.profile import Profile


@dataclass(frozen=True)
class ResolverState:
    """The merged (base profile + draft) view the requirement table reads."""

    profile: Profile
    event: EventRecord
    agreement: Agreement


# --- Completion predicates ---

def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _positive(value: Any) -> bool:
    """Day and night counts must be strictly greater than zero."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def _is_true(value: Any) -> bool:
    return value is True


def _answered(value: Any) -> bool:
    """Nullable booleans: False is an answer, None is not."""
    return value is not None


def _expense_complete(value: Any) -> bool:
    return value is not None and value.amount > 0


def _always(state: ResolverState) -> bool:
    return True


# --- Conditions ---

def _is_named_storm(state: ResolverState) -> bool:
    return state.event.event == NAMED_STORM_EVENT


def _is_not_listed(state: ResolverState) -> bool:
    return state.event.event == NOT_LISTED_EVENT


def _lost_power(state: ResolverState) -> bool:
    return state.event.power_loss == YesNo.YES


def _evacuated(state: ResolverState) -> bool:
    return state.event.evacuated == YesNo.YES


def _evacuated_elsewhere(state: ResolverState) -> bool:
    return _evacuated(state) and state.event.evacuating_from_primary == YesNo.NO


@dataclass(frozen=True)
class FieldRequirement:
    """One row of the requirement table."""

    key: str
    section: SectionKey
    prompt: str
    value: Callable[[ResolverState], Any]
    condition: Callable[[ResolverState], bool] = _always
    is_complete: Callable[[Any], bool] = _present


def _profile(key: str, section: SectionKey, prompt: str,
             is_complete: Callable[[Any], bool] = _present) -> FieldRequirement:
    return FieldRequirement(
        key=key,
        section=section,
        prompt=prompt,
        value=lambda state: getattr(state.profile, key),
        is_complete=is_complete,
    )


def _event(key: str, prompt: str,
           condition: Callable[[ResolverState], bool] = _always,
           is_complete: Callable[[Any], bool] = _present) -> FieldRequirement:
    return FieldRequirement(
        key=key,
        section=SectionKey.EVENT_DETAILS,
        prompt=prompt,
        value=lambda state: getattr(state.event, key),
        condition=condition,
        is_complete=is_complete,
    )


def _expense(expense_type: ExpenseType) -> FieldRequirement:
    return FieldRequirement(
        key=f"expenses.{expense_type.value}",
        section=SectionKey.EXPENSES,
        prompt=f"Amount for '{expense_type.value}'",
        value=lambda state: state.event.expense_for(expense_type),
        is_complete=_expense_complete,
    )


def _agreement(key: str, prompt: str) -> FieldRequirement:
    return FieldRequirement(
        key=key,
        section=SectionKey.AGREEMENTS,
        prompt=prompt,
        value=lambda state: getattr(state.agreement, key),
        is_complete=_answered,
    )


_ADDITIONAL = SectionKey.ADDITIONAL_DETAILS
_ACKS = SectionKey.ACKNOWLEDGEMENTS

DEFAULT_REQUIREMENTS: List[FieldRequirement] = [
    _profile("employment_start_date", _ADDITIONAL, "Employment start date (YYYY-MM-DD)"),
    _profile("eligibility_type", _ADDITIONAL, "Eligibility (employment) type"),
    _profile("household_income", _ADDITIONAL, "Estimated annual household income"),
    _profile("household_size", _ADDITIONAL, "Number of people in the household"),
    _profile("homeowner", _ADDITIONAL, "Homeowner status (Yes or No)"),
    _profile("preferred_language", _ADDITIONAL, "Preferred language"),

    _profile("ack_policies", _ACKS, "Agreement to the Privacy and Cookie Policies", _is_true),
    _profile("comm_consent", _ACKS, "Consent to receive emails and texts", _is_true),
    _profile("info_correct", _ACKS, "Confirmation that all information is accurate", _is_true),

    _event("event", "Type of disaster or hardship experienced"),
    _event("event_name", "Name of the storm", _is_named_storm),
    _event("other_event", "Description of the unlisted disaster", _is_not_listed),
    _event("event_date", "Date of the event (YYYY-MM-DD)"),
    _event("power_loss", "Lost power for more than 4 hours (Yes or No)"),
    _event("power_loss_days", "Number of days without power", _lost_power, _positive),
    _event("evacuated", "Evacuated or planning to (Yes or No)"),
    _event("evacuating_from_primary", "Evacuating from the primary residence (Yes or No)", _evacuated),
    _event("evacuation_reason", "Reason for evacuating when not from the primary residence",
           _evacuated_elsewhere),
    _event("stayed_with_family_or_friend", "Stayed with family or a friend (Yes or No)", _evacuated),
    _event("evacuation_start_date", "Evacuation start date (YYYY-MM-DD)", _evacuated),
    _event("evacuation_nights", "Number of nights evacuated", _evacuated, _positive),

    *[_expense(t) for t in REQUIRED_EXPENSE_TYPES],

    _agreement("share_story", "Willing to share their story (true or false)"),
    _agreement("receive_additional_info", "Interested in additional information (true or false)"),
]


class FieldDependencyResolver:
    """Evaluates the requirement table against a draft."""

    def __init__(self, requirements: Optional[Sequence[FieldRequirement]] = None):
        self._requirements = list(DEFAULT_REQUIREMENTS if requirements is None else requirements)

    @property
    def requirements(self) -> List[FieldRequirement]:
        return list(self._requirements)

    def resolve(
        self,
        draft: ApplicationDraft,
        base_profile: Optional[Profile] = None,
    ) -> Checklist:
        """Compute every section's items, completeness and gated missing list."""
        state = ResolverState(
            profile=draft.resolved_profile(base_profile),
            event=draft.event_data,
            agreement=draft.agreement_data,
        )

        sections: List[SectionStatus] = []
        prior_complete = True
        active: Optional[SectionKey] = None

        for key in SECTION_ORDER:
            items = [
                ChecklistItem(
                    key=req.key,
                    prompt=req.prompt,
                    complete=req.is_complete(req.value(state)),
                )
                for req in self._requirements
                if req.section == key and req.condition(state)
            ]
            own_complete = all(item.complete for item in items)
            if key == SectionKey.EVENT_DETAILS and not _present(state.event.event):
                own_complete = False

            complete = prior_complete and own_complete
            sections.append(SectionStatus(
                section=key,
                title=SECTION_TITLES[key],
                items=items,
                complete=complete,
                visible=prior_complete,
                missing=[i for i in items if not i.complete] if prior_complete else [],
            ))
            if active is None and not complete:
                active = key
            prior_complete = complete

        return Checklist(sections=sections, active_section=active)

    def missing_fields(
        self,
        draft: ApplicationDraft,
        base_profile: Optional[Profile] = None,
    ) -> List[MissingSection]:
        return self.resolve(draft, base_profile).missing_fields()
