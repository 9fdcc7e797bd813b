"""
Application Draft: the progressively filled application.

The draft carries no behaviour beyond merge semantics. Every merge returns a
new draft; an update that fails validation leaves the original untouched.
"""

from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from relief_kernel.models.event import EventRecord, Expense
from relief_kernel.models.profile import Address, Profile
from relief_kernel.utils.errors import InvalidFieldValueError

M = TypeVar("M", bound=BaseModel)

_ADDRESS_FIELDS = ("primary_address", "mailing_address")


class Agreement(BaseModel):
    """Closing agreements. None means the applicant has not answered yet."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    share_story: Optional[bool] = None
    receive_additional_info: Optional[bool] = None


def drop_nulls(data: Dict[str, Any]) -> Dict[str, Any]:
    """Remove null-valued keys, recursing into nested mappings."""
    cleaned = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, dict):
            value = drop_nulls(value)
        cleaned[key] = value
    return cleaned


def _field_name(model_cls: Type[BaseModel], key: Any) -> str:
    """Map a camelCase input key back to the field it populates."""
    for name, info in model_cls.model_fields.items():
        if key in (name, info.alias):
            return name
    return str(key)


def _validate_partial(model_cls: Type[M], partial: Dict[str, Any]) -> M:
    """Validate a partial record, surfacing the first offending field."""
    try:
        return model_cls.model_validate(partial)
    except ValidationError as exc:
        error = exc.errors()[0]
        loc = list(error.get("loc", ()))
        if loc:
            loc[0] = _field_name(model_cls, loc[0])
        field = ".".join(str(part) for part in loc) or model_cls.__name__
        raise InvalidFieldValueError(
            field=field,
            value=error.get("input"),
            reason=error.get("msg", "invalid value"),
        ) from exc


def _provided(model: BaseModel) -> Dict[str, Any]:
    """Fields explicitly provided on a validated partial, keyed by field name."""
    return {name: getattr(model, name) for name in model.model_fields_set}


def _overlay(base: M, top: M) -> M:
    """Return base with every non-null value of top laid over it. Addresses merge key by key."""
    updates = {
        name: value
        for name, value in top
        if value is not None
    }
    for name in _ADDRESS_FIELDS:
        incoming = updates.get(name)
        current = getattr(base, name, None)
        if incoming is not None and current is not None:
            updates[name] = _overlay(current, incoming)
    return base.model_copy(update=updates)


class ApplicationDraft(BaseModel):
    """Aggregate of the three partially collected records."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    profile_data: Profile = Profile()
    event_data: EventRecord = EventRecord()
    agreement_data: Agreement = Agreement()

    def with_profile(self, partial: Dict[str, Any]) -> "ApplicationDraft":
        """Shallow-merge profile fields; addresses merge key by key."""
        validated = _validate_partial(Profile, drop_nulls(partial))
        updates = _provided(validated)
        for name in _ADDRESS_FIELDS:
            incoming: Optional[Address] = updates.get(name)
            current: Optional[Address] = getattr(self.profile_data, name)
            if incoming is not None and current is not None:
                updates[name] = current.model_copy(update=_provided(incoming))
        return self.model_copy(
            update={"profile_data": self.profile_data.model_copy(update=updates)}
        )

    def with_event(self, partial: Dict[str, Any]) -> "ApplicationDraft":
        """Shallow-merge event fields. Conditional fields are never cleared."""
        cleaned = drop_nulls(partial)
        cleaned.pop("expenses", None)
        # Requested amount is derived from the expenses only.
        cleaned.pop("requestedAmount", None)
        cleaned.pop("requested_amount", None)
        validated = _validate_partial(EventRecord, cleaned)
        updates = _provided(validated)
        return self.model_copy(
            update={"event_data": self.event_data.model_copy(update=updates)}
        )

    def with_expenses(
        self, items: Iterable[Union[Expense, Dict[str, Any]]]
    ) -> "ApplicationDraft":
        """
        Replace or append expenses keyed by type.

        The requested amount always equals the sum of the recorded expenses.
        """
        merged: Dict[str, Expense] = {e.type.value: e for e in self.event_data.expenses}
        for item in items:
            if isinstance(item, Expense):
                expense = item
            else:
                expense = _validate_partial(Expense, drop_nulls(item))
            merged[expense.type.value] = expense
        expenses: List[Expense] = list(merged.values())
        event = self.event_data.model_copy(update={
            "expenses": expenses,
            "requested_amount": sum(e.amount for e in expenses),
        })
        return self.model_copy(update={"event_data": event})

    def with_agreements(self, partial: Dict[str, Any]) -> "ApplicationDraft":
        validated = _validate_partial(Agreement, drop_nulls(partial))
        return self.model_copy(update={
            "agreement_data": self.agreement_data.model_copy(update=_provided(validated))
        })

    def resolved_profile(self, base: Optional[Profile] = None) -> Profile:
        """
        Merge the draft's profile over the stored base profile.

        A draft value wins whenever it is present, including False and 0.
        """
        if base is None:
            return self.profile_data
        return _overlay(base, self.profile_data)
