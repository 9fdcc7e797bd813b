"""Event Record: the hardship or disaster an application claims relief for."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from relief_kernel.models.catalog import MAX_NARRATIVE_CHARS, ExpenseType, YesNo


class Expense(BaseModel):
    """A single expense line. One per ExpenseType within a draft."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: ExpenseType
    amount: float = Field(ge=0)


class EventRecord(BaseModel):
    """
    The event being claimed, with its conditional sub-graphs.

    Conditional fields (event name, power loss days, evacuation details) are
    kept even when the answer that made them relevant changes; the resolver
    simply stops asking for them.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event: Optional[str] = None
    event_name: Optional[str] = None                # Named storms only
    other_event: Optional[str] = None               # "My disaster is not listed" only
    event_date: Optional[str] = None                # YYYY-MM-DD

    power_loss: Optional[YesNo] = None
    power_loss_days: Optional[float] = Field(default=None, ge=0)

    evacuated: Optional[YesNo] = None
    evacuating_from_primary: Optional[YesNo] = None
    evacuation_reason: Optional[str] = Field(default=None, max_length=MAX_NARRATIVE_CHARS)
    stayed_with_family_or_friend: Optional[YesNo] = None
    evacuation_start_date: Optional[str] = None     # YYYY-MM-DD
    evacuation_nights: Optional[float] = Field(default=None, ge=0)

    additional_details: Optional[str] = Field(default=None, max_length=MAX_NARRATIVE_CHARS)
    requested_amount: float = Field(default=0, ge=0)
    expenses: List[Expense] = []

    def expense_for(self, expense_type: ExpenseType) -> Optional[Expense]:
        """Return the expense entry for a type, if one has been recorded."""
        return next((e for e in self.expenses if e.type == expense_type), None)
