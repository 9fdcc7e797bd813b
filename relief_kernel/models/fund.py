"""Relief funds: limits and eligible events per program."""

from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from relief_kernel.models.decision import Decision, GrantBalance, ProgramPolicy


class FundLimits(BaseModel):
    single_request_max: float = Field(ge=0)
    twelve_month_max: float = Field(ge=0)
    lifetime_max: float = Field(ge=0)


class Fund(BaseModel):
    """A relief program and the policy it applies to applications."""

    code: str
    name: str
    limits: FundLimits
    eligible_disasters: List[str] = []
    eligible_hardships: List[str] = []

    @property
    def eligible_events(self) -> List[str]:
        return self.eligible_disasters + self.eligible_hardships

    def policy(self) -> ProgramPolicy:
        return ProgramPolicy(
            single_request_max=self.limits.single_request_max,
            eligible_event_categories=self.eligible_events,
        )

    def opening_balance(self) -> GrantBalance:
        """Balance for an applicant who has never received an award."""
        return GrantBalance(
            single_request_max=self.limits.single_request_max,
            twelve_month_remaining=self.limits.twelve_month_max,
            lifetime_remaining=self.limits.lifetime_max,
        )


def balance_from_history(
    fund: Fund,
    prior_decisions: Sequence[Decision],
) -> GrantBalance:
    """
    Derive the current balance from the applicant's decided applications.

    The most recently decisioned application carries the running balance.
    """
    latest: Optional[Decision] = max(
        prior_decisions, key=lambda d: d.decisioned_date, default=None
    )
    if latest is None:
        return fund.opening_balance()
    return fund.opening_balance().after(latest)
