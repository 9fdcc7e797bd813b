"""Eligibility Decision: output of the Eligibility Decision Engine."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DecisionOutcome(str, Enum):
    APPROVED = "Approved"
    DENIED = "Denied"
    REVIEW = "Review"       # Requires manual human resolution


class ApplicationStatus(str, Enum):
    """Status recorded on a submitted application."""

    SUBMITTED = "Submitted"     # Under review
    AWARDED = "Awarded"
    DECLINED = "Declined"

    @classmethod
    def from_decision(cls, outcome: DecisionOutcome) -> "ApplicationStatus":
        if outcome == DecisionOutcome.APPROVED:
            return cls.AWARDED
        if outcome == DecisionOutcome.DENIED:
            return cls.DECLINED
        return cls.SUBMITTED


class PolicyHit(BaseModel):
    """One rule's pass/fail audit entry."""

    model_config = ConfigDict(frozen=True)

    rule_id: str
    passed: bool
    detail: str


class NormalizedEvent(BaseModel):
    """The event facts as the engine understood them."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    event: str
    event_date: str = Field(alias="eventDate")
    evacuated: str
    power_loss_days: float = Field(alias="powerLossDays")


class Decision(BaseModel):
    """
    An auditable eligibility decision.

    Frozen once produced. Refinement builds a new Decision that keeps the
    original policy_hits and normalized facts.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    decision: DecisionOutcome
    reasons: List[str] = []
    policy_hits: List[PolicyHit] = []
    recommended_award: float = 0
    remaining_12mo: float
    remaining_lifetime: float
    normalized: NormalizedEvent
    decisioned_date: str = Field(alias="decisionedDate")     # ISO 8601 timestamp

    @property
    def status(self) -> ApplicationStatus:
        return ApplicationStatus.from_decision(self.decision)

    def failed_rules(self) -> List[str]:
        return [hit.rule_id for hit in self.policy_hits if not hit.passed]


class GrantBalance(BaseModel):
    """Balances available to the applicant at evaluation time. Read only."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    single_request_max: float = Field(ge=0)
    twelve_month_remaining: float
    lifetime_remaining: float

    def after(self, decision: Decision) -> "GrantBalance":
        """The balance carried into the applicant's next application."""
        return GrantBalance(
            single_request_max=self.single_request_max,
            twelve_month_remaining=decision.remaining_12mo,
            lifetime_remaining=decision.remaining_lifetime,
        )


class ProgramPolicy(BaseModel):
    """Program rules supplied per evaluation."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    single_request_max: float = Field(ge=0)
    eligible_event_categories: List[str]


class AdjudicationResult(BaseModel):
    """What the secondary adjudicator returns."""

    model_config = ConfigDict(populate_by_name=True)

    final_decision: DecisionOutcome = Field(alias="finalDecision")
    final_reason: str = Field(alias="finalReason", min_length=1)
    final_award: float = Field(alias="finalAward", allow_inf_nan=False)

    def is_terminal(self) -> bool:
        """Adjudicators may only answer Approved or Denied."""
        return self.final_decision in (DecisionOutcome.APPROVED, DecisionOutcome.DENIED)


class AdjudicationContext(BaseModel):
    """Everything the adjudicator sees when reviewing a passing decision."""

    applicant_id: Optional[str] = None
    fund_code: Optional[str] = None
    event_data: dict
    balance: GrantBalance
    policy: ProgramPolicy
    preliminary: Decision
