"""
Eligibility Decision Engine: deterministic first stage of decisioning.

Evaluates a complete application against program policy. Returns an
auditable Approved/Denied/Review decision with a rule-by-rule trace.

Behavioral Contract:
- Every rule is evaluated and recorded; nothing short-circuits
- Hard rules (R1, R1A, R2, R3, R4/R5) deny on failure
- The soft rule (R6) forces Review, only when no hard rule failed
- R7 normalizes power-loss days and always passes
- Balances are read, never mutated; the Decision carries the projection
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Callable, List, Optional

from relief_kernel.models.catalog import NOT_LISTED_EVENT, YesNo
from relief_kernel.models.decision import (
    Decision,
    DecisionOutcome,
    GrantBalance,
    NormalizedEvent,
    PolicyHit,
    ProgramPolicy,
)
from relief_kernel.models.event import EventRecord
from relief_kernel.utils.logging import get_logger

logger = get_logger(__name__)

APPROVAL_REASON = "Application meets all automatic approval criteria."


class RuleSeverity(str, Enum):
    HARD = "hard"   # Failure denies the application
    SOFT = "soft"   # Failure sends the application to manual review
    INFO = "info"   # Informational, never fails


@dataclass
class RuleResult:
    hit: PolicyHit
    severity: RuleSeverity
    reason: Optional[str] = None

    @property
    def failed(self) -> bool:
        return not self.hit.passed


@dataclass
class _Facts:
    """Inputs of one evaluation, parsed once and shared by every rule."""

    event: EventRecord
    event_name: str
    event_date_raw: str
    event_date: Optional[date]
    employment_start_raw: str
    employment_start: Optional[date]
    today: date
    window_start: date
    requested_amount: float
    balance: GrantBalance
    single_request_max: float
    eligible_events: List[str]


def _parse_date(value: Optional[str]) -> Optional[date]:
    """Parse an ISO date or timestamp; None when absent or malformed."""
    if not value:
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def resolve_event_name(event: EventRecord) -> str:
    """The event's effective name; free text replaces the not-listed category."""
    if event.event == NOT_LISTED_EVENT:
        return (event.other_event or "").strip()
    return (event.event or "").strip()


def _money(amount: float) -> str:
    return f"${amount:.2f}"


def _hit(rule_id: str, passed: bool, detail: str) -> PolicyHit:
    return PolicyHit(rule_id=rule_id, passed=passed, detail=detail)


# --- Rules ---

def _check_event(facts: _Facts) -> List[RuleResult]:
    """R1: the event resolves to a name. R1A: that name is eligible."""
    name = facts.event_name
    if not name:
        return [
            RuleResult(
                hit=_hit("R1", False, (
                    f"Event field (event: {facts.event.event!r}, other: "
                    f"{facts.event.other_event!r}) resulted in an empty event name."
                )),
                severity=RuleSeverity.HARD,
                reason=(
                    "An event type must be selected. If 'My disaster is not listed' "
                    "is chosen, the specific event must be provided."
                ),
            ),
            RuleResult(
                hit=_hit("R1A", False, "No event name to check against the eligible events list."),
                severity=RuleSeverity.HARD,
            ),
        ]

    r1 = RuleResult(hit=_hit("R1", True, f"Event specified as '{name}'."), severity=RuleSeverity.HARD)
    if name not in facts.eligible_events:
        return [r1, RuleResult(
            hit=_hit("R1A", False, f"Event '{name}' not found in eligible events list."),
            severity=RuleSeverity.HARD,
            reason=f"The selected event '{name}' is not covered by this fund.",
        )]
    return [r1, RuleResult(
        hit=_hit("R1A", True, f"Event '{name}' is an eligible event."),
        severity=RuleSeverity.HARD,
    )]


def _check_event_date(facts: _Facts) -> List[RuleResult]:
    """R2: the event date lies inside the inclusive look-back window."""
    event_date = facts.event_date
    start = facts.window_start.isoformat()
    if event_date is None or event_date < facts.window_start or event_date > facts.today:
        days = (facts.today - facts.window_start).days
        return [RuleResult(
            hit=_hit("R2", False, (
                f"Event date '{facts.event_date_raw}' is outside the {days}-day "
                f"window starting from '{start}'."
            )),
            severity=RuleSeverity.HARD,
            reason=(
                f"Event date is older than {days} days or invalid. "
                f"Event must be between {start} and today."
            ),
        )]
    return [RuleResult(
        hit=_hit("R2", True, f"Event date '{facts.event_date_raw}' is recent."),
        severity=RuleSeverity.HARD,
    )]


def _check_employment(facts: _Facts) -> List[RuleResult]:
    """R3: employment started on or before the event."""
    start = facts.employment_start
    if start is None:
        detail = f"Employment start date '{facts.employment_start_raw}' is missing or invalid."
    elif facts.event_date is not None and start > facts.event_date:
        detail = (
            f"Employment start date '{facts.employment_start_raw}' is after "
            f"event date '{facts.event_date_raw}'."
        )
    else:
        return [RuleResult(
            hit=_hit("R3", True, "Employment start date is valid."),
            severity=RuleSeverity.HARD,
        )]
    return [RuleResult(
        hit=_hit("R3", False, detail),
        severity=RuleSeverity.HARD,
        reason="Employment start date is invalid or after the event date.",
    )]


def _check_amount(facts: _Facts) -> List[RuleResult]:
    """R4/R5: the requested amount is positive and within every limit."""
    requested = facts.requested_amount
    cap = facts.single_request_max
    twelve = facts.balance.twelve_month_remaining
    lifetime = facts.balance.lifetime_remaining

    if requested <= 0:
        return [RuleResult(
            hit=_hit("R4/R5", False, f"Requested amount of {_money(requested)} is not greater than zero."),
            severity=RuleSeverity.HARD,
            reason="Requested amount must be greater than zero.",
        )]
    if requested > cap:
        return [RuleResult(
            hit=_hit("R5", False, f"Requested amount {_money(requested)} exceeds absolute cap of {_money(cap)}."),
            severity=RuleSeverity.HARD,
            reason=f"Requested amount of {_money(requested)} exceeds the maximum of {_money(cap)}.",
        )]
    if requested > twelve:
        return [RuleResult(
            hit=_hit("R4", False, f"Requested amount {_money(requested)} exceeds 12-month limit {_money(twelve)}."),
            severity=RuleSeverity.HARD,
            reason=(
                f"Requested amount of {_money(requested)} exceeds the remaining "
                f"12-month limit of {_money(twelve)}."
            ),
        )]
    if requested > lifetime:
        return [RuleResult(
            hit=_hit("R4", False, f"Requested amount {_money(requested)} exceeds lifetime limit {_money(lifetime)}."),
            severity=RuleSeverity.HARD,
            reason=(
                f"Requested amount of {_money(requested)} exceeds the remaining "
                f"lifetime limit of {_money(lifetime)}."
            ),
        )]
    return [
        RuleResult(
            hit=_hit("R4", True, f"Requested amount {_money(requested)} is within all limits."),
            severity=RuleSeverity.HARD,
        ),
        RuleResult(
            hit=_hit("R5", True, f"Requested amount {_money(requested)} is within absolute cap."),
            severity=RuleSeverity.HARD,
        ),
    ]


def _missing_evacuation_details(event: EventRecord) -> List[str]:
    missing = []
    if not event.evacuating_from_primary:
        missing.append("evacuating_from_primary")
    if event.evacuating_from_primary == YesNo.NO and not (event.evacuation_reason or "").strip():
        missing.append("evacuation_reason")
    if not event.stayed_with_family_or_friend:
        missing.append("stayed_with_family_or_friend")
    if not event.evacuation_start_date:
        missing.append("evacuation_start_date")
    if not event.evacuation_nights or event.evacuation_nights <= 0:
        missing.append("evacuation_nights")
    return missing


def _check_supporting_details(facts: _Facts) -> List[RuleResult]:
    """R6: claimed evacuation or power loss comes with its supporting details."""
    event = facts.event
    results = []

    if event.evacuated == YesNo.YES:
        missing = _missing_evacuation_details(event)
        if missing:
            results.append(RuleResult(
                hit=_hit("R6", False, (
                    "Evacuation indicated but required fields are missing or invalid: "
                    f"{', '.join(missing)}."
                )),
                severity=RuleSeverity.SOFT,
                reason=(
                    "Evacuation was indicated, but required details (e.g., evacuation "
                    "start date, number of nights) are missing or invalid."
                ),
            ))
        else:
            results.append(RuleResult(
                hit=_hit("R6", True, "Evacuation fields are complete."),
                severity=RuleSeverity.SOFT,
            ))

    if event.power_loss == YesNo.YES:
        days = event.power_loss_days
        if not days or days <= 0:
            results.append(RuleResult(
                hit=_hit("R6", False, (
                    f"Power loss indicated but power_loss_days ({days if days is not None else 'N/A'}) "
                    "is invalid."
                )),
                severity=RuleSeverity.SOFT,
                reason="Power loss was indicated, but the number of days is missing or invalid.",
            ))
        else:
            results.append(RuleResult(
                hit=_hit("R6", True, "Power loss fields are complete."),
                severity=RuleSeverity.SOFT,
            ))

    if not results:
        results.append(RuleResult(
            hit=_hit("R6", True, "No evacuation or power loss claimed."),
            severity=RuleSeverity.SOFT,
        ))
    return results


def _normalized_power_loss_days(event: EventRecord) -> float:
    if event.power_loss == YesNo.NO:
        return 0
    return event.power_loss_days or 0


def _check_normalization(facts: _Facts) -> List[RuleResult]:
    """R7: power loss 'No' forces the day count to zero."""
    original = facts.event.power_loss_days or 0
    if facts.event.power_loss == YesNo.NO and original > 0:
        detail = f"Power loss was 'No', but power_loss_days was {original:g}. Coerced to 0."
    else:
        detail = "No normalization required."
    return [RuleResult(hit=_hit("R7", True, detail), severity=RuleSeverity.INFO)]


# Evaluation order is the audit order.
RULES: List[Callable[[_Facts], List[RuleResult]]] = [
    _check_event,
    _check_event_date,
    _check_employment,
    _check_amount,
    _check_supporting_details,
    _check_normalization,
]


def _final_outcome(results: List[RuleResult]) -> DecisionOutcome:
    """Most severe outcome wins: any hard failure denies, then soft failures review."""
    if any(r.failed and r.severity == RuleSeverity.HARD for r in results):
        return DecisionOutcome.DENIED
    if any(r.failed and r.severity == RuleSeverity.SOFT for r in results):
        return DecisionOutcome.REVIEW
    return DecisionOutcome.APPROVED


class EligibilityDecisionEngine:
    """
    The deterministic rules engine.

    Stateless: one instance can serve any number of sessions.
    """

    def __init__(self, event_window_days: int = 90):
        self.event_window_days = event_window_days

    def evaluate(
        self,
        employment_start_date: Optional[str],
        event_data: EventRecord,
        balance: GrantBalance,
        policy: ProgramPolicy,
        current_time: Optional[datetime] = None,
    ) -> Decision:
        """Evaluate every rule and return the resulting Decision."""
        # The timestamp is taken before any date arithmetic.
        if current_time is None:
            current_time = datetime.now(timezone.utc)
        decisioned_date = current_time.isoformat()

        today = current_time.date()
        facts = _Facts(
            event=event_data,
            event_name=resolve_event_name(event_data),
            event_date_raw=event_data.event_date or "",
            event_date=_parse_date(event_data.event_date),
            employment_start_raw=employment_start_date or "",
            employment_start=_parse_date(employment_start_date),
            today=today,
            window_start=today - timedelta(days=self.event_window_days),
            requested_amount=event_data.requested_amount or 0,
            balance=balance,
            single_request_max=min(policy.single_request_max, balance.single_request_max),
            eligible_events=list(policy.eligible_event_categories),
        )

        results: List[RuleResult] = []
        for rule in RULES:
            results.extend(rule(facts))

        outcome = _final_outcome(results)
        reasons = [
            r.reason for r in results
            if r.failed and r.reason
            and (r.severity == RuleSeverity.HARD or outcome != DecisionOutcome.DENIED)
        ]
        if outcome == DecisionOutcome.APPROVED:
            reasons.append(APPROVAL_REASON)

        award = 0.0
        remaining_12mo = balance.twelve_month_remaining
        remaining_lifetime = balance.lifetime_remaining
        if outcome == DecisionOutcome.APPROVED:
            award = min(
                facts.requested_amount,
                facts.single_request_max,
                balance.twelve_month_remaining,
                balance.lifetime_remaining,
            )
            remaining_12mo -= award
            remaining_lifetime -= award

        decision = Decision(
            decision=outcome,
            reasons=reasons,
            policy_hits=[r.hit for r in results],
            recommended_award=award,
            remaining_12mo=remaining_12mo,
            remaining_lifetime=remaining_lifetime,
            normalized=NormalizedEvent(
                event=facts.event_name,
                event_date=facts.event_date.isoformat() if facts.event_date else facts.event_date_raw,
                evacuated=event_data.evacuated.value if event_data.evacuated else "",
                power_loss_days=_normalized_power_loss_days(event_data),
            ),
            decisioned_date=decisioned_date,
        )
        logger.info(
            "Decision %s (award %s); failed rules: %s",
            outcome.value, _money(award), ", ".join(decision.failed_rules()) or "none",
        )
        return decision
