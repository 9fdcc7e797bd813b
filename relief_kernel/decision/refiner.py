"""
Decision Refiner: optional second stage of decisioning.

Behavioral Contract:
- A Denied preliminary decision is returned as-is; the adjudicator is never called
- A Review preliminary decision is returned as-is; it awaits a human
- An Approved preliminary decision is sent to the adjudicator under one
  bounded wait. The adjudicator may affirm, reduce the award, or deny
- Any adjudicator failure degrades to the preliminary decision plus an
  audit reason; it never propagates to the caller
- Cancellation is not a failure: it propagates and leaves inputs untouched
"""

import asyncio
from typing import Any, Optional, Protocol, Union, runtime_checkable

from pydantic import ValidationError

from relief_kernel.models.decision import (
    AdjudicationContext,
    AdjudicationResult,
    Decision,
    DecisionOutcome,
)
from relief_kernel.utils.errors import AdjudicationUnavailableError
from relief_kernel.utils.logging import get_logger

logger = get_logger(__name__)

FALLBACK_REASON = (
    "Secondary review could not be completed; this decision is based on the "
    "automated rules engine only."
)


@runtime_checkable
class AdjudicatorClient(Protocol):
    """The external secondary decision-maker."""

    async def adjudicate(
        self, context: AdjudicationContext
    ) -> Union[AdjudicationResult, dict]:
        ...


def _parse_result(raw: Any) -> AdjudicationResult:
    if isinstance(raw, AdjudicationResult):
        result = raw
    else:
        try:
            result = AdjudicationResult.model_validate(raw)
        except ValidationError as exc:
            raise AdjudicationUnavailableError(
                "Adjudicator returned a malformed response", exc
            ) from exc
    if not result.is_terminal():
        raise AdjudicationUnavailableError(
            f"Adjudicator returned non-terminal decision '{result.final_decision.value}'"
        )
    return result


def _fallback(preliminary: Decision) -> Decision:
    return preliminary.model_copy(
        update={"reasons": [*preliminary.reasons, FALLBACK_REASON]}
    )


class DecisionRefiner:
    """Runs the secondary adjudication pass over a preliminary decision."""

    def __init__(self, timeout_seconds: float = 30.0):
        self.timeout_seconds = timeout_seconds

    async def refine(
        self,
        preliminary: Decision,
        context: AdjudicationContext,
        adjudicator: Optional[AdjudicatorClient],
    ) -> Decision:
        # A deterministic denial is final.
        if preliminary.decision == DecisionOutcome.DENIED:
            return preliminary
        if preliminary.decision == DecisionOutcome.REVIEW:
            logger.info("Review decision routed to manual handling; not refined")
            return preliminary
        if adjudicator is None:
            return preliminary

        try:
            raw = await self._call(adjudicator, context)
            result = _parse_result(raw)
        except AdjudicationUnavailableError as exc:
            logger.warning("Secondary adjudication unavailable: %s", exc)
            return _fallback(preliminary)

        return self._apply(preliminary, context, result)

    async def _call(self, adjudicator: AdjudicatorClient, context: AdjudicationContext) -> Any:
        try:
            return await asyncio.wait_for(
                adjudicator.adjudicate(context), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError as exc:
            raise AdjudicationUnavailableError(
                f"Adjudicator did not answer within {self.timeout_seconds:g}s", exc
            ) from exc
        except AdjudicationUnavailableError:
            raise
        except Exception as exc:
            raise AdjudicationUnavailableError(
                f"Adjudicator failed: {exc}", exc
            ) from exc

    def _apply(
        self,
        preliminary: Decision,
        context: AdjudicationContext,
        result: AdjudicationResult,
    ) -> Decision:
        """Build the refined decision; the award may only stay or shrink."""
        if result.final_decision == DecisionOutcome.APPROVED:
            award = min(max(result.final_award, 0.0), preliminary.recommended_award)
        else:
            award = 0.0

        refined = Decision(
            decision=result.final_decision,
            reasons=[result.final_reason],
            policy_hits=preliminary.policy_hits,
            recommended_award=award,
            remaining_12mo=context.balance.twelve_month_remaining - award,
            remaining_lifetime=context.balance.lifetime_remaining - award,
            normalized=preliminary.normalized,
            decisioned_date=preliminary.decisioned_date,
        )
        logger.info(
            "Adjudicator returned %s; award %.2f (preliminary %.2f)",
            refined.decision.value, award, preliminary.recommended_award,
        )
        return refined
