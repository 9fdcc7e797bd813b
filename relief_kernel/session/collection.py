"""
Collection Session: sequences draft updates against the resolver.

One session per (applicant, fund) identity. The session holds the draft,
applies the collaborator's update operations, and answers whether the
draft is ready for decisioning. It never triggers decisioning itself.

Concurrency:
  A turn is one batch of updates followed by a resolver recomputation.
  At most one turn, or one refinement, is in flight per session; a second
  attempt is rejected with TurnInProgressError rather than interleaved.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Union

from relief_kernel.decision.engine import EligibilityDecisionEngine
from relief_kernel.decision.refiner import AdjudicatorClient, DecisionRefiner
from relief_kernel.models.checklist import Checklist, MissingSection, SectionKey
from relief_kernel.models.decision import (
    AdjudicationContext,
    Decision,
    DecisionOutcome,
    GrantBalance,
    ProgramPolicy,
)
from relief_kernel.models.draft import ApplicationDraft
from relief_kernel.models.event import Expense
from relief_kernel.models.profile import Profile
from relief_kernel.resolver.fields import FieldDependencyResolver
from relief_kernel.session.profile_store import ProfileStore
from relief_kernel.utils.config import Settings, get_settings
from relief_kernel.utils.errors import (
    IncompleteDraftError,
    MissingEvaluationContextError,
    TurnInProgressError,
)
from relief_kernel.utils.logging import context_logger, get_logger

logger = get_logger(__name__)


def _current_task() -> Optional["asyncio.Task"]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


@dataclass(frozen=True)
class _EvaluationContext:
    """What the last evaluate() saw; refine() reviews against the same facts."""

    balance: GrantBalance
    policy: ProgramPolicy
    event_data: dict


class CollectionSession:
    """Holds one applicant's draft for one fund."""

    def __init__(
        self,
        applicant_id: str,
        fund_code: str,
        profile_store: Optional[ProfileStore] = None,
        resolver: Optional[FieldDependencyResolver] = None,
        engine: Optional[EligibilityDecisionEngine] = None,
        refiner: Optional[DecisionRefiner] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.applicant_id = applicant_id
        self.fund_code = fund_code
        self.profile_store = profile_store
        self.resolver = resolver or FieldDependencyResolver()
        self.engine = engine or EligibilityDecisionEngine(settings.event_window_days)
        self.refiner = refiner or DecisionRefiner(settings.adjudication_timeout_seconds)

        self._draft = ApplicationDraft()
        self._evaluation: Optional[_EvaluationContext] = None
        self._lock = asyncio.Lock()
        self._owner: Optional[asyncio.Task] = None
        self._log = context_logger(logger, applicant=applicant_id, fund=fund_code)

    @property
    def key(self) -> str:
        return f"{self.applicant_id}/{self.fund_code}"

    @property
    def draft(self) -> ApplicationDraft:
        return self._draft

    @property
    def busy(self) -> bool:
        """True while a turn or refinement is outstanding."""
        return self._lock.locked()

    def base_profile(self) -> Optional[Profile]:
        if self.profile_store is None:
            return None
        return self.profile_store.get_profile(self.applicant_id)

    # --- Single-writer discipline ---

    def _guard_writer(self) -> None:
        """Reject writes from anyone but the task that owns the open turn."""
        if self._lock.locked() and _current_task() is not self._owner:
            raise TurnInProgressError(self.key)

    @asynccontextmanager
    async def turn(self) -> AsyncIterator["CollectionSession"]:
        """
        Open a turn. Updates inside it belong to the caller's task; the
        resolver is recomputed when it closes.
        """
        if self._lock.locked():
            raise TurnInProgressError(self.key)
        async with self._lock:
            self._owner = _current_task()
            try:
                yield self
            finally:
                self._owner = None
                self._log.debug(
                    "Turn closed; active section: %s", self.checklist().active_section
                )

    # --- Update operations ---

    def update_profile(self, partial: Dict[str, Any]) -> None:
        self._guard_writer()
        self._draft = self._draft.with_profile(partial)
        self._log.debug("Profile updated: %s", sorted(partial))

    def update_event_draft(self, partial: Dict[str, Any]) -> None:
        self._guard_writer()
        updated = self._draft.with_event(partial)
        expenses = partial.get("expenses")
        if expenses:
            updated = updated.with_expenses(expenses)
        self._draft = updated
        self._log.debug("Event draft updated: %s", sorted(partial))

    def set_expenses(self, items: Iterable[Union[Expense, Dict[str, Any]]]) -> None:
        self._guard_writer()
        self._draft = self._draft.with_expenses(items)
        self._log.debug(
            "Expenses set; requested amount now %.2f",
            self._draft.event_data.requested_amount,
        )

    def update_agreements(self, partial: Dict[str, Any]) -> None:
        self._guard_writer()
        self._draft = self._draft.with_agreements(partial)
        self._log.debug("Agreements updated: %s", sorted(partial))

    def reset_draft(self) -> None:
        """Discard the draft and any evaluation context."""
        self._guard_writer()
        self._draft = ApplicationDraft()
        self._evaluation = None
        self._log.info("Draft reset")

    # --- Queries ---

    def checklist(self) -> Checklist:
        return self.resolver.resolve(self._draft, self.base_profile())

    def get_missing_fields(self) -> List[MissingSection]:
        return self.checklist().missing_fields()

    def is_ready_for_decision(self) -> bool:
        return self.checklist().is_complete(SectionKey.EXPENSES)

    # --- Decisioning ---

    def evaluate(
        self,
        balance: GrantBalance,
        policy: ProgramPolicy,
        current_time: Optional[datetime] = None,
    ) -> Decision:
        """Run the rules engine over the draft. Requires Expenses complete."""
        self._guard_writer()
        checklist = self.checklist()
        if not checklist.is_complete(SectionKey.EXPENSES):
            active = checklist.active_section
            raise IncompleteDraftError(active.value if active else None)

        profile = self._draft.resolved_profile(self.base_profile())
        decision = self.engine.evaluate(
            employment_start_date=profile.employment_start_date,
            event_data=self._draft.event_data,
            balance=balance,
            policy=policy,
            current_time=current_time,
        )
        self._evaluation = _EvaluationContext(
            balance=balance,
            policy=policy,
            event_data=self._draft.event_data.model_dump(mode="json"),
        )
        self._log.info("Evaluated draft: %s", decision.decision.value)
        return decision

    async def refine(
        self,
        decision: Decision,
        adjudicator: Optional[AdjudicatorClient],
    ) -> Decision:
        """Second-stage review of a preliminary decision."""
        # Only an Approved preliminary decision is ever sent for review.
        if decision.decision != DecisionOutcome.APPROVED:
            return decision
        if self._evaluation is None:
            raise MissingEvaluationContextError(self.key)

        context = AdjudicationContext(
            applicant_id=self.applicant_id,
            fund_code=self.fund_code,
            event_data=self._evaluation.event_data,
            balance=self._evaluation.balance,
            policy=self._evaluation.policy,
            preliminary=decision,
        )

        current = _current_task()
        if self._lock.locked() and current is self._owner:
            return await self.refiner.refine(decision, context, adjudicator)
        if self._lock.locked():
            raise TurnInProgressError(self.key)
        async with self._lock:
            self._owner = current
            try:
                return await self.refiner.refine(decision, context, adjudicator)
            finally:
                self._owner = None
