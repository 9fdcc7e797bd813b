"""
Relief Kernel API: FastAPI endpoints.

Exposes the collection session operations to the conversational
collaborator:
- Draft updates (profile, event, expenses, agreements, reset)
- Missing-field checklist
- Deterministic evaluation
- Evaluation followed by secondary adjudication
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from relief_kernel.decision.engine import EligibilityDecisionEngine
from relief_kernel.decision.refiner import AdjudicatorClient, DecisionRefiner
from relief_kernel.models.decision import Decision, GrantBalance, ProgramPolicy
from relief_kernel.models.fund import Fund, balance_from_history
from relief_kernel.resolver.fields import FieldDependencyResolver
from relief_kernel.session.collection import CollectionSession
from relief_kernel.session.profile_store import InMemoryProfileStore, ProfileStore
from relief_kernel.session.registry import SessionRegistry
from relief_kernel.utils.config import Settings, get_settings
from relief_kernel.utils.errors import ErrorType, ReliefKernelError
from relief_kernel.utils.logging import get_logger, setup_logging_from_settings

logger = get_logger(__name__)

_STATUS_BY_ERROR = {
    ErrorType.INCOMPLETE_DRAFT: 409,
    ErrorType.TURN_IN_PROGRESS: 409,
    ErrorType.INVALID_FIELD_VALUE: 422,
    ErrorType.MISSING_EVALUATION_CONTEXT: 400,
    ErrorType.ADJUDICATION_UNAVAILABLE: 503,
}


# --- Request Models ---

class ExpensesRequest(BaseModel):
    expenses: List[dict]


class EvaluateRequest(BaseModel):
    balance: Optional[GrantBalance] = None
    policy: Optional[ProgramPolicy] = None
    current_time: Optional[datetime] = None


# --- Application Factory ---

def create_app(
    profile_store: Optional[ProfileStore] = None,
    adjudicator: Optional[AdjudicatorClient] = None,
    funds: Optional[Dict[str, Fund]] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    cfg = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging_from_settings(cfg)
        yield

    app = FastAPI(
        title="Relief Kernel API",
        description="Eligibility decisioning and draft collection for relief applications",
        version="0.1.0",
        lifespan=lifespan,
    )

    store = profile_store or InMemoryProfileStore()
    fund_registry: Dict[str, Fund] = dict(funds or {})
    resolver = FieldDependencyResolver()
    engine = EligibilityDecisionEngine(cfg.event_window_days)
    refiner = DecisionRefiner(cfg.adjudication_timeout_seconds)

    def _new_session(applicant_id: str, fund_code: str) -> CollectionSession:
        return CollectionSession(
            applicant_id=applicant_id,
            fund_code=fund_code,
            profile_store=store,
            resolver=resolver,
            engine=engine,
            refiner=refiner,
            settings=cfg,
        )

    sessions = SessionRegistry(_new_session)

    app.state.settings = cfg
    app.state.profile_store = store
    app.state.funds = fund_registry
    app.state.sessions = sessions
    app.state.adjudicator = adjudicator

    @app.exception_handler(ReliefKernelError)
    async def _relief_error_handler(request: Request, exc: ReliefKernelError):
        return JSONResponse(
            status_code=_STATUS_BY_ERROR.get(exc.error_type, 400),
            content=exc.to_dict(),
        )

    def _resolve_terms(
        applicant_id: str, fund_code: str, req: EvaluateRequest
    ) -> tuple:
        fund = fund_registry.get(fund_code)
        policy = fund.policy() if fund else req.policy
        if policy is None:
            raise HTTPException(400, f"No policy supplied and fund '{fund_code}' is not registered")
        balance = req.balance
        if balance is None:
            if fund is None:
                raise HTTPException(400, "No balance supplied and fund is not registered")
            balance = balance_from_history(fund, sessions.decisions(applicant_id, fund_code))
        return balance, policy

    # === DRAFT UPDATES ===

    base = "/sessions/{applicant_id}/{fund_code}"

    @app.patch(base + "/profile")
    def update_profile(applicant_id: str, fund_code: str, partial: dict):
        session = sessions.get_or_create(applicant_id, fund_code)
        session.update_profile(partial)
        return {"status": "updated", "active_section": session.checklist().active_section}

    @app.patch(base + "/event")
    def update_event(applicant_id: str, fund_code: str, partial: dict):
        session = sessions.get_or_create(applicant_id, fund_code)
        session.update_event_draft(partial)
        return {"status": "updated", "active_section": session.checklist().active_section}

    @app.put(base + "/expenses")
    def set_expenses(applicant_id: str, fund_code: str, req: ExpensesRequest):
        session = sessions.get_or_create(applicant_id, fund_code)
        session.set_expenses(req.expenses)
        return {
            "status": "updated",
            "requested_amount": session.draft.event_data.requested_amount,
            "active_section": session.checklist().active_section,
        }

    @app.patch(base + "/agreements")
    def update_agreements(applicant_id: str, fund_code: str, partial: dict):
        session = sessions.get_or_create(applicant_id, fund_code)
        session.update_agreements(partial)
        return {"status": "updated", "active_section": session.checklist().active_section}

    @app.delete(base + "/draft")
    def reset_draft(applicant_id: str, fund_code: str):
        session = sessions.get_or_create(applicant_id, fund_code)
        session.reset_draft()
        return {"status": "reset"}

    # === QUERIES ===

    @app.get(base + "/draft")
    def get_draft(applicant_id: str, fund_code: str):
        session = sessions.get_or_create(applicant_id, fund_code)
        return session.draft.model_dump(mode="json", by_alias=True)

    @app.get(base + "/missing-fields")
    def get_missing_fields(applicant_id: str, fund_code: str):
        session = sessions.get_or_create(applicant_id, fund_code)
        checklist = session.checklist()
        return {
            "active_section": checklist.active_section,
            "ready_for_decision": session.is_ready_for_decision(),
            "sections": [m.model_dump(mode="json") for m in checklist.missing_fields()],
        }

    # === DECISIONING ===

    @app.post(base + "/evaluate")
    def evaluate(applicant_id: str, fund_code: str, req: EvaluateRequest):
        """Deterministic decision only."""
        session = sessions.get_or_create(applicant_id, fund_code)
        balance, policy = _resolve_terms(applicant_id, fund_code, req)
        decision = session.evaluate(balance, policy, current_time=req.current_time)
        return decision.model_dump(mode="json")

    @app.post(base + "/decide")
    async def decide(applicant_id: str, fund_code: str, req: EvaluateRequest):
        """Deterministic decision followed by secondary adjudication."""
        session = sessions.get_or_create(applicant_id, fund_code)
        balance, policy = _resolve_terms(applicant_id, fund_code, req)
        preliminary = session.evaluate(balance, policy, current_time=req.current_time)
        final: Decision = await session.refine(preliminary, app.state.adjudicator)
        sessions.record_decision(applicant_id, fund_code, final)
        logger.info(
            "Decided application for %s/%s: %s", applicant_id, fund_code, final.decision.value
        )
        body = final.model_dump(mode="json")
        body["status"] = final.status.value
        return body

    @app.get(base + "/balance")
    def get_balance(applicant_id: str, fund_code: str):
        fund = fund_registry.get(fund_code)
        if fund is None:
            raise HTTPException(404, "Fund not found")
        balance = balance_from_history(fund, sessions.decisions(applicant_id, fund_code))
        return balance.model_dump(mode="json")

    return app


# Default application instance
app = create_app()
