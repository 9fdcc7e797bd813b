"""Session Registry: one CollectionSession per (applicant, fund) identity."""

from typing import Callable, Dict, List, Optional, Tuple

from relief_kernel.models.decision import Decision
from relief_kernel.session.collection import CollectionSession

SessionFactory = Callable[[str, str], CollectionSession]


class SessionRegistry:
    """
    In-memory registry of live sessions and their decided applications.
    Sessions never share state; each identity gets its own draft.
    """

    def __init__(self, factory: SessionFactory):
        self._factory = factory
        self._sessions: Dict[Tuple[str, str], CollectionSession] = {}
        self._decisions: Dict[Tuple[str, str], List[Decision]] = {}

    def get_or_create(self, applicant_id: str, fund_code: str) -> CollectionSession:
        key = (applicant_id, fund_code)
        session = self._sessions.get(key)
        if session is None:
            session = self._factory(applicant_id, fund_code)
            self._sessions[key] = session
        return session

    def get(self, applicant_id: str, fund_code: str) -> Optional[CollectionSession]:
        return self._sessions.get((applicant_id, fund_code))

    def record_decision(self, applicant_id: str, fund_code: str, decision: Decision) -> None:
        self._decisions.setdefault((applicant_id, fund_code), []).append(decision)

    def decisions(self, applicant_id: str, fund_code: str) -> List[Decision]:
        return list(self._decisions.get((applicant_id, fund_code), []))

    def count(self) -> int:
        return len(self._sessions)
