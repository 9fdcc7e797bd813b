"""Tests for the FastAPI API endpoints."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from relief_kernel.api.app import create_app
from relief_kernel.models import AdjudicationResult, Fund, FundLimits, Profile
from relief_kernel.session.profile_store import InMemoryProfileStore
from relief_kernel.utils.config import Settings

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
EVENT_DATE = (NOW.date() - timedelta(days=10)).isoformat()
BASE = "/sessions/emp-1/DOM"


class StubAdjudicator:
    def __init__(self, award=800, decision="Approved"):
        self.award = award
        self.decision = decision
        self.calls = 0

    async def adjudicate(self, context):
        self.calls += 1
        return AdjudicationResult(
            final_decision=self.decision,
            final_reason="Reviewed by adjudicator",
            final_award=self.award,
        )


def _make_fund() -> Fund:
    return Fund(
        code="DOM",
        name="Domestic Relief Fund",
        limits=FundLimits(single_request_max=3000, twelve_month_max=1000, lifetime_max=5000),
        eligible_disasters=["Flood", "Wildfire"],
        eligible_hardships=["Crime"],
    )


def _make_client(adjudicator=None) -> TestClient:
    store = InMemoryProfileStore({
        "emp-1": Profile(
            employment_start_date="2020-01-15",
            eligibility_type="Active Full Time",
            household_income=52000,
            household_size=3,
            homeowner="Yes",
            preferred_language="English",
            ack_policies=True,
            comm_consent=True,
            info_correct=True,
        ),
    })
    app = create_app(
        profile_store=store,
        adjudicator=adjudicator,
        funds={"DOM": _make_fund()},
        settings=Settings(adjudication_timeout_seconds=1),
    )
    return TestClient(app)


@pytest.fixture
def client():
    return _make_client()


def _fill(client: TestClient) -> None:
    response = client.patch(BASE + "/event", json={
        "event": "Flood",
        "eventDate": EVENT_DATE,
        "powerLoss": "No",
        "evacuated": "No",
    })
    assert response.status_code == 200
    response = client.put(BASE + "/expenses", json={"expenses": [
        {"type": "Basic Disaster Supplies", "amount": 300},
        {"type": "Food Spoilage", "amount": 200},
        {"type": "Meals", "amount": 300},
    ]})
    assert response.status_code == 200
    assert response.json()["requested_amount"] == 800


class TestDraftEndpoints:
    def test_profile_update_advances_section(self, client):
        response = client.patch(BASE + "/profile", json={"householdSize": 4})
        assert response.status_code == 200
        assert response.json()["active_section"] == "event_details"

    def test_invalid_value_rejected(self, client):
        response = client.patch(BASE + "/profile", json={"householdIncome": "plenty"})
        assert response.status_code == 422
        body = response.json()
        assert body["error_type"] == "INVALID_FIELD_VALUE"
        assert body["details"]["field"] == "household_income"

    def test_get_draft_uses_camel_case(self, client):
        client.patch(BASE + "/event", json={"event": "Flood", "powerLossDays": 2})
        draft = client.get(BASE + "/draft").json()
        assert draft["eventData"]["event"] == "Flood"
        assert draft["eventData"]["powerLossDays"] == 2

    def test_missing_fields(self, client):
        response = client.get(BASE + "/missing-fields")
        assert response.status_code == 200
        data = response.json()
        assert data["active_section"] == "event_details"
        assert data["ready_for_decision"] is False
        assert [s["section"] for s in data["sections"]] == [
            "additional_details", "acknowledgements", "event_details", "expenses", "agreements",
        ]
        event_section = data["sections"][2]
        assert {i["key"] for i in event_section["items"]} >= {"event", "event_date"}
        assert data["sections"][3]["items"] == []

    def test_ready_after_expenses(self, client):
        _fill(client)
        data = client.get(BASE + "/missing-fields").json()
        assert data["ready_for_decision"] is True
        assert data["active_section"] == "agreements"

    def test_reset(self, client):
        _fill(client)
        assert client.delete(BASE + "/draft").json() == {"status": "reset"}
        assert client.get(BASE + "/missing-fields").json()["ready_for_decision"] is False

    def test_agreements(self, client):
        _fill(client)
        client.patch(BASE + "/agreements", json={"shareStory": False, "receiveAdditionalInfo": True})
        assert client.get(BASE + "/missing-fields").json()["active_section"] is None


class TestEvaluateEndpoint:
    def test_incomplete_draft_conflict(self, client):
        response = client.post(BASE + "/evaluate", json={"current_time": NOW.isoformat()})
        assert response.status_code == 409
        assert response.json()["details"]["active_section"] == "event_details"

    def test_evaluate_with_fund_defaults(self, client):
        _fill(client)
        response = client.post(BASE + "/evaluate", json={"current_time": NOW.isoformat()})
        assert response.status_code == 200
        data = response.json()
        assert data["decision"] == "Approved"
        assert data["recommended_award"] == 800
        assert data["remaining_12mo"] == 200

    def test_explicit_terms_override_fund(self, client):
        _fill(client)
        response = client.post(BASE + "/evaluate", json={
            "current_time": NOW.isoformat(),
            "balance": {"singleRequestMax": 3000, "twelveMonthRemaining": 500, "lifetimeRemaining": 5000},
        })
        data = response.json()
        assert data["decision"] == "Denied"
        assert [h["rule_id"] for h in data["policy_hits"] if not h["passed"]] == ["R4"]

    def test_body_policy_ignored_for_registered_fund(self, client):
        _fill(client)
        response = client.post(BASE + "/evaluate", json={
            "current_time": NOW.isoformat(),
            "policy": {"singleRequestMax": 100, "eligibleEventCategories": ["Tornado"]},
        })
        data = response.json()
        assert data["decision"] == "Approved"
        assert data["recommended_award"] == 800

    def test_body_policy_used_for_unregistered_fund(self, client):
        client.patch("/sessions/emp-1/INTL/event", json={
            "event": "Tornado", "eventDate": EVENT_DATE, "powerLoss": "No", "evacuated": "No",
        })
        client.put("/sessions/emp-1/INTL/expenses", json={"expenses": [
            {"type": "Basic Disaster Supplies", "amount": 100},
            {"type": "Food Spoilage", "amount": 100},
            {"type": "Meals", "amount": 100},
        ]})
        response = client.post("/sessions/emp-1/INTL/evaluate", json={
            "current_time": NOW.isoformat(),
            "policy": {"singleRequestMax": 1000, "eligibleEventCategories": ["Tornado"]},
            "balance": {"singleRequestMax": 1000, "twelveMonthRemaining": 1000, "lifetimeRemaining": 1000},
        })
        assert response.status_code == 200
        assert response.json()["decision"] == "Approved"

    def test_unknown_fund_without_policy(self, client):
        response = client.post("/sessions/emp-1/NOPE/evaluate", json={})
        assert response.status_code == 400


class TestDecideEndpoint:
    def test_decide_records_award_against_balance(self):
        adjudicator = StubAdjudicator(award=450)
        client = _make_client(adjudicator)
        _fill(client)

        response = client.post(BASE + "/decide", json={"current_time": NOW.isoformat()})
        assert response.status_code == 200
        data = response.json()
        assert data["decision"] == "Approved"
        assert data["status"] == "Awarded"
        assert data["recommended_award"] == 450
        assert adjudicator.calls == 1

        balance = client.get(BASE + "/balance").json()
        assert balance["twelve_month_remaining"] == 550
        assert balance["lifetime_remaining"] == 4550

    def test_denied_is_not_sent_to_adjudicator(self):
        adjudicator = StubAdjudicator()
        client = _make_client(adjudicator)
        _fill(client)
        client.patch(BASE + "/event", json={"eventDate": "2019-01-01"})

        data = client.post(BASE + "/decide", json={"current_time": NOW.isoformat()}).json()
        assert data["decision"] == "Denied"
        assert data["status"] == "Declined"
        assert adjudicator.calls == 0

    def test_decide_requires_ready_draft(self, client):
        _fill(client)
        client.patch(BASE + "/event", json={"powerLoss": "Yes", "powerLossDays": 0})
        # Zero days leaves Event Details incomplete, so the draft is not ready.
        assert client.post(BASE + "/decide", json={}).status_code == 409

    def test_balance_unknown_fund(self, client):
        assert client.get("/sessions/emp-1/NOPE/balance").status_code == 404
