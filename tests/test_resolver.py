"""
Tests for the Field Dependency Resolver.

Covers section gating, conditional requirements, base-profile precedence
and recomputation from scratch.
"""

from relief_kernel.models import ApplicationDraft, Profile, SectionKey
from relief_kernel.resolver.fields import FieldDependencyResolver


def _make_profile_partial(**overrides) -> dict:
    partial = {
        "employmentStartDate": "2020-01-15",
        "eligibilityType": "Active Full Time",
        "householdIncome": 52000,
        "householdSize": 3,
        "homeowner": "Yes",
        "preferredLanguage": "English",
        "ackPolicies": True,
        "commConsent": True,
        "infoCorrect": True,
    }
    partial.update(overrides)
    return partial


def _make_event_partial(**overrides) -> dict:
    partial = {
        "event": "Flood",
        "eventDate": "2026-10-01",
        "powerLoss": "No",
        "evacuated": "No",
    }
    partial.update(overrides)
    return partial


_EXPENSES = [
    {"type": "Basic Disaster Supplies", "amount": 300},
    {"type": "Food Spoilage", "amount": 200},
    {"type": "Meals", "amount": 300},
]


def _make_draft(profile=None, event=None, expenses=None, agreements=None) -> ApplicationDraft:
    draft = ApplicationDraft()
    if profile is not None:
        draft = draft.with_profile(profile)
    if event is not None:
        draft = draft.with_event(event)
    if expenses is not None:
        draft = draft.with_expenses(expenses)
    if agreements is not None:
        draft = draft.with_agreements(agreements)
    return draft


def _keys(items) -> set:
    return {item.key for item in items}


class TestSectionGating:
    def setup_method(self):
        self.resolver = FieldDependencyResolver()

    def test_empty_draft_only_discloses_first_section(self):
        checklist = self.resolver.resolve(ApplicationDraft())
        assert checklist.active_section == SectionKey.ADDITIONAL_DETAILS

        first = checklist.section(SectionKey.ADDITIONAL_DETAILS)
        assert first.visible
        assert "employment_start_date" in _keys(first.missing)

        for key in (SectionKey.ACKNOWLEDGEMENTS, SectionKey.EVENT_DETAILS,
                    SectionKey.EXPENSES, SectionKey.AGREEMENTS):
            section = checklist.section(key)
            assert not section.visible
            assert section.missing == []
            assert not section.complete

    def test_missing_fields_lists_every_section_in_order(self):
        missing = self.resolver.missing_fields(ApplicationDraft())
        assert [m.section for m in missing] == [
            SectionKey.ADDITIONAL_DETAILS,
            SectionKey.ACKNOWLEDGEMENTS,
            SectionKey.EVENT_DETAILS,
            SectionKey.EXPENSES,
            SectionKey.AGREEMENTS,
        ]
        assert all(m.items == [] for m in missing[1:])

    def test_later_answers_do_not_complete_a_gated_section(self):
        draft = _make_draft(event=_make_event_partial(), expenses=_EXPENSES)
        checklist = self.resolver.resolve(draft)
        assert checklist.active_section == SectionKey.ADDITIONAL_DETAILS
        assert not checklist.is_complete(SectionKey.EXPENSES)

    def test_complete_draft(self):
        draft = _make_draft(
            profile=_make_profile_partial(),
            event=_make_event_partial(),
            expenses=_EXPENSES,
            agreements={"shareStory": False, "receiveAdditionalInfo": False},
        )
        checklist = self.resolver.resolve(draft)
        assert checklist.active_section is None
        assert all(s.complete for s in checklist.sections)

    def test_agreements_not_needed_for_expenses(self):
        draft = _make_draft(
            profile=_make_profile_partial(),
            event=_make_event_partial(),
            expenses=_EXPENSES,
        )
        checklist = self.resolver.resolve(draft)
        assert checklist.is_complete(SectionKey.EXPENSES)
        assert checklist.active_section == SectionKey.AGREEMENTS


class TestAcknowledgements:
    def setup_method(self):
        self.resolver = FieldDependencyResolver()

    def test_false_acknowledgement_is_incomplete(self):
        draft = _make_draft(profile=_make_profile_partial(commConsent=False))
        checklist = self.resolver.resolve(draft)
        assert checklist.active_section == SectionKey.ACKNOWLEDGEMENTS
        assert _keys(checklist.section(SectionKey.ACKNOWLEDGEMENTS).missing) == {"comm_consent"}

    def test_draft_false_overrides_base_true(self):
        base = Profile(ack_policies=True, comm_consent=True, info_correct=True)
        draft = _make_draft(profile=_make_profile_partial(infoCorrect=False))
        checklist = self.resolver.resolve(draft, base)
        assert not checklist.is_complete(SectionKey.ACKNOWLEDGEMENTS)

    def test_base_profile_fills_missing_fields(self):
        base = Profile(
            employment_start_date="2019-05-01",
            eligibility_type="Active Part Time",
            household_income=40000,
            household_size=2,
            homeowner="No",
            preferred_language="Spanish",
            ack_policies=True,
            comm_consent=True,
            info_correct=True,
        )
        checklist = self.resolver.resolve(ApplicationDraft(), base)
        assert checklist.is_complete(SectionKey.ACKNOWLEDGEMENTS)
        assert checklist.active_section == SectionKey.EVENT_DETAILS

    def test_zero_income_counts_as_provided(self):
        draft = _make_draft(profile=_make_profile_partial(householdIncome=0))
        assert self.resolver.resolve(draft).is_complete(SectionKey.ADDITIONAL_DETAILS)


class TestConditionalEventFields:
    def setup_method(self):
        self.resolver = FieldDependencyResolver()

    def _event_missing(self, **event_overrides) -> set:
        draft = _make_draft(
            profile=_make_profile_partial(),
            event=_make_event_partial(**event_overrides),
        )
        return _keys(self.resolver.resolve(draft).section(SectionKey.EVENT_DETAILS).missing)

    def test_named_storm_requires_event_name(self):
        assert self._event_missing(event="Tropical Storm/Hurricane") == {"event_name"}

    def test_not_listed_requires_other_event(self):
        assert self._event_missing(event="My disaster is not listed") == {"other_event"}

    def test_power_loss_requires_positive_days(self):
        assert self._event_missing(powerLoss="Yes") == {"power_loss_days"}
        assert self._event_missing(powerLoss="Yes", powerLossDays=0) == {"power_loss_days"}
        assert self._event_missing(powerLoss="Yes", powerLossDays=2) == set()

    def test_evacuation_requires_details(self):
        assert self._event_missing(evacuated="Yes") == {
            "evacuating_from_primary",
            "stayed_with_family_or_friend",
            "evacuation_start_date",
            "evacuation_nights",
        }

    def test_evacuation_reason_only_when_not_from_primary(self):
        missing = self._event_missing(
            evacuated="Yes",
            evacuatingFromPrimary="No",
            stayedWithFamilyOrFriend="Yes",
            evacuationStartDate="2026-10-01",
            evacuationNights=3,
        )
        assert missing == {"evacuation_reason"}

    def test_withdrawn_evacuation_drops_requirements(self):
        draft = _make_draft(
            profile=_make_profile_partial(),
            event=_make_event_partial(evacuated="Yes", evacuationNights=3),
        )
        draft = draft.with_event({"evacuated": "No"})
        checklist = self.resolver.resolve(draft)
        event_keys = _keys(checklist.section(SectionKey.EVENT_DETAILS).items)
        assert "evacuation_nights" not in event_keys
        assert checklist.is_complete(SectionKey.EVENT_DETAILS)
        # The value is retained; it is simply no longer asked for.
        assert draft.event_data.evacuation_nights == 3

    def test_missing_event_category_blocks_section(self):
        draft = _make_draft(
            profile=_make_profile_partial(),
            event={"eventDate": "2026-10-01", "powerLoss": "No", "evacuated": "No"},
        )
        checklist = self.resolver.resolve(draft)
        assert checklist.active_section == SectionKey.EVENT_DETAILS
        assert _keys(checklist.section(SectionKey.EVENT_DETAILS).missing) == {"event"}


class TestExpenseSection:
    def setup_method(self):
        self.resolver = FieldDependencyResolver()

    def test_zero_amount_is_incomplete(self):
        expenses = [dict(e) for e in _EXPENSES]
        expenses[1]["amount"] = 0
        draft = _make_draft(
            profile=_make_profile_partial(),
            event=_make_event_partial(),
            expenses=expenses,
        )
        checklist = self.resolver.resolve(draft)
        assert checklist.active_section == SectionKey.EXPENSES
        assert _keys(checklist.section(SectionKey.EXPENSES).missing) == {"expenses.Food Spoilage"}

    def test_every_expense_type_required(self):
        draft = _make_draft(
            profile=_make_profile_partial(),
            event=_make_event_partial(),
            expenses=_EXPENSES[:1],
        )
        missing = _keys(self.resolver.resolve(draft).section(SectionKey.EXPENSES).missing)
        assert missing == {"expenses.Food Spoilage", "expenses.Meals"}


class TestPurity:
    def test_resolve_is_idempotent(self):
        resolver = FieldDependencyResolver()
        draft = _make_draft(profile=_make_profile_partial(), event=_make_event_partial(evacuated="Yes"))
        snapshot = draft.model_dump()
        first = resolver.resolve(draft)
        second = resolver.resolve(draft)
        assert first == second
        assert draft.model_dump() == snapshot

    def test_completeness_recomputed_after_regression(self):
        resolver = FieldDependencyResolver()
        draft = _make_draft(
            profile=_make_profile_partial(),
            event=_make_event_partial(),
            expenses=_EXPENSES,
        )
        assert resolver.resolve(draft).is_complete(SectionKey.EXPENSES)
        draft = draft.with_event({"powerLoss": "Yes"})
        checklist = resolver.resolve(draft)
        assert checklist.active_section == SectionKey.EVENT_DETAILS
        assert not checklist.is_complete(SectionKey.EXPENSES)


class TestCustomRequirements:
    def test_empty_table_is_respected(self):
        resolver = FieldDependencyResolver(requirements=[])
        assert resolver.requirements == []
        checklist = resolver.resolve(ApplicationDraft())
        assert all(section.items == [] for section in checklist.sections)
        # The event category is still needed before Event Details completes.
        assert checklist.active_section == SectionKey.EVENT_DETAILS
