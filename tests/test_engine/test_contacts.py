"""Tests for the contact store.

Covers:
    - Creation, validation and the first follow-up
    - Advance with calendar reconciliation
    - Batch import (best effort)
    - Filters, stats and lead goal
    - Deletion cascading to the calendar
    - Insight requests
    - Snapshot persistence and reload
"""

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable

import pytest

from cadenceiq.ai.insights import InsightSource, SocialUrls
from cadenceiq.core.exceptions import (
    AlreadyCompletedError,
    DatabaseError,
    ExternalFetchFailure,
    NotFoundError,
    ValidationError,
)
from cadenceiq.db.database import (
    CALENDAR_EVENTS_KEY,
    CONTACTS_KEY,
    LEAD_GOAL_KEY,
    MemorySnapshotStore,
)
from cadenceiq.db.models import SequenceStage, SocialProfile, WeekDay
from cadenceiq.engine.contacts import ContactStore


class FailingSnapshots(MemorySnapshotStore):
    """Memory store whose writes fail while failing is set."""

    def __init__(self):
        super().__init__()
        self.failing = False

    def save_many(self, values):
        if self.failing and CALENDAR_EVENTS_KEY in values:
            raise DatabaseError("disk full")
        super().save_many(values)


class FakeInsightSource(InsightSource):
    """Records requests and returns a canned profile or error."""

    def __init__(self, profile=None, error=None, on_fetch=None):
        self.profile = profile or SocialProfile(company_info={"founded": "1999"})
        self.error = error
        self.on_fetch = on_fetch
        self.requests: list[SocialUrls] = []

    def fetch_insights(self, urls: SocialUrls) -> SocialProfile:
        self.requests.append(urls)
        if self.on_fetch is not None:
            self.on_fetch()
        if self.error is not None:
            raise self.error
        return self.profile


def _assert_calendar_invariant(store: ContactStore) -> None:
    for contact in store.contacts:
        assert len(store.calendar.pending_for(contact.id)) <= 1
        if contact.completed:
            assert contact.stage is SequenceStage.BREAKUP_EMAIL


# =========================================================================
# CREATION
# =========================================================================


class TestAdd:
    """Contact creation."""

    def test_add_starts_at_first_stage(self, store: ContactStore, contact_fields, fixed_now):
        contact = store.add(contact_fields)

        assert contact.stage is SequenceStage.FIRST_EMAIL
        assert contact.day is WeekDay.MONDAY
        assert contact.completed is False
        assert contact.created_at == fixed_now
        assert contact.next_activity == fixed_now
        assert contact.last_activity is None
        assert contact.social_profile.is_empty
        assert store.get(contact.id) == contact

    def test_add_creates_first_follow_up(self, store: ContactStore, contact_fields, fixed_now):
        contact = store.add(contact_fields)

        events = store.calendar.events_for_contact(contact.id)
        assert len(events) == 1
        assert events[0].date == fixed_now
        assert events[0].stage is SequenceStage.FIRST_EMAIL
        assert events[0].entity_name == "Acme Corp"
        assert not events[0].completed

    def test_add_strips_whitespace(self, store: ContactStore, contact_fields):
        contact_fields["entity_name"] = "  Acme Corp  "
        assert store.add(contact_fields).entity_name == "Acme Corp"

    def test_blank_entity_name_rejected(self, store: ContactStore, contact_fields, snapshots):
        contact_fields["entity_name"] = "   "

        with pytest.raises(ValidationError) as exc_info:
            store.add(contact_fields)

        assert exc_info.value.missing_fields == ["entity_name"]
        assert len(store) == 0
        assert len(store.calendar) == 0
        assert snapshots.writes == 0

    def test_all_missing_fields_named(self, store: ContactStore):
        with pytest.raises(ValidationError) as exc_info:
            store.add({"phone_number": "555"})
        assert exc_info.value.missing_fields == [
            "entity_name",
            "primary_contact",
            "email_address",
        ]

    def test_missing_day_defaults_to_monday(self, store: ContactStore, contact_fields):
        del contact_fields["day"]
        assert store.add(contact_fields).day is WeekDay.MONDAY

    def test_unknown_day_rejected(self, store: ContactStore, contact_fields):
        contact_fields["day"] = "Sunday"
        with pytest.raises(ValidationError, match="day"):
            store.add(contact_fields)
        assert len(store) == 0

    def test_add_persists_contacts_and_events(self, store, contact_fields, snapshots):
        contact = store.add(contact_fields)
        assert [c["id"] for c in snapshots.load(CONTACTS_KEY)] == [contact.id]
        assert [e["contact_id"] for e in snapshots.load(CALENDAR_EVENTS_KEY)] == [contact.id]


# =========================================================================
# ADVANCE
# =========================================================================


class TestAdvanceStage:
    """Stage advancement through the store."""

    def test_advance_first_to_second(self, store: ContactStore, contact_fields, fixed_now):
        contact = store.add(contact_fields)
        today = fixed_now + timedelta(days=1)

        updated = store.advance_stage(contact.id, today)

        assert updated.stage is SequenceStage.SECOND_EMAIL
        assert updated.next_activity == today + timedelta(days=7)
        assert store.get(contact.id) == updated

        events = store.calendar.events_for_contact(contact.id)
        assert [e.completed for e in events] == [True, False]
        pending = store.calendar.pending_for(contact.id)
        assert len(pending) == 1
        assert pending[0].date == today + timedelta(days=7)
        assert pending[0].stage is SequenceStage.SECOND_EMAIL

    def test_advance_uses_store_clock(self, store: ContactStore, contact_fields, fixed_now):
        contact = store.add(contact_fields)
        assert store.advance_stage(contact.id).last_activity == fixed_now

    def test_advance_to_completion(self, store: ContactStore, contact_fields, fixed_now):
        contact = store.add(contact_fields)
        for _ in range(3):
            store.advance_stage(contact.id, fixed_now)
        events_before = len(store.calendar)

        final = store.advance_stage(contact.id, fixed_now)

        assert final.completed is True
        assert final.stage is SequenceStage.BREAKUP_EMAIL
        assert len(store.calendar) == events_before
        _assert_calendar_invariant(store)

    def test_advance_completed_leaves_state(self, store, contact_fields, fixed_now, snapshots):
        contact = store.add(contact_fields)
        for _ in range(4):
            store.advance_stage(contact.id, fixed_now)
        before = store.get(contact.id)
        writes = snapshots.writes
        events = store.calendar.events

        with pytest.raises(AlreadyCompletedError):
            store.advance_stage(contact.id, fixed_now + timedelta(days=30))

        assert store.get(contact.id) == before
        assert store.calendar.events == events
        assert snapshots.writes == writes

    def test_advance_unknown_contact(self, store: ContactStore):
        with pytest.raises(NotFoundError):
            store.advance_stage("missing")

    def test_invariant_holds_across_many_contacts(self, store, contact_fields, fixed_now):
        ids = [store.add(contact_fields).id for _ in range(4)]
        for step, contact_id in enumerate(ids):
            for _ in range(step + 1):
                store.advance_stage(contact_id, fixed_now)
        _assert_calendar_invariant(store)
        assert store.get(ids[-1]).completed


# =========================================================================
# IMPORT
# =========================================================================


class TestImportBatch:
    """Best-effort batch import."""

    def test_partial_import(self, store: ContactStore, contact_fields):
        bad = dict(contact_fields, email_address="")
        result = store.import_batch([contact_fields, bad, dict(contact_fields)])

        assert result.succeeded == 2
        assert result.failed == 1
        assert result.total == 3
        assert len(store) == 2
        assert len(store.calendar) == 2
        assert result.errors[0].row_index == 1
        assert result.errors[0].missing_fields == ["email_address"]

    def test_all_rows_share_one_creation_time(self, store, contact_fields, fixed_now):
        result = store.import_batch([contact_fields, contact_fields])
        assert {c.created_at for c in result.contacts} == {fixed_now}

    def test_failed_batch_writes_nothing(self, store, snapshots):
        result = store.import_batch([{"entity_name": "X"}])
        assert result.failed == 1
        assert snapshots.writes == 0

    def test_batch_persists_once(self, store, contact_fields, snapshots):
        store.import_batch([contact_fields] * 3)
        assert snapshots.writes == 1
        assert len(snapshots.load(CONTACTS_KEY)) == 3
        assert len(snapshots.load(CALENDAR_EVENTS_KEY)) == 3


# =========================================================================
# QUERIES
# =========================================================================


class TestQueries:
    """Filters, stats and goal progress."""

    def test_filter_by_day_and_stage(self, store: ContactStore, contact_fields, fixed_now):
        monday = store.add(contact_fields)
        tuesday = store.add(dict(contact_fields, day="Tuesday"))
        advanced = store.add(contact_fields)
        store.advance_stage(advanced.id, fixed_now)

        assert store.filter("Monday", "First Email") == [monday]
        assert store.filter(WeekDay.TUESDAY, SequenceStage.FIRST_EMAIL) == [tuesday]
        assert [c.id for c in store.filter("monday", "SECOND_EMAIL")] == [advanced.id]

    def test_stats_after_three_adds(self, store: ContactStore, contact_fields):
        for _ in range(3):
            store.add(contact_fields)
        assert store.stats() == {
            SequenceStage.FIRST_EMAIL: 3,
            SequenceStage.SECOND_EMAIL: 0,
            SequenceStage.PHONE_LINKEDIN_CONNECT: 0,
            SequenceStage.BREAKUP_EMAIL: 0,
        }

    def test_stats_on_empty_store(self, store: ContactStore):
        assert set(store.stats().values()) == {0}
        assert len(store.stats()) == 4

    @pytest.mark.parametrize("day, stage", [("Saturday", "First Email"), ("Monday", "Cold Call")])
    def test_unknown_filter_label_rejected(self, store, contact_fields, day, stage):
        store.add(contact_fields)
        with pytest.raises(ValidationError, match="Unknown"):
            store.filter(day, stage)
        with pytest.raises(ValidationError, match="Unknown"):
            store.goal_progress(day, stage)

    def test_goal_progress(self, store: ContactStore, contact_fields):
        store.set_lead_goal(2)
        store.add(contact_fields)
        progress = store.goal_progress("Monday", "First Email")
        assert (progress.count, progress.goal, progress.reached) == (1, 2, False)
        store.add(contact_fields)
        assert store.goal_progress("Monday", "First Email").reached

    def test_set_lead_goal_persists(self, store: ContactStore, snapshots):
        store.set_lead_goal(15)
        assert store.lead_goal == 15
        assert snapshots.load(LEAD_GOAL_KEY) == 15

    @pytest.mark.parametrize("goal", [0, -3, True, "12", 2.5])
    def test_set_lead_goal_rejects_bad_values(self, store: ContactStore, goal):
        with pytest.raises(ValidationError):
            store.set_lead_goal(goal)
        assert store.lead_goal == 10


# =========================================================================
# DELETE / UPDATE
# =========================================================================


class TestDeleteAndUpdate:
    """Deletion cascades; update replaces."""

    def test_delete_removes_events_from_views(self, store, contact_fields, fixed_now):
        contact = store.add(contact_fields)
        store.advance_stage(contact.id, fixed_now)
        keep = store.add(contact_fields)

        assert store.delete(contact.id) == 1

        assert store.get(contact.id) is None
        assert store.calendar.events_for_contact(contact.id) == []
        day_ids = {e.contact_id for e in store.calendar.events_on_day(fixed_now)}
        assert day_ids == {keep.id}
        start = fixed_now.date()
        month = store.calendar.events_in_month(start, start + timedelta(days=40))
        assert contact.id not in {e.contact_id for e in month}

    def test_delete_many_ignores_unknown(self, store, contact_fields, snapshots):
        a = store.add(contact_fields)
        b = store.add(contact_fields)
        assert store.delete_many([a.id, b.id, "nope"]) == 2
        assert len(store) == 0
        assert snapshots.load(CONTACTS_KEY) == []

    def test_delete_unknown_writes_nothing(self, store, snapshots):
        assert store.delete("nope") == 0
        assert snapshots.writes == 0

    def test_update_replaces_record(self, store, contact_fields):
        contact = store.add(contact_fields)
        contact.notes = "Prefers phone"
        store.update(contact)
        assert store.get(contact.id).notes == "Prefers phone"

    def test_update_unknown_raises(self, store, contact_fields):
        contact = store.add(contact_fields)
        store.delete(contact.id)
        with pytest.raises(NotFoundError):
            store.update(contact)

    def test_update_cannot_complete_early(self, store, contact_fields, snapshots):
        contact = store.add(contact_fields)
        writes = snapshots.writes
        with pytest.raises(ValidationError, match="Breakup Email"):
            store.update(replace(contact, completed=True))
        assert store.get(contact.id).completed is False
        assert snapshots.writes == writes
        _assert_calendar_invariant(store)

    def test_update_cannot_move_stage(self, store, contact_fields):
        contact = store.add(contact_fields)
        with pytest.raises(ValidationError, match="use advance"):
            store.update(replace(contact, stage=SequenceStage.SECOND_EMAIL))
        assert store.get(contact.id).stage is SequenceStage.FIRST_EMAIL
        assert len(store.calendar.pending_for(contact.id)) == 1

    def test_update_completed_breakup_contact(self, store, contact_fields, fixed_now):
        contact = store.add(contact_fields)
        for _ in range(4):
            contact = store.advance_stage(contact.id, fixed_now)
        assert contact.completed
        updated = store.update(replace(contact, notes="Closed out"))
        assert store.get(contact.id) == updated


# =========================================================================
# INSIGHTS
# =========================================================================


class TestInsights:
    """Insight requests through the store."""

    def test_request_stores_profile(self, store, contact_fields, fixed_now):
        contact = store.add(contact_fields)
        source = FakeInsightSource()

        updated = store.request_insights(contact.id, source)

        assert updated.social_profile.company_info == {"founded": "1999"}
        assert updated.social_profile.last_updated == fixed_now
        assert source.requests == [
            SocialUrls(linkedin="https://linkedin.com/in/janedoe", facebook=None)
        ]

    def test_no_links_rejected_before_fetch(self, store, contact_fields):
        contact = store.add(
            dict(contact_fields, company_linkedin="", contact_linkedin="", contact_facebook="")
        )
        source = FakeInsightSource()
        with pytest.raises(ValidationError):
            store.request_insights(contact.id, source)
        assert source.requests == []

    def test_fetch_failure_leaves_profile(self, store, contact_fields):
        contact = store.add(contact_fields)
        source = FakeInsightSource(error=ExternalFetchFailure("rate limited"))

        with pytest.raises(ExternalFetchFailure, match="rate limited"):
            store.request_insights(contact.id, source)

        assert store.get(contact.id).social_profile.is_empty

    def test_unknown_contact(self, store):
        with pytest.raises(NotFoundError):
            store.request_insights("missing", FakeInsightSource())

    def test_contact_deleted_during_fetch(self, store, contact_fields):
        contact = store.add(contact_fields)
        source = FakeInsightSource(on_fetch=lambda: store.delete(contact.id))

        with pytest.raises(NotFoundError):
            store.request_insights(contact.id, source)
        assert len(store) == 0

    def test_apply_keeps_supplied_timestamp(self, store, contact_fields):
        contact = store.add(contact_fields)
        stamp = datetime(2026, 1, 1, 12, 0)
        profile = SocialProfile(personal_info={"career": ["CTO"]}, last_updated=stamp)
        assert store.apply_insights(contact.id, profile).social_profile.last_updated == stamp


# =========================================================================
# PERSISTENCE
# =========================================================================


class TestFailedWrites:
    """A failed snapshot write leaves memory and storage as they were."""

    @pytest.fixture
    def failing(self) -> FailingSnapshots:
        return FailingSnapshots()

    @pytest.fixture
    def failing_store(self, failing, clock) -> ContactStore:
        return ContactStore(failing, clock=clock)

    def test_advance_rolled_back(self, failing, failing_store, contact_fields, fixed_now):
        contact = failing_store.add(contact_fields)
        saved_contacts = failing.load(CONTACTS_KEY)
        saved_events = failing.load(CALENDAR_EVENTS_KEY)
        failing.failing = True

        with pytest.raises(DatabaseError, match="disk full"):
            failing_store.advance_stage(contact.id, fixed_now)

        assert failing_store.get(contact.id).stage is SequenceStage.FIRST_EMAIL
        events = failing_store.calendar.events_for_contact(contact.id)
        assert [(e.stage, e.completed) for e in events] == [(SequenceStage.FIRST_EMAIL, False)]
        assert failing.load(CONTACTS_KEY) == saved_contacts
        assert failing.load(CALENDAR_EVENTS_KEY) == saved_events

    def test_advance_succeeds_after_failure(self, failing, failing_store, contact_fields):
        contact = failing_store.add(contact_fields)
        failing.failing = True
        with pytest.raises(DatabaseError):
            failing_store.advance_stage(contact.id)
        failing.failing = False

        failing_store.advance_stage(contact.id)

        reloaded = ContactStore.load(failing)
        assert reloaded.get(contact.id).stage is SequenceStage.SECOND_EMAIL
        _assert_calendar_invariant(reloaded)

    def test_add_rolled_back(self, failing, failing_store, contact_fields):
        failing.failing = True
        with pytest.raises(DatabaseError):
            failing_store.add(contact_fields)
        assert len(failing_store) == 0
        assert len(failing_store.calendar) == 0
        assert failing.load(CONTACTS_KEY) is None

    def test_delete_rolled_back(self, failing, failing_store, contact_fields):
        contact = failing_store.add(contact_fields)
        failing.failing = True
        with pytest.raises(DatabaseError):
            failing_store.delete(contact.id)
        assert failing_store.get(contact.id) is not None
        assert len(failing_store.calendar.pending_for(contact.id)) == 1

    def test_lead_goal_unchanged(self, failing_store, monkeypatch):
        def refuse(values):
            raise DatabaseError("read-only")

        monkeypatch.setattr(failing_store._snapshots, "save_many", refuse)
        with pytest.raises(DatabaseError):
            failing_store.set_lead_goal(25)
        assert failing_store.lead_goal == 10


class TestReload:
    """Snapshots rebuild an equivalent store."""

    def test_round_trip_through_snapshots(
        self, snapshots: MemorySnapshotStore, clock: Callable[[], datetime], contact_fields
    ):
        store = ContactStore(snapshots, clock=clock)
        contact = store.add(contact_fields)
        store.advance_stage(contact.id)
        store.set_lead_goal(7)

        reloaded = ContactStore.load(snapshots, clock=clock)

        assert reloaded.contacts == store.contacts
        assert reloaded.calendar.events == store.calendar.events
        assert reloaded.lead_goal == 7

    def test_load_empty_uses_default_goal(self, snapshots):
        store = ContactStore.load(snapshots, default_lead_goal=12)
        assert len(store) == 0
        assert store.lead_goal == 12

    def test_load_from_sqlite(self, temp_db, clock, contact_fields):
        ContactStore(temp_db, clock=clock).add(contact_fields)
        reloaded = ContactStore.load(temp_db, clock=clock)
        assert len(reloaded) == 1
        assert len(reloaded.calendar) == 1
