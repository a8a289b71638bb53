"""Contact store - owns contacts and their follow-up calendar.

Every mutation applies the contact change and the matching calendar
change in memory, then writes both snapshots in a single save before
returning. A failed save puts the in-memory state back, so nobody ever
observes a contact at stage N+1 without its follow-up.

Usage:
    from cadenceiq.db.database import Database
    from cadenceiq.engine.contacts import ContactStore

    store = ContactStore.load(Database())
    contact = store.add({
        "entity_name": "Acme Corp",
        "primary_contact": "Jane Doe",
        "email_address": "jane@acme.com",
        "day": "Monday",
    })
    store.advance_stage(contact.id)
"""

from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Union

from cadenceiq.ai.insights import InsightSource, social_urls_for
from cadenceiq.core.config import DEFAULT_LEAD_GOAL
from cadenceiq.core.exceptions import (
    AlreadyCompletedError,
    ExternalFetchFailure,
    NotFoundError,
    ValidationError,
)
from cadenceiq.core.logging import get_logger
from cadenceiq.db.database import (
    CALENDAR_EVENTS_KEY,
    CONTACTS_KEY,
    LEAD_GOAL_KEY,
    MemorySnapshotStore,
    SnapshotStore,
)
from cadenceiq.db.models import (
    CONTACT_TEXT_FIELDS,
    REQUIRED_CONTACT_FIELDS,
    CalendarEvent,
    Contact,
    SequenceStage,
    SocialProfile,
    WeekDay,
    contact_from_dict,
    contact_to_dict,
    event_from_dict,
    event_to_dict,
    parse_day,
    parse_stage,
)
from cadenceiq.engine.cadence import advance
from cadenceiq.engine.calendar import FollowUpCalendar
from cadenceiq.engine.dates import add_days, now
from cadenceiq.engine.stages import (
    INITIAL_STAGE,
    STAGE_ORDER,
    TERMINAL_STAGE,
    is_terminal,
    offset_days,
)

logger = get_logger(__name__)


@dataclass
class ImportRowError:
    """Why one import row was rejected.

    Attributes:
        row_index: Zero-based position in the submitted batch
        missing_fields: Required fields that were blank
        message: Human-readable reason
    """

    row_index: int
    missing_fields: list[str]
    message: str


@dataclass
class ImportResult:
    """Outcome of a best-effort batch import.

    Attributes:
        succeeded: Rows turned into contacts
        failed: Rows rejected
        contacts: The contacts created, in row order
        errors: One entry per rejected row
    """

    succeeded: int = 0
    failed: int = 0
    contacts: list[Contact] = field(default_factory=list)
    errors: list[ImportRowError] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed


@dataclass
class GoalProgress:
    """Rows in a day/stage bucket against the lead goal."""

    count: int
    goal: int

    @property
    def reached(self) -> bool:
        return self.count >= self.goal


class ContactStore:
    """In-memory contact and follow-up state with snapshot persistence.

    Single-threaded: each public method is one atomic operation.

    Attributes:
        calendar: Follow-up calendar kept in step with the contacts
    """

    def __init__(
        self,
        snapshots: Optional[SnapshotStore] = None,
        contacts: Optional[Iterable[Contact]] = None,
        events: Optional[Iterable[CalendarEvent]] = None,
        lead_goal: int = DEFAULT_LEAD_GOAL,
        clock: Callable[[], datetime] = now,
    ):
        """Initialize store.

        Args:
            snapshots: Where snapshots are written after each mutation.
                Defaults to an in-memory store.
            contacts: Existing contacts, in insertion order
            events: Existing calendar events
            lead_goal: Rows-per-bucket goal
            clock: Source of "now" for creation and advance times
        """
        self._snapshots = snapshots if snapshots is not None else MemorySnapshotStore()
        self._contacts: list[Contact] = list(contacts or [])
        self.calendar = FollowUpCalendar(events)
        self._lead_goal = lead_goal
        self._clock = clock

    @classmethod
    def load(
        cls,
        snapshots: SnapshotStore,
        default_lead_goal: int = DEFAULT_LEAD_GOAL,
        clock: Callable[[], datetime] = now,
    ) -> "ContactStore":
        """Build a store from the three persisted snapshots.

        Args:
            snapshots: Snapshot store to read from and write back to
            default_lead_goal: Goal used when none has been saved
            clock: Source of "now"

        Returns:
            Loaded ContactStore
        """
        contacts = [contact_from_dict(d) for d in snapshots.load(CONTACTS_KEY, [])]
        events = [event_from_dict(d) for d in snapshots.load(CALENDAR_EVENTS_KEY, [])]
        lead_goal = int(snapshots.load(LEAD_GOAL_KEY, default_lead_goal))

        logger.info(
            "Contact store loaded",
            extra={"context": {"contacts": len(contacts), "events": len(events)}},
        )
        return cls(snapshots, contacts, events, lead_goal, clock)

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    @contextmanager
    def _mutation(self) -> Iterator[None]:
        """Apply an in-memory change, then write contacts and events in one save.

        If the change or the write fails, the previous contacts and events
        are put back before the error propagates.
        """
        contacts = list(self._contacts)
        events = [replace(e) for e in self.calendar.events]
        try:
            yield
            self._snapshots.save_many(
                {
                    CONTACTS_KEY: [contact_to_dict(c) for c in self._contacts],
                    CALENDAR_EVENTS_KEY: [event_to_dict(e) for e in self.calendar.events],
                }
            )
        except Exception:
            self._contacts = contacts
            self.calendar.restore(events)
            raise

    # =========================================================================
    # QUERIES
    # =========================================================================

    @property
    def contacts(self) -> list[Contact]:
        """All contacts in insertion order (a copy of the list)."""
        return list(self._contacts)

    def __len__(self) -> int:
        return len(self._contacts)

    def get(self, contact_id: str) -> Optional[Contact]:
        """Return the contact with this id, or None."""
        for contact in self._contacts:
            if contact.id == contact_id:
                return contact
        return None

    def _index_of(self, contact_id: str) -> int:
        for index, contact in enumerate(self._contacts):
            if contact.id == contact_id:
                return index
        raise NotFoundError(contact_id)

    def filter(
        self,
        day: Union[WeekDay, str],
        stage: Union[SequenceStage, str],
    ) -> list[Contact]:
        """Contacts in a day bucket at a stage, in insertion order.

        Raises:
            ValidationError: If the day or stage label is unknown
        """
        try:
            day = parse_day(day)
        except ValueError as e:
            raise ValidationError(f"Unknown day bucket: {day!r}") from e
        try:
            stage = parse_stage(stage)
        except ValueError as e:
            raise ValidationError(f"Unknown stage: {stage!r}") from e
        return [c for c in self._contacts if c.day == day and c.stage == stage]

    def stats(self) -> dict[SequenceStage, int]:
        """Number of contacts at each stage; all four stages present."""
        counts = {stage: 0 for stage in STAGE_ORDER}
        for contact in self._contacts:
            counts[contact.stage] += 1
        return counts

    # =========================================================================
    # LEAD GOAL
    # =========================================================================

    @property
    def lead_goal(self) -> int:
        return self._lead_goal

    def set_lead_goal(self, goal: int) -> None:
        """Change the rows-per-bucket goal.

        Raises:
            ValidationError: If goal is not a positive integer
        """
        if isinstance(goal, bool) or not isinstance(goal, int) or goal <= 0:
            raise ValidationError(f"Lead goal must be a positive integer, got {goal!r}")
        self._snapshots.save(LEAD_GOAL_KEY, goal)
        self._lead_goal = goal
        logger.info("Lead goal set", extra={"context": {"lead_goal": goal}})

    def goal_progress(
        self,
        day: Union[WeekDay, str],
        stage: Union[SequenceStage, str],
    ) -> GoalProgress:
        """How full a day/stage bucket is relative to the lead goal."""
        return GoalProgress(count=len(self.filter(day, stage)), goal=self._lead_goal)

    # =========================================================================
    # CREATION
    # =========================================================================

    def _build_contact(self, fields: Mapping[str, Any], created_at: datetime) -> Contact:
        """Validate creation fields and build a first-stage contact.

        Raises:
            ValidationError: If a required field is blank or the day is unknown
        """
        values: dict[str, str] = {}
        for name in CONTACT_TEXT_FIELDS:
            raw = fields.get(name)
            values[name] = "" if raw is None else str(raw).strip()

        missing = [name for name in REQUIRED_CONTACT_FIELDS if not values[name]]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                missing_fields=missing,
            )

        raw_day = fields.get("day")
        try:
            day = parse_day(raw_day) if raw_day else WeekDay.MONDAY
        except ValueError as e:
            raise ValidationError(f"Unknown day bucket: {raw_day!r}") from e

        return Contact(
            **values,
            day=day,
            stage=INITIAL_STAGE,
            completed=False,
            last_activity=None,
            next_activity=add_days(created_at, offset_days(INITIAL_STAGE)),
            social_profile=SocialProfile(),
            created_at=created_at,
        )

    def _insert(self, contact: Contact) -> None:
        self._contacts.append(contact)
        self.calendar.on_contact_created(contact)

    def add(self, fields: Mapping[str, Any]) -> Contact:
        """Create a contact at the first stage with its first follow-up.

        Args:
            fields: Creation fields (entity_name, primary_contact,
                email_address, phone_number, company_linkedin,
                contact_linkedin, contact_facebook, notes, day)

        Returns:
            The new contact

        Raises:
            ValidationError: If a required field is blank; nothing is created
        """
        contact = self._build_contact(fields, self._clock())
        with self._mutation():
            self._insert(contact)

        logger.info(
            "Contact added",
            extra={"context": {"contact_id": contact.id, "day": contact.day.value}},
        )
        return contact

    def import_batch(self, rows: Iterable[Mapping[str, Any]]) -> ImportResult:
        """Add each row independently; bad rows are counted, not fatal.

        Rows must already use the normalised field names.

        Returns:
            ImportResult with counts, created contacts and row errors
        """
        result = ImportResult()
        created_at = self._clock()

        for index, row in enumerate(rows):
            try:
                contact = self._build_contact(row, created_at)
            except ValidationError as e:
                result.failed += 1
                result.errors.append(ImportRowError(index, e.missing_fields, str(e)))
                continue
            result.succeeded += 1
            result.contacts.append(contact)

        if result.contacts:
            with self._mutation():
                for contact in result.contacts:
                    self._insert(contact)

        logger.info(
            "Import batch applied",
            extra={"context": {"succeeded": result.succeeded, "failed": result.failed}},
        )
        return result

    # =========================================================================
    # MUTATION
    # =========================================================================

    def advance_stage(self, contact_id: str, today: Optional[datetime] = None) -> Contact:
        """Move a contact to its next stage, or complete it at the last one.

        Args:
            contact_id: Contact to advance
            today: Moment of the advance (defaults to the store clock)

        Returns:
            The updated contact

        Raises:
            NotFoundError: If no contact has this id
            AlreadyCompletedError: If the contact already finished; nothing changes
        """
        index = self._index_of(contact_id)
        contact = self._contacts[index]

        try:
            result = advance(contact, today or self._clock())
        except AlreadyCompletedError:
            logger.info(
                "Advance ignored, sequence complete",
                extra={"context": {"contact_id": contact_id}},
            )
            raise

        with self._mutation():
            self._contacts[index] = result.updated_contact
            if result.new_event is not None and result.retired_contact_id is not None:
                self.calendar.reconcile(result.retired_contact_id, result.new_event)

        logger.info(
            "Contact advanced",
            extra={
                "context": {
                    "contact_id": contact_id,
                    "stage": result.updated_contact.stage.value,
                    "completed": result.updated_contact.completed,
                }
            },
        )
        return result.updated_contact

    def update(self, contact: Contact) -> Contact:
        """Replace a stored contact with this full record.

        Stage moves only through advance_stage, so the calendar stays
        in step with it.

        Raises:
            NotFoundError: If no contact has this id
            ValidationError: If the record changes the stage, or is marked
                completed before the last stage; nothing changes
        """
        index = self._index_of(contact.id)
        current = self._contacts[index]
        if contact.stage != current.stage:
            raise ValidationError(
                f"Cannot change stage from {current.stage.value!r} to "
                f"{contact.stage.value!r} by update; use advance"
            )
        if contact.completed and not is_terminal(contact.stage):
            raise ValidationError(
                f"Only a {TERMINAL_STAGE.value!r} contact can be completed, "
                f"got {contact.stage.value!r}"
            )

        with self._mutation():
            self._contacts[index] = contact
        logger.debug("Contact updated", extra={"context": {"contact_id": contact.id}})
        return contact

    def delete(self, contact_id: str) -> int:
        """Remove one contact and all its events. Unknown ids are ignored.

        Returns:
            Number of contacts removed (0 or 1)
        """
        return self.delete_many([contact_id])

    def delete_many(self, contact_ids: Iterable[str]) -> int:
        """Remove contacts and all their events. Unknown ids are ignored.

        Returns:
            Number of contacts removed
        """
        ids = set(contact_ids)
        owned = any(c.id in ids for c in self._contacts) or any(
            e.contact_id in ids for e in self.calendar.events
        )
        if not owned:
            return 0

        before = len(self._contacts)
        with self._mutation():
            self._contacts = [c for c in self._contacts if c.id not in ids]
            events_removed = self.calendar.on_contacts_deleted(ids)
        removed = before - len(self._contacts)

        logger.info(
            "Contacts deleted",
            extra={"context": {"contacts": removed, "events": events_removed}},
        )
        return removed

    # =========================================================================
    # INSIGHTS
    # =========================================================================

    def apply_insights(self, contact_id: str, profile: SocialProfile) -> Contact:
        """Store a fetched social profile on a contact.

        Raises:
            NotFoundError: If the contact no longer exists; nothing changes
        """
        index = self._index_of(contact_id)
        if profile.last_updated is None:
            profile = replace(profile, last_updated=self._clock())
        updated = replace(self._contacts[index], social_profile=profile)
        with self._mutation():
            self._contacts[index] = updated
        logger.info("Insights stored", extra={"context": {"contact_id": contact_id}})
        return updated

    def request_insights(self, contact_id: str, source: InsightSource) -> Contact:
        """Fetch insights for a contact and store them.

        Args:
            contact_id: Contact to enrich
            source: Insight-fetch collaborator

        Returns:
            The updated contact

        Raises:
            NotFoundError: If the contact is missing before or after the fetch
            ValidationError: If the contact has no social profile links
            ExternalFetchFailure: If the fetch failed; the profile is untouched
        """
        contact = self.get(contact_id)
        if contact is None:
            raise NotFoundError(contact_id)

        urls = social_urls_for(contact)

        try:
            profile = source.fetch_insights(urls)
        except ExternalFetchFailure:
            logger.warning(
                "Insight fetch failed", extra={"context": {"contact_id": contact_id}}, exc_info=True
            )
            raise

        if self.get(contact_id) is None:
            logger.warning(
                "Contact deleted during insight fetch, result dropped",
                extra={"context": {"contact_id": contact_id}},
            )
            raise NotFoundError(contact_id)

        return self.apply_insights(contact_id, profile)
