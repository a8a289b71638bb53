"""Follow-up calendar store.

Keeps calendar events consistent with the contact lifecycle and
answers the day/month queries behind the calendar view.

Invariant: at most one incomplete event per contact. Superseded
events are retired by marking them completed, so the calendar
still shows the history of what was due.
"""

from collections import Counter
from datetime import date
from typing import Iterable, Optional

from cadenceiq.core.logging import get_logger
from cadenceiq.db.models import CalendarEvent, Contact
from cadenceiq.engine.dates import DateLike, as_date, same_day

logger = get_logger(__name__)


class FollowUpCalendar:
    """Ordered collection of follow-up events."""

    def __init__(self, events: Optional[Iterable[CalendarEvent]] = None):
        self._events: list[CalendarEvent] = list(events or [])

    @property
    def events(self) -> list[CalendarEvent]:
        """All events in insertion order (a copy of the list)."""
        return list(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def restore(self, events: Iterable[CalendarEvent]) -> None:
        """Replace every event with a previously taken copy."""
        self._events = list(events)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def on_contact_created(self, contact: Contact) -> CalendarEvent:
        """Insert the first follow-up for a new contact.

        Dated at the contact's initial due date.
        """
        event = CalendarEvent(
            contact_id=contact.id,
            entity_name=contact.entity_name,
            stage=contact.stage,
            date=contact.next_activity or contact.created_at,
            completed=False,
        )
        self._events.append(event)
        return event

    def reconcile(self, contact_id: str, new_event: CalendarEvent) -> list[CalendarEvent]:
        """Retire the contact's pending follow-ups and insert the new one.

        More than one pending event means something went wrong
        earlier; all of them are retired so the invariant holds again.

        Args:
            contact_id: Contact being advanced
            new_event: Replacement follow-up

        Returns:
            The events that were retired
        """
        retired = self.pending_for(contact_id)
        if len(retired) > 1:
            logger.warning(
                "Multiple pending follow-ups found, retiring all",
                extra={"context": {"contact_id": contact_id, "count": len(retired)}},
            )
        for event in retired:
            event.completed = True

        self._events.append(new_event)
        return retired

    def on_contacts_deleted(self, contact_ids: Iterable[str]) -> int:
        """Remove every event, complete or not, owned by these contacts.

        Returns:
            Number of events removed
        """
        ids = set(contact_ids)
        before = len(self._events)
        self._events = [e for e in self._events if e.contact_id not in ids]
        return before - len(self._events)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def pending_for(self, contact_id: str) -> list[CalendarEvent]:
        """Incomplete events for a contact (normally zero or one)."""
        return [e for e in self._events if e.contact_id == contact_id and not e.completed]

    def events_for_contact(self, contact_id: str) -> list[CalendarEvent]:
        """Every event for a contact, oldest first."""
        return [e for e in self._events if e.contact_id == contact_id]

    def events_on_day(self, day: DateLike) -> list[CalendarEvent]:
        """Events due on the given calendar day, complete or not."""
        return [e for e in self._events if same_day(e.date, day)]

    def events_in_month(self, month_start: DateLike, month_end: DateLike) -> list[CalendarEvent]:
        """Events whose day lies in [month_start, month_end], inclusive."""
        start = as_date(month_start)
        end = as_date(month_end)
        return [e for e in self._events if start <= as_date(e.date) <= end]

    def busy_days(self, month_start: DateLike, month_end: DateLike) -> dict[date, int]:
        """Event count per day in a range, for month-view dots."""
        counts = Counter(as_date(e.date) for e in self.events_in_month(month_start, month_end))
        return dict(sorted(counts.items()))
