"""Sequence engine for stage advancement.

Decides what "advance" does to a single contact and describes the
update; it never touches the stores itself.

Due dates on advance are a relative increment from today:

    next_activity = today + (offset[next] - offset[current])

The stage table's offsets are cumulative from first contact, so a
contact advanced late drifts away from the origin-based schedule.
That drift is kept on purpose; see DESIGN.md.

Usage:
    from cadenceiq.engine.cadence import advance

    result = advance(contact, today)
    if result.new_event:
        calendar.reconcile(result.retired_contact_id, result.new_event)
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from cadenceiq.core.exceptions import AlreadyCompletedError
from cadenceiq.core.logging import get_logger
from cadenceiq.db.models import CalendarEvent, Contact
from cadenceiq.engine.dates import add_days
from cadenceiq.engine.stages import is_terminal, next_stage, offset_days

logger = get_logger(__name__)


@dataclass
class AdvanceResult:
    """Outcome of advancing one contact.

    Attributes:
        updated_contact: Copy of the contact with the new stage/dates
        new_event: Follow-up to insert (None at the terminal stage)
        retired_contact_id: Contact whose incomplete events must be
            retired before new_event goes in (None at the terminal stage)
    """

    updated_contact: Contact
    new_event: Optional[CalendarEvent] = None
    retired_contact_id: Optional[str] = None

    @property
    def finished_sequence(self) -> bool:
        """True when this advance completed the cadence."""
        return self.updated_contact.completed


def advance(contact: Contact, today: datetime) -> AdvanceResult:
    """Compute the effect of advancing a contact.

    The input contact is not modified.

    Args:
        contact: Contact to advance
        today: Moment of the advance

    Returns:
        AdvanceResult describing the update

    Raises:
        AlreadyCompletedError: If the contact already finished its sequence
    """
    if contact.completed:
        raise AlreadyCompletedError(contact.id)

    if is_terminal(contact.stage):
        logger.debug(
            "Terminal stage reached",
            extra={"context": {"contact_id": contact.id, "stage": contact.stage.value}},
        )
        return AdvanceResult(updated_contact=replace(contact, completed=True))

    target = next_stage(contact.stage)
    next_activity = add_days(today, offset_days(target) - offset_days(contact.stage))

    updated = replace(
        contact,
        stage=target,
        completed=False,
        last_activity=today,
        next_activity=next_activity,
    )
    event = CalendarEvent(
        contact_id=contact.id,
        entity_name=contact.entity_name,
        stage=target,
        date=next_activity,
        completed=False,
    )

    return AdvanceResult(
        updated_contact=updated,
        new_event=event,
        retired_contact_id=contact.id,
    )
