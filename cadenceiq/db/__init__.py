"""Database package - models and snapshot persistence.

Modules:
    - models: Dataclasses, enumerations and snapshot serialisation
    - database: Snapshot store interface, in-memory and SQLite implementations
"""

from cadenceiq.db.models import (
    CalendarEvent,
    Contact,
    SequenceStage,
    SocialProfile,
    WeekDay,
)

__all__ = [
    # Enums
    "SequenceStage",
    "WeekDay",
    # Dataclasses
    "Contact",
    "CalendarEvent",
    "SocialProfile",
]
