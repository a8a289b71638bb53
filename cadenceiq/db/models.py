"""Data models and enumerations for CadenceIQ.

Enums are stored as their display text in snapshots.
Dataclasses use frozen=False; the sequence engine copies
with dataclasses.replace instead of mutating in place.

This module defines:
    - Enumerations for stages and day buckets
    - Dataclasses for contacts, social profiles and calendar events
    - Snapshot (de)serialisation helpers
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

# =============================================================================
# ENUMERATIONS
# =============================================================================


class SequenceStage(str, Enum):
    """Position of a contact in the outreach cadence.

    Order matters: contacts only ever move down this list.
    """

    FIRST_EMAIL = "First Email"
    SECOND_EMAIL = "Second Email"
    PHONE_LINKEDIN_CONNECT = "Phone/LinkedIn Connect"
    BREAKUP_EMAIL = "Breakup Email"


class WeekDay(str, Enum):
    """User-assigned grouping bucket. Not a scheduling input."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"


# Fields that must be non-blank when a contact is created
REQUIRED_CONTACT_FIELDS = ("entity_name", "primary_contact", "email_address")

# Free-text fields accepted at creation
CONTACT_TEXT_FIELDS = (
    "entity_name",
    "primary_contact",
    "email_address",
    "phone_number",
    "company_linkedin",
    "contact_linkedin",
    "contact_facebook",
    "notes",
)


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return uuid.uuid4().hex


def parse_stage(value: Any) -> SequenceStage:
    """Coerce a stage label or enum to SequenceStage.

    Accepts the display text ("Second Email") or the member name
    ("SECOND_EMAIL", case-insensitive).

    Raises:
        ValueError: If the label is not a known stage
    """
    if isinstance(value, SequenceStage):
        return value
    text = str(value).strip()
    try:
        return SequenceStage(text)
    except ValueError:
        pass
    try:
        return SequenceStage[text.upper().replace(" ", "_").replace("/", "_")]
    except KeyError:
        raise ValueError(f"Unknown stage: {value!r}") from None


def parse_day(value: Any) -> WeekDay:
    """Coerce a weekday label or enum to WeekDay (case-insensitive).

    Raises:
        ValueError: If the label is not Monday through Friday
    """
    if isinstance(value, WeekDay):
        return value
    text = str(value).strip().capitalize()
    return WeekDay(text)


# =============================================================================
# DATACLASSES
# =============================================================================


@dataclass
class SocialProfile:
    """Insight payload for a contact.

    Opaque to the scheduling core; it is stored, never interpreted.

    Attributes:
        company_info: founded, milestones, awards, recentNews, offerings, culture
        personal_info: career, education, interests, publications, causes,
            recentActivity, achievements
        last_updated: When the insights were fetched
    """

    company_info: Optional[dict[str, Any]] = None
    personal_info: Optional[dict[str, Any]] = None
    last_updated: Optional[datetime] = None

    @property
    def is_empty(self) -> bool:
        """True until an insight fetch has succeeded."""
        return self.company_info is None and self.personal_info is None


@dataclass
class Contact:
    """Outreach target.

    Attributes:
        id: Opaque unique identifier
        entity_name: Company / entity name (required)
        primary_contact: Person to reach (required)
        email_address: Email (required)
        phone_number: Phone number
        company_linkedin: Company LinkedIn URL
        contact_linkedin: Contact LinkedIn URL
        contact_facebook: Contact Facebook URL
        notes: Free text
        day: Day bucket the contact is grouped under
        stage: Current cadence stage
        completed: True once advanced at the terminal stage
        last_activity: Most recent stage advance
        next_activity: Next due follow-up
        social_profile: Fetched insights
        created_at: Record creation time
    """

    id: str = field(default_factory=new_id)
    entity_name: str = ""
    primary_contact: str = ""
    email_address: str = ""
    phone_number: str = ""
    company_linkedin: str = ""
    contact_linkedin: str = ""
    contact_facebook: str = ""
    notes: str = ""
    day: WeekDay = WeekDay.MONDAY
    stage: SequenceStage = SequenceStage.FIRST_EMAIL
    completed: bool = False
    last_activity: Optional[datetime] = None
    next_activity: Optional[datetime] = None
    social_profile: SocialProfile = field(default_factory=SocialProfile)
    created_at: Optional[datetime] = None

    @property
    def has_social_links(self) -> bool:
        """True if any LinkedIn or Facebook URL is present."""
        return bool(
            self.company_linkedin.strip()
            or self.contact_linkedin.strip()
            or self.contact_facebook.strip()
        )


@dataclass
class CalendarEvent:
    """Scheduled follow-up reminder.

    entity_name and stage are snapshots taken when the event was
    created; they do not follow later edits to the contact.

    Attributes:
        id: Opaque unique identifier
        contact_id: Owning contact (weak reference)
        entity_name: Contact's entity name at creation time
        stage: Stage this follow-up is for
        date: When the follow-up is due (compared by calendar day)
        completed: True once superseded or fulfilled
    """

    id: str = field(default_factory=new_id)
    contact_id: str = ""
    entity_name: str = ""
    stage: SequenceStage = SequenceStage.FIRST_EMAIL
    date: datetime = field(default_factory=datetime.now)
    completed: bool = False


# =============================================================================
# SNAPSHOT SERIALISATION
# =============================================================================


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _dt_from_str(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def contact_to_dict(contact: Contact) -> dict[str, Any]:
    """Serialise a contact for snapshot storage."""
    profile = contact.social_profile
    return {
        "id": contact.id,
        "entity_name": contact.entity_name,
        "primary_contact": contact.primary_contact,
        "email_address": contact.email_address,
        "phone_number": contact.phone_number,
        "company_linkedin": contact.company_linkedin,
        "contact_linkedin": contact.contact_linkedin,
        "contact_facebook": contact.contact_facebook,
        "notes": contact.notes,
        "day": contact.day.value,
        "stage": contact.stage.value,
        "completed": contact.completed,
        "last_activity": _dt_to_str(contact.last_activity),
        "next_activity": _dt_to_str(contact.next_activity),
        "social_profile": {
            "company_info": profile.company_info,
            "personal_info": profile.personal_info,
            "last_updated": _dt_to_str(profile.last_updated),
        },
        "created_at": _dt_to_str(contact.created_at),
    }


def contact_from_dict(data: dict[str, Any]) -> Contact:
    """Rebuild a contact from its snapshot form."""
    profile_data = data.get("social_profile") or {}
    return Contact(
        id=data["id"],
        entity_name=data.get("entity_name", ""),
        primary_contact=data.get("primary_contact", ""),
        email_address=data.get("email_address", ""),
        phone_number=data.get("phone_number", ""),
        company_linkedin=data.get("company_linkedin", ""),
        contact_linkedin=data.get("contact_linkedin", ""),
        contact_facebook=data.get("contact_facebook", ""),
        notes=data.get("notes", ""),
        day=parse_day(data.get("day", WeekDay.MONDAY.value)),
        stage=parse_stage(data.get("stage", SequenceStage.FIRST_EMAIL.value)),
        completed=bool(data.get("completed", False)),
        last_activity=_dt_from_str(data.get("last_activity")),
        next_activity=_dt_from_str(data.get("next_activity")),
        social_profile=SocialProfile(
            company_info=profile_data.get("company_info"),
            personal_info=profile_data.get("personal_info"),
            last_updated=_dt_from_str(profile_data.get("last_updated")),
        ),
        created_at=_dt_from_str(data.get("created_at")),
    )


def event_to_dict(event: CalendarEvent) -> dict[str, Any]:
    """Serialise a calendar event for snapshot storage."""
    return {
        "id": event.id,
        "contact_id": event.contact_id,
        "entity_name": event.entity_name,
        "stage": event.stage.value,
        "date": event.date.isoformat(),
        "completed": event.completed,
    }


def event_from_dict(data: dict[str, Any]) -> CalendarEvent:
    """Rebuild a calendar event from its snapshot form."""
    return CalendarEvent(
        id=data["id"],
        contact_id=data["contact_id"],
        entity_name=data.get("entity_name", ""),
        stage=parse_stage(data["stage"]),
        date=datetime.fromisoformat(data["date"]),
        completed=bool(data.get("completed", False)),
    )
