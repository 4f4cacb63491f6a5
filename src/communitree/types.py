"""Domain models shared by the cache, storage, consistency and trust layers."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictInt

from communitree.utils import new_id, try_parse_iso, utcnow

# Temporal fields are revived from ISO-8601 on load. A value that cannot be
# revived degrades to None instead of failing the whole record.
Timestamp = Annotated[Optional[datetime], BeforeValidator(try_parse_iso)]

Track = Literal["impact", "grow"]
VerificationStatus = Literal["pending", "verified"]
VenueType = Literal["public", "commercial", "private"]
VenueRating = Literal["green", "yellow", "red"]
MessageType = Literal["text", "system", "notification"]
UserEventType = Literal["organized", "attended", "rsvp", "no_show"]

VENUE_RATINGS: dict[str, str] = {
    "public": "green",
    "commercial": "yellow",
    "private": "red",
}


def venue_safety_rating(venue_type: str) -> str:
    return VENUE_RATINGS.get(venue_type, "red")


class ContactInfo(BaseModel):
    email: str
    phone: str | None = None
    website: str | None = None
    address: str | None = None


class UserEvent(BaseModel):
    id: str
    event_id: str
    type: UserEventType
    timestamp: Timestamp = Field(default_factory=utcnow)
    trust_points_awarded: StrictInt = 0


class User(BaseModel):
    id: str = Field(min_length=1)
    name: str
    email: str
    trust_points: StrictInt = 50
    verification_status: VerificationStatus = "pending"
    chat_history: list[str] = Field(default_factory=list)
    event_history: list[UserEvent] = Field(default_factory=list)
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)

    def ref(self) -> UserRef:
        return UserRef(id=self.id, name=self.name)


class UserRef(BaseModel):
    """Lightweight participant reference embedded in chat threads."""

    id: str = Field(min_length=1)
    name: str = ""


class NGO(BaseModel):
    id: str = Field(min_length=1)
    name: str
    project_title: str = ""
    description: str = ""
    darpan_id: str | None = None
    is_verified: bool = False
    contact_info: ContactInfo
    category: str
    volunteers_needed: StrictInt = 0
    current_volunteers: StrictInt = 0
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)


class Venue(BaseModel):
    id: str = Field(min_length=1)
    name: str
    address: str
    type: VenueType
    safety_rating: VenueRating
    coordinates: tuple[float, float]
    description: str | None = None
    amenities: list[str] = Field(default_factory=list)
    capacity: int | None = None
    accessibility_features: list[str] = Field(default_factory=list)
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)


class Event(BaseModel):
    id: str = Field(min_length=1)
    title: str
    description: str = ""
    category: str
    venue: Venue
    organizer_id: str
    rsvp_list: list[str] = Field(default_factory=list)
    max_attendees: StrictInt = 0
    date_time: Timestamp = None
    duration: StrictInt = 60  # minutes
    is_active: bool = True
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)


class Message(BaseModel):
    id: str
    sender_id: str
    content: str
    timestamp: Timestamp = Field(default_factory=utcnow)
    type: MessageType = "text"
    is_read: bool = False


class ChatContext(BaseModel):
    type: Literal["ngo", "event"]
    reference_id: str
    title: str
    description: str | None = None


class ChatThread(BaseModel):
    id: str = Field(min_length=1)
    participants: list[UserRef] = Field(default_factory=list)
    context: ChatContext
    messages: list[Message] = Field(default_factory=list)
    last_activity: Timestamp = Field(default_factory=utcnow)
    is_active: bool = True
    created_at: Timestamp = Field(default_factory=utcnow)
    updated_at: Timestamp = Field(default_factory=utcnow)


class UserPreferences(BaseModel):
    last_selected_track: Track = "impact"
    notifications_enabled: bool = True
    preferred_categories: list[str] = Field(
        default_factory=lambda: ["Poetry", "Art", "Environment"]
    )
    location_permission: bool = False


class NGOVerification(BaseModel):
    is_verified: bool
    darpan_id: str | None = None
    verified_at: Timestamp = Field(default_factory=utcnow)


class RsvpRecord(BaseModel):
    rsvp_at: Timestamp = Field(default_factory=utcnow)
    status: Literal["confirmed"] = "confirmed"


class TrustPointsHistoryEntry(BaseModel):
    """One audited trust score change. Entries are never edited."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: new_id("tph_"))
    user_id: str = Field(min_length=1)
    delta: StrictInt
    reason: str
    related_entity_id: str | None = None
    timestamp: Timestamp = Field(default_factory=utcnow)


class AppState(BaseModel):
    """Live application state; the single mutable owner of the aggregates."""

    user: User | None = None
    current_track: Track = "impact"
    ngos: list[NGO] = Field(default_factory=list)
    events: list[Event] = Field(default_factory=list)
    chat_threads: list[ChatThread] = Field(default_factory=list)
    venues: list[Venue] = Field(default_factory=list)
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    available_users: list[User] = Field(default_factory=list)

    def known_user_ids(self) -> set[str]:
        ids = {u.id for u in self.available_users}
        if self.user is not None:
            ids.add(self.user.id)
        return ids
