"""Deterministic baseline reference data used when nothing is persisted."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from communitree.config import SeedConfig
from communitree.types import (
    NGO,
    ChatContext,
    ChatThread,
    ContactInfo,
    Event,
    Message,
    User,
    UserEvent,
    Venue,
    venue_safety_rating,
)
from communitree.utils import utcnow

SAMPLE_USERS = [
    ("Alex Johnson", "alex.johnson@example.com"),
    ("Priya Sharma", "priya.sharma@example.com"),
    ("Michael Chen", "michael.chen@example.com"),
    ("Aisha Patel", "aisha.patel@example.com"),
    ("David Rodriguez", "david.rodriguez@example.com"),
    ("Fatima Al-Zahra", "fatima.alzahra@example.com"),
    ("Raj Kumar", "raj.kumar@example.com"),
    ("Sarah Williams", "sarah.williams@example.com"),
    ("Arjun Mehta", "arjun.mehta@example.com"),
    ("Lisa Thompson", "lisa.thompson@example.com"),
]

# name, project, category, darpan id, verified, volunteers needed, current
NGO_DATA = [
    ("Green Earth Foundation", "Community Garden Initiative", "Environment", "12345", True, 15, 8),
    ("Education for All", "Digital Literacy Program", "Education", None, False, 20, 5),
    ("Animal Care Society", "Street Animal Rescue", "Animal Welfare", "67890", True, 25, 12),
    ("Healing Hands Clinic", "Free Health Checkup Camps", "Healthcare", "54321", True, 30, 18),
    ("Women Empowerment Network", "Skill Development Workshops", "Women Empowerment", None, False, 18, 6),
    ("Disaster Relief Corps", "Emergency Response Training", "Disaster Relief", "13579", True, 60, 22),
]

VENUE_DATA = [
    ("Central Park Community Center", "123 Park Avenue, Mumbai, Maharashtra", "public", (19.076, 72.8777), 100),
    ("Artisan Coffee House", "456 Brew Street, Delhi", "commercial", (28.7041, 77.1025), 50),
    ("Fitness First Studio", "789 Health Road, Bangalore, Karnataka", "commercial", (12.9716, 77.5946), 30),
    ("City Library Reading Room", "321 Book Street, Chennai, Tamil Nadu", "public", (13.0827, 80.2707), 80),
    ("Harmony Music Lounge", "654 Melody Lane, Pune, Maharashtra", "commercial", (18.5204, 73.8567), 40),
]

# title, category, venue type, max attendees, duration, rsvp count
EVENT_DATA = [
    ("Poetry Under the Stars", "Poetry", "public", 30, 120, 2),
    ("Watercolor Workshop", "Art", "commercial", 15, 180, 3),
    ("Morning Yoga Session", "Fitness", "commercial", 20, 90, 1),
    ("Book Club: Modern Fiction", "Reading", "public", 12, 120, 2),
    ("Jazz Jam Session", "Music", "commercial", 25, 150, 4),
    ("Cooking Class: Italian Cuisine", "Cooking", "commercial", 12, 180, 5),
    ("Tech Talk: AI and Future", "Technology", "public", 50, 90, 8),
    ("Photography Walk", "Photography", "public", 15, 180, 6),
]

SAMPLE_MESSAGES = [
    "Hi! I'm interested in volunteering for this project.",
    "That's great! We'd love to have you join us.",
    "What are the time commitments involved?",
    "We typically meet twice a week for 2-3 hours each session.",
    "That sounds perfect. How do I get started?",
    "I'll send you the registration form and schedule details.",
]


@dataclass
class SeedData:
    users: list[User] = field(default_factory=list)
    ngos: list[NGO] = field(default_factory=list)
    venues: list[Venue] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    chat_threads: list[ChatThread] = field(default_factory=list)


FreshDataSource = Callable[[], SeedData]


class SeedGenerator:
    """Builds a consistent reference dataset from a seeded RNG."""

    def __init__(self, config: SeedConfig | None = None,
                 now: Callable[[], datetime] | None = None) -> None:
        self.config = config or SeedConfig()
        self._now = now or utcnow

    def __call__(self) -> SeedData:
        return self.generate()

    def generate(self) -> SeedData:
        rng = random.Random(self.config.random_seed)
        now = self._now()
        users = self._users(rng)
        ngos = self._ngos(rng)
        venues = self._venues()
        events = self._events(rng, now, users, venues)
        threads = self._chat_threads(rng, now, users, ngos, events)
        for user in users:
            user.chat_history = [
                t.id for t in threads if any(p.id == user.id for p in t.participants)
            ]
        return SeedData(users=users, ngos=ngos, venues=venues, events=events,
                        chat_threads=threads)

    def _users(self, rng: random.Random) -> list[User]:
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        users = []
        for index, (name, email) in enumerate(SAMPLE_USERS):
            created = base + timedelta(days=index)
            history = []
            for i in range(rng.randint(1, 5)):
                kind = "organized" if rng.random() > 0.7 else "attended"
                history.append(UserEvent(
                    id=f"ue_{index}_{i}",
                    event_id=f"evt_{rng.randint(1, len(EVENT_DATA)):03d}",
                    type=kind,
                    timestamp=created + timedelta(weeks=i + 1),
                    trust_points_awarded=20 if kind == "organized" else 5,
                ))
            users.append(User(
                id=f"user_{index + 1:03d}",
                name=name,
                email=email,
                trust_points=rng.randint(20, 99),
                verification_status="verified" if rng.random() > 0.3 else "pending",
                event_history=history,
                created_at=created,
                updated_at=created + timedelta(days=rng.randint(0, 30)),
            ))
        return users

    def _ngos(self, rng: random.Random) -> list[NGO]:
        base = datetime(2023, 12, 1, tzinfo=timezone.utc)
        ngos = []
        for index, (name, project, category, darpan, verified, needed, current) in enumerate(NGO_DATA):
            slug = name.lower().replace(" ", "")
            created = base + timedelta(days=index * 5)
            ngos.append(NGO(
                id=f"ngo_{index + 1:03d}",
                name=name,
                project_title=project,
                description=f"{project} run by {name}.",
                darpan_id=darpan,
                is_verified=verified,
                contact_info=ContactInfo(
                    email=f"contact@{slug}.org",
                    phone=f"+91-98765432{index:02d}",
                    website=f"https://{slug}.org" if verified else None,
                    address=f"{100 + index * 10} {category} Street, Mumbai, Maharashtra",
                ),
                category=category,
                volunteers_needed=needed,
                current_volunteers=current,
                created_at=created,
                updated_at=created + timedelta(days=rng.randint(0, 60)),
            ))
        return ngos

    def _venues(self) -> list[Venue]:
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        venues = []
        for index, (name, address, vtype, coords, capacity) in enumerate(VENUE_DATA):
            venues.append(Venue(
                id=f"venue_{index + 1}",
                name=name,
                address=address,
                type=vtype,
                safety_rating=venue_safety_rating(vtype),
                coordinates=coords,
                description=f"A {vtype} venue for community events",
                amenities=["parking", "restrooms", "accessibility"] if vtype == "public"
                else ["wifi", "seating"],
                capacity=capacity,
                accessibility_features=["wheelchair_accessible"],
                created_at=created,
                updated_at=created,
            ))
        return venues

    def _events(self, rng: random.Random, now: datetime, users: list[User],
                venues: list[Venue]) -> list[Event]:
        events = []
        for index, (title, category, vtype, max_att, duration, rsvp_count) in enumerate(EVENT_DATA):
            organizer = users[index % len(users)]
            venue = next((v for v in venues if v.type == vtype), venues[0])
            day = (now + timedelta(days=index + 1)).replace(
                hour=rng.randint(10, 21), minute=rng.choice([0, 30]), second=0, microsecond=0,
            )
            rsvp_list: list[str] = []
            for _ in range(rsvp_count):
                candidate = rng.choice(users)
                if candidate.id not in rsvp_list and candidate.id != organizer.id:
                    rsvp_list.append(candidate.id)
            events.append(Event(
                id=f"evt_{index + 1:03d}",
                title=title,
                description=f"{title} at {venue.name}",
                category=category,
                venue=venue,
                organizer_id=organizer.id,
                rsvp_list=rsvp_list,
                max_attendees=max_att,
                date_time=day,
                duration=duration,
                created_at=now - timedelta(days=rng.randint(1, 30)),
                updated_at=now,
            ))
        return events

    def _messages(self, rng: random.Random, now: datetime, thread_id: str,
                  participants: list[User]) -> list[Message]:
        messages = []
        for index, content in enumerate(SAMPLE_MESSAGES):
            sender = participants[index % len(participants)]
            messages.append(Message(
                id=f"msg_{thread_id}_{index + 1}",
                sender_id=sender.id,
                content=content,
                timestamp=now - timedelta(hours=len(SAMPLE_MESSAGES) - index),
                is_read=rng.random() > 0.3,
            ))
        return messages

    def _chat_threads(self, rng: random.Random, now: datetime, users: list[User],
                      ngos: list[NGO], events: list[Event]) -> list[ChatThread]:
        by_id = {u.id: u for u in users}
        threads = []
        for index, ngo in enumerate(ngos[:3]):
            participants = [users[index + 1], users[0]]
            thread_id = f"chat_ngo_{ngo.id}"
            threads.append(ChatThread(
                id=thread_id,
                participants=[u.ref() for u in participants],
                context=ChatContext(type="ngo", reference_id=ngo.id,
                                    title=f"Volunteer Chat - {ngo.name}",
                                    description=ngo.project_title),
                messages=self._messages(rng, now, thread_id, participants),
                last_activity=now - timedelta(minutes=rng.randint(1, 24 * 60)),
                created_at=now - timedelta(days=rng.randint(1, 7)),
                updated_at=now,
            ))
        for index, event in enumerate(events[:2]):
            participants = [users[index + 2], by_id[event.organizer_id]]
            thread_id = f"chat_event_{event.id}"
            threads.append(ChatThread(
                id=thread_id,
                participants=[u.ref() for u in participants],
                context=ChatContext(type="event", reference_id=event.id,
                                    title=f"Event Chat - {event.title}",
                                    description=f"Discussion about {event.title}"),
                messages=self._messages(rng, now, thread_id, participants),
                last_activity=now - timedelta(minutes=rng.randint(1, 12 * 60)),
                created_at=now - timedelta(days=rng.randint(1, 3)),
                updated_at=now,
            ))
        return threads
