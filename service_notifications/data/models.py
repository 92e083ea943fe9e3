"""
Service Notifications — Data Models.

Typed value objects for the roster (people, service types, events and
their assignments), the chat directory, and the channels this job manages.
Raw API payloads are parsed into these at the adapter boundary.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class RosterPerson:
    """A participant record from the scheduling service."""

    id: int
    first_name: str
    last_name: str
    status: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class ServiceType:
    """A kind of scheduled occurrence, e.g. "Sunday Service"."""

    id: int
    name: str


@dataclass
class Event:
    """One scheduled occurrence needing a dedicated channel.

    starts_at/ends_at come from the event's primary service time and stay
    None until times have been imported.
    """

    id: int
    service_type_id: int
    title: str = ""
    series_title: str = ""
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    sort_date: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class EventTime:
    """A time slot attached to an event (rehearsal, service, ...)."""

    id: int
    event_id: int
    time_type: str
    starts_at: datetime | None
    ends_at: datetime | None
    name: str = ""


@dataclass
class EventAssignment:
    """A person scheduled on an event in a given role."""

    id: int
    event_id: int
    person_id: int
    status: str = ""
    team_position_name: str = ""


@dataclass
class DirectoryAccount:
    """A chat-platform account and its link to a roster person."""

    id: str
    name: str = ""                     # display/handle name
    real_name: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    deleted: bool = False
    is_bot: bool = False
    roster_id: int | None = None       # None → unlinked
    match_distance: int | None = None


@dataclass
class Channel:
    """The chat channel representing one event."""

    id: str
    name: str
    event_id: int
    starts_at: datetime
    ends_at: datetime | None = None
    description: str = ""
    invited: list[str] = field(default_factory=list)
    archived: bool = False
