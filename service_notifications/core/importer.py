"""
Service Notifications — Roster and directory import.

Pulls people, service types, events, times and assignments from the
roster source and accounts from the chat directory. Fetching and storing
are separate steps so that a failed fetch aborts a run before anything
is written.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from service_notifications.data.models import (
    DirectoryAccount,
    Event,
    EventAssignment,
    EventTime,
    RosterPerson,
    ServiceType,
)
from service_notifications.ports.chat_port import ChatError

if TYPE_CHECKING:
    from service_notifications.data.db import RosterDB
    from service_notifications.ports.chat_port import DirectoryPort
    from service_notifications.ports.roster_port import RosterPort

logger = logging.getLogger(__name__)

SERVICE_TIME_TYPE = "service"
# An existing event this recent means history has been imported already.
_RECENT_EVENT_LOOKBACK = timedelta(days=14)
# Once history exists, only events touched in this span are refreshed.
_REFRESH_SPAN = timedelta(days=30)


@dataclass
class RosterSnapshot:
    """Everything fetched from the roster source in one run."""

    people: list[RosterPerson] = field(default_factory=list)
    service_types: list[ServiceType] = field(default_factory=list)
    events: list[Event] = field(default_factory=list)
    assignments: list[EventAssignment] = field(default_factory=list)


def refresh_cutoff(db: RosterDB, now: datetime) -> datetime | None:
    """Return the oldest update time worth re-fetching, or None for all."""
    if db.has_event_since(now - _RECENT_EVENT_LOOKBACK):
        return now - _REFRESH_SPAN
    return None


def primary_service_time(times: list[EventTime]) -> EventTime | None:
    """Earliest time slot of type "service"."""
    service_times = [
        t for t in times
        if t.time_type == SERVICE_TIME_TYPE and t.starts_at is not None
    ]
    if not service_times:
        return None
    return min(service_times, key=lambda t: t.starts_at)


def _is_historic(event: Event, cutoff: datetime | None) -> bool:
    if cutoff is None:
        return False
    updated_before = event.updated_at is None or event.updated_at < cutoff
    sorted_before = event.sort_date is None or event.sort_date < cutoff
    return updated_before and sorted_before


async def fetch_roster(
    roster: RosterPort,
    service_type_ids: list[int] | None = None,
    cutoff: datetime | None = None,
) -> RosterSnapshot:
    """Fetch the roster into memory.

    Args:
        roster: Roster source.
        service_type_ids: Service types to pull events for; empty or None
            pulls every service type.
        cutoff: Events neither updated nor sorted after this are skipped
            without fetching their times and assignments.

    Raises:
        RosterError: Any fetch failed. Nothing has been stored yet.
    """
    snapshot = RosterSnapshot()
    snapshot.people = await roster.list_people()
    snapshot.service_types = await roster.list_service_types()

    type_ids = list(service_type_ids or []) or [st.id for st in snapshot.service_types]

    for type_id in type_ids:
        for event in await roster.list_events(type_id):
            if _is_historic(event, cutoff):
                continue

            times = await roster.list_event_times(type_id, event.id)
            primary = primary_service_time(times)
            if primary is not None:
                event = replace(event, starts_at=primary.starts_at, ends_at=primary.ends_at)
            snapshot.events.append(event)
            snapshot.assignments.extend(await roster.list_assignments(type_id, event.id))

    logger.info(
        "Roster fetched: %d people, %d service type(s), %d event(s), %d assignment(s)",
        len(snapshot.people), len(snapshot.service_types),
        len(snapshot.events), len(snapshot.assignments),
    )
    return snapshot


async def fetch_directory(directory: DirectoryPort) -> list[DirectoryAccount]:
    """Fetch every directory account; an empty directory is an error."""
    accounts = await directory.list_accounts()
    if not accounts:
        raise ChatError("No accounts found in directory")
    logger.info("Directory fetched: %d account(s)", len(accounts))
    return accounts


def store_roster(db: RosterDB, snapshot: RosterSnapshot) -> None:
    for person in snapshot.people:
        db.upsert_person(person)
    for service_type in snapshot.service_types:
        db.upsert_service_type(service_type)
    for event in snapshot.events:
        db.upsert_event(event)
    for assignment in snapshot.assignments:
        db.upsert_assignment(assignment)
    logger.info("Roster stored")
