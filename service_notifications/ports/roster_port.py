"""Roster port — abstract interface for the scheduling service.

Core modules depend on this protocol, never on a specific provider.
"""

from __future__ import annotations

from typing import Protocol

from service_notifications.data.models import (
    Event,
    EventAssignment,
    EventTime,
    RosterPerson,
    ServiceType,
)


class RosterError(Exception):
    """Raised when any roster provider operation fails."""


class RosterPort(Protocol):
    """Abstract roster interface used by core modules."""

    async def list_people(self) -> list[RosterPerson]: ...

    async def list_service_types(self) -> list[ServiceType]: ...

    async def list_events(self, service_type_id: int) -> list[Event]: ...

    async def list_event_times(
        self, service_type_id: int, event_id: int
    ) -> list[EventTime]: ...

    async def list_assignments(
        self, service_type_id: int, event_id: int
    ) -> list[EventAssignment]: ...
