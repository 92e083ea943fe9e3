"""Planning Center adapter — implements RosterPort for Planning Center Services.

Talks to the JSON:API endpoints under /services/v2 with HTTP basic auth
(application id + secret) and follows `links.next` until every page is
read. Payloads are parsed into typed models here; nothing past this
module sees raw dictionaries.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from service_notifications.data.models import (
    Event,
    EventAssignment,
    EventTime,
    RosterPerson,
    ServiceType,
)
from service_notifications.ports.roster_port import RosterError

logger = logging.getLogger(__name__)

PC_API_URL = "https://api.planningcenteronline.com"
_TIMEOUT_SECONDS = 30
_DATETIME_LAYOUT = "%Y-%m-%dT%H:%M:%SZ"
_DATE_LAYOUT = "%Y-%m-%d"


def _parse_datetime(value: object) -> datetime | None:
    """Parse "2006-01-02T15:04:05Z" or "2006-01-02" as UTC; None otherwise."""
    if not isinstance(value, str) or not value:
        return None
    for layout in (_DATETIME_LAYOUT, _DATE_LAYOUT):
        try:
            return datetime.strptime(value, layout).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def _parse_id(value: object) -> int:
    """JSON:API ids are strings; anything unparsable becomes 0."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _str(attributes: dict, key: str) -> str:
    value = attributes.get(key)
    return value if isinstance(value, str) else ""


def _related_id(item: dict, relation: str) -> int:
    data = (item.get("relationships") or {}).get(relation, {}).get("data") or {}
    return _parse_id(data.get("id"))


def _parse_person(item: dict) -> RosterPerson:
    attrs = item.get("attributes") or {}
    return RosterPerson(
        id=_parse_id(item.get("id")),
        first_name=_str(attrs, "first_name"),
        last_name=_str(attrs, "last_name"),
        status=_str(attrs, "status"),
    )


def _parse_service_type(item: dict) -> ServiceType:
    attrs = item.get("attributes") or {}
    return ServiceType(id=_parse_id(item.get("id")), name=_str(attrs, "name"))


def _parse_plan(item: dict, service_type_id: int) -> Event:
    attrs = item.get("attributes") or {}
    return Event(
        id=_parse_id(item.get("id")),
        service_type_id=service_type_id,
        title=_str(attrs, "title"),
        series_title=_str(attrs, "series_title"),
        sort_date=_parse_datetime(attrs.get("sort_date")),
        updated_at=_parse_datetime(attrs.get("updated_at")),
    )


def _parse_plan_time(item: dict, plan_id: int) -> EventTime:
    attrs = item.get("attributes") or {}
    return EventTime(
        id=_parse_id(item.get("id")),
        event_id=plan_id,
        time_type=_str(attrs, "time_type"),
        starts_at=_parse_datetime(attrs.get("starts_at")),
        ends_at=_parse_datetime(attrs.get("ends_at")),
        name=_str(attrs, "name"),
    )


def _parse_team_member(item: dict, plan_id: int) -> EventAssignment:
    attrs = item.get("attributes") or {}
    return EventAssignment(
        id=_parse_id(item.get("id")),
        event_id=plan_id,
        person_id=_related_id(item, "person"),
        status=_str(attrs, "status"),
        team_position_name=_str(attrs, "team_position_name"),
    )


def _parse_page(payload: object) -> tuple[list[dict], str]:
    """Return (data, next_url) from one response body."""
    if not isinstance(payload, dict):
        raise RosterError("Malformed response body")
    errors = payload.get("errors") or []
    if errors:
        first = errors[0] if isinstance(errors[0], dict) else {}
        raise RosterError(first.get("detail") or first.get("title") or "Unknown API error")
    data = payload.get("data")
    if data is None:
        raise RosterError("no data in response")
    if not isinstance(data, list):
        data = [data]
    next_url = (payload.get("links") or {}).get("next") or ""
    return data, next_url


class PlanningCenterAdapter:
    """Planning Center implementation of RosterPort."""

    def __init__(
        self,
        app_id: str,
        secret: str,
        base_url: str = PC_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._auth = httpx.BasicAuth(app_id, secret)
        self._base_url = base_url
        self._transport = transport

    async def _get_all(self, uri: str) -> list[dict]:
        """GET every page of a collection endpoint."""
        url = uri if uri.startswith("http") else self._base_url + uri
        items: list[dict] = []
        try:
            async with httpx.AsyncClient(
                auth=self._auth, timeout=_TIMEOUT_SECONDS, transport=self._transport,
            ) as client:
                while url:
                    resp = await client.get(url)
                    try:
                        payload = resp.json()
                    except ValueError:
                        resp.raise_for_status()
                        raise RosterError(f"Non-JSON response from {url}")
                    data, url = _parse_page(payload)
                    resp.raise_for_status()
                    items.extend(data)
        except RosterError:
            raise
        except httpx.HTTPError as exc:
            logger.error("Planning Center API error (%s): %s", uri, exc)
            raise RosterError(f"Failed to fetch {uri}: {exc}") from exc
        logger.debug("Fetched %d item(s) from %s", len(items), uri)
        return items

    async def list_people(self) -> list[RosterPerson]:
        return [_parse_person(i) for i in await self._get_all("/services/v2/people")]

    async def list_service_types(self) -> list[ServiceType]:
        return [
            _parse_service_type(i)
            for i in await self._get_all("/services/v2/service_types")
        ]

    async def list_events(self, service_type_id: int) -> list[Event]:
        items = await self._get_all(f"/services/v2/service_types/{service_type_id}/plans")
        return [_parse_plan(i, service_type_id) for i in items]

    async def list_event_times(
        self, service_type_id: int, event_id: int
    ) -> list[EventTime]:
        items = await self._get_all(
            f"/services/v2/service_types/{service_type_id}/plans/{event_id}/plan_times"
        )
        return [_parse_plan_time(i, event_id) for i in items]

    async def list_assignments(
        self, service_type_id: int, event_id: int
    ) -> list[EventAssignment]:
        items = await self._get_all(
            f"/services/v2/service_types/{service_type_id}/plans/{event_id}/team_members"
        )
        return [_parse_team_member(i, event_id) for i in items]
