"""Tests for the Planning Center adapter.

HTTP is served by httpx.MockTransport; no network access.
"""

import httpx
import pytest

from conftest import utc
from service_notifications.adapters.planning_center import (
    PlanningCenterAdapter,
    _parse_datetime,
    _parse_page,
)
from service_notifications.ports.roster_port import RosterError

_BASE = "https://pc.test"


def _adapter(handler):
    return PlanningCenterAdapter(
        "app-id", "secret", base_url=_BASE, transport=httpx.MockTransport(handler),
    )


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


class TestParseDatetime:
    def test_full_timestamp(self):
        assert _parse_datetime("2024-05-12T09:00:00Z") == utc(2024, 5, 12, 9, 0)

    def test_date_only(self):
        assert _parse_datetime("2024-05-12") == utc(2024, 5, 12)

    def test_missing_or_garbage(self):
        assert _parse_datetime(None) is None
        assert _parse_datetime("") is None
        assert _parse_datetime("next sunday") is None


class TestParsePage:
    def test_errors_payload_raises_detail(self):
        with pytest.raises(RosterError, match="Invalid credentials"):
            _parse_page({"errors": [{"title": "Unauthorized", "detail": "Invalid credentials"}]})

    def test_missing_data_raises(self):
        with pytest.raises(RosterError, match="no data in response"):
            _parse_page({"links": {}})

    def test_returns_next_link(self):
        data, next_url = _parse_page({"data": [{"id": "1"}], "links": {"next": "https://x/2"}})
        assert data == [{"id": "1"}]
        assert next_url == "https://x/2"


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


class TestPlanningCenterAdapter:
    @pytest.mark.asyncio
    async def test_list_people_follows_pagination(self):
        requests = []

        def handler(request):
            requests.append(request)
            if request.url.params.get("offset") == "1":
                return httpx.Response(200, json={
                    "data": [{"id": "2", "attributes": {"first_name": "Amy", "last_name": "Lee"}}],
                    "links": {},
                })
            return httpx.Response(200, json={
                "data": [{"id": "1", "attributes": {
                    "first_name": "Jon", "last_name": "Smith", "status": "active",
                }}],
                "links": {"next": f"{_BASE}/services/v2/people?offset=1"},
            })

        people = await _adapter(handler).list_people()

        assert [(p.id, p.full_name) for p in people] == [(1, "Jon Smith"), (2, "Amy Lee")]
        assert people[0].status == "active"
        assert requests[0].url.path == "/services/v2/people"
        assert requests[0].headers["authorization"].startswith("Basic ")
        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_list_events_parses_plans(self):
        def handler(request):
            assert request.url.path == "/services/v2/service_types/7/plans"
            return httpx.Response(200, json={"data": [{
                "id": "42",
                "attributes": {
                    "title": "Easter",
                    "series_title": "Holy Week",
                    "sort_date": "2024-03-31T09:00:00Z",
                    "updated_at": "2024-03-20T12:00:00Z",
                },
            }]})

        events = await _adapter(handler).list_events(7)

        assert len(events) == 1
        event = events[0]
        assert (event.id, event.service_type_id, event.title) == (42, 7, "Easter")
        assert event.series_title == "Holy Week"
        assert event.sort_date == utc(2024, 3, 31, 9, 0)
        assert event.updated_at == utc(2024, 3, 20, 12, 0)
        assert event.starts_at is None

    @pytest.mark.asyncio
    async def test_list_event_times(self):
        def handler(request):
            assert request.url.path == "/services/v2/service_types/7/plans/42/plan_times"
            return httpx.Response(200, json={"data": [{
                "id": "5",
                "attributes": {
                    "time_type": "service", "name": "First",
                    "starts_at": "2024-03-31T09:00:00Z", "ends_at": "2024-03-31T10:30:00Z",
                },
            }]})

        times = await _adapter(handler).list_event_times(7, 42)

        assert times[0].event_id == 42
        assert times[0].time_type == "service"
        assert times[0].ends_at == utc(2024, 3, 31, 10, 30)

    @pytest.mark.asyncio
    async def test_list_assignments_reads_person_relationship(self):
        def handler(request):
            assert request.url.path == "/services/v2/service_types/7/plans/42/team_members"
            return httpx.Response(200, json={"data": [{
                "id": "900",
                "attributes": {"status": "C", "team_position_name": "Vocals"},
                "relationships": {"person": {"data": {"type": "Person", "id": "10"}}},
            }]})

        assignments = await _adapter(handler).list_assignments(7, 42)

        assert len(assignments) == 1
        a = assignments[0]
        assert (a.id, a.event_id, a.person_id) == (900, 42, 10)
        assert a.team_position_name == "Vocals"

    @pytest.mark.asyncio
    async def test_list_service_types(self):
        def handler(request):
            return httpx.Response(200, json={"data": [{"id": "3", "attributes": {"name": "Youth"}}]})

        types = await _adapter(handler).list_service_types()
        assert [(t.id, t.name) for t in types] == [(3, "Youth")]

    @pytest.mark.asyncio
    async def test_api_error_body_raises_roster_error(self):
        def handler(request):
            return httpx.Response(401, json={"errors": [{"detail": "Invalid credentials"}]})

        with pytest.raises(RosterError, match="Invalid credentials"):
            await _adapter(handler).list_people()

    @pytest.mark.asyncio
    async def test_http_status_without_json_raises_roster_error(self):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(RosterError):
            await _adapter(handler).list_people()

    @pytest.mark.asyncio
    async def test_transport_failure_raises_roster_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RosterError, match="Failed to fetch"):
            await _adapter(handler).list_service_types()
