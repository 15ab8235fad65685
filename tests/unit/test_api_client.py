"""Unit tests for the HTTP client, using httpx's MockTransport."""

import json

import httpx
import pytest

from dreamspace.client.api import DreamSpaceClient
from dreamspace.core.errors import ErrorKind
from dreamspace.core.records import CurrentWeekRecord, WeekGoalRecord


def make_client(handler) -> DreamSpaceClient:
    return DreamSpaceClient(
        "http://dreamspace.test/",
        "test-key",
        "u1",
        transport=httpx.MockTransport(handler),
    )


class TestDreamSpaceClient:
    """Tests for request building and envelope parsing."""

    @pytest.mark.asyncio
    async def test_sends_credentials_and_parses_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            return httpx.Response(200, json={"failed": False, "data": {"id": "u1"}})

        async with make_client(handler) as client:
            result = await client.get_me()

        assert result.data == {"id": "u1"}
        assert seen["url"] == "http://dreamspace.test/api/v1/users/me"
        assert seen["headers"]["X-API-Key"] == "test-key"
        assert seen["headers"]["X-User-Id"] == "u1"

    @pytest.mark.asyncio
    async def test_failure_envelope_keeps_code(self):
        def handler(request):
            return httpx.Response(
                409,
                json={"failed": True, "errors": {"message": ["Already assigned"], "code": "conflict"}},
            )

        async with make_client(handler) as client:
            result = await client.assign_user("u1", "c1")

        assert result.failed
        assert result.kind == ErrorKind.CONFLICT
        assert result.error_message == "Already assigned"

    @pytest.mark.asyncio
    async def test_week_is_sent_as_json(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"failed": False, "data": None})

        week = CurrentWeekRecord(
            week_id="2025-W03",
            goals=(WeekGoalRecord(id="A_2025-W03", title="Run", week_id="2025-W03"),),
        )

        async with make_client(handler) as client:
            await client.save_current_week("u1", week)

        assert bodies[0]["week_id"] == "2025-W03"
        assert bodies[0]["goals"][0]["id"] == "A_2025-W03"

    @pytest.mark.asyncio
    async def test_network_error_becomes_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            result = await client.sync_current_week("u1")

        assert result.failed
        assert result.error_message.startswith("Network error")

    @pytest.mark.asyncio
    async def test_non_envelope_response_becomes_failure(self):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        async with make_client(handler) as client:
            result = await client.list_teams()

        assert result.failed
        assert "HTTP 502" in result.error_message

    @pytest.mark.asyncio
    async def test_reconcile_passes_dry_run_flag(self):
        seen = {}

        def handler(request):
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"failed": False, "data": {}})

        async with make_client(handler) as client:
            await client.reconcile_team("c1", dry_run=True)

        assert seen["params"] == {"dry_run": "true"}

    @pytest.mark.asyncio
    async def test_roster_reads_hit_their_routes(self):
        urls = []

        def handler(request):
            urls.append(request.url.path)
            return httpx.Response(200, json={"failed": False, "data": {}})

        async with make_client(handler) as client:
            await client.list_users()
            await client.get_team_metrics("team_abc123")

        assert urls == ["/api/v1/users", "/api/v1/teams/team_abc123/metrics"]
