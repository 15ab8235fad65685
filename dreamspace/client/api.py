"""
HTTP client for the DreamSpace API.

Every method returns an ActionResult parsed from the response envelope.
Network failures and non-envelope responses become failure results too,
so callers (the optimistic stores) only ever branch on `result.failed`.
"""

import logging
from typing import Any, Optional

import httpx

from ..core.errors import ErrorKind
from ..core.records import (
    ConnectRecord,
    CurrentWeekRecord,
    DreamsDocumentRecord,
    ScoringRecord,
)
from ..core.results import ActionResult

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 10


class DreamSpaceClient:
    """
    Thin async wrapper over httpx.

    Usage:
        async with DreamSpaceClient(base_url, api_key, user_id) as client:
            result = await client.sync_current_week(user_id)
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        user_id: str,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = _TIMEOUT_SECONDS,
    ) -> None:
        self.user_id = user_id
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/api/v1",
            headers={"X-API-Key": api_key, "X-User-Id": user_id},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "DreamSpaceClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # -----------------------------------------------------------------------
    # Users and teams
    # -----------------------------------------------------------------------

    async def get_me(self) -> ActionResult:
        return await self._request("GET", "/users/me")

    async def list_users(self) -> ActionResult:
        return await self._request("GET", "/users")

    async def assign_user(self, user_id: str, coach_id: str) -> ActionResult:
        return await self._request("POST", f"/users/{user_id}/assign", json={"coach_id": coach_id})

    async def unassign_user(self, user_id: str, coach_id: str) -> ActionResult:
        return await self._request("POST", f"/users/{user_id}/unassign", json={"coach_id": coach_id})

    async def promote_user(self, user_id: str, team_name: Optional[str] = None) -> ActionResult:
        return await self._request("POST", f"/users/{user_id}/promote", json={"team_name": team_name})

    async def list_teams(self) -> ActionResult:
        return await self._request("GET", "/teams")

    async def replace_coach(
        self,
        coach_id: str,
        demote_option: str,
        new_coach_id: Optional[str] = None,
        assign_to_team_id: Optional[str] = None,
        team_name: Optional[str] = None,
    ) -> ActionResult:
        body = {
            "demote_option": demote_option,
            "new_coach_id": new_coach_id,
            "assign_to_team_id": assign_to_team_id,
            "team_name": team_name,
        }
        return await self._request("POST", f"/teams/{coach_id}/replace-coach", json=body)

    async def reconcile_team(self, manager_id: str, dry_run: bool = False) -> ActionResult:
        return await self._request(
            "POST",
            f"/teams/{manager_id}/reconcile",
            params={"dry_run": str(dry_run).lower()},
        )

    async def update_team_info(self, team_ref: str, **fields: Any) -> ActionResult:
        return await self._request("PATCH", f"/teams/{team_ref}", json=fields)

    async def save_attendance(
        self,
        team_ref: str,
        meeting_date: str,
        attendees: list[str],
        notes: str = "",
    ) -> ActionResult:
        body = {"meeting_date": meeting_date, "attendees": attendees, "notes": notes}
        return await self._request("POST", f"/teams/{team_ref}/attendance", json=body)

    async def get_attendance(self, team_ref: str) -> ActionResult:
        return await self._request("GET", f"/teams/{team_ref}/attendance")

    async def get_team_metrics(self, team_ref: str) -> ActionResult:
        return await self._request("GET", f"/teams/{team_ref}/metrics")

    # -----------------------------------------------------------------------
    # Weeks
    # -----------------------------------------------------------------------

    async def get_current_week(self, user_id: str) -> ActionResult:
        return await self._request("GET", f"/weeks/{user_id}/current")

    async def save_current_week(self, user_id: str, week: CurrentWeekRecord) -> ActionResult:
        return await self._request(
            "PUT", f"/weeks/{user_id}/current", json=week.model_dump(mode="json")
        )

    async def sync_current_week(self, user_id: str) -> ActionResult:
        return await self._request("POST", f"/weeks/{user_id}/sync")

    async def get_past_weeks(self, user_id: str) -> ActionResult:
        return await self._request("GET", f"/weeks/{user_id}/past")

    async def roll_over_all(self) -> ActionResult:
        return await self._request("POST", "/weeks/rollover")

    # -----------------------------------------------------------------------
    # Dreams, connects, scoring
    # -----------------------------------------------------------------------

    async def get_dreams(self, user_id: str) -> ActionResult:
        return await self._request("GET", f"/dreams/{user_id}")

    async def save_dreams(self, user_id: str, record: DreamsDocumentRecord) -> ActionResult:
        return await self._request("PUT", f"/dreams/{user_id}", json=record.model_dump(mode="json"))

    async def get_connects(self, user_id: str) -> ActionResult:
        return await self._request("GET", f"/connects/{user_id}")

    async def save_connect(self, user_id: str, connect: ConnectRecord) -> ActionResult:
        return await self._request(
            "PUT", f"/connects/{user_id}/{connect.id}", json=connect.model_dump(mode="json")
        )

    async def delete_connect(self, user_id: str, connect_id: str) -> ActionResult:
        return await self._request("DELETE", f"/connects/{user_id}/{connect_id}")

    async def get_scoring(self, user_id: str, year: int) -> ActionResult:
        return await self._request("GET", f"/scoring/{user_id}/{year}")

    async def save_scoring(self, user_id: str, record: ScoringRecord) -> ActionResult:
        return await self._request(
            "PUT", f"/scoring/{user_id}/{record.year}", json=record.model_dump(mode="json")
        )

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> ActionResult:
        try:
            response = await self._http.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            logger.warning(
                "DreamSpace API request failed",
                extra={"method": method, "path": path, "error": str(e)},
            )
            return ActionResult.failure(f"Network error: {e}", ErrorKind.UNKNOWN)

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not isinstance(payload, dict) or "failed" not in payload:
            logger.warning(
                "Unexpected API response",
                extra={"method": method, "path": path, "status_code": response.status_code},
            )
            return ActionResult.failure(
                f"Unexpected response from server (HTTP {response.status_code})",
                ErrorKind.UNKNOWN,
            )

        return ActionResult.from_dict(payload)
