"""
HTTP tests for the FastAPI application.

Uses FastAPI's TestClient against the in-memory store. Every response
body, success or failure, is an envelope; these tests check the status
code and the envelope together.
"""

from dreamspace.core.weeks.isoweek import IsoWeek, today_in
from tests.helpers import (
    API_KEY,
    headers,
    seed_admin,
    seed_coach,
    seed_user,
    team_doc,
    user_doc,
)


def assert_failure(response, status_code, code):
    assert response.status_code == status_code, response.text
    body = response.json()
    assert body["failed"] is True
    assert body["errors"]["code"] == code
    assert body["errors"]["message"]
    return body


def data_of(response, status_code=200):
    assert response.status_code == status_code, response.text
    body = response.json()
    assert body["failed"] is False
    return body["data"]


# ---------------------------------------------------------------------------
# Health and authentication
# ---------------------------------------------------------------------------

class TestHealthAndAuth:
    """Liveness and the authentication layers."""

    def test_health_needs_no_credentials(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["details"]["mock_mode"]["document_store"] is True

    def test_missing_api_key_is_forbidden(self, client):
        response = client.get("/api/v1/users/me", headers={"X-User-Id": "u1"})

        assert_failure(response, 403, "forbidden")

    def test_wrong_api_key_is_forbidden(self, client):
        response = client.get("/api/v1/users/me", headers={"X-API-Key": "nope", "X-User-Id": "u1"})

        assert_failure(response, 403, "forbidden")

    def test_missing_user_is_unauthorized(self, client):
        response = client.get("/api/v1/users/me", headers={"X-API-Key": API_KEY})

        assert_failure(response, 401, "unauthorized")

    def test_me_creates_user_on_first_request(self, client, store):
        response = client.get(
            "/api/v1/users/me",
            headers={**headers("u1"), "X-User-Email": "u1@example.com"},
        )

        data = data_of(response)
        assert data["id"] == "u1"
        assert data["role"] == "user"
        assert data["is_admin"] is False
        assert user_doc(store, "u1")["email"] == "u1@example.com"


# ---------------------------------------------------------------------------
# Users and teams
# ---------------------------------------------------------------------------

class TestUserRoutes:
    """User listing, assign, unassign and promote."""

    def test_admin_lists_every_user(self, client, store):
        seed_admin(store)
        seed_coach(store, "c1", members=("u1",))

        data = data_of(client.get("/api/v1/users", headers=headers("admin")))

        assert data["count"] == 3
        assert [u["id"] for u in data["users"]] == ["admin", "c1", "u1"]
        assert data["users"][2]["assigned_coach_id"] == "c1"

    def test_listing_users_requires_admin(self, client, store):
        seed_user(store, "u1")

        response = client.get("/api/v1/users", headers=headers("u1"))

        assert_failure(response, 403, "forbidden")

    def test_assign_requires_admin(self, client, store):
        seed_user(store, "u1")
        seed_coach(store, "c1")

        response = client.post("/api/v1/users/u1/assign", json={"coach_id": "c1"}, headers=headers("u1"))

        assert_failure(response, 403, "forbidden")

    def test_assign_then_repeat_is_conflict(self, client, store):
        seed_admin(store)
        seed_user(store, "u1")
        seed_coach(store, "c1")

        first = client.post("/api/v1/users/u1/assign", json={"coach_id": "c1"}, headers=headers("admin"))
        second = client.post("/api/v1/users/u1/assign", json={"coach_id": "c1"}, headers=headers("admin"))

        assert data_of(first)["team_size"] == 1
        assert_failure(second, 409, "conflict")

    def test_unassign_unknown_team_is_not_found(self, client, store):
        seed_admin(store)
        seed_user(store, "u1")

        response = client.post("/api/v1/users/u1/unassign", json={"coach_id": "c9"}, headers=headers("admin"))

        assert_failure(response, 404, "not_found")

    def test_promote_returns_created(self, client, store):
        seed_admin(store)
        seed_user(store, "u1")

        response = client.post(
            "/api/v1/users/u1/promote",
            json={"team_name": "Night Owls"},
            headers=headers("admin"),
        )

        assert data_of(response, 201)["team_name"] == "Night Owls"
        assert team_doc(store, "u1")["team_name"] == "Night Owls"

    def test_missing_coach_id_is_validation_error(self, client, store):
        seed_admin(store)

        response = client.post("/api/v1/users/u1/assign", json={}, headers=headers("admin"))

        assert_failure(response, 422, "validation")


class TestTeamRoutes:
    """Team listing, replacement, info and attendance."""

    def test_list_teams_is_admin_only(self, client, store):
        seed_coach(store, "c1", members=("u1",))

        response = client.get("/api/v1/teams", headers=headers("c1"))

        assert_failure(response, 403, "forbidden")

    def test_admin_lists_teams(self, client, store):
        seed_admin(store)
        seed_coach(store, "c1", members=("u1",))

        data = data_of(client.get("/api/v1/teams", headers=headers("admin")))

        assert data["count"] == 1
        assert data["teams"][0]["team_members"] == ["u1"]

    def test_coach_reads_own_team_metrics(self, client, store):
        seed_coach(store, "c1", members=("u1",))
        seed_user(store, "u1", assigned_coach_id="c1", score=8, dreams_count=2)

        data = data_of(client.get("/api/v1/teams/team_c1/metrics", headers=headers("c1")))

        assert data["team_size"] == 2
        assert data["total_dreams"] == 2
        assert data["engagement_rate"] == 50

    def test_coach_cannot_read_other_team_metrics(self, client, store):
        seed_coach(store, "c1")
        seed_coach(store, "c2", team_name="Star Gazers")

        response = client.get("/api/v1/teams/c2/metrics", headers=headers("c1"))

        assert_failure(response, 403, "forbidden")

    def test_disband_through_api(self, client, store):
        seed_admin(store)
        seed_coach(store, "c1", members=("u1", "u2"))

        response = client.post(
            "/api/v1/teams/c1/replace-coach",
            json={"demote_option": "disband-team"},
            headers=headers("admin"),
        )

        assert data_of(response)["outcome"] == "disbanded"
        assert team_doc(store, "c1") is None

    def test_unknown_demote_option_is_rejected(self, client, store):
        seed_admin(store)
        seed_coach(store, "c1")

        response = client.post(
            "/api/v1/teams/c1/replace-coach",
            json={"demote_option": "retire", "new_coach_id": "u1"},
            headers=headers("admin"),
        )

        assert_failure(response, 422, "validation")

    def test_reconcile_dry_run(self, client, store):
        seed_admin(store)
        seed_coach(store, "c1")
        seed_user(store, "u3", assigned_coach_id="c1", assigned_team_name="Nova Voyagers")

        response = client.post("/api/v1/teams/c1/reconcile?dry_run=true", headers=headers("admin"))

        data = data_of(response)
        assert data["cleared"] == ["u3"]
        assert data["dry_run"] is True
        assert user_doc(store, "u3")["assigned_coach_id"] == "c1"

    def test_coach_updates_own_team(self, client, store):
        seed_coach(store, "c1", members=("u1",))

        response = client.patch(
            "/api/v1/teams/c1",
            json={"team_name": "Star Gazers", "mission": "Show up"},
            headers=headers("c1"),
        )

        assert data_of(response)["team_name"] == "Star Gazers"
        assert user_doc(store, "u1")["assigned_team_name"] == "Star Gazers"

    def test_coach_cannot_update_other_team(self, client, store):
        seed_coach(store, "c1")
        seed_coach(store, "c2", team_name="Star Gazers")

        response = client.patch("/api/v1/teams/c2", json={"mission": "Mine now"}, headers=headers("c1"))

        assert_failure(response, 403, "forbidden")

    def test_unknown_team_is_not_found(self, client, store):
        seed_coach(store, "c1")

        response = client.patch("/api/v1/teams/nobody", json={"mission": "?"}, headers=headers("c1"))

        assert_failure(response, 404, "not_found")

    def test_attendance_by_team_id(self, client, store):
        seed_coach(store, "c1", members=("u1",))

        saved = client.post(
            "/api/v1/teams/team_c1/attendance",
            json={"meeting_date": "2025-01-14", "attendees": ["u1"]},
            headers=headers("c1"),
        )
        history = client.get("/api/v1/teams/c1/attendance", headers=headers("c1"))

        assert data_of(saved, 201)["id"] == "attendance_team_c1_2025-01-14"
        meetings = data_of(history)["meetings"]
        assert meetings[0]["recorded_by"] == "c1"

    def test_attendance_date_must_be_iso(self, client, store):
        seed_coach(store, "c1")

        response = client.post(
            "/api/v1/teams/c1/attendance",
            json={"meeting_date": "14/01/2025", "attendees": []},
            headers=headers("c1"),
        )

        assert_failure(response, 422, "validation")


# ---------------------------------------------------------------------------
# Weeks
# ---------------------------------------------------------------------------

class TestWeekRoutes:
    """Sync, save and rollover over HTTP."""

    def test_sync_creates_this_week(self, client, store):
        seed_user(store, "u1")

        data = data_of(client.post("/api/v1/weeks/u1/sync", headers=headers("u1")))

        assert data["rolled"] is True
        assert data["current_week"]["week_id"] == IsoWeek.of(today_in("UTC")).week_id

    def test_cannot_read_another_users_week(self, client, store):
        seed_user(store, "u1")
        seed_user(store, "u2")

        response = client.get("/api/v1/weeks/u2/current", headers=headers("u1"))

        assert_failure(response, 403, "forbidden")

    def test_admin_can_read_any_week(self, client, store):
        seed_admin(store)
        seed_user(store, "u2")

        data = data_of(client.get("/api/v1/weeks/u2/current", headers=headers("admin")))

        assert data is None

    def test_saving_an_old_week_is_conflict(self, client, store):
        seed_user(store, "u1")
        client.post("/api/v1/weeks/u1/sync", headers=headers("u1"))

        response = client.put(
            "/api/v1/weeks/u1/current",
            json={"week_id": "2000-W01", "goals": []},
            headers=headers("u1"),
        )

        assert_failure(response, 409, "conflict")

    def test_admin_rollover_reports_every_user(self, client, store):
        seed_admin(store)
        seed_user(store, "u1")

        data = data_of(client.post("/api/v1/weeks/rollover", headers=headers("admin")))

        assert data["total"] == 2
        assert data["failed"] == 0


# ---------------------------------------------------------------------------
# Dreams, connects, scoring
# ---------------------------------------------------------------------------

class TestDocumentRoutes:
    """Single-document entities."""

    def test_dreams_round_trip(self, client, store):
        seed_user(store, "u1")
        body = {
            "dreams": [{"id": "d1", "title": "Run a marathon", "progress": 10}],
            "weekly_goal_templates": [{"id": "t1", "title": "Run", "dream_id": "d1"}],
        }

        saved = client.put("/api/v1/dreams/u1", json=body, headers=headers("u1"))
        loaded = client.get("/api/v1/dreams/u1", headers=headers("u1"))

        assert data_of(saved)["dreams"][0]["id"] == "d1"
        assert data_of(loaded)["weekly_goal_templates"][0]["dream_id"] == "d1"

    def test_template_for_unknown_dream_is_rejected(self, client, store):
        seed_user(store, "u1")
        body = {"weekly_goal_templates": [{"id": "t1", "title": "Run", "dream_id": "ghost"}]}

        response = client.put("/api/v1/dreams/u1", json=body, headers=headers("u1"))

        body = assert_failure(response, 422, "validation")
        assert "ghost" in body["errors"]["message"][0]

    def test_dream_progress_is_bounded(self, client, store):
        seed_user(store, "u1")
        body = {"dreams": [{"id": "d1", "title": "Too far", "progress": 150}]}

        response = client.put("/api/v1/dreams/u1", json=body, headers=headers("u1"))

        assert_failure(response, 422, "validation")

    def test_connect_lifecycle(self, client, store):
        seed_user(store, "u1")
        connect = {"id": "k1", "with_whom": "Sam", "with_whom_id": "u2", "when": "2025-01-16"}

        saved = client.put("/api/v1/connects/u1/k1", json=connect, headers=headers("u1"))
        listed = client.get("/api/v1/connects/u1", headers=headers("u1"))
        deleted = client.delete("/api/v1/connects/u1/k1", headers=headers("u1"))

        assert data_of(saved)["created_at"] is not None
        assert [c["id"] for c in data_of(listed)] == ["k1"]
        assert data_of(deleted) == {"id": "k1"}
        assert store._dump("connects") == []

    def test_connect_id_must_match_url(self, client, store):
        seed_user(store, "u1")
        connect = {"id": "k2", "with_whom": "Sam", "with_whom_id": "u2"}

        response = client.put("/api/v1/connects/u1/k1", json=connect, headers=headers("u1"))

        assert_failure(response, 422, "validation")

    def test_scoring_defaults_to_empty_year(self, client, store):
        seed_user(store, "u1")

        data = data_of(client.get("/api/v1/scoring/u1/2025", headers=headers("u1")))

        assert data == {"year": 2025, "entries": [], "total_score": 0}

    def test_scoring_entries_must_fall_in_year(self, client, store):
        seed_user(store, "u1")
        body = {
            "year": 2025,
            "entries": [{"id": "s1", "entry_date": "2024-12-31", "activity": "Connect", "points": 5}],
        }

        response = client.put("/api/v1/scoring/u1/2025", json=body, headers=headers("u1"))

        assert_failure(response, 422, "validation")

    def test_scoring_total_is_computed(self, client, store):
        seed_user(store, "u1")
        body = {
            "year": 2025,
            "entries": [
                {"id": "s1", "entry_date": "2025-01-02", "activity": "Connect", "points": 5},
                {"id": "s2", "entry_date": "2025-01-09", "activity": "Weekly goal", "points": 2},
            ],
        }

        data = data_of(client.put("/api/v1/scoring/u1/2025", json=body, headers=headers("u1")))

        assert data["total_score"] == 7

    def test_year_out_of_range_is_rejected(self, client, store):
        seed_user(store, "u1")

        response = client.get("/api/v1/scoring/u1/1999", headers=headers("u1"))

        assert_failure(response, 422, "validation")
