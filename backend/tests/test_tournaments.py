"""
Tests for tournament, game format and team endpoints.
"""

from fastapi.testclient import TestClient


def _create_tournament(client: TestClient, **overrides) -> dict:
    payload = {"name": "Spring Classic", "location": "Beach Courts"}
    payload.update(overrides)
    response = client.post("/api/tournaments", json=payload)
    assert response.status_code == 201
    return response.json()


def test_create_and_get_tournament(client: TestClient):
    created = _create_tournament(client)
    assert created["sets_per_game"] == 3
    assert created["points_per_set"] == 25
    assert created["brackets_generated"] is False

    response = client.get(f"/api/tournaments/{created['id']}")
    assert response.status_code == 200
    assert response.json()["name"] == "Spring Classic"


def test_get_missing_tournament(client: TestClient):
    assert client.get("/api/tournaments/999").status_code == 404


def test_create_rejects_bad_format(client: TestClient):
    response = client.post("/api/tournaments", json={"name": "Bad", "sets_per_game": 0})
    assert response.status_code == 422


def test_update_format(client: TestClient):
    tournament = _create_tournament(client)
    response = client.put(
        f"/api/tournaments/{tournament['id']}/format",
        json={
            "points_per_set": 21,
            "uses_phase_formats": True,
            "pool_play_format": {"sets_per_game": 1, "points_per_set": 21},
        },
    )
    assert response.status_code == 200
    data = response.json()
    assert data["points_per_set"] == 21
    assert data["sets_per_game"] == 3
    assert data["uses_phase_formats"] is True
    assert data["pool_play_format"] == {
        "sets_per_game": 1,
        "points_per_set": 21,
        "must_win_by": 2,
        "deciding_set_points": 15,
    }
    assert data["playoff_format"] is None


def test_update_format_rejects_invalid(client: TestClient):
    tournament = _create_tournament(client)
    response = client.put(f"/api/tournaments/{tournament['id']}/format", json={"must_win_by": 0})
    assert response.status_code == 422


def test_game_format_presets(client: TestClient):
    response = client.get("/api/game-format-presets")
    assert response.status_code == 200
    presets = response.json()
    assert [p["name"] for p in presets] == ["Quick Format", "Standard", "Championship"]
    assert presets[1]["format"]["sets_per_game"] == 3
    assert presets[1]["estimated_minutes"] == 37


class TestTeams:
    def test_register_and_list(self, client: TestClient):
        tournament = _create_tournament(client)
        for name in ("Sandstorm", "Dig Deep"):
            response = client.post(
                f"/api/tournaments/{tournament['id']}/teams",
                json={"name": name, "division": "Mens", "skill_level": " BB "},
            )
            assert response.status_code == 201
            assert response.json()["check_in_status"] == "pending"

        teams = client.get(f"/api/tournaments/{tournament['id']}/teams").json()
        assert [t["name"] for t in teams] == ["Sandstorm", "Dig Deep"]
        assert teams[0]["division"] == "mens"
        assert teams[0]["skill_level"] == "bb"

    def test_duplicate_name_rejected(self, client: TestClient):
        tournament = _create_tournament(client)
        url = f"/api/tournaments/{tournament['id']}/teams"
        assert client.post(url, json={"name": "Sandstorm"}).status_code == 201
        assert client.post(url, json={"name": "Sandstorm"}).status_code == 409

    def test_check_in(self, client: TestClient):
        tournament = _create_tournament(client)
        team = client.post(f"/api/tournaments/{tournament['id']}/teams", json={"name": "Sandstorm"}).json()

        response = client.post(f"/api/tournaments/{tournament['id']}/teams/{team['id']}/check-in")
        assert response.status_code == 200
        first = response.json()
        assert first["check_in_status"] == "checked_in"
        assert first["checked_in_at"] is not None

        again = client.post(f"/api/tournaments/{tournament['id']}/teams/{team['id']}/check-in").json()
        assert again["checked_in_at"] == first["checked_in_at"]

    def test_check_in_unknown_team(self, client: TestClient):
        tournament = _create_tournament(client)
        assert client.post(f"/api/tournaments/{tournament['id']}/teams/42/check-in").status_code == 404


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
