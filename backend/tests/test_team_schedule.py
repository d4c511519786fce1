"""
Tests for the per-team playing and refereeing schedule.
"""

from datetime import datetime

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from app.models.match import Match
from app.services.team_schedule import ROLE_PLAYING, ROLE_REFEREEING, build_team_schedule


def _match(match_id, team1, team2, referee=None, time=None, phase="pool_play", round_number=1, match_number=1):
    return Match(
        id=match_id,
        tournament_id=1,
        phase=phase,
        round_number=round_number,
        match_number=match_number,
        category="open",
        team1_id=team1,
        team2_id=team2,
        referee_team_id=referee,
        court_number=1,
        scheduled_time=time,
    )


class TestBuildTeamSchedule:
    def test_playing_and_refereeing_in_time_order(self):
        matches = [
            _match(3, 1, 3, time=datetime(2026, 5, 2, 10, 10)),
            _match(1, 1, 2, time=datetime(2026, 5, 2, 9, 0)),
            _match(2, 3, 4, referee=1, time=datetime(2026, 5, 2, 9, 35)),
            _match(4, 2, 4, referee=3, time=datetime(2026, 5, 2, 10, 45)),
        ]
        names = {1: "Aces", 2: "Blockers", 3: "Setters", 4: "Diggers"}

        items = build_team_schedule(1, matches, names)

        assert [(i.match_id, i.role) for i in items] == [(1, ROLE_PLAYING), (2, ROLE_REFEREEING), (3, ROLE_PLAYING)]
        assert items[0].opponent_name == "Blockers"
        assert items[1].opponent_id is None
        assert [i.minutes_after_previous for i in items] == [None, 35, 35]

    def test_opponent_from_either_slot(self):
        items = build_team_schedule(2, [_match(1, 1, 2)], {1: "Aces", 2: "Blockers"})
        assert items[0].opponent_id == 1

    def test_untimed_playoffs_follow_pool_play(self):
        matches = [
            _match(9, 1, None, phase="playoffs", round_number=2),
            _match(8, 1, 2, phase="playoffs", round_number=1),
            _match(1, 1, 3, time=datetime(2026, 5, 2, 9, 0)),
        ]
        items = build_team_schedule(1, matches, {})
        assert [i.match_id for i in items] == [1, 8, 9]
        assert items[2].opponent_id is None
        assert items[1].minutes_after_previous is None

    def test_unrelated_team_has_empty_schedule(self):
        assert build_team_schedule(7, [_match(1, 1, 2, referee=3)], {}) == []


def _pool_play(client: TestClient, team_count: int) -> int:
    tournament = client.post("/api/tournaments", json={"name": "Schedule Test"}).json()
    url = f"/api/tournaments/{tournament['id']}/teams"
    for i in range(team_count):
        client.post(url, json={"name": f"Team {i + 1}", "checked_in": True})
    response = client.post(
        f"/api/tournaments/{tournament['id']}/pool-play/generate",
        json={"first_game_time": "2026-05-02T09:00:00", "match_duration": 30},
    )
    assert response.status_code == 201
    return tournament["id"]


def test_team_schedule_endpoint(client: TestClient, session: Session):
    tournament_id = _pool_play(client, 4)
    team_id = client.get(f"/api/tournaments/{tournament_id}/teams").json()[0]["id"]

    response = client.get(f"/api/tournaments/{tournament_id}/teams/{team_id}/schedule")
    assert response.status_code == 200
    items = response.json()

    matches = session.exec(select(Match).where(Match.tournament_id == tournament_id)).all()
    played = {m.id for m in matches if team_id in (m.team1_id, m.team2_id)}
    refereed = {m.id for m in matches if m.referee_team_id == team_id}

    assert {i["match_id"] for i in items if i["role"] == "playing"} == played
    assert {i["match_id"] for i in items if i["role"] == "refereeing"} == refereed
    assert len(played) == 3
    times = [i["scheduled_time"] for i in items]
    assert times == sorted(times)
    assert all(i["opponent_name"].startswith("Team ") for i in items if i["role"] == "playing")


def test_team_schedule_unknown_team(client: TestClient):
    tournament_id = _pool_play(client, 4)
    assert client.get(f"/api/tournaments/{tournament_id}/teams/9999/schedule").status_code == 404
    assert client.get("/api/tournaments/9999/teams/1/schedule").status_code == 404
