"""
Tests for pool building, round-robin generation and referee assignment.
"""

from collections import Counter
from datetime import datetime

import pytest

from app.services.errors import ValidationError
from app.services.pool_play_generator import (
    generate_category_pools,
    generate_pools,
    pool_label,
    rr_pairings_by_round,
)
from app.services.pool_play_service import generate_pool_play, parse_first_game_time
from app.services.referee_assignment import assign_referees
from app.services.roster import RosterTeam


def _roster(n: int, division=None, skill_level=None, start_id: int = 1):
    return [
        RosterTeam(id=i, name=f"Team {i}", division=division, skill_level=skill_level)
        for i in range(start_id, start_id + n)
    ]


class TestPoolLabels:
    def test_single_letters(self):
        assert pool_label(0) == "A"
        assert pool_label(1) == "B"
        assert pool_label(25) == "Z"

    def test_double_letters(self):
        assert pool_label(26) == "AA"
        assert pool_label(27) == "AB"


class TestPools:
    def test_ten_teams_make_three_pools(self):
        roster = _roster(10)
        pools = generate_pools(roster, roster[0].category)
        assert [len(p.teams) for p in pools] == [4, 4, 2]
        assert [p.name for p in pools] == ["open-A", "open-B", "open-C"]
        # contiguous blocks in roster order
        assert pools[0].team_ids == [1, 2, 3, 4]
        assert pools[2].team_ids == [9, 10]

    def test_categories_never_mix(self):
        roster = _roster(4, "mens", "bb") + _roster(5, "womens", "a", start_id=10)
        pools, matches, breakdown = generate_category_pools(roster)

        assert [p.name for p in pools] == ["mens_bb-A", "womens_a-A"]
        assert breakdown == {
            "mens_bb": {"pools": 1, "matches": 6, "teams": 4},
            "womens_a": {"pools": 1, "matches": 10, "teams": 5},
        }
        by_id = {t.id: t for t in roster}
        for match in matches:
            assert by_id[match.team1_id].category == by_id[match.team2_id].category


class TestRoundRobin:
    def test_pool_of_four_rounds(self):
        assert rr_pairings_by_round(4) == [
            (1, 0, 1),
            (1, 2, 3),
            (2, 0, 2),
            (2, 1, 3),
            (3, 0, 3),
            (3, 1, 2),
        ]

    @pytest.mark.parametrize("size", [2, 3, 4, 5, 6])
    def test_every_pair_once(self, size):
        pairings = rr_pairings_by_round(size)
        pairs = [frozenset((a, b)) for _, a, b in pairings]
        assert len(pairs) == size * (size - 1) // 2
        assert len(set(pairs)) == len(pairs)

    @pytest.mark.parametrize("size", [3, 4, 5, 6])
    def test_no_team_twice_in_a_round(self, size):
        per_round = {}
        for round_index, a, b in rr_pairings_by_round(size):
            seen = per_round.setdefault(round_index, [])
            assert a not in seen and b not in seen
            seen.extend([a, b])

    def test_match_numbers_follow_play_order(self):
        _, matches, _ = generate_category_pools(_roster(4))
        assert [m.match_number for m in matches] == [1, 2, 3, 4, 5, 6]
        assert [m.round_number for m in matches] == [1, 1, 2, 2, 3, 3]
        assert (matches[0].team1_id, matches[0].team2_id) == (1, 2)
        assert (matches[1].team1_id, matches[1].team2_id) == (3, 4)


class TestReferees:
    def test_nobody_referees_own_match(self):
        roster = _roster(10)
        _, matches, _ = generate_category_pools(roster)
        for match in assign_referees(matches, roster):
            assert match.referee_team_id is not None
            assert match.referee_team_id not in match.team_ids

    def test_duties_are_balanced(self):
        roster = _roster(4)
        _, matches, _ = generate_category_pools(roster)
        assigned = assign_referees(matches, roster)
        counts = Counter(m.referee_team_id for m in assigned)
        assert sum(counts.values()) == 6
        assert counts == {1: 2, 2: 2, 3: 1, 4: 1}

    def test_first_assignment_follows_roster_order(self):
        roster = _roster(4)
        _, matches, _ = generate_category_pools(roster)
        assigned = assign_referees(matches, roster)
        assert [m.referee_team_id for m in assigned] == [3, 1, 2, 1, 2, 4]

    def test_two_team_roster_gets_no_referee(self):
        roster = _roster(2)
        _, matches, _ = generate_category_pools(roster)
        assigned = assign_referees(matches, roster)
        assert len(assigned) == 1
        assert assigned[0].referee_team_id is None


class TestGeneratePoolPlay:
    def test_ten_teams(self):
        schedule = generate_pool_play(_roster(10), "2026-05-02T09:00:00", match_duration=30)

        assert [len(p.teams) for p in schedule.pools] == [4, 4, 2]
        assert len(schedule.matches) == 13
        assert schedule.required_courts == 3
        assert schedule.category_breakdown == {"open": {"pools": 3, "matches": 13, "teams": 10}}

        start = datetime(2026, 5, 2, 9, 0)
        for match in schedule.matches:
            assert match.referee_team_id not in match.team_ids
            assert match.court_number in (1, 2, 3)
            assert match.scheduled_time >= start
        assert min(m.scheduled_time for m in schedule.matches) == start

    def test_is_deterministic(self):
        roster = _roster(9)
        first = generate_pool_play(roster, "2026-05-02T09:00:00", match_duration=25)
        second = generate_pool_play(roster, "2026-05-02T09:00:00", match_duration=25)
        assert first.matches == second.matches

    def test_court_count_override(self):
        schedule = generate_pool_play(_roster(8), "2026-05-02T09:00:00", match_duration=30, court_count=1)
        assert schedule.required_courts == 2
        assert {m.court_number for m in schedule.matches} == {1}

    def test_empty_roster_rejected(self):
        with pytest.raises(ValidationError):
            generate_pool_play([], "2026-05-02T09:00:00", match_duration=30)

    def test_non_positive_duration_rejected(self):
        with pytest.raises(ValidationError):
            generate_pool_play(_roster(4), "2026-05-02T09:00:00", match_duration=0)

    def test_unparseable_time_rejected(self):
        with pytest.raises(ValidationError):
            parse_first_game_time("nine o'clock")
        with pytest.raises(ValidationError):
            parse_first_game_time("")

    def test_datetime_passes_through(self):
        value = datetime(2026, 5, 2, 9, 0)
        assert parse_first_game_time(value) is value
