"""
Tests for court/time assignment and rest enforcement in pool play.
"""

from datetime import datetime, timedelta

import pytest

from app.services.court_scheduler import COURT_TRANSITION_MINUTES, court_for_pool, schedule_matches
from app.services.errors import ValidationError
from app.services.pool_play_generator import generate_category_pools
from app.services.referee_assignment import assign_referees
from app.services.roster import RosterTeam
from app.utils.rest_rules import RestStateTracker, find_rest_violations

START = datetime(2026, 5, 2, 9, 0)
DURATION = 30
WARMUP = 7


def _refereed_matches(n: int):
    roster = [RosterTeam(id=i, name=f"Team {i}") for i in range(1, n + 1)]
    _, matches, _ = generate_category_pools(roster)
    return assign_referees(matches, roster)


def _bookings(matches):
    return [(m.scheduled_time, (m.team1_id, m.team2_id, m.referee_team_id)) for m in matches]


class TestRestStateTracker:
    def test_unbooked_team_starts_immediately(self):
        tracker = RestStateTracker(30)
        assert tracker.earliest_start((1, 2, None), START) == START

    def test_pushes_past_recent_booking(self):
        tracker = RestStateTracker(30)
        tracker.book((1,), START)
        assert tracker.earliest_start((1,), START + timedelta(minutes=10)) == START + timedelta(minutes=30)

    def test_pushes_past_later_booking(self):
        tracker = RestStateTracker(30)
        tracker.book((1,), START)
        assert tracker.earliest_start((1,), START - timedelta(minutes=20)) == START + timedelta(minutes=30)

    def test_gap_exactly_min_rest_is_allowed(self):
        tracker = RestStateTracker(30)
        tracker.book((1,), START)
        candidate = START + timedelta(minutes=30)
        assert tracker.earliest_start((1,), candidate) == candidate

    def test_null_team_ids_are_not_booked(self):
        tracker = RestStateTracker(30)
        tracker.book((1, None), START)
        tracker.book((1,), START + timedelta(minutes=45))
        assert list(tracker.team_states) == [1]
        assert tracker.team_states[1].booked_starts == [START, START + timedelta(minutes=45)]


class TestFindRestViolations:
    def test_flags_close_bookings(self):
        bookings = [(START, (1, 2)), (START + timedelta(minutes=20), (1, 3))]
        violations = find_rest_violations(bookings, 37)
        assert len(violations) == 1
        assert violations[0].team_id == 1
        assert violations[0].to_dict()["actual_gap_minutes"] == 20

    def test_ignores_unscheduled(self):
        assert find_rest_violations([(None, (1, 2)), (START, (1, 2))], 37) == []


class TestScheduleMatches:
    def test_court_for_pool_wraps(self):
        assert [court_for_pool(i, 2) for i in range(5)] == [1, 2, 1, 2, 1]

    def test_each_pool_keeps_its_court(self):
        scheduled = schedule_matches(_refereed_matches(8), START, DURATION, warmup_duration=WARMUP)
        courts_by_pool = {}
        for match in scheduled:
            courts_by_pool.setdefault(match.pool_name, set()).add(match.court_number)
        assert courts_by_pool == {"open-A": {1}, "open-B": {2}}

    def test_output_keeps_input_order(self):
        matches = _refereed_matches(8)
        scheduled = schedule_matches(matches, START, DURATION, warmup_duration=WARMUP)
        assert [(m.pool_name, m.match_number) for m in scheduled] == [(m.pool_name, m.match_number) for m in matches]

    @pytest.mark.parametrize("team_count", [4, 8, 10, 13, 17])
    def test_no_rest_violations(self, team_count):
        scheduled = schedule_matches(_refereed_matches(team_count), START, DURATION, warmup_duration=WARMUP)
        assert find_rest_violations(_bookings(scheduled), DURATION + WARMUP) == []

    @pytest.mark.parametrize("court_count", [None, 1, 2])
    def test_court_never_double_booked(self, court_count):
        scheduled = schedule_matches(
            _refereed_matches(10), START, DURATION, court_count=court_count, warmup_duration=WARMUP
        )
        step = timedelta(minutes=DURATION + WARMUP + COURT_TRANSITION_MINUTES)
        by_court = {}
        for match in scheduled:
            by_court.setdefault(match.court_number, []).append(match.scheduled_time)
        for starts in by_court.values():
            starts.sort()
            for earlier, later in zip(starts, starts[1:]):
                assert later - earlier >= step

    def test_single_pool_runs_back_to_back(self):
        scheduled = schedule_matches(_refereed_matches(4), START, DURATION, warmup_duration=WARMUP)
        step = timedelta(minutes=DURATION + WARMUP + COURT_TRANSITION_MINUTES)
        assert [m.scheduled_time for m in scheduled] == [START + step * i for i in range(6)]

    def test_invalid_inputs(self):
        matches = _refereed_matches(4)
        with pytest.raises(ValidationError):
            schedule_matches(matches, START, 0)
        with pytest.raises(ValidationError):
            schedule_matches(matches, START, DURATION, court_count=0)
        with pytest.raises(ValidationError):
            schedule_matches(matches, START, DURATION, warmup_duration=-1)
