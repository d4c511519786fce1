"""
Rest Rules - team rest enforcement for pool play scheduling

A team is busy whenever it plays or referees. Any two of its bookings must
start at least `min_rest_minutes` apart (match duration + warm-up).
"""

from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple


class TeamRestState:
    """Tracks booked start times for a single team"""

    def __init__(self):
        self.booked_starts: List[datetime] = []

    def update(self, start_time: datetime):
        """Record a new booking"""
        self.booked_starts.append(start_time)


class RestStateTracker:
    """Tracks rest state for all teams during scheduling"""

    def __init__(self, min_rest_minutes: int):
        self.min_rest = timedelta(minutes=min_rest_minutes)
        self.team_states: Dict[int, TeamRestState] = {}

    def get_or_create_state(self, team_id: int) -> TeamRestState:
        if team_id not in self.team_states:
            self.team_states[team_id] = TeamRestState()
        return self.team_states[team_id]

    def book(self, team_ids: Iterable[Optional[int]], start_time: datetime):
        for team_id in team_ids:
            if team_id is not None:
                self.get_or_create_state(team_id).update(start_time)

    def earliest_start(self, team_ids: Iterable[Optional[int]], not_before: datetime) -> datetime:
        """
        Earliest start >= not_before that is at least min_rest away from every
        booking of every given team (null team ids are skipped).
        """
        booked = sorted(
            start
            for team_id in team_ids
            if team_id is not None and team_id in self.team_states
            for start in self.team_states[team_id].booked_starts
        )
        candidate = not_before
        moved = True
        while moved:
            moved = False
            for start in booked:
                if abs(candidate - start) < self.min_rest:
                    candidate = start + self.min_rest
                    moved = True
        return candidate


class RestViolation:
    """Represents two bookings of one team closer than the minimum rest"""

    def __init__(self, team_id: int, first_start: datetime, second_start: datetime, required_rest_minutes: int):
        self.team_id = team_id
        self.first_start = first_start
        self.second_start = second_start
        self.required_rest_minutes = required_rest_minutes
        self.actual_gap_minutes = (second_start - first_start).total_seconds() / 60

    def to_dict(self):
        return {
            "team_id": self.team_id,
            "first_start": self.first_start.isoformat(),
            "second_start": self.second_start.isoformat(),
            "required_rest_minutes": self.required_rest_minutes,
            "actual_gap_minutes": self.actual_gap_minutes,
        }


def find_rest_violations(
    bookings: Sequence[Tuple[Optional[datetime], Sequence[Optional[int]]]], min_rest_minutes: int
) -> List[RestViolation]:
    """
    Check (start_time, team_ids) bookings for rest violations.

    Bookings without a start time are ignored.
    """
    per_team: Dict[int, List[datetime]] = {}
    for start, team_ids in bookings:
        if start is None:
            continue
        for team_id in team_ids:
            if team_id is not None:
                per_team.setdefault(team_id, []).append(start)

    violations: List[RestViolation] = []
    required = timedelta(minutes=min_rest_minutes)
    for team_id in sorted(per_team):
        starts = sorted(per_team[team_id])
        for earlier, later in zip(starts, starts[1:]):
            if later - earlier < required:
                violations.append(RestViolation(team_id, earlier, later, min_rest_minutes))
    return violations
