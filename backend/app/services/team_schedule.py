"""
Per-team schedule: every match a team plays or referees, in time order.

Pool matches carry a start time; playoff matches usually do not and are
listed after them in bracket order.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlmodel import Session, select

from app.models.match import Match, MatchPhase
from app.models.team import Team

ROLE_PLAYING = "playing"
ROLE_REFEREEING = "refereeing"

_PHASE_ORDER = {MatchPhase.pool_play.value: 0, MatchPhase.playoffs.value: 1}


@dataclass
class ScheduleItem:
    match_id: int
    role: str
    phase: str
    status: str
    round_number: int
    scheduled_time: Optional[datetime]
    court_number: Optional[int]
    pool_name: Optional[str] = None
    bracket_position: Optional[str] = None
    opponent_id: Optional[int] = None
    opponent_name: Optional[str] = None
    minutes_after_previous: Optional[int] = None


def _sort_key(match: Match):
    return (
        match.scheduled_time is None,
        match.scheduled_time or datetime.min,
        _PHASE_ORDER.get(match.phase, 2),
        match.round_number,
        match.match_number,
        match.id,
    )


def build_team_schedule(team_id: int, matches: List[Match], team_names: Dict[int, str]) -> List[ScheduleItem]:
    items: List[ScheduleItem] = []
    previous_start: Optional[datetime] = None

    for m in sorted(matches, key=_sort_key):
        if team_id in (m.team1_id, m.team2_id):
            role = ROLE_PLAYING
            opponent_id = m.team2_id if m.team1_id == team_id else m.team1_id
        elif m.referee_team_id == team_id:
            role = ROLE_REFEREEING
            opponent_id = None
        else:
            continue

        gap = None
        if m.scheduled_time is not None and previous_start is not None:
            gap = int((m.scheduled_time - previous_start).total_seconds() // 60)
        if m.scheduled_time is not None:
            previous_start = m.scheduled_time

        items.append(
            ScheduleItem(
                match_id=m.id,
                role=role,
                phase=m.phase,
                status=m.status,
                round_number=m.round_number,
                scheduled_time=m.scheduled_time,
                court_number=m.court_number,
                pool_name=m.pool_name,
                bracket_position=m.bracket_position,
                opponent_id=opponent_id,
                opponent_name=team_names.get(opponent_id) if opponent_id is not None else None,
                minutes_after_previous=gap,
            )
        )
    return items


def get_team_schedule(session: Session, team: Team) -> List[ScheduleItem]:
    """Load a team's playing and refereeing assignments for its tournament."""
    matches = session.exec(
        select(Match).where(
            Match.tournament_id == team.tournament_id,
            or_(
                Match.team1_id == team.id,
                Match.team2_id == team.id,
                Match.referee_team_id == team.id,
            ),
        )
    ).all()
    teams = session.exec(select(Team).where(Team.tournament_id == team.tournament_id)).all()
    return build_team_schedule(team.id, list(matches), {t.id: t.name for t in teams})
