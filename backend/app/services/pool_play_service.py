"""
Pool Play Schedule - one-shot generation of the pool play phase.

Pipeline:
1. Group checked-in teams by category and build pools
2. Generate round-robin matches per pool
3. Assign referees (load-balanced over the full roster)
4. Assign courts and start times (rest-aware)

The whole schedule is computed before anything is written; rows are added in
a single commit.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Union

from sqlmodel import Session, select

from app.models.match import Match, MatchPhase, MatchStatus
from app.models.team import CheckInStatus, Team
from app.models.tournament import Tournament
from app.services.court_scheduler import DEFAULT_WARMUP_MINUTES, schedule_matches
from app.services.errors import PreconditionFailure, ValidationError
from app.services.pool_play_generator import Pool, PoolMatch, generate_category_pools
from app.services.referee_assignment import assign_referees
from app.services.roster import RosterTeam, sort_roster
from app.services.standings import (
    PoolCompletionStatus,
    PoolResult,
    check_pool_completion,
    get_advancement_recommendation,
)

logger = logging.getLogger(__name__)

MIN_TEAMS_FOR_POOL_PLAY = 4


@dataclass
class PoolPlaySchedule:
    pools: List[Pool]
    matches: List[PoolMatch]
    required_courts: int
    category_breakdown: Dict[str, Dict[str, int]] = field(default_factory=dict)


def parse_first_game_time(value: Union[str, datetime]) -> datetime:
    """Accept a datetime or an ISO-8601 string."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"first_game_time must be an ISO-8601 datetime, got {value!r}")
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValidationError(f"Unparseable first_game_time: {value!r}") from exc


def generate_pool_play(
    roster: Sequence[RosterTeam],
    first_game_time: Union[str, datetime],
    match_duration: int,
    warmup_duration: int = DEFAULT_WARMUP_MINUTES,
    court_count: Optional[int] = None,
) -> PoolPlaySchedule:
    """
    Build the complete pool play schedule for a roster.

    The roster must be in canonical order (see roster.sort_roster): pool
    membership and referee rotation follow it. required_courts is one court
    per pool; court_count overrides the courts actually used.
    """
    start = parse_first_game_time(first_game_time)
    if not roster:
        raise ValidationError("Cannot generate pool play for an empty roster")
    if match_duration <= 0:
        raise ValidationError(f"match_duration must be positive, got {match_duration}")
    if court_count is not None and court_count <= 0:
        raise ValidationError(f"court_count must be positive, got {court_count}")

    pools, matches, breakdown = generate_category_pools(roster)
    required_courts = len(pools)

    with_referees = assign_referees(matches, roster)
    scheduled = schedule_matches(
        with_referees,
        first_game_time=start,
        match_duration=match_duration,
        court_count=court_count or required_courts,
        warmup_duration=warmup_duration,
    )

    logger.info(
        "Pool play generated: %d teams, %d pools, %d matches, %d courts",
        len(roster),
        len(pools),
        len(scheduled),
        court_count or required_courts,
    )
    return PoolPlaySchedule(
        pools=pools,
        matches=scheduled,
        required_courts=required_courts,
        category_breakdown=breakdown,
    )


def team_to_roster(team: Team) -> RosterTeam:
    return RosterTeam(id=team.id, name=team.name, skill_level=team.skill_level, division=team.division)


def load_checked_in_roster(session: Session, tournament_id: int) -> List[RosterTeam]:
    teams = session.exec(
        select(Team).where(Team.tournament_id == tournament_id, Team.check_in_status == CheckInStatus.checked_in)
    ).all()
    return sort_roster(team_to_roster(t) for t in teams)


def generate_and_persist_pool_play(
    session: Session,
    tournament: Tournament,
    first_game_time: Union[str, datetime],
    match_duration: int,
    warmup_duration: int = DEFAULT_WARMUP_MINUTES,
    court_count: Optional[int] = None,
) -> PoolPlaySchedule:
    """
    Generate pool play for a tournament's checked-in teams and store the matches.

    Raises:
        PreconditionFailure: fewer than 4 checked-in teams, or pool play exists
        ValidationError: malformed time/duration/court input
    """
    start = parse_first_game_time(first_game_time)

    existing = session.exec(
        select(Match).where(Match.tournament_id == tournament.id, Match.phase == MatchPhase.pool_play)
    ).first()
    if existing:
        raise PreconditionFailure("Pool play has already been generated for this tournament")

    roster = load_checked_in_roster(session, tournament.id)
    if len(roster) < MIN_TEAMS_FOR_POOL_PLAY:
        raise PreconditionFailure(
            f"At least {MIN_TEAMS_FOR_POOL_PLAY} checked-in teams are required, found {len(roster)}"
        )

    schedule = generate_pool_play(
        roster,
        first_game_time=start,
        match_duration=match_duration,
        warmup_duration=warmup_duration,
        court_count=court_count,
    )

    for m in schedule.matches:
        session.add(
            Match(
                tournament_id=tournament.id,
                phase=MatchPhase.pool_play,
                round_number=m.round_number,
                match_number=m.match_number,
                category=m.category,
                pool_name=m.pool_name,
                team1_id=m.team1_id,
                team2_id=m.team2_id,
                referee_team_id=m.referee_team_id,
                court_number=m.court_number,
                scheduled_time=m.scheduled_time,
                status=MatchStatus.scheduled,
            )
        )
    session.commit()
    return schedule


# ============================================================================
# Progress
# ============================================================================


def load_pool_matches(session: Session, tournament_id: int) -> List[Match]:
    return session.exec(
        select(Match)
        .where(Match.tournament_id == tournament_id, Match.phase == MatchPhase.pool_play)
        .order_by(Match.id)
    ).all()


def match_to_pool_result(match: Match) -> PoolResult:
    return PoolResult(
        pool_name=match.pool_name,
        category=match.category,
        team1_id=match.team1_id,
        team2_id=match.team2_id,
        status=match.status,
        sets_won_team1=match.sets_won_team1,
        sets_won_team2=match.sets_won_team2,
    )


def load_pool_results(session: Session, tournament_id: int) -> List[PoolResult]:
    return [match_to_pool_result(m) for m in load_pool_matches(session, tournament_id)]


def get_pool_play_status(session: Session, tournament_id: int) -> PoolCompletionStatus:
    return check_pool_completion(load_pool_results(session, tournament_id))


def get_tournament_advancement_recommendation(session: Session, tournament_id: int) -> Dict:
    checked_in = len(load_checked_in_roster(session, tournament_id))
    recommendation = get_advancement_recommendation(checked_in)
    recommendation["total_teams"] = checked_in
    return recommendation
