"""
Playoff bracket generation against stored pool play results, and manual
team swaps between bracket slots before play starts.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlmodel import Session

from app.models.match import Match, MatchPhase, MatchStatus
from app.models.tournament import Tournament
from app.services.bracket_generator import DEFAULT_PLAYOFF_COURTS, BracketResult, generate_brackets
from app.services.errors import PreconditionFailure, ValidationError, VersionConflictError
from app.services.pool_play_service import load_checked_in_roster, load_pool_results

logger = logging.getLogger(__name__)

SLOTS = ("team1", "team2")


def generate_and_persist_brackets(
    session: Session,
    tournament: Tournament,
    advancement_per_pool: int,
    court_count: Optional[int] = None,
    now: Optional[datetime] = None,
) -> BracketResult:
    """
    Build and store every category bracket for a tournament.

    Bye matches are stored completed with their winner already advanced into
    round 2. The tournament is flagged so brackets are generated only once.

    Raises:
        PreconditionFailure: brackets already exist, or no completed pool play match
        ValidationError: advancement_per_pool or court_count < 1
    """
    if tournament.brackets_generated:
        raise PreconditionFailure("Brackets have already been generated for this tournament")

    pool_results = load_pool_results(session, tournament.id)
    if not pool_results:
        raise PreconditionFailure("Pool play must be generated before brackets")
    if not any(r.status == MatchStatus.completed for r in pool_results):
        raise PreconditionFailure("No pool play match has been completed yet")

    roster = load_checked_in_roster(session, tournament.id)

    result = generate_brackets(
        pool_results,
        roster,
        advancement_per_pool=advancement_per_pool,
        court_count=court_count or DEFAULT_PLAYOFF_COURTS,
    )

    completed_at = now or datetime.utcnow()
    for m in result.matches:
        is_completed = m.status == MatchStatus.completed
        session.add(
            Match(
                tournament_id=tournament.id,
                phase=MatchPhase.playoffs,
                round_number=m.round_number,
                match_number=m.match_number,
                category=m.category,
                bracket_position=m.bracket_position,
                team1_id=m.team1_id,
                team2_id=m.team2_id,
                referee_team_id=m.referee_team_id,
                court_number=m.court_number,
                status=m.status,
                winner_id=m.winner_id,
                completed_at=completed_at if is_completed else None,
            )
        )

    tournament.brackets_generated = True
    tournament.advancement_per_pool = advancement_per_pool
    tournament.playoff_summary = result.summary()
    tournament.updated_at = datetime.utcnow()
    session.add(tournament)
    session.commit()
    session.refresh(tournament)

    logger.info(
        "Tournament %s: %d brackets, %d playoff matches, omitted categories %s",
        tournament.id,
        len(result.brackets),
        len(result.matches),
        result.omitted_categories,
    )
    return result


def _require_swappable(match: Match, slot: str) -> None:
    if slot not in SLOTS:
        raise ValidationError(f"slot must be one of {SLOTS}, got {slot!r}")
    if match.phase != MatchPhase.playoffs:
        raise ValidationError(f"Match {match.id} is not a playoff match")
    if match.status != MatchStatus.scheduled:
        raise PreconditionFailure(f"Match {match.id} has already started")
    if match.team1_id is None or match.team2_id is None:
        raise PreconditionFailure(f"Match {match.id} is a bye or still waiting on a team")


def swap_bracket_teams(
    session: Session,
    match: Match,
    slot: str,
    other_match: Match,
    other_slot: str,
    expected_version: Optional[int] = None,
    other_expected_version: Optional[int] = None,
) -> List[Match]:
    """
    Exchange the teams in two playoff slots of the same category.

    Both matches must be scheduled and have both teams set. Each match is
    written with a compare-and-swap on `version`; if either changed since it
    was read nothing is written.

    Raises:
        ValidationError: unknown slot, non-playoff match, categories differ,
            same slot twice, or a team would referee its own match
        PreconditionFailure: a match has started or is a bye
        VersionConflictError: a match was modified concurrently
    """
    _require_swappable(match, slot)
    _require_swappable(other_match, other_slot)
    if match.tournament_id != other_match.tournament_id or match.category != other_match.category:
        raise ValidationError("Teams can only be swapped within one category bracket")

    same_match = match.id == other_match.id
    if same_match and slot == other_slot:
        raise ValidationError("Cannot swap a slot with itself")

    versions = {match.id: match.version, other_match.id: other_match.version}
    for m, expected in ((match, expected_version), (other_match, other_expected_version)):
        if expected is not None and expected != m.version:
            raise VersionConflictError(m.id, expected, m.version)

    team = getattr(match, f"{slot}_id")
    other_team = getattr(other_match, f"{other_slot}_id")

    new_slots = {
        match.id: {"team1_id": match.team1_id, "team2_id": match.team2_id},
        other_match.id: {"team1_id": other_match.team1_id, "team2_id": other_match.team2_id},
    }
    new_slots[match.id][f"{slot}_id"] = other_team
    new_slots[other_match.id][f"{other_slot}_id"] = team

    referees = {match.id: match.referee_team_id, other_match.id: other_match.referee_team_id}
    for match_id, slots in new_slots.items():
        if referees[match_id] is not None and referees[match_id] in slots.values():
            raise ValidationError(f"Team {referees[match_id]} would referee its own match {match_id}")

    for match_id, slots in new_slots.items():
        version = versions[match_id]
        result = session.execute(
            update(Match)
            .where(
                Match.id == match_id,
                Match.version == version,
                Match.status == MatchStatus.scheduled,
            )
            .values(version=version + 1, **slots)
        )
        if result.rowcount == 0:
            session.rollback()
            stale = session.get(Match, match_id)
            session.refresh(stale)
            raise VersionConflictError(match_id, version, stale.version)

    session.commit()
    session.refresh(match)
    if not same_match:
        session.refresh(other_match)

    logger.info(
        "Swapped team %s (match %s %s) with team %s (match %s %s)",
        team,
        match.id,
        slot,
        other_team,
        other_match.id,
        other_slot,
    )
    return [match] if same_match else [match, other_match]
