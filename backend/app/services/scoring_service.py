"""
Live scoring against stored matches.

Each operation loads the match, runs the pure state machine, and writes the
new state back with a compare-and-swap on `version`. If another scorekeeper
changed the match in between, nothing is written and VersionConflictError is
raised; there is no merge. Completing a playoff match triggers winner
advancement after the match itself is committed.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from sqlalchemy import update
from sqlmodel import Session

from app.models.match import Match, MatchPhase
from app.models.tournament import Tournament
from app.services import match_state_machine as msm
from app.services.advancement_service import apply_advancement_for_final_match
from app.services.errors import ConsistencyError, VersionConflictError
from app.services.game_format import format_config_for_tournament

logger = logging.getLogger(__name__)


@dataclass
class ScoringResult:
    match: Match
    events: List[msm.ScoreEvent] = field(default_factory=list)
    advanced_count: int = 0
    advancement_error: Optional[str] = None


def match_to_score_state(match: Match) -> msm.ScoreState:
    return msm.ScoreState(
        status=match.status,
        phase=match.phase,
        team1_id=match.team1_id,
        team2_id=match.team2_id,
        current_set=match.current_set,
        team1_score=match.team1_score,
        team2_score=match.team2_score,
        sets_won_team1=match.sets_won_team1,
        sets_won_team2=match.sets_won_team2,
        set_scores=dict(match.set_scores or {}),
        last_switch_threshold=match.last_switch_threshold,
        winner_id=match.winner_id,
        started_at=match.started_at,
        completed_at=match.completed_at,
    )


def _check_expected_version(match: Match, expected_version: Optional[int]) -> int:
    if expected_version is not None and expected_version != match.version:
        raise VersionConflictError(match.id, expected_version, match.version)
    return match.version


def _write_state(session: Session, match: Match, state: msm.ScoreState, version: int) -> Match:
    result = session.execute(
        update(Match)
        .where(Match.id == match.id, Match.version == version)
        .values(
            status=state.status,
            current_set=state.current_set,
            team1_score=state.team1_score,
            team2_score=state.team2_score,
            sets_won_team1=state.sets_won_team1,
            sets_won_team2=state.sets_won_team2,
            set_scores=state.set_scores,
            last_switch_threshold=state.last_switch_threshold,
            winner_id=state.winner_id,
            started_at=state.started_at,
            completed_at=state.completed_at,
            version=version + 1,
        )
    )
    if result.rowcount == 0:
        session.rollback()
        session.refresh(match)
        raise VersionConflictError(match.id, version, match.version)
    session.commit()
    session.refresh(match)
    return match


def _commit_update(
    session: Session, match: Match, score_update: msm.ScoreUpdate, version: int
) -> ScoringResult:
    match = _write_state(session, match, score_update.state, version)
    result = ScoringResult(match=match, events=list(score_update.events))

    if score_update.match_completed:
        logger.info("Match %s completed, winner %s", match.id, match.winner_id)
        if match.phase == MatchPhase.playoffs:
            try:
                result.advanced_count = apply_advancement_for_final_match(session, match.id)
            except ConsistencyError as exc:
                # Match stays completed; the bracket slot needs manual resolution
                logger.error("Advancement failed for match %s: %s", match.id, exc)
                result.advancement_error = str(exc)
            session.refresh(match)
    return result


def start_match(
    session: Session, match: Match, expected_version: Optional[int] = None, now: Optional[datetime] = None
) -> ScoringResult:
    version = _check_expected_version(match, expected_version)
    score_update = msm.start_match(match_to_score_state(match), now=now)
    if score_update.state == match_to_score_state(match):
        return ScoringResult(match=match)
    return _commit_update(session, match, score_update, version)


def apply_point(
    session: Session,
    match: Match,
    side: str,
    delta: int = 1,
    expected_version: Optional[int] = None,
    now: Optional[datetime] = None,
) -> ScoringResult:
    version = _check_expected_version(match, expected_version)
    tournament = session.get(Tournament, match.tournament_id)
    game_format = format_config_for_tournament(tournament).for_phase(match.phase)
    score_update = msm.apply_point(match_to_score_state(match), game_format, side, delta, now=now)
    return _commit_update(session, match, score_update, version)


def apply_manual_score(
    session: Session, match: Match, side: str, value: int, expected_version: Optional[int] = None
) -> ScoringResult:
    version = _check_expected_version(match, expected_version)
    tournament = session.get(Tournament, match.tournament_id)
    game_format = format_config_for_tournament(tournament).for_phase(match.phase)
    score_update = msm.apply_manual_score(match_to_score_state(match), side, value, game_format)
    return _commit_update(session, match, score_update, version)
