"""
Playoff advancement: when a playoff match completes, place its winner in the
next round's slot (round r match m -> round r+1 match ceil(m/2); odd m fills
team1, even m fills team2).

Slots are filled with a conditional UPDATE (slot IS NULL), so concurrent or
repeated calls advance a winner at most once and never overwrite a different
team.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from app.models.match import Match, MatchPhase, MatchStatus
from app.services.bracket_generator import next_slot
from app.services.errors import ConsistencyError

logger = logging.getLogger(__name__)


def find_next_round_match(session: Session, match: Match) -> Optional[Match]:
    next_round, next_match, _ = next_slot(match.round_number, match.match_number)
    return session.exec(
        select(Match).where(
            Match.tournament_id == match.tournament_id,
            Match.phase == MatchPhase.playoffs,
            Match.category == match.category,
            Match.round_number == next_round,
            Match.match_number == next_match,
        )
    ).first()


def apply_advancement_for_final_match(session: Session, match_id: int) -> int:
    """
    Advance the winner of a completed playoff match.

    Returns the number of downstream slots filled (0 or 1). Idempotent: a slot
    already holding the winner is left alone. Raises ConsistencyError if the
    slot holds a different team.
    """
    match = session.get(Match, match_id)
    if not match:
        return 0
    if match.phase != MatchPhase.playoffs:
        return 0
    if match.status != MatchStatus.completed or match.winner_id is None:
        return 0

    downstream = find_next_round_match(session, match)
    if downstream is None:
        # Final: nothing downstream
        return 0

    _, _, slot = next_slot(match.round_number, match.match_number)
    winner_id = match.winner_id
    if getattr(downstream, slot) == winner_id:
        return 0

    slot_column = getattr(Match, slot)
    result = session.execute(
        update(Match)
        .where(Match.id == downstream.id, slot_column.is_(None))
        .values({slot: winner_id, "version": Match.version + 1})
    )
    if result.rowcount == 0:
        session.rollback()
        session.refresh(downstream)
        occupant = getattr(downstream, slot)
        if occupant == winner_id:
            return 0
        logger.error(
            "Advancement conflict: match %s winner %s -> match %s %s already holds %s",
            match.id,
            winner_id,
            downstream.id,
            slot,
            occupant,
        )
        raise ConsistencyError(
            f"{downstream.bracket_position}: {slot} already holds team {occupant}; "
            f"cannot advance winner {winner_id} from match {match.id}",
            match_id=downstream.id,
        )

    session.commit()
    session.refresh(downstream)
    logger.info("Advanced team %s from match %s into %s (%s)", winner_id, match.id, downstream.id, slot)
    return 1


def resolve_all_dependencies(session: Session, tournament_id: int) -> Dict:
    """
    Re-run advancement for every completed playoff match of a tournament.

    Processes matches by (category, round, match number). Conflicts are
    collected instead of aborting so the rest of the bracket still resolves.

    Returns:
        Dict with matches_processed, teams_advanced, unknown_before,
        unknown_after and conflicts (list of {match_id, detail}).
    """
    unknown_before = _count_unknown(session, tournament_id)

    completed = session.exec(
        select(Match)
        .where(
            Match.tournament_id == tournament_id,
            Match.phase == MatchPhase.playoffs,
            Match.status == MatchStatus.completed,
            Match.winner_id.is_not(None),
        )
        .order_by(Match.category, Match.round_number, Match.match_number)
    ).all()
    match_ids = [m.id for m in completed]

    teams_advanced = 0
    conflicts: List[Dict] = []
    for match_id in match_ids:
        try:
            teams_advanced += apply_advancement_for_final_match(session, match_id)
        except ConsistencyError as exc:
            conflicts.append({"match_id": match_id, "detail": str(exc)})

    session.expire_all()
    return {
        "matches_processed": len(match_ids),
        "teams_advanced": teams_advanced,
        "unknown_before": unknown_before,
        "unknown_after": _count_unknown(session, tournament_id),
        "conflicts": conflicts,
    }


def _count_unknown(session: Session, tournament_id: int) -> int:
    matches = session.exec(
        select(Match).where(Match.tournament_id == tournament_id, Match.phase == MatchPhase.playoffs)
    ).all()
    return sum(1 for m in matches if m.team1_id is None or m.team2_id is None)
