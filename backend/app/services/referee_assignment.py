"""
Referee Assignment

Each match is officiated by a team that is not playing in it. Duties are
load-balanced: the team with the fewest duties so far is chosen, ties broken by
roster order. Matches are processed in generation order.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Sequence

from app.services.pool_play_generator import PoolMatch
from app.services.roster import RosterTeam

logger = logging.getLogger(__name__)

MIN_TEAMS_FOR_REFEREES = 3


def assign_referees(matches: Sequence[PoolMatch], roster: Sequence[RosterTeam]) -> List[PoolMatch]:
    """
    Return new matches with referee_team_id set.

    If the roster has fewer than three distinct teams no match can have a
    neutral referee; matches are returned with referee_team_id left unset.
    """
    team_ids = list(dict.fromkeys(t.id for t in roster))
    if len(team_ids) < MIN_TEAMS_FOR_REFEREES:
        logger.warning(
            "Referee assignment skipped: %d distinct teams (need %d)", len(team_ids), MIN_TEAMS_FOR_REFEREES
        )
        return [replace(m, referee_team_id=None) for m in matches]

    duties: Dict[int, int] = {team_id: 0 for team_id in team_ids}
    order = {team_id: idx for idx, team_id in enumerate(team_ids)}

    assigned: List[PoolMatch] = []
    for match in matches:
        candidates = [tid for tid in team_ids if tid not in match.team_ids]
        referee_id = min(candidates, key=lambda tid: (duties[tid], order[tid]))
        duties[referee_id] += 1
        assigned.append(replace(match, referee_team_id=referee_id))

    return assigned
