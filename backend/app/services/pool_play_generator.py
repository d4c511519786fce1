"""
Pool Play Generator

Groups a roster by category, splits each category into pools using the pool
sizing rules, and builds round-robin matches per pool.

Round-robin pairings are built round by round: each round greedily takes every
unplayed pair whose teams are both still free in that round, walking pairs in
(i, j) order. A team therefore never plays twice in one round and its matches
are spread out instead of stacked back to back.
"""

import logging
import string
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from app.services.pool_config import calculate_optimal_pool_configuration
from app.services.roster import Category, RosterTeam

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pool:
    name: str
    category: str
    teams: Tuple[RosterTeam, ...]

    @property
    def team_ids(self) -> List[int]:
        return [t.id for t in self.teams]


@dataclass(frozen=True)
class PoolMatch:
    """A pool play match. Referee, court and time are filled by later stages."""

    pool_name: str
    category: str
    round_number: int
    match_number: int
    team1_id: int
    team2_id: int
    referee_team_id: Optional[int] = None
    court_number: Optional[int] = None
    scheduled_time: Optional[datetime] = None

    @property
    def team_ids(self) -> Tuple[int, int]:
        return (self.team1_id, self.team2_id)


def group_teams_by_category(teams: Sequence[RosterTeam]) -> "OrderedDict[str, List[RosterTeam]]":
    """
    Group teams by category key, keeping first-seen category order and the
    input order of teams within each category.
    """
    groups: "OrderedDict[str, List[RosterTeam]]" = OrderedDict()
    for team in teams:
        groups.setdefault(team.category.key, []).append(team)
    return groups


def pool_label(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA."""
    letters = string.ascii_uppercase
    label = ""
    index += 1
    while index > 0:
        index, rem = divmod(index - 1, 26)
        label = letters[rem] + label
    return label


def generate_pools(teams: Sequence[RosterTeam], category: Optional[Category] = None) -> List[Pool]:
    """
    Split one category's teams into pools named "<category>-A", "<category>-B", ...

    Teams are assigned to pools in input order (contiguous blocks).
    """
    category_key = category.key if category is not None else None
    config = calculate_optimal_pool_configuration(len(teams))

    pools: List[Pool] = []
    cursor = 0
    for pool_index, size in enumerate(config.teams_per_pool):
        base = pool_label(pool_index)
        name = f"{category_key}-{base}" if category_key else base
        members = tuple(teams[cursor:cursor + size])
        cursor += size
        pools.append(Pool(name=name, category=category_key or "", teams=members))
    return pools


def rr_pairings_by_round(team_count: int) -> List[Tuple[int, int, int]]:
    """
    Round-based pairings for a pool. Returns (round_index, idx_a, idx_b) tuples,
    1-based rounds, 0-based pool positions, in play order.

    Pool of 4: R1 (0,1) (2,3); R2 (0,2) (1,3); R3 (0,3) (1,2).
    """
    all_pairs = [(i, j) for i in range(team_count) for j in range(i + 1, team_count)]
    used = set()
    result: List[Tuple[int, int, int]] = []
    round_index = 0

    while len(used) < len(all_pairs):
        busy = set()
        this_round = []
        for pair in all_pairs:
            a, b = pair
            if pair in used or a in busy or b in busy:
                continue
            this_round.append(pair)
            used.add(pair)
            busy.update(pair)
        if not this_round:
            break
        round_index += 1
        result.extend((round_index, a, b) for a, b in this_round)

    return result


def generate_round_robin_matches(pool: Pool) -> List[PoolMatch]:
    """Every unordered pair of the pool exactly once, numbered 1..k(k-1)/2 in play order."""
    if len(pool.teams) < 2:
        return []

    matches: List[PoolMatch] = []
    for match_number, (round_index, idx_a, idx_b) in enumerate(rr_pairings_by_round(len(pool.teams)), start=1):
        matches.append(
            PoolMatch(
                pool_name=pool.name,
                category=pool.category,
                round_number=round_index,
                match_number=match_number,
                team1_id=pool.teams[idx_a].id,
                team2_id=pool.teams[idx_b].id,
            )
        )
    return matches


def generate_category_pools(
    teams: Sequence[RosterTeam],
) -> Tuple[List[Pool], List[PoolMatch], Dict[str, Dict[str, int]]]:
    """
    Build pools and unscheduled round-robin matches for every category.

    Returns (pools, matches, breakdown) where breakdown maps category key to
    {"pools", "matches", "teams"} counts.
    """
    all_pools: List[Pool] = []
    all_matches: List[PoolMatch] = []
    breakdown: Dict[str, Dict[str, int]] = {}

    for category_key, category_teams in group_teams_by_category(teams).items():
        category = category_teams[0].category
        pools = generate_pools(category_teams, category)
        category_matches: List[PoolMatch] = []
        for pool in pools:
            category_matches.extend(generate_round_robin_matches(pool))

        breakdown[category_key] = {
            "pools": len(pools),
            "matches": len(category_matches),
            "teams": len(category_teams),
        }
        logger.debug(
            "Category %s: %d teams -> pools %s, %d matches",
            category_key,
            len(category_teams),
            [len(p.teams) for p in pools],
            len(category_matches),
        )
        all_pools.extend(pools)
        all_matches.extend(category_matches)

    return all_pools, all_matches, breakdown
