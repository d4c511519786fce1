"""
Playoff Bracket Generator

Builds one single-elimination bracket per category from pool play results.

1. Standings per pool (completed matches only).
2. Top N per pool advance (ADVANCE_ALL takes every team), grouped by category.
3. Seeds: pool finishing position first (all pool winners, then all runners-up,
   ...), then the standings comparator.
4. Bracket size = smallest power of two >= advancing teams; empty slots are byes.
5. Round 1 pairs seed i with seed (size + 1 - i). Matches are numbered in
   standard bracket order so the top two seeds can only meet in the final.
6. The best non-advancing team of the category referees round 1.
7. Later rounds are placeholders (both teams TBD).

Bye matches are emitted already completed and their occupant is advanced
into round 2 straight away.
"""

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

from app.services.errors import ConsistencyError, ValidationError
from app.services.roster import RosterTeam, category_lookup
from app.services.standings import PoolResult, Standing, calculate_all_pool_standings, standing_sort_key

logger = logging.getLogger(__name__)

ADVANCE_ALL = 999
DEFAULT_PLAYOFF_COURTS = 4

STATUS_SCHEDULED = "scheduled"
STATUS_COMPLETED = "completed"


@dataclass(frozen=True)
class BracketMatch:
    category: str
    round_number: int
    match_number: int
    bracket_position: str
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    referee_team_id: Optional[int] = None
    court_number: Optional[int] = None
    status: str = STATUS_SCHEDULED
    winner_id: Optional[int] = None
    seed1: Optional[int] = None
    seed2: Optional[int] = None

    @property
    def is_bye(self) -> bool:
        return self.round_number == 1 and (self.team1_id is None) != (self.team2_id is None)


@dataclass
class CategoryBracket:
    category: str
    label: str
    seeds: List[int]
    bracket_size: int
    total_rounds: int
    referee_team_id: Optional[int]
    matches: List[BracketMatch] = field(default_factory=list)

    @property
    def byes(self) -> int:
        return self.bracket_size - len(self.seeds)

    def summary(self) -> Dict:
        return {
            "category": self.category,
            "label": self.label,
            "teams": len(self.seeds),
            "bracket_size": self.bracket_size,
            "rounds": self.total_rounds,
            "byes": self.byes,
            "matches": len(self.matches),
            "referee_team_id": self.referee_team_id,
        }


@dataclass
class BracketResult:
    brackets: List[CategoryBracket]
    omitted_categories: List[str]

    @property
    def matches(self) -> List[BracketMatch]:
        return [m for bracket in self.brackets for m in bracket.matches]

    def summary(self) -> Dict:
        return {
            "categories": [b.summary() for b in self.brackets],
            "omitted_categories": list(self.omitted_categories),
            "total_matches": len(self.matches),
        }


# ============================================================================
# Bracket geometry
# ============================================================================


def bracket_size_for(team_count: int) -> int:
    """Smallest power of two >= team_count (1 for a single team)."""
    if team_count <= 1:
        return 1
    return 1 << (team_count - 1).bit_length()


def bracket_order(bracket_size: int) -> List[int]:
    """
    Standard seed order for round 1.

    For 8: [1, 8, 4, 5, 2, 7, 3, 6] -> 1v8, 4v5, 2v7, 3v6.
    """
    if bracket_size <= 1:
        return [1]
    if bracket_size == 2:
        return [1, 2]
    upper_half = bracket_order(bracket_size // 2)
    result: List[int] = []
    for seed in upper_half:
        result.extend([seed, bracket_size + 1 - seed])
    return result


def bracket_position_name(round_number: int, match_number: int, total_rounds: int, label: str = "") -> str:
    prefix = f"{label} - " if label else ""
    if round_number == total_rounds:
        return f"{prefix}Final"
    if round_number == total_rounds - 1:
        return f"{prefix}{'Semifinal A' if match_number == 1 else 'Semifinal B'}"
    if round_number == total_rounds - 2:
        return f"{prefix}Quarterfinal {match_number}"
    return f"{prefix}Round {round_number} - Match {match_number}"


def next_slot(round_number: int, match_number: int) -> Tuple[int, int, str]:
    """Where the winner of (round, match) goes: (round + 1, ceil(match / 2), slot)."""
    slot = "team1_id" if match_number % 2 == 1 else "team2_id"
    return round_number + 1, (match_number + 1) // 2, slot


# ============================================================================
# Advancement and seeding
# ============================================================================


def _pool_positions(pool_standings: Dict[str, List[Standing]]) -> Dict[int, int]:
    positions: Dict[int, int] = {}
    for standings in pool_standings.values():
        for index, standing in enumerate(standings):
            positions[standing.team_id] = index
    return positions


def seed_order(standings: Sequence[Standing], positions: Dict[int, int]) -> List[Standing]:
    """Pool finishing position first, then the standings comparator. Stable."""
    return sorted(standings, key=lambda s: (positions.get(s.team_id, 0),) + standing_sort_key(s))


def advancing_teams_by_category(
    pool_standings: Dict[str, List[Standing]], advancement_per_pool: int
) -> "OrderedDict[str, List[Standing]]":
    """Top N of every pool grouped by category, in seed order."""
    positions = _pool_positions(pool_standings)
    grouped: "OrderedDict[str, List[Standing]]" = OrderedDict()
    for standings in pool_standings.values():
        advancers = standings if advancement_per_pool == ADVANCE_ALL else standings[:advancement_per_pool]
        for standing in advancers:
            grouped.setdefault(standing.category, []).append(standing)
    return OrderedDict((category, seed_order(teams, positions)) for category, teams in grouped.items())


def first_round_referee(
    pool_standings: Dict[str, List[Standing]], category: str, advancing_ids: Sequence[int]
) -> Optional[int]:
    """Highest-ranked team of the category that did not advance."""
    positions = _pool_positions(pool_standings)
    category_teams = [s for standings in pool_standings.values() for s in standings if s.category == category]
    advancing = set(advancing_ids)
    for standing in seed_order(category_teams, positions):
        if standing.team_id not in advancing:
            return standing.team_id
    return None


# ============================================================================
# Generation
# ============================================================================


def build_category_bracket(
    category: str,
    label: str,
    seeded: Sequence[Standing],
    referee_team_id: Optional[int],
    court_count: int = DEFAULT_PLAYOFF_COURTS,
) -> CategoryBracket:
    seeds = [s.team_id for s in seeded]
    size = bracket_size_for(len(seeds))
    total_rounds = int(math.log2(size))
    bracket = CategoryBracket(
        category=category,
        label=label,
        seeds=seeds,
        bracket_size=size,
        total_rounds=total_rounds,
        referee_team_id=referee_team_id,
    )
    if total_rounds == 0:
        return bracket

    def team_for_seed(seed: int) -> Optional[int]:
        return seeds[seed - 1] if seed <= len(seeds) else None

    order = bracket_order(size)
    matches: List[BracketMatch] = []
    for index in range(0, len(order), 2):
        seed1, seed2 = order[index], order[index + 1]
        team1, team2 = team_for_seed(seed1), team_for_seed(seed2)
        if team1 is None and team2 is None:
            continue
        match_number = index // 2 + 1
        is_bye = team1 is None or team2 is None
        matches.append(
            BracketMatch(
                category=category,
                round_number=1,
                match_number=match_number,
                bracket_position=bracket_position_name(1, match_number, total_rounds, label),
                team1_id=team1,
                team2_id=team2,
                referee_team_id=None if is_bye else referee_team_id,
                court_number=((match_number - 1) % court_count) + 1,
                status=STATUS_COMPLETED if is_bye else STATUS_SCHEDULED,
                winner_id=(team1 if team1 is not None else team2) if is_bye else None,
                seed1=seed1,
                seed2=seed2,
            )
        )

    for round_number in range(2, total_rounds + 1):
        for match_number in range(1, 2 ** (total_rounds - round_number) + 1):
            matches.append(
                BracketMatch(
                    category=category,
                    round_number=round_number,
                    match_number=match_number,
                    bracket_position=bracket_position_name(round_number, match_number, total_rounds, label),
                )
            )

    for bye in [m for m in matches if m.is_bye]:
        matches, _ = advance_winner_in_bracket(matches, bye)

    bracket.matches = matches
    return bracket


def advance_winner_in_bracket(
    matches: Sequence[BracketMatch], completed: BracketMatch
) -> Tuple[List[BracketMatch], bool]:
    """
    Fill the next-round slot fed by `completed` with its winner.

    Returns (matches, changed). Re-applying the same winner is a no-op; a slot
    already holding another team raises ConsistencyError.
    """
    matches = list(matches)
    if completed.winner_id is None or completed.status != STATUS_COMPLETED:
        return matches, False

    next_round, next_match, slot = next_slot(completed.round_number, completed.match_number)
    for index, candidate in enumerate(matches):
        if (
            candidate.category == completed.category
            and candidate.round_number == next_round
            and candidate.match_number == next_match
        ):
            occupant = getattr(candidate, slot)
            if occupant == completed.winner_id:
                return matches, False
            if occupant is not None:
                raise ConsistencyError(
                    f"{candidate.bracket_position}: {slot} already holds team {occupant}, "
                    f"cannot place winner {completed.winner_id}"
                )
            matches[index] = replace(candidate, **{slot: completed.winner_id})
            return matches, True

    # No next round: completed match was the final
    return matches, False


def generate_brackets(
    pool_results: Sequence[PoolResult],
    roster: Sequence[RosterTeam],
    advancement_per_pool: int,
    court_count: int = DEFAULT_PLAYOFF_COURTS,
) -> BracketResult:
    """
    Build playoff brackets for every category.

    `pool_results` and `roster` must already be in canonical order; seeding
    ties fall back to that order. Categories present in the roster with no
    advancing team are reported in `omitted_categories`.
    """
    if advancement_per_pool < 1:
        raise ValidationError(f"advancement_per_pool must be >= 1, got {advancement_per_pool}")
    if court_count < 1:
        raise ValidationError(f"court_count must be >= 1, got {court_count}")

    labels = {key: category.label for key, category in category_lookup(roster).items()}
    pool_standings = calculate_all_pool_standings(pool_results)
    advancing = advancing_teams_by_category(pool_standings, advancement_per_pool)

    brackets: List[CategoryBracket] = []
    for category, seeded in advancing.items():
        label = labels.get(category, category)
        referee_id = first_round_referee(pool_standings, category, [s.team_id for s in seeded])
        bracket = build_category_bracket(category, label, seeded, referee_id, court_count)
        logger.info(
            "Bracket %s: %d teams, size %d, %d rounds, %d matches",
            category,
            len(bracket.seeds),
            bracket.bracket_size,
            bracket.total_rounds,
            len(bracket.matches),
        )
        brackets.append(bracket)

    omitted = [key for key in labels if key not in advancing]
    for key in omitted:
        logger.warning("Category %s has no advancing teams; no bracket generated", key)

    return BracketResult(brackets=brackets, omitted_categories=omitted)
