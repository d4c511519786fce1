"""
Pool standings and completion.

Standings come from completed pool matches only. Ranking:
1. win percentage (desc)
2. set differential (desc)
3. sets won (desc)
Ties keep first-appearance order (stable sort, no random tie-break).
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

STATUS_COMPLETED = "completed"


@dataclass(frozen=True)
class PoolResult:
    """Minimal view of a pool match needed for standings."""

    pool_name: str
    category: str
    team1_id: Optional[int]
    team2_id: Optional[int]
    status: str
    sets_won_team1: int = 0
    sets_won_team2: int = 0


@dataclass
class Standing:
    team_id: int
    pool_name: str
    category: str
    wins: int = 0
    losses: int = 0
    sets_won: int = 0
    sets_lost: int = 0

    @property
    def win_percentage(self) -> float:
        played = self.wins + self.losses
        return self.wins / played if played > 0 else 0.0

    @property
    def sets_differential(self) -> int:
        return self.sets_won - self.sets_lost

    def to_dict(self) -> Dict:
        return {
            "team_id": self.team_id,
            "pool_name": self.pool_name,
            "category": self.category,
            "wins": self.wins,
            "losses": self.losses,
            "sets_won": self.sets_won,
            "sets_lost": self.sets_lost,
            "win_percentage": self.win_percentage,
            "sets_differential": self.sets_differential,
        }


def standing_sort_key(standing: Standing) -> tuple:
    """Lower = better."""
    return (-standing.win_percentage, -standing.sets_differential, -standing.sets_won)


def calculate_pool_standings(pool_matches: Sequence[PoolResult]) -> List[Standing]:
    """Rank one pool. Every team appearing in the pool's matches gets a row."""
    stats: "OrderedDict[int, Standing]" = OrderedDict()
    for match in pool_matches:
        for team_id in (match.team1_id, match.team2_id):
            if team_id is not None and team_id not in stats:
                stats[team_id] = Standing(team_id=team_id, pool_name=match.pool_name, category=match.category)

    for match in pool_matches:
        if match.status != STATUS_COMPLETED or match.team1_id is None or match.team2_id is None:
            continue
        team1 = stats[match.team1_id]
        team2 = stats[match.team2_id]
        sets1 = match.sets_won_team1 or 0
        sets2 = match.sets_won_team2 or 0

        team1.sets_won += sets1
        team1.sets_lost += sets2
        team2.sets_won += sets2
        team2.sets_lost += sets1

        if sets1 > sets2:
            team1.wins += 1
            team2.losses += 1
        elif sets2 > sets1:
            team2.wins += 1
            team1.losses += 1

    return sorted(stats.values(), key=standing_sort_key)


def group_by_pool(matches: Sequence[PoolResult]) -> "OrderedDict[str, List[PoolResult]]":
    pools: "OrderedDict[str, List[PoolResult]]" = OrderedDict()
    for match in matches:
        pools.setdefault(match.pool_name or "Pool", []).append(match)
    return pools


def calculate_all_pool_standings(matches: Sequence[PoolResult]) -> "OrderedDict[str, List[Standing]]":
    """pool_name -> ranked standings, pools in first-appearance order."""
    return OrderedDict(
        (pool_name, calculate_pool_standings(pool_matches)) for pool_name, pool_matches in group_by_pool(matches).items()
    )


# ============================================================================
# Pool completion
# ============================================================================


@dataclass
class PoolStats:
    pool_name: str
    total_matches: int
    completed_matches: int
    is_complete: bool
    standings: List[Standing] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "pool_name": self.pool_name,
            "total_matches": self.total_matches,
            "completed_matches": self.completed_matches,
            "is_complete": self.is_complete,
            "standings": [s.to_dict() for s in self.standings],
        }


@dataclass
class PoolCompletionStatus:
    all_pools_complete: bool
    total_pools: int
    completed_pools: int
    pool_stats: List[PoolStats]

    @property
    def ready_for_brackets(self) -> bool:
        return self.all_pools_complete and self.total_pools > 0

    def to_dict(self) -> Dict:
        return {
            "all_pools_complete": self.all_pools_complete,
            "total_pools": self.total_pools,
            "completed_pools": self.completed_pools,
            "ready_for_brackets": self.ready_for_brackets,
            "pool_stats": [p.to_dict() for p in self.pool_stats],
        }


def check_pool_completion(matches: Sequence[PoolResult]) -> PoolCompletionStatus:
    """Per-pool progress; standings are only reported for complete pools."""
    if not matches:
        return PoolCompletionStatus(all_pools_complete=False, total_pools=0, completed_pools=0, pool_stats=[])

    pool_stats: List[PoolStats] = []
    for pool_name, pool_matches in group_by_pool(matches).items():
        completed = [m for m in pool_matches if m.status == STATUS_COMPLETED]
        is_complete = len(completed) == len(pool_matches)
        pool_stats.append(
            PoolStats(
                pool_name=pool_name,
                total_matches=len(pool_matches),
                completed_matches=len(completed),
                is_complete=is_complete,
                standings=calculate_pool_standings(pool_matches) if is_complete else [],
            )
        )

    completed_pools = sum(1 for p in pool_stats if p.is_complete)
    return PoolCompletionStatus(
        all_pools_complete=completed_pools == len(pool_stats),
        total_pools=len(pool_stats),
        completed_pools=completed_pools,
        pool_stats=pool_stats,
    )


def get_advancement_recommendation(total_teams: int) -> Dict:
    """Suggested teams advancing per pool for a tournament size."""
    if total_teams <= 8:
        return {
            "teams_per_pool": 1,
            "reasoning": "With 8 or fewer teams, advance top team from each pool for clean bracket",
            "bracket_size": min(total_teams, 8),
        }
    if total_teams <= 16:
        return {
            "teams_per_pool": 2,
            "reasoning": "Advance top 2 from each pool for optimal 8-16 team bracket",
            "bracket_size": min(total_teams, 16),
        }
    if total_teams <= 24:
        return {
            "teams_per_pool": 2,
            "reasoning": "Advance top 2 from each pool for competitive 16+ team bracket",
            "bracket_size": min(total_teams, 24),
        }
    return {
        "teams_per_pool": 3,
        "reasoning": "Large tournament - advance top 3 from each pool",
        "bracket_size": min(total_teams, 32),
    }
