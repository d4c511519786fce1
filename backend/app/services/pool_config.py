"""
Pool Sizing Rules

Partitions a category's team count into pools, preferring 4-team pools
(6 matches each) over 5-team pools (10 matches each) to keep pool play short.
"""

from dataclasses import dataclass, field
from typing import List

PREFERRED_POOL_SIZE = 4


@dataclass(frozen=True)
class PoolConfiguration:
    num_pools: int
    teams_per_pool: List[int] = field(default_factory=list)
    total_matches: int = 0


def rr_matches_per_pool(teams_per_pool: int) -> int:
    """Return number of RR matches in a pool: C(n, 2) = n*(n-1)/2."""
    if teams_per_pool < 2:
        return 0
    return (teams_per_pool * (teams_per_pool - 1)) // 2


def calculate_optimal_pool_configuration(team_count: int) -> PoolConfiguration:
    """
    Return the pool partition for a team count.

    Rules:
    - n <= 0: no pools
    - n <= 4: one pool of n
    - n % 4 == 0: n/4 pools of 4
    - n % 4 == 1: one of the 4-pools becomes a 5-pool (never a lone team)
    - n % 4 == 2: an extra pool of 2
    - n % 4 == 3: an extra pool of 3
    """
    if team_count <= 0:
        return PoolConfiguration(num_pools=0, teams_per_pool=[], total_matches=0)

    if team_count <= PREFERRED_POOL_SIZE:
        sizes = [team_count]
    else:
        full_pools, remainder = divmod(team_count, PREFERRED_POOL_SIZE)
        if remainder == 0:
            sizes = [PREFERRED_POOL_SIZE] * full_pools
        elif remainder == 1:
            # full_pools >= 1 here since team_count > 4
            sizes = [PREFERRED_POOL_SIZE] * (full_pools - 1) + [PREFERRED_POOL_SIZE + 1]
        else:
            # 2 -> trailing pool of 2 (single deciding match), 3 -> trailing pool of 3
            sizes = [PREFERRED_POOL_SIZE] * full_pools + [remainder]

    total_matches = sum(rr_matches_per_pool(size) for size in sizes)
    return PoolConfiguration(num_pools=len(sizes), teams_per_pool=sizes, total_matches=total_matches)
