"""
Court/Time Scheduler for pool play

Each pool gets a dedicated court (pools wrap around when there are more pools
than courts). Courts are served in order of their next free time; a court
plays its pools' matches in generation order.

A match starts at the later of:
- the court's next free time, and
- the earliest time at which team1, team2 and the referee are each at least
  (duration + warm-up) minutes away from all of their other bookings.

After a match is placed the court's next free time moves to
start + duration + warm-up + transition.
"""

import heapq
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

from app.services.errors import ValidationError
from app.services.pool_play_generator import PoolMatch
from app.utils.rest_rules import RestStateTracker

logger = logging.getLogger(__name__)

DEFAULT_WARMUP_MINUTES = 7
COURT_TRANSITION_MINUTES = 5


def court_for_pool(pool_index: int, court_count: int) -> int:
    """1-based court for a 0-based pool index."""
    return (pool_index % court_count) + 1


def schedule_matches(
    matches: Sequence[PoolMatch],
    first_game_time: datetime,
    match_duration: int,
    court_count: Optional[int] = None,
    warmup_duration: int = DEFAULT_WARMUP_MINUTES,
) -> List[PoolMatch]:
    """
    Assign court_number and scheduled_time to every match.

    Pools are taken in first-appearance order of `matches`. court_count
    defaults to one court per pool. Output keeps the input order.
    """
    if match_duration <= 0:
        raise ValidationError(f"match_duration must be positive, got {match_duration}")
    if warmup_duration < 0:
        raise ValidationError(f"warmup_duration must not be negative, got {warmup_duration}")

    pool_order: List[str] = list(dict.fromkeys(m.pool_name for m in matches))
    if court_count is None:
        court_count = max(len(pool_order), 1)
    if court_count <= 0:
        raise ValidationError(f"court_count must be positive, got {court_count}")

    # Court queues: matches of every pool mapped to that court, pool by pool
    queues: Dict[int, List[int]] = {court: [] for court in range(1, court_count + 1)}
    for pool_index, pool_name in enumerate(pool_order):
        court = court_for_pool(pool_index, court_count)
        queues[court].extend(idx for idx, m in enumerate(matches) if m.pool_name == pool_name)

    min_rest_minutes = match_duration + warmup_duration
    court_step = timedelta(minutes=match_duration + warmup_duration + COURT_TRANSITION_MINUTES)
    tracker = RestStateTracker(min_rest_minutes)

    scheduled: List[Optional[PoolMatch]] = [None] * len(matches)
    cursors = {court: 0 for court in queues}
    ready = [(first_game_time, court) for court, queue in queues.items() if queue]
    heapq.heapify(ready)

    while ready:
        court_free, court = heapq.heappop(ready)
        match_idx = queues[court][cursors[court]]
        cursors[court] += 1
        match = matches[match_idx]

        involved = (match.team1_id, match.team2_id, match.referee_team_id)
        start = tracker.earliest_start(involved, court_free)
        tracker.book(involved, start)
        scheduled[match_idx] = replace(match, court_number=court, scheduled_time=start)

        if start > court_free:
            logger.debug(
                "Pool %s match %d delayed %s on court %d for rest",
                match.pool_name,
                match.match_number,
                start - court_free,
                court,
            )

        if cursors[court] < len(queues[court]):
            heapq.heappush(ready, (start + court_step, court))

    return [m for m in scheduled if m is not None]
