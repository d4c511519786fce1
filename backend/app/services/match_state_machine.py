"""
Live match scoring rules.

States: scheduled -> in_progress -> completed. completed is terminal.

All functions are pure: they take a ScoreState and return a ScoreUpdate
holding the new state plus the events the change produced (side switch, set
completed, match completed). Persisting the state is the caller's job.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from app.services.errors import InvalidTransitionError, ValidationError
from app.services.game_format import GameFormat, side_switch_interval

STATUS_SCHEDULED = "scheduled"
STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"

SIDES = ("team1", "team2")

EVENT_SIDE_SWITCH = "side_switch"
EVENT_SET_COMPLETED = "set_completed"
EVENT_MATCH_COMPLETED = "match_completed"


@dataclass(frozen=True)
class ScoreState:
    status: str = STATUS_SCHEDULED
    phase: str = "pool_play"
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    current_set: int = 1
    team1_score: int = 0
    team2_score: int = 0
    sets_won_team1: int = 0
    sets_won_team2: int = 0
    set_scores: Dict[str, Dict[str, int]] = field(default_factory=dict)
    last_switch_threshold: int = 0
    winner_id: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def set_key(self) -> str:
        return f"set{self.current_set}"

    def score_for(self, side: str) -> int:
        return self.team1_score if side == "team1" else self.team2_score


@dataclass(frozen=True)
class ScoreEvent:
    kind: str
    set_number: int
    detail: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ScoreUpdate:
    state: ScoreState
    events: List[ScoreEvent] = field(default_factory=list)

    @property
    def match_completed(self) -> bool:
        return any(e.kind == EVENT_MATCH_COMPLETED for e in self.events)

    @property
    def side_switch(self) -> bool:
        return any(e.kind == EVENT_SIDE_SWITCH for e in self.events)


def is_set_won(score1: int, score2: int, target: int, must_win_by: int) -> bool:
    """A side wins the set at target points with at least must_win_by margin."""
    return (score1 >= target and score1 - score2 >= must_win_by) or (
        score2 >= target and score2 - score1 >= must_win_by
    )


def is_match_won(sets_won_team1: int, sets_won_team2: int, sets_per_game: int) -> bool:
    needed = GameFormat(sets_per_game=sets_per_game).sets_to_win
    return sets_won_team1 >= needed or sets_won_team2 >= needed


def _require_side(side: str) -> None:
    if side not in SIDES:
        raise ValidationError(f"side must be one of {SIDES}, got {side!r}")


def _require_in_progress(state: ScoreState) -> None:
    if state.status == STATUS_COMPLETED:
        raise InvalidTransitionError("Match is completed; scores can no longer change")
    if state.status != STATUS_IN_PROGRESS:
        raise InvalidTransitionError("Match has not been started")


def start_match(state: ScoreState, now: Optional[datetime] = None) -> ScoreUpdate:
    """scheduled -> in_progress. Starting an in-progress match is a no-op."""
    if state.status == STATUS_COMPLETED:
        raise InvalidTransitionError("completed is terminal; cannot restart match")
    if state.status == STATUS_IN_PROGRESS:
        return ScoreUpdate(state=state)
    if state.team1_id is None or state.team2_id is None:
        raise InvalidTransitionError("Both teams must be known before the match can start")
    return ScoreUpdate(
        state=replace(state, status=STATUS_IN_PROGRESS, started_at=now or datetime.utcnow())
    )


def apply_point(
    state: ScoreState,
    game_format: GameFormat,
    side: str,
    delta: int = 1,
    now: Optional[datetime] = None,
) -> ScoreUpdate:
    """
    Add delta (may be negative for corrections, floored at 0) to one side and
    evaluate set/match completion and side switches.
    """
    _require_side(side)
    _require_in_progress(state)
    if delta == 0:
        raise ValidationError("delta must be non-zero")

    score1, score2 = state.team1_score, state.team2_score
    if side == "team1":
        score1 = max(0, score1 + delta)
    else:
        score2 = max(0, score2 + delta)

    target = game_format.set_target(state.sets_won_team1, state.sets_won_team2)

    if not is_set_won(score1, score2, target, game_format.must_win_by):
        events: List[ScoreEvent] = []
        threshold = state.last_switch_threshold
        interval = side_switch_interval(target)
        crossed = ((score1 + score2) // interval) * interval
        if crossed > threshold:
            threshold = crossed
            events.append(
                ScoreEvent(
                    kind=EVENT_SIDE_SWITCH,
                    set_number=state.current_set,
                    detail={"total_points": score1 + score2, "threshold": crossed, "interval": interval},
                )
            )
        new_state = replace(state, team1_score=score1, team2_score=score2, last_switch_threshold=threshold)
        return ScoreUpdate(state=new_state, events=events)

    set_winner = "team1" if score1 > score2 else "team2"
    set_scores = dict(state.set_scores)
    set_scores[state.set_key] = {"team1": score1, "team2": score2}
    won1 = state.sets_won_team1 + (1 if set_winner == "team1" else 0)
    won2 = state.sets_won_team2 + (1 if set_winner == "team2" else 0)

    events = [
        ScoreEvent(
            kind=EVENT_SET_COMPLETED,
            set_number=state.current_set,
            detail={"winner": set_winner, "team1": score1, "team2": score2},
        )
    ]

    if is_match_won(won1, won2, game_format.sets_per_game):
        winner_id = state.team1_id if won1 > won2 else state.team2_id
        new_state = replace(
            state,
            status=STATUS_COMPLETED,
            set_scores=set_scores,
            sets_won_team1=won1,
            sets_won_team2=won2,
            # headline score is sets won
            team1_score=won1,
            team2_score=won2,
            winner_id=winner_id,
            completed_at=now or datetime.utcnow(),
        )
        events.append(
            ScoreEvent(
                kind=EVENT_MATCH_COMPLETED,
                set_number=state.current_set,
                detail={"winner_id": winner_id, "sets_won_team1": won1, "sets_won_team2": won2},
            )
        )
        return ScoreUpdate(state=new_state, events=events)

    new_state = replace(
        state,
        set_scores=set_scores,
        sets_won_team1=won1,
        sets_won_team2=won2,
        current_set=state.current_set + 1,
        team1_score=0,
        team2_score=0,
        last_switch_threshold=0,
    )
    return ScoreUpdate(state=new_state, events=events)


def apply_manual_score(
    state: ScoreState, side: str, value: int, game_format: Optional[GameFormat] = None
) -> ScoreUpdate:
    """
    Overwrite one side's score in the active set. No win-condition evaluation
    and no side switch event happen here; the side switch threshold is moved
    to the last multiple already passed so the next point only switches
    sides on a new crossing.
    """
    _require_side(side)
    _require_in_progress(state)
    if value < 0:
        raise ValidationError(f"score must not be negative, got {value}")

    score1 = value if side == "team1" else state.team1_score
    score2 = value if side == "team2" else state.team2_score
    set_scores = dict(state.set_scores)
    set_scores[state.set_key] = {"team1": score1, "team2": score2}

    fmt = game_format or GameFormat()
    interval = side_switch_interval(fmt.set_target(state.sets_won_team1, state.sets_won_team2))
    threshold = ((score1 + score2) // interval) * interval
    return ScoreUpdate(
        state=replace(
            state,
            team1_score=score1,
            team2_score=score2,
            set_scores=set_scores,
            last_switch_threshold=threshold,
        )
    )
