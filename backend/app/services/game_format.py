"""
Game formats.

A tournament either plays one format everywhere (`SingleFormat`) or a separate
format per phase (`PhaseFormats`). Both expose `for_phase(phase)`.
"""

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Union

from app.services.errors import ValidationError

PHASE_POOL_PLAY = "pool_play"
PHASE_PLAYOFFS = "playoffs"

SIDE_SWITCH_SHORT_SET_TARGET = 15
SIDE_SWITCH_SHORT_INTERVAL = 5
SIDE_SWITCH_LONG_INTERVAL = 7


@dataclass(frozen=True)
class GameFormat:
    sets_per_game: int = 3
    points_per_set: int = 25
    must_win_by: int = 2
    deciding_set_points: int = 15

    def __post_init__(self):
        if self.sets_per_game < 1:
            raise ValidationError(f"sets_per_game must be >= 1, got {self.sets_per_game}")
        if self.points_per_set < 1 or self.deciding_set_points < 1:
            raise ValidationError("set point targets must be >= 1")
        if self.must_win_by < 1:
            raise ValidationError(f"must_win_by must be >= 1, got {self.must_win_by}")

    @property
    def sets_to_win(self) -> int:
        return math.ceil(self.sets_per_game / 2)

    def set_target(self, sets_won_team1: int, sets_won_team2: int) -> int:
        """Point target for the set being played given sets already won."""
        is_deciding = self.sets_per_game > 1 and sets_won_team1 + sets_won_team2 == self.sets_per_game - 1
        return self.deciding_set_points if is_deciding else self.points_per_set

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], fallback: Optional["GameFormat"] = None) -> "GameFormat":
        base = fallback or cls()
        if not data:
            return base
        return cls(
            sets_per_game=int(data.get("sets_per_game", base.sets_per_game)),
            points_per_set=int(data.get("points_per_set", base.points_per_set)),
            must_win_by=int(data.get("must_win_by", base.must_win_by)),
            deciding_set_points=int(data.get("deciding_set_points", base.deciding_set_points)),
        )


@dataclass(frozen=True)
class SingleFormat:
    game_format: GameFormat

    def for_phase(self, phase: str) -> GameFormat:
        return self.game_format


@dataclass(frozen=True)
class PhaseFormats:
    pool_play: GameFormat
    playoffs: GameFormat

    def for_phase(self, phase: str) -> GameFormat:
        if phase == PHASE_PLAYOFFS:
            return self.playoffs
        if phase == PHASE_POOL_PLAY:
            return self.pool_play
        raise ValidationError(f"Unknown phase: {phase}")


FormatConfig = Union[SingleFormat, PhaseFormats]


def side_switch_interval(set_target: int) -> int:
    """Points between court-end changes: 5 for short sets (<= 15), else 7."""
    return SIDE_SWITCH_SHORT_INTERVAL if set_target <= SIDE_SWITCH_SHORT_SET_TARGET else SIDE_SWITCH_LONG_INTERVAL


def format_config_for_tournament(tournament) -> FormatConfig:
    """Build the FormatConfig stored on a Tournament row."""
    default = GameFormat(
        sets_per_game=tournament.sets_per_game,
        points_per_set=tournament.points_per_set,
        must_win_by=tournament.must_win_by,
        deciding_set_points=tournament.deciding_set_points,
    )
    if not tournament.uses_phase_formats:
        return SingleFormat(default)
    return PhaseFormats(
        pool_play=GameFormat.from_dict(tournament.pool_play_format, fallback=default),
        playoffs=GameFormat.from_dict(tournament.playoff_format, fallback=default),
    )


# ============================================================================
# Presets and duration estimates
# ============================================================================

GAME_FORMAT_PRESETS: List[Dict[str, Any]] = [
    {
        "name": "Quick Format",
        "description": "Best of 1 set to 21 points - Fast tournaments",
        "format": GameFormat(sets_per_game=1, points_per_set=21, deciding_set_points=21),
        "estimated_minutes": 15,
    },
    {
        "name": "Standard",
        "description": "Best of 3 sets to 25 points - Most common",
        "format": GameFormat(sets_per_game=3, points_per_set=25, deciding_set_points=15),
        "estimated_minutes": 45,
    },
    {
        "name": "Championship",
        "description": "Best of 5 sets to 25 points - Full competition",
        "format": GameFormat(sets_per_game=5, points_per_set=25, deciding_set_points=15),
        "estimated_minutes": 75,
    },
]


def estimate_match_minutes(game_format: GameFormat) -> int:
    """
    Rough match length: about one minute per two points (with 20% for deuce
    play), an expected number of sets for the format, and 3 minutes between sets.
    """
    points_per_set = game_format.points_per_set * 1.2
    if game_format.sets_per_game == 1:
        avg_sets = 1.0
    elif game_format.sets_per_game == 3:
        avg_sets = 2.2
    else:
        avg_sets = 3.5
    return round(avg_sets * (points_per_set / 2) + (avg_sets - 1) * 3)
