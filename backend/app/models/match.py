from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import JSON, String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.tournament import Tournament


class MatchPhase(str, Enum):
    pool_play = "pool_play"
    playoffs = "playoffs"


class MatchStatus(str, Enum):
    scheduled = "scheduled"
    in_progress = "in_progress"
    completed = "completed"


class Match(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    phase: MatchPhase = Field(sa_column=Column(String, nullable=False))
    round_number: int
    match_number: int

    # Grouping tags
    category: str  # category key, e.g. "mens_bb" or "open"
    pool_name: Optional[str] = Field(default=None)  # pool play only
    bracket_position: Optional[str] = Field(default=None)  # playoffs only, e.g. "Mens BB - Final"

    # Team assignments (nullable - null means TBD or bye)
    team1_id: Optional[int] = Field(default=None, foreign_key="team.id")
    team2_id: Optional[int] = Field(default=None, foreign_key="team.id")
    referee_team_id: Optional[int] = Field(default=None, foreign_key="team.id")

    court_number: Optional[int] = Field(default=None)
    scheduled_time: Optional[datetime] = Field(default=None)

    # Runtime scoring
    status: MatchStatus = Field(default=MatchStatus.scheduled, sa_column=Column(String, nullable=False))
    set_scores: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    current_set: int = Field(default=1)
    team1_score: int = Field(default=0)  # live set score; sets won once completed
    team2_score: int = Field(default=0)
    sets_won_team1: int = Field(default=0)
    sets_won_team2: int = Field(default=0)
    last_switch_threshold: int = Field(default=0)
    winner_id: Optional[int] = Field(default=None, foreign_key="team.id")
    started_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)

    # Compare-and-swap guard for concurrent scorekeepers
    version: int = Field(default=1)

    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")
