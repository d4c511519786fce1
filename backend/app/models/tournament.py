from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.match import Match
    from app.models.team import Team


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    location: Optional[str] = None
    notes: Optional[str] = None

    # Default game format (used for every phase unless phase formats are enabled)
    sets_per_game: int = Field(default=3)
    points_per_set: int = Field(default=25)
    must_win_by: int = Field(default=2)
    deciding_set_points: int = Field(default=15)

    # Phase formats: {"sets_per_game": .., "points_per_set": .., "must_win_by": .., "deciding_set_points": ..}
    uses_phase_formats: bool = Field(default=False)
    pool_play_format: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    playoff_format: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    # Playoff generation bookkeeping
    brackets_generated: bool = Field(default=False)
    advancement_per_pool: Optional[int] = Field(default=None)
    playoff_summary: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    teams: List["Team"] = Relationship(back_populates="tournament")
    matches: List["Match"] = Relationship(back_populates="tournament")
