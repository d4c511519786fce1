from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from app.database import get_session
from app.models.match import Match, MatchPhase
from app.models.tournament import Tournament
from app.services.errors import ValidationError
from app.services.game_format import GAME_FORMAT_PRESETS, GameFormat, estimate_match_minutes

router = APIRouter()


class GameFormatPayload(BaseModel):
    sets_per_game: int = 3
    points_per_set: int = 25
    must_win_by: int = 2
    deciding_set_points: int = 15


class TournamentCreate(BaseModel):
    name: str
    location: Optional[str] = None
    notes: Optional[str] = None
    sets_per_game: int = 3
    points_per_set: int = 25
    must_win_by: int = 2
    deciding_set_points: int = 15

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class TournamentFormatUpdate(BaseModel):
    sets_per_game: Optional[int] = None
    points_per_set: Optional[int] = None
    must_win_by: Optional[int] = None
    deciding_set_points: Optional[int] = None
    uses_phase_formats: Optional[bool] = None
    pool_play_format: Optional[GameFormatPayload] = None
    playoff_format: Optional[GameFormatPayload] = None


class TournamentResponse(BaseModel):
    id: int
    name: str
    location: Optional[str] = None
    notes: Optional[str] = None
    sets_per_game: int
    points_per_set: int
    must_win_by: int
    deciding_set_points: int
    uses_phase_formats: bool
    pool_play_format: Optional[Dict[str, Any]] = None
    playoff_format: Optional[Dict[str, Any]] = None
    brackets_generated: bool
    advancement_per_pool: Optional[int] = None
    playoff_summary: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MatchResponse(BaseModel):
    id: int
    tournament_id: int
    phase: str
    round_number: int
    match_number: int
    category: str
    pool_name: Optional[str] = None
    bracket_position: Optional[str] = None
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    referee_team_id: Optional[int] = None
    court_number: Optional[int] = None
    scheduled_time: Optional[datetime] = None
    status: str
    set_scores: Dict[str, Any] = {}
    current_set: int
    team1_score: int
    team2_score: int
    sets_won_team1: int
    sets_won_team2: int
    winner_id: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    version: int

    class Config:
        from_attributes = True


def get_tournament_or_404(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def get_match_or_404(session: Session, tournament_id: int, match_id: int) -> Match:
    get_tournament_or_404(session, tournament_id)
    match = session.get(Match, match_id)
    if not match or match.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Match not found")
    return match


def _validated_format(payload: GameFormatPayload) -> Dict[str, int]:
    return GameFormat(**payload.model_dump()).to_dict()


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments"""
    return session.exec(select(Tournament).order_by(Tournament.id)).all()


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(tournament_data: TournamentCreate, session: Session = Depends(get_session)):
    """Create a new tournament with its default game format"""
    try:
        GameFormat(
            sets_per_game=tournament_data.sets_per_game,
            points_per_set=tournament_data.points_per_set,
            must_win_by=tournament_data.must_win_by,
            deciding_set_points=tournament_data.deciding_set_points,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    tournament = Tournament(**tournament_data.model_dump())
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


def get_match_or_404(session: Session, tournament_id: int, match_id: int) -> Match:
    get_tournament_or_404(session, tournament_id)
    match = session.get(Match, match_id)
    if not match or match.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Match not found")
    return match


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Get a tournament by ID"""
    return get_tournament_or_404(session, tournament_id)


@router.put("/tournaments/{tournament_id}/format", response_model=TournamentResponse)
def update_tournament_format(
    tournament_id: int, format_data: TournamentFormatUpdate, session: Session = Depends(get_session)
):
    """
    Update the tournament's game format.

    The default format fields apply to every phase unless uses_phase_formats is
    set, in which case pool_play_format / playoff_format override them per phase.
    Changes take effect on the next scored point.
    """
    tournament = get_tournament_or_404(session, tournament_id)
    update_data = format_data.model_dump(exclude_unset=True, exclude={"pool_play_format", "playoff_format"})

    try:
        merged = GameFormat(
            sets_per_game=update_data.get("sets_per_game", tournament.sets_per_game),
            points_per_set=update_data.get("points_per_set", tournament.points_per_set),
            must_win_by=update_data.get("must_win_by", tournament.must_win_by),
            deciding_set_points=update_data.get("deciding_set_points", tournament.deciding_set_points),
        )
        if format_data.pool_play_format is not None:
            tournament.pool_play_format = _validated_format(format_data.pool_play_format)
        if format_data.playoff_format is not None:
            tournament.playoff_format = _validated_format(format_data.playoff_format)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    for field, value in merged.to_dict().items():
        setattr(tournament, field, value)
    if "uses_phase_formats" in update_data:
        tournament.uses_phase_formats = update_data["uses_phase_formats"]

    tournament.updated_at = datetime.utcnow()
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


def get_match_or_404(session: Session, tournament_id: int, match_id: int) -> Match:
    get_tournament_or_404(session, tournament_id)
    match = session.get(Match, match_id)
    if not match or match.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Match not found")
    return match


@router.get("/game-format-presets")
def list_game_format_presets():
    """Common formats with an estimated match length for each"""
    return [
        {
            "name": preset["name"],
            "description": preset["description"],
            "format": preset["format"].to_dict(),
            "estimated_minutes": estimate_match_minutes(preset["format"]),
        }
        for preset in GAME_FORMAT_PRESETS
    ]


@router.get("/tournaments/{tournament_id}/matches", response_model=List[MatchResponse])
def list_matches(
    tournament_id: int,
    phase: Optional[MatchPhase] = Query(None),
    session: Session = Depends(get_session),
):
    """List matches in stable order: phase, category, round, match number."""
    get_tournament_or_404(session, tournament_id)

    query = select(Match).where(Match.tournament_id == tournament_id)
    if phase is not None:
        query = query.where(Match.phase == phase.value)
    matches = session.exec(
        query.order_by(Match.phase, Match.category, Match.pool_name, Match.round_number, Match.match_number)
    ).all()
    return matches
