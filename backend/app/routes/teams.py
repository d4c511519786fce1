"""
Team Management API Routes
Registration and check-in for tournament teams. Only checked-in teams take
part in pool play generation.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.database import get_session
from app.models.team import CheckInStatus, Team
from app.routes.tournaments import get_tournament_or_404
from app.services.team_schedule import get_team_schedule

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class TeamCreateRequest(BaseModel):
    name: str
    skill_level: Optional[str] = None
    division: Optional[str] = None
    checked_in: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("skill_level", "division")
    @classmethod
    def normalize_tag(cls, v):
        if v is None:
            return None
        v = v.strip().lower()
        return v or None


class TeamResponse(BaseModel):
    id: int
    tournament_id: int
    name: str
    skill_level: Optional[str] = None
    division: Optional[str] = None
    check_in_status: str
    checked_in_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ScheduleItemResponse(BaseModel):
    match_id: int
    role: str
    phase: str
    status: str
    round_number: int
    scheduled_time: Optional[datetime] = None
    court_number: Optional[int] = None
    pool_name: Optional[str] = None
    bracket_position: Optional[str] = None
    opponent_id: Optional[int] = None
    opponent_name: Optional[str] = None
    minutes_after_previous: Optional[int] = None

    class Config:
        from_attributes = True


# ============================================================================
# Team Endpoints
# ============================================================================


def _get_team_or_404(session: Session, tournament_id: int, team_id: int) -> Team:
    get_tournament_or_404(session, tournament_id)
    team = session.get(Team, team_id)
    if not team or team.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Team not found")
    return team


@router.get("/tournaments/{tournament_id}/teams", response_model=List[TeamResponse])
def get_teams(tournament_id: int, session: Session = Depends(get_session)):
    """Get all teams for a tournament, id ascending (the order engines use)."""
    get_tournament_or_404(session, tournament_id)
    return session.exec(select(Team).where(Team.tournament_id == tournament_id).order_by(Team.id)).all()


@router.post("/tournaments/{tournament_id}/teams", response_model=TeamResponse, status_code=201)
def create_team(tournament_id: int, request: TeamCreateRequest, session: Session = Depends(get_session)):
    """
    Register a team.

    Constraints:
    - (tournament_id, name) must be unique
    """
    get_tournament_or_404(session, tournament_id)

    team = Team(
        tournament_id=tournament_id,
        name=request.name,
        skill_level=request.skill_level,
        division=request.division,
    )
    if request.checked_in:
        team.check_in_status = CheckInStatus.checked_in
        team.checked_in_at = datetime.utcnow()

    session.add(team)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail=f"Team name '{request.name}' already exists in this tournament")
    session.refresh(team)
    return team


@router.post("/tournaments/{tournament_id}/teams/{team_id}/check-in", response_model=TeamResponse)
def check_in_team(tournament_id: int, team_id: int, session: Session = Depends(get_session)):
    """Mark a team as checked in. Checking in twice keeps the first timestamp."""
    team = _get_team_or_404(session, tournament_id, team_id)

    if team.check_in_status != CheckInStatus.checked_in:
        team.check_in_status = CheckInStatus.checked_in
        team.checked_in_at = datetime.utcnow()
        session.add(team)
        session.commit()
        session.refresh(team)
    return team


@router.get("/tournaments/{tournament_id}/teams/{team_id}/schedule", response_model=List[ScheduleItemResponse])
def get_schedule(tournament_id: int, team_id: int, session: Session = Depends(get_session)):
    """
    Matches the team plays or referees, by start time.

    Matches without a start time (playoffs) come last in bracket order.
    minutes_after_previous is the gap between consecutive start times.
    """
    team = _get_team_or_404(session, tournament_id, team_id)
    return get_team_schedule(session, team)
