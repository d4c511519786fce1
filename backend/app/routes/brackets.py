"""
Playoff bracket generation from pool play standings, and manual slot swaps.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.database import get_session
from app.services.bracket_generator import ADVANCE_ALL
from app.services.bracket_service import generate_and_persist_brackets, swap_bracket_teams
from app.services.errors import PreconditionFailure, ValidationError, VersionConflictError
from app.routes.tournaments import MatchResponse, get_match_or_404, get_tournament_or_404

router = APIRouter()


class BracketGenerateRequest(BaseModel):
    advancement_per_pool: int = Field(..., description=f"Teams advancing from each pool ({ADVANCE_ALL} = all)")
    court_count: Optional[int] = None


class BracketGenerateResponse(BaseModel):
    categories: List[Dict[str, Any]]
    omitted_categories: List[str]
    total_matches: int


class BracketSwapRequest(BaseModel):
    match_id: int
    slot: str = Field(..., description="team1 or team2")
    other_match_id: int
    other_slot: str = Field(..., description="team1 or team2")
    expected_version: Optional[int] = None
    other_expected_version: Optional[int] = None


@router.post(
    "/tournaments/{tournament_id}/brackets/generate",
    response_model=BracketGenerateResponse,
    status_code=201,
)
def generate_brackets(tournament_id: int, request: BracketGenerateRequest, session: Session = Depends(get_session)):
    """
    Build one single-elimination bracket per category from pool standings.

    Seeding uses completed pool matches; unfinished pool matches are ignored.
    Categories with no advancing team are listed in omitted_categories.
    """
    tournament = get_tournament_or_404(session, tournament_id)
    try:
        result = generate_and_persist_brackets(
            session,
            tournament,
            advancement_per_pool=request.advancement_per_pool,
            court_count=request.court_count,
        )
    except PreconditionFailure as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return BracketGenerateResponse(**result.summary())


@router.post("/tournaments/{tournament_id}/brackets/swap", response_model=List[MatchResponse])
def swap_teams(tournament_id: int, request: BracketSwapRequest, session: Session = Depends(get_session)):
    """Exchange the teams in two slots of not-yet-started playoff matches."""
    match = get_match_or_404(session, tournament_id, request.match_id)
    other_match = get_match_or_404(session, tournament_id, request.other_match_id)
    try:
        matches = swap_bracket_teams(
            session,
            match,
            request.slot,
            other_match,
            request.other_slot,
            expected_version=request.expected_version,
            other_expected_version=request.other_expected_version,
        )
    except VersionConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PreconditionFailure as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return [MatchResponse.model_validate(m) for m in matches]
