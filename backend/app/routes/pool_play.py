"""
Pool play generation and progress.
"""

from datetime import datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlmodel import Session

from app.database import get_session
from app.services.court_scheduler import DEFAULT_WARMUP_MINUTES
from app.services.errors import PreconditionFailure, ValidationError
from app.services.pool_config import calculate_optimal_pool_configuration
from app.services.pool_play_service import (
    generate_and_persist_pool_play,
    get_pool_play_status,
    get_tournament_advancement_recommendation,
)
from app.routes.tournaments import get_tournament_or_404

router = APIRouter()


class PoolConfigurationResponse(BaseModel):
    team_count: int
    num_pools: int
    teams_per_pool: List[int]
    total_matches: int


class PoolPlayGenerateRequest(BaseModel):
    first_game_time: datetime
    match_duration: int = Field(..., description="Minutes per match")
    warmup_duration: int = DEFAULT_WARMUP_MINUTES
    court_count: Optional[int] = None


class PoolSummary(BaseModel):
    name: str
    category: str
    team_ids: List[int]


class PoolPlayGenerateResponse(BaseModel):
    pools: List[PoolSummary]
    matches_created: int
    required_courts: int
    category_breakdown: Dict[str, Dict[str, int]]


@router.get("/pool-configuration", response_model=PoolConfigurationResponse)
def preview_pool_configuration(team_count: int = Query(...)):
    """Preview how many pools of which sizes a team count produces."""
    config = calculate_optimal_pool_configuration(team_count)
    return PoolConfigurationResponse(
        team_count=team_count,
        num_pools=config.num_pools,
        teams_per_pool=list(config.teams_per_pool),
        total_matches=config.total_matches,
    )


@router.post(
    "/tournaments/{tournament_id}/pool-play/generate",
    response_model=PoolPlayGenerateResponse,
    status_code=201,
)
def generate_pool_play(
    tournament_id: int, request: PoolPlayGenerateRequest, session: Session = Depends(get_session)
):
    """
    Generate pools, round-robin matches, referees, courts and start times for
    every checked-in team. Can only be run once per tournament.
    """
    tournament = get_tournament_or_404(session, tournament_id)
    try:
        schedule = generate_and_persist_pool_play(
            session,
            tournament,
            first_game_time=request.first_game_time,
            match_duration=request.match_duration,
            warmup_duration=request.warmup_duration,
            court_count=request.court_count,
        )
    except PreconditionFailure as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return PoolPlayGenerateResponse(
        pools=[PoolSummary(name=p.name, category=p.category, team_ids=p.team_ids) for p in schedule.pools],
        matches_created=len(schedule.matches),
        required_courts=schedule.required_courts,
        category_breakdown=schedule.category_breakdown,
    )


@router.get("/tournaments/{tournament_id}/pool-play/status")
def pool_play_status(tournament_id: int, session: Session = Depends(get_session)):
    """Per-pool progress, standings for finished pools, and bracket readiness."""
    get_tournament_or_404(session, tournament_id)
    return get_pool_play_status(session, tournament_id).to_dict()


@router.get("/tournaments/{tournament_id}/advancement-recommendation")
def advancement_recommendation(tournament_id: int, session: Session = Depends(get_session)):
    """Suggested advancing teams per pool for the number of checked-in teams."""
    get_tournament_or_404(session, tournament_id)
    return get_tournament_advancement_recommendation(session, tournament_id)
