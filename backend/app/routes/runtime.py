"""
Runtime: live match scoring. No schedule mutation.

Every mutation is version-guarded; clients may send expected_version to make
sure they are scoring the state they displayed. When a playoff match
completes, the advancement service fills the downstream bracket slot.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from app.database import get_session
from app.models.match import MatchPhase, MatchStatus
from app.routes.tournaments import MatchResponse, get_match_or_404, get_tournament_or_404
from app.services import scoring_service
from app.services.advancement_service import apply_advancement_for_final_match, resolve_all_dependencies
from app.services.errors import ConsistencyError, ValidationError, VersionConflictError

router = APIRouter()


class MatchStartRequest(BaseModel):
    expected_version: Optional[int] = None


class PointRequest(BaseModel):
    side: str
    delta: int = 1
    expected_version: Optional[int] = None


class ManualScoreRequest(BaseModel):
    side: str
    score: int
    expected_version: Optional[int] = None


class ScoreEventResponse(BaseModel):
    kind: str
    set_number: int
    detail: Dict[str, Any] = {}


class MatchRuntimeUpdateResponse(BaseModel):
    match: MatchResponse
    events: List[ScoreEventResponse] = []
    advanced_count: int = 0
    advancement_error: Optional[str] = None


class ResolveDependenciesResponse(BaseModel):
    """Response for bulk dependency resolution"""
    matches_processed: int
    teams_advanced: int
    unknown_before: int
    unknown_after: int
    conflicts: List[Dict[str, Any]] = []


def _to_response(result: scoring_service.ScoringResult) -> MatchRuntimeUpdateResponse:
    return MatchRuntimeUpdateResponse(
        match=MatchResponse.model_validate(result.match),
        events=[ScoreEventResponse(kind=e.kind, set_number=e.set_number, detail=e.detail) for e in result.events],
        advanced_count=result.advanced_count,
        advancement_error=result.advancement_error,
    )


def _run_scoring(operation, *args, **kwargs) -> MatchRuntimeUpdateResponse:
    try:
        return _to_response(operation(*args, **kwargs))
    except VersionConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post(
    "/tournaments/{tournament_id}/runtime/matches/{match_id}/start",
    response_model=MatchRuntimeUpdateResponse,
)
def start_match(
    tournament_id: int,
    match_id: int,
    payload: Optional[MatchStartRequest] = None,
    session: Session = Depends(get_session),
) -> MatchRuntimeUpdateResponse:
    """scheduled -> in_progress. Starting a match already in progress changes nothing."""
    match = get_match_or_404(session, tournament_id, match_id)
    expected_version = payload.expected_version if payload else None
    return _run_scoring(scoring_service.start_match, session, match, expected_version=expected_version)


@router.post(
    "/tournaments/{tournament_id}/runtime/matches/{match_id}/point",
    response_model=MatchRuntimeUpdateResponse,
)
def score_point(
    tournament_id: int,
    match_id: int,
    payload: PointRequest,
    session: Session = Depends(get_session),
) -> MatchRuntimeUpdateResponse:
    """
    Add (delta > 0) or remove (delta < 0) points for one side.

    Events in the response report side switches, completed sets and match
    completion. A completed playoff match advances its winner; if the
    downstream slot already holds another team, the match stays completed and
    advancement_error describes the conflict.
    """
    match = get_match_or_404(session, tournament_id, match_id)
    return _run_scoring(
        scoring_service.apply_point,
        session,
        match,
        payload.side,
        delta=payload.delta,
        expected_version=payload.expected_version,
    )


@router.put(
    "/tournaments/{tournament_id}/runtime/matches/{match_id}/manual-score",
    response_model=MatchRuntimeUpdateResponse,
)
def set_manual_score(
    tournament_id: int,
    match_id: int,
    payload: ManualScoreRequest,
    session: Session = Depends(get_session),
) -> MatchRuntimeUpdateResponse:
    """Overwrite one side's score in the current set. Sets are not evaluated."""
    match = get_match_or_404(session, tournament_id, match_id)
    return _run_scoring(
        scoring_service.apply_manual_score,
        session,
        match,
        payload.side,
        payload.score,
        expected_version=payload.expected_version,
    )


@router.post(
    "/tournaments/{tournament_id}/runtime/matches/{match_id}/advance",
    response_model=Dict[str, int],
)
def advance_match(
    tournament_id: int,
    match_id: int,
    session: Session = Depends(get_session),
) -> Dict[str, int]:
    """Manually run advancement for a completed playoff match (repair/testing)."""
    match = get_match_or_404(session, tournament_id, match_id)

    if match.phase != MatchPhase.playoffs:
        raise HTTPException(status_code=422, detail="Only playoff matches advance winners")
    if match.status != MatchStatus.completed:
        raise HTTPException(status_code=422, detail="Match must be completed to run advancement")
    if match.winner_id is None:
        raise HTTPException(status_code=422, detail="Match must have a winner to run advancement")

    try:
        advanced_count = apply_advancement_for_final_match(session, match_id)
    except ConsistencyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"advanced_count": advanced_count}


# ============================================================================
# Bulk Dependency Resolution
# ============================================================================


@router.post(
    "/tournaments/{tournament_id}/runtime/resolve-dependencies",
    response_model=ResolveDependenciesResponse,
)
def resolve_dependencies(
    tournament_id: int,
    session: Session = Depends(get_session),
) -> ResolveDependenciesResponse:
    """
    Re-run advancement for every completed playoff match of the tournament.

    Useful after recovering from an interrupted advancement. Idempotent;
    conflicting slots are reported, not overwritten.
    """
    get_tournament_or_404(session, tournament_id)
    result = resolve_all_dependencies(session, tournament_id)
    return ResolveDependenciesResponse(**result)
