"""
Match API Routes
CRUD for matches. Every write that touches scheduled_time or players goes
through the schedule-conflict check in MatchService.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlmodel import Session

from pool_manager.database import get_session
from pool_manager.exceptions import PoolManagerError
from pool_manager.services.match_service import MatchCreate, MatchResponse, MatchService, MatchUpdate
from pool_manager.utils.http_errors import to_http_exception

router = APIRouter()


def get_match_service(session: Session = Depends(get_session)) -> MatchService:
    return MatchService(session)


@router.get("/matches", response_model=List[MatchResponse])
def list_matches(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    player_id: Optional[UUID] = None,
    tournament_id: Optional[UUID] = None,
    service: MatchService = Depends(get_match_service),
):
    """List matches; filters are optional and combined with AND"""
    try:
        return service.list_matches(start_date, end_date, player_id, tournament_id)
    except PoolManagerError as e:
        raise to_http_exception(e, "retrieving matches")


@router.get("/matches/{match_id}", response_model=MatchResponse)
def get_match(match_id: UUID, service: MatchService = Depends(get_match_service)):
    match = service.get_match(match_id)
    if match is None:
        raise HTTPException(status_code=404, detail=f"Match with ID {match_id} not found")
    return match


@router.post("/matches", response_model=MatchResponse, status_code=201)
def create_match(payload: MatchCreate, response: Response, service: MatchService = Depends(get_match_service)):
    """Schedule a match (409 on schedule conflict, 404 on unknown player/tournament)"""
    try:
        match = service.create_match(payload)
    except PoolManagerError as e:
        raise to_http_exception(e, "creating the match")
    response.headers["Location"] = f"/api/matches/{match.id}"
    return match


@router.put("/matches/{match_id}", response_model=MatchResponse)
def update_match(match_id: UUID, payload: MatchUpdate, service: MatchService = Depends(get_match_service)):
    """Partially update a match; omitted fields are left unchanged"""
    try:
        match = service.update_match(match_id, payload)
    except PoolManagerError as e:
        raise to_http_exception(e, "updating the match")
    if match is None:
        raise HTTPException(status_code=404, detail=f"Match with ID {match_id} not found")
    return match


@router.delete("/matches/{match_id}", status_code=204)
def delete_match(match_id: UUID, service: MatchService = Depends(get_match_service)):
    try:
        deleted = service.delete_match(match_id)
    except PoolManagerError as e:
        raise to_http_exception(e, "deleting the match")
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Match with ID {match_id} not found")
    return Response(status_code=204)
