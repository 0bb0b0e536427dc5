from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlmodel import Session

from pool_manager.database import get_session
from pool_manager.exceptions import PoolManagerError
from pool_manager.models.tournament import Tournament
from pool_manager.services import tournament_service
from pool_manager.services.tournament_service import TournamentCreate, TournamentResponse, TournamentUpdate
from pool_manager.utils.http_errors import to_http_exception

router = APIRouter()


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(is_active: Optional[bool] = None, session: Session = Depends(get_session)):
    """List tournaments, optionally only active or inactive ones"""
    return tournament_service.list_tournaments(session, is_active)


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: UUID, session: Session = Depends(get_session)):
    """Get a tournament by ID"""
    tournament = tournament_service.get_tournament(session, tournament_id)
    if tournament is None:
        raise HTTPException(status_code=404, detail=f"Tournament with ID {tournament_id} not found")
    return tournament


@router.get("/tournaments/{tournament_id}/match-count", response_model=Dict[str, int])
def get_tournament_match_count(tournament_id: UUID, session: Session = Depends(get_session)):
    if session.get(Tournament, tournament_id) is None:
        raise HTTPException(status_code=404, detail=f"Tournament with ID {tournament_id} not found")
    return {"match_count": tournament_service.count_tournament_matches(session, tournament_id)}


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(payload: TournamentCreate, session: Session = Depends(get_session)):
    try:
        return tournament_service.create_tournament(session, payload)
    except PoolManagerError as e:
        raise to_http_exception(e, "creating the tournament")


@router.put("/tournaments/{tournament_id}", response_model=TournamentResponse)
def update_tournament(tournament_id: UUID, payload: TournamentUpdate, session: Session = Depends(get_session)):
    try:
        tournament = tournament_service.update_tournament(session, tournament_id, payload)
    except PoolManagerError as e:
        raise to_http_exception(e, "updating the tournament")
    if tournament is None:
        raise HTTPException(status_code=404, detail=f"Tournament with ID {tournament_id} not found")
    return tournament


@router.delete("/tournaments/{tournament_id}", status_code=204)
def delete_tournament(tournament_id: UUID, session: Session = Depends(get_session)):
    """Delete a tournament; its matches stay and lose their tournament link"""
    try:
        deleted = tournament_service.delete_tournament(session, tournament_id)
    except PoolManagerError as e:
        raise to_http_exception(e, "deleting the tournament")
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Tournament with ID {tournament_id} not found")
    return Response(status_code=204)
