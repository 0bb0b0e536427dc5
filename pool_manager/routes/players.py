"""
Player API Routes
Provides CRUD operations for players and profile-picture upload URLs.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response
from sqlmodel import Session

from pool_manager.database import get_session
from pool_manager.exceptions import PoolManagerError
from pool_manager.services.player_service import (
    CreatePlayerResponse,
    PlayerCreate,
    PlayerResponse,
    PlayerService,
    PlayerUpdate,
    ProfilePictureUploadResponse,
)
from pool_manager.services.storage_service import S3StorageService, get_storage_service
from pool_manager.utils.http_errors import to_http_exception

router = APIRouter()


def get_player_service(
    session: Session = Depends(get_session),
    storage: Optional[S3StorageService] = Depends(get_storage_service),
) -> PlayerService:
    return PlayerService(session, storage)


@router.get("/players", response_model=List[PlayerResponse])
def list_players(search: Optional[str] = None, service: PlayerService = Depends(get_player_service)):
    """List players, optionally filtered by name or email substring"""
    return service.list_players(search)


@router.get("/players/{player_id}", response_model=PlayerResponse)
def get_player(player_id: UUID, service: PlayerService = Depends(get_player_service)):
    player = service.get_player(player_id)
    if player is None:
        raise HTTPException(status_code=404, detail=f"Player with ID {player_id} not found")
    return player


@router.post("/players", response_model=CreatePlayerResponse, status_code=201)
def create_player(payload: PlayerCreate, service: PlayerService = Depends(get_player_service)):
    """Create a player; the response carries a presigned URL for the profile picture"""
    try:
        return service.create_player(payload)
    except PoolManagerError as e:
        raise to_http_exception(e, "creating the player")


@router.put("/players/{player_id}", response_model=PlayerResponse)
def update_player(player_id: UUID, payload: PlayerUpdate, service: PlayerService = Depends(get_player_service)):
    try:
        player = service.update_player(player_id, payload)
    except PoolManagerError as e:
        raise to_http_exception(e, "updating the player")
    if player is None:
        raise HTTPException(status_code=404, detail=f"Player with ID {player_id} not found")
    return player


@router.delete("/players/{player_id}", status_code=204)
def delete_player(player_id: UUID, service: PlayerService = Depends(get_player_service)):
    """Delete a player (409 while the player still has matches)"""
    try:
        deleted = service.delete_player(player_id)
    except PoolManagerError as e:
        raise to_http_exception(e, "deleting the player")
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Player with ID {player_id} not found")
    return Response(status_code=204)


@router.post("/players/{player_id}/profile-picture", response_model=ProfilePictureUploadResponse)
def generate_profile_picture_upload_url(
    player_id: UUID,
    content_type: str = "image/jpeg",
    service: PlayerService = Depends(get_player_service),
):
    """Issue a new presigned upload URL and point the player at the new picture"""
    try:
        return service.generate_profile_picture_upload(player_id, content_type)
    except PoolManagerError as e:
        raise to_http_exception(e, "generating the profile picture upload URL")
