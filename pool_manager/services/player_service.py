"""Player CRUD, search and profile-picture upload URLs."""

import logging
import re
from typing import List, Optional
from uuid import UUID

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlmodel import Session, func, or_, select

from pool_manager.exceptions import ConflictError, InternalError, NotFoundError, ValidationError
from pool_manager.models.player import Player
from pool_manager.services.storage_service import S3StorageService, validate_content_type

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
CLEARABLE_FIELDS = {"preferred_cue"}


def _check_email(v: Optional[str]) -> Optional[str]:
    if v and not EMAIL_PATTERN.match(v):
        raise ValueError("email is not a valid address")
    return v


# ============================================================================
# Request/Response Models
# ============================================================================


class PlayerCreate(BaseModel):
    name: str = Field(max_length=100)
    email: str = Field(default="", max_length=100)
    preferred_cue: Optional[str] = Field(default=None, max_length=100)
    content_type: str = "image/jpeg"

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _check_email(v)


class PlayerUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[str] = Field(default=None, max_length=100)
    profile_picture_url: Optional[str] = None
    preferred_cue: Optional[str] = Field(default=None, max_length=100)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _check_email(v)


class PlayerResponse(BaseModel):
    id: UUID
    name: str
    email: str
    profile_picture_url: str
    preferred_cue: Optional[str] = None
    ranking: int
    match_count: int = 0


class CreatePlayerResponse(BaseModel):
    player: PlayerResponse
    presigned_url: str = ""


class ProfilePictureUploadResponse(BaseModel):
    presigned_url: str = ""
    profile_picture_url: str = ""


def player_to_response(player: Player) -> PlayerResponse:
    return PlayerResponse(
        id=player.id,
        name=player.name,
        email=player.email,
        profile_picture_url=player.profile_picture_url,
        preferred_cue=player.preferred_cue,
        ranking=player.ranking,
        match_count=player.match_count,
    )


# ============================================================================
# Service
# ============================================================================


class PlayerService:
    def __init__(self, session: Session, storage: Optional[S3StorageService] = None):
        self.session = session
        self.storage = storage

    def _query(self):
        return select(Player).options(
            selectinload(Player.matches_as_player1),
            selectinload(Player.matches_as_player2),
        )

    def list_players(self, search: Optional[str] = None) -> List[PlayerResponse]:
        """List players, optionally filtered by a case-insensitive name/email substring."""
        query = self._query()
        if search:
            term = search.lower()
            query = query.where(
                or_(
                    func.lower(Player.name).contains(term, autoescape=True),
                    func.lower(Player.email).contains(term, autoescape=True),
                )
            )
        players = self.session.exec(query.order_by(Player.name)).all()
        return [player_to_response(p) for p in players]

    def get_player(self, player_id: UUID) -> Optional[PlayerResponse]:
        player = self.session.exec(self._query().where(Player.id == player_id)).first()
        if player is None:
            return None
        return player_to_response(player)

    def create_player(self, data: PlayerCreate) -> CreatePlayerResponse:
        """Create a player and issue an upload URL for the profile picture."""
        validate_content_type(data.content_type)

        player = Player(
            name=data.name,
            email=data.email,
            preferred_cue=data.preferred_cue,
            profile_picture_url="",
            ranking=0,
        )
        self.session.add(player)

        presigned_url, object_url = self._presign(player.id, data.content_type)
        player.profile_picture_url = object_url
        self._commit(f"creating player {data.name}")
        self.session.refresh(player)

        logger.info("Player created with ID: %s", player.id)
        return CreatePlayerResponse(player=player_to_response(player), presigned_url=presigned_url)

    def update_player(self, player_id: UUID, data: PlayerUpdate) -> Optional[PlayerResponse]:
        player = self.session.get(Player, player_id)
        if player is None:
            return None

        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if value is None and field not in CLEARABLE_FIELDS:
                raise ValidationError(f"{field} cannot be cleared")
        for field, value in update_data.items():
            setattr(player, field, value)

        self.session.add(player)
        self._commit(f"updating player {player_id}")
        return self.get_player(player_id)

    def delete_player(self, player_id: UUID) -> bool:
        """Delete a player. Players still referenced by matches are kept."""
        player = self.session.get(Player, player_id)
        if player is None:
            return False

        if player.match_count:
            raise ConflictError(
                f"Player {player_id} has {player.match_count} matches and cannot be deleted"
            )

        self.session.delete(player)
        self._commit(f"deleting player {player_id}")
        logger.info("Player %s deleted", player_id)
        return True

    def generate_profile_picture_upload(
        self, player_id: UUID, content_type: str = "image/jpeg"
    ) -> ProfilePictureUploadResponse:
        """
        Issue a fresh upload URL and point the player's picture at the new object.

        Raises:
            NotFoundError if the player does not exist
            ValidationError if the content type is not allowed
        """
        player = self.session.get(Player, player_id)
        if player is None:
            raise NotFoundError(f"Player with ID {player_id} not found")
        validate_content_type(content_type)

        presigned_url, object_url = self._presign(player_id, content_type)
        player.profile_picture_url = object_url
        self.session.add(player)
        self._commit(f"updating profile picture for player {player_id}")
        return ProfilePictureUploadResponse(presigned_url=presigned_url, profile_picture_url=object_url)

    def _presign(self, player_id: UUID, content_type: str):
        if self.storage is None:
            return "", ""
        try:
            return self.storage.generate_presigned_upload(player_id, content_type)
        except (BotoCoreError, ClientError) as e:
            self.session.rollback()
            raise InternalError("Could not generate profile picture upload URL") from e

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Database error while %s", action)
            raise InternalError(f"Database error while {action}") from e
