"""Tournament CRUD and match counts."""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, func, select

from pool_manager.exceptions import InternalError, ValidationError
from pool_manager.models.match import Match
from pool_manager.models.tournament import Tournament
from pool_manager.utils.datetimes import to_naive_utc
from pool_manager.utils.sql import scalar_int

logger = logging.getLogger(__name__)

CLEARABLE_FIELDS = {"end_date", "location", "description"}


class TournamentCreate(BaseModel):
    name: str = Field(max_length=100)
    start_date: datetime
    end_date: Optional[datetime] = None
    location: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, v):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class TournamentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=100)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, v):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class TournamentResponse(BaseModel):
    id: UUID
    name: str
    start_date: datetime
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    description: Optional[str] = None
    is_active: bool
    match_count: int = 0


def count_tournament_matches(session: Session, tournament_id: UUID) -> int:
    return scalar_int(session.exec(select(func.count(Match.id)).where(Match.tournament_id == tournament_id)).one())


def _to_response(session: Session, tournament: Tournament) -> TournamentResponse:
    return TournamentResponse(
        id=tournament.id,
        name=tournament.name,
        start_date=tournament.start_date,
        end_date=tournament.end_date,
        location=tournament.location,
        description=tournament.description,
        is_active=tournament.is_active,
        match_count=count_tournament_matches(session, tournament.id),
    )


def _commit(session: Session, action: str) -> None:
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Database error while %s", action)
        raise InternalError(f"Database error while {action}") from e


def list_tournaments(session: Session, is_active: Optional[bool] = None) -> List[TournamentResponse]:
    query = select(Tournament)
    if is_active is not None:
        query = query.where(Tournament.is_active == is_active)
    tournaments = session.exec(query.order_by(Tournament.start_date)).all()
    return [_to_response(session, t) for t in tournaments]


def get_tournament(session: Session, tournament_id: UUID) -> Optional[TournamentResponse]:
    tournament = session.get(Tournament, tournament_id)
    if tournament is None:
        return None
    return _to_response(session, tournament)


def create_tournament(session: Session, data: TournamentCreate) -> TournamentResponse:
    """Create a tournament; new tournaments start active."""
    tournament = Tournament(**data.model_dump(), is_active=True)
    session.add(tournament)
    _commit(session, f"creating tournament {data.name}")
    session.refresh(tournament)
    logger.info("Tournament created with ID: %s", tournament.id)
    return _to_response(session, tournament)


def update_tournament(session: Session, tournament_id: UUID, data: TournamentUpdate) -> Optional[TournamentResponse]:
    tournament = session.get(Tournament, tournament_id)
    if tournament is None:
        return None

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field not in CLEARABLE_FIELDS:
            raise ValidationError(f"{field} cannot be cleared")

    new_start = update_data.get("start_date", tournament.start_date)
    new_end = update_data.get("end_date", tournament.end_date)
    if new_end is not None and new_end < new_start:
        raise ValidationError("end_date must be >= start_date")

    for field, value in update_data.items():
        setattr(tournament, field, value)

    session.add(tournament)
    _commit(session, f"updating tournament {tournament_id}")
    session.refresh(tournament)
    return _to_response(session, tournament)


def delete_tournament(session: Session, tournament_id: UUID) -> bool:
    """Delete a tournament; its matches are kept and detached."""
    tournament = session.get(Tournament, tournament_id)
    if tournament is None:
        return False

    related = session.exec(select(Match).where(Match.tournament_id == tournament_id)).all()
    for match in related:
        match.tournament_id = None
        session.add(match)
    if related:
        logger.info("Detached %d matches from tournament %s", len(related), tournament_id)

    session.delete(tournament)
    _commit(session, f"deleting tournament {tournament_id}")
    return True
