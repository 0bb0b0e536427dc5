"""
Match lifecycle: create / update / delete with schedule-conflict enforcement.

Every write validates first and mutates second; the match, and any ranking
changes caused by recording a winner, are committed as one unit of work.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlmodel import Session, and_, or_, select

from pool_manager.exceptions import (
    ConflictError,
    InternalError,
    NotFoundError,
    ScheduleConflictError,
    ValidationError,
)
from pool_manager.models.match import Match
from pool_manager.models.tournament import Tournament
from pool_manager.services.conflict_detector import find_conflicting_match, query_matches_touching_players
from pool_manager.services.ranking import adjust_rankings
from pool_manager.services.schedule_locks import lock_player_rows, player_schedule_lock
from pool_manager.utils.datetimes import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

REQUIRED_UPDATE_FIELDS = ("scheduled_time", "player1_id", "player2_id")


# ============================================================================
# Request/Response Models
# ============================================================================


class PlayerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    profile_picture_url: str = ""


class MatchCreate(BaseModel):
    scheduled_time: datetime
    player1_id: UUID
    player2_id: UUID
    tournament_id: Optional[UUID] = None
    location: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = None

    @field_validator("scheduled_time")
    @classmethod
    def normalize_scheduled_time(cls, v):
        return to_naive_utc(v)


class MatchUpdate(BaseModel):
    """Partial update. Absent fields are untouched; explicit null clears nullable fields."""

    scheduled_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    winner_id: Optional[UUID] = None
    tournament_id: Optional[UUID] = None
    player1_id: Optional[UUID] = None
    player2_id: Optional[UUID] = None
    location: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = None
    player1_score: Optional[int] = Field(default=None, ge=0)
    player2_score: Optional[int] = Field(default=None, ge=0)

    @field_validator("scheduled_time", "end_time")
    @classmethod
    def normalize_times(cls, v):
        return to_naive_utc(v)

    def provided(self, field: str) -> bool:
        return field in self.model_fields_set


class MatchResponse(BaseModel):
    id: UUID
    scheduled_time: datetime
    end_time: Optional[datetime] = None
    winner_id: Optional[UUID] = None
    tournament_id: Optional[UUID] = None
    tournament_name: Optional[str] = None
    player1_id: UUID
    player2_id: UUID
    player1: Optional[PlayerSummary] = None
    player2: Optional[PlayerSummary] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    player1_score: Optional[int] = None
    player2_score: Optional[int] = None


def match_to_response(match: Match) -> MatchResponse:
    return MatchResponse(
        id=match.id,
        scheduled_time=match.scheduled_time,
        end_time=match.end_time,
        winner_id=match.winner_id,
        tournament_id=match.tournament_id,
        tournament_name=match.tournament.name if match.tournament else None,
        player1_id=match.player1_id,
        player2_id=match.player2_id,
        player1=PlayerSummary.model_validate(match.player1) if match.player1 else None,
        player2=PlayerSummary.model_validate(match.player2) if match.player2 else None,
        location=match.location,
        notes=match.notes,
        player1_score=match.player1_score,
        player2_score=match.player2_score,
    )


# ============================================================================
# Service
# ============================================================================


class MatchService:
    """Match lifecycle manager bound to one request's session."""

    def __init__(
        self,
        session: Session,
        log: Optional[logging.Logger] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.log = log or logger
        self.clock = clock

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _resolved_query(self):
        return select(Match).options(
            selectinload(Match.player1),
            selectinload(Match.player2),
            selectinload(Match.tournament),
        )

    def list_matches(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        player_id: Optional[UUID] = None,
        tournament_id: Optional[UUID] = None,
    ) -> List[MatchResponse]:
        """List matches; every supplied filter must hold."""
        predicates = []
        if start_date is not None:
            predicates.append(Match.scheduled_time >= to_naive_utc(start_date))
        if end_date is not None:
            predicates.append(Match.scheduled_time <= to_naive_utc(end_date))
        if player_id is not None:
            predicates.append(or_(Match.player1_id == player_id, Match.player2_id == player_id))
        if tournament_id is not None:
            predicates.append(Match.tournament_id == tournament_id)

        query = self._resolved_query()
        if predicates:
            query = query.where(and_(*predicates))
        matches = self.session.exec(query.order_by(Match.scheduled_time)).all()
        return [match_to_response(m) for m in matches]

    def get_match(self, match_id: UUID) -> Optional[MatchResponse]:
        match = self.session.exec(self._resolved_query().where(Match.id == match_id)).first()
        if match is None:
            return None
        return match_to_response(match)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_match(self, data: MatchCreate) -> MatchResponse:
        """
        Schedule a new match.

        Raises:
            ValidationError: both sides are the same player
            NotFoundError: a player or the tournament does not exist
            ScheduleConflictError: either player is already booked around scheduled_time
        """
        self.log.info(
            "Creating match: player1=%s, player2=%s, time=%s",
            data.player1_id,
            data.player2_id,
            data.scheduled_time,
        )
        if data.player1_id == data.player2_id:
            raise ValidationError("Player 1 and Player 2 cannot be the same player")

        with player_schedule_lock([data.player1_id, data.player2_id]):
            players = lock_player_rows(self.session, [data.player1_id, data.player2_id])
            if data.player1_id not in players or data.player2_id not in players:
                raise NotFoundError("One or more players were not found")

            tournament = None
            if data.tournament_id is not None:
                tournament = self.session.get(Tournament, data.tournament_id)
                if tournament is None:
                    raise NotFoundError(f"Tournament with ID {data.tournament_id} not found")

            self._ensure_no_conflict(
                data.player1_id,
                data.player2_id,
                data.scheduled_time,
                message="One or more players already have a match scheduled at this time",
            )

            location = data.location
            if tournament is not None and not location and tournament.location:
                self.log.info("Using tournament location for match: %s", tournament.location)
                location = tournament.location

            match = Match(
                scheduled_time=data.scheduled_time,
                player1_id=data.player1_id,
                player2_id=data.player2_id,
                tournament_id=data.tournament_id,
                location=location,
                notes=data.notes,
            )
            self.session.add(match)
            self._commit(f"creating match for players {data.player1_id}/{data.player2_id}")
            match_id = match.id

        self.log.info("Match created with ID: %s", match_id)
        created = self.get_match(match_id)
        if created is None:
            self.log.error("Failed to retrieve newly created match %s", match_id)
            raise InternalError("Failed to retrieve newly created match")
        return created

    def update_match(self, match_id: UUID, data: MatchUpdate) -> Optional[MatchResponse]:
        """
        Apply a partial update. Returns None if the match does not exist.

        Raises:
            ValidationError: required field cleared, same player twice, winner not a
                participant, or end_time before scheduled_time. A winner outside the
                match is rejected here as caller input rather than left to the ranking
                step's InternalError.
            NotFoundError: new player or tournament does not exist
            ScheduleConflictError: new time or new players collide with another match
        """
        match = self.session.get(Match, match_id)
        if match is None:
            return None

        for field in REQUIRED_UPDATE_FIELDS:
            if data.provided(field) and getattr(data, field) is None:
                raise ValidationError(f"{field} cannot be cleared")

        new_time = data.scheduled_time if data.provided("scheduled_time") else match.scheduled_time
        new_player1 = data.player1_id if data.provided("player1_id") else match.player1_id
        new_player2 = data.player2_id if data.provided("player2_id") else match.player2_id
        time_changed = new_time != match.scheduled_time
        players_changed = new_player1 != match.player1_id or new_player2 != match.player2_id

        lock_ids = [match.player1_id, match.player2_id, new_player1, new_player2]
        with player_schedule_lock(lock_ids):
            players = lock_player_rows(self.session, lock_ids)

            if time_changed:
                self._ensure_no_conflict(
                    match.player1_id,
                    match.player2_id,
                    new_time,
                    exclude_match_id=match_id,
                    message="This update would cause a schedule conflict for one or more players",
                )

            if players_changed:
                for player_id in (new_player1, new_player2):
                    if player_id not in players:
                        raise NotFoundError(f"Player with ID {player_id} not found")

            if new_player1 == new_player2:
                raise ValidationError("Player 1 and Player 2 cannot be the same player")

            if players_changed:
                self._ensure_no_conflict(
                    new_player1,
                    new_player2,
                    new_time,
                    exclude_match_id=match_id,
                    message="This update would cause a schedule conflict for one or more players",
                )

            new_end = data.end_time if data.provided("end_time") else match.end_time
            if new_end is not None and new_end < new_time:
                raise ValidationError("end_time cannot be before scheduled_time")

            previous_winner = match.winner_id
            if data.provided("winner_id"):
                if data.winner_id is not None and data.winner_id not in (new_player1, new_player2):
                    raise ValidationError("Winner must be one of the match players")
            elif previous_winner is not None and previous_winner not in (new_player1, new_player2):
                raise ValidationError(
                    "The recorded winner is not one of the new players; replace or clear winner_id in the same update"
                )
            winner_changed = (
                data.provided("winner_id") and data.winner_id is not None and data.winner_id != previous_winner
            )

            tournament = None
            if data.provided("tournament_id") and data.tournament_id is not None:
                if data.tournament_id != match.tournament_id:
                    tournament = self.session.get(Tournament, data.tournament_id)
                    if tournament is None:
                        raise NotFoundError(f"Tournament with ID {data.tournament_id} not found")

            # Validation done; mutate
            match.scheduled_time = new_time
            match.player1_id = new_player1
            match.player2_id = new_player2
            match.end_time = new_end
            if data.provided("winner_id"):
                match.winner_id = data.winner_id
            if data.provided("tournament_id"):
                if tournament is not None:
                    self.log.info("Moving match %s to tournament %s (%s)", match_id, tournament.id, tournament.name)
                    if not data.provided("location") and not match.location and tournament.location:
                        self.log.info("Using tournament location for match: %s", tournament.location)
                        match.location = tournament.location
                match.tournament_id = data.tournament_id
            for field in ("location", "notes", "player1_score", "player2_score"):
                if data.provided(field):
                    setattr(match, field, getattr(data, field))

            self.session.add(match)
            if winner_changed:
                try:
                    self.session.flush()
                    adjust_rankings(self.session, match)
                except InternalError:
                    self.session.rollback()
                    self.log.exception("Ranking update failed for match %s", match_id)
                    raise
            self._commit(f"updating match {match_id}")

        return self.get_match(match_id)

    def delete_match(self, match_id: UUID) -> bool:
        match = self.session.get(Match, match_id)
        if match is None:
            return False

        if match.tournament_id is not None:
            tournament = self.session.get(Tournament, match.tournament_id)
            if tournament is not None and match in tournament.matches:
                self.log.info("Removing match %s from tournament %s before deletion", match_id, tournament.id)
                tournament.matches.remove(match)

        self.session.delete(match)
        self._commit(f"deleting match {match_id}")
        self.log.info("Match %s deleted", match_id)
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ensure_no_conflict(
        self,
        player1_id: UUID,
        player2_id: UUID,
        proposed_time: datetime,
        message: str,
        exclude_match_id: Optional[UUID] = None,
    ) -> None:
        existing = query_matches_touching_players(self.session, [player1_id, player2_id], exclude_match_id)
        conflict = find_conflicting_match(
            player1_id, player2_id, proposed_time, existing, self.clock(), exclude_match_id
        )
        if conflict is not None:
            self.log.warning(
                "Schedule conflict for players %s/%s at %s with match %s",
                player1_id,
                player2_id,
                proposed_time,
                conflict.id,
            )
            raise ScheduleConflictError(message, player1_id, player2_id, proposed_time)

    def _commit(self, action: str) -> None:
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            self.log.warning("Constraint violation while %s: %s", action, e.orig)
            raise ConflictError(f"Constraint violation while {action}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            self.log.exception("Database error while %s", action)
            raise InternalError(f"Database error while {action}") from e

