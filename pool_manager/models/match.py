import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, Column, DateTime
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from pool_manager.models.player import Player
    from pool_manager.models.tournament import Tournament


class Match(SQLModel, table=True):
    __table_args__ = (CheckConstraint("player1_id <> player2_id", name="ck_match_distinct_players"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    # naive UTC; see pool_manager.utils.datetimes
    scheduled_time: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False, index=True))
    end_time: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=False), nullable=True))
    winner_id: Optional[uuid.UUID] = Field(default=None, foreign_key="player.id")
    tournament_id: Optional[uuid.UUID] = Field(default=None, foreign_key="tournament.id", index=True)
    player1_id: uuid.UUID = Field(foreign_key="player.id", index=True)
    player2_id: uuid.UUID = Field(foreign_key="player.id", index=True)
    location: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = Field(default=None)
    player1_score: Optional[int] = Field(default=None)
    player2_score: Optional[int] = Field(default=None)

    # Relationships
    tournament: Optional["Tournament"] = Relationship(back_populates="matches")
    player1: Optional["Player"] = Relationship(
        back_populates="matches_as_player1", sa_relationship_kwargs={"foreign_keys": "Match.player1_id"}
    )
    player2: Optional["Player"] = Relationship(
        back_populates="matches_as_player2", sa_relationship_kwargs={"foreign_keys": "Match.player2_id"}
    )

    def involves(self, player_id: uuid.UUID) -> bool:
        return self.player1_id == player_id or self.player2_id == player_id
