import uuid
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import CheckConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from pool_manager.models.match import Match


class Player(SQLModel, table=True):
    __table_args__ = (CheckConstraint("ranking >= 0", name="ck_player_ranking_non_negative"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(max_length=100)
    email: str = Field(default="", max_length=100)
    profile_picture_url: str = Field(default="")
    preferred_cue: Optional[str] = Field(default=None, max_length=100)
    ranking: int = Field(default=0)  # never negative; only match outcomes change it

    # Relationships
    matches_as_player1: List["Match"] = Relationship(
        back_populates="player1", sa_relationship_kwargs={"foreign_keys": "Match.player1_id"}
    )
    matches_as_player2: List["Match"] = Relationship(
        back_populates="player2", sa_relationship_kwargs={"foreign_keys": "Match.player2_id"}
    )

    @property
    def match_count(self) -> int:
        return len(self.matches_as_player1) + len(self.matches_as_player2)
