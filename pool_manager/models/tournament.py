import uuid
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from pool_manager.models.match import Match


class Tournament(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(max_length=100)
    start_date: datetime = Field(sa_column=Column(DateTime(timezone=False), nullable=False))
    end_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=False), nullable=True))
    location: Optional[str] = Field(default=None, max_length=200)
    description: Optional[str] = None
    is_active: bool = Field(default=True)

    # Relationships
    matches: List["Match"] = Relationship(back_populates="tournament")
