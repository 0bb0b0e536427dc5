"""
Domain exceptions raised by the service layer.

Routes translate these into HTTP responses:
- ValidationError -> 400
- NotFoundError -> 404
- ConflictError / ScheduleConflictError -> 409
- InternalError -> 500 (generic message, details logged server-side)
"""

from datetime import datetime
from typing import Optional
from uuid import UUID


class PoolManagerError(Exception):
    """Base exception for pool manager errors"""

    status_code = 500


class ValidationError(PoolManagerError):
    """Input is malformed or semantically invalid (caller-fixable)"""

    status_code = 400


class NotFoundError(PoolManagerError):
    """A referenced player, tournament or match does not exist"""

    status_code = 404


class ConflictError(PoolManagerError):
    """The request collides with existing state"""

    status_code = 409


class ScheduleConflictError(ConflictError):
    """One or both players already have an overlapping commitment"""

    def __init__(
        self,
        message: str,
        player1_id: Optional[UUID] = None,
        player2_id: Optional[UUID] = None,
        conflict_time: Optional[datetime] = None,
    ):
        super().__init__(message)
        self.player1_id = player1_id
        self.player2_id = player2_id
        self.conflict_time = conflict_time

    def to_detail(self) -> dict:
        return {
            "message": str(self),
            "player1_id": str(self.player1_id) if self.player1_id else None,
            "player2_id": str(self.player2_id) if self.player2_id else None,
            "conflict_time": self.conflict_time.isoformat() if self.conflict_time else None,
        }


class InternalError(PoolManagerError):
    """Persistence failure or data-integrity violation the caller cannot repair"""

    status_code = 500


class ConfigurationError(PoolManagerError):
    """Required configuration is missing or invalid"""
