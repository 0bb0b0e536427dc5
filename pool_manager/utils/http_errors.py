"""
Translation of service-layer exceptions into HTTP errors.

Internal errors are logged with full context; the caller only gets a
generic message naming the failed action.
"""
import logging

from fastapi import HTTPException

from pool_manager.exceptions import InternalError, PoolManagerError, ScheduleConflictError

logger = logging.getLogger(__name__)


def to_http_exception(exc: PoolManagerError, action: str) -> HTTPException:
    if isinstance(exc, ScheduleConflictError):
        return HTTPException(status_code=409, detail=exc.to_detail())
    if isinstance(exc, InternalError) or exc.status_code >= 500:
        logger.error("Internal error while %s: %s", action, exc, exc_info=exc)
        return HTTPException(status_code=500, detail=f"An error occurred while {action}")
    logger.warning("Rejected request while %s: %s", action, exc)
    return HTTPException(status_code=exc.status_code, detail=str(exc))
