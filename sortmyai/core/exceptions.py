"""
Domain exceptions.

Every error raised by the service layer is an HTTPException subclass, so it
propagates unchanged through the API routes and FastAPI renders it with the
right status code.
"""
import functools
import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class SortMyAIError(HTTPException):
    """Base class for all domain errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"

    def __init__(self, detail: str, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail,
            headers=headers,
        )
        self.message = detail

    def __str__(self) -> str:
        return self.message


class NotFoundError(SortMyAIError):
    """Referenced user, conversation or message does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class AlreadyFollowingError(SortMyAIError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_following"


class NotFollowingError(SortMyAIError):
    status_code = status.HTTP_409_CONFLICT
    code = "not_following"


class SelfFollowError(SortMyAIError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "self_follow"


class NotAuthorizedError(SortMyAIError):
    """The acting user may not perform this action."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "not_authorized"


class InvalidStateError(SortMyAIError):
    """Transition attempted from the wrong lifecycle state."""

    status_code = status.HTTP_409_CONFLICT
    code = "invalid_state"


class ValidationError(SortMyAIError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class BackendError(SortMyAIError):
    """Wraps a failure of the underlying store."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "backend_error"


class AuthenticationError(SortMyAIError):
    """Missing, malformed or expired identity token."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "authentication_failed"

    def __init__(self, detail: str):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


def wrap_store_errors(action: str):
    """
    Decorator for service methods: any SQLAlchemyError that escapes the
    method (reads included) is re-raised as BackendError.

    Domain errors pass through untouched.

    Example:
        ```python
        @wrap_store_errors("follow user")
        async def follow(self, actor_id, target_id): ...
        ```
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.error(f"Store failure during {action}: {e}", exc_info=True)
                raise BackendError(f"Failed to {action}") from e
        return wrapper
    return decorator
