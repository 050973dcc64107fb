"""
Dependency injection for FastAPI routes.
Provides reusable dependencies for authentication and database sessions.
"""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from sortmyai.core.database import get_db
from sortmyai.core.security import decode_token, extract_token_from_header
from sortmyai.models.user import User
from sortmyai.services.user_service import UserService


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependency to get the current authenticated user.

    Flow:
    1. Verify the bearer token locally (HS256, no external call)
    2. Read the user id from the `sub` claim
    3. Create or refresh the local user from the token claims

    Raises:
        AuthenticationError: 401 if the token is missing or invalid

    Example:
        ```python
        @router.get("/protected")
        async def protected_route(current_user: User = Depends(get_current_user)):
            return {"user": current_user.username}
        ```
    """
    token = extract_token_from_header(authorization)
    payload = decode_token(token)

    user_service = UserService(db)
    user = await user_service.user_repo.get(payload["sub"])
    if user is None or _claims_changed(user, payload):
        user = await user_service.sync_from_claims(payload["sub"], payload)
    return user


def _claims_changed(user: User, payload: dict) -> bool:
    for claim, attribute in (("username", "username"), ("name", "display_name"), ("picture", "avatar_url")):
        value = payload.get(claim)
        if value and value != getattr(user, attribute):
            return True
    return False
