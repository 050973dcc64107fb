"""
Security utilities for authentication.
Handles identity token creation and validation.

Identity is issued by an external provider; this service only verifies the
token and reads the opaque user id from its `sub` claim.
"""
import jwt
from datetime import timedelta
from typing import Optional, Dict, Any

from sortmyai.config import settings
from sortmyai.core.exceptions import AuthenticationError
from sortmyai.utils.datetime_utils import utc_now


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create JWT access token.

    Args:
        data: Payload data to encode (must contain "sub")
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token

    Example:
        ```python
        token = create_access_token(
            data={"sub": "uid-123", "username": "ada"},
            expires_delta=timedelta(hours=1)
        )
        ```
    """
    to_encode = data.copy()
    now = utc_now()
    expire = now + (expires_delta or timedelta(hours=settings.jwt_expiration_hours))

    to_encode.update({"exp": expire, "iat": now})

    return jwt.encode(
        to_encode,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm
    )


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        AuthenticationError: If token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(f"Invalid token: {str(e)}")

    if not payload.get("sub"):
        raise AuthenticationError("Invalid token payload - missing subject")

    return payload


def extract_token_from_header(authorization: Optional[str]) -> str:
    """
    Extract the bearer token from an Authorization header.

    Raises:
        AuthenticationError: If the header is missing or malformed
    """
    if not authorization:
        raise AuthenticationError("Missing authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Invalid authorization header format")

    return parts[1]
