# post_notifications/security/jwt_utils.py
import jwt
from fastapi import Header, HTTPException, status

from post_notifications import config


def decode_token(token: str) -> dict:
    """
    Decodes and validates the JWT (WebSocket and REST).
    Raises 401 when invalid or when it has no subject.
    """
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALG])
    except jwt.PyJWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        )

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token without subject",
        )

    return payload


def get_current_user(authorization_header: str) -> dict:
    """
    Takes the header: Authorization: Bearer <token>
    Validates it and returns the payload.
    Raises 401 when missing or invalid.
    """
    if not authorization_header:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing Authorization header",
        )

    if not authorization_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Authorization header format",
        )

    token = authorization_header.removeprefix("Bearer ").strip()
    return decode_token(token)


def current_user_id(authorization: str = Header(default="")) -> str:
    """FastAPI dependency: the `sub` of the bearer token."""
    return get_current_user(authorization)["sub"]
