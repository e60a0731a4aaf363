"""
Access Control

Bearer credential issuance and the FastAPI dependencies guarding protected
routes:
    - get_current_uid: valid credential required (401 otherwise)
    - require_admin: caller's stored role must be "admin" (403 otherwise)
    - ensure_self: caller must be the user named in the request (403)
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from bistro.core.config import Settings, get_settings
from bistro.core.errors import Forbidden, Unauthorized
from bistro.database import get_store
from bistro.models import UserRole
from bistro.services.store import BaseOrderingStore

logger = logging.getLogger(__name__)

# auto_error=False so a missing header becomes our 401 rather than FastAPI's default
bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(payload: dict, settings: Settings) -> str:
    """
    Sign a user payload into a bearer credential.

    The payload must carry the caller's ``uid``; ``iat`` and ``exp`` are
    added here.
    """
    now = datetime.now(timezone.utc)
    claims = {
        **payload,
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(
        claims,
        settings.access_token_secret,
        algorithm=settings.access_token_algorithm,
    )


def decode_access_token(token: str, settings: Settings) -> dict:
    """
    Verify a bearer credential and return its claims.

    Raises:
        Unauthorized: If the token is malformed, expired, badly signed or
            has no ``uid`` claim
    """
    try:
        claims = jwt.decode(
            token,
            settings.access_token_secret,
            algorithms=[settings.access_token_algorithm],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise Unauthorized("token expired")
    except jwt.PyJWTError as e:
        logger.warning(f"Rejected bearer credential: {e}")
        raise Unauthorized()

    if not isinstance(claims.get("uid"), str) or not claims["uid"]:
        raise Unauthorized()
    return claims


async def get_current_uid(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> str:
    """Dependency: the ``uid`` of the authenticated caller."""
    if credentials is None:
        raise Unauthorized()
    return decode_access_token(credentials.credentials, settings)["uid"]


async def require_admin(
    uid: str = Depends(get_current_uid),
    store: BaseOrderingStore = Depends(get_store),
) -> str:
    """
    Dependency: the caller must be an admin.

    Credential verification is a sub-dependency, so the role lookup never
    runs for unauthenticated callers.
    """
    user = await store.find_user(uid)
    if user is None or user.get("role") != UserRole.ADMIN.value:
        logger.warning(f"Admin access denied for {uid}")
        raise Forbidden()
    return uid


def ensure_self(caller_uid: str, requested_uid: Optional[str]) -> None:
    """
    Raise Forbidden unless the caller is the user named in the request.
    """
    if requested_uid != caller_uid:
        logger.warning(f"Identity mismatch: {caller_uid} requested {requested_uid}")
        raise Forbidden()
