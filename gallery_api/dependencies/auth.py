"""
Authentication dependencies for FastAPI.
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from gallery_api.schemas.auth import Actor
from gallery_api.utils.security import decode_access_token

logger = logging.getLogger("gallery.auth")

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def _actor_from_credentials(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[Actor]:
    if not credentials:
        return None
    token_payload = decode_access_token(credentials.credentials)
    if token_payload is None:
        return None
    return Actor(id=token_payload.sub, role=token_payload.role)


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Actor:
    """
    Dependency to get the verified actor of the request.

    Raises:
        HTTPException: If the token is missing or invalid
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not credentials:
        logger.warning("Auth failed", extra={"event": "auth", "reason": "no_token"})
        raise credentials_exception

    actor = _actor_from_credentials(credentials)
    if actor is None:
        logger.warning("Auth failed", extra={"event": "auth", "reason": "invalid_or_expired_token"})
        raise credentials_exception

    return actor


async def get_optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[Actor]:
    """
    Dependency to optionally get the actor.
    Returns None if no valid token is provided.
    """
    return _actor_from_credentials(credentials)
