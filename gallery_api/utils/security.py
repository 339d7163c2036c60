"""
Bearer token verification.

Tokens are issued by the external identity provider; this module only checks
the signature, expiry and (optionally) audience and extracts the claims.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from pydantic import ValidationError

from gallery_api.config import Settings, get_settings
from gallery_api.schemas.auth import TokenPayload


def create_access_token(
    subject: str,
    expires_delta: Optional[timedelta] = None,
    settings: Optional[Settings] = None,
    **claims: Any,
) -> str:
    """
    Create a signed JWT.

    Used for local development and tests; production tokens come from the
    identity provider with the same secret/algorithm/audience.
    """
    settings = settings or get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=30)

    to_encode: Dict[str, Any] = {
        "sub": str(subject),
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    if settings.jwt_audience:
        to_encode["aud"] = settings.jwt_audience
    to_encode.update(claims)

    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> Optional[TokenPayload]:
    """
    Decode and validate a JWT access token.

    Args:
        token: JWT token string

    Returns:
        TokenPayload if valid, None if invalid
    """
    settings = settings or get_settings()
    options = {"verify_aud": bool(settings.jwt_audience)}
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience or None,
            options=options,
        )
    except JWTError:
        return None

    if not payload.get("sub"):
        return None

    try:
        return TokenPayload(
            sub=str(payload["sub"]),
            exp=payload.get("exp"),
            email=payload.get("email"),
            role=payload.get("role"),
        )
    except ValidationError:
        return None
