"""
Identity schemas.

Tokens are issued by an external identity provider; this service only
verifies them and passes the resulting Actor into the lifecycle service.
"""
from typing import Optional

from pydantic import BaseModel, Field


class TokenPayload(BaseModel):
    """Claims read from a verified bearer token."""

    sub: str
    exp: Optional[int] = None
    email: Optional[str] = None
    role: Optional[str] = None


class Actor(BaseModel):
    """A verified, authenticated identity performing a mutating operation."""

    id: str = Field(..., min_length=1)
    role: Optional[str] = None
