"""
Connection diagnostics schemas.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class CheckStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class ConnectionCheck(BaseModel):
    """Result of a single diagnostic step."""

    name: str
    status: CheckStatus
    message: str
    details: Optional[str] = None


class ConnectionReport(BaseModel):
    """All diagnostic steps, in execution order."""

    healthy: bool
    checks: List[ConnectionCheck]
