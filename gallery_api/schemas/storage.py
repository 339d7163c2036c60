"""
Blob store listing schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ObjectInfo(BaseModel):
    """One entry of a blob store listing."""

    key: str
    size: int
    last_modified: Optional[datetime] = None
