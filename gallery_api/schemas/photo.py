"""
Photo-related Pydantic schemas for request/response validation.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Visibility(str, Enum):
    """Which photos a listing returns."""

    ALL = "all"
    VISIBLE_ONLY = "visible_only"


class PhotoBase(BaseModel):
    """Base schema with the mutable display attributes."""

    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)


class PhotoCreate(PhotoBase):
    """Optional metadata supplied alongside an uploaded file."""

    is_featured: bool = False
    is_visible: bool = True


class PhotoUpdate(BaseModel):
    """
    Metadata patch.

    Unknown keys are kept (not rejected here) so the lifecycle service can
    report exactly which immutable fields a caller tried to change.
    """

    model_config = ConfigDict(extra="allow")

    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    is_featured: Optional[bool] = None
    is_visible: Optional[bool] = None


class PhotoResponse(PhotoBase):
    """Schema for photo response."""

    id: int
    file_name: str
    storage_key: str
    file_size: Optional[int] = None
    mime_type: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    is_featured: bool
    is_visible: bool
    uploaded_by: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PhotoWithUrl(PhotoResponse):
    """
    Photo response with its public URL.
    The URL is derived from configuration on every read and never stored.
    """

    url: str


class PhotoStats(BaseModel):
    """Counts shown on the admin dashboard."""

    total: int = 0
    visible: int = 0
    hidden: int = 0
    featured: int = 0


class BatchUploadItem(BaseModel):
    """Outcome of one file in a batch upload."""

    file_name: str
    success: bool
    photo: Optional[PhotoWithUrl] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class BatchUploadResult(BaseModel):
    """Outcome of a batch upload."""

    uploaded: int
    failed: int
    items: List[BatchUploadItem]
