"""
Database models package.
All models are exported here for easy import.
"""
from gallery_api.models.photo import Photo

__all__ = ["Photo"]
