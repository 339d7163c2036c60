"""
Data access layer.
"""
from gallery_api.repositories.photo import PhotoRepository

__all__ = ["PhotoRepository"]
