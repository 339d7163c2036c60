"""
API routers package.
"""
from gallery_api.routers.health import router as health_router
from gallery_api.routers.photos import router as photos_router

__all__ = ["health_router", "photos_router"]
