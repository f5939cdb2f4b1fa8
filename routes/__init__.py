"""
API route modules.
"""

from routes.image_uploads import router as image_uploads_router

__all__ = [
    "image_uploads_router",
]
