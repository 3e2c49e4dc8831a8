"""API routers"""

from .prices import router as prices_router

__all__ = ["prices_router"]
