"""
API module - FastAPI routers and endpoint definitions.

- api_router: every REST router, mounted under /api
- realtime_router: the /ws WebSocket endpoint, mounted at the root

Usage:
    from internhub.api import api_router, realtime_router
    app.include_router(api_router, prefix="/api")
    app.include_router(realtime_router)
"""

from internhub.api.routes import api_router, realtime_router

__all__ = ["api_router", "realtime_router"]
