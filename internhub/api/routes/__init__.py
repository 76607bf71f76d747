"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from internhub.api.routes.auth_routes import router as auth_router
from internhub.api.routes.user_routes import router as user_router
from internhub.api.routes.company_routes import router as company_router
from internhub.api.routes.internship_routes import router as internship_router
from internhub.api.routes.application_routes import router as application_router
from internhub.api.routes.wishlist_routes import router as wishlist_router
from internhub.api.routes.notification_routes import router as notification_router
from internhub.api.routes.message_routes import router as message_router
from internhub.api.routes.admin_routes import router as admin_router
from internhub.api.routes.board_routes import router as board_router
from internhub.api.routes.realtime_routes import router as realtime_router

# Main API router (mounted under /api)
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(company_router)
api_router.include_router(internship_router)
api_router.include_router(application_router)
api_router.include_router(wishlist_router)
api_router.include_router(notification_router)
api_router.include_router(message_router)
api_router.include_router(admin_router)
api_router.include_router(board_router)

__all__ = ["api_router", "realtime_router"]
