"""
Huddle API - Routes Module
Mounted under settings.API_PREFIX by create_app()
"""

from fastapi import APIRouter

from app.routes.notifications import router as notifications_router

api_router = APIRouter()
api_router.include_router(notifications_router)

__all__ = ["api_router", "notifications_router"]
