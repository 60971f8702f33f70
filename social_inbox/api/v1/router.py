"""
API v1 Router
Main router for all API v1 endpoints
"""

from fastapi import APIRouter
from social_inbox.api.v1.endpoints import health, permissions

api_router = APIRouter()

# Permission management and effective permission endpoints
api_router.include_router(
    permissions.router,
    prefix="/social-permissions",
    tags=["social-permissions"]
)

# Health and monitoring endpoints
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"]
)
