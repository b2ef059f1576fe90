"""
API v1 router combining all v1 endpoints.
"""
from fastapi import APIRouter

from ieltsmock.api.v1 import health, results, sessions

api_router = APIRouter()

# Include all v1 routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(sessions.router, tags=["sessions"])
api_router.include_router(results.router, tags=["results"])
