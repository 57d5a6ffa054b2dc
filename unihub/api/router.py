"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from unihub.api.routes import auth, users, clubs, posters, tickets

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(clubs.router)
api_router.include_router(posters.router)
api_router.include_router(tickets.router)
