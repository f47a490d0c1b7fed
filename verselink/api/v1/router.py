from fastapi import APIRouter

from verselink.api.v1.endpoints import health, notes, scripture

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(scripture.router, prefix="/scripture", tags=["Scripture"])
api_router.include_router(notes.router, prefix="/notes", tags=["Notes"])
api_router.include_router(health.router, prefix="/health", tags=["Health"])

__all__ = ["api_router"]
