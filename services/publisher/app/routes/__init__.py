"""API routes."""

from fastapi import APIRouter

from app.routes import admin

api_router = APIRouter()

# Admin endpoints (dry-run previews)
api_router.include_router(admin.router, prefix="/v1/admin", tags=["admin"])
