"""Main API router — aggregates all endpoint modules."""

from fastapi import APIRouter

from preset_vault.api.presets import router as presets_router

api_router = APIRouter()

api_router.include_router(presets_router, prefix="/presets", tags=["presets"])
