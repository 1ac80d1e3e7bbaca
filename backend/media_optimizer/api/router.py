from fastapi import APIRouter
from media_optimizer.api import health, profiles, analyze, recommendations, batch, logs

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(profiles.router, tags=["profiles"])
api_router.include_router(analyze.router, tags=["analyze"])
api_router.include_router(recommendations.router, prefix="/recommendations", tags=["recommendations"])
api_router.include_router(batch.router, prefix="/batch", tags=["batch"])
api_router.include_router(logs.router, tags=["logs"])
