from fastapi import APIRouter, HTTPException

from media_optimizer.schemas.recommendation import (
    RecommendationRequest, CompareRequest, OptimizationResponse, ProfileComparison,
)
from media_optimizer.services.recommendation_service import RecommendationEngine, compare_profiles

router = APIRouter()


@router.post("", response_model=OptimizationResponse)
async def recommend(data: RecommendationRequest):
    engine = RecommendationEngine(data.metadata, data.profile_id, data.is_profile)
    return engine.to_response()


@router.post("/compare", response_model=ProfileComparison)
async def compare(data: CompareRequest):
    if not data.profile_ids:
        raise HTTPException(status_code=400, detail="At least one profile id is required")
    return compare_profiles(data.metadata, data.profile_ids)
