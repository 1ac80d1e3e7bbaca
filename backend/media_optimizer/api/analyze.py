import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from media_optimizer.api.deps import get_extractor, uploaded_file
from media_optimizer.config import settings
from media_optimizer.errors import ExtractionError
from media_optimizer.schemas.recommendation import OptimizationResponse
from media_optimizer.services.metadata_extractor import MetadataExtractor
from media_optimizer.services.recommendation_service import RecommendationEngine

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/analyze", response_model=OptimizationResponse)
async def analyze_file(
    file: UploadFile = File(...),
    profile_id: str = Form(settings.DEFAULT_PROFILE),
    is_profile: bool = Form(False),
    extractor: MetadataExtractor = Depends(get_extractor),
):
    media = await uploaded_file(file)
    try:
        metadata = await extractor.analyze(media)
    except ExtractionError as e:
        logger.warning(f"Analyze failed for {e.filename}: {e.reason}")
        raise HTTPException(status_code=422, detail=str(e))
    return RecommendationEngine(metadata, profile_id, is_profile).to_response()
