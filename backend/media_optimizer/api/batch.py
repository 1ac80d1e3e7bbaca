import logging
from typing import Callable, List

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response

from media_optimizer.api.deps import get_batch, get_extractor_factory, get_registry, uploaded_file
from media_optimizer.config import settings
from media_optimizer.schemas.batch import BatchResponse, BatchProfileChange
from media_optimizer.schemas.common import StatusResponse
from media_optimizer.services.batch_service import BatchCoordinator, BatchRegistry
from media_optimizer.services.metadata_extractor import MetadataExtractor
from media_optimizer.services.report_service import ReportService, EXPORT_FILENAMES

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=BatchResponse)
async def create_batch(
    files: List[UploadFile] = File(...),
    profile_id: str = Form(settings.DEFAULT_PROFILE),
    is_profile: bool = Form(False),
    registry: BatchRegistry = Depends(get_registry),
    extractor_factory: Callable[[], MetadataExtractor] = Depends(get_extractor_factory),
):
    coordinator = BatchCoordinator(profile_id, is_profile, extractor_factory=extractor_factory)
    media = [await uploaded_file(f) for f in files]
    await coordinator.add_files(media)
    batch_id = registry.create(coordinator)
    logger.info(f"Created batch {batch_id} with {len(media)} file(s)")
    return coordinator.to_response(batch_id)


@router.get("/{batch_id}", response_model=BatchResponse)
async def get_batch_status(batch_id: str, batch: BatchCoordinator = Depends(get_batch)):
    return batch.to_response(batch_id)


@router.put("/{batch_id}/profile", response_model=BatchResponse)
async def change_batch_profile(
    batch_id: str, data: BatchProfileChange, batch: BatchCoordinator = Depends(get_batch)
):
    batch.change_profile(data.profile_id, data.is_profile)
    return batch.to_response(batch_id)


@router.get("/{batch_id}/export/{fmt}")
async def export_batch(batch_id: str, fmt: str, batch: BatchCoordinator = Depends(get_batch)):
    if fmt not in EXPORT_FILENAMES:
        raise HTTPException(status_code=400, detail=f"Unsupported export format: {fmt}")
    content, filename, media_type = ReportService(batch).export(fmt)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.delete("/{batch_id}", response_model=StatusResponse)
async def delete_batch(batch_id: str, registry: BatchRegistry = Depends(get_registry)):
    if not registry.remove(batch_id):
        raise HTTPException(status_code=404, detail="Batch not found")
    logger.info(f"Removed batch {batch_id}")
    return StatusResponse(status="deleted", message=f"Batch {batch_id} removed")
