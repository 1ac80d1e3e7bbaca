from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, UploadFile

from media_optimizer.services.batch_service import BatchCoordinator, BatchRegistry
from media_optimizer.services.metadata_extractor import MetadataExtractor
from media_optimizer.utils.media_file import MediaFile


class UploadedMediaFile(MediaFile):
    """MediaFile view over a FastAPI upload (spooled by Starlette)."""

    def __init__(self, upload: UploadFile):
        self.upload = upload
        self.name = upload.filename or ""
        self.size = upload.size or 0
        self.mime_type = upload.content_type or ""
        self.last_modified = None

    async def read_chunk(self, chunk_size: int, offset: int) -> bytes:
        await self.upload.seek(offset)
        return await self.upload.read(chunk_size)


async def uploaded_file(upload: UploadFile) -> UploadedMediaFile:
    if upload.size is None:
        upload.file.seek(0, 2)
        upload.size = upload.file.tell()
        upload.file.seek(0)
    return UploadedMediaFile(upload)


def get_registry(request: Request) -> BatchRegistry:
    registry: Optional[BatchRegistry] = getattr(request.app.state, "batches", None)
    if registry is None:
        registry = request.app.state.batches = BatchRegistry()
    return registry


def get_extractor() -> MetadataExtractor:
    return MetadataExtractor()


def get_extractor_factory() -> Callable[[], MetadataExtractor]:
    """Batches build one extractor per file so concurrent analyses share no state."""
    return MetadataExtractor


def get_batch(batch_id: str, registry: BatchRegistry = Depends(get_registry)) -> BatchCoordinator:
    batch = registry.get(batch_id)
    if not batch:
        raise HTTPException(status_code=404, detail="Batch not found")
    return batch
