from pydantic import BaseModel
from typing import Optional, List, Literal

from media_optimizer.config import settings
from media_optimizer.schemas.media import MediaMetadata
from media_optimizer.schemas.recommendation import SizeEstimate


class BatchStats(BaseModel):
    count: int
    failed_count: int = 0
    total_original: int
    total_optimized: int
    total_saved: int
    percentage: Optional[int] = None  # None for an empty batch


class BatchEntryResponse(BaseModel):
    filename: str
    status: Literal["ok", "failed"]
    metadata: Optional[MediaMetadata] = None
    estimate: Optional[SizeEstimate] = None
    command: Optional[str] = None
    error: Optional[str] = None


class BatchResponse(BaseModel):
    batch_id: str
    profile_id: str
    is_profile: bool = False
    entries: List[BatchEntryResponse]
    stats: BatchStats


class BatchProfileChange(BaseModel):
    profile_id: str = settings.DEFAULT_PROFILE
    is_profile: bool = False
