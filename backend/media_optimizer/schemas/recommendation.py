from pydantic import BaseModel, Field
from typing import Optional, List, Literal

from media_optimizer.config import settings
from media_optimizer.schemas.media import MediaMetadata


class Recommendation(BaseModel):
    type: Literal["video", "audio", "subtitle"]
    category: str
    description: str
    from_value: str = Field(alias="from")
    to: str
    impact: Literal["high", "medium", "low"]
    reason: str

    model_config = {"frozen": True, "populate_by_name": True}


class SizeEstimate(BaseModel):
    original: int
    optimized: int
    saved: int
    percentage: int

    model_config = {"frozen": True}


class CommandExplanation(BaseModel):
    param: str
    description: str


class RecommendationRequest(BaseModel):
    metadata: MediaMetadata
    profile_id: str = settings.DEFAULT_PROFILE
    is_profile: bool = False


class CompareRequest(BaseModel):
    metadata: MediaMetadata
    profile_ids: List[str]


class OptimizationResponse(BaseModel):
    metadata: MediaMetadata
    profile_id: str
    is_profile: bool = False
    recommendations: List[Recommendation]
    command: str
    explanation: List[CommandExplanation]
    estimate: SizeEstimate
    playback_compatible: bool
    hardware_acceleration: bool


class ProfileComparisonEntry(BaseModel):
    profile_id: str
    name: str
    icon: str
    video_codec: str
    video_crf: int
    video_preset: str
    audio_codec: str
    container: Optional[str] = None
    estimate: SizeEstimate


class ProfileComparison(BaseModel):
    entries: List[ProfileComparisonEntry]
    best_profile_id: Optional[str] = None
