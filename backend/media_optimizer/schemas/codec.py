from pydantic import BaseModel, Field
from typing import Optional, Dict, Literal


class VideoCodecEntry(BaseModel):
    id: str
    name: str
    efficiency: float  # 1.0 = H.264 baseline
    quality: str
    compatibility: str
    gpu_support: bool = False
    playback_compatible: bool = True
    avg_bitrate: Dict[str, int] = {}  # kbps per resolution class

    model_config = {"frozen": True}


class AudioCodecEntry(BaseModel):
    id: str
    name: str
    efficiency: float
    quality: str
    playback_compatible: bool = True
    lossless: bool = False
    recommended_bitrate: Optional[Dict[str, Optional[int]]] = None  # kbps per channel layout

    model_config = {"frozen": True}


class SubtitleFormatEntry(BaseModel):
    id: str
    name: str
    type: Literal["text", "image"]
    playback_compatible: bool = True
    size: str

    model_config = {"frozen": True}


class Profile(BaseModel):
    id: str
    name: str
    icon: str
    description: str = ""
    category: Literal["device", "usage"]
    video_codec: str
    video_crf: int
    video_preset: str
    tuning: Optional[str] = None
    audio_codec: str
    audio_bitrate: Optional[int] = None
    container: Optional[str] = None
    max_bitrate: Optional[int] = None
    target_efficiency: float = Field(gt=0, le=1)

    model_config = {"frozen": True}
