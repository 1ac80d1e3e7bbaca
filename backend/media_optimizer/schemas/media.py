from pydantic import BaseModel, computed_field, model_validator
from typing import Optional, Tuple


class SubtitleTrack(BaseModel):
    language: str = "Unknown"
    format: str = "Unknown"
    title: str = ""

    model_config = {"frozen": True}


class VideoInfo(BaseModel):
    codec: str
    codec_name: str
    resolution: str
    width: int
    height: int
    bitrate: int = 0  # kbps
    framerate: float = 23.976

    model_config = {"frozen": True}


class AudioInfo(BaseModel):
    codec: str
    codec_name: str
    channels: str = "stereo"
    bitrate: int = 0  # kbps
    sample_rate: int = 48000

    model_config = {"frozen": True}


class MediaMetadata(BaseModel):
    """Canonical metadata record for one file.

    Produced once per file by the metadata extractor and never mutated;
    re-analysis produces a new record.
    """

    filename: str
    extension: str = ""
    size: int
    mime_type: str = ""
    last_modified: Optional[float] = None
    container_format: str = ""
    duration: float = 0.0
    video: VideoInfo
    audio: AudioInfo
    total_bitrate: int = 0  # kbps
    subtitles: Tuple[SubtitleTrack, ...] = ()
    is_real_analysis: bool = True
    source: str = ""

    model_config = {"frozen": True}

    @computed_field
    @property
    def has_subtitles(self) -> bool:
        return len(self.subtitles) > 0

    @computed_field
    @property
    def subtitles_count(self) -> int:
        return len(self.subtitles)

    @model_validator(mode="after")
    def _check_bitrate_budget(self):
        if self.video.bitrate + self.audio.bitrate > self.total_bitrate:
            raise ValueError(
                f"video ({self.video.bitrate} kbps) + audio ({self.audio.bitrate} kbps) "
                f"exceeds total bitrate ({self.total_bitrate} kbps)"
            )
        return self
