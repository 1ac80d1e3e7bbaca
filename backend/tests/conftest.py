"""Shared test fixtures for the media optimizer."""

from typing import Any, Dict, List, Optional

import pytest

from media_optimizer.config import settings
from media_optimizer.errors import ProbeUnavailable, ExtractionError
from media_optimizer.schemas.media import MediaMetadata, VideoInfo, AudioInfo, SubtitleTrack
from media_optimizer.services import metadata_extractor
from media_optimizer.utils.ffprobe import PlaybackInfo
from media_optimizer.utils.media_file import InMemoryMediaFile


def make_metadata(
    filename: str = "movie.mp4",
    size: int = 10_000_000_000,
    video_codec: str = "h264",
    video_name: str = "H.264 (AVC)",
    resolution: str = "1080p",
    video_bitrate: int = 8000,
    audio_codec: str = "ac3",
    audio_name: str = "AC-3 (Dolby Digital)",
    channels: str = "5.1",
    audio_bitrate: int = 448,
    subtitles: Optional[List[SubtitleTrack]] = None,
) -> MediaMetadata:
    """Build a metadata record with sensible defaults for engine tests."""
    width, height = {
        "4k": (3840, 2160), "1440p": (2560, 1440), "1080p": (1920, 1080),
        "720p": (1280, 720), "480p": (854, 480),
    }[resolution]
    extension = filename.rsplit(".", 1)[-1]
    return MediaMetadata(
        filename=filename,
        extension=extension,
        size=size,
        mime_type="video/mp4",
        container_format=extension.upper(),
        duration=5400.0,
        video=VideoInfo(
            codec=video_codec, codec_name=video_name, resolution=resolution,
            width=width, height=height, bitrate=video_bitrate,
        ),
        audio=AudioInfo(codec=audio_codec, codec_name=audio_name, channels=channels, bitrate=audio_bitrate),
        total_bitrate=video_bitrate + audio_bitrate + 100,
        subtitles=tuple(subtitles or ()),
        source="test",
    )


class FakeAnalyzer:
    """Stands in for MediaInfoAnalyzer."""

    def __init__(self, ready=True, result: Optional[Dict[str, Any]] = None,
                 error: Optional[Exception] = None, ready_after: int = 1):
        self.ready = ready
        self.ready_after = ready_after
        self.result = result
        self.error = error
        self.init_calls = 0
        self.analyzed: List[str] = []

    async def initialize(self) -> bool:
        self.init_calls += 1
        if isinstance(self.ready, Exception):
            raise self.ready
        return bool(self.ready) and self.init_calls >= self.ready_after

    async def analyze_data(self, get_size, read_chunk, path=None, suffix=""):
        self.analyzed.append(suffix)
        await read_chunk(16, 0)
        if self.error:
            raise self.error
        if self.result is None:
            raise ProbeUnavailable("no result")
        return self.result


class FakeProbe:
    """Stands in for FFprobePlaybackProbe; failures are keyed by file name."""

    def __init__(self, data: Optional[Dict[str, Any]] = None,
                 failures: Optional[Dict[str, ExtractionError]] = None):
        self.data = data if data is not None else {
            "format": {"duration": "1200"},
            "streams": [{"width": 1280, "height": 720}],
        }
        self.failures = failures or {}
        self.probed: List[str] = []

    async def probe(self, file) -> PlaybackInfo:
        self.probed.append(file.name)
        if file.name in self.failures:
            raise self.failures[file.name]
        return PlaybackInfo(self.data)


@pytest.fixture(autouse=True)
def reset_extraction_strategy():
    """Every test starts with no cached extraction strategy."""
    metadata_extractor.reset_strategy()
    yield
    metadata_extractor.reset_strategy()


@pytest.fixture
def fast_polling(monkeypatch):
    monkeypatch.setattr(settings, "PROBE_ATTEMPTS", 3)
    monkeypatch.setattr(settings, "PROBE_DELAY_SECONDS", 0)


@pytest.fixture
def sample_metadata() -> MediaMetadata:
    return make_metadata()


@pytest.fixture
def media_file():
    return InMemoryMediaFile("clip.mp4", b"\x00" * 2048, mime_type="video/mp4", last_modified=1700000000.0)


@pytest.fixture
def mediainfo_result() -> Dict[str, Any]:
    return {
        "media": {
            "track": [
                {"@type": "General", "Format": "Matroska", "Duration": "5400.5", "OverallBitRate": "6000000"},
                {"@type": "Video", "Format": "HEVC", "Width": "1920", "Height": "1080",
                 "FrameRate": "23.976", "BitRate": "5000000"},
                {"@type": "Audio", "Format": "E-AC-3", "Channels": "6", "BitRate": "640000",
                 "SamplingRate": "48000"},
                {"@type": "Text", "Format": "UTF-8", "Language": "en"},
                {"@type": "Text", "Format": "PGS", "Language": "fr", "Title": "Forced"},
            ]
        }
    }
