"""
Metadata extraction: one file in, one canonical MediaMetadata out.

Two strategies exist. ``PreciseStrategy`` hands the file's bytes to the
MediaInfo capability and parses its track list; ``HeuristicStrategy`` asks a
playback probe for frame size and duration and guesses the rest from MIME
type, extension and average bitrate.

The strategy is selected once per process by ``select_strategy`` (bounded
polling of the precise capability) and cached; ``reset_strategy`` is the
teardown that forgets it. Each file gets its own ``MetadataExtractor``.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, List, Dict, Any, Union, Tuple

from media_optimizer.config import settings
from media_optimizer.errors import ProbeUnavailable
from media_optimizer.schemas.media import MediaMetadata, VideoInfo, AudioInfo, SubtitleTrack
from media_optimizer.services.codec_database import (
    RESOLUTION_DIMENSIONS,
    video_display_name,
    audio_display_name,
    estimate_bitrate,
    estimate_resolution_class,
    resolution_from_dimensions,
)
from media_optimizer.utils.ffprobe import FFprobePlaybackProbe, PlaybackInfo
from media_optimizer.utils.file_utils import file_extension
from media_optimizer.utils.media_file import MediaFile
from media_optimizer.utils.mediainfo import MediaInfoAnalyzer

logger = logging.getLogger(__name__)

# Format-name tokens per track type, first match wins
VIDEO_FORMAT_TOKENS: List[Tuple[Tuple[str, ...], str]] = [
    (("hevc", "h.265"), "h265"),
    (("avc", "h.264"), "h264"),
    (("av1", "av01"), "av1"),
    (("vp9",), "vp9"),
    (("mpeg-4",), "mpeg4"),
    (("xvid",), "xvid"),
    (("mpeg video", "mpeg-2"), "mpeg2"),
]

AUDIO_FORMAT_TOKENS: List[Tuple[Tuple[str, ...], str]] = [
    (("aac",), "aac"),
    (("e-ac-3", "eac3"), "eac3"),
    (("ac-3", "ac3"), "ac3"),
    (("dts",), "dts"),
    (("flac",), "flac"),
    (("opus",), "opus"),
    (("mp3", "mpeg audio"), "mp3"),
    (("vorbis",), "vorbis"),
]

DEFAULT_VIDEO_CODEC = "h264"
DEFAULT_AUDIO_CODEC = "aac"

# MediaInfo reports SRT tracks by their text encoding
SUBTITLE_FORMAT_ALIASES = {"utf-8": "SubRip", "utf8": "SubRip"}

VIDEO_MIME_TOKENS: List[Tuple[Tuple[str, ...], str]] = [
    (("hevc", "h265"), "h265"),
    (("avc", "h264"), "h264"),
    (("av01", "av1"), "av1"),
    (("vp9",), "vp9"),
]

AUDIO_MIME_TOKENS: List[Tuple[Tuple[str, ...], str]] = [
    (("opus",), "opus"),
    (("vorbis",), "vorbis"),
    (("mp4a",), "aac"),
]

VIDEO_CODEC_BY_EXTENSION = {
    "mp4": "h264", "m4v": "h264", "mov": "h264",
    "mkv": "h265", "webm": "vp9", "avi": "mpeg4",
    "mpg": "mpeg2", "mpeg": "mpeg2",
}

AUDIO_CODEC_BY_EXTENSION = {
    "mp4": "aac", "mkv": "ac3", "webm": "opus", "avi": "mp3", "mov": "aac",
}

# Typical overall bitrate per container (kbps), used to guess a duration
TYPICAL_BITRATE_BY_EXTENSION = {
    "mp4": 5000, "mkv": 8000, "avi": 3000, "webm": 2000, "mov": 6000,
}

VIDEO_BITRATE_SHARE = 0.80
AUDIO_BITRATE_SHARE = 0.15


# ── Strategy selection ──────────────────────────────────────────────

@dataclass(frozen=True)
class PreciseStrategy:
    analyzer: MediaInfoAnalyzer
    probe: FFprobePlaybackProbe
    name: str = "precise"


@dataclass(frozen=True)
class HeuristicStrategy:
    probe: FFprobePlaybackProbe
    name: str = "heuristic"


ExtractorStrategy = Union[PreciseStrategy, HeuristicStrategy]

_strategy: Optional[ExtractorStrategy] = None
_strategy_lock: Optional[asyncio.Lock] = None


async def _probe_precise_capability(analyzer: MediaInfoAnalyzer, attempts: int, delay: float) -> bool:
    for attempt in range(attempts):
        if await analyzer.initialize():
            return True
        if attempt < attempts - 1:
            await asyncio.sleep(delay)
    return False


async def select_strategy(analyzer: Optional[MediaInfoAnalyzer] = None,
                          probe: Optional[FFprobePlaybackProbe] = None) -> ExtractorStrategy:
    """Select and cache the extraction strategy for this process."""
    global _strategy, _strategy_lock
    if _strategy is not None:
        return _strategy
    if _strategy_lock is None:
        _strategy_lock = asyncio.Lock()

    async with _strategy_lock:
        if _strategy is not None:
            return _strategy

        analyzer = analyzer or MediaInfoAnalyzer()
        probe = probe or FFprobePlaybackProbe()
        try:
            ready = await _probe_precise_capability(
                analyzer, settings.PROBE_ATTEMPTS, settings.PROBE_DELAY_SECONDS
            )
        except Exception as e:
            logger.warning(f"MediaInfo initialization failed, using heuristic extraction: {e}")
            ready = False

        if ready:
            logger.info("MediaInfo available: using precise extraction")
            _strategy = PreciseStrategy(analyzer=analyzer, probe=probe)
        else:
            logger.warning("MediaInfo not available: using heuristic extraction")
            _strategy = HeuristicStrategy(probe=probe)
        return _strategy


def current_strategy() -> Optional[ExtractorStrategy]:
    return _strategy


def reset_strategy():
    """Forget the cached strategy; the next extraction probes again."""
    global _strategy, _strategy_lock
    _strategy = None
    _strategy_lock = None


# ── Value helpers ───────────────────────────────────────────────────

def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _match_tokens(text: str, table: List[Tuple[Tuple[str, ...], str]]) -> Optional[str]:
    text = (text or "").lower()
    for tokens, codec in table:
        if any(token in text for token in tokens):
            return codec
    return None


def channel_layout(channel_count: int) -> str:
    if channel_count >= 8:
        return "7.1"
    if channel_count >= 6:
        return "5.1"
    if channel_count == 1:
        return "mono"
    return "stereo"


def detect_video_codec(filename: str, mime_type: Optional[str]) -> str:
    codec = _match_tokens(mime_type or "", VIDEO_MIME_TOKENS)
    if codec:
        return codec
    return VIDEO_CODEC_BY_EXTENSION.get(file_extension(filename), DEFAULT_VIDEO_CODEC)


def detect_audio_codec(extension: str, mime_type: Optional[str]) -> str:
    codec = _match_tokens(mime_type or "", AUDIO_MIME_TOKENS)
    if codec:
        return codec
    return AUDIO_CODEC_BY_EXTENSION.get(extension, DEFAULT_AUDIO_CODEC)


def estimate_framerate(width: int, extension: str) -> float:
    if width >= 3840:
        return 30
    if extension == "webm":
        return 30
    return 23.976


def estimate_audio_channels(extension: str, total_bitrate: int) -> str:
    if extension in ("mkv", "mov") and total_bitrate > 10000:
        return "5.1"
    return "stereo"


def estimate_duration(size: int, extension: str) -> float:
    """Guess a realistic duration from size and a typical container bitrate."""
    typical = TYPICAL_BITRATE_BY_EXTENSION.get(extension, 5000)
    seconds = size * 8 / (typical * 1000)

    if seconds < 300:
        return 180
    if seconds < 1800:
        return 1320
    if seconds < 3600:
        return 2700
    if seconds < 7200:
        return 5400
    return 7200


# ── Normalization ───────────────────────────────────────────────────

def parse_track_list(result: Dict[str, Any], file: MediaFile) -> MediaMetadata:
    """Normalize a MediaInfo JSON document into a MediaMetadata record."""
    tracks = (result.get("media") or {}).get("track") or []
    general = next((t for t in tracks if t.get("@type") == "General"), {})
    video = next((t for t in tracks if t.get("@type") == "Video"), {})
    audio = next((t for t in tracks if t.get("@type") == "Audio"), {})
    texts = [t for t in tracks if t.get("@type") == "Text"]

    extension = file_extension(file.name)

    video_format = video.get("Format", "")
    video_codec = _match_tokens(video_format, VIDEO_FORMAT_TOKENS) or DEFAULT_VIDEO_CODEC
    audio_format = audio.get("Format", "")
    audio_codec = _match_tokens(audio_format, AUDIO_FORMAT_TOKENS) or DEFAULT_AUDIO_CODEC

    width = _to_int(video.get("Width")) or 1920
    height = _to_int(video.get("Height")) or 1080
    framerate = _to_float(video.get("FrameRate")) or 23.976

    video_bitrate = round(_to_int(video.get("BitRate")) / 1000)
    audio_bitrate = round(_to_int(audio.get("BitRate")) / 1000)
    overall_bitrate = round(_to_int(general.get("OverallBitRate")) / 1000)
    total_bitrate = max(overall_bitrate, video_bitrate + audio_bitrate)

    duration = _to_float(general.get("Duration")) or _to_float(video.get("Duration"))

    subtitles = []
    for track in texts:
        fmt = track.get("Format") or "Unknown"
        subtitles.append(SubtitleTrack(
            language=track.get("Language") or "Unknown",
            format=SUBTITLE_FORMAT_ALIASES.get(fmt.lower(), fmt),
            title=track.get("Title") or "",
        ))

    return MediaMetadata(
        filename=file.name,
        extension=extension,
        size=file.size,
        mime_type=file.mime_type,
        last_modified=file.last_modified,
        container_format=(general.get("Format") or extension).upper(),
        duration=duration,
        video=VideoInfo(
            codec=video_codec,
            codec_name=video_display_name(video_codec, video_format),
            resolution=resolution_from_dimensions(width, height),
            width=width,
            height=height,
            bitrate=video_bitrate,
            framerate=round(framerate, 3),
        ),
        audio=AudioInfo(
            codec=audio_codec,
            codec_name=audio_display_name(audio_codec, audio_format),
            channels=channel_layout(_to_int(audio.get("Channels"), 2)),
            bitrate=audio_bitrate,
            sample_rate=_to_int(audio.get("SamplingRate")) or 48000,
        ),
        total_bitrate=total_bitrate,
        subtitles=tuple(subtitles),
        is_real_analysis=True,
        source="MediaInfo",
    )


def build_heuristic_metadata(info: PlaybackInfo, file: MediaFile) -> MediaMetadata:
    """Build a best-effort record from coarse playback info plus guesses.

    Without a usable probe duration the duration is estimated from size;
    without frame dimensions the resolution class comes from average bitrate.
    Either fallback marks the record as not a real analysis.
    """
    extension = file_extension(file.name)
    measured = True

    duration = info.duration
    if not duration or duration <= 0:
        duration = estimate_duration(file.size, extension)
        measured = False

    total_bitrate = estimate_bitrate(file.size, duration)

    width = info.width
    height = info.height
    if width and height:
        resolution = resolution_from_dimensions(width, height)
    else:
        resolution = estimate_resolution_class(file.size, duration)
        width, height = RESOLUTION_DIMENSIONS[resolution]
        measured = False

    video_codec = detect_video_codec(file.name, file.mime_type)
    audio_codec = detect_audio_codec(extension, file.mime_type)

    return MediaMetadata(
        filename=file.name,
        extension=extension,
        size=file.size,
        mime_type=file.mime_type,
        last_modified=file.last_modified,
        container_format=extension.upper(),
        duration=duration,
        video=VideoInfo(
            codec=video_codec,
            codec_name=video_display_name(video_codec),
            resolution=resolution,
            width=width,
            height=height,
            bitrate=int(total_bitrate * VIDEO_BITRATE_SHARE),
            framerate=estimate_framerate(width, extension),
        ),
        audio=AudioInfo(
            codec=audio_codec,
            codec_name=audio_display_name(audio_codec),
            channels=estimate_audio_channels(extension, total_bitrate),
            bitrate=int(total_bitrate * AUDIO_BITRATE_SHARE),
            sample_rate=48000,
        ),
        total_bitrate=total_bitrate,
        subtitles=(),
        is_real_analysis=measured,
        source="ffprobe playback probe (estimated codecs)" if measured else "size estimate",
    )


# ── Extractor ───────────────────────────────────────────────────────

class MetadataExtractor:
    def __init__(self, strategy: Optional[ExtractorStrategy] = None):
        self.strategy = strategy

    async def analyze(self, file: MediaFile) -> MediaMetadata:
        """Extract metadata for one file.

        Raises ExtractionError (ExtractionTimeout / ExtractionReadFailure)
        only when the heuristic probe cannot read the file either.
        """
        strategy = self.strategy or await select_strategy()

        if isinstance(strategy, PreciseStrategy):
            try:
                logger.info(f"Analyzing {file.name} with MediaInfo")
                extension = file_extension(file.name)
                result = await strategy.analyzer.analyze_data(
                    lambda: file.size,
                    file.read_chunk,
                    path=file.path,
                    suffix=f".{extension}" if extension else "",
                )
                return parse_track_list(result, file)
            except ProbeUnavailable as e:
                logger.warning(f"Precise analysis failed for {file.name}, falling back to probe: {e}")

        logger.info(f"Analyzing {file.name} with playback probe")
        info = await strategy.probe.probe(file)
        logger.debug(f"Probe result for {file.name}: {info.to_dict()}")
        return build_heuristic_metadata(info, file)
