import logging
from types import MappingProxyType
from typing import Optional, Dict, Mapping

from media_optimizer.schemas.codec import VideoCodecEntry, AudioCodecEntry, SubtitleFormatEntry, Profile

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_ID = "balanced"

# Most efficient codec every profile is allowed to target
EFFICIENT_VIDEO_CODEC = "h265"

# Resolution classes large enough to always justify the efficient codec
LARGE_FRAME_RESOLUTIONS = {"4k", "1440p"}

# Very high bitrate legacy audio, always converted to a mid-tier codec
HIGH_BITRATE_LEGACY_AUDIO = {"dts"}
LEGACY_AUDIO_TARGET = "ac3"

UNIVERSAL_SUBTITLE_TOKENS = ("srt", "subrip")

# Nominal frame size per resolution class
RESOLUTION_DIMENSIONS = {
    "4k": (3840, 2160),
    "1440p": (2560, 1440),
    "1080p": (1920, 1080),
    "720p": (1280, 720),
    "480p": (854, 480),
}

ENCODERS = {
    "h264": "libx264",
    "h265": "libx265",
    "vp9": "libvpx-vp9",
    "av1": "libsvtav1",
    "mpeg2": "mpeg2video",
    "mpeg4": "mpeg4",
    "xvid": "libxvid",
    "aac": "aac",
    "ac3": "ac3",
    "eac3": "eac3",
    "dts": "dca",
    "flac": "flac",
    "opus": "libopus",
    "mp3": "libmp3lame",
    "vorbis": "libvorbis",
}

_VIDEO_CODECS = [
    {
        "id": "h264", "name": "H.264 (AVC)", "efficiency": 1.0, "quality": "Good",
        "compatibility": "Universal", "gpu_support": True, "playback_compatible": True,
        "avg_bitrate": {"480p": 1500, "720p": 3000, "1080p": 5000, "1440p": 9000, "4k": 18000},
    },
    {
        "id": "h265", "name": "H.265 (HEVC)", "efficiency": 1.8, "quality": "Excellent",
        "compatibility": "Modern", "gpu_support": True, "playback_compatible": True,
        "avg_bitrate": {"480p": 800, "720p": 1800, "1080p": 3000, "1440p": 5500, "4k": 10000},
    },
    {
        "id": "vp9", "name": "VP9", "efficiency": 1.7, "quality": "Excellent",
        "compatibility": "Web", "gpu_support": False, "playback_compatible": True,
        "avg_bitrate": {"480p": 900, "720p": 2000, "1080p": 3500, "1440p": 6000, "4k": 11000},
    },
    {
        "id": "av1", "name": "AV1", "efficiency": 2.2, "quality": "Optimal",
        "compatibility": "Very recent", "gpu_support": False, "playback_compatible": False,
        "avg_bitrate": {"480p": 700, "720p": 1500, "1080p": 2500, "1440p": 4500, "4k": 8000},
    },
    {
        "id": "mpeg2", "name": "MPEG-2", "efficiency": 0.5, "quality": "Average",
        "compatibility": "Legacy", "gpu_support": False, "playback_compatible": True,
        "avg_bitrate": {"480p": 3000, "720p": 6000, "1080p": 10000, "1440p": 18000, "4k": 35000},
    },
    {
        "id": "mpeg4", "name": "MPEG-4", "efficiency": 0.8, "quality": "Fair",
        "compatibility": "Standard", "gpu_support": False, "playback_compatible": True,
        "avg_bitrate": {"480p": 2000, "720p": 4000, "1080p": 7000, "1440p": 12000, "4k": 25000},
    },
    {
        "id": "xvid", "name": "Xvid", "efficiency": 0.8, "quality": "Fair",
        "compatibility": "Legacy", "gpu_support": False, "playback_compatible": True,
        "avg_bitrate": {"480p": 2000, "720p": 4000, "1080p": 7000, "1440p": 12000, "4k": 25000},
    },
]

_AUDIO_CODECS = [
    {
        "id": "aac", "name": "AAC", "efficiency": 1.0, "quality": "Good", "playback_compatible": True,
        "recommended_bitrate": {"stereo": 128, "5.1": 384, "7.1": 512},
    },
    {
        "id": "ac3", "name": "AC-3 (Dolby Digital)", "efficiency": 0.8, "quality": "Good",
        "playback_compatible": True,
        "recommended_bitrate": {"stereo": 192, "5.1": 448, "7.1": 640},
    },
    {
        "id": "eac3", "name": "E-AC-3 (Dolby Digital Plus)", "efficiency": 1.2, "quality": "Excellent",
        "playback_compatible": True,
        "recommended_bitrate": {"stereo": 128, "5.1": 384, "7.1": 512},
    },
    {
        "id": "dts", "name": "DTS", "efficiency": 0.7, "quality": "Excellent", "playback_compatible": True,
        "recommended_bitrate": {"stereo": 768, "5.1": 1536, "7.1": 2048},
    },
    {
        "id": "flac", "name": "FLAC (Lossless)", "efficiency": 0.5, "quality": "Perfect",
        "playback_compatible": True, "lossless": True, "recommended_bitrate": None,
    },
    {
        "id": "opus", "name": "Opus", "efficiency": 1.5, "quality": "Excellent", "playback_compatible": False,
        "recommended_bitrate": {"stereo": 96, "5.1": 256, "7.1": 384},
    },
    {
        "id": "mp3", "name": "MP3", "efficiency": 0.7, "quality": "Average", "playback_compatible": True,
        "recommended_bitrate": {"stereo": 192, "5.1": None, "7.1": None},
    },
    {
        "id": "vorbis", "name": "Vorbis", "efficiency": 1.3, "quality": "Good", "playback_compatible": False,
        "recommended_bitrate": {"stereo": 128, "5.1": 320, "7.1": 448},
    },
]

_SUBTITLE_FORMATS = [
    {"id": "srt", "name": "SubRip (SRT)", "type": "text", "playback_compatible": True, "size": "minimal"},
    {"id": "ass", "name": "Advanced SubStation Alpha", "type": "text", "playback_compatible": True, "size": "minimal"},
    {"id": "pgs", "name": "PGS (Blu-ray)", "type": "image", "playback_compatible": True, "size": "large"},
    {"id": "vobsub", "name": "VobSub (DVD)", "type": "image", "playback_compatible": True, "size": "medium"},
]

_PROFILES = [
    # Device profiles
    {
        "id": "plex-4k", "name": "Plex 4K HDR", "icon": "fa-server", "description": "4K direct play",
        "category": "device", "video_codec": "h265", "video_crf": 20, "video_preset": "slow",
        "audio_codec": "eac3", "audio_bitrate": 640, "container": "mkv", "max_bitrate": 15000,
        "target_efficiency": 0.65,
    },
    {
        "id": "plex-1080p", "name": "Plex 1080p", "icon": "fa-tv", "description": "Balanced Plex",
        "category": "device", "video_codec": "h265", "video_crf": 22, "video_preset": "medium",
        "audio_codec": "ac3", "audio_bitrate": 448, "container": "mkv", "max_bitrate": 8000,
        "target_efficiency": 0.5,
    },
    {
        "id": "mobile", "name": "Mobile", "icon": "fa-mobile-screen", "description": "Mobile streaming",
        "category": "device", "video_codec": "h264", "video_crf": 24, "video_preset": "fast",
        "audio_codec": "aac", "audio_bitrate": 128, "container": "mp4", "max_bitrate": 3000,
        "target_efficiency": 0.3,
    },
    {
        "id": "nas", "name": "NAS", "icon": "fa-hard-drive", "description": "Compact storage",
        "category": "device", "video_codec": "h265", "video_crf": 26, "video_preset": "slow",
        "audio_codec": "aac", "audio_bitrate": 128, "container": "mkv", "max_bitrate": 5000,
        "target_efficiency": 0.35,
    },
    {
        "id": "youtube", "name": "YouTube", "icon": "fa-youtube", "description": "Optimized upload",
        "category": "device", "video_codec": "h264", "video_crf": 21, "video_preset": "slow",
        "audio_codec": "aac", "audio_bitrate": 192, "container": "mp4", "max_bitrate": 10000,
        "target_efficiency": 0.6,
    },
    {
        "id": "appletv", "name": "Apple TV", "icon": "fa-apple", "description": "Apple devices",
        "category": "device", "video_codec": "h264", "video_crf": 20, "video_preset": "medium",
        "audio_codec": "aac", "audio_bitrate": 256, "container": "mp4", "max_bitrate": 12000,
        "target_efficiency": 0.6,
    },
    # Usage profiles (the legacy presets)
    {
        "id": "balanced", "name": "Balanced", "icon": "fa-balance-scale", "description": "Quality/size",
        "category": "usage", "video_codec": "h265", "video_crf": 23, "video_preset": "medium",
        "audio_codec": "aac", "audio_bitrate": None, "container": "mkv", "target_efficiency": 0.5,
    },
    {
        "id": "quality", "name": "Max Quality", "icon": "fa-star", "description": "Minimal loss",
        "category": "usage", "video_codec": "h265", "video_crf": 18, "video_preset": "slow",
        "audio_codec": "eac3", "audio_bitrate": None, "container": "mkv", "target_efficiency": 0.7,
    },
    {
        "id": "compression", "name": "Max Compression", "icon": "fa-compress", "description": "Maximum savings",
        "category": "usage", "video_codec": "h265", "video_crf": 28, "video_preset": "medium",
        "audio_codec": "aac", "audio_bitrate": 128, "container": "mkv", "target_efficiency": 0.3,
    },
    {
        "id": "anime", "name": "Anime", "icon": "fa-dragon", "description": "2D animation",
        "category": "usage", "video_codec": "h265", "video_crf": 20, "video_preset": "slow",
        "tuning": "animation", "audio_codec": "aac", "audio_bitrate": 192, "container": "mkv",
        "target_efficiency": 0.4,
    },
]

LEGACY_PRESET_IDS = ("balanced", "quality", "compression", "anime")

VIDEO_CODECS: Mapping[str, VideoCodecEntry] = MappingProxyType(
    {c["id"]: VideoCodecEntry(**c) for c in _VIDEO_CODECS}
)
AUDIO_CODECS: Mapping[str, AudioCodecEntry] = MappingProxyType(
    {c["id"]: AudioCodecEntry(**c) for c in _AUDIO_CODECS}
)
SUBTITLE_FORMATS: Mapping[str, SubtitleFormatEntry] = MappingProxyType(
    {s["id"]: SubtitleFormatEntry(**s) for s in _SUBTITLE_FORMATS}
)
PROFILES: Mapping[str, Profile] = MappingProxyType(
    {p["id"]: Profile(**p) for p in _PROFILES}
)


def _check_profiles():
    for profile in PROFILES.values():
        if profile.video_codec not in VIDEO_CODECS:
            raise ValueError(f"Profile {profile.id} targets unknown video codec {profile.video_codec}")
        if profile.audio_codec not in AUDIO_CODECS:
            raise ValueError(f"Profile {profile.id} targets unknown audio codec {profile.audio_codec}")


_check_profiles()


# ── Lookups ─────────────────────────────────────────────────────────

def lookup_video(codec_id: str) -> Optional[VideoCodecEntry]:
    return VIDEO_CODECS.get(codec_id)


def lookup_audio(codec_id: str) -> Optional[AudioCodecEntry]:
    return AUDIO_CODECS.get(codec_id)


def video_display_name(codec_id: str, fallback: Optional[str] = None) -> str:
    entry = VIDEO_CODECS.get(codec_id)
    if entry:
        return entry.name
    return fallback or codec_id.upper()


def audio_display_name(codec_id: str, fallback: Optional[str] = None) -> str:
    entry = AUDIO_CODECS.get(codec_id)
    if entry:
        return entry.name
    return fallback or codec_id.upper()


def get_profile(profile_id: Optional[str]) -> Profile:
    """Resolve a profile id, substituting the default profile for unknown ids."""
    profile = PROFILES.get(profile_id) if profile_id else None
    if profile is None:
        logger.debug(f"Unknown profile {profile_id!r}, using {DEFAULT_PROFILE_ID}")
        return PROFILES[DEFAULT_PROFILE_ID]
    return profile


def legacy_preset_view(profiles: Mapping[str, Profile] = PROFILES) -> Dict[str, Profile]:
    """Subset of profiles still reachable under their old preset names."""
    return {pid: profiles[pid] for pid in LEGACY_PRESET_IDS if pid in profiles}


def is_universal_subtitle(subtitle_format: str) -> bool:
    fmt = (subtitle_format or "").lower()
    return any(token in fmt for token in UNIVERSAL_SUBTITLE_TOKENS)


# ── Recommendation policy ──────────────────────────────────────────

def recommend_video_codec(current_codec: str, resolution: str,
                          profile_id: str = DEFAULT_PROFILE_ID) -> str:
    profile = get_profile(profile_id)

    # Already efficient under the default profile: no gratuitous re-encode
    if current_codec == EFFICIENT_VIDEO_CODEC and profile.id == DEFAULT_PROFILE_ID:
        return current_codec

    if resolution in LARGE_FRAME_RESOLUTIONS:
        return EFFICIENT_VIDEO_CODEC

    return profile.video_codec


def recommend_audio_codec(current_codec: str, channels: str,
                          profile_id: str = DEFAULT_PROFILE_ID) -> str:
    profile = get_profile(profile_id)
    current = AUDIO_CODECS.get(current_codec)

    if current and current.lossless:
        return profile.audio_codec

    if current_codec in HIGH_BITRATE_LEGACY_AUDIO:
        return LEGACY_AUDIO_TARGET

    if current and current.playback_compatible:
        return current_codec

    return profile.audio_codec


# ── Heuristics over average bitrate ────────────────────────────────

def estimate_bitrate(size_bytes: int, duration_seconds: Optional[float]) -> int:
    """Average bitrate in kbps; an unknown duration counts as one hour."""
    if not duration_seconds:
        duration_seconds = 3600
    return round(size_bytes * 8 / duration_seconds / 1000)


def estimate_resolution_class(size_bytes: int, duration_seconds: Optional[float]) -> str:
    if not duration_seconds:
        duration_seconds = 3600
    bitrate = size_bytes * 8 / duration_seconds / 1000

    if bitrate > 15000:
        return "4k"
    if bitrate > 8000:
        return "1440p"
    if bitrate > 4000:
        return "1080p"
    if bitrate > 2000:
        return "720p"
    return "480p"


def resolution_from_dimensions(width: int, height: int) -> str:
    if width >= 3840 and height >= 2160:
        return "4k"
    if width >= 2560 and height >= 1440:
        return "1440p"
    if width >= 1920 and height >= 1080:
        return "1080p"
    if width >= 1280 and height >= 720:
        return "720p"
    return "480p"
