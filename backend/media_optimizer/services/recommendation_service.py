import logging
from typing import Optional, List, Dict, Any, Sequence

from media_optimizer.config import settings
from media_optimizer.schemas.codec import Profile
from media_optimizer.schemas.media import MediaMetadata
from media_optimizer.schemas.recommendation import (
    Recommendation, SizeEstimate, CommandExplanation, OptimizationResponse,
    ProfileComparison, ProfileComparisonEntry,
)
from media_optimizer.services import codec_database as kb
from media_optimizer.utils.ffmpeg import FFmpegCommandBuilder, output_filename, STREAMING_FLAGS

logger = logging.getLogger(__name__)

# Target audio codecs encoded at a fixed bitrate regardless of profile (kbps)
FIXED_AUDIO_BITRATES = {"ac3": 640, "eac3": 384}

DEFAULT_AUDIO_BITRATE = 128

ENCODER_DESCRIPTIONS = {
    "h264": "Encode video as H.264/AVC",
    "h265": "Encode video as H.265/HEVC",
    "vp9": "Encode video as VP9",
    "av1": "Encode video as AV1",
}


def describe_quality_factor(crf: int) -> str:
    if crf <= 18:
        return "near-transparent"
    if crf <= 23:
        return "excellent (recommended)"
    if crf <= 28:
        return "good"
    return "acceptable"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count > 1 else ''}"


class RecommendationEngine:
    """Recommendations, command and size estimate for one file under one profile.

    Every method recomputes from the bound metadata and profile; nothing is
    cached between calls.
    """

    def __init__(self, metadata: MediaMetadata, profile_id: Optional[str] = None, is_profile: bool = False):
        self.metadata = metadata
        self.profile_id = profile_id or settings.DEFAULT_PROFILE
        self.is_profile = is_profile

    # ── Resolved targets ───────────────────────────────────────────────

    @property
    def profile(self) -> Profile:
        return kb.get_profile(self.profile_id)

    @property
    def target_video_codec(self) -> str:
        video = self.metadata.video
        return kb.recommend_video_codec(video.codec, video.resolution, self.profile.id)

    @property
    def target_audio_codec(self) -> str:
        audio = self.metadata.audio
        return kb.recommend_audio_codec(audio.codec, audio.channels, self.profile.id)

    def target_audio_bitrate(self, codec: str, channels: str) -> Optional[int]:
        """Profile bitrate if fixed, else the codec's table entry for the layout."""
        codec_info = kb.lookup_audio(codec)
        if not codec_info or not codec_info.recommended_bitrate:
            return None

        profile = self.profile
        if profile.audio_bitrate:
            return profile.audio_bitrate

        return codec_info.recommended_bitrate.get(channels) or DEFAULT_AUDIO_BITRATE

    def output_container(self) -> str:
        profile = self.profile
        if profile.container:
            return profile.container
        return "mkv" if profile.video_codec == "h265" else "mp4"

    def subtitles_already_universal(self) -> bool:
        return all(kb.is_universal_subtitle(s.format) for s in self.metadata.subtitles)

    # ── Recommendations ───────────────────────────────────────────────

    def generate_recommendations(self) -> List[Recommendation]:
        recommendations: List[Recommendation] = []
        recommendations.extend(self._video_recommendations())
        recommendations.extend(self._audio_recommendations())
        if self.metadata.subtitles:
            recommendations.append(self._subtitle_recommendation())
        return recommendations

    def _video_recommendations(self) -> List[Recommendation]:
        recs = []
        profile = self.profile
        current_codec = self.metadata.video.codec
        target_codec = self.target_video_codec

        if current_codec != target_codec:
            current_info = kb.lookup_video(current_codec)
            target_info = kb.lookup_video(target_codec)
            if current_info and target_info:
                gain = round((target_info.efficiency / current_info.efficiency - 1) * 100)
                recs.append(Recommendation(
                    type="video",
                    category="Video codec",
                    description=f"Switch from {current_info.name} to {target_info.name} for better efficiency",
                    from_value=current_info.name,
                    to=target_info.name,
                    impact="high",
                    reason=f"{target_info.name} compresses {gain}% better",
                ))
            else:
                logger.debug(f"Skipping codec recommendation for unknown video codec {current_codec!r}")

        recs.append(Recommendation(
            type="video",
            category="Quality (CRF)",
            description="Constant Rate Factor for quality control",
            from_value="Variable",
            to=f"CRF {profile.video_crf}",
            impact="medium",
            reason=f"CRF {profile.video_crf} = {describe_quality_factor(profile.video_crf)}",
        ))

        recs.append(Recommendation(
            type="video",
            category="Encoder preset",
            description="Trade-off between encoding speed and compression",
            from_value="Unspecified",
            to=profile.video_preset,
            impact="low",
            reason=f'Preset "{profile.video_preset}" offers a good compromise',
        ))
        return recs

    def _audio_recommendations(self) -> List[Recommendation]:
        recs = []
        audio = self.metadata.audio
        target_codec = self.target_audio_codec

        if audio.codec != target_codec:
            current_info = kb.lookup_audio(audio.codec)
            from_name = kb.audio_display_name(audio.codec, audio.codec_name)
            to_name = kb.audio_display_name(target_codec)
            lossless = bool(current_info and current_info.lossless)
            recs.append(Recommendation(
                type="audio",
                category="Audio codec",
                description=f"Convert {from_name} to {to_name}",
                from_value=from_name,
                to=to_name,
                impact="high" if lossless else "medium",
                reason=(
                    f"{from_name} is lossless; a lossy target saves a lot of space"
                    if lossless else f"{to_name} is more efficient"
                ),
            ))

        target_bitrate = self.target_audio_bitrate(target_codec, audio.channels)
        if target_bitrate and audio.bitrate != target_bitrate:
            recs.append(Recommendation(
                type="audio",
                category="Audio bitrate",
                description="Audio bitrate optimization",
                from_value=f"{audio.bitrate} kbps",
                to=f"{target_bitrate} kbps",
                impact="low",
                reason=f"Optimal bitrate for {audio.channels}",
            ))
        return recs

    def _subtitle_recommendation(self) -> Recommendation:
        subtitles = self.metadata.subtitles
        count = len(subtitles)

        if self.subtitles_already_universal():
            return Recommendation(
                type="subtitle",
                category="Subtitles",
                description=f"{_plural(count, 'track')} already optimal",
                from_value="SRT",
                to="Keep",
                impact="low",
                reason="Universal format already in use",
            )

        formats = ", ".join(dict.fromkeys(s.format for s in subtitles))
        return Recommendation(
            type="subtitle",
            category="Subtitles",
            description=f"Convert {_plural(count, 'track')} to SRT",
            from_value=formats,
            to="SRT",
            impact="low",
            reason="Universal compatibility (Plex, TV, mobile, Chromecast)",
        )

    # ── Command synthesis ──────────────────────────────────────────────

    def encode_config(self) -> Dict[str, Any]:
        profile = self.profile
        metadata = self.metadata
        video_codec = self.target_video_codec
        audio_codec = self.target_audio_codec

        config: Dict[str, Any] = {
            "video_codec": video_codec,
            "crf_value": profile.video_crf,
            "video_preset": profile.video_preset,
            "encoder_tune": profile.tuning,
            "preserve_hdr": metadata.video.resolution == "4k",
            "max_bitrate": profile.max_bitrate,
            "audio_codec": audio_codec,
            "container": self.output_container(),
        }

        if audio_codec in FIXED_AUDIO_BITRATES:
            config["audio_mode"] = "transcode"
            config["audio_bitrate"] = FIXED_AUDIO_BITRATES[audio_codec]
        elif audio_codec == metadata.audio.codec and audio_codec != "aac":
            config["audio_mode"] = "copy"
        else:
            config["audio_mode"] = "transcode"
            config["audio_bitrate"] = self.target_audio_bitrate(audio_codec, metadata.audio.channels)

        if metadata.subtitles:
            config["subtitle_mode"] = "copy" if self.subtitles_already_universal() else "srt"
        else:
            config["subtitle_mode"] = None

        return config

    def generate_command(self, shell: str = "bash") -> str:
        return FFmpegCommandBuilder(self.encode_config(), self.metadata.filename, shell).build()

    def output_filename(self) -> str:
        return output_filename(self.metadata.filename, self.output_container())

    def explain_command(self) -> List[CommandExplanation]:
        profile = self.profile
        config = self.encode_config()
        video_codec = config["video_codec"]
        audio_codec = config["audio_codec"]

        explanations = [
            CommandExplanation(param='-i "input"', description="Input file"),
            CommandExplanation(
                param=f"-c:v {kb.ENCODERS.get(video_codec, video_codec)}",
                description=ENCODER_DESCRIPTIONS.get(video_codec, f"Encode video as {kb.video_display_name(video_codec)}"),
            ),
            CommandExplanation(
                param=f"-crf {profile.video_crf}",
                description=f"Constant quality: {describe_quality_factor(profile.video_crf)}",
            ),
            CommandExplanation(
                param=f"-preset {profile.video_preset}",
                description=f"Encoding speed: {profile.video_preset}",
            ),
        ]
        if config["audio_mode"] == "copy":
            explanations.append(CommandExplanation(
                param="-c:a copy",
                description=f"Keep the {kb.audio_display_name(audio_codec)} audio as-is",
            ))
        else:
            explanations.append(CommandExplanation(
                param=f"-c:a {kb.ENCODERS.get(audio_codec, audio_codec)}",
                description=f"Encode audio as {kb.audio_display_name(audio_codec)}",
            ))
        explanations.append(CommandExplanation(
            param=" ".join(STREAMING_FLAGS),
            description="Optimize for web streaming",
        ))
        return explanations

    # ── Estimates and checks ───────────────────────────────────────────

    def estimate_output_size(self) -> SizeEstimate:
        efficiency = self.profile.target_efficiency
        original = self.metadata.size
        optimized = round(original * efficiency)
        return SizeEstimate(
            original=original,
            optimized=optimized,
            saved=original - optimized,
            percentage=round((1 - efficiency) * 100),
        )

    def check_playback_compatibility(self) -> bool:
        video_info = kb.lookup_video(self.target_video_codec)
        audio_info = kb.lookup_audio(self.target_audio_codec)
        return bool(video_info and video_info.playback_compatible
                    and audio_info and audio_info.playback_compatible)

    def check_hardware_acceleration(self) -> bool:
        video_info = kb.lookup_video(self.target_video_codec)
        return bool(video_info and video_info.gpu_support)

    def to_response(self) -> OptimizationResponse:
        return OptimizationResponse(
            metadata=self.metadata,
            profile_id=self.profile.id,
            is_profile=self.is_profile,
            recommendations=self.generate_recommendations(),
            command=self.generate_command(),
            explanation=self.explain_command(),
            estimate=self.estimate_output_size(),
            playback_compatible=self.check_playback_compatibility(),
            hardware_acceleration=self.check_hardware_acceleration(),
        )


def compare_profiles(metadata: MediaMetadata, profile_ids: Sequence[str]) -> ProfileComparison:
    """Estimate one file under several profiles and pick the most compact."""
    entries = []
    for profile_id in profile_ids:
        engine = RecommendationEngine(metadata, profile_id, is_profile=True)
        profile = engine.profile
        entries.append(ProfileComparisonEntry(
            profile_id=profile.id,
            name=profile.name,
            icon=profile.icon,
            video_codec=profile.video_codec,
            video_crf=profile.video_crf,
            video_preset=profile.video_preset,
            audio_codec=profile.audio_codec,
            container=profile.container,
            estimate=engine.estimate_output_size(),
        ))

    best = None
    for entry in entries:
        if best is None or entry.estimate.optimized < best.estimate.optimized:
            best = entry

    return ProfileComparison(entries=entries, best_profile_id=best.profile_id if best else None)
