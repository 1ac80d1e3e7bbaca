"""Tests for metadata extraction and strategy selection."""

import pytest

from conftest import FakeAnalyzer, FakeProbe
from media_optimizer.errors import ExtractionTimeout, ExtractionReadFailure, ProbeUnavailable
from media_optimizer.services import metadata_extractor as me
from media_optimizer.services.metadata_extractor import (
    MetadataExtractor, PreciseStrategy, HeuristicStrategy,
    select_strategy, current_strategy, parse_track_list, build_heuristic_metadata,
)
from media_optimizer.utils.ffprobe import PlaybackInfo
from media_optimizer.utils.media_file import InMemoryMediaFile


class TestStrategySelection:
    @pytest.mark.asyncio
    async def test_precise_when_capability_ready(self, fast_polling):
        analyzer = FakeAnalyzer(ready=True)
        strategy = await select_strategy(analyzer, FakeProbe())
        assert isinstance(strategy, PreciseStrategy)
        assert strategy.name == "precise"
        assert analyzer.init_calls == 1

    @pytest.mark.asyncio
    async def test_polls_until_ready(self, fast_polling):
        analyzer = FakeAnalyzer(ready=True, ready_after=3)
        strategy = await select_strategy(analyzer, FakeProbe())
        assert isinstance(strategy, PreciseStrategy)
        assert analyzer.init_calls == 3

    @pytest.mark.asyncio
    async def test_heuristic_after_bounded_attempts(self, fast_polling):
        analyzer = FakeAnalyzer(ready=False)
        strategy = await select_strategy(analyzer, FakeProbe())
        assert isinstance(strategy, HeuristicStrategy)
        assert analyzer.init_calls == 3

    @pytest.mark.asyncio
    async def test_initialization_error_means_heuristic(self, fast_polling):
        strategy = await select_strategy(FakeAnalyzer(ready=RuntimeError("boom")), FakeProbe())
        assert strategy.name == "heuristic"

    @pytest.mark.asyncio
    async def test_selection_is_cached(self, fast_polling):
        first = await select_strategy(FakeAnalyzer(ready=False), FakeProbe())
        second = await select_strategy(FakeAnalyzer(ready=True), FakeProbe())
        assert first is second
        assert current_strategy() is first

    @pytest.mark.asyncio
    async def test_reset_forgets_selection(self, fast_polling):
        await select_strategy(FakeAnalyzer(ready=False), FakeProbe())
        me.reset_strategy()
        assert current_strategy() is None
        strategy = await select_strategy(FakeAnalyzer(ready=True), FakeProbe())
        assert strategy.name == "precise"


class TestTrackListParsing:
    def test_full_track_list(self, mediainfo_result):
        file = InMemoryMediaFile("Movie.Name.MKV", b"x" * 100, last_modified=1.0)
        metadata = parse_track_list(mediainfo_result, file)

        assert metadata.filename == "Movie.Name.MKV"
        assert metadata.extension == "mkv"
        assert metadata.container_format == "MATROSKA"
        assert metadata.duration == 5400.5
        assert metadata.video.codec == "h265"
        assert metadata.video.codec_name == "H.265 (HEVC)"
        assert metadata.video.resolution == "1080p"
        assert metadata.video.bitrate == 5000
        assert metadata.audio.codec == "eac3"
        assert metadata.audio.channels == "5.1"
        assert metadata.audio.bitrate == 640
        assert metadata.total_bitrate == 6000
        assert metadata.is_real_analysis is True
        assert metadata.source == "MediaInfo"

    def test_subtitle_tracks(self, mediainfo_result):
        metadata = parse_track_list(mediainfo_result, InMemoryMediaFile("a.mkv", b""))
        assert metadata.has_subtitles is True
        assert metadata.subtitles_count == 2
        assert [s.format for s in metadata.subtitles] == ["SubRip", "PGS"]
        assert metadata.subtitles[0].language == "en"
        assert metadata.subtitles[1].title == "Forced"

    def test_total_bitrate_covers_stream_bitrates(self):
        result = {"media": {"track": [
            {"@type": "General", "OverallBitRate": "1000000"},
            {"@type": "Video", "Format": "AVC", "Width": "1280", "Height": "720", "BitRate": "3000000"},
            {"@type": "Audio", "Format": "AAC LC", "Channels": "2", "BitRate": "128000"},
        ]}}
        metadata = parse_track_list(result, InMemoryMediaFile("a.mp4", b""))
        assert metadata.total_bitrate == 3128
        assert metadata.video.codec == "h264"
        assert metadata.audio.codec == "aac"
        assert metadata.audio.channels == "stereo"

    def test_missing_tracks_use_defaults(self):
        metadata = parse_track_list({"media": {"track": []}}, InMemoryMediaFile("a.avi", b""))
        assert metadata.video.codec == "h264"
        assert metadata.video.resolution == "1080p"
        assert metadata.audio.codec == "aac"
        assert metadata.subtitles == ()
        assert metadata.container_format == "AVI"

    @pytest.mark.parametrize("fmt, codec", [
        ("E-AC-3", "eac3"), ("AC-3", "ac3"), ("DTS-HD MA", "dts"), ("MPEG Audio", "mp3"), ("Opus", "opus"),
    ])
    def test_audio_format_tokens(self, fmt, codec):
        result = {"media": {"track": [{"@type": "Audio", "Format": fmt}]}}
        assert parse_track_list(result, InMemoryMediaFile("a.mkv", b"")).audio.codec == codec

    @pytest.mark.parametrize("fmt, codec", [
        ("HEVC", "h265"), ("AVC", "h264"), ("AV1", "av1"), ("VP9", "vp9"),
        ("MPEG Video", "mpeg2"), ("MPEG-4 Visual", "mpeg4"),
    ])
    def test_video_format_tokens(self, fmt, codec):
        result = {"media": {"track": [{"@type": "Video", "Format": fmt}]}}
        assert parse_track_list(result, InMemoryMediaFile("a.mkv", b"")).video.codec == codec


class TestHeuristicMetadata:
    def test_measured_probe(self):
        file = InMemoryMediaFile("clip.mp4", b"", mime_type="video/mp4")
        file.size = 150_000_000
        info = PlaybackInfo({"format": {"duration": "1200"}, "streams": [{"width": 1280, "height": 720}]})
        metadata = build_heuristic_metadata(info, file)

        assert metadata.duration == 1200
        assert metadata.total_bitrate == 1000
        assert metadata.video.resolution == "720p"
        assert (metadata.video.width, metadata.video.height) == (1280, 720)
        assert metadata.video.codec == "h264"
        assert metadata.audio.codec == "aac"
        assert metadata.video.bitrate == 800
        assert metadata.audio.bitrate == 150
        assert metadata.is_real_analysis is True
        assert metadata.subtitles == ()

    def test_size_estimate_without_probe_data(self):
        file = InMemoryMediaFile("movie.mkv", b"", mime_type="")
        file.size = 4_000_000_000
        metadata = build_heuristic_metadata(PlaybackInfo({}), file)

        assert metadata.duration == 5400
        assert metadata.video.resolution == "1080p"
        assert metadata.video.codec == "h265"
        assert metadata.audio.codec == "ac3"
        assert metadata.is_real_analysis is False
        assert metadata.source == "size estimate"

    def test_mime_codec_hints(self):
        file = InMemoryMediaFile("clip.webm", b"\x00" * 10, mime_type='video/webm; codecs="vp9, opus"')
        metadata = build_heuristic_metadata(PlaybackInfo({"format": {"duration": "10"}}), file)
        assert metadata.video.codec == "vp9"
        assert metadata.audio.codec == "opus"

    def test_bitrate_budget_holds(self):
        file = InMemoryMediaFile("odd.mov", b"\x00" * 12345)
        metadata = build_heuristic_metadata(PlaybackInfo({"format": {"duration": "7"}}), file)
        assert metadata.video.bitrate + metadata.audio.bitrate <= metadata.total_bitrate


class TestExtractor:
    @pytest.mark.asyncio
    async def test_precise_path(self, media_file, mediainfo_result):
        analyzer, probe = FakeAnalyzer(result=mediainfo_result), FakeProbe()
        metadata = await MetadataExtractor(PreciseStrategy(analyzer, probe)).analyze(media_file)
        assert metadata.source == "MediaInfo"
        assert analyzer.analyzed == [".mp4"]
        assert probe.probed == []

    @pytest.mark.asyncio
    async def test_precise_failure_falls_back_to_probe(self, media_file):
        analyzer = FakeAnalyzer(error=ProbeUnavailable("crashed"))
        probe = FakeProbe()
        metadata = await MetadataExtractor(PreciseStrategy(analyzer, probe)).analyze(media_file)
        assert probe.probed == ["clip.mp4"]
        assert metadata.video.resolution == "720p"

    @pytest.mark.asyncio
    async def test_heuristic_path(self, media_file):
        metadata = await MetadataExtractor(HeuristicStrategy(FakeProbe())).analyze(media_file)
        assert metadata.filename == "clip.mp4"
        assert metadata.size == 2048
        assert metadata.last_modified == 1700000000.0

    @pytest.mark.asyncio
    async def test_timeout_surfaces(self, media_file):
        probe = FakeProbe(failures={"clip.mp4": ExtractionTimeout("clip.mp4", 10)})
        with pytest.raises(ExtractionTimeout) as exc:
            await MetadataExtractor(HeuristicStrategy(probe)).analyze(media_file)
        assert exc.value.reason == "metadata did not load within 10s"

    @pytest.mark.asyncio
    async def test_unreadable_file_surfaces(self, media_file):
        probe = FakeProbe(failures={"clip.mp4": ExtractionReadFailure("clip.mp4", "unable to read the video")})
        with pytest.raises(ExtractionReadFailure):
            await MetadataExtractor(HeuristicStrategy(probe)).analyze(media_file)

    @pytest.mark.asyncio
    async def test_selects_strategy_lazily(self, media_file, fast_polling, monkeypatch):
        monkeypatch.setattr(me, "MediaInfoAnalyzer", lambda: FakeAnalyzer(ready=False))
        monkeypatch.setattr(me, "FFprobePlaybackProbe", lambda: FakeProbe())
        metadata = await MetadataExtractor().analyze(media_file)
        assert current_strategy().name == "heuristic"
        assert metadata.is_real_analysis is True
