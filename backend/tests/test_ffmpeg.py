"""Tests for encode command assembly."""

import pytest

from media_optimizer.utils.ffmpeg import FFmpegCommandBuilder, output_filename, quote


def _config(**overrides):
    config = {
        "video_codec": "h265",
        "crf_value": 23,
        "video_preset": "medium",
        "encoder_tune": None,
        "preserve_hdr": False,
        "max_bitrate": None,
        "audio_mode": "transcode",
        "audio_codec": "aac",
        "audio_bitrate": 128,
        "subtitle_mode": None,
        "container": "mkv",
    }
    config.update(overrides)
    return config


def test_basic_command_layout():
    cmd = FFmpegCommandBuilder(_config(), "movie.mp4").build()
    assert cmd == (
        'ffmpeg -i "movie.mp4" -c:v libx265 -crf 23 -preset medium '
        '-c:a aac -b:a 128k -movflags +faststart "movie_optimized.mkv"'
    )


def test_vp9_uses_constant_quality_without_preset():
    cmd = FFmpegCommandBuilder(_config(video_codec="vp9", container="webm"), "a.mkv").build()
    assert "-c:v libvpx-vp9 -crf 23 -b:v 0" in cmd
    assert "-preset" not in cmd


def test_tune_hdr_and_rate_ceiling():
    cmd = FFmpegCommandBuilder(
        _config(encoder_tune="animation", preserve_hdr=True, max_bitrate=15000), "show.mkv"
    ).build()
    assert "-tune animation" in cmd
    assert '-x265-params "hdr-opt=1:repeat-headers=1"' in cmd
    assert "-maxrate 15000k -bufsize 30000k" in cmd


def test_hdr_params_only_for_x265():
    cmd = FFmpegCommandBuilder(_config(video_codec="h264", preserve_hdr=True), "a.mp4").build()
    assert "-x265-params" not in cmd


def test_audio_copy_and_subtitles():
    cmd = FFmpegCommandBuilder(_config(audio_mode="copy", subtitle_mode="srt"), "a.mkv").build()
    assert "-c:a copy" in cmd
    assert "-b:a" not in cmd
    assert "-c:s srt" in cmd


def test_subtitle_copy():
    cmd = FFmpegCommandBuilder(_config(subtitle_mode="copy"), "a.mkv").build()
    assert "-c:s copy" in cmd


def test_output_filename():
    assert output_filename("my.film.MKV", "mp4") == "my.film_optimized.mp4"
    assert output_filename("noext", "mkv") == "noext_optimized.mkv"
    assert output_filename("a.avi", "mkv", suffix="-x") == "a-x.mkv"


def test_quote_escapes_double_quotes():
    assert quote('say "hi".mp4') == '"say \\"hi\\".mp4"'


def test_quote_bash_escapes_expansions():
    assert quote("$(rm -rf ~) `id` \\ $HOME.mp4") == '"\\$(rm -rf ~) \\`id\\` \\\\ \\$HOME.mp4"'


def test_quote_powershell():
    assert quote('a "b" $env:PATH `x`.mp4', "powershell") == '"a ""b"" `$env:PATH ``x``.mp4"'
    assert quote("“hi”.mp4", "powershell") == '"““hi””.mp4"'


def test_quote_rejects_unknown_shell():
    with pytest.raises(ValueError):
        quote("a.mp4", "fish")


def test_powershell_command_quoting():
    cmd = FFmpegCommandBuilder(_config(preserve_hdr=True), "$x.mp4", shell="powershell").build()
    assert cmd.startswith('ffmpeg -i "`$x.mp4"')
    assert cmd.endswith('"`$x_optimized.mkv"')
