import pytest

from media_optimizer.utils.file_utils import (
    format_file_size, format_duration, format_bitrate, split_filename, file_extension,
)


@pytest.mark.parametrize("size, expected", [
    (0, "0 B"),
    (None, "0 B"),
    (512, "512.00 B"),
    (1536, "1.50 KB"),
    (1024 * 1024 * 100, "100.00 MB"),
    (5 * 1024 ** 3, "5.00 GB"),
])
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


@pytest.mark.parametrize("seconds, expected", [
    (0, "0m 0s"),
    (59, "0m 59s"),
    (1320, "22m 0s"),
    (5400.7, "1h 30m 0s"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


@pytest.mark.parametrize("kbps, expected", [
    (0, "0 kbps"),
    (448, "448 kbps"),
    (8000, "8.00 Mbps"),
])
def test_format_bitrate(kbps, expected):
    assert format_bitrate(kbps) == expected


@pytest.mark.parametrize("name, expected", [
    ("movie.MKV", ("movie", "mkv")),
    ("my.movie.2020.mp4", ("my.movie.2020", "mp4")),
    ("movie", ("movie", "")),
    (".hidden", (".hidden", "")),
    ("/srv/media/show.avi", ("show", "avi")),
    ("C:\\Videos\\clip.webm", ("clip", "webm")),
    ("", ("", "")),
    (None, ("", "")),
])
def test_split_filename(name, expected):
    assert split_filename(name) == expected


def test_file_extension():
    assert file_extension("a.b.MOV") == "mov"
