from typing import Optional, Tuple


def format_file_size(size_bytes: Optional[int]) -> str:
    if size_bytes is None or size_bytes == 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_index = 0
    size = float(size_bytes)
    while abs(size) >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1
    return f"{size:.2f} {units[unit_index]}"


def format_duration(seconds: Optional[float]) -> str:
    if not seconds:
        return "0m 0s"
    total_seconds = int(seconds)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    secs = total_seconds % 60
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    return f"{minutes}m {secs}s"


def format_bitrate(kbps: Optional[float]) -> str:
    if not kbps:
        return "0 kbps"
    if kbps < 1000:
        return f"{round(kbps)} kbps"
    return f"{kbps / 1000:.2f} Mbps"


def split_filename(filename: Optional[str]) -> Tuple[str, str]:
    """Split a file name into (stem, extension) on its final dot.

    Only the last path segment is considered. The extension comes back
    lowercased and without the dot; it is empty when the name has no dot or
    only a leading one ("movie" -> ("movie", ""), ".hidden" -> (".hidden", "")).
    Multiple dots keep everything before the last one in the stem
    ("a.b.mkv" -> ("a.b", "mkv")). Directories are dropped from the stem.
    """
    if not filename:
        return "", ""
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    dot = name.rfind(".")
    if dot <= 0:
        return name, ""
    return name[:dot], name[dot + 1:].lower()


def file_extension(filename: Optional[str]) -> str:
    return split_filename(filename)[1]
