from typing import Optional, Dict, Any, List

from media_optimizer.config import settings
from media_optimizer.services.codec_database import ENCODERS
from media_optimizer.utils.file_utils import split_filename

# Encoders that take an x264-style speed preset
PRESET_ENCODERS = {"libx264", "libx265"}

HDR_X265_PARAMS = "hdr-opt=1:repeat-headers=1"

STREAMING_FLAGS = ["-movflags", "+faststart"]

SHELLS = ("bash", "powershell")

# Characters bash still interprets inside double quotes
_BASH_SPECIALS = ("\\", '"', "$", "`")

# PowerShell closes a double-quoted string on any of these
_POWERSHELL_QUOTES = ('"', "“", "”", "„")


def quote(text: str, shell: str = "bash") -> str:
    """Double-quote text so the target shell passes it through literally.

    bash: backslash-escape the characters it expands inside double quotes.
    PowerShell: backtick-escape backticks and dollars, double embedded quotes.
    """
    if shell == "powershell":
        escaped = text.replace("`", "``").replace("$", "`$")
        for ch in _POWERSHELL_QUOTES:
            escaped = escaped.replace(ch, ch + ch)
    elif shell == "bash":
        escaped = text
        for ch in _BASH_SPECIALS:
            escaped = escaped.replace(ch, "\\" + ch)
    else:
        raise ValueError(f"Unsupported shell: {shell}")
    return f'"{escaped}"'


def output_filename(input_name: str, container: str, suffix: Optional[str] = None) -> str:
    stem, _ = split_filename(input_name)
    if suffix is None:
        suffix = settings.OUTPUT_SUFFIX
    return f"{stem}{suffix}.{container}"


class FFmpegCommandBuilder:
    """Assemble an encode command string from a resolved encode config.

    Config keys: video_codec, crf_value, video_preset, encoder_tune,
    preserve_hdr, max_bitrate, audio_mode ("copy" | "transcode"),
    audio_codec, audio_bitrate, subtitle_mode ("copy" | "srt" | None),
    container. ``shell`` selects how paths are quoted.
    """

    def __init__(self, config: Dict[str, Any], input_path: str, shell: str = "bash"):
        self.config = config
        self.input_path = input_path
        self.shell = shell
        self.encoder_binary = settings.ENCODER_BINARY

    def build(self) -> str:
        parts = [self.encoder_binary, "-i", quote(self.input_path, self.shell)]

        parts.extend(self._build_video_args())
        parts.extend(self._build_audio_args())
        parts.extend(self._build_subtitle_args())
        parts.extend(STREAMING_FLAGS)

        parts.append(quote(self.get_output_path(), self.shell))

        return " ".join(parts)

    def _build_video_args(self) -> List[str]:
        args = []
        codec = self.config.get("video_codec", "h265")
        encoder = ENCODERS.get(codec, codec)

        args.extend(["-c:v", encoder])
        args.extend(["-crf", str(self.config.get("crf_value", 23))])
        if encoder == "libvpx-vp9":
            args.extend(["-b:v", "0"])

        preset = self.config.get("video_preset")
        if preset and encoder in PRESET_ENCODERS:
            args.extend(["-preset", preset])

        tune = self.config.get("encoder_tune")
        if tune:
            args.extend(["-tune", tune])

        if self.config.get("preserve_hdr") and encoder == "libx265":
            args.extend(["-x265-params", quote(HDR_X265_PARAMS, self.shell)])

        max_bitrate = self.config.get("max_bitrate")
        if max_bitrate:
            args.extend(["-maxrate", f"{max_bitrate}k", "-bufsize", f"{max_bitrate * 2}k"])

        return args

    def _build_audio_args(self) -> List[str]:
        args = []
        audio_mode = self.config.get("audio_mode", "copy")

        if audio_mode == "copy":
            args.extend(["-c:a", "copy"])
        elif audio_mode == "transcode":
            audio_codec = self.config.get("audio_codec", "aac")
            args.extend(["-c:a", ENCODERS.get(audio_codec, audio_codec)])
            bitrate = self.config.get("audio_bitrate")
            if bitrate:
                args.extend(["-b:a", f"{bitrate}k"])

        return args

    def _build_subtitle_args(self) -> List[str]:
        sub_mode = self.config.get("subtitle_mode")

        if sub_mode == "copy":
            return ["-c:s", "copy"]
        elif sub_mode == "srt":
            return ["-c:s", "srt"]
        return []

    def get_output_path(self) -> str:
        return output_filename(self.input_path, self.config.get("container", "mkv"))
