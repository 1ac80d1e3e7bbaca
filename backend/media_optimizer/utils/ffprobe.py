import asyncio
import json
import logging
import os
from typing import Optional, Dict, Any

from media_optimizer.config import settings
from media_optimizer.errors import ExtractionTimeout, ExtractionReadFailure
from media_optimizer.utils.file_utils import file_extension
from media_optimizer.utils.media_file import MediaFile, spool_to_tempfile

logger = logging.getLogger(__name__)


class PlaybackInfo:
    """Coarse playback metadata: natural frame size and duration only."""

    def __init__(self, data: Dict[str, Any]):
        self.raw = data
        self.format = data.get("format", {})
        self.streams = data.get("streams", [])

    @property
    def duration(self) -> float:
        try:
            return float(self.format.get("duration", 0))
        except (TypeError, ValueError):
            return 0.0

    @property
    def video_streams(self):
        return [s for s in self.streams if s.get("width") and s.get("height")]

    @property
    def width(self) -> int:
        vs = self.video_streams
        return int(vs[0]["width"]) if vs else 0

    @property
    def height(self) -> int:
        vs = self.video_streams
        return int(vs[0]["height"]) if vs else 0

    def to_dict(self) -> Dict[str, Any]:
        return {"width": self.width, "height": self.height, "duration": self.duration}


class FFprobePlaybackProbe:
    """Heuristic probe: asks ffprobe for dimensions and duration, nothing else."""

    def __init__(self, binary: Optional[str] = None, timeout: Optional[float] = None,
                 chunk_size: Optional[int] = None):
        self.binary = binary or settings.FFPROBE_PATH
        self.timeout = timeout if timeout is not None else settings.PROBE_TIMEOUT_SECONDS
        self.chunk_size = chunk_size or settings.READ_CHUNK_SIZE

    async def probe(self, file: MediaFile) -> PlaybackInfo:
        """Run ffprobe on the file's path; uploads are spooled to disk first."""
        spooled = None
        source = file.path
        if source is None:
            extension = file_extension(file.name)
            spooled = source = await spool_to_tempfile(
                lambda: file.size, file.read_chunk, self.chunk_size,
                f".{extension}" if extension else "",
            )
        try:
            return await self._run(file, source)
        finally:
            if spooled:
                os.unlink(spooled)

    async def _run(self, file: MediaFile, source: str) -> PlaybackInfo:
        cmd = [
            self.binary,
            "-v", "quiet",
            "-print_format", "json",
            "-show_entries", "format=duration:stream=width,height",
            source,
        ]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExtractionReadFailure(file.name, f"ffprobe not runnable: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise ExtractionTimeout(file.name, self.timeout)

        if process.returncode != 0:
            logger.error(f"FFprobe failed on {file.name}: {stderr.decode(errors='replace')}")
            raise ExtractionReadFailure(file.name, "unable to read the video")

        try:
            data = json.loads(stdout.decode(errors="replace"))
        except json.JSONDecodeError as e:
            raise ExtractionReadFailure(file.name, f"unparsable ffprobe output: {e}") from e
        return PlaybackInfo(data)
