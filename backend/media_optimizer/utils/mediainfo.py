import asyncio
import json
import logging
import os
from typing import Optional, Dict, Any

from media_optimizer.config import settings
from media_optimizer.errors import ProbeUnavailable
from media_optimizer.utils.media_file import SizeAccessor, ChunkReader, spool_to_tempfile

logger = logging.getLogger(__name__)


class MediaInfoAnalyzer:
    """Precise track analysis through the MediaInfo CLI.

    ``analyze_data`` returns MediaInfo's JSON document as-is; its
    ``media.track`` list (one dict per General/Video/Audio/Text track) is
    what the metadata extractor normalizes.
    """

    def __init__(self, binary: Optional[str] = None, chunk_size: Optional[int] = None):
        self.binary = binary or settings.MEDIAINFO_PATH
        self.chunk_size = chunk_size or settings.READ_CHUNK_SIZE

    async def _run(self, *args: str):
        process = await asyncio.create_subprocess_exec(
            self.binary, *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await process.communicate()
        return process.returncode, stdout, stderr

    async def initialize(self) -> bool:
        """Return True when the MediaInfo binary answers."""
        try:
            returncode, stdout, _ = await self._run("--Version")
        except OSError as e:
            logger.debug(f"MediaInfo not runnable: {e}")
            return False
        if returncode != 0:
            return False
        logger.debug(f"MediaInfo ready: {stdout.decode(errors='replace').strip()}")
        return True

    async def analyze_data(self, get_size: SizeAccessor, read_chunk: ChunkReader,
                           path: Optional[str] = None, suffix: str = "") -> Dict[str, Any]:
        spooled = None
        if path is None:
            spooled = await spool_to_tempfile(get_size, read_chunk, self.chunk_size, suffix)
            path = spooled
        try:
            returncode, stdout, stderr = await self._run("--Output=JSON", path)
        except OSError as e:
            raise ProbeUnavailable(str(e)) from e
        finally:
            if spooled:
                os.unlink(spooled)

        if returncode != 0:
            raise ProbeUnavailable(f"mediainfo exited with {returncode}: {stderr.decode(errors='replace').strip()}")
        try:
            data = json.loads(stdout.decode(errors="replace"))
        except json.JSONDecodeError as e:
            raise ProbeUnavailable(f"unparsable mediainfo output: {e}") from e
        if not isinstance(data, dict) or not data.get("media"):
            raise ProbeUnavailable("mediainfo returned no track list")
        return data
