import asyncio
import mimetypes
import os
import tempfile
import time
from typing import Optional, Callable, Awaitable


class MediaFile:
    """Random-access handle on a media file.

    Subclasses provide the bytes; extraction only ever goes through
    ``read_chunk`` (plus ``path`` when the file is on local disk).
    """

    name: str = ""
    size: int = 0
    mime_type: str = ""
    last_modified: Optional[float] = None
    path: Optional[str] = None

    async def read_chunk(self, chunk_size: int, offset: int) -> bytes:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r} ({self.size} bytes)>"


class LocalMediaFile(MediaFile):
    def __init__(self, path: str):
        stat = os.stat(path)
        self.path = os.path.abspath(path)
        self.name = os.path.basename(path)
        self.size = stat.st_size
        self.mime_type = mimetypes.guess_type(self.name)[0] or ""
        self.last_modified = stat.st_mtime

    def _read(self, chunk_size: int, offset: int) -> bytes:
        with open(self.path, "rb") as f:
            f.seek(offset)
            return f.read(chunk_size)

    async def read_chunk(self, chunk_size: int, offset: int) -> bytes:
        return await asyncio.to_thread(self._read, chunk_size, offset)


class InMemoryMediaFile(MediaFile):
    def __init__(self, name: str, data: bytes, mime_type: Optional[str] = None,
                 last_modified: Optional[float] = None):
        self.name = name
        self.data = data
        self.size = len(data)
        self.mime_type = mime_type if mime_type is not None else (mimetypes.guess_type(name)[0] or "")
        self.last_modified = last_modified if last_modified is not None else time.time()

    async def read_chunk(self, chunk_size: int, offset: int) -> bytes:
        return self.data[offset:offset + chunk_size]


SizeAccessor = Callable[[], int]
ChunkReader = Callable[[int, int], Awaitable[bytes]]


async def spool_to_tempfile(get_size: SizeAccessor, read_chunk: ChunkReader,
                            chunk_size: int, suffix: str = "") -> str:
    """Copy a file chunk by chunk into a named temp file; the caller unlinks it."""
    size = get_size()
    offset = 0
    with tempfile.NamedTemporaryFile(prefix="media-optimizer-", suffix=suffix, delete=False) as tmp:
        try:
            while offset < size:
                chunk = await read_chunk(min(chunk_size, size - offset), offset)
                if not chunk:
                    break
                tmp.write(chunk)
                offset += len(chunk)
        except BaseException:
            tmp.close()
            os.unlink(tmp.name)
            raise
    return tmp.name
