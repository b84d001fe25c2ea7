"""
Storefront Backend — Upload Sources (Memory vs Disk Staging)
==============================================================

What:  Strategy objects deciding where an uploaded image lives while it is
       being normalized and forwarded to the asset host.
Why:   Small containers have little RAM and prefer staging to disk; serverless
       hosts have a read-only filesystem and must stay in memory. The choice
       is made once at startup from the MEMORY setting.
How:   Both sources expose `process(upload, normalize)`, an async context
       manager that yields a NormalizedImage. The `normalize` callable (from
       ImageService) reads from a path or file object and writes JPEG bytes to
       a path or file object, returning the output (width, height).

Cleanup contract:
    Every artifact a source creates is removed when the context exits, whether
    the body succeeded, raised, or was never reached.

Implementations:
    - MemoryUploadSource: bytes in, bytes out (BytesIO)
    - DiskUploadSource:   original staged under TEMP_DIR, resized JPEG written
                          beside it; the original is deleted right after
                          resizing, the resized file on context exit
"""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import AsyncIterator, BinaryIO, Callable, Optional, Tuple, Union

import aiofiles
import aiofiles.os
from starlette.datastructures import UploadFile

logger = logging.getLogger(__name__)

# Reads from `src`, writes JPEG to `dst`, returns output (width, height)
Normalizer = Callable[[Union[str, BinaryIO], Union[str, BinaryIO]], Tuple[int, int]]

CHUNK_SIZE = 1024 * 1024


@dataclass
class NormalizedImage:
    """
    A resized JPEG ready for upload.

    Exactly one of `content` (memory source) or `path` (disk source) is set.
    """

    filename: str
    width: int
    height: int
    content: Optional[bytes] = None
    path: Optional[str] = None

    def payload(self) -> Union[BinaryIO, str]:
        """Fresh upload payload; a new BytesIO per call so retries start at 0."""
        if self.content is not None:
            return BytesIO(self.content)
        if self.path is not None:
            return self.path
        raise ValueError(f"NormalizedImage {self.filename} has no content")

    @property
    def size_bytes(self) -> int:
        if self.content is not None:
            return len(self.content)
        if self.path is not None:
            return Path(self.path).stat().st_size
        return 0


class UploadSource(ABC):
    """
    Abstract interface for staging an upload during normalization.

    Contract:
        - process() never leaves files behind once its context exits
        - Errors raised by `normalize` propagate unchanged
    """

    name: str = "abstract"

    @abstractmethod
    def process(
        self, upload: UploadFile, normalize: Normalizer
    ) -> "AsyncIterator[NormalizedImage]":
        """Async context manager yielding the normalized image."""
        ...


class MemoryUploadSource(UploadSource):
    """Keeps the original and the resized JPEG in memory."""

    name = "memory"

    @asynccontextmanager
    async def process(self, upload: UploadFile, normalize: Normalizer) -> AsyncIterator[NormalizedImage]:
        content = await upload.read()
        output = BytesIO()
        width, height = await asyncio.to_thread(normalize, BytesIO(content), output)
        image = NormalizedImage(
            filename=_resized_name(upload.filename),
            width=width,
            height=height,
            content=output.getvalue(),
        )
        del content
        try:
            yield image
        finally:
            # Drop the buffer so a slow upload response does not pin it
            image.content = None


class DiskUploadSource(UploadSource):
    """
    Stages uploads under `root`.

    File names are generated (UUID + stamp), never taken from the client,
    so a hostile filename cannot escape the staging directory.
    """

    name = "disk"

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    @asynccontextmanager
    async def process(self, upload: UploadFile, normalize: Normalizer) -> AsyncIterator[NormalizedImage]:
        token = uuid.uuid4().hex
        staged = self.root / f"{token}{Path(upload.filename or '').suffix.lower()}"
        resized = self.root / f"resized-{token}.jpg"
        try:
            async with aiofiles.open(staged, "wb") as f:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    await f.write(chunk)

            width, height = await asyncio.to_thread(normalize, str(staged), str(resized))
            # The original is no longer needed once the JPEG exists
            await self._remove(staged)

            yield NormalizedImage(
                filename=_resized_name(upload.filename),
                width=width,
                height=height,
                path=str(resized),
            )
        finally:
            await self._remove(staged)
            await self._remove(resized)

    async def _remove(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
            logger.debug("Removed staged file %s", path.name)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to remove staged file %s: %s", path.name, str(e))


def _resized_name(original: Optional[str]) -> str:
    stem = Path(original or "upload").stem or "upload"
    return f"resized-{stem}.jpg"


def build_upload_source(memory: bool, temp_dir: Union[str, Path]) -> UploadSource:
    """Pick the staging strategy configured for this process."""
    if memory:
        return MemoryUploadSource()
    return DiskUploadSource(temp_dir)
