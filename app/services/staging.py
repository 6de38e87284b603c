"""
staging.py — Short-lived local storage for video bytes in transit.

A downloaded (or uploaded) video only lives on disk for the few seconds it
takes to hand it to the remote object stage. Each request writes to its own
file, named from a millisecond timestamp plus a uuid4, so concurrent requests
never share a path.

Prefer `hold()` over calling store()/release() by hand: the staged file is
removed on every exit path, including exceptions and task cancellation.
"""

import logging
import os
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import aclosing, asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

import aiofiles

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagedFile:
    path: Path
    size: int


class StagingStore:
    def __init__(self, root: str | os.PathLike, prefix: str = "temp_video") -> None:
        self.root = Path(root)
        self.prefix = prefix

    def _new_path(self, suffix: str) -> Path:
        suffix = suffix if suffix.startswith(".") else f".{suffix}"
        token = f"{int(time.time() * 1000)}_{uuid.uuid4().hex}"
        return self.root / f"{self.prefix}_{token}{suffix}"

    async def store(self, chunks: AsyncIterator[bytes], suffix: str = ".mp4") -> StagedFile:
        """
        Stream `chunks` into a fresh file and return it.

        Writes go through aiofiles so a large clip never blocks the event
        loop. If the source or a write fails part-way through, the source is
        closed and the partial file removed before the error propagates.
        """
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._new_path(suffix)
        size = 0
        try:
            async with aclosing(chunks) as source, aiofiles.open(path, "wb") as out:
                async for chunk in source:
                    await out.write(chunk)
                    size += len(chunk)
        except BaseException:
            self.release(StagedFile(path=path, size=size))
            raise

        logger.info("Staged %d bytes at %s", size, path)
        return StagedFile(path=path, size=size)

    def release(self, staged: StagedFile) -> None:
        """Delete the staged file. Safe to call twice or on a path that never existed."""
        try:
            staged.path.unlink(missing_ok=True)
            logger.debug("Released staged file %s", staged.path)
        except OSError as exc:
            logger.warning("Could not remove staged file %s: %s", staged.path, exc)

    @asynccontextmanager
    async def hold(self, chunks: AsyncIterator[bytes], suffix: str = ".mp4") -> AsyncIterator[StagedFile]:
        staged = await self.store(chunks, suffix)
        try:
            yield staged
        finally:
            self.release(staged)
