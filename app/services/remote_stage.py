"""
remote_stage.py — Cloudinary as a temporary public home for staged videos.

Sightengine's video endpoint only accepts a fetchable `stream_url`, never raw
bytes, so every video takes a short detour: upload the staged file to
Cloudinary, hand Sightengine the `secure_url`, destroy the asset afterwards.

Credentials are passed on every SDK call instead of through
`cloudinary.config()`, so the module keeps no global state and two stages
with different accounts can coexist (tests rely on this).

The SDK is synchronous; calls run on a worker thread via asyncio.to_thread
so a slow upload never stalls the event loop. A thread cannot be stopped,
so an upload abandoned by a timeout or a cancelled request is left to
finish in the background and its asset is destroyed as soon as it lands.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import cloudinary.uploader

from app.core.config import Settings
from app.core.errors import StageUploadError
from app.services.staging import StagedFile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteObjectHandle:
    public_id: str
    secure_url: str
    resource_type: str = "video"


class RemoteObjectStage:
    def __init__(self, settings: Settings, uploader: Any = cloudinary.uploader) -> None:
        self._uploader = uploader
        self._folder = settings.cloudinary_folder
        self._timeout = settings.upload_timeout_seconds
        self._credentials = {
            "cloud_name": settings.cloudinary_cloud_name,
            "api_key": settings.cloudinary_api_key,
            "api_secret": settings.cloudinary_api_secret,
        }
        self._reapers: set[asyncio.Task] = set()

    async def upload(self, staged: StagedFile, kind: str = "video") -> RemoteObjectHandle:
        public_id = f"{kind}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"
        logger.info("Uploading %s (%d bytes) to Cloudinary folder %s", staged.path.name, staged.size, self._folder)
        # The SDK call can't be interrupted once its thread starts, so the
        # awaiting side is shielded and abandoned uploads are reaped.
        upload_task = asyncio.ensure_future(
            asyncio.to_thread(
                self._uploader.upload,
                str(staged.path),
                resource_type=kind,
                folder=self._folder,
                public_id=public_id,
                **self._credentials,
            )
        )
        fallback_id = f"{self._folder}/{public_id}"
        try:
            result = await asyncio.wait_for(asyncio.shield(upload_task), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            self._reap_later(upload_task, fallback_id, kind)
            raise StageUploadError(
                "Failed to upload video to cloud storage",
                details=f"Upload timed out after {self._timeout:g}s",
            ) from exc
        except asyncio.CancelledError:
            self._reap_later(upload_task, fallback_id, kind)
            raise
        except Exception as exc:
            logger.error("Cloudinary upload failed: %s", exc)
            raise StageUploadError("Failed to upload video to cloud storage", details=str(exc)) from exc

        secure_url = result.get("secure_url")
        if not secure_url:
            raise StageUploadError(
                "Failed to upload video to cloud storage",
                details="Cloudinary response has no secure_url",
            )

        handle = RemoteObjectHandle(
            public_id=result.get("public_id") or fallback_id,
            secure_url=secure_url,
            resource_type=kind,
        )
        logger.info("Video uploaded: %s", handle.secure_url)
        return handle

    def _reap_later(self, upload_task: asyncio.Future, fallback_id: str, kind: str) -> None:
        reaper = asyncio.ensure_future(self._reap(upload_task, fallback_id, kind))
        self._reapers.add(reaper)
        reaper.add_done_callback(self._reapers.discard)

    async def _reap(self, upload_task: asyncio.Future, fallback_id: str, kind: str) -> None:
        """Wait out an abandoned upload and destroy whatever it created."""
        try:
            result = await upload_task
        except Exception as exc:
            logger.info("Abandoned upload %s never completed: %r", fallback_id, exc)
            return
        public_id = (result or {}).get("public_id") or fallback_id
        logger.warning("Abandoned upload %s finished late; destroying it", public_id)
        await self.delete(RemoteObjectHandle(public_id=public_id, secure_url="", resource_type=kind))

    async def drain(self) -> None:
        """Wait for every pending reap. Called on shutdown."""
        if self._reapers:
            await asyncio.gather(*self._reapers, return_exceptions=True)

    async def delete(self, handle: RemoteObjectHandle) -> None:
        """Destroy the remote asset. Never raises: the verdict is already computed."""
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(
                    self._uploader.destroy,
                    handle.public_id,
                    resource_type=handle.resource_type,
                    **self._credentials,
                ),
                timeout=self._timeout,
            )
        except Exception as exc:
            logger.warning("Could not delete %s from Cloudinary: %r", handle.public_id, exc)
            return

        if (result or {}).get("result") != "ok":
            logger.warning("Cloudinary destroy for %s returned %s", handle.public_id, result)
        else:
            logger.info("Deleted %s from Cloudinary", handle.public_id)

    @asynccontextmanager
    async def hold(self, staged: StagedFile, kind: str = "video") -> AsyncIterator[RemoteObjectHandle]:
        handle = await self.upload(staged, kind)
        try:
            yield handle
        finally:
            # Shielded so a cancelled request still gets its asset destroyed.
            await asyncio.shield(self.delete(handle))
