"""
downloader.py — Stream a resolved video URL straight into the staging store.

`stream(url)` is an async generator of byte chunks; the staging store
consumes it while the response is still arriving, so a 50 MB clip never sits
in memory. Any network or HTTP error surfaces as TransferError, including
errors raised half-way through the body.
"""

import logging
from collections.abc import AsyncIterator

import httpx

from app.core.config import Settings
from app.core.errors import TransferError

logger = logging.getLogger(__name__)

_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Mobile/15E148"
)
_CHUNK_SIZE = 64 * 1024


class MediaDownloader:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._timeout = settings.download_timeout_seconds
        self._transport = transport

    async def stream(self, url: str) -> AsyncIterator[bytes]:
        logger.info("Downloading video from %s", url)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
                headers={"User-Agent": _USER_AGENT},
            ) as client:
                async with client.stream("GET", url) as response:
                    response.raise_for_status()
                    async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                        yield chunk
        except httpx.HTTPStatusError as exc:
            logger.warning("Video download returned %s for %s", exc.response.status_code, url)
            raise TransferError(
                "Failed to download video from URL",
                details=f"Upstream responded {exc.response.status_code}",
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Video download failed for %s: %r", url, exc)
            raise TransferError("Failed to download video from URL", details=str(exc) or repr(exc)) from exc
