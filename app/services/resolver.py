"""
resolver.py — Turn a shared social-media link into a directly downloadable video URL.

Dispatch is a pure function of the URL text (case-insensitive substring,
first match wins):

    instagram.com             → Platform.INSTAGRAM
    facebook.com / fb.watch   → Platform.FACEBOOK
    tiktok.com                → Platform.TIKTOK
    anything else             → Platform.DIRECT (returned unchanged)

Each platform has its own strategy object with an `async resolve(url)`
method; PlatformResolver only picks one. Strategies wrap an *extractor*, an
async callable returning the platform's raw payload:

    Instagram  {"status": bool, "data": [{"url": ..., "thumbnail": ...}], "msg": ...}
    Facebook   {"sd": url | None, "hd": url | None}
    TikTok     {"status": "success" | "error", "result": {"video": url}}

Default extractors use yt-dlp (Instagram, Facebook) and the TikWM API
(TikTok). Swap them by passing your own to the strategy constructors.

Whatever goes wrong inside a platform strategy, the caller only ever sees
"Could not extract video from <Platform> URL. Please use file upload instead."
Extractor libraries change their errors constantly; the app keys its UI off
this sentence.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Protocol

import httpx
import yt_dlp

from app.core.config import Settings
from app.core.errors import ResolutionError

logger = logging.getLogger(__name__)

Extractor = Callable[[str], Awaitable[dict[str, Any]]]

TIKWM_API_URL = "https://www.tikwm.com/api/"


class Platform(str, Enum):
    INSTAGRAM = "Instagram"
    FACEBOOK = "Facebook"
    TIKTOK = "TikTok"
    DIRECT = "Direct"


_PATTERNS: list[tuple[tuple[str, ...], Platform]] = [
    (("instagram.com",), Platform.INSTAGRAM),
    (("facebook.com", "fb.watch"), Platform.FACEBOOK),
    (("tiktok.com",), Platform.TIKTOK),
]


def detect_platform(url: str) -> Platform:
    lowered = url.lower()
    for needles, platform in _PATTERNS:
        if any(n in lowered for n in needles):
            return platform
    return Platform.DIRECT


def fallback_message(platform: Platform) -> str:
    return f"Could not extract video from {platform.value} URL. Please use file upload instead."


# ── Default extractors ────────────────────────────────────────────────────────

_YDL_OPTS = {
    "quiet": True,
    "no_warnings": True,
    "noplaylist": True,
    "skip_download": True,
    "format": "best[ext=mp4]/best",
}


def _ytdlp_info(url: str) -> dict[str, Any]:
    with yt_dlp.YoutubeDL(_YDL_OPTS) as ydl:
        info = ydl.extract_info(url, download=False)
    # Carousels / multi-video posts come back as a playlist; take the first clip.
    if info and info.get("entries"):
        info = next((e for e in info["entries"] if e), {})
    return info or {}


def _progressive_url(info: dict[str, Any]) -> str | None:
    direct = info.get("url")
    if isinstance(direct, str) and direct:
        return direct
    candidates = [
        f for f in info.get("formats") or []
        if f.get("url") and f.get("vcodec") != "none" and f.get("acodec") != "none"
    ]
    if not candidates:
        return None
    best = max(candidates, key=lambda f: (f.get("ext") == "mp4", f.get("tbr") or 0))
    return best["url"]


async def instagram_extractor(url: str) -> dict[str, Any]:
    info = await asyncio.to_thread(_ytdlp_info, url)
    video_url = _progressive_url(info)
    if not video_url:
        return {"status": False, "data": [], "msg": "No playable format in post"}
    return {"status": True, "data": [{"url": video_url, "thumbnail": info.get("thumbnail")}]}


async def facebook_extractor(url: str) -> dict[str, Any]:
    info = await asyncio.to_thread(_ytdlp_info, url)
    by_id = {f.get("format_id"): f.get("url") for f in info.get("formats") or []}
    return {"sd": by_id.get("sd"), "hd": by_id.get("hd") or info.get("url")}


def make_tiktok_extractor(
    timeout: float, transport: httpx.AsyncBaseTransport | None = None
) -> Extractor:
    async def tiktok_extractor(url: str) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(TIKWM_API_URL, params={"url": url, "hd": 0})
            response.raise_for_status()
            body = response.json()
        play = (body.get("data") or {}).get("play")
        if body.get("code") == 0 and play:
            return {"status": "success", "result": {"video": play}}
        return {"status": "error", "message": body.get("msg") or "No video in TikWM response"}

    return tiktok_extractor


# ── Strategies ────────────────────────────────────────────────────────────────

class ResolverStrategy(Protocol):
    async def resolve(self, url: str) -> str: ...


class DirectStrategy:
    async def resolve(self, url: str) -> str:
        logger.info("Assuming direct video URL")
        return url


class PlatformStrategy:
    """Shared extractor call + error wrapping; subclasses only pick the URL field."""

    platform: Platform

    def __init__(self, extractor: Extractor, timeout: float = 30.0) -> None:
        self._extractor = extractor
        self._timeout = timeout

    def pick_url(self, payload: dict[str, Any]) -> str | None:
        raise NotImplementedError

    async def resolve(self, url: str) -> str:
        logger.info("Detected %s URL", self.platform.value)
        try:
            payload = await asyncio.wait_for(self._extractor(url), timeout=self._timeout)
            direct = self.pick_url(payload or {})
        except Exception as exc:
            logger.warning("%s extraction failed: %r", self.platform.value, exc)
            raise ResolutionError(fallback_message(self.platform)) from exc

        if not direct:
            logger.warning("%s extractor returned no usable URL: %s", self.platform.value, payload)
            raise ResolutionError(fallback_message(self.platform))

        logger.info("Extracted %s video URL successfully", self.platform.value)
        return direct


class InstagramStrategy(PlatformStrategy):
    platform = Platform.INSTAGRAM

    def pick_url(self, payload: dict[str, Any]) -> str | None:
        data = payload.get("data") or []
        if payload.get("status") and data:
            return data[0].get("url")
        return None


class FacebookStrategy(PlatformStrategy):
    platform = Platform.FACEBOOK

    def pick_url(self, payload: dict[str, Any]) -> str | None:
        return payload.get("sd") or payload.get("hd")


class TikTokStrategy(PlatformStrategy):
    platform = Platform.TIKTOK

    def pick_url(self, payload: dict[str, Any]) -> str | None:
        if payload.get("status") == "success":
            return (payload.get("result") or {}).get("video")
        return None


class PlatformResolver:
    def __init__(self, strategies: dict[Platform, ResolverStrategy]) -> None:
        self._strategies = strategies

    @classmethod
    def from_settings(cls, settings: Settings) -> "PlatformResolver":
        timeout = settings.resolver_timeout_seconds
        return cls({
            Platform.INSTAGRAM: InstagramStrategy(instagram_extractor, timeout),
            Platform.FACEBOOK: FacebookStrategy(facebook_extractor, timeout),
            Platform.TIKTOK: TikTokStrategy(make_tiktok_extractor(timeout), timeout),
            Platform.DIRECT: DirectStrategy(),
        })

    async def resolve(self, url: str) -> str:
        logger.info("Extracting video URL from: %s", url)
        return await self._strategies[detect_platform(url)].resolve(url)
