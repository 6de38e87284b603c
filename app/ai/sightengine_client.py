"""
SightengineClient — Async wrapper around the Sightengine `genai` detection model.

Two submission modes:
  - Image: POST /check.json with the raw bytes as the `media` part.
    One score (`type.ai_generated`) plus an optional `type.ai_class` label.
  - Video: POST /video/check-sync.json with a public `stream_url`.
    Sightengine fetches the clip, samples frames and scores each one before
    answering, so this call blocks for up to a minute on longer clips.
    Returns the ordered per-frame `type.ai_generated` values.

Sightengine reports errors in the body (`{"status": "failure", "error":
{"message": ...}}`), often with a 4xx status as well, so the body is parsed
before the HTTP status is considered. Every failure, including timeouts and
unparseable or wrongly shaped bodies, surfaces as ScoringError carrying
a readable message.
"""

import logging
from typing import Any

import httpx

from app.core.config import Settings
from app.core.errors import ScoringError
from app.services.verdict import ImageScore

logger = logging.getLogger(__name__)


class SightengineClient:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._base_url = settings.sightengine_base_url.rstrip("/")
        self._models = settings.sightengine_models
        self._api_user = settings.sightengine_api_user
        self._api_secret = settings.sightengine_api_secret
        self._video_timeout = settings.scoring_timeout_seconds
        self._image_timeout = settings.image_timeout_seconds
        self._transport = transport

    def _fields(self) -> dict[str, tuple[None, str]]:
        # (None, value) parts keep the request multipart without a filename.
        return {
            "models": (None, self._models),
            "api_user": (None, self._api_user),
            "api_secret": (None, self._api_secret),
        }

    async def _post(self, endpoint: str, files: dict[str, Any], timeout: float, default_error: str) -> dict[str, Any]:
        url = f"{self._base_url}/{endpoint}"
        try:
            async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                response = await client.post(url, files=files)
        except httpx.TimeoutException as exc:
            raise ScoringError(f"Sightengine did not answer within {timeout:g}s") from exc
        except httpx.HTTPError as exc:
            logger.error("Sightengine request to %s failed: %r", endpoint, exc)
            raise ScoringError(f"Sightengine request failed: {exc}") from exc

        try:
            result = response.json()
        except ValueError as exc:
            logger.error("Sightengine returned non-JSON (%s): %s", response.status_code, response.text[:200])
            raise ScoringError(f"Sightengine responded {response.status_code} with an unreadable body") from exc

        logger.debug("Sightengine %s response: %s", endpoint, result)

        if not isinstance(result, dict):
            raise ScoringError(default_error)
        if result.get("status") == "failure":
            message = (result.get("error") or {}).get("message") or default_error
            logger.error("Sightengine reported failure: %s", message)
            raise ScoringError(message)
        if response.is_error:
            raise ScoringError(f"Sightengine responded {response.status_code}")
        return result

    async def score_image(self, data: bytes, mime_type: str) -> ImageScore:
        files = {"media": ("image.jpg", data, mime_type), **self._fields()}
        result = await self._post("check.json", files, self._image_timeout, "API request failed")

        try:
            type_block = result.get("type") or {}
            return ImageScore(
                ai_generated=_ai_generated(result),
                ai_class=type_block.get("ai_class"),
            )
        except (AttributeError, TypeError, ValueError) as exc:
            logger.error("Malformed Sightengine image response: %s", result)
            raise ScoringError("Image analysis returned malformed data.") from exc

    async def score_video(self, stream_url: str) -> list[float]:
        logger.info("Analyzing video with Sightengine (this may take a minute)...")
        files = {"stream_url": (None, stream_url), **self._fields()}
        result = await self._post("video/check-sync.json", files, self._video_timeout, "Video analysis failed")

        data = result.get("data")
        if data is not None and not isinstance(data, dict):
            raise ScoringError("Video analysis returned malformed frame data.")
        frames = (data or {}).get("frames")
        if not frames:
            logger.error("No frame data in Sightengine response")
            raise ScoringError("Video analysis returned no frame data.")
        if not isinstance(frames, list):
            raise ScoringError("Video analysis returned malformed frame data.")

        try:
            scores = [_ai_generated(frame) for frame in frames]
        except (AttributeError, TypeError, ValueError) as exc:
            logger.error("Malformed Sightengine frame data: %r", exc)
            raise ScoringError("Video analysis returned malformed frame data.") from exc

        logger.info("AI scores from %d frames: %s", len(scores), scores)
        return scores


def _ai_generated(item: dict[str, Any]) -> float:
    """`type.ai_generated` of an image result or a frame; missing counts as 0."""
    score = float((item.get("type") or {}).get("ai_generated") or 0)
    if not 0 <= score <= 1:
        raise ValueError(f"ai_generated out of range: {score}")
    return score
