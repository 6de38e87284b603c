"""
media_pipeline.py — Orchestrates every analysis flow the API offers.

  Video URL (5 stages):
    Resolve      — social link → direct video URL (PlatformResolver)
    Download     — stream the video into a local staged file (MediaDownloader + StagingStore)
    Stage        — upload the staged file to Cloudinary for a public URL (RemoteObjectStage)
    Score        — Sightengine check-sync scores sampled frames
    Aggregate    — mean of non-zero frame scores → Verdict

  Video upload: same as above minus Resolve/Download; the uploaded bytes are staged directly.

  Image: one Sightengine call on the decoded bytes → Verdict.

Cleanup is scoped, not scattered: the staged file lives inside
`StagingStore.hold()` and the Cloudinary asset inside `RemoteObjectStage.hold()`.
The local file is released as soon as the upload finishes (before scoring),
the remote asset once scoring is over. Both happen on success, on any
failure, and when the request task is cancelled.

Input is validated before credentials are checked, so a malformed request is
always a 400 and never touches a collaborator.
"""

import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import AsyncExitStack
from functools import lru_cache
from pathlib import PurePosixPath
from typing import Protocol

from app.ai.sightengine_client import SightengineClient
from app.core.config import Settings, settings
from app.core.errors import ConfigurationError, ScoringError, ValidationError
from app.models.analysis import Verdict
from app.services.downloader import MediaDownloader
from app.services.remote_stage import RemoteObjectStage
from app.services.resolver import PlatformResolver
from app.services.staging import StagingStore
from app.services.verdict import ImageScore, image_verdict, video_verdict

logger = logging.getLogger(__name__)


class Scorer(Protocol):
    async def score_image(self, data: bytes, mime_type: str) -> ImageScore: ...

    async def score_video(self, stream_url: str) -> list[float]: ...


class MediaPipeline:
    def __init__(
        self,
        resolver: PlatformResolver,
        downloader: MediaDownloader,
        staging: StagingStore,
        remote_stage: RemoteObjectStage,
        scorer: Scorer,
        scoring_ready: bool = True,
        storage_ready: bool = True,
    ) -> None:
        self.resolver = resolver
        self.downloader = downloader
        self.staging = staging
        self.remote_stage = remote_stage
        self.scorer = scorer
        self.scoring_ready = scoring_ready
        self.storage_ready = storage_ready

    @classmethod
    def from_settings(cls, settings: Settings) -> "MediaPipeline":
        return cls(
            resolver=PlatformResolver.from_settings(settings),
            downloader=MediaDownloader(settings),
            staging=StagingStore(settings.staging_dir),
            remote_stage=RemoteObjectStage(settings),
            scorer=SightengineClient(settings),
            scoring_ready=settings.scoring_configured,
            storage_ready=settings.storage_configured,
        )

    # ── Configuration guards ──────────────────────────────────────────────────

    def _require_video_credentials(self) -> None:
        if not self.scoring_ready:
            raise ConfigurationError("Sightengine API credentials not configured")
        if not self.storage_ready:
            raise ConfigurationError("Cloudinary not configured. Add credentials to .env file")

    # ── Flows ─────────────────────────────────────────────────────────────────

    async def analyze_video_url(self, video_url: str | None) -> Verdict:
        if not video_url or not video_url.strip():
            raise ValidationError("Missing video URL")
        self._require_video_credentials()

        video_url = video_url.strip()
        logger.info("Video URL analysis request: %s", video_url)

        direct_url = await self.resolver.resolve(video_url)
        logger.info("Direct video URL extracted: %s", direct_url)

        return await self._analyze_video(self.downloader.stream(direct_url), ".mp4")

    async def analyze_video_file(self, chunks: AsyncIterator[bytes], filename: str | None = None) -> Verdict:
        self._require_video_credentials()
        suffix = PurePosixPath(filename or "").suffix or ".mp4"
        logger.info("Video upload analysis request: %s", filename or "<unnamed>")
        return await self._analyze_video(chunks, suffix)

    async def _analyze_video(self, chunks: AsyncIterator[bytes], suffix: str) -> Verdict:
        async with AsyncExitStack() as stack:
            async with self.staging.hold(chunks, suffix) as staged:
                handle = await stack.enter_async_context(self.remote_stage.hold(staged, "video"))
            # Local copy is gone from here on; only the Cloudinary asset remains.

            try:
                frame_scores = await self.scorer.score_video(handle.secure_url)
            except ScoringError as exc:
                raise ScoringError("Failed to analyze video", details=exc.message) from exc

        verdict = video_verdict(frame_scores)
        logger.info(
            "Video verdict: fake=%s confidence=%.3f (%d frames)",
            verdict.is_likely_ai_generated, verdict.confidence_score, len(frame_scores),
        )
        return verdict

    async def analyze_image(self, media_b64: str | None, mime_type: str | None) -> Verdict:
        if not media_b64 or not mime_type:
            raise ValidationError("Missing base64 or mimeType")
        if not self.scoring_ready:
            raise ConfigurationError("API credentials not configured. Add them to the .env file")

        # Accept both raw base64 and full data: URIs.
        payload = media_b64.split("base64,", 1)[1] if "base64," in media_b64 else media_b64
        try:
            image_bytes = base64.b64decode("".join(payload.split()))
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("Invalid base64 image data", details=str(exc)) from exc
        if not image_bytes:
            raise ValidationError("Invalid base64 image data", details="Decoded image is empty")

        logger.info("Image analysis request: %s, %d bytes", mime_type, len(image_bytes))
        try:
            score = await self.scorer.score_image(image_bytes, mime_type)
        except ScoringError as exc:
            raise ScoringError("Failed to analyze media", details=exc.message) from exc

        return image_verdict(score)


@lru_cache()
def get_media_pipeline() -> MediaPipeline:
    """FastAPI dependency: one pipeline per process, built from the settings singleton."""
    return MediaPipeline.from_settings(settings)
