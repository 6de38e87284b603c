"""
analyze.py — The three analysis endpoints the mobile app calls.

Routes:
  POST /analyze            — JSON {base64, mimeType}; single image → Sightengine check.json
  POST /analyze-video      — multipart field `video`; uploaded clip → Cloudinary → check-sync
  POST /analyze-video-url  — JSON {videoUrl}; Instagram / Facebook / TikTok / direct link
                             → resolve → download → Cloudinary → check-sync

All three answer with the same Verdict body:

  {"is_likely_ai_generated": bool, "confidence_score": float,
   "reasoning": str, "potential_artifacts": [str, ...]}

Errors are RelayError subclasses rendered by app.core.errors.relay_error_handler:
400 for missing input or an unresolvable social link (with a `suggestion`),
500 for download / upload / scoring failures (with `details`).

The video routes run the pipeline through run_until_disconnected, so a
client that hangs up mid-analysis stops the Sightengine wait and still gets
its temporary files and Cloudinary asset cleaned up.

No authentication: public endpoints, rate limited per client IP.
"""

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, File, Request, UploadFile

from app.ai.media_pipeline import MediaPipeline, get_media_pipeline
from app.core.cancellation import run_until_disconnected
from app.core.config import settings
from app.core.errors import ValidationError
from app.core.rate_limit import limiter
from app.models.analysis import ErrorResponse, ImageAnalysisRequest, Verdict, VideoUrlRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])

_ERRORS = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
_UPLOAD_CHUNK = 1024 * 1024


async def _read_upload(upload: UploadFile) -> AsyncIterator[bytes]:
    while True:
        chunk = await upload.read(_UPLOAD_CHUNK)
        if not chunk:
            break
        yield chunk


@router.post("/analyze", response_model=Verdict, responses=_ERRORS)
@limiter.limit(settings.rate_limit_analyze)
async def analyze_image(
    request: Request,
    payload: ImageAnalysisRequest,
    pipeline: MediaPipeline = Depends(get_media_pipeline),
):
    """Score a base64 image (raw or data: URI) for AI generation."""
    return await pipeline.analyze_image(payload.base64, payload.mimeType)


@router.post("/analyze-video", response_model=Verdict, responses=_ERRORS)
@limiter.limit(settings.rate_limit_video)
async def analyze_video(
    request: Request,
    video: UploadFile | None = File(default=None),
    pipeline: MediaPipeline = Depends(get_media_pipeline),
):
    """Score an uploaded video file. Can take up to a minute."""
    if video is None:
        raise ValidationError("Missing video file")
    logger.info("Video upload received: %s (%s bytes)", video.filename, video.size)
    return await run_until_disconnected(
        request, pipeline.analyze_video_file(_read_upload(video), video.filename)
    )


@router.post("/analyze-video-url", response_model=Verdict, responses=_ERRORS)
@limiter.limit(settings.rate_limit_video)
async def analyze_video_url(
    request: Request,
    payload: VideoUrlRequest,
    pipeline: MediaPipeline = Depends(get_media_pipeline),
):
    """Resolve a social-media or direct video link and score the video."""
    return await run_until_disconnected(request, pipeline.analyze_video_url(payload.videoUrl))
