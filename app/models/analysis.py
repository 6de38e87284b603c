"""
analysis.py — Pydantic models for the analysis endpoints.

Field names are the wire contract the mobile app already speaks:
camelCase on the way in (`videoUrl`, `mimeType`), snake_case on the way out.

Request fields are optional on purpose: a missing value is answered with a
400 and a readable `error` message (the app shows it verbatim) instead of
FastAPI's generic 422 validation body.
"""

from pydantic import BaseModel, ConfigDict, Field


# ── Request models ─────────────────────────────────────────────────────────────

class VideoUrlRequest(BaseModel):
    """A video link: Instagram, Facebook / fb.watch, TikTok, or a direct file URL."""

    videoUrl: str | None = Field(default=None, description="Link to the video to analyse")


class ImageAnalysisRequest(BaseModel):
    """Base64-encoded image, optionally as a full data: URI."""

    base64: str | None = Field(default=None, description="Raw base64 or data:<mime>;base64,<data>")
    mimeType: str | None = Field(default=None, description="e.g. image/jpeg")


# ── Response models ────────────────────────────────────────────────────────────

class Verdict(BaseModel):
    """Normalised result returned by every analysis endpoint."""

    model_config = ConfigDict(frozen=True)

    is_likely_ai_generated: bool
    confidence_score: float          # 0.0 – 1.0
    reasoning: str
    potential_artifacts: list[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Uniform error body (see app.core.errors)."""

    error: str
    details: str | None = None
    suggestion: str | None = None
