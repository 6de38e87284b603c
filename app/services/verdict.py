"""
verdict.py — Turn raw Sightengine scores into the app-facing Verdict.

Video: Sightengine returns one `ai_generated` probability per sampled frame.
A frame scored exactly 0 means the model abstained on it (too dark, no
content), not that it is confidently authentic, so those frames are dropped
before averaging.

Image: one score, used as-is (0 included).

The fake threshold is strict: 0.5 itself is reported as authentic.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from app.models.analysis import Verdict

FAKE_THRESHOLD = 0.5
HIGH_CONFIDENCE = 0.8
MODERATE_CONFIDENCE = 0.6

VIDEO_ARTIFACT = "AI-generated video patterns detected"


@dataclass(frozen=True)
class ImageScore:
    ai_generated: float
    ai_class: str | None = None


def aggregate(scores: Iterable[float]) -> tuple[float, bool]:
    """Mean of the non-zero frame scores and whether it crosses the threshold."""
    kept = [s for s in scores if s != 0]
    confidence = sum(kept) / len(kept) if kept else 0.0
    return confidence, confidence > FAKE_THRESHOLD


def _pct(value: float) -> str:
    return f"{value * 100:.1f}"


def video_verdict(frame_scores: Iterable[float]) -> Verdict:
    confidence, is_fake = aggregate(frame_scores)
    if is_fake:
        reasoning = f"Video analysis detected this as likely AI-generated with {_pct(confidence)}% confidence."
    else:
        reasoning = f"Video analysis detected this as likely authentic with {_pct(1 - confidence)}% confidence."
    return Verdict(
        is_likely_ai_generated=is_fake,
        confidence_score=confidence,
        reasoning=reasoning,
        potential_artifacts=[VIDEO_ARTIFACT] if is_fake else [],
    )


def image_verdict(score: ImageScore) -> Verdict:
    confidence = score.ai_generated
    is_fake = confidence > FAKE_THRESHOLD

    artifacts: list[str] = []
    if score.ai_class:
        artifacts.append(f"AI class: {score.ai_class}")
    if is_fake and confidence > HIGH_CONFIDENCE:
        artifacts.append("High confidence AI generation detected")
    elif is_fake and confidence > MODERATE_CONFIDENCE:
        artifacts.append("Moderate AI generation indicators")

    if is_fake:
        reasoning = (
            "Sightengine AI detection model identified this as likely AI-generated "
            f"with {_pct(confidence)}% confidence. The image shows characteristics "
            "typical of synthetic media."
        )
    else:
        reasoning = (
            "Sightengine AI detection model identified this as likely authentic "
            f"with {_pct(1 - confidence)}% confidence. No significant AI generation "
            "indicators detected."
        )
    return Verdict(
        is_likely_ai_generated=is_fake,
        confidence_score=confidence,
        reasoning=reasoning,
        potential_artifacts=artifacts,
    )
