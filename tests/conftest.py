"""
pytest configuration and shared fixtures for the Deepfake Detector API tests.

Key concern: tests must not touch Sightengine, Cloudinary, TikWM or any
social network, and must not need credentials. We achieve this by:
  1. Building MediaPipeline objects from fakes (resolver, downloader,
     scorer) plus the real StagingStore (in tmp_path) and the real
     RemoteObjectStage driven by a MagicMock in place of cloudinary.uploader.
  2. Overriding the get_media_pipeline dependency so routes use that pipeline.
  3. Resetting the in-memory rate-limit counters before every test.

Using the real staging and remote-stage classes lets the tests check the
cleanup invariant on disk and on the mock uploader.
"""

import os
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("ENVIRONMENT", "test")

from app.ai.media_pipeline import MediaPipeline, get_media_pipeline  # noqa: E402
from app.core.config import Settings  # noqa: E402
from app.services.remote_stage import RemoteObjectStage  # noqa: E402
from app.services.staging import StagingStore  # noqa: E402
from fakes import FakeDownloader, FakeResolver, FakeScorer  # noqa: E402


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture()
def test_settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        sightengine_api_user="test-user",
        sightengine_api_secret="test-secret",
        cloudinary_cloud_name="test-cloud",
        cloudinary_api_key="test-key",
        cloudinary_api_secret="test-cloud-secret",
        staging_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture()
def staging_dir(test_settings) -> Path:
    return Path(test_settings.staging_dir)


@pytest.fixture()
def mock_uploader():
    """Stands in for cloudinary.uploader: upload() and destroy() are plain sync calls."""
    uploader = MagicMock()
    uploader.upload.return_value = {
        "secure_url": "https://res.cloudinary.com/test-cloud/video/upload/deepfake-detector/clip.mp4",
        "public_id": "deepfake-detector/clip",
    }
    uploader.destroy.return_value = {"result": "ok"}
    return uploader


@pytest.fixture()
def pipeline(test_settings, staging_dir, mock_uploader) -> MediaPipeline:
    return MediaPipeline(
        resolver=FakeResolver(),
        downloader=FakeDownloader(),
        staging=StagingStore(staging_dir),
        remote_stage=RemoteObjectStage(test_settings, uploader=mock_uploader),
        scorer=FakeScorer(staging_dir=staging_dir),
    )


@pytest.fixture(autouse=True)
def reset_rate_limits():
    from app.core.rate_limit import limiter

    try:
        limiter._limiter.storage.reset()
    except Exception:
        pass  # Some storage backends don't support reset — safe to ignore.
    yield


@pytest.fixture()
async def client(pipeline):
    """
    HTTPX async test client wired to the FastAPI app, with the pipeline
    dependency pointed at the `pipeline` fixture. Tests reconfigure the
    pipeline by swapping its attributes (pipeline.scorer = FakeScorer(...)).
    """
    from app.main import app

    app.dependency_overrides[get_media_pipeline] = lambda: pipeline
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.pop(get_media_pipeline, None)
