"""
Deepfake Detector API — Application entry point.

Bootstraps FastAPI, wires up middleware, registers route groups and the
shared error handler, and checks collaborator credentials once at startup.

Run locally:
    uvicorn app.main:app --reload --port 3002
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.ai.media_pipeline import get_media_pipeline
from app.core.config import settings
from app.core.errors import RelayError, relay_error_handler
from app.core.rate_limit import limiter
from app.routes.analyze import router as analyze_router
from app.routes.health import router as health_router
from app.routes.proxy import router as proxy_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: report missing credentials and make sure the staging directory exists.
    Shutdown: wait for abandoned Cloudinary uploads to be destroyed.

    Missing credentials don't stop the process (the health check and proxy
    still work); the analysis routes refuse with a configuration error
    before calling anything external.
    """
    logger.info("Starting Deepfake Detector API (env: %s)", settings.environment)
    if not settings.scoring_configured:
        logger.warning("SIGHTENGINE_API_USER / SIGHTENGINE_API_SECRET not set — analysis disabled")
    if not settings.storage_configured:
        logger.warning("CLOUDINARY_* credentials not set — video analysis disabled")
    Path(settings.staging_dir).mkdir(parents=True, exist_ok=True)
    yield
    logger.info("Shutting down Deepfake Detector API")
    await get_media_pipeline().remote_stage.drain()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="Deepfake Detector API",
    description=(
        "Relays images and videos to Sightengine's AI-generated-media model "
        "and returns one normalised verdict. Results are probabilistic."
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(RelayError, relay_error_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(analyze_router)
app.include_router(proxy_router)


@app.get("/", tags=["root"])
async def root():
    """API root — liveness plus the endpoint map the app reads on first launch."""
    return {
        "message": "Deepfake Detector API is running",
        "status": "healthy",
        "endpoints": {
            "analyze": "POST /analyze",
            "analyzeVideo": "POST /analyze-video",
            "analyzeVideoUrl": "POST /analyze-video-url",
            "proxy": "GET /proxy",
        },
    }
