"""
errors.py — Error taxonomy shared by the pipeline and the HTTP layer.

Every failure the relay knows about is a RelayError subclass carrying the
HTTP status it maps to. Routes never build error responses by hand: they let
the exception propagate and `relay_error_handler` (registered in main.py)
renders the uniform body

    {"error": "...", "details": "...", "suggestion": "..."}

where `details` and `suggestion` are only present when set.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class RelayError(Exception):
    """Base class for failures that end a request with a JSON error body."""

    status_code: int = 500

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> dict[str, str]:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(RelayError):
    """Required input missing or malformed."""

    status_code = 400


class ResolutionError(RelayError):
    """A social-media URL could not be turned into a direct video URL."""

    status_code = 400
    suggestion = 'Use the "Upload Video" option in the app instead'

    def to_payload(self) -> dict[str, str]:
        payload = super().to_payload()
        payload["suggestion"] = self.suggestion
        return payload


class TransferError(RelayError):
    """Moving bytes failed: downloading the source video or staging it remotely."""

    status_code = 500


class StageUploadError(TransferError):
    """Upload to the remote object stage failed."""


class ScoringError(RelayError):
    """The detection service reported a failure or returned an unusable body."""

    status_code = 500


class ConfigurationError(RelayError):
    """Credentials for a collaborator are missing."""

    status_code = 500


class ClientDisconnected(RelayError):
    """The client went away; in-flight work was cancelled. Nobody reads this body."""

    status_code = 499


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Render any RelayError as the uniform JSON error body."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.details)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())
