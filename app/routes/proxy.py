"""
proxy.py — Pass-through fetch so the app can load pages and media that block CORS.

  GET /proxy?url=<target>

The upstream body is streamed back as-is with its Content-Type. Errors are
plain text (the app renders them inline):
  400  Error: The "url" query parameter is missing.
  <upstream status>  Error fetching the URL: <reason>
  500  Server error: Could not proxy the request. <message>
"""

import logging

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, StreamingResponse
from starlette.background import BackgroundTask

from app.core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["proxy"])

_USER_AGENT = "Deepfake-Detector-Mobile/1.0"


def get_proxy_transport() -> httpx.AsyncBaseTransport | None:
    """Transport for outbound proxy calls; None means httpx's default network transport."""
    return None


async def _close(response: httpx.Response, client: httpx.AsyncClient) -> None:
    await response.aclose()
    await client.aclose()


@router.get("/proxy")
async def proxy(
    url: str | None = None,
    transport: httpx.AsyncBaseTransport | None = Depends(get_proxy_transport),
):
    if not url:
        return PlainTextResponse('Error: The "url" query parameter is missing.', status_code=400)

    logger.info("Proxying request for URL: %s", url)

    client = httpx.AsyncClient(
        timeout=settings.proxy_timeout_seconds,
        follow_redirects=True,
        transport=transport,
    )
    try:
        upstream = await client.send(
            client.build_request("GET", url, headers={"User-Agent": _USER_AGENT}),
            stream=True,
        )
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        await client.aclose()
        logger.error("Proxy server error: %r", exc)
        return PlainTextResponse(
            f"Server error: Could not proxy the request. {exc}", status_code=500
        )

    if upstream.is_error:
        logger.error("Fetch failed: %s %s", upstream.status_code, upstream.reason_phrase)
        await _close(upstream, client)
        return PlainTextResponse(
            f"Error fetching the URL: {upstream.reason_phrase}", status_code=upstream.status_code
        )

    return StreamingResponse(
        upstream.aiter_bytes(),
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type"),
        background=BackgroundTask(_close, upstream, client),
    )
