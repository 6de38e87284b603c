"""
cancellation.py — Stop paying for work nobody will read.

A video analysis can spend a minute waiting on Sightengine. If the phone
drops off in the meantime, `run_until_disconnected` cancels the pipeline
task; the staging/remote-stage context managers inside it still run their
cleanup on the way out.
"""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from fastapi import Request

from app.core.errors import ClientDisconnected

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_until_disconnected(request: Request, work: Awaitable[T], poll_interval: float = 0.5) -> T:
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("Client disconnected from %s; cancelling analysis", request.url.path)
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                raise ClientDisconnected("Client disconnected")
    finally:
        if not task.done():
            task.cancel()
