"""
Shared aiohttp ClientSession for the slow-check worker's image downloads.

    async with http_client.request_session() as sess:
        async with sess.get(url) as response:
            ...

Yields the lifespan-managed session when open, otherwise a temporary one
that is closed on exit (tests, one-off drains).
"""

import logging
from contextlib import asynccontextmanager

import aiohttp

from fixguard.config import settings

logger = logging.getLogger(__name__)

session: aiohttp.ClientSession | None = None


def _new_session() -> aiohttp.ClientSession:
    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=settings.slow_check_download_timeout_sec)
    )


async def initialize() -> None:
    global session
    session = _new_session()
    logger.info("[STARTUP] Shared HTTP session ready")


async def close() -> None:
    global session
    if session and not session.closed:
        await session.close()
        logger.info("[SHUTDOWN] Shared HTTP session closed")
    session = None


@asynccontextmanager
async def request_session():
    if session and not session.closed:
        yield session
        return
    tmp = _new_session()
    try:
        yield tmp
    finally:
        await tmp.close()
