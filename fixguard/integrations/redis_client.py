"""
Optional Upstash Redis client, used only for the slow-check enqueue dedupe lock.

`client` stays None when credentials are absent; callers then skip the lock
and insert every job.
"""

import logging
import os

from upstash_redis import Redis

logger = logging.getLogger(__name__)

client = None  # Redis | None


def initialize() -> None:
    global client

    url = os.getenv("UPSTASH_REDIS_HOST")
    token = os.getenv("UPSTASH_REDIS_PASSWORD")
    if not (url and token):
        logger.warning("[STARTUP] Redis credentials not found; slow-check enqueue dedupe disabled.")
        return

    try:
        client = Redis(url=url, token=token)
        logger.info("[STARTUP] Upstash Redis ready (enqueue dedupe)")
    except Exception as e:
        logger.error(f"[STARTUP] Failed to initialize Upstash Redis: {e}")
        client = None
