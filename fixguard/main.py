"""
FastAPI entry point: `uvicorn fixguard.main:app`.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from fastapi import FastAPI  # noqa: E402

from fixguard.api import fraud, system  # noqa: E402
from fixguard.config import settings  # noqa: E402
from fixguard.integrations import firebase, http_client, redis_client  # noqa: E402
from fixguard.worker.slow_checks import run_worker_loop  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    try:
        firebase.initialize()
    except Exception as e:
        # The fast path degrades without a store; duplicate checks fail open.
        logger.error(f"[STARTUP] Firestore unavailable: {e}")
    redis_client.initialize()
    await http_client.initialize()

    worker_task = None
    if settings.slow_check_worker_enabled and not os.getenv("TESTING"):
        worker_task = asyncio.create_task(run_worker_loop())
        logger.info("[STARTUP] Slow-check worker loop started")

    yield

    if worker_task:
        worker_task.cancel()
        try:
            await worker_task
        except asyncio.CancelledError:
            pass
        logger.info("[SHUTDOWN] Slow-check worker loop stopped")
    await http_client.close()


app = FastAPI(title="FixGuard Fraud Scoring API", lifespan=lifespan)

app.include_router(system.router)
app.include_router(fraud.router)
