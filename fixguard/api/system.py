"""
System / health routes.
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from fixguard.integrations import firebase as firebase_module
from fixguard.integrations import redis_client as redis_module

router = APIRouter(tags=["System"])


@router.get("/health")
async def health():
    return {
        "status": "healthy",
        "store": "up" if firebase_module.db else "unavailable",
        "dedupe_lock": "up" if redis_module.client else "disabled",
    }


@router.get("/robots.txt", response_class=PlainTextResponse)
def robots():
    return "User-agent: *\nDisallow: /"
