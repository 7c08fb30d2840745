"""
Firestore client for fingerprint rows, slow-check jobs and fraud flags.

`db` stays None until `initialize()` runs in the app lifespan. Store modules
read `firebase.db` at call time, so tests can swap in a mock client.
"""

import json
import logging
import os

import firebase_admin
from firebase_admin import credentials, firestore

logger = logging.getLogger(__name__)

db = None  # firestore.Client | None


def _credentials():
    """Service-account JSON from FIREBASE_SERVICE_ACCOUNT, else application default."""
    raw = os.getenv("FIREBASE_SERVICE_ACCOUNT")
    if not raw:
        return None
    try:
        return credentials.Certificate(json.loads(raw))
    except (ValueError, TypeError) as e:
        logger.error(f"[STARTUP] FIREBASE_SERVICE_ACCOUNT is not usable, falling back to default credentials: {e}")
        return None


def initialize() -> None:
    global db

    if not firebase_admin._apps:
        cred = _credentials()
        if cred:
            firebase_admin.initialize_app(cred)
        else:
            firebase_admin.initialize_app()

    db = firestore.client()
    logger.info("[STARTUP] Firestore client ready (fraud store)")
