"""
Shared pytest fixtures for all test modules.

IMPORTANT: TESTING must be set before the app is imported so the lifespan
never starts the slow-check worker loop.
"""

import io
import os

os.environ["TESTING"] = "true"

from unittest.mock import patch

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from tests.mocks.firebase_mock import MockFirestore
from tests.mocks.redis_mock import MockRedis

# App import happens AFTER os.environ["TESTING"] is set above.
from fixguard.main import app  # noqa: E402


# ---------------------------------------------------------------------------
# Core infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_firebase(monkeypatch):
    """Replace firebase.db with an in-memory MockFirestore."""
    from fixguard.integrations import firebase as fb

    mock_db = MockFirestore()
    monkeypatch.setattr(fb, "db", mock_db)
    return mock_db


@pytest.fixture
def mock_redis(monkeypatch):
    """Replace redis_client.client with an in-memory MockRedis."""
    from fixguard.integrations import redis_client as rc

    mock_rc = MockRedis()
    monkeypatch.setattr(rc, "client", mock_rc)
    return mock_rc


@pytest.fixture
def no_store(monkeypatch):
    """Simulate Firestore never having been initialized."""
    from fixguard.integrations import firebase as fb

    monkeypatch.setattr(fb, "db", None)


@pytest.fixture
def client(mock_firebase, mock_redis):
    """
    FastAPI TestClient with mocked Firebase and Redis.

    initialize() calls are patched to no-ops so they can't overwrite our mocks
    or attempt real network connections during the lifespan startup.
    """
    with (
        patch("fixguard.integrations.firebase.initialize"),
        patch("fixguard.integrations.redis_client.initialize"),
    ):
        with TestClient(app, raise_server_exceptions=False) as c:
            yield c


# ---------------------------------------------------------------------------
# Shared test-data helpers
# ---------------------------------------------------------------------------


def make_tiny_jpeg() -> bytes:
    """Create a minimal 10×10 uniform gray JPEG in memory."""
    buf = io.BytesIO()
    Image.new("RGB", (10, 10), color=(128, 128, 128)).save(buf, format="JPEG")
    return buf.getvalue()


def make_noise_image(width: int = 300, height: int = 200, seed: int = 7) -> Image.Image:
    """
    Camera-like random content: channels with different ranges so means, stdevs
    and min/max spreads all differ (nothing synthetic-looking).
    """
    rng = np.random.default_rng(seed)
    pixels = np.stack(
        [
            rng.integers(0, 256, (height, width)),
            rng.integers(0, 129, (height, width)),
            rng.integers(64, 256, (height, width)),
        ],
        axis=-1,
    ).astype(np.uint8)
    return Image.fromarray(pixels, "RGB")


def encode(img: Image.Image, fmt: str = "PNG", exif: Image.Exif | None = None, **kwargs) -> bytes:
    buf = io.BytesIO()
    if exif is not None:
        kwargs["exif"] = exif.tobytes()
    img.save(buf, format=fmt, **kwargs)
    return buf.getvalue()


def make_camera_exif(
    make: str = "Canon",
    model: str = "EOS R6",
    captured: str | None = "2024:05:01 10:15:00",
    modified: str | None = None,
    software: str | None = None,
) -> Image.Exif:
    """EXIF block with camera identity and timestamps (all in IFD0)."""
    exif = Image.Exif()
    if make:
        exif[0x010F] = make
    if model:
        exif[0x0110] = model
    if software:
        exif[0x0131] = software
    if modified:
        exif[0x0132] = modified  # DateTime
    if captured:
        exif[0x9003] = captured  # DateTimeOriginal
    return exif


def make_camera_jpeg(**exif_fields) -> bytes:
    """Noise JPEG carrying complete camera EXIF."""
    return encode(make_noise_image(), "JPEG", exif=make_camera_exif(**exif_fields), quality=95)


def make_quadrant_image(side: int = 256) -> Image.Image:
    """Four flat quadrants (black/white/white/black): robust to resizing and re-encoding."""
    half = side // 2
    img = Image.new("RGB", (side, side), (0, 0, 0))
    img.paste((255, 255, 255), (half, 0, side, half))
    img.paste((255, 255, 255), (0, half, half, side))
    return img
