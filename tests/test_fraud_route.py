"""
Tests for the /fraud/* routes.

Detectors run for real on in-memory uploads; Firebase and Redis are mocked by
the `client` fixture.
"""

from unittest.mock import AsyncMock, patch

from fixguard.config import settings
from tests.conftest import encode, make_camera_jpeg, make_noise_image


def _upload(content: bytes, name: str = "fix.jpg", mime: str = "image/jpeg"):
    return {"file": (name, content, mime)}


# ---------------------------------------------------------------------------
# POST /fraud/check
# ---------------------------------------------------------------------------


def test_check_clean_photo(client):
    resp = client.post("/fraud/check", files=_upload(make_camera_jpeg()))
    assert resp.status_code == 200
    body = resp.json()
    assert body["passed"] is True
    assert set(body["scores"]) == {"exif", "duplicate", "gps", "visual", "overall"}
    assert body["metadata"]["fingerprint"]


def test_check_with_expected_gps(client):
    resp = client.post(
        "/fraud/check",
        files=_upload(make_camera_jpeg()),
        data={"latitude": "48.85", "longitude": "2.35", "submission_id": "sub-1"},
    )
    assert resp.status_code == 200
    # photo carries no GPS → not evaluable
    assert "gps_unverified" in resp.json()["flags"]


def test_check_requires_both_coordinates(client):
    resp = client.post("/fraud/check", files=_upload(make_camera_jpeg()), data={"latitude": "48.85"})
    assert resp.status_code == 400


def test_check_rejects_out_of_range_coordinates(client):
    resp = client.post(
        "/fraud/check", files=_upload(make_camera_jpeg()), data={"latitude": "123", "longitude": "2"}
    )
    assert resp.status_code == 400


def test_check_rejects_unsupported_extension(client):
    resp = client.post("/fraud/check", files=_upload(b"MZ...", name="payload.exe", mime="application/octet-stream"))
    assert resp.status_code == 415


def test_check_rejects_disguised_file(client):
    resp = client.post("/fraud/check", files=_upload(b"not really a jpeg"))
    assert resp.status_code == 400


def test_check_rejects_empty_upload(client):
    resp = client.post("/fraud/check", files=_upload(b""))
    assert resp.status_code == 400


# ---------------------------------------------------------------------------
# POST /fraud/submissions
# ---------------------------------------------------------------------------


def test_submission_auto_approves_confident_clean_photo(client, mock_firebase):
    with patch("fixguard.services.sampling_service._system_random") as rnd:
        rnd.random.return_value = 0.99
        resp = client.post(
            "/fraud/submissions",
            files=_upload(make_camera_jpeg()),
            data={"ai_confidence": "9", "reward_amount": "2000", "submission_id": "sub-42"},
        )
    assert resp.status_code == 200
    body = resp.json()
    assert body["auto_approve"] is True
    assert body["sampling"]["risk_level"] == "low"
    assert "sub-42:submitted_fix" in mock_firebase.docs(settings.image_hashes_collection)


def test_submission_low_confidence_is_queued(client, mock_firebase):
    resp = client.post(
        "/fraud/submissions",
        files=_upload(encode(make_noise_image(), "PNG"), name="fix.png", mime="image/png"),
        data={
            "ai_confidence": "4",
            "reward_amount": "2000",
            "submission_id": "sub-43",
            "image_reference": "https://cdn.example.com/sub-43.png",
            "image_role": "after",
        },
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["auto_approve"] is False
    assert body["requires_owner_review"] is True
    assert body["slow_check_scheduled"] is True


def test_submission_rejects_negative_reward(client):
    resp = client.post(
        "/fraud/submissions",
        files=_upload(make_camera_jpeg()),
        data={"ai_confidence": "9", "reward_amount": "-1"},
    )
    assert resp.status_code == 400


def test_submission_rejects_unknown_role(client):
    resp = client.post(
        "/fraud/submissions",
        files=_upload(make_camera_jpeg()),
        data={"ai_confidence": "9", "reward_amount": "1", "image_role": "selfie"},
    )
    assert resp.status_code == 422


# ---------------------------------------------------------------------------
# POST /fraud/queue
# ---------------------------------------------------------------------------


def test_queue_endpoint_inserts_job(client, mock_firebase):
    resp = client.post("/fraud/queue", json={
        "submission_id": "sub-9",
        "image_reference": "https://cdn.example.com/9.jpg",
        "image_role": "before",
    })
    assert resp.status_code == 200
    assert resp.json() == {"queued": True}
    jobs = list(mock_firebase.docs(settings.fraud_queue_collection).values())
    assert jobs[0]["submission_id"] == "sub-9"


def test_queue_endpoint_reports_failure(client):
    with patch("fixguard.services.slow_check_queue.insert_slow_check_job", side_effect=RuntimeError("down")):
        resp = client.post("/fraud/queue", json={"submission_id": "s", "image_reference": "r"})
    assert resp.status_code == 200
    assert resp.json() == {"queued": False}


# ---------------------------------------------------------------------------
# POST /fraud/sampling*
# ---------------------------------------------------------------------------


def test_sampling_low_confidence_is_critical(client):
    resp = client.post("/fraud/sampling", json={"confidence": 5, "reward_amount": 10000})
    assert resp.status_code == 200
    body = resp.json()
    assert body["risk_level"] == "critical"
    assert body["should_sample"] is True
    assert body["sampling_rate"] == 1.0


def test_sampling_rejects_negative_reward(client):
    resp = client.post("/fraud/sampling", json={"confidence": 9, "reward_amount": -5})
    assert resp.status_code == 422


def test_expected_samples(client):
    resp = client.post("/fraud/sampling/expected", json=[
        {"confidence": 8, "reward_amount": 5000},
        {"confidence": 8, "reward_amount": 15000},
        {"confidence": 8, "reward_amount": 60000},
    ])
    assert resp.status_code == 200
    assert abs(resp.json()["expected_samples"] - 0.85) < 1e-9


def test_check_timeout_is_reported(client):
    from fixguard.detection.pipeline import timeout_result

    with patch(
        "fixguard.api.fraud.run_fast_fraud_checks_with_timeout",
        new_callable=AsyncMock,
        return_value=timeout_result(),
    ):
        resp = client.post("/fraud/check", files=_upload(make_camera_jpeg()))
    assert resp.json()["flags"] == ["check_timeout"]
    assert resp.json()["requires_manual_review"] is True
