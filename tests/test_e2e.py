"""End-to-end tests — require a running gateway with real provider keys, or are skipped."""

import base64
import os

import pytest

E2E = os.environ.get("RUN_E2E", "").lower() in ("1", "true", "yes")
pytestmark = pytest.mark.skipif(not E2E, reason="E2E tests disabled (set RUN_E2E=1)")


@pytest.mark.asyncio
async def test_analyze_sample_clip():
    import httpx

    url = os.environ.get("GATEWAY_URL", "http://localhost:8000")
    clip = os.environ.get("E2E_CLIP")
    if not clip:
        pytest.skip("set E2E_CLIP to a short .webm/.mp4/.wav speech recording")

    with open(clip, "rb") as f:
        audio = base64.b64encode(f.read()).decode()
    mime_type = os.environ.get("E2E_MIME_TYPE", "audio/webm")

    async with httpx.AsyncClient(timeout=300) as client:
        resp = await client.post(
            f"{url}/analyze-speech",
            json={"audio": audio, "fileName": os.path.basename(clip), "mimeType": mime_type},
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        for key in ("voiceModulation", "thoughtStructure", "vocabulary", "overallScore", "summary"):
            assert key in data


@pytest.mark.asyncio
async def test_rejects_quicktime():
    import httpx

    url = os.environ.get("GATEWAY_URL", "http://localhost:8000")
    async with httpx.AsyncClient(timeout=30) as client:
        resp = await client.post(
            f"{url}/analyze-speech",
            json={"audio": "AAAA", "fileName": "clip.mov", "mimeType": "video/quicktime"},
        )
        assert resp.status_code == 500
        assert "video/quicktime" in resp.json()["error"]
