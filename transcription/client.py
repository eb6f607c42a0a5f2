from __future__ import annotations

import logging

import httpx

from common.config import ASRSettings
from common.errors import ConfigurationError, UpstreamError, classify_upstream_error
from gateway.media import MediaPayload
from transcription.models import TranscribedWord, Transcript

logger = logging.getLogger(__name__)


async def transcribe_media(
    media: MediaPayload,
    settings: ASRSettings | None = None,
    client: httpx.AsyncClient | None = None,
) -> Transcript:
    """Send the decoded media to the Deepgram prerecorded API and return the transcript."""
    settings = settings or ASRSettings()
    if not settings.api_key:
        raise ConfigurationError("ASR_API_KEY not configured")

    params = {
        "model": settings.model_name,
        "language": settings.language,
        "punctuate": "true",
        "smart_format": "true",
    }
    headers = {
        "Authorization": f"Token {settings.api_key}",
        "Content-Type": media.mime_type,
    }

    logger.info("Sending %.2f MB to transcription", media.size_mb)
    if client is None:
        async with httpx.AsyncClient(timeout=settings.timeout_s) as owned:
            resp = await owned.post(settings.api_url, params=params, headers=headers, content=media.decode())
    else:
        resp = await client.post(settings.api_url, params=params, headers=headers, content=media.decode())

    if resp.status_code != 200:
        logger.error("Transcription error: %d %s", resp.status_code, resp.text[:500])
        raise classify_upstream_error("transcription", resp.status_code, resp.text)

    try:
        data = resp.json()
    except ValueError:
        raise UpstreamError("transcription", resp.status_code, resp.text[:500], message="Transcription returned an invalid response.")
    return parse_transcription(data)


def parse_transcription(data: dict) -> Transcript:
    try:
        alternative = data["results"]["channels"][0]["alternatives"][0]
    except (KeyError, IndexError, TypeError):
        raise UpstreamError("transcription", 200, str(data)[:500], message="Transcription returned no results.")

    words = [
        TranscribedWord(
            word=w.get("punctuated_word") or w.get("word", ""),
            start_time=float(w.get("start", 0.0)),
            end_time=float(w.get("end", 0.0)),
            confidence=float(w.get("confidence", 1.0)),
        )
        for w in alternative.get("words", [])
    ]
    duration = float((data.get("metadata") or {}).get("duration") or 0.0)
    if not duration and words:
        duration = words[-1].end_time

    transcript = Transcript(text=alternative.get("transcript", "").strip(), duration=duration, words=words)
    logger.info("Transcribed %d words over %.1fs", transcript.word_count, transcript.duration)
    return transcript
