import base64

import httpx
import pytest

from common.config import ASRSettings
from common.errors import ConfigurationError, RateLimited, ServiceUnavailable, UpstreamError
from gateway.media import MediaValidator
from transcription.client import parse_transcription, transcribe_media
from transcription.models import TranscribedWord, Transcript

DEEPGRAM_RESPONSE = {
    "metadata": {"duration": 4.2},
    "results": {
        "channels": [
            {
                "alternatives": [
                    {
                        "transcript": "hello everyone today",
                        "words": [
                            {"word": "hello", "punctuated_word": "Hello", "start": 0.1, "end": 0.5, "confidence": 0.98},
                            {"word": "everyone", "start": 0.6, "end": 1.1, "confidence": 0.41},
                            {"word": "today", "start": 1.2, "end": 1.6, "confidence": 0.9},
                        ],
                    }
                ]
            }
        ]
    },
}


@pytest.fixture
def media():
    return MediaValidator().validate(base64.b64encode(b"fake-audio").decode(), "audio/webm", "talk.webm")


@pytest.fixture
def settings():
    return ASRSettings(api_key="test-key", api_url="https://asr.test/v1/listen")


class TestTranscriptModels:
    def test_word_count_prefers_words(self):
        t = Transcript(text="a b", duration=1.0, words=[TranscribedWord("a", 0, 0.1), TranscribedWord("b", 0.2, 0.3), TranscribedWord("c", 0.4, 0.5)])
        assert t.word_count == 3

    def test_word_count_falls_back_to_text(self):
        assert Transcript(text="one two three four", duration=2.0).word_count == 4

    def test_unclear_words(self):
        t = parse_transcription(DEEPGRAM_RESPONSE)
        unclear = t.unclear_words(0.6)
        assert [w.word for w in unclear] == ["everyone"]
        assert unclear[0].timestamp == "0:00"
        assert unclear[0].confidence_pct == 41


class TestParseTranscription:
    def test_parses_deepgram_payload(self):
        t = parse_transcription(DEEPGRAM_RESPONSE)
        assert t.text == "hello everyone today"
        assert t.duration == 4.2
        assert t.words[0].word == "Hello"
        assert t.words[1].word == "everyone"

    def test_duration_falls_back_to_last_word(self):
        data = {"results": DEEPGRAM_RESPONSE["results"]}
        assert parse_transcription(data).duration == 1.6

    def test_missing_results(self):
        with pytest.raises(UpstreamError):
            parse_transcription({"metadata": {}})


class TestTranscribeMedia:
    @pytest.mark.asyncio
    async def test_posts_decoded_bytes(self, media, settings):
        seen = {}

        def handler(request: httpx.Request):
            seen["auth"] = request.headers["Authorization"]
            seen["content_type"] = request.headers["Content-Type"]
            seen["body"] = request.content
            seen["model"] = request.url.params["model"]
            return httpx.Response(200, json=DEEPGRAM_RESPONSE)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            transcript = await transcribe_media(media, settings, client=client)

        assert seen == {
            "auth": "Token test-key",
            "content_type": "audio/webm",
            "body": b"fake-audio",
            "model": "nova-2",
        }
        assert transcript.word_count == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,body,error", [
        (429, "slow down", RateLimited),
        (503, "busy", ServiceUnavailable),
        (500, "Temporarily unavailable", ServiceUnavailable),
        (400, "bad audio", UpstreamError),
    ])
    async def test_classifies_failures(self, media, settings, status, body, error):
        transport = httpx.MockTransport(lambda request: httpx.Response(status, text=body))
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(error) as exc_info:
                await transcribe_media(media, settings, client=client)
        assert exc_info.value.status_code == status
        assert exc_info.value.body == body
        assert exc_info.value.service == "transcription"

    @pytest.mark.asyncio
    async def test_requires_api_key(self, media):
        with pytest.raises(ConfigurationError):
            await transcribe_media(media, ASRSettings(api_key=""))
