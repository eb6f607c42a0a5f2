import json

import pytest

from common.config import MediaSettings
from common.errors import (
    MalformedEncoding,
    PayloadTooLarge,
    RateLimited,
    ServiceUnavailable,
    UnparsableAnalysis,
    UnsupportedMediaType,
)
from common.schemas import AnalyzeSpeechRequest
from gateway.media import MediaValidator
from gateway.pipeline import SpeechAnalyzer
from transcription.models import TranscribedWord, Transcript


class FakeUpstream:
    """Records calls and replays a canned answer or error."""

    def __init__(self, answer=None, error=None):
        self.answer = answer
        self.error = error
        self.calls = []

    async def __call__(self, arg):
        self.calls.append(arg)
        if self.error is not None:
            raise self.error
        return self.answer


def _request(**overrides):
    body = {"audio": "AAAA", "fileName": "talk.webm", "mimeType": "audio/webm"}
    body.update(overrides)
    return AnalyzeSpeechRequest(**body)


def _transcript(n_words=150, duration=60.0):
    words = [
        TranscribedWord(word=f"w{i}", start_time=i * 0.4, end_time=i * 0.4 + 0.3, confidence=0.3 if i % 50 == 0 else 0.95)
        for i in range(n_words)
    ]
    return Transcript(text=" ".join(w.word for w in words), duration=duration, words=words)


def _analyzer(complete, transcribe=None, max_mb=100.0):
    return SpeechAnalyzer(
        validator=MediaValidator(MediaSettings(max_file_size_mb=max_mb)),
        complete=complete,
        transcribe=transcribe,
    )


class TestValidationShortCircuits:
    @pytest.mark.asyncio
    async def test_unsupported_type_makes_no_upstream_call(self):
        complete, transcribe = FakeUpstream("{}"), FakeUpstream(_transcript())
        with pytest.raises(UnsupportedMediaType):
            await _analyzer(complete, transcribe).analyze(_request(mimeType="video/quicktime"))
        assert complete.calls == [] and transcribe.calls == []

    @pytest.mark.asyncio
    async def test_oversized_payload_makes_no_upstream_call(self):
        complete, transcribe = FakeUpstream("{}"), FakeUpstream(_transcript())
        analyzer = _analyzer(complete, transcribe, max_mb=0.001)
        with pytest.raises(PayloadTooLarge):
            await analyzer.analyze(_request(audio="A" * 4096))
        assert complete.calls == [] and transcribe.calls == []

    @pytest.mark.asyncio
    async def test_undecodable_payload_makes_no_upstream_call(self):
        complete, transcribe = FakeUpstream("{}"), FakeUpstream(_transcript())
        with pytest.raises(MalformedEncoding):
            await _analyzer(complete, transcribe).analyze(_request(audio="abcde", mimeType="audio/wav"))
        assert complete.calls == [] and transcribe.calls == []


class TestAnalyze:
    @pytest.mark.asyncio
    async def test_fenced_answer_missing_group(self):
        answer = '```json\n{"voiceModulation": {"score": 7, "voiceClarity": {"score": 8, "feedback": "Clear."}}, "vocabulary": {"score": 6}}\n```'
        result = await _analyzer(FakeUpstream(answer)).analyze(_request())
        assert result.voice_modulation.score == 7
        assert result.voice_modulation.voice_clarity.feedback == "Clear."
        assert result.thought_structure.score == 5
        assert result.thought_structure.logical_flow.score == 5
        assert result.vocabulary.score == 6

    @pytest.mark.asyncio
    async def test_multimodal_mode_sends_media_inline(self):
        complete = FakeUpstream('{"overallScore": 8}')
        await _analyzer(complete).analyze(_request())
        user_content = complete.calls[0][1]["content"]
        assert user_content[1]["image_url"]["url"] == "data:audio/webm;base64,AAAA"

    @pytest.mark.asyncio
    async def test_transcript_backfills_wpm(self):
        complete = FakeUpstream(json.dumps({"overallScore": 7, "totalWords": 120}))
        transcribe = FakeUpstream(_transcript(150, 60.0))
        result = await _analyzer(complete, transcribe).analyze(_request())

        assert len(transcribe.calls) == 1
        assert transcribe.calls[0].mime_type == "audio/webm"
        assert result.words_per_minute == 150
        assert result.total_words == 150
        assert result.full_transcript.startswith("w0 w1")
        # words 0, 50 and 100 were low confidence
        assert [m.word for m in result.mispronunciations] == ["w0", "w50", "w100"]
        assert "w50" in complete.calls[0][1]["content"]

    @pytest.mark.asyncio
    async def test_transcription_failure_skips_analysis(self):
        complete = FakeUpstream("{}")
        transcribe = FakeUpstream(error=RateLimited("transcription", 429, "slow down"))
        with pytest.raises(RateLimited):
            await _analyzer(complete, transcribe).analyze(_request())
        assert complete.calls == []

    @pytest.mark.asyncio
    async def test_analysis_unavailable(self):
        complete = FakeUpstream(error=ServiceUnavailable("analysis", 503, "Temporarily unavailable"))
        with pytest.raises(ServiceUnavailable):
            await _analyzer(complete).analyze(_request())

    @pytest.mark.asyncio
    async def test_unparsable_answer(self):
        with pytest.raises(UnparsableAnalysis):
            await _analyzer(FakeUpstream("Sorry, I can't help with that.")).analyze(_request())
