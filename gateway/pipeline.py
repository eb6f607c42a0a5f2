from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from analysis.extraction import extract_json_object
from analysis.normalizer import MAX_MISPRONUNCIATIONS, normalize_analysis
from analysis.prompts import build_messages
from common.schemas import AnalysisResult, AnalyzeSpeechRequest
from gateway.media import MediaPayload, MediaValidator
from transcription.models import Transcript

logger = logging.getLogger(__name__)

Transcriber = Callable[[MediaPayload], Awaitable[Transcript]]
Completer = Callable[[list[dict[str, Any]]], Awaitable[str]]


class SpeechAnalyzer:
    """Runs one request: validate, transcribe (optional), analyze, repair, normalize.

    The upstream calls are injected so the pipeline never talks to the
    network on its own.
    """

    def __init__(
        self,
        validator: MediaValidator,
        complete: Completer,
        transcribe: Optional[Transcriber] = None,
        unclear_word_threshold: float = 0.6,
        max_unclear_words: int = MAX_MISPRONUNCIATIONS,
    ) -> None:
        self.validator = validator
        self.complete = complete
        self.transcribe = transcribe
        self.unclear_word_threshold = unclear_word_threshold
        self.max_unclear_words = max_unclear_words

    async def analyze(self, req: AnalyzeSpeechRequest) -> AnalysisResult:
        media = self.validator.validate(req.audio, req.mime_type, req.file_name)

        transcript = None
        unclear_words = None
        if self.transcribe is not None:
            transcript = await self.transcribe(media)
            unclear_words = transcript.unclear_words(self.unclear_word_threshold)
            logger.info(
                "Transcript ready: %d words, %d unclear",
                transcript.word_count, len(unclear_words),
            )

        messages = build_messages(media, transcript, unclear_words[: self.max_unclear_words] if unclear_words else None)
        logger.info("Sending %s to analysis for %s", "transcript" if transcript else "media", media.file_name)
        raw = await self.complete(messages)

        parsed = extract_json_object(raw)
        result = normalize_analysis(
            parsed,
            transcript=transcript,
            unclear_words=unclear_words,
            max_mispronunciations=self.max_unclear_words,
        )
        logger.info(
            "Analysis complete - overall score: %s, WPM: %s",
            result.overall_score, result.words_per_minute,
        )
        return result
