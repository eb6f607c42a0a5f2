"""Transcript models produced by the transcription step."""

from __future__ import annotations

from dataclasses import dataclass, field


def format_timestamp(seconds: float) -> str:
    """Render an offset as ``m:ss``."""
    total = max(int(seconds), 0)
    return f"{total // 60}:{total % 60:02d}"


@dataclass
class TranscribedWord:
    word: str
    start_time: float
    end_time: float
    confidence: float = 1.0


@dataclass
class UnclearWord:
    word: str
    start_time: float
    confidence: float

    @property
    def timestamp(self) -> str:
        return format_timestamp(self.start_time)

    @property
    def confidence_pct(self) -> int:
        return round(self.confidence * 100)


@dataclass
class Transcript:
    text: str
    duration: float
    words: list[TranscribedWord] = field(default_factory=list)

    @property
    def word_count(self) -> int:
        if self.words:
            return len(self.words)
        return len(self.text.split())

    def unclear_words(self, threshold: float, limit: int | None = None) -> list[UnclearWord]:
        """Words whose confidence fell below ``threshold``, in spoken order."""
        unclear = [
            UnclearWord(word=w.word, start_time=w.start_time, confidence=w.confidence)
            for w in self.words
            if w.confidence < threshold
        ]
        return unclear[:limit] if limit is not None else unclear
