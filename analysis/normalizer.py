"""Bring a parsed model answer up to the full AnalysisResult schema.

The model's JSON is untrusted: any key may be missing or have the wrong type.
Gaps are filled with neutral defaults instead of failing the request, and
figures the transcription step measured (word count, duration) replace the
model's estimates.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Optional

from common.schemas import AnalysisResult, ProficiencyLevel
from transcription.models import Transcript, UnclearWord

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 5
MIN_SCORE = 1
MAX_SCORE = 10
MAX_MISPRONUNCIATIONS = 10

FEEDBACK_PLACEHOLDER = "No specific feedback was provided for this area."
DEFAULT_SUMMARY = "Analysis completed."

CATEGORY_METRICS: dict[str, tuple[str, ...]] = {
    "voiceModulation": ("voiceClarity", "tonalVariation", "paceAndPauses", "fillersAndVerbalHabits"),
    "thoughtStructure": ("purposeArticulation", "logicalFlow", "signposting", "closureStrength"),
    "vocabulary": ("sentenceEconomy", "specificity", "redundancyControl", "confidenceOfPhrasing", "grammar"),
}


# --- coercers: return the cleaned value, or None when it is unusable ---

def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return float(value)


def coerce_score(value: Any) -> Optional[float]:
    number = _as_number(value)
    if number is None:
        return None
    return min(max(number, MIN_SCORE), MAX_SCORE)


def coerce_count(value: Any) -> Optional[int]:
    number = _as_number(value)
    if number is None or number < 0:
        return None
    return round(number)


def coerce_seconds(value: Any) -> Optional[float]:
    number = _as_number(value)
    if number is None or number < 0:
        return None
    return number


def coerce_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def coerce_str_list(value: Any) -> Optional[list[str]]:
    if not isinstance(value, list):
        return None
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def coerce_level(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    wanted = value.strip().lower().replace(" ", "-")
    for level in ProficiencyLevel:
        if level.value.lower() == wanted:
            return level.value
    return None


def coerce_feedback_entries(value: Any) -> Optional[list[dict[str, str]]]:
    if not isinstance(value, list):
        return None
    entries = []
    for item in value:
        if not isinstance(item, dict) or not coerce_text(item.get("issue")):
            continue
        entries.append({
            "timeRange": coerce_text(item.get("timeRange")) or "",
            "issue": item["issue"].strip(),
            "suggestion": coerce_text(item.get("suggestion")) or "",
        })
    return entries


def coerce_mispronunciations(value: Any) -> Optional[list[dict[str, Any]]]:
    if not isinstance(value, list):
        return None
    entries = []
    for item in value:
        if not isinstance(item, dict) or not coerce_text(item.get("word")):
            continue
        entries.append({
            "word": item["word"].strip(),
            "timestamp": coerce_text(item.get("timestamp")) or "",
            "issue": coerce_text(item.get("issue")) or "Unclear pronunciation",
            "suggestion": coerce_text(item.get("suggestion")),
        })
    return entries


@dataclass(frozen=True)
class Leaf:
    default: Any
    coerce: Callable[[Any], Any]

    def resolve(self, value: Any) -> tuple[Any, bool]:
        coerced = self.coerce(value)
        if coerced is None:
            return copy.deepcopy(self.default), True
        return coerced, False


SCORE = Leaf(NEUTRAL_SCORE, coerce_score)
FEEDBACK = Leaf(FEEDBACK_PLACEHOLDER, coerce_text)
OPTIONAL_LIST = Leaf(None, coerce_str_list)

SCORE_ITEM_SCHEMA = {
    "score": SCORE,
    "feedback": FEEDBACK,
    "strengths": OPTIONAL_LIST,
    "developmentAreas": OPTIONAL_LIST,
}

RESULT_SCHEMA: dict[str, Any] = {
    **{
        category: {"score": SCORE, **{metric: SCORE_ITEM_SCHEMA for metric in metrics}}
        for category, metrics in CATEGORY_METRICS.items()
    },
    "proficiencyLevel": Leaf(ProficiencyLevel.intermediate.value, coerce_level),
    "summary": Leaf(DEFAULT_SUMMARY, coerce_text),
    "transcription": Leaf("", coerce_text),
    "totalWords": Leaf(0, coerce_count),
    "durationSeconds": Leaf(0.0, coerce_seconds),
    "timestampedFeedback": Leaf([], coerce_feedback_entries),
    "strengths": Leaf([], coerce_str_list),
    "developmentAreas": Leaf([], coerce_str_list),
    "drillSuggestion": Leaf("", coerce_text),
    "mispronunciations": Leaf([], coerce_mispronunciations),
}


def fill_defaults(
    data: dict[str, Any],
    schema: dict[str, Any],
    path: str = "",
    filled: Optional[list[str]] = None,
) -> dict[str, Any]:
    """Recursively make ``data`` conform to ``schema``, in place.

    Nested dicts in the schema describe required objects; ``Leaf`` entries
    describe values with a default. Paths that had to be defaulted are
    appended to ``filled``.
    """
    for key, spec in schema.items():
        key_path = f"{path}.{key}" if path else key
        if isinstance(spec, dict):
            current = data.get(key)
            if not isinstance(current, dict):
                if filled is not None:
                    filled.append(key_path)
                current = {}
            data[key] = fill_defaults(current, spec, key_path, filled)
        else:
            value, defaulted = spec.resolve(data.get(key))
            if defaulted and spec.default is not None and filled is not None:
                filled.append(key_path)
            data[key] = value
    return data


def words_per_minute(word_count: int, duration_seconds: float) -> int:
    if duration_seconds <= 0:
        return 0
    return round(word_count / duration_seconds * 60)


def mispronunciations_from(unclear_words: list[UnclearWord], limit: int = MAX_MISPRONUNCIATIONS) -> list[dict[str, Any]]:
    return [
        {
            "word": w.word,
            "timestamp": w.timestamp,
            "issue": f"Unclear pronunciation ({w.confidence_pct}% confidence)",
            "suggestion": None,
        }
        for w in unclear_words[:limit]
    ]


def normalize_analysis(
    data: dict[str, Any],
    transcript: Optional[Transcript] = None,
    unclear_words: Optional[list[UnclearWord]] = None,
    max_mispronunciations: int = MAX_MISPRONUNCIATIONS,
) -> AnalysisResult:
    model_wpm = coerce_count(data.get("wordsPerMinute"))

    filled: list[str] = []
    fill_defaults(data, RESULT_SCHEMA, filled=filled)
    if filled:
        logger.info("Filled %d missing analysis fields: %s", len(filled), ", ".join(filled[:10]))

    overall = coerce_score(data.get("overallScore"))
    if overall is None:
        group_scores = [data[category]["score"] for category in CATEGORY_METRICS]
        overall = round(sum(group_scores) / len(group_scores), 1)
    data["overallScore"] = overall

    if transcript is not None:
        # measured figures beat the model's estimates
        data["totalWords"] = transcript.word_count
        data["durationSeconds"] = round(transcript.duration, 2)
        data["fullTranscript"] = transcript.text or None
        data["wordsPerMinute"] = words_per_minute(transcript.word_count, transcript.duration)
    else:
        data["fullTranscript"] = coerce_text(data.get("fullTranscript"))
        if model_wpm is None:
            model_wpm = words_per_minute(data["totalWords"], data["durationSeconds"])
        data["wordsPerMinute"] = model_wpm

    if not data["mispronunciations"] and unclear_words:
        data["mispronunciations"] = mispronunciations_from(unclear_words, max_mispronunciations)

    return AnalysisResult.model_validate(data)
