from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- request ---

class AnalyzeSpeechRequest(CamelModel):
    # left untyped so the media validator owns the type checks
    audio: Any = None
    file_name: Any = None
    mime_type: Any = None


# --- analysis result ---

class ProficiencyLevel(str, Enum):
    beginner = "Beginner"
    elementary = "Elementary"
    intermediate = "Intermediate"
    upper_intermediate = "Upper-Intermediate"
    advanced = "Advanced"
    mastery = "Mastery"


class ScoreItem(CamelModel):
    score: float
    feedback: str
    strengths: Optional[list[str]] = None
    development_areas: Optional[list[str]] = None


class VoiceModulation(CamelModel):
    score: float
    voice_clarity: ScoreItem
    tonal_variation: ScoreItem
    pace_and_pauses: ScoreItem
    fillers_and_verbal_habits: ScoreItem


class ThoughtStructure(CamelModel):
    score: float
    purpose_articulation: ScoreItem
    logical_flow: ScoreItem
    signposting: ScoreItem
    closure_strength: ScoreItem


class Vocabulary(CamelModel):
    score: float
    sentence_economy: ScoreItem
    specificity: ScoreItem
    redundancy_control: ScoreItem
    confidence_of_phrasing: ScoreItem
    grammar: ScoreItem


class TimestampedFeedback(CamelModel):
    time_range: str
    issue: str
    suggestion: str = ""


class Mispronunciation(CamelModel):
    word: str
    timestamp: str
    issue: str
    suggestion: Optional[str] = None


class AnalysisResult(CamelModel):
    voice_modulation: VoiceModulation
    thought_structure: ThoughtStructure
    vocabulary: Vocabulary
    overall_score: float
    proficiency_level: ProficiencyLevel = ProficiencyLevel.intermediate
    summary: str
    transcription: str = ""
    full_transcript: Optional[str] = None
    total_words: int = 0
    duration_seconds: float = 0.0
    words_per_minute: int = 0
    timestamped_feedback: list[TimestampedFeedback] = []
    strengths: list[str] = []
    development_areas: list[str] = []
    drill_suggestion: str = ""
    mispronunciations: list[Mispronunciation] = []


# --- history ---

class AnalysisRecord(BaseModel):
    id: str
    user_id: str
    overall_score: float
    full_transcript: Optional[str] = None
    mispronunciations: list[dict[str, Any]] = []
    categories: dict[str, Any]
    created_at: Optional[datetime] = None


class ErrorResponse(BaseModel):
    error: str
