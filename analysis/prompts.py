from __future__ import annotations

from typing import Any, Optional

from gateway.media import MediaPayload
from transcription.models import Transcript, UnclearWord

SYSTEM_PROMPT = """\
You are an expert public speaking coach. Evaluate the speaker's performance
from the recording or transcript you are given.

Base ALL feedback on what the speaker actually said and how they said it:
pace, clarity, filler words, hesitations and the structure of the message.

You MUST respond with a single valid JSON object matching this schema:
{
  "transcription": "string — brief summary or key quotes from what was said",
  "wordsPerMinute": integer,
  "totalWords": integer,
  "durationSeconds": number,
  "proficiencyLevel": "Beginner | Elementary | Intermediate | Upper-Intermediate | Advanced | Mastery",
  "voiceModulation": {
    "score": number 1-10,
    "voiceClarity": {"score": number 1-10, "feedback": "string"},
    "tonalVariation": {"score": number 1-10, "feedback": "string"},
    "paceAndPauses": {"score": number 1-10, "feedback": "string"},
    "fillersAndVerbalHabits": {"score": number 1-10, "feedback": "string — mention the actual fillers"}
  },
  "thoughtStructure": {
    "score": number 1-10,
    "purposeArticulation": {"score": number 1-10, "feedback": "string"},
    "logicalFlow": {"score": number 1-10, "feedback": "string"},
    "signposting": {"score": number 1-10, "feedback": "string"},
    "closureStrength": {"score": number 1-10, "feedback": "string"}
  },
  "vocabulary": {
    "score": number 1-10,
    "sentenceEconomy": {"score": number 1-10, "feedback": "string"},
    "specificity": {"score": number 1-10, "feedback": "string"},
    "redundancyControl": {"score": number 1-10, "feedback": "string"},
    "confidenceOfPhrasing": {"score": number 1-10, "feedback": "string"},
    "grammar": {"score": number 1-10, "feedback": "string"}
  },
  "overallScore": number 1-10,
  "summary": "string — 2-3 sentence overall assessment",
  "timestampedFeedback": [
    {"timeRange": "string — e.g. 0:30-0:45", "issue": "string", "suggestion": "string"}
  ],
  "mispronunciations": [
    {"word": "string", "timestamp": "m:ss", "issue": "string", "suggestion": "string"}
  ],
  "strengths": ["string", "string", "string"],
  "developmentAreas": ["string", "string", "string"],
  "drillSuggestion": "string — one specific practice exercise"
}

Provide 3-5 timestamped feedback entries, the top 3 strengths and the top 3
development areas. Average WPM for conversational speech is 120-150, for
presentations 100-130. Do not wrap the JSON in markdown.
"""

MULTIMODAL_INSTRUCTION = (
    "Please analyze this speech recording. Listen carefully and provide detailed, "
    "specific feedback based on what the speaker actually says and how they say it. "
    "Include timestamped feedback, WPM, strengths, development areas and a drill suggestion."
)

# providers accept a narrower set of container types than browsers produce
_INLINE_MIME_TYPES = {
    "audio/m4a": "audio/mp4",
}


def format_unclear_words(words: list[UnclearWord]) -> str:
    lines = []
    for w in words:
        lines.append(f'- "{w.word}" at {w.timestamp} ({w.confidence_pct}% confidence)')
    return "\n".join(lines)


def build_user_prompt(
    transcript: Transcript,
    unclear_words: Optional[list[UnclearWord]] = None,
) -> str:
    context_parts = [
        f"Duration: {transcript.duration:.1f} seconds",
        f"Word count: {transcript.word_count}",
    ]
    unclear_section = ""
    if unclear_words:
        unclear_section = (
            "\nWords the transcriber was unsure about (possible mispronunciations):\n"
            f"{format_unclear_words(unclear_words)}\n"
        )

    return f"""\
{chr(10).join(context_parts)}

Transcript:
{transcript.text}
{unclear_section}
Analyze this speech and respond with the JSON structure specified."""


def build_messages(
    media: MediaPayload,
    transcript: Optional[Transcript] = None,
    unclear_words: Optional[list[UnclearWord]] = None,
) -> list[dict[str, Any]]:
    """Build chat messages from a transcript, or attach the media inline when there is none."""
    if transcript is not None:
        user_content: Any = build_user_prompt(transcript, unclear_words)
    else:
        inline_mime = _INLINE_MIME_TYPES.get(media.mime_type, media.mime_type)
        user_content = [
            {"type": "text", "text": MULTIMODAL_INSTRUCTION},
            {"type": "image_url", "image_url": {"url": media.data_url(inline_mime)}},
        ]
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_content},
    ]
