"""Error taxonomy shared by the gateway, transcription and analysis packages.

Every error carries a ``user_message`` that is safe to show to the caller
inside the ``{"error": ...}`` envelope.
"""

from __future__ import annotations


class SpeechAnalysisError(Exception):
    user_message = "Failed to analyze your speech. Please try again."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.user_message)
        if message:
            self.user_message = message


# --- request validation ---

class MediaValidationError(SpeechAnalysisError):
    pass


class InvalidInput(MediaValidationError):
    pass


class UnsupportedMediaType(MediaValidationError):
    pass


class PayloadTooLarge(MediaValidationError):
    pass


class MalformedEncoding(MediaValidationError):
    pass


# --- upstream calls ---

class UpstreamFailure(SpeechAnalysisError):
    def __init__(self, service: str, status_code: int, body: str, message: str | None = None) -> None:
        self.service = service
        self.status_code = status_code
        self.body = body
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.service} returned HTTP {self.status_code}: {self.body[:200]}"


class RateLimited(UpstreamFailure):
    user_message = "Rate limit exceeded. Please wait a moment and try again."


class ServiceUnavailable(UpstreamFailure):
    user_message = "The AI service is temporarily unavailable. Please try again in a few moments."


class UpstreamError(UpstreamFailure):
    pass


def classify_upstream_error(service: str, status_code: int, body: str) -> UpstreamFailure:
    """Map a non-success upstream response onto the failure taxonomy."""
    if status_code == 429:
        return RateLimited(service, status_code, body)
    if status_code == 503 or "temporarily unavailable" in body.lower():
        return ServiceUnavailable(service, status_code, body)
    verb = "transcribe" if service == "transcription" else "analyze"
    return UpstreamError(
        service,
        status_code,
        body,
        message=f"Failed to {verb} speech (upstream status {status_code}).",
    )


# --- response handling ---

class UnparsableAnalysis(SpeechAnalysisError):
    user_message = "Invalid analysis response format"

    def __init__(self, preview: str) -> None:
        self.preview = preview
        super().__init__()

    def __str__(self) -> str:
        return f"could not extract JSON from model output: {self.preview!r}"


class ConfigurationError(SpeechAnalysisError):
    pass
