from pydantic_settings import BaseSettings


class GatewaySettings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 8000
    allowed_origins: list[str] = [
        "http://localhost:8080",
        "http://localhost:5173",
        "http://localhost:3000",
    ]
    allowed_origin_regex: str | None = None
    require_auth: bool = False
    history_limit: int = 10
    log_level: str = "INFO"

    model_config = {"env_prefix": "GATEWAY_"}


class MediaSettings(BaseSettings):
    max_file_size_mb: float = 100.0
    allowed_mime_types: list[str] = [
        "video/mp4",
        "video/webm",
        "audio/webm",
        "audio/mp4",
        "audio/m4a",
        "audio/mpeg",
        "audio/wav",
    ]

    model_config = {"env_prefix": "MEDIA_"}


class ASRSettings(BaseSettings):
    api_url: str = "https://api.deepgram.com/v1/listen"
    api_key: str = ""
    model_name: str = "nova-2"
    language: str = "en"
    unclear_word_threshold: float = 0.6
    max_unclear_words: int = 10
    timeout_s: float = 120.0

    model_config = {"env_prefix": "ASR_"}

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


class LLMSettings(BaseSettings):
    api_url: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    api_key: str = ""
    model_name: str = "google/gemini-2.5-flash"
    temperature: float = 0.3
    max_tokens: int = 4096
    timeout_s: float = 120.0

    model_config = {"env_prefix": "LLM_"}


class StorageSettings(BaseSettings):
    url: str = ""
    service_role_key: str = ""
    table: str = "speech_analyses"

    model_config = {"env_prefix": "SUPABASE_"}

    @property
    def enabled(self) -> bool:
        return bool(self.url and self.service_role_key)
