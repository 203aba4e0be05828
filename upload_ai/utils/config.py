import os
from dataclasses import dataclass
from typing import Optional

from ..exceptions import ConfigurationError

@dataclass
class Config:
    openai_api_key: Optional[str] = None
    processing_dir: str = "processing"
    generations_file: str = "generations.md"
    transcription_backend: str = "openai"
    transcription_model: str = "whisper-1"
    transcription_language: Optional[str] = None
    whisper_model: str = "base"
    completion_model: str = "gpt-3.5-turbo-16k"
    upstream_timeout: float = 120.0
    openai_max_retries: int = 2
    max_upload_mb: int = 25
    api_url: str = "http://localhost:3333"
    log_level: str = "INFO"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    def require_openai_api_key(self) -> str:
        if not self.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY environment variable is required")
        return self.openai_api_key

def _number(name: str, default, cast):
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")

def load_config() -> Config:
    backend = os.environ.get("TRANSCRIPTION_BACKEND", "openai").lower()
    if backend not in ("openai", "local"):
        raise ConfigurationError(f"TRANSCRIPTION_BACKEND must be 'openai' or 'local', got {backend!r}")

    return Config(
        openai_api_key=os.environ.get("OPENAI_API_KEY") or None,
        processing_dir=os.environ.get("PROCESSING_DIR", "processing"),
        generations_file=os.environ.get("GENERATIONS_FILE", "generations.md"),
        transcription_backend=backend,
        transcription_model=os.environ.get("TRANSCRIPTION_MODEL", "whisper-1"),
        transcription_language=os.environ.get("TRANSCRIPTION_LANGUAGE") or None,
        whisper_model=os.environ.get("WHISPER_MODEL", "base"),
        completion_model=os.environ.get("COMPLETION_MODEL", "gpt-3.5-turbo-16k"),
        upstream_timeout=_number("UPSTREAM_TIMEOUT", 120.0, float),
        openai_max_retries=_number("OPENAI_MAX_RETRIES", 2, int),
        max_upload_mb=_number("MAX_UPLOAD_MB", 25, int),
        api_url=os.environ.get("API_URL", "http://localhost:3333"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
    )
