"""
Exception hierarchy shared by the API server and the client.

Each error kind carries the HTTP status it maps to, so the server can render
it and the client can map a response back to the same kind.
"""

from typing import Any, Dict, Optional


class UploadAIError(Exception):
    """Base class for all upload-ai errors."""

    status_code = 500
    kind = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(UploadAIError):
    """Bad input shape or range."""

    status_code = 400
    kind = "validation_error"


class MissingTranscriptionError(ValidationError):
    """A completion was requested for a video that has not been transcribed yet."""

    status_code = 404
    kind = "missing_transcription"


class NotFoundError(UploadAIError):
    status_code = 404
    kind = "not_found"


class StorageError(UploadAIError):
    """The record store could not complete a read or write."""

    status_code = 500
    kind = "storage_error"


class UpstreamError(UploadAIError):
    """An external speech-to-text or text-generation call failed or timed out."""

    status_code = 502
    kind = "upstream_error"

    def __init__(self, service: str, message: str, **kwargs: Any):
        details = {"service": service}
        details.update(kwargs)
        super().__init__(message, details)
        self.service = service


class ConfigurationError(UploadAIError):
    """Credentials or settings required by an operation are missing or malformed."""

    status_code = 503
    kind = "configuration_error"


class AudioExtractionError(UploadAIError):
    """The local transcoder could not produce an audio file."""

    kind = "audio_extraction_error"


class InvalidTransitionError(UploadAIError):
    kind = "invalid_transition"


class WorkflowBusyError(InvalidTransitionError):
    """A new upload was started while another one is still in flight."""

    kind = "workflow_busy"


ERRORS_BY_KIND = {
    cls.kind: cls
    for cls in (
        ValidationError,
        MissingTranscriptionError,
        NotFoundError,
        StorageError,
        UpstreamError,
        ConfigurationError,
    )
}
