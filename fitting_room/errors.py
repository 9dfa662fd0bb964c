"""Failure taxonomy for a try-on attempt.

Every failure that leaves the generation client or the product fetcher is one
of the classes below. The orchestrator turns them into its ``failed`` stage and
the HTTP layer renders ``kind`` and ``message`` to the browser.
"""

from enum import Enum


class ErrorKind(str, Enum):
    DECODE_ERROR = "decode_error"
    CREDENTIAL_ERROR = "credential_error"
    RATE_LIMITED = "rate_limited"
    CONTENT_REJECTED = "content_rejected"
    GENERATION_FAILED = "generation_failed"
    NETWORK_ERROR = "network_error"


class PipelineError(Exception):
    """Terminal failure of one attempt."""

    kind: ErrorKind = ErrorKind.NETWORK_ERROR
    default_message = "A technical error occurred."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


class DecodeError(PipelineError):
    """Source image is malformed or cannot be decoded."""
    kind = ErrorKind.DECODE_ERROR
    default_message = "Image could not be processed."


class CredentialError(PipelineError):
    """Backend rejected the API key as missing or invalid."""
    kind = ErrorKind.CREDENTIAL_ERROR
    default_message = "Please select your API key again."


class RateLimited(PipelineError):
    """Backend kept throttling after the retry budget was spent."""
    kind = ErrorKind.RATE_LIMITED
    default_message = "The AI is busy right now. Please wait a moment."


class ContentRejected(PipelineError):
    """Backend declined generation on safety grounds."""
    kind = ErrorKind.CONTENT_REJECTED
    default_message = "Image blocked. Please choose a photo with neutral clothing."


class GenerationFailed(PipelineError):
    """Backend answered without a usable image."""
    kind = ErrorKind.GENERATION_FAILED
    default_message = "AI error. Please try again with a clear full-body photo."


class NetworkError(PipelineError):
    """Any other failure; carries the original message."""
    kind = ErrorKind.NETWORK_ERROR
