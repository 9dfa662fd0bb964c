"""Retry with exponential backoff for backend calls.

Gemini does not promise a stable machine-readable error taxonomy, so failures
are classified by a small fixed set of status codes and message substrings.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from ..errors import CredentialError, NetworkError, PipelineError, RateLimited


logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = {429}
CREDENTIAL_STATUS_CODES = {401, 403}

RETRYABLE_MARKERS = ("429", "quota", "resource_exhausted")
CREDENTIAL_MARKERS = (
    "requested entity was not found",
    "key_not_found",
    "api key not valid",
    "api_key_invalid",
)


def _status_code(exc: BaseException) -> int | None:
    for attr in ("code", "status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def is_credential_failure(exc: BaseException) -> bool:
    if isinstance(exc, CredentialError):
        return True
    if _status_code(exc) in CREDENTIAL_STATUS_CODES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in CREDENTIAL_MARKERS)


def is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, RateLimited):
        return True
    if isinstance(exc, PipelineError):
        return False
    if _status_code(exc) in RETRYABLE_STATUS_CODES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in RETRYABLE_MARKERS)


def classify_backend_error(exc: BaseException) -> PipelineError:
    """Map an arbitrary backend failure onto the pipeline's error kinds."""
    if isinstance(exc, PipelineError):
        return exc
    if is_credential_failure(exc):
        return CredentialError()
    if is_retryable(exc):
        return RateLimited()
    return NetworkError(str(exc) or type(exc).__name__)


async def invoke_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    retries: int = 2,
    base_delay: float = 2.0,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    name: str = "backend call",
) -> T:
    """Run ``operation`` with up to ``retries`` extra attempts on throttling.

    The wait before attempt ``n + 1`` is ``base_delay * 2 ** (n - 1)``.
    Credential failures raise :class:`CredentialError` at once; other
    non-retryable failures propagate unchanged.

    Raises:
        CredentialError: on the first credential failure
        Exception: the last error once the budget is spent
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except Exception as exc:
            if is_credential_failure(exc):
                if isinstance(exc, CredentialError):
                    raise
                raise CredentialError() from exc
            if not is_retryable(exc) or attempt > retries:
                raise

            delay = base_delay * 2 ** (attempt - 1)
            logger.warning(
                "%s throttled (attempt %d/%d), retrying in %.1fs: %s",
                name, attempt, retries + 1, delay, exc,
            )
            await sleep(delay)
