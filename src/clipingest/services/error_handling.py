"""Error types and retry classification for the import server API.

Provides:
- Exception hierarchy raised by the API clients
- HTTP status classification (transient vs permanent)
- Backoff calculation for status polling
"""

from dataclasses import dataclass
from enum import Enum


class ClipIngestError(Exception):
    """Base class for all clipingest errors."""


class RemoteError(ClipIngestError):
    """A call to the import server failed.

    Attributes:
        status: HTTP status code, or 0 if no response was received
    """

    def __init__(self, message: str, status: int = 0):
        self.status = status
        super().__init__(message)


class TransportError(RemoteError):
    """The server answered with a non-2xx status, or could not be reached."""


class NotFoundError(TransportError):
    """A take lookup found no matching record."""

    def __init__(self, message: str):
        super().__init__(message, status=404)


class ApplicationError(RemoteError):
    """The server accepted the request but reported a failure in the body.

    Attributes:
        code: Application-level error code from the response body
        message: Error message from the response body
    """

    def __init__(self, code: int, message: str, status: int = 200):
        self.code = code
        self.message = message
        super().__init__(f"importer error code {code}: {message}", status=status)


class ErrorCategory(Enum):
    """Error category classification."""

    TRANSIENT = "transient"
    CLIENT = "client"
    UNKNOWN = "unknown"


@dataclass
class StatusClassification:
    """Result of HTTP status classification."""

    status: int
    is_retryable: bool
    category: str


# Import response codes embedded in POST /import bodies
IMPORT_SUCCESS = 200
IMPORT_BAD_REQUEST = 400
IMPORT_DISABLED = 401
IMPORT_ACTIVE = 402
IMPORT_BAD_SOURCE = 403

IMPORT_ERROR_DESCRIPTIONS = {
    IMPORT_BAD_REQUEST: "bad request",
    IMPORT_DISABLED: "imports are disabled",
    IMPORT_ACTIVE: "an import is already in progress",
    IMPORT_BAD_SOURCE: "source could not be opened",
}

# Transient statuses: the request may succeed if repeated
TRANSIENT_STATUSES = {0, 408, 429, 500, 502, 503, 504}


def is_success_status(status: int) -> bool:
    """Check if an HTTP status is in the 2xx range."""
    return 200 <= status < 300


def classify_status_code(status: int) -> StatusClassification:
    """Classify an HTTP status for retry decisions.

    Args:
        status: HTTP status code, 0 for connection failures

    Returns:
        StatusClassification with category

    Categories:
    - transient (0, 408, 429, 5xx): retry with backoff
    - client (other 4xx): the request itself is wrong, no retry
    - unknown: anything else, no retry
    """
    if status in TRANSIENT_STATUSES or 500 <= status < 600:
        return StatusClassification(
            status=status,
            is_retryable=True,
            category=ErrorCategory.TRANSIENT.value,
        )

    if 400 <= status < 500:
        return StatusClassification(
            status=status,
            is_retryable=False,
            category=ErrorCategory.CLIENT.value,
        )

    return StatusClassification(
        status=status,
        is_retryable=False,
        category=ErrorCategory.UNKNOWN.value,
    )


def is_retryable_error(error: Exception) -> bool:
    """Check if a failed status poll should be retried.

    Args:
        error: Exception raised by the status request

    Returns:
        True for transient remote errors, False otherwise
    """
    if isinstance(error, ApplicationError):
        return False
    if isinstance(error, RemoteError):
        return classify_status_code(error.status).is_retryable
    return False


def backoff_delay(attempt: int, base: float, cap: float) -> float:
    """Delay before retry number ``attempt`` (1-based), doubling each time.

    Args:
        attempt: Consecutive failure count, starting at 1
        base: Delay for the first retry in seconds
        cap: Maximum delay in seconds

    Returns:
        Delay in seconds
    """
    if attempt < 1:
        return base
    return min(cap, base * (2 ** (attempt - 1)))
