"""Data model conversion functions.

Single location for conversions between the import server's JSON
payloads and the client models.
"""

import logging
import re
from datetime import datetime
from typing import Any

from clipingest.models.types import ClipRef, ImportItem, ImportResult, JobStatus

logger = logging.getLogger(__name__)

# Server timestamps may carry nanosecond precision; datetime keeps microseconds.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an RFC 3339 timestamp from the server.

    Args:
        value: Timestamp string such as "2014-08-01T12:00:00.123456789Z"

    Returns:
        Timezone-aware datetime, or None for empty, zero or unparseable values
    """
    if not value:
        return None
    text = _FRACTION_RE.sub(r"\1", value.strip())
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.warning(f"Ignoring unparseable timestamp: {value!r}")
        return None
    # Zero time is what the server sends when no job has run.
    if parsed.year <= 1:
        return None
    return parsed


def api_to_import_result(data: dict[str, Any]) -> ImportResult:
    """Convert a job result entry to ImportResult.

    Args:
        data: Dictionary from the "results" list of a status response

    Returns:
        ImportResult object
    """
    return ImportResult(
        clip=ClipRef.from_dict(data["clip"]),
        error=data.get("error") or None,
        start=parse_timestamp(data.get("start")),
        end=parse_timestamp(data.get("end")),
    )


def api_to_job_status(data: dict[str, Any]) -> JobStatus:
    """Convert a GET /import response to JobStatus.

    Args:
        data: Decoded JSON body

    Returns:
        JobStatus object
    """
    return JobStatus(
        enabled=bool(data.get("enabled", True)),
        active=bool(data.get("active", False)),
        bytes_copied=int(data.get("bytesCopied") or 0),
        bytes_total=int(data.get("bytesTotal") or 0),
        start=parse_timestamp(data.get("start")),
        eta=parse_timestamp(data.get("eta")),
        results=[api_to_import_result(r) for r in data.get("results") or []],
        pending=[ClipRef.from_dict(c) for c in data.get("pending") or []],
    )


def import_request_body(
    path: str, subdirectory: str, items: list[ImportItem] | list[dict[str, Any]]
) -> dict[str, Any]:
    """Build the body of a POST /import request.

    Args:
        path: Source directory on the server
        subdirectory: Destination subdirectory (may be empty)
        items: ImportItems or already-stripped submission dictionaries

    Returns:
        Dictionary ready to be sent as JSON
    """
    return {
        "path": path,
        "subdirectory": subdirectory,
        "items": [i.to_submission() if isinstance(i, ImportItem) else i for i in items],
    }
