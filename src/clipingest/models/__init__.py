"""Data models module for clipingest."""

from clipingest.models.converters import (
    api_to_import_result,
    api_to_job_status,
    import_request_body,
    parse_timestamp,
)
from clipingest.models.types import (
    DEFAULT_SCENE,
    ClipRef,
    ImportItem,
    ImportResult,
    ImportState,
    ItemState,
    JobStatus,
    Take,
    TakeId,
)

__all__ = [
    # Core types
    "DEFAULT_SCENE",
    "ClipRef",
    "ImportItem",
    "ImportResult",
    "ImportState",
    "ItemState",
    "JobStatus",
    "Take",
    "TakeId",
    # Converters
    "api_to_import_result",
    "api_to_job_status",
    "import_request_body",
    "parse_timestamp",
]
