"""Progress calculation utility.

Centralizes how a job status is turned into the progress value shown by
the CLI and used by the orchestrator to decide whether a job is active.
"""

from __future__ import annotations

from clipingest.models.types import JobStatus

# Reported when no job is running
INACTIVE_PROGRESS = -1.0


def calculate_progress(status: JobStatus) -> float:
    """Calculate the fraction of bytes copied by the running job.

    Progress mapping:
    - not active: INACTIVE_PROGRESS (-1.0)
    - active, bytes_total == 0: 0.0 (nothing sized yet)
    - active: bytes_copied / bytes_total

    Args:
        status: Job status from the server

    Returns:
        Progress in [0.0, 1.0] while active, INACTIVE_PROGRESS otherwise
    """
    if not status.active:
        return INACTIVE_PROGRESS
    if status.bytes_total <= 0:
        return 0.0
    return status.bytes_copied / status.bytes_total


def progress_percentage(progress: float) -> int | None:
    """Convert a progress fraction to a whole percentage.

    Returns:
        0-100, or None if progress is the inactive sentinel
    """
    if progress < 0:
        return None
    return max(0, min(100, int(progress * 100)))
