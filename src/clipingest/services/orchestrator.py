"""Import session controller.

Owns the item list of one import session and drives it through:
1. Loading (reconcile the source listing with recorded takes)
2. Editing (check/uncheck, autofill scene and take numbers, mark selects)
3. Submitting the import batch
4. Polling job status and merging per-clip results until the job is idle

Everything runs on a single asyncio event loop; the item list is only
mutated from coroutines and callbacks on that loop.
"""

import asyncio
import logging
import re
from collections.abc import Callable
from datetime import datetime

from clipingest.models.types import ImportItem, ImportState, ItemState, JobStatus
from clipingest.services.error_handling import (
    ClipIngestError,
    RemoteError,
    backoff_delay,
    is_retryable_error,
)
from clipingest.services.import_job import ImportJobClient
from clipingest.services.reconciler import ImportReconciler
from clipingest.services.session_store import SessionStore
from clipingest.utils.progress import INACTIVE_PROGRESS, calculate_progress

logger = logging.getLogger(__name__)

# Seconds between status polls
POLL_INTERVAL = 0.5

# Leading integer of a take number, e.g. "12" in "12b"
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def parse_take_number(num: str) -> int | None:
    """Parse the leading integer of a take number.

    Returns:
        The integer, or None if ``num`` does not start with one
    """
    match = _LEADING_INT_RE.match(num)
    if match is None:
        return None
    return int(match.group(1))


class ImportOrchestrator:
    """State machine for a single import session.

    Attributes:
        path: Source directory of the current session
        subdirectory: Destination subdirectory for the next import
        enabled: Whether the server accepts imports
        progress: Fraction copied by the running job, INACTIVE_PROGRESS if idle
        eta: Estimated completion of the running job
        items: Editable items, one per clip in listing order
        loading: Whether a reconciliation is in flight
        last_status: Most recent job status merged into the items
    """

    def __init__(
        self,
        reconciler: ImportReconciler,
        job_client: ImportJobClient,
        session_store: SessionStore | None = None,
        path: str = "",
        subdirectory: str = "",
        poll_interval: float = POLL_INTERVAL,
        max_poll_retries: int = 5,
        max_poll_backoff: float = 8.0,
        status_callback: Callable[[JobStatus], None] | None = None,
    ):
        """Initialize ImportOrchestrator.

        Args:
            reconciler: Builds the item list for a path
            job_client: Client for the import job runner
            session_store: Remembers the last opened path (optional)
            path: Initial source directory (empty for none)
            subdirectory: Destination subdirectory
            poll_interval: Seconds between status polls
            max_poll_retries: Consecutive failed polls tolerated before giving up
            max_poll_backoff: Upper bound in seconds for the retry delay
            status_callback: Called with every status merged into the items
        """
        self.reconciler = reconciler
        self.job_client = job_client
        self.session_store = session_store
        self.path = path
        self.subdirectory = subdirectory
        self.poll_interval = poll_interval
        self.max_poll_retries = max_poll_retries
        self.max_poll_backoff = max_poll_backoff
        self.status_callback = status_callback

        self.enabled = True
        self.progress = INACTIVE_PROGRESS
        self.eta: datetime | None = None
        self.items: list[ImportItem] = []
        self.loading = False
        self.last_status: JobStatus | None = None

        self._by_name: dict[str, ImportItem] = {}
        self._session = 0
        self._cancel: asyncio.Event | None = None
        self._poll_task: asyncio.Task | None = None

    @property
    def suggested_path(self) -> str:
        """Path to pre-fill: the current path, else the last one opened."""
        if self.path:
            return self.path
        if self.session_store is not None:
            return self.session_store.last_import_path or ""
        return ""

    # State

    def get_state(self) -> ImportState:
        """Derive the session state.

        Loading wins over emptiness, which wins over job activity.
        """
        if self.loading:
            return ImportState.LOADING
        if not self.items:
            return ImportState.NO_DATA
        if self.progress >= 0:
            return ImportState.ACTIVE
        return ImportState.READY

    def is_active(self) -> bool:
        return self.get_state() is ImportState.ACTIVE

    def find_item(self, clip_name: str) -> ImportItem | None:
        """Find the first item for a clip name."""
        return self._by_name.get(clip_name)

    def _set_items(self, items: list[ImportItem]) -> None:
        self.items = items
        self._by_name = {}
        for item in items:
            self._by_name.setdefault(item.clip.name, item)

    # Loading

    def open_path(self, new_path: str) -> asyncio.Task:
        """Start a fresh session for ``new_path``.

        The state becomes LOADING immediately; reconciliation runs as a task
        on the running event loop. Polling for the previous session stops.

        Returns:
            The loading task
        """
        self.close()
        self.path = new_path
        self.loading = True
        if self.session_store is not None:
            self.session_store.last_import_path = new_path
        return asyncio.get_running_loop().create_task(self.load())

    async def load(self) -> None:
        """Reconcile the current path, then merge the current job status.

        Failures are logged and leave the item list empty.
        """
        session = self._session
        self.loading = True

        if self.path:
            try:
                items = await self.reconciler.load(self.path)
            except (ClipIngestError, KeyError, TypeError, ValueError) as e:
                if session != self._session:
                    return
                logger.error(f"source load failed: {e}")
                items = []
            if session != self._session:
                logger.debug(f"Discarding listing of {self.path} from a superseded session")
                return
            self._set_items(items)
        else:
            self._set_items([])
        self.loading = False

        try:
            await self.refresh_status()
        except RemoteError as e:
            logger.warning(f"Could not fetch import status: {e}")

    # Editing

    def any_checked(self) -> bool:
        return any(item.checked for item in self.items)

    def all_checked(self) -> bool:
        """Whether every item is checked; False for an empty list."""
        return bool(self.items) and all(item.checked for item in self.items)

    def check_all(self) -> None:
        for item in self.items:
            item.checked = True

    def check_none(self) -> None:
        for item in self.items:
            item.checked = False

    def autofill_scene(self, i: int) -> None:
        """Copy item ``i``'s scene to every later item."""
        if i < 0 or i >= len(self.items):
            return
        scene = self.items[i].scene
        for item in self.items[i + 1 :]:
            item.scene = scene

    def autofill_num(self, i: int) -> None:
        """Number every later item consecutively from item ``i``'s number.

        No-op if item ``i``'s number does not start with an integer.
        """
        if i < 0 or i >= len(self.items):
            return
        num = parse_take_number(self.items[i].num)
        if num is None:
            return
        for j in range(i + 1, len(self.items)):
            self.items[j].num = str(num + j - i)

    def checked_total_bytes(self) -> int:
        return sum(item.clip.total_size for item in self.items if item.checked)

    def build_submission_batch(self) -> list[dict]:
        """Build the ordered import batch.

        Checked selects come first, then the remaining checked items; each
        group keeps list order so the server imports selects first.
        """
        selects = [i.to_submission() for i in self.items if i.checked and i.select]
        others = [i.to_submission() for i in self.items if i.checked and not i.select]
        return selects + others

    # Import and polling

    async def start_import(self) -> asyncio.Task:
        """Submit the checked items and start polling.

        Item states are not touched here; they change with the next poll.

        Returns:
            The polling task

        Raises:
            RemoteError: If the server rejects the submission
        """
        batch = self.build_submission_batch()
        await self.job_client.start_import(self.path, self.subdirectory, batch)
        return self.start_polling()

    def start_polling(self) -> asyncio.Task:
        """Start the polling loop unless one is already running."""
        if self._poll_task is not None and not self._poll_task.done():
            return self._poll_task
        cancel = asyncio.Event()
        self._cancel = cancel
        self._poll_task = asyncio.get_running_loop().create_task(
            self._poll(self._session, cancel)
        )
        return self._poll_task

    async def refresh_status(self) -> JobStatus:
        """Fetch the job status once and merge it into the items.

        A status arriving after the session changed is returned but not merged.
        """
        session = self._session
        status = await self.job_client.get_status()
        if session == self._session:
            self._on_status(status)
        return status

    def _on_status(self, status: JobStatus) -> None:
        self.enabled = status.enabled
        self.progress = calculate_progress(status)
        self.eta = status.eta if status.active else None
        self.last_status = status

        for result in status.results:
            item = self.find_item(result.clip.name)
            if item is None:
                continue
            item.state = ItemState.ERROR if result.error else ItemState.IMPORTED

        if status.pending:
            item = self.find_item(status.pending[0].name)
            if item is not None:
                item.state = ItemState.ACTIVE

        if self.status_callback is not None:
            self.status_callback(status)

    async def _poll(self, session: int, cancel: asyncio.Event) -> None:
        """Poll until the job goes idle or the session is closed.

        Each poll completes, including the merge, before the next is
        scheduled. Failed polls are retried with exponential backoff; after
        too many consecutive failures the job is treated as idle.
        """
        failures = 0

        while True:
            if failures:
                delay = backoff_delay(failures, self.poll_interval, self.max_poll_backoff)
            else:
                delay = self.poll_interval
            if await self._wait_cancelled(cancel, delay) or session != self._session:
                return

            try:
                await self.refresh_status()
            except RemoteError as e:
                failures += 1
                if not is_retryable_error(e) or failures > self.max_poll_retries:
                    logger.error(f"Giving up on import status after {failures} failed polls: {e}")
                    if session == self._session:
                        self.progress = INACTIVE_PROGRESS
                        self.eta = None
                    return
                logger.warning(
                    f"Status poll failed ({failures}/{self.max_poll_retries}), retrying: {e}"
                )
                continue

            failures = 0
            if session != self._session or self.progress < 0:
                return

    @staticmethod
    async def _wait_cancelled(cancel: asyncio.Event, delay: float) -> bool:
        """Sleep for ``delay`` seconds; return True if cancelled meanwhile."""
        try:
            await asyncio.wait_for(cancel.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    def close(self) -> None:
        """End the current session: stop polling and discard in-flight results."""
        self._session += 1
        if self._cancel is not None:
            self._cancel.set()
            self._cancel = None
        self._poll_task = None
