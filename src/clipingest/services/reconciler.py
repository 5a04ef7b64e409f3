"""Reconciliation of discovered clips against recorded takes.

Clips that already have a take are shown as imported and unchecked, so a
re-run over the same card only picks up new material by default.
"""

import asyncio
import logging

from clipingest.models.types import DEFAULT_SCENE, ClipRef, ImportItem, ItemState, Take
from clipingest.services.import_job import SourceLister
from clipingest.services.takes import TakeRegistry

logger = logging.getLogger(__name__)


class ImportReconciler:
    """Builds the editable item list for an import session."""

    def __init__(
        self,
        source_lister: SourceLister,
        take_registry: TakeRegistry,
        default_scene: str = DEFAULT_SCENE,
    ):
        self.source_lister = source_lister
        self.take_registry = take_registry
        self.default_scene = default_scene

    async def load(self, path: str) -> list[ImportItem]:
        """Fetch clips under ``path`` and all takes, then reconcile them.

        Both requests are issued concurrently and both are awaited to
        completion, even if one fails.

        Raises:
            RemoteError: If either request fails (the source listing's error
                wins if both do)
        """
        clips, takes = await asyncio.gather(
            self.source_lister.list_clips(path),
            self.take_registry.list_takes(),
            return_exceptions=True,
        )
        if isinstance(clips, BaseException) and isinstance(takes, BaseException):
            logger.debug(f"take listing also failed: {takes}")
        for result in (clips, takes):
            if isinstance(result, BaseException):
                raise result
        items = self.reconcile(clips, takes)
        logger.info(
            f"Loaded {len(items)} clips from {path} "
            f"({sum(1 for i in items if i.state is ItemState.IMPORTED)} already imported)"
        )
        return items

    def reconcile(self, clips: list[ClipRef], takes: list[Take]) -> list[ImportItem]:
        """Produce one ImportItem per clip, in listing order.

        Args:
            clips: Clips from the source listing
            takes: All recorded takes

        Returns:
            Items numbered 1..n under the default scene
        """
        imported_names = {take.clip_name for take in takes}
        items = []
        for i, clip in enumerate(clips):
            already_imported = clip.name in imported_names
            items.append(
                ImportItem(
                    clip=clip,
                    checked=not already_imported,
                    state=ItemState.IMPORTED if already_imported else ItemState.READY,
                    scene=self.default_scene,
                    num=str(i + 1),
                    select=False,
                )
            )
        return items
