"""Take browsing and editing on top of the take registry."""

import logging
from dataclasses import dataclass, field, replace

from clipingest.models.types import Take, TakeId
from clipingest.services.takes import TakeRegistry

logger = logging.getLogger(__name__)


@dataclass
class SceneGroup:
    """Consecutive takes sharing a scene."""

    scene: str
    takes: list[Take] = field(default_factory=list)


def group_by_scene(takes: list[Take]) -> list[SceneGroup]:
    """Group takes by scene, keeping server order.

    Takes are expected to arrive sorted by scene; a scene that reappears
    after a different one starts a new group.
    """
    groups: list[SceneGroup] = []
    for take in takes:
        if not groups or groups[-1].scene != take.id.scene:
            groups.append(SceneGroup(scene=take.id.scene))
        groups[-1].takes.append(take)
    return groups


class TakeEditor:
    """Edits a single recorded take."""

    def __init__(self, registry: TakeRegistry):
        self.registry = registry

    async def load(self, take_id: TakeId) -> Take:
        return await self.registry.get_take(take_id)

    async def save(
        self,
        take_id: TakeId,
        scene: str | None = None,
        num: str | None = None,
        clip_name: str | None = None,
        select: bool | None = None,
    ) -> Take:
        """Apply the given field changes and store the take.

        Changing scene or num moves the take to a new id.

        Returns:
            The take as saved

        Raises:
            NotFoundError: If no take has ``take_id``
        """
        take = await self.registry.get_take(take_id)
        new_id = TakeId(
            scene=take.id.scene if scene is None else scene,
            num=take.id.num if num is None else num,
        )
        updated = replace(
            take,
            id=new_id,
            clip_name=take.clip_name if clip_name is None else clip_name,
            select=take.select if select is None else select,
        )
        await self.registry.update_take(take_id, updated)
        if new_id != take_id:
            logger.info(f"Moved take {take_id} to {new_id}")
        return updated

    async def destroy(self, take_id: TakeId) -> None:
        await self.registry.delete_take(take_id)
