"""Client for the take registry.

Takes are stored server-side and keyed by (scene, num):
- GET    /take/              list all takes
- GET    /take/<scene>/<num> fetch one take
- POST   /take/              create a take
- PUT    /take/<scene>/<num> update a take
- DELETE /take/<scene>/<num> delete a take
"""

import logging
from urllib.parse import quote

from clipingest.models.types import Take, TakeId
from clipingest.services.error_handling import NotFoundError, TransportError
from clipingest.services.http import ApiResponse, ApiTransport

logger = logging.getLogger(__name__)


def take_path(take_id: TakeId | None = None) -> str:
    """Build the resource path for a take, or the collection if id is None."""
    if take_id is None:
        return "/take/"
    return f"/take/{quote(take_id.scene, safe='')}/{quote(take_id.num, safe='')}"


class TakeRegistry:
    """CRUD access to the remote take collection.

    All methods are coroutines and may be awaited concurrently; there is no
    ordering guarantee between independent calls.
    """

    def __init__(self, transport: ApiTransport):
        self.transport = transport

    async def list_takes(self) -> list[Take]:
        """List all takes in server order (sorted by scene and number upstream)."""
        response = self._check(await self.transport.request("GET", take_path()), "list")
        return [Take.from_dict(t) for t in response.data or []]

    async def get_take(self, take_id: TakeId) -> Take:
        """Fetch a single take.

        Raises:
            NotFoundError: If no take has this id
            TransportError: On any other non-2xx status
        """
        response = await self.transport.request("GET", take_path(take_id))
        if response.status == 404:
            raise NotFoundError(f"take not found: {take_id}")
        self._check(response, f"get {take_id}")
        return Take.from_dict(response.data)

    async def insert_take(self, take: Take) -> None:
        """Create a new take."""
        response = await self.transport.request("POST", take_path(), body=take.to_dict())
        self._check(response, f"insert {take.id}")
        logger.info(f"Inserted take {take.id}")

    async def update_take(self, take_id: TakeId, take: Take) -> None:
        """Replace the take stored under ``take_id`` (the id itself may change)."""
        response = await self.transport.request("PUT", take_path(take_id), body=take.to_dict())
        self._check(response, f"update {take_id}")
        logger.info(f"Updated take {take_id}")

    async def delete_take(self, take_id: TakeId) -> None:
        """Delete a take."""
        response = await self.transport.request("DELETE", take_path(take_id))
        self._check(response, f"delete {take_id}")
        logger.info(f"Deleted take {take_id}")

    @staticmethod
    def _check(response: ApiResponse, action: str) -> ApiResponse:
        if not response.ok:
            raise TransportError(
                f"takes HTTP status {response.status} ({action})", status=response.status
            )
        return response
