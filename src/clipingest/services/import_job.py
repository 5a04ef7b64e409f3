"""Clients for the source lister and the remote import job runner.

The server is the sole source of truth for whether a job is running; the
client only learns about completion by polling ``get_status``.
"""

import logging
from typing import Any

from clipingest.models.converters import api_to_job_status, import_request_body
from clipingest.models.types import ClipRef, ImportItem, JobStatus
from clipingest.services.error_handling import (
    IMPORT_SUCCESS,
    ApplicationError,
    TransportError,
)
from clipingest.services.http import ApiTransport

logger = logging.getLogger(__name__)


class SourceLister:
    """Lists the clips in a source directory on the server."""

    def __init__(self, transport: ApiTransport):
        self.transport = transport

    async def list_clips(self, path: str) -> list[ClipRef]:
        """List clips under ``path`` in the server's order.

        Raises:
            TransportError: On a non-2xx status
        """
        response = await self.transport.request("GET", "/source", params={"path": path})
        if not response.ok:
            raise TransportError(f"source HTTP status {response.status}", status=response.status)
        return [ClipRef.from_dict(c) for c in response.data or []]


class ImportJobClient:
    """Fetches import status and submits import batches."""

    def __init__(self, transport: ApiTransport):
        self.transport = transport

    async def get_status(self) -> JobStatus:
        """Fetch the current job status.

        Raises:
            TransportError: On a non-2xx status or a malformed body
        """
        response = await self.transport.request("GET", "/import")
        if not response.ok:
            raise TransportError(
                f"importer HTTP status {response.status}", status=response.status
            )
        try:
            return api_to_job_status(response.data or {})
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed import status: {e!r}")
            raise TransportError(
                f"malformed import status: {e!r}", status=response.status
            ) from e

    async def start_import(
        self,
        path: str,
        subdirectory: str,
        items: list[ImportItem] | list[dict[str, Any]],
    ) -> None:
        """Submit an import batch.

        Args:
            path: Source directory the clips were listed from
            subdirectory: Destination subdirectory (may be empty)
            items: Items in the order the server should import them

        Raises:
            TransportError: On a non-2xx status
            ApplicationError: If the response body carries a code other than 200
        """
        body = import_request_body(path, subdirectory, items)
        logger.info(f"Starting import of {len(body['items'])} clips from {path}")
        response = await self.transport.request("POST", "/import", body=body)
        if not response.ok:
            raise TransportError(
                f"importer HTTP status {response.status}", status=response.status
            )
        data = response.data if isinstance(response.data, dict) else {}
        code = data.get("code", 0)
        if code != IMPORT_SUCCESS:
            message = data.get("errorMessage", "")
            logger.warning(f"Import rejected with code {code}: {message}")
            raise ApplicationError(code, message, status=response.status)
