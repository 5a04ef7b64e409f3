"""HTTP transport for the import server.

Blocking ``requests`` calls run in a worker thread so that callers on the
event loop never block; responses are returned to the loop thread.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import requests

from clipingest.services.error_handling import TransportError, is_success_status

logger = logging.getLogger(__name__)


@dataclass
class ApiResponse:
    """Decoded HTTP response."""

    status: int
    data: Any = None

    @property
    def ok(self) -> bool:
        return is_success_status(self.status)


class ApiTransport:
    """Sends JSON requests to the import server.

    Attributes:
        base_url: Server root URL without trailing slash
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        """Initialize ApiTransport.

        Args:
            base_url: Server root URL (e.g., "http://localhost:8080")
            timeout: Per-request timeout in seconds
            session: requests session to reuse (a new one is created if omitted)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def url(self, path: str) -> str:
        """Join a server path onto the base URL."""
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: Any = None,
    ) -> ApiResponse:
        """Send a request and decode the JSON response.

        Args:
            method: HTTP method
            path: Server path, already percent-encoded
            params: Query parameters
            body: JSON request body

        Returns:
            ApiResponse with status and decoded body (None if empty or not JSON)

        Raises:
            TransportError: If no response was received
        """
        return await asyncio.to_thread(self._send, method, path, params, body)

    def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None,
        body: Any,
    ) -> ApiResponse:
        url = self.url(path)
        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=body,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise TransportError(f"{method} {url} failed: {e}") from e

        data = None
        if response.content:
            try:
                data = response.json()
            except ValueError:
                logger.debug(f"{method} {url} returned a non-JSON body")

        logger.debug(f"{method} {url} -> {response.status_code}")
        return ApiResponse(status=response.status_code, data=data)

    def close(self) -> None:
        """Release pooled connections."""
        self.session.close()
