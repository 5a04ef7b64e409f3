"""Pytest configuration and fixtures for clipingest tests."""

import pytest

from clipingest.models.types import ClipRef, Take, TakeId
from clipingest.services.http import ApiResponse
from clipingest.services.import_job import ImportJobClient, SourceLister
from clipingest.services.orchestrator import ImportOrchestrator
from clipingest.services.reconciler import ImportReconciler
from clipingest.services.takes import TakeRegistry

IDLE_STATUS = {"enabled": True, "active": False}


class FakeTransport:
    """In-memory stand-in for ApiTransport.

    Routes map (method, path) to a response. A list of responses is served
    in order, repeating the last one once the others are used up. An
    exception instance is raised instead of returned.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], object] = {}
        self.calls: list[tuple[str, str, dict | None, object]] = []

    def when(self, method: str, path: str, *responses) -> None:
        self.routes[(method, path)] = list(responses)

    def calls_to(self, method: str, path: str) -> list:
        return [c for c in self.calls if c[0] == method and c[1] == path]

    async def request(self, method, path, params=None, body=None):
        self.calls.append((method, path, params, body))
        queue = self.routes.get((method, path))
        if not queue:
            return ApiResponse(status=404)
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, ApiResponse):
            return response
        return ApiResponse(status=200, data=response)


@pytest.fixture
def sample_clips():
    """Clips as listed from a source directory."""
    return [
        ClipRef(name="foo", paths=("foo/1.mov", "foo/2.mov"), total_size=42),
        ClipRef(name="bar", paths=("bar.mov",), total_size=1025),
        ClipRef(name="already-imported", paths=("casablanca.mov",), total_size=314159),
    ]


@pytest.fixture
def sample_takes():
    """Takes already recorded on the server."""
    return [Take(id=TakeId(scene="2", num="3a"), clip_name="already-imported", select=False)]


@pytest.fixture
def fake_transport(sample_clips, sample_takes):
    """Transport serving the sample clips under /foo and an idle job."""
    transport = FakeTransport()
    transport.when("GET", "/source", [c.to_dict() for c in sample_clips])
    transport.when("GET", "/take/", [t.to_dict() for t in sample_takes])
    transport.when("GET", "/import", IDLE_STATUS)
    transport.when("POST", "/import", {"code": 200})
    return transport


@pytest.fixture
def make_orchestrator(fake_transport):
    """Factory for orchestrators wired to the fake transport."""

    def factory(**kwargs):
        kwargs.setdefault("poll_interval", 0)
        kwargs.setdefault("max_poll_backoff", 0)
        reconciler = ImportReconciler(SourceLister(fake_transport), TakeRegistry(fake_transport))
        return ImportOrchestrator(reconciler, ImportJobClient(fake_transport), **kwargs)

    return factory


@pytest.fixture
def transport():
    """Transport with no routes; every request answers 404 until configured."""
    return FakeTransport()
