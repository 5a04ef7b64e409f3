"""Service layer module for clipingest."""

from clipingest.services.error_handling import (
    ApplicationError,
    ClipIngestError,
    NotFoundError,
    RemoteError,
    TransportError,
)
from clipingest.services.http import ApiResponse, ApiTransport
from clipingest.services.import_job import ImportJobClient, SourceLister
from clipingest.services.orchestrator import ImportOrchestrator
from clipingest.services.reconciler import ImportReconciler
from clipingest.services.session_store import SessionStore
from clipingest.services.take_list import SceneGroup, TakeEditor, group_by_scene
from clipingest.services.takes import TakeRegistry

__all__ = [
    "ApiResponse",
    "ApiTransport",
    "ApplicationError",
    "ClipIngestError",
    "ImportJobClient",
    "ImportOrchestrator",
    "ImportReconciler",
    "NotFoundError",
    "RemoteError",
    "SceneGroup",
    "SessionStore",
    "SourceLister",
    "TakeEditor",
    "TakeRegistry",
    "TransportError",
    "group_by_scene",
]
