"""Core data models for clip import sessions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

DEFAULT_SCENE = "scratch"


class ItemState(Enum):
    """Status of a clip within the current import session.

    Status transitions (driven only by server-reported job status):
    - READY -> ACTIVE -> IMPORTED
    - READY/ACTIVE -> ERROR
    """

    READY = "ready"
    ACTIVE = "active"
    IMPORTED = "imported"
    ERROR = "error"


class ImportState(Enum):
    """Overall state of an import session."""

    LOADING = "loading"
    NO_DATA = "noData"
    READY = "ready"
    ACTIVE = "active"


@dataclass(frozen=True)
class ClipRef:
    """A clip discovered in a source directory.

    Attributes:
        name: Clip name, unique within a source listing
        paths: Files making up the clip, relative to the source directory
        total_size: Combined size of all files in bytes
    """

    name: str
    paths: tuple[str, ...] = ()
    total_size: int = 0

    def to_dict(self) -> dict:
        """Convert to the server's JSON representation."""
        return {
            "name": self.name,
            "paths": list(self.paths),
            "totalSize": self.total_size,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ClipRef":
        """Create from the server's JSON representation."""
        return cls(
            name=data["name"],
            paths=tuple(data.get("paths") or ()),
            total_size=int(data.get("totalSize", 0)),
        )


@dataclass(frozen=True)
class TakeId:
    """Identifier of a take. Fields are compared exactly, without normalization."""

    scene: str
    num: str

    def to_dict(self) -> dict:
        return {"scene": self.scene, "num": self.num}

    @classmethod
    def from_dict(cls, data: dict) -> "TakeId":
        return cls(scene=data["scene"], num=data["num"])

    def __str__(self) -> str:
        return f"{self.scene}/{self.num}"


@dataclass
class Take:
    """A recorded (scene, number) assignment for an imported clip.

    Attributes:
        id: Scene and take number
        clip_name: Name of the clip the take was imported from
        select: Whether the take is flagged as a select
    """

    id: TakeId
    clip_name: str = ""
    select: bool = False

    def to_dict(self) -> dict:
        """Convert to the server's JSON representation."""
        return {
            "id": self.id.to_dict(),
            "clipName": self.clip_name,
            "select": self.select,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Take":
        """Create from the server's JSON representation."""
        return cls(
            id=TakeId.from_dict(data["id"]),
            clip_name=data.get("clipName", ""),
            select=bool(data.get("select", False)),
        )


@dataclass
class ImportItem:
    """An editable entry in the import list, one per discovered clip.

    Attributes:
        clip: The discovered clip
        checked: Whether the clip will be included in the next import
        state: Server-reported state of the clip
        scene: Scene the take will be recorded under
        num: Take number (free text, usually an integer)
        select: Whether the take is a select; selects are imported first
    """

    clip: ClipRef
    checked: bool = True
    state: ItemState = ItemState.READY
    scene: str = DEFAULT_SCENE
    num: str = ""
    select: bool = False

    def to_submission(self) -> dict:
        """Strip the item down to the fields sent with an import request."""
        return {
            "clip": self.clip.to_dict(),
            "scene": self.scene,
            "num": self.num,
            "select": self.select,
        }


@dataclass
class ImportResult:
    """Final outcome of a single clip's import as reported by the server."""

    clip: ClipRef
    error: str | None = None
    start: datetime | None = None
    end: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return not self.error


@dataclass
class JobStatus:
    """Snapshot of the remote import job.

    Attributes:
        enabled: Whether the server accepts imports at all
        active: Whether a job is currently running
        bytes_copied: Bytes copied so far by the running job
        bytes_total: Total bytes the running job will copy
        start: When the running job started
        eta: Estimated completion time of the running job
        results: Finished clips, in completion order
        pending: Clips not yet finished; the first one is being copied
    """

    enabled: bool = True
    active: bool = False
    bytes_copied: int = 0
    bytes_total: int = 0
    start: datetime | None = None
    eta: datetime | None = None
    results: list[ImportResult] = field(default_factory=list)
    pending: list[ClipRef] = field(default_factory=list)
