"""Small persistent store for per-user session state.

Remembers the last import path so the next session can pre-fill it.
"""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

LAST_IMPORT_PATH_KEY = "lastImportPath"


class SessionStore:
    """Key/value store backed by a local JSON file."""

    def __init__(self, cache_dir: Path | None = None):
        """Initialize SessionStore.

        Args:
            cache_dir: Directory for the store file (default: ~/.cache/clipingest)
        """
        if cache_dir is None:
            cache_dir = Path.home() / ".cache" / "clipingest"

        self.cache_dir = cache_dir
        self.db_path = cache_dir / "session.json"
        self._data: dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        """Load stored values from file."""
        if not self.db_path.exists():
            return

        try:
            with open(self.db_path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not load session state from {self.db_path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Invalid session state in {self.db_path}, ignoring")
            return
        self._data = {str(k): str(v) for k, v in data.items()}

    def _save(self) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        with open(self.db_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._data.get(key, default)

    def set(self, key: str, value: str) -> None:
        """Store a value and write it to disk.

        Write failures are logged; session state is a convenience only.
        """
        self._data[key] = value
        try:
            self._save()
        except OSError as e:
            logger.warning(f"Could not save session state to {self.db_path}: {e}")

    @property
    def last_import_path(self) -> str | None:
        return self.get(LAST_IMPORT_PATH_KEY)

    @last_import_path.setter
    def last_import_path(self, path: str) -> None:
        self.set(LAST_IMPORT_PATH_KEY, path)
