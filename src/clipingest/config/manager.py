"""Configuration manager for clipingest."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from clipingest.models.types import DEFAULT_SCENE

logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    """Import server connection settings.

    Attributes:
        base_url: Root URL of the import server
        timeout_seconds: Per-request timeout
    """

    base_url: str = "http://localhost:8080"
    timeout_seconds: float = 30.0

    def __post_init__(self):
        """Validate configuration values."""
        if not self.base_url.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid base_url: {self.base_url}. Must start with http:// or https://"
            )
        if self.timeout_seconds <= 0:
            raise ValueError(
                f"Invalid timeout_seconds: {self.timeout_seconds}. Must be positive"
            )


@dataclass
class ImportConfig:
    """Import session settings.

    Attributes:
        default_scene: Scene assigned to newly listed clips
        default_subdirectory: Destination subdirectory when none is given
        poll_interval_ms: Milliseconds between status polls
        max_poll_retries: Consecutive failed polls tolerated (0-20)
        max_poll_backoff_ms: Upper bound for the retry delay
    """

    default_scene: str = DEFAULT_SCENE
    default_subdirectory: str = ""
    poll_interval_ms: int = 500
    max_poll_retries: int = 5
    max_poll_backoff_ms: int = 8000

    def __post_init__(self):
        """Validate configuration values."""
        if not self.default_scene:
            raise ValueError("Invalid default_scene: must not be empty")
        if self.poll_interval_ms <= 0:
            raise ValueError(
                f"Invalid poll_interval_ms: {self.poll_interval_ms}. Must be positive"
            )
        if not 0 <= self.max_poll_retries <= 20:
            raise ValueError(
                f"Invalid max_poll_retries: {self.max_poll_retries}. Must be between 0 and 20"
            )
        if self.max_poll_backoff_ms < self.poll_interval_ms:
            raise ValueError(
                f"Invalid max_poll_backoff_ms: {self.max_poll_backoff_ms}. "
                f"Must be at least poll_interval_ms ({self.poll_interval_ms})"
            )

    @property
    def poll_interval(self) -> float:
        """Poll interval in seconds."""
        return self.poll_interval_ms / 1000

    @property
    def max_poll_backoff(self) -> float:
        """Maximum retry delay in seconds."""
        return self.max_poll_backoff_ms / 1000


@dataclass
class Config:
    """Main configuration container."""

    server: ServerConfig = field(default_factory=ServerConfig)
    importing: ImportConfig = field(default_factory=ImportConfig)
    schema_version: str = "1.0"


# Sections as named in the file and in dot-notation keys
SECTIONS = {"server": "server", "import": "importing"}

_FIELD_TYPES: dict[str, type] = {
    "server.base_url": str,
    "server.timeout_seconds": float,
    "import.default_scene": str,
    "import.default_subdirectory": str,
    "import.poll_interval_ms": int,
    "import.max_poll_retries": int,
    "import.max_poll_backoff_ms": int,
}


class ConfigManager:
    """Manages configuration loading, saving, and access.

    Configuration is stored in ~/.config/clipingest/config.json
    """

    DEFAULT_CONFIG_PATH = Path.home() / ".config" / "clipingest" / "config.json"

    def __init__(self, config_path: Path | None = None):
        """Initialize ConfigManager.

        Args:
            config_path: Custom path for config file (default: ~/.config/clipingest/config.json)
        """
        self.config_path = config_path or self.DEFAULT_CONFIG_PATH
        self.config = self._load_config()

    def _load_config(self) -> Config:
        """Load configuration from file or create default."""
        if self.config_path.exists():
            try:
                with open(self.config_path, encoding="utf-8") as f:
                    data = json.load(f)
                return self._dict_to_config(data)
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                # If config is corrupted, return default
                logger.warning(f"Could not load config from {self.config_path}: {e}")
                return Config()
        return Config()

    def _dict_to_config(self, data: dict) -> Config:
        server_data = data.get("server", {})
        import_data = data.get("import", {})
        server_defaults = ServerConfig()
        defaults = ImportConfig()

        server = ServerConfig(
            base_url=server_data.get("base_url", server_defaults.base_url),
            timeout_seconds=float(
                server_data.get("timeout_seconds", server_defaults.timeout_seconds)
            ),
        )
        importing = ImportConfig(
            default_scene=import_data.get("default_scene", defaults.default_scene),
            default_subdirectory=import_data.get(
                "default_subdirectory", defaults.default_subdirectory
            ),
            poll_interval_ms=int(import_data.get("poll_interval_ms", defaults.poll_interval_ms)),
            max_poll_retries=int(import_data.get("max_poll_retries", defaults.max_poll_retries)),
            max_poll_backoff_ms=int(
                import_data.get("max_poll_backoff_ms", defaults.max_poll_backoff_ms)
            ),
        )
        return Config(
            server=server,
            importing=importing,
            schema_version=data.get("schema_version", "1.0"),
        )

    def _config_to_dict(self, config: Config) -> dict:
        return {
            "schema_version": config.schema_version,
            "server": {
                "base_url": config.server.base_url,
                "timeout_seconds": config.server.timeout_seconds,
            },
            "import": {
                "default_scene": config.importing.default_scene,
                "default_subdirectory": config.importing.default_subdirectory,
                "poll_interval_ms": config.importing.poll_interval_ms,
                "max_poll_retries": config.importing.max_poll_retries,
                "max_poll_backoff_ms": config.importing.max_poll_backoff_ms,
            },
        }

    def save(self) -> None:
        """Save current configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self._config_to_dict(self.config)
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

    def _section(self, key: str) -> tuple[Any, str]:
        parts = key.split(".")
        if len(parts) != 2:
            raise KeyError(f"Invalid configuration key format: {key}")
        section, name = parts
        if section not in SECTIONS:
            raise KeyError(f"Unknown configuration section: {section}")
        section_obj = getattr(self.config, SECTIONS[section])
        if not hasattr(section_obj, name):
            raise KeyError(f"Unknown configuration key: {key}")
        return section_obj, name

    def get(self, key: str) -> Any:
        """Get configuration value by dot-notation key.

        Args:
            key: Configuration key (e.g., "server.base_url", "import.default_scene")

        Raises:
            KeyError: If key is not found
        """
        if key == "schema_version":
            return self.config.schema_version
        section_obj, name = self._section(key)
        return getattr(section_obj, name)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value by dot-notation key.

        The value is converted to the field's type and the whole section is
        re-validated before it is applied.

        Raises:
            KeyError: If key is not found
            ValueError: If value is invalid
        """
        section_obj, name = self._section(key)
        if key not in _FIELD_TYPES:
            raise KeyError(f"Configuration key is read-only: {key}")
        try:
            value = _FIELD_TYPES[key](value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid value for {key}: {value!r}") from e

        candidate = type(section_obj)(**{**vars(section_obj), name: value})
        setattr(self.config, SECTIONS[key.split(".")[0]], candidate)

    def get_all(self) -> dict:
        """Get all configuration as dictionary."""
        return self._config_to_dict(self.config)

    def reset_to_defaults(self) -> None:
        """Reset configuration to default values."""
        self.config = Config()
