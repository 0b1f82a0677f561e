"""Configuration loader for VitalZen."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
SUPPORTED_METHODS = ("GET", "POST")


def _lookup(data: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Resolve a dot-notation key (e.g. 'recommendation.endpoint') in nested dicts."""
    value: Any = data
    for k in key.split("."):
        if isinstance(value, dict) and value.get(k) is not None:
            value = value[k]
        else:
            return default
    return value


class UserConfig:
    """Configuration for a single user session."""

    def __init__(self, user_data: Dict[str, Any], base_dir: Optional[Path] = None):
        """
        Initialize user configuration.

        Args:
            user_data: Dictionary containing user-specific config
            base_dir: Directory that relative metrics_file paths resolve against
        """
        if not isinstance(user_data, dict):
            raise ValueError("User entry must be a mapping")
        self._data = user_data
        self._base_dir = base_dir or Path.cwd()
        self._validate()

    def _validate(self) -> None:
        """Validate required user fields."""
        required_fields = [
            ("id", "User ID"),
            ("metrics_file", "Metrics export file"),
        ]

        for field, display_name in required_fields:
            if not self.get(field):
                raise ValueError(f"Missing required user field: {display_name} ({field})")

    def get(self, key: str, default: Any = None) -> Any:
        """Get nested user value using dot notation."""
        return _lookup(self._data, key, default)

    @property
    def user_id(self) -> str:
        return str(self._data["id"])

    @property
    def name(self) -> str:
        """Get user name (defaults to user_id if not set)."""
        return self._data.get("name", self.user_id)

    @property
    def enabled(self) -> bool:
        return self._data.get("enabled", True)

    @property
    def metrics_file(self) -> Path:
        """Path of the user's metric export, resolved against the config directory."""
        path = Path(self._data["metrics_file"]).expanduser()
        if not path.is_absolute():
            path = self._base_dir / path
        return path


class Config:
    """Configuration manager for VitalZen with multi-user support."""

    def __init__(self, config_path: str | Path | None = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to config.yaml file. If None, looks for config.yaml in project root.
        """
        if config_path is None:
            project_root = Path(__file__).parent.parent
            config_path = project_root / "config.yaml"
        else:
            config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {config_path}\n"
                f"Please create config.yaml based on config.yaml.example"
            )

        with open(config_path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)

        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")

        self._config: Dict[str, Any] = loaded
        self._base_dir = config_path.resolve().parent

        self._detect_and_migrate_legacy()
        self._validate()
        self._users = self._load_users()

    def _detect_and_migrate_legacy(self) -> None:
        """Migrate a legacy single-user config (top-level metrics_file) to the users list."""
        if "metrics_file" in self._config and "users" not in self._config:
            logger.warning(
                "Detected legacy single-user configuration. Migrating to multi-user format..."
            )
            self._config["users"] = [
                {
                    "id": "default_user",
                    "name": "Default User",
                    "metrics_file": self._config.pop("metrics_file"),
                    "enabled": True,
                }
            ]
            logger.info(
                "Legacy configuration migrated. "
                "Consider updating config.yaml to the 'users' format."
            )

    def _validate(self) -> None:
        """Validate that all required configuration fields are present."""
        if not isinstance(self._config.get("recommendation"), dict):
            raise ValueError("Missing 'recommendation' section in configuration")
        if not self.get("recommendation.endpoint"):
            raise ValueError("Missing 'recommendation.endpoint' in configuration")

        method = str(self.get("recommendation.method", "POST")).upper()
        if method not in SUPPORTED_METHODS:
            raise ValueError(
                f"'recommendation.method' must be one of {', '.join(SUPPORTED_METHODS)}, got {method}"
            )

        timeout = self.get("recommendation.timeout", DEFAULT_TIMEOUT)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError(f"'recommendation.timeout' must be a positive number, got {timeout!r}")

        if "users" not in self._config or not self._config["users"]:
            raise ValueError("Configuration must contain at least one user in 'users' array")

        if not isinstance(self._config["users"], list):
            raise ValueError("'users' must be an array/list")

    def _load_users(self) -> List[UserConfig]:
        """Load and validate all user configurations."""
        users = []
        user_ids_seen = set()

        for idx, user_data in enumerate(self._config["users"]):
            try:
                user_config = UserConfig(user_data, base_dir=self._base_dir)

                if user_config.user_id in user_ids_seen:
                    raise ValueError(f"Duplicate user ID: {user_config.user_id}")

                user_ids_seen.add(user_config.user_id)
                users.append(user_config)

                logger.info(f"Loaded user configuration: {user_config.name} ({user_config.user_id})")

            except ValueError as e:
                logger.error(f"Failed to load user configuration at index {idx}: {e}")
                raise ValueError(f"Invalid user configuration at index {idx}: {e}") from e

        return users

    @property
    def users(self) -> List[UserConfig]:
        return self._users

    @property
    def enabled_users(self) -> List[UserConfig]:
        """Get only enabled user configurations."""
        return [user for user in self._users if user.enabled]

    def get_user(self, user_id: str) -> Optional[UserConfig]:
        """
        Get specific user configuration by ID.

        Args:
            user_id: User ID to look up

        Returns:
            UserConfig if found, None otherwise
        """
        for user in self._users:
            if user.user_id == user_id:
                return user
        return None

    @property
    def endpoint(self) -> str:
        return self._config["recommendation"]["endpoint"]

    @property
    def method(self) -> str:
        return str(self.get("recommendation.method", "POST")).upper()

    @property
    def timeout(self) -> float:
        """Transport timeout in seconds (default 30)."""
        return float(self.get("recommendation.timeout", DEFAULT_TIMEOUT))

    @property
    def scheduler(self) -> Dict[str, Any]:
        """
        Get scheduler configuration.

        Raises:
            ValueError: If the section or its hour/minute keys are missing
        """
        scheduler = self._config.get("scheduler")
        if not isinstance(scheduler, dict):
            raise ValueError("Missing 'scheduler' section in configuration")
        for field in ("hour", "minute"):
            if field not in scheduler:
                raise ValueError(f"Missing 'scheduler.{field}' in configuration")
        return scheduler

    @property
    def logging(self) -> Dict[str, Any]:
        return self._config.get("logging", {"level": "INFO", "log_file": "vitalzen.log"})

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration key (supports dot notation, e.g., 'recommendation.endpoint')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return _lookup(self._config, key, default)
