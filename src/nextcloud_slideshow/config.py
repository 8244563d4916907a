"""Configuration for the slideshow core."""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Defaults mirror the MagicMirror module this project replaces
DEFAULT_UPDATE_INTERVAL = 60  # seconds between photo changes
DEFAULT_LIST_REFRESH_INTERVAL = 3600  # seconds between list refreshes
DEFAULT_SHOW_WIDTH = 400
DEFAULT_SHOW_HEIGHT = 400
DEFAULT_ANIMATION_SPEED = 500  # milliseconds
DEFAULT_CACHE_SIZE = 50

MIN_UPDATE_INTERVAL = 10
MIN_LIST_REFRESH_INTERVAL = 300

LIST_TIMEOUT = 30.0
IMAGE_TIMEOUT = 60.0
GEOCODING_TIMEOUT = 5.0

CONFIG_FILE_PATH = Path.home() / ".nextcloud-slideshow" / "config.json"
ENV_PASSWORD = "NEXTCLOUD_PASSWORD"


@dataclass(frozen=True)
class RepositoryConfig:
    """Connection details for the WebDAV repository."""
    path: str
    username: str
    password: str
    recursive: bool = False
    exclude: Tuple[str, ...] = ()

    @property
    def base_path(self) -> str:
        """URL path component of the repository, e.g. ``/remote.php/dav/files/me/Photos``."""
        return urlparse(self.path).path

    def validate(self) -> None:
        """Raise ConfigurationError if the repository cannot be used."""
        if not self.path:
            raise ConfigurationError("No repository path configured")
        if not self.username or not self.password:
            raise ConfigurationError("No authentication credentials provided")
        parsed = urlparse(self.path)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigurationError(f"Invalid repository URL: {self.path}")
        for pattern in self.exclude:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ConfigurationError(f"Invalid exclude pattern: {pattern}", str(e)) from e


@dataclass
class SlideshowConfig:
    """Everything the orchestrator and fetch layer consume."""
    repository: RepositoryConfig
    update_interval: float = DEFAULT_UPDATE_INTERVAL
    list_refresh_interval: float = DEFAULT_LIST_REFRESH_INTERVAL
    random: bool = True
    start_hidden: bool = False
    start_paused: bool = False
    enable_geocoding: bool = True
    show_width: int = DEFAULT_SHOW_WIDTH
    show_height: int = DEFAULT_SHOW_HEIGHT
    animation_speed: int = DEFAULT_ANIMATION_SPEED
    cache_size: int = DEFAULT_CACHE_SIZE
    extra: Dict[str, Any] = field(default_factory=dict)

    def validate(self) -> "SlideshowConfig":
        """Check the repository settings and clamp the timer intervals.

        Returns:
            self, so calls can be chained.

        Raises:
            ConfigurationError: If the repository path or credentials are unusable.
        """
        self.repository.validate()

        if self.update_interval < MIN_UPDATE_INTERVAL:
            logger.warning(
                f"updateInterval too low. Setting to minimum of {MIN_UPDATE_INTERVAL} seconds"
            )
            self.update_interval = MIN_UPDATE_INTERVAL

        if self.list_refresh_interval < MIN_LIST_REFRESH_INTERVAL:
            logger.warning(
                f"listRefreshInterval too low. Setting to minimum of {MIN_LIST_REFRESH_INTERVAL} seconds"
            )
            self.list_refresh_interval = MIN_LIST_REFRESH_INTERVAL

        if self.cache_size < 1:
            raise ConfigurationError(f"cache_size must be positive, got {self.cache_size}")
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SlideshowConfig":
        """Build a configuration from a JSON-style dictionary.

        Both snake_case keys and the camelCase keys of the original
        MagicMirror module (``repositoryConfig``, ``updateInterval`` ...) are accepted.
        """
        repo_data = data.get("repository") or data.get("repositoryConfig") or {}
        password = repo_data.get("password") or os.environ.get(ENV_PASSWORD, "")
        repository = RepositoryConfig(
            path=repo_data.get("path", ""),
            username=repo_data.get("username", ""),
            password=password,
            recursive=bool(repo_data.get("recursive", False)),
            exclude=tuple(repo_data.get("exclude") or ()),
        )

        def pick(snake: str, camel: str, default: Any) -> Any:
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        known = {
            "repository", "repositoryConfig",
            "update_interval", "updateInterval",
            "list_refresh_interval", "listRefreshInterval",
            "random",
            "start_hidden", "startHidden",
            "start_paused", "startPaused",
            "enable_geocoding", "enableGeocoding",
            "show_width", "showWidth",
            "show_height", "showHeight",
            "animation_speed", "animationSpeed",
            "cache_size", "cacheSize",
        }

        return cls(
            repository=repository,
            update_interval=pick("update_interval", "updateInterval", DEFAULT_UPDATE_INTERVAL),
            list_refresh_interval=pick(
                "list_refresh_interval", "listRefreshInterval", DEFAULT_LIST_REFRESH_INTERVAL
            ),
            random=bool(data.get("random", True)),
            start_hidden=bool(pick("start_hidden", "startHidden", False)),
            start_paused=bool(pick("start_paused", "startPaused", False)),
            enable_geocoding=bool(pick("enable_geocoding", "enableGeocoding", True)),
            show_width=int(pick("show_width", "showWidth", DEFAULT_SHOW_WIDTH)),
            show_height=int(pick("show_height", "showHeight", DEFAULT_SHOW_HEIGHT)),
            animation_speed=int(pick("animation_speed", "animationSpeed", DEFAULT_ANIMATION_SPEED)),
            cache_size=int(pick("cache_size", "cacheSize", DEFAULT_CACHE_SIZE)),
            extra={k: v for k, v in data.items() if k not in known},
        )

    @classmethod
    def load_from_file(cls, config_path: Optional[Path] = None) -> "SlideshowConfig":
        """Load configuration from a JSON file.

        Raises:
            ConfigurationError: If the file is missing or is not valid JSON.
        """
        if config_path is None:
            config_path = CONFIG_FILE_PATH
        config_path = Path(config_path).expanduser()

        if not config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise ConfigurationError(f"Failed to load config file {config_path}", str(e)) from e

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a JSON object")
        return cls.from_dict(config_data)

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary. The password is never included."""
        return {
            "repository": {
                "path": self.repository.path,
                "username": self.repository.username,
                "password_set": bool(self.repository.password),
                "recursive": self.repository.recursive,
                "exclude": list(self.repository.exclude),
            },
            "update_interval": self.update_interval,
            "list_refresh_interval": self.list_refresh_interval,
            "random": self.random,
            "start_hidden": self.start_hidden,
            "start_paused": self.start_paused,
            "enable_geocoding": self.enable_geocoding,
            "show_width": self.show_width,
            "show_height": self.show_height,
            "animation_speed": self.animation_speed,
            "cache_size": self.cache_size,
        }
