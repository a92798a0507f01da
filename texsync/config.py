"""Configuration for texsync.

Settings are read from environment variables, then from the config file
``~/.config/texsync/config`` (KEY=VALUE lines), then built-in defaults.

Environment variables:
    TEXSYNC_REPO_OWNER: GitHub owner of the texture repository
    TEXSYNC_REPO_NAME: GitHub repository name
    TEXSYNC_BRANCH: Branch whose head is synced (default: main)
    TEXSYNC_SPARSE_PATH: Path inside the repository that is mirrored
    TEXSYNC_TARGET_FOLDER: Folder name created inside the textures directory
    TEXSYNC_RESERVED_FOLDER: Folder that sync never touches
    TEXSYNC_GITHUB_TOKEN: Optional GitHub token (raises the API rate limit)
    TEXSYNC_TIMEOUT: HTTP timeout in seconds
    TEXSYNC_MAX_RETRIES: Retry budget for network requests
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_REPO_OWNER = "maddendeluxe"
DEFAULT_REPO_NAME = "madden09deluxe"
DEFAULT_BRANCH = "main"
DEFAULT_TARGET_FOLDER = "SLUS-21770"
DEFAULT_SPARSE_PATH = f"textures/{DEFAULT_TARGET_FOLDER}"
DEFAULT_RESERVED_FOLDER = "user-customs"
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_RAW_URL = "https://raw.githubusercontent.com"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 3


class Config:
    """Configuration manager for texsync."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_dir: Directory holding the config and state files.
                Defaults to ~/.config/texsync
        """
        self.config_dir = config_dir or Path.home() / ".config" / "texsync"
        self.config_file = self.config_dir / "config"
        self._file_values: Optional[dict[str, Optional[str]]] = None

    def _load_file(self) -> dict[str, Optional[str]]:
        if self._file_values is None:
            if self.config_file.exists():
                self._file_values = dict(dotenv_values(self.config_file))
                logger.debug(f"Loaded config from {self.config_file}")
            else:
                self._file_values = {}
        return self._file_values

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Look up a setting by its environment variable name.

        Args:
            key: Variable name, e.g. "TEXSYNC_BRANCH"
            default: Value returned when neither env nor file defines it

        Returns:
            The configured value or the default
        """
        value = os.environ.get(key)
        if value:
            return value
        value = self._load_file().get(key)
        if value:
            return value
        return default

    def _get_number(self, key: str, default: float) -> float:
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return float(raw)
        except ValueError as e:
            raise ConfigError(f"{key} must be a number, got {raw!r}") from e

    @property
    def repo_owner(self) -> str:
        return self.get("TEXSYNC_REPO_OWNER", DEFAULT_REPO_OWNER) or ""

    @property
    def repo_name(self) -> str:
        return self.get("TEXSYNC_REPO_NAME", DEFAULT_REPO_NAME) or ""

    @property
    def branch(self) -> str:
        return self.get("TEXSYNC_BRANCH", DEFAULT_BRANCH) or DEFAULT_BRANCH

    @property
    def sparse_path(self) -> str:
        value = self.get("TEXSYNC_SPARSE_PATH", DEFAULT_SPARSE_PATH) or ""
        return value.strip("/")

    @property
    def target_folder(self) -> str:
        return self.get("TEXSYNC_TARGET_FOLDER", DEFAULT_TARGET_FOLDER) or ""

    @property
    def reserved_folder(self) -> str:
        return (
            self.get("TEXSYNC_RESERVED_FOLDER", DEFAULT_RESERVED_FOLDER)
            or DEFAULT_RESERVED_FOLDER
        )

    @property
    def github_token(self) -> Optional[str]:
        return self.get("TEXSYNC_GITHUB_TOKEN")

    @property
    def api_url(self) -> str:
        return self.get("TEXSYNC_API_URL", DEFAULT_API_URL) or DEFAULT_API_URL

    @property
    def raw_url(self) -> str:
        return self.get("TEXSYNC_RAW_URL", DEFAULT_RAW_URL) or DEFAULT_RAW_URL

    @property
    def timeout(self) -> float:
        return self._get_number("TEXSYNC_TIMEOUT", DEFAULT_TIMEOUT)

    @property
    def max_retries(self) -> int:
        return int(self._get_number("TEXSYNC_MAX_RETRIES", DEFAULT_MAX_RETRIES))

    @property
    def state_file(self) -> Path:
        """Location of the persisted sync state record."""
        return self.config_dir / "state.json"

    def validate(self) -> None:
        """Validate the repository settings.

        Raises:
            ConfigError: If a required setting is empty
        """
        if not self.repo_owner or not self.repo_name:
            raise ConfigError(
                "Repository not configured. Set TEXSYNC_REPO_OWNER and "
                "TEXSYNC_REPO_NAME."
            )
        if not self.sparse_path:
            raise ConfigError("TEXSYNC_SPARSE_PATH cannot be empty")
        if not self.target_folder or "/" in self.target_folder:
            raise ConfigError(
                f"Invalid target folder name: {self.target_folder!r}"
            )


config = Config()
