"""Persisted sync state.

The state record remembers where the textures live, whether the first
installation finished and which revision was last applied. It belongs to the
caller (the CLI); the engine never reads or writes it.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..config import config
from ..exceptions import FilesystemError

logger = logging.getLogger(__name__)


@dataclass
class PersistedSyncState:
    """State surviving across invocations."""

    textures_path: Optional[str] = None
    """Textures directory (parent of the target folder)"""

    initial_setup_done: bool = False
    """Whether the first installation has completed"""

    last_synced_revision: Optional[str] = None
    """Commit SHA of the last applied revision"""

    def to_dict(self) -> dict:
        """Convert state to dictionary for JSON serialization."""
        return {
            "textures_path": self.textures_path,
            "initial_setup_done": self.initial_setup_done,
            "last_synced_revision": self.last_synced_revision,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PersistedSyncState":
        """Create PersistedSyncState from dictionary."""
        return cls(
            textures_path=data.get("textures_path"),
            initial_setup_done=bool(data.get("initial_setup_done", False)),
            last_synced_revision=data.get("last_synced_revision"),
        )


class SyncStateManager:
    """Loads and saves the persisted state record as JSON."""

    def __init__(self, state_file: Optional[Path] = None):
        """Initialize state manager.

        Args:
            state_file: Location of the state file. Defaults to
                ~/.config/texsync/state.json
        """
        self.state_file = state_file or config.state_file

    def load_state(self) -> PersistedSyncState:
        """Load the state record.

        A missing or corrupt file yields the default state.
        """
        if not self.state_file.exists():
            logger.debug(f"No sync state found at {self.state_file}")
            return PersistedSyncState()

        try:
            with open(self.state_file, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load sync state: {e}")
            return PersistedSyncState()

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed sync state in {self.state_file}")
            return PersistedSyncState()
        return PersistedSyncState.from_dict(data)

    def save_state(self, state: PersistedSyncState) -> None:
        """Save the state record.

        Raises:
            FilesystemError: If the file cannot be written
        """
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.state_file, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, indent=2)
        except OSError as e:
            raise FilesystemError(f"Failed to save sync state: {e}") from e
        logger.debug(f"Saved sync state to {self.state_file}")

    def set_textures_path(self, path: str) -> PersistedSyncState:
        """Remember the textures directory."""
        state = self.load_state()
        state.textures_path = path
        self.save_state(state)
        return state

    def mark_setup_complete(self, revision: str) -> PersistedSyncState:
        """Record a finished installation at ``revision``."""
        state = self.load_state()
        state.initial_setup_done = True
        state.last_synced_revision = revision
        self.save_state(state)
        return state

    def update_last_synced_revision(self, revision: str) -> PersistedSyncState:
        """Record the revision of the latest applied sync."""
        state = self.load_state()
        state.last_synced_revision = revision
        self.save_state(state)
        return state

    def set_initial_setup_done(self, done: bool) -> PersistedSyncState:
        """Flag an existing installation as set up (or undo it)."""
        state = self.load_state()
        state.initial_setup_done = done
        self.save_state(state)
        return state
