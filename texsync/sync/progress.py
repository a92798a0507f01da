"""Progress reporting and cancellation for sync operations.

Events are delivered in emission order to an optional callback and to an
optional queue channel read by another thread. The terminal event always has
stage ``complete`` and is emitted once per run.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SyncStage(str, Enum):
    """Coarse stages of a sync or installation run."""

    FETCHING = "fetching"
    SCANNING = "scanning"
    COMPARING = "comparing"
    DOWNLOADING = "downloading"
    DELETING = "deleting"
    COMPLETE = "complete"


@dataclass(frozen=True)
class SyncProgressEvent:
    """A single progress event."""

    stage: SyncStage
    message: str
    current: Optional[int] = None
    total: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.stage == SyncStage.COMPLETE

    @property
    def percent(self) -> Optional[int]:
        """Completion percentage of the current stage, if counted."""
        if self.is_terminal:
            return 100
        if self.current is None or not self.total:
            return None
        return int(self.current * 100 / self.total)

    def to_sync_payload(self) -> dict:
        """Payload shape emitted while syncing."""
        return {
            "stage": self.stage.value,
            "message": self.message,
            "current": self.current,
            "total": self.total,
        }

    def to_install_payload(self) -> dict:
        """Payload shape emitted while installing."""
        return {
            "stage": self.stage.value,
            "message": self.message,
            "percent": self.percent,
        }


ProgressCallback = Callable[[SyncProgressEvent], None]


class ProgressReporter:
    """Ordered progress event stream.

    Examples:
        >>> reporter = ProgressReporter(callback=print)
        >>> reporter.emit(SyncStage.FETCHING, "Fetching repository information...")
        >>> reporter.complete("Done")
    """

    def __init__(
        self,
        callback: Optional[ProgressCallback] = None,
        channel: Optional["queue.Queue[SyncProgressEvent]"] = None,
    ):
        """Initialize progress reporter.

        Args:
            callback: Called synchronously with every event
            channel: Queue that receives every event
        """
        self.callback = callback
        self.channel = channel
        self._lock = threading.RLock()
        self._final_event: Optional[SyncProgressEvent] = None

    @property
    def final_event(self) -> Optional[SyncProgressEvent]:
        """The terminal event, once the run has completed."""
        return self._final_event

    def _publish(self, event: SyncProgressEvent) -> None:
        logger.debug("[%s] %s", event.stage.value, event.message)
        if self.callback is not None:
            self.callback(event)
        if self.channel is not None:
            self.channel.put(event)

    def emit(
        self,
        stage: SyncStage,
        message: str,
        current: Optional[int] = None,
        total: Optional[int] = None,
    ) -> None:
        """Emit a non-terminal event.

        Events emitted after the terminal event are dropped.
        """
        if stage == SyncStage.COMPLETE:
            self.complete(message)
            return
        with self._lock:
            if self._final_event is not None:
                logger.debug(f"Dropping event after completion: {message}")
                return
            self._publish(SyncProgressEvent(stage, message, current, total))

    def complete(self, message: str) -> SyncProgressEvent:
        """Emit the terminal event.

        Only the first call publishes; later calls return the same event.

        Returns:
            The terminal event
        """
        with self._lock:
            if self._final_event is None:
                self._final_event = SyncProgressEvent(SyncStage.COMPLETE, message)
                self._publish(self._final_event)
            return self._final_event


class CancelToken:
    """Cooperative cancellation flag shared between caller and worker."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
