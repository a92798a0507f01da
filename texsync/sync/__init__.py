"""Sync engine for texsync - reconciliation of a local texture folder."""

from .applier import PlanApplier
from .comparator import FileComparator
from .engine import SyncEngine, SyncJob
from .operations import SyncOperations
from .progress import (
    CancelToken,
    ProgressReporter,
    SyncProgressEvent,
    SyncStage,
)
from .scanner import DirectoryScanner, ScanResult, ScanWarning
from .state import PersistedSyncState, SyncStateManager

__all__ = [
    "SyncEngine",
    "SyncJob",
    "SyncOperations",
    "PlanApplier",
    "DirectoryScanner",
    "ScanResult",
    "ScanWarning",
    "FileComparator",
    "CancelToken",
    "ProgressReporter",
    "SyncProgressEvent",
    "SyncStage",
    "PersistedSyncState",
    "SyncStateManager",
]
