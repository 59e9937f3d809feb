"""Core data model and error taxonomy."""

from aflsync.core.errors import (
    AflSyncError,
    BootstrapError,
    InventoryError,
    ExecutionError,
    RemoteCommandError,
)
from aflsync.core.models import (
    Role,
    SyncMode,
    Pod,
    SyncJob,
    Archive,
    ExecOutcome,
    TransferResult,
    SyncReport,
    StatusReport,
)

__all__ = [
    "AflSyncError",
    "BootstrapError",
    "InventoryError",
    "ExecutionError",
    "RemoteCommandError",
    "Role",
    "SyncMode",
    "Pod",
    "SyncJob",
    "Archive",
    "ExecOutcome",
    "TransferResult",
    "SyncReport",
    "StatusReport",
]
