"""
aflsync - AFL sync directory replication for Kubernetes

Fuzzing pods share no filesystem, so the shared sync directory that parallel
AFL instances expect is emulated by copying every pod's own subdirectory to
every other pod through the Kubernetes exec API.

Key Features:
- Full sync directory replication with skip-existing extraction
- Cheap fuzzer_stats-only sync towards the coordinator pods
- afl-whatsup status report from the coordinator after a sync
"""

__version__ = "1.0.0"
__author__ = "aflsync Team"

from aflsync.core.models import (
    Role,
    SyncMode,
    Pod,
    SyncJob,
    Archive,
    ExecOutcome,
    SyncReport,
    StatusReport,
)
from aflsync.core.errors import (
    AflSyncError,
    BootstrapError,
    InventoryError,
    ExecutionError,
    RemoteCommandError,
)

__all__ = [
    # Model
    "Role",
    "SyncMode",
    "Pod",
    "SyncJob",
    "Archive",
    "ExecOutcome",
    "SyncReport",
    "StatusReport",
    # Errors
    "AflSyncError",
    "BootstrapError",
    "InventoryError",
    "ExecutionError",
    "RemoteCommandError",
    # Version
    "__version__",
]
