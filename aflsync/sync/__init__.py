"""Replication engine: archive transfer, fan-out orchestration, status reports."""

from aflsync.sync.archive import ArchiveTransfer
from aflsync.sync.orchestrator import SyncOrchestrator, build_jobs
from aflsync.sync.status import StatusReporter

__all__ = ["ArchiveTransfer", "SyncOrchestrator", "build_jobs", "StatusReporter"]
