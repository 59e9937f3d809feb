"""
Fan-out replication of fuzzer state across pods.

AFL expects every instance to see the queues of all other instances in a
shared sync directory. Pods share no filesystem, so each pod's own
subdirectory is pushed to every other pod instead.
"""

from typing import List, Sequence

from aflsync.core.errors import ExecutionError, RemoteCommandError
from aflsync.core.models import (
    Pod,
    Role,
    SyncJob,
    SyncMode,
    SyncReport,
    TransferResult,
)
from aflsync.sync.archive import ArchiveTransfer
from aflsync.utils.logging import get_logger

logger = get_logger(__name__)

# Errors that only affect the operation that raised them
RECOVERABLE_ERRORS = (ExecutionError, RemoteCommandError)


def build_jobs(pods: Sequence[Pod], mode: SyncMode) -> List[SyncJob]:
    """
    Plan one job per source pod, in inventory order.

    Full directory sync pushes to every other pod. Stats sync only pushes to
    pods that are not workers, since only those aggregate metrics.
    """
    jobs = []
    for source in pods:
        targets = tuple(
            target for target in pods
            if target.name != source.name
            and (mode is SyncMode.FULL_DIRECTORY or target.role is not Role.WORKER)
        )
        jobs.append(SyncJob(source=source, targets=targets, mode=mode))
    return jobs


class SyncOrchestrator:
    """
    Drives full directory and stats-only sync over a list of pods.

    All remote calls run one after another. A failure on one target never
    stops the remaining targets from being served.

    Example:
        orchestrator = SyncOrchestrator(ArchiveTransfer(executor))
        report = orchestrator.run(pods, SyncMode.FULL_DIRECTORY)
        for failure in report.failures:
            print(failure.kind, failure.source, failure.target, failure.error)
    """

    def __init__(self, transfer: ArchiveTransfer):
        self.transfer = transfer

    def run(self, pods: Sequence[Pod], mode: SyncMode) -> SyncReport:
        if mode is SyncMode.STATS_ONLY:
            return self.sync_stats(pods)
        return self.sync_directories(pods)

    def sync_directories(self, pods: Sequence[Pod]) -> SyncReport:
        """
        Push every pod's sync subdirectory to every other pod.

        If the archive cannot be built on a source, that source is skipped
        rather than pushing an empty payload. Cleanup on the source runs in
        every case.
        """
        report = SyncReport(mode=SyncMode.FULL_DIRECTORY)

        for job in build_jobs(pods, SyncMode.FULL_DIRECTORY):
            report.jobs.append(job)
            source = job.source
            logger.info(f"Copying sync directory from pod {source.name}")

            try:
                self._distribute(job, report)
            finally:
                self._cleanup(source, report)

        return report

    def _distribute(self, job: SyncJob, report: SyncReport) -> None:
        source = job.source
        try:
            archive = self.transfer.create(source)
        except RECOVERABLE_ERRORS as e:
            logger.error(f"Skipping pod {source.name}: {e}")
            report.record(TransferResult(
                kind="archive", source=source.name, ok=False, error=str(e)
            ))
            return

        report.record(TransferResult(kind="archive", source=source.name, size=archive.size))

        for target in job.targets:
            logger.info(f"- Writing sync directory to pod {target.name}")
            try:
                self.transfer.extract(archive, target)
                report.record(TransferResult(
                    kind="extract",
                    source=source.name,
                    target=target.name,
                    size=archive.size,
                ))
            except RECOVERABLE_ERRORS as e:
                logger.error(f"Error:\n{e}")
                report.record(TransferResult(
                    kind="extract",
                    source=source.name,
                    target=target.name,
                    ok=False,
                    error=str(e),
                ))

    def _cleanup(self, source: Pod, report: SyncReport) -> None:
        try:
            self.transfer.cleanup(source)
            report.record(TransferResult(kind="cleanup", source=source.name))
        except RECOVERABLE_ERRORS as e:
            logger.error(f"Error:\n{e}")
            report.record(TransferResult(
                kind="cleanup", source=source.name, ok=False, error=str(e)
            ))

    def sync_stats(self, pods: Sequence[Pod]) -> SyncReport:
        """
        Push every pod's fuzzer_stats file to the non-worker pods.

        Cheap enough to run every metrics interval. Never deletes anything.
        """
        report = SyncReport(mode=SyncMode.STATS_ONLY)
        stats_file = self.transfer.stats_file

        for job in build_jobs(pods, SyncMode.STATS_ONLY):
            report.jobs.append(job)
            source = job.source
            logger.info(f"Copying '{stats_file}' file from pod {source.name}")

            try:
                data = self.transfer.read_stats(source)
            except RECOVERABLE_ERRORS as e:
                logger.error(f"Skipping pod {source.name}: {e}")
                report.record(TransferResult(
                    kind="read_stats", source=source.name, ok=False, error=str(e)
                ))
                continue

            report.record(TransferResult(
                kind="read_stats", source=source.name, size=len(data)
            ))

            for target in job.targets:
                logger.info(f"- Writing '{stats_file}' file to pod {target.name}")
                try:
                    self.transfer.write_stats(source.name, data, target)
                    report.record(TransferResult(
                        kind="write_stats",
                        source=source.name,
                        target=target.name,
                        size=len(data),
                    ))
                except RECOVERABLE_ERRORS as e:
                    logger.error(f"Error:\n{e}")
                    report.record(TransferResult(
                        kind="write_stats",
                        source=source.name,
                        target=target.name,
                        ok=False,
                        error=str(e),
                    ))

        return report
