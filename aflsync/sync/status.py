"""
Post-sync status report from the coordinator pods.
"""

import shlex
import time
from typing import Callable, List, Sequence

from aflsync.core.errors import ExecutionError
from aflsync.core.models import Pod, Role, StatusReport
from aflsync.kube.executor import RemoteExecutor
from aflsync.utils.logging import get_logger

logger = get_logger(__name__)


class StatusReporter:
    """
    Asks every coordinator pod for a fleet-wide afl-whatsup summary.

    Crashes are not propagated to the coordinator by the sync itself, so
    this is where a crash found on any pod becomes visible.
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        sync_dir: str = "sync",
        status_command: str = "afl-whatsup -s",
        grace_period: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.executor = executor
        self.sync_dir = sync_dir
        self.status_command = status_command
        self.grace_period = grace_period
        self._sleep = sleep

    def report(self, pods: Sequence[Pod], wait: bool = True) -> List[StatusReport]:
        """
        Collect status reports. Failures are logged and returned, never raised.

        Args:
            pods: All pods of the run; only coordinators are queried
            wait: Sleep for the grace period first so the sync can settle
        """
        if wait and self.grace_period > 0:
            logger.info(f"Validating sync in {self.grace_period:g} seconds ...")
            self._sleep(self.grace_period)

        logger.info("Getting status report ...")
        command = f"{self.status_command} {shlex.quote(self.sync_dir)}"

        reports = []
        for pod in pods:
            if pod.role is not Role.COORDINATOR:
                continue

            try:
                outcome = self.executor.execute(pod, ["sh", "-c", command])
            except ExecutionError as e:
                logger.error(f"Status report from {pod.name} failed: {e}")
                reports.append(StatusReport(pod=pod.name, error=str(e)))
                continue

            error = outcome.stderr.strip()
            if not outcome.success and not error:
                error = "status command failed"
            if error:
                logger.error(f"Error:\n{error}")

            reports.append(StatusReport(
                pod=pod.name,
                text=outcome.stdout.decode("utf-8", "replace"),
                error=error,
            ))

        return reports
