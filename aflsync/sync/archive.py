"""
Archive based transfer of AFL sync directories between pods.
"""

import posixpath
import shlex
from typing import List

from aflsync.core.errors import RemoteCommandError
from aflsync.core.models import Archive, Pod
from aflsync.kube.executor import RemoteExecutor
from aflsync.utils.logging import get_logger

logger = get_logger(__name__)


def _sh(script: str) -> List[str]:
    return ["sh", "-c", script]


class ArchiveTransfer:
    """
    Moves fuzzer state between pods as tar.gz streams.

    Layout inside every pod:
        <sync_dir>/<pod>/                 live output of the local fuzzer
        <staging_dir>/<pod>/              private copy taken before archiving
        <staging_dir>/<pod>.tar.gz        archive of the copy
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        sync_dir: str = "sync",
        staging_dir: str = "/tmp/aflsync",
        stats_file: str = "fuzzer_stats",
    ):
        self.executor = executor
        self.sync_dir = sync_dir.rstrip("/") or "/"
        self.staging_dir = staging_dir.rstrip("/") or "/"
        self.stats_file = stats_file

    def source_path(self, pod_name: str) -> str:
        return posixpath.join(self.sync_dir, pod_name)

    def stats_path(self, pod_name: str) -> str:
        return posixpath.join(self.sync_dir, pod_name, self.stats_file)

    def create(self, pod: Pod) -> Archive:
        """
        Archive a pod's own sync subdirectory and return the bytes.

        The directory is copied first because afl-fuzz keeps writing to it
        and tar fails on files that change while being read.

        Raises:
            ExecutionError: if the exec channel fails
            RemoteCommandError: if copying or archiving fails or yields nothing
        """
        name = shlex.quote(pod.name)
        stage = shlex.quote(self.staging_dir)
        live = shlex.quote(self.source_path(pod.name))

        script = (
            f"mkdir -p {stage} && rm -rf {stage}/{name} && "
            f"cp -r -T {live}/ {stage}/{name}/ && "
            f"tar -czf {stage}/{name}.tar.gz -C {stage} {name}/ && "
            f"cat {stage}/{name}.tar.gz"
        )
        outcome = self.executor.execute(pod, _sh(script))
        outcome.check(f"archiving sync directory on {pod.name}")

        if not outcome.stdout:
            raise RemoteCommandError(
                f"archiving sync directory on {pod.name}: empty archive",
                stderr=outcome.stderr,
            )

        logger.debug(f"Archived {pod.name}: {len(outcome.stdout)} bytes")
        return Archive(pod_name=pod.name, data=outcome.stdout)

    def extract(self, archive: Archive, target: Pod) -> None:
        """
        Unpack an archive under the target's sync root.

        Files that already exist are kept as they are.

        Raises:
            ExecutionError: if the exec channel fails
            RemoteCommandError: if tar reports anything on stderr
        """
        script = (
            f"head -c {archive.size} | "
            f"tar --skip-old-files -xzf - --directory {shlex.quote(self.sync_dir)}"
        )
        outcome = self.executor.execute(target, _sh(script), stdin=archive.data)
        outcome.check(
            f"extracting {archive.filename} on {target.name}", strict_stderr=True
        )

    def cleanup(self, pod: Pod) -> None:
        """
        Remove the staging copy and archive from a source pod.

        Safe to run when neither exists.
        """
        name = shlex.quote(pod.name)
        stage = shlex.quote(self.staging_dir)

        outcome = self.executor.execute(
            pod, _sh(f"rm -rf {stage}/{name} {stage}/{name}.tar.gz")
        )
        outcome.check(f"cleaning up staging files on {pod.name}", strict_stderr=True)

    def read_stats(self, pod: Pod) -> bytes:
        """Read a pod's own fuzzer_stats file."""
        outcome = self.executor.execute(pod, ["cat", self.stats_path(pod.name)])
        outcome.check(f"reading {self.stats_file} on {pod.name}")
        return outcome.stdout

    def write_stats(self, source_name: str, data: bytes, target: Pod) -> None:
        """
        Write another pod's fuzzer_stats into the target's sync root.

        The destination directory is created if missing.
        """
        directory = shlex.quote(self.source_path(source_name))
        path = shlex.quote(self.stats_path(source_name))

        script = f"mkdir -p {directory} && head -c {len(data)} > {path}"
        outcome = self.executor.execute(target, _sh(script), stdin=data)
        outcome.check(
            f"writing {self.stats_file} of {source_name} on {target.name}",
            strict_stderr=True,
        )
