"""
Data model shared by the inventory, executor and sync engine.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from aflsync.core.errors import RemoteCommandError


class Role(Enum):
    """Role of a fuzzing pod in the campaign."""
    COORDINATOR = "coordinator"
    WORKER = "worker"
    UNSPECIFIED = "unspecified"

    @classmethod
    def classify(
        cls,
        name: str,
        coordinator_prefix: str = "afl-master",
        worker_prefix: str = "afl-worker",
    ) -> "Role":
        """Derive the role from the pod naming convention."""
        if name.startswith(coordinator_prefix):
            return cls.COORDINATOR
        if name.startswith(worker_prefix):
            return cls.WORKER
        return cls.UNSPECIFIED


class SyncMode(Enum):
    """What gets replicated in one run."""
    FULL_DIRECTORY = "full"
    STATS_ONLY = "stats"


@dataclass(frozen=True)
class Pod:
    """A fuzzing pod as returned by the inventory."""
    name: str
    namespace: str
    container: str
    role: Role = Role.UNSPECIFIED

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class SyncJob:
    """One source pod and the pods it pushes to."""
    source: Pod
    targets: Tuple[Pod, ...]
    mode: SyncMode

    def __post_init__(self):
        if self.source in self.targets:
            raise ValueError(f"Pod {self.source.name} cannot be a target of its own sync job")


@dataclass
class Archive:
    """Compressed sync directory pulled out of a source pod."""
    pod_name: str
    data: bytes

    @property
    def filename(self) -> str:
        return f"{self.pod_name}.tar.gz"

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ExecOutcome:
    """Captured result of one remote command."""
    stdout: bytes = b""
    stderr: str = ""
    success: bool = True

    def check(self, description: str, strict_stderr: bool = False) -> "ExecOutcome":
        """
        Raise RemoteCommandError if the command failed.

        Args:
            description: Short name of the operation for the error message
            strict_stderr: Also treat any stderr output as a failure

        Returns:
            self, for chaining
        """
        if not self.success or (strict_stderr and self.stderr.strip()):
            detail = self.stderr.strip() or "remote command failed"
            raise RemoteCommandError(f"{description}: {detail}", stderr=self.stderr)
        return self


@dataclass
class TransferResult:
    """Outcome of a single sync operation."""
    kind: str
    source: str
    target: Optional[str] = None
    ok: bool = True
    error: str = ""
    size: int = 0


@dataclass
class SyncReport:
    """Everything that happened during one fan-out pass."""
    mode: SyncMode
    jobs: List[SyncJob] = field(default_factory=list)
    results: List[TransferResult] = field(default_factory=list)

    def record(self, result: TransferResult) -> TransferResult:
        self.results.append(result)
        return result

    def count(self, kind: str) -> int:
        return sum(1 for r in self.results if r.kind == kind)

    def counts(self) -> Dict[str, int]:
        return dict(Counter(r.kind for r in self.results))

    @property
    def failures(self) -> List[TransferResult]:
        return [r for r in self.results if not r.ok]

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class StatusReport:
    """Fleet status text as seen from one coordinator pod."""
    pod: str
    text: str = ""
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error
