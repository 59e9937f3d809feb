"""Shared fixtures for aflsync tests."""

import subprocess
from pathlib import Path

import pytest

from aflsync.core.errors import ExecutionError
from aflsync.core.models import ExecOutcome, Pod, Role


def make_pod(name: str, role: Role = None) -> Pod:
    if role is None:
        role = Role.classify(name, coordinator_prefix="coordinator", worker_prefix="worker")
    return Pod(name=name, namespace="kubefuzz", container="fuzzer", role=role)


class RecordingExecutor:
    """Executor double that records calls and replays scripted outcomes."""

    def __init__(self, outcomes=None, unreachable=()):
        self.calls = []
        self.outcomes = outcomes or {}
        self.unreachable = set(unreachable)

    def execute(self, pod, argv, stdin=None):
        self.calls.append((pod.name, list(argv), stdin))
        if pod.name in self.unreachable:
            raise ExecutionError(f"pod {pod.name} unreachable")
        outcome = self.outcomes.get(pod.name)
        if callable(outcome):
            return outcome(argv, stdin)
        return outcome or ExecOutcome()


class LocalPodExecutor:
    """
    Runs pod commands as local processes.

    Every pod gets its own directory under root which acts as the working
    directory of its container.
    """

    def __init__(self, root: Path, unreachable=()):
        self.root = root
        self.unreachable = set(unreachable)
        self.calls = []

    def pod_dir(self, name: str) -> Path:
        return self.root / name

    def execute(self, pod, argv, stdin=None):
        self.calls.append((pod.name, list(argv), stdin))
        if pod.name in self.unreachable:
            raise ExecutionError(f"pod {pod.name} unreachable")

        proc = subprocess.run(
            list(argv),
            cwd=self.pod_dir(pod.name),
            input=stdin if stdin is not None else b"",
            capture_output=True,
        )
        return ExecOutcome(
            stdout=proc.stdout,
            stderr=proc.stderr.decode("utf-8", "replace"),
            success=proc.returncode == 0,
        )


@pytest.fixture
def fleet():
    """coordinator-0, worker-0, worker-1 in inventory order."""
    return [make_pod("coordinator-0"), make_pod("worker-0"), make_pod("worker-1")]


@pytest.fixture
def recording_executor():
    return RecordingExecutor()


@pytest.fixture
def local_fleet(tmp_path, fleet):
    """A fleet whose pods are local directories with their own AFL output."""
    executor = LocalPodExecutor(tmp_path)
    for pod in fleet:
        own = executor.pod_dir(pod.name) / "sync" / pod.name
        (own / "queue").mkdir(parents=True)
        (own / "queue" / f"id:000000,orig:{pod.name}").write_bytes(pod.name.encode() * 4)
        (own / "fuzzer_stats").write_text(f"afl_banner        : {pod.name}\nexecs_done        : 100\n")
    return fleet, executor
