"""
Command execution inside pods over the Kubernetes exec websocket.
"""

import json
from typing import Optional, Sequence, Union

from kubernetes.client.rest import ApiException
from kubernetes.stream import stream
from kubernetes.stream.ws_client import ERROR_CHANNEL
from websocket import WebSocketException

from aflsync.core.errors import ExecutionError
from aflsync.core.models import ExecOutcome, Pod
from aflsync.kube.client import KubeClient
from aflsync.utils.logging import get_logger

logger = get_logger(__name__)


def _as_bytes(data: Union[bytes, str, None]) -> bytes:
    if not data:
        return b""
    if isinstance(data, str):
        return data.encode("utf-8")
    return data


def _exit_status_ok(text: str) -> bool:
    """Interpret the JSON Status object sent on the exec status channel."""
    try:
        status = json.loads(text)
    except ValueError:
        logger.debug(f"Unparseable exec status: {text}")
        return False
    return status.get("status") == "Success"


class RemoteExecutor:
    """
    Runs a command in a pod's first container and buffers its output.

    Every call blocks until the remote process exits. Stdout and stderr are
    held in memory in full, so payloads must fit in memory.

    Example:
        executor = RemoteExecutor(KubeClient.connect())
        outcome = executor.execute(pod, ["cat", "sync/afl-worker-0/fuzzer_stats"])
        print(outcome.stdout.decode())
    """

    def __init__(self, kube: KubeClient, poll_interval: float = 1.0):
        """
        Initialize executor.

        Args:
            kube: Kubernetes API handle
            poll_interval: Seconds to block per websocket read
        """
        self.kube = kube
        self.poll_interval = poll_interval

    def execute(
        self,
        pod: Pod,
        argv: Sequence[str],
        stdin: Optional[bytes] = None,
    ) -> ExecOutcome:
        """
        Execute a command inside a pod.

        The exec protocol cannot close stdin, so a command fed with stdin
        must stop reading on its own (e.g. `head -c N`).

        Args:
            pod: Target pod
            argv: Command and arguments, not interpreted by a shell
            stdin: Optional bytes written to the command's standard input

        Returns:
            ExecOutcome with the captured output

        Raises:
            ExecutionError: if the channel cannot be opened or aborts
        """
        logger.debug(f"exec on {pod.name}/{pod.container}: {' '.join(argv)}")

        try:
            resp = stream(
                self.kube.core_v1.connect_get_namespaced_pod_exec,
                pod.name,
                pod.namespace,
                container=pod.container,
                command=list(argv),
                stdin=stdin is not None,
                stdout=True,
                stderr=True,
                tty=False,
                binary=True,
                _preload_content=False,
            )
        except (ApiException, WebSocketException, OSError) as e:
            raise ExecutionError(f"Could not open exec channel to pod {pod.name}: {e}") from e

        stdout = bytearray()
        stderr = bytearray()
        try:
            if stdin is not None:
                resp.write_stdin(stdin)

            while resp.is_open():
                resp.update(timeout=self.poll_interval)
                if resp.peek_stdout():
                    stdout += _as_bytes(resp.read_stdout())
                if resp.peek_stderr():
                    stderr += _as_bytes(resp.read_stderr())

            # Frames that arrived together with the close
            stdout += _as_bytes(resp.read_stdout())
            stderr += _as_bytes(resp.read_stderr())
            status = _as_bytes(resp.read_channel(ERROR_CHANNEL)).decode("utf-8", "replace").strip()
        except (WebSocketException, OSError) as e:
            raise ExecutionError(f"Exec stream to pod {pod.name} aborted: {e}") from e
        finally:
            resp.close()

        # The API server always reports an exit status when the process ends
        if not status:
            raise ExecutionError(f"Exec stream to pod {pod.name} closed without an exit status")

        return ExecOutcome(
            stdout=bytes(stdout),
            stderr=stderr.decode("utf-8", "replace"),
            success=_exit_status_ok(status),
        )
