"""Tests for the Kubernetes client, inventory and executor."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest


def _api_pod(name, containers=("fuzzer", "metrics"), namespace="kubefuzz"):
    return SimpleNamespace(
        metadata=SimpleNamespace(name=name, namespace=namespace),
        spec=SimpleNamespace(containers=[SimpleNamespace(name=c) for c in containers]),
    )


def _kube():
    from aflsync.kube.client import KubeClient

    return KubeClient(api_client=MagicMock(), core_v1=MagicMock())


class FakeWSClient:
    """Stand-in for kubernetes.stream.ws_client.WSClient in binary mode."""

    def __init__(self, frames):
        self.frames = list(frames)
        self._channels = {}
        self._open = True
        self.written = []
        self.closed = False

    def write_stdin(self, data):
        self.written.append(data)

    def is_open(self):
        return self._open

    def update(self, timeout=0):
        if self.frames:
            channel, data = self.frames.pop(0)
            self._channels[channel] = self._channels.get(channel, b"") + data
        if not self.frames:
            self._open = False

    def peek_stdout(self):
        return self._channels.get(1, b"")

    def peek_stderr(self):
        return self._channels.get(2, b"")

    def read_stdout(self):
        return self._channels.pop(1, b"")

    def read_stderr(self):
        return self._channels.pop(2, b"")

    def read_channel(self, channel):
        return self._channels.pop(channel, b"")

    def close(self):
        self.closed = True


SUCCESS = (3, b'{"metadata":{},"status":"Success"}')
FAILURE = (3, b'{"metadata":{},"status":"Failure","reason":"NonZeroExitCode"}')


class TestKubeClient:
    """Tests for credential bootstrap."""

    def test_in_cluster(self):
        """Test in-cluster credentials are preferred."""
        from aflsync.kube.client import KubeClient

        with patch("aflsync.kube.client.config.load_incluster_config") as incluster, \
                patch("aflsync.kube.client.config.load_kube_config") as kubeconfig:
            kube = KubeClient.connect()
            incluster.assert_called_once()
            kubeconfig.assert_not_called()
            assert kube.core_v1 is not None
            kube.close()

    def test_explicit_kubeconfig(self):
        """Test an explicit kubeconfig path is used."""
        from aflsync.kube.client import KubeClient

        with patch("aflsync.kube.client.config.load_incluster_config") as incluster, \
                patch("aflsync.kube.client.config.load_kube_config") as kubeconfig:
            kube = KubeClient.connect("/tmp/kubeconfig")
            incluster.assert_not_called()
            assert kubeconfig.call_args.kwargs["config_file"] == "/tmp/kubeconfig"
            kube.close()

    def test_no_credentials(self):
        """Test BootstrapError when nothing can be loaded."""
        from kubernetes.config.config_exception import ConfigException

        from aflsync.core.errors import BootstrapError
        from aflsync.kube.client import KubeClient

        with patch("aflsync.kube.client.config.load_incluster_config",
                   side_effect=ConfigException("not in cluster")), \
                patch("aflsync.kube.client.config.load_kube_config",
                      side_effect=ConfigException("no kubeconfig")):
            with pytest.raises(BootstrapError):
                KubeClient.connect()


class TestInventory:
    """Tests for pod listing."""

    def test_list_pods(self):
        """Test order, first container and role ingestion."""
        from aflsync.core.models import Role
        from aflsync.kube.inventory import Inventory

        kube = _kube()
        kube.core_v1.list_namespaced_pod.return_value = SimpleNamespace(items=[
            _api_pod("afl-worker-1", containers=("fuzzer",)),
            _api_pod("afl-master-0"),
            _api_pod("monitor"),
        ])

        pods = Inventory(kube).list_pods("app=kubefuzz", "kubefuzz")

        kube.core_v1.list_namespaced_pod.assert_called_once_with(
            "kubefuzz", label_selector="app=kubefuzz"
        )
        assert [p.name for p in pods] == ["afl-worker-1", "afl-master-0", "monitor"]
        assert [p.role for p in pods] == [Role.WORKER, Role.COORDINATOR, Role.UNSPECIFIED]
        assert pods[1].container == "fuzzer"

    def test_api_error(self):
        """Test InventoryError on API failure."""
        from kubernetes.client.rest import ApiException

        from aflsync.core.errors import InventoryError
        from aflsync.kube.inventory import Inventory

        kube = _kube()
        kube.core_v1.list_namespaced_pod.side_effect = ApiException(status=403, reason="Forbidden")

        with pytest.raises(InventoryError):
            Inventory(kube).list_pods("app=kubefuzz", "kubefuzz")


class TestRemoteExecutor:
    """Tests for exec over the websocket stream."""

    def test_collects_output(self):
        """Test stdout bytes and stderr text are buffered."""
        from aflsync.kube.executor import RemoteExecutor
        from conftest import make_pod

        ws = FakeWSClient([(1, b"\x1f\x8b"), (2, b"warn"), (1, b"\x00\xff"), SUCCESS])
        kube = _kube()
        pod = make_pod("worker-0")

        with patch("aflsync.kube.executor.stream", return_value=ws) as stream:
            outcome = RemoteExecutor(kube, poll_interval=0).execute(pod, ["cat", "x"])

        assert outcome.stdout == b"\x1f\x8b\x00\xff"
        assert outcome.stderr == "warn"
        assert outcome.success
        assert ws.closed

        kwargs = stream.call_args.kwargs
        assert kwargs["container"] == "fuzzer"
        assert kwargs["command"] == ["cat", "x"]
        assert kwargs["stdin"] is False
        assert kwargs["binary"] is True
        assert kwargs["_preload_content"] is False

    def test_writes_stdin(self):
        """Test stdin payload is sent."""
        from aflsync.kube.executor import RemoteExecutor
        from conftest import make_pod

        ws = FakeWSClient([SUCCESS])
        with patch("aflsync.kube.executor.stream", return_value=ws) as stream:
            RemoteExecutor(_kube(), poll_interval=0).execute(
                make_pod("worker-0"), ["sh", "-c", "head -c 3 | wc -c"], stdin=b"abc"
            )

        assert ws.written == [b"abc"]
        assert stream.call_args.kwargs["stdin"] is True

    def test_nonzero_exit(self):
        """Test a failure status clears the success flag."""
        from aflsync.kube.executor import RemoteExecutor
        from conftest import make_pod

        ws = FakeWSClient([(2, b"cat: x: No such file"), FAILURE])
        with patch("aflsync.kube.executor.stream", return_value=ws):
            outcome = RemoteExecutor(_kube(), poll_interval=0).execute(make_pod("worker-0"), ["cat", "x"])

        assert not outcome.success
        assert "No such file" in outcome.stderr

    def test_missing_exit_status(self):
        """Test a stream that closes without an exit status is an execution error."""
        from aflsync.core.errors import ExecutionError
        from aflsync.kube.executor import RemoteExecutor
        from conftest import make_pod

        ws = FakeWSClient([(1, b"\x1f\x8b\x08partial")])
        with patch("aflsync.kube.executor.stream", return_value=ws):
            with pytest.raises(ExecutionError) as exc:
                RemoteExecutor(_kube(), poll_interval=0).execute(make_pod("worker-0"), ["cat", "x"])

        assert "without an exit status" in str(exc.value)
        assert ws.closed

    def test_truncated_stats_not_returned(self):
        """Test a cut-off fuzzer_stats read never reaches the caller."""
        from aflsync.core.errors import ExecutionError
        from aflsync.kube.executor import RemoteExecutor
        from aflsync.sync.archive import ArchiveTransfer
        from conftest import make_pod

        ws = FakeWSClient([(1, b"execs_do")])
        transfer = ArchiveTransfer(RemoteExecutor(_kube(), poll_interval=0))
        with patch("aflsync.kube.executor.stream", return_value=ws):
            with pytest.raises(ExecutionError):
                transfer.read_stats(make_pod("worker-0"))

    def test_channel_error(self):
        """Test ExecutionError when the channel cannot be opened."""
        from kubernetes.client.rest import ApiException

        from aflsync.core.errors import ExecutionError
        from aflsync.kube.executor import RemoteExecutor
        from conftest import make_pod

        with patch("aflsync.kube.executor.stream", side_effect=ApiException(status=404, reason="Not Found")):
            with pytest.raises(ExecutionError):
                RemoteExecutor(_kube()).execute(make_pod("worker-0"), ["true"])

    def test_stream_aborted(self):
        """Test ExecutionError when the stream breaks."""
        from websocket import WebSocketConnectionClosedException

        from aflsync.core.errors import ExecutionError
        from aflsync.kube.executor import RemoteExecutor
        from conftest import make_pod

        ws = FakeWSClient([(1, b"partial")])
        ws.update = MagicMock(side_effect=WebSocketConnectionClosedException("gone"))

        with patch("aflsync.kube.executor.stream", return_value=ws):
            with pytest.raises(ExecutionError):
                RemoteExecutor(_kube(), poll_interval=0).execute(make_pod("worker-0"), ["true"])
        assert ws.closed
