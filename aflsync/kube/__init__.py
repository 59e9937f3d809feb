"""Kubernetes transport, pod inventory and remote execution."""

from aflsync.kube.client import KubeClient
from aflsync.kube.inventory import Inventory
from aflsync.kube.executor import RemoteExecutor

__all__ = ["KubeClient", "Inventory", "RemoteExecutor"]
