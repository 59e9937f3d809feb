"""
Fuzzing pod discovery.
"""

from typing import List

from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from aflsync.core.errors import InventoryError
from aflsync.core.models import Pod, Role
from aflsync.kube.client import KubeClient
from aflsync.utils.logging import get_logger

logger = get_logger(__name__)


class Inventory:
    """
    Lists the pods taking part in a fuzzing campaign.

    Roles are derived from the pod name once, here, and carried on the
    Pod from then on.
    """

    def __init__(
        self,
        kube: KubeClient,
        coordinator_prefix: str = "afl-master",
        worker_prefix: str = "afl-worker",
    ):
        self.kube = kube
        self.coordinator_prefix = coordinator_prefix
        self.worker_prefix = worker_prefix

    def list_pods(self, label_selector: str, namespace: str) -> List[Pod]:
        """
        List pods matching a label selector, in API order.

        Raises:
            InventoryError: if the API call fails
        """
        try:
            pod_list = self.kube.core_v1.list_namespaced_pod(
                namespace, label_selector=label_selector
            )
        except (ApiException, HTTPError) as e:
            raise InventoryError(
                f"Could not list pods '{label_selector}' in namespace {namespace}: {e}"
            ) from e

        pods = [self._to_pod(item) for item in pod_list.items]
        logger.debug(f"Found {len(pods)} pods in namespace {namespace}")
        return pods

    def _to_pod(self, item) -> Pod:
        name = item.metadata.name
        containers = item.spec.containers or []
        if not containers:
            raise InventoryError(f"Pod {name} declares no containers")

        return Pod(
            name=name,
            namespace=item.metadata.namespace,
            # Sidecars come after the fuzzer container
            container=containers[0].name,
            role=Role.classify(name, self.coordinator_prefix, self.worker_prefix),
        )
