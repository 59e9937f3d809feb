"""
Kubernetes API handle.

Built once per run and passed to the inventory and the executor.
"""

from dataclasses import dataclass
from typing import Optional

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from aflsync.core.errors import BootstrapError
from aflsync.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class KubeClient:
    """Authenticated API client plus the CoreV1 surface built on it."""
    api_client: client.ApiClient
    core_v1: client.CoreV1Api

    @classmethod
    def connect(cls, kubeconfig: Optional[str] = None) -> "KubeClient":
        """
        Load credentials and build the API handle.

        Uses the service account when running inside the cluster. An explicit
        kubeconfig path wins; outside a cluster the default kubeconfig is
        tried as a fallback.

        Args:
            kubeconfig: Optional path to a kubeconfig file

        Returns:
            Connected KubeClient

        Raises:
            BootstrapError: if no usable credentials were found
        """
        configuration = client.Configuration()

        try:
            if kubeconfig:
                config.load_kube_config(
                    config_file=kubeconfig, client_configuration=configuration
                )
                logger.debug(f"Loaded kubeconfig from {kubeconfig}")
            else:
                try:
                    config.load_incluster_config(client_configuration=configuration)
                    logger.debug("Loaded in-cluster service account credentials")
                except ConfigException:
                    config.load_kube_config(client_configuration=configuration)
                    logger.debug("Not running in a cluster, loaded default kubeconfig")
        except (ConfigException, OSError) as e:
            raise BootstrapError(f"Could not load Kubernetes credentials: {e}") from e

        api_client = client.ApiClient(configuration)
        return cls(api_client=api_client, core_v1=client.CoreV1Api(api_client))

    def close(self) -> None:
        self.api_client.close()
