"""
Configuration management for aflsync.
"""

import json
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional


DEFAULT_CONFIG_PATH = Path.home() / ".aflsync" / "config.json"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """
    Main configuration class for aflsync.

    Configuration can be loaded from:
    1. Default values
    2. Config file (~/.aflsync/config.json)
    3. Environment variables (POD_NAMESPACE, SYNC_STATS_ONLY, AFLSYNC_*)
    4. Command line arguments
    """

    # Pod discovery
    namespace: str = "kubefuzz"
    label_selector: str = "app=kubefuzz"
    kubeconfig: Optional[str] = None

    # Sync mode
    stats_only: bool = False

    # Remote layout
    sync_dir: str = "sync"
    staging_dir: str = "/tmp/aflsync"
    stats_file: str = "fuzzer_stats"
    status_command: str = "afl-whatsup -s"

    # Role naming convention
    coordinator_prefix: str = "afl-master"
    worker_prefix: str = "afl-worker"

    # Seconds to wait before asking coordinators for a status report
    grace_period: float = 5.0

    verbose: int = 1

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "Config":
        """
        Load configuration from file and environment.

        Args:
            config_path: Optional path to config file

        Returns:
            Loaded Config instance
        """
        config = cls()

        if config_path:
            config_file = Path(config_path)
        elif DEFAULT_CONFIG_PATH.exists():
            config_file = DEFAULT_CONFIG_PATH
        else:
            config_file = None

        if config_file and config_file.exists():
            with open(config_file) as f:
                config = cls._from_dict(json.load(f))

        # Override with environment variables
        config._load_from_env()

        return config

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def _load_from_env(self) -> None:
        """Load configuration from environment variables."""
        env_mapping = {
            "POD_NAMESPACE": "namespace",
            "SYNC_STATS_ONLY": ("stats_only", _parse_bool),
            "KUBECONFIG": "kubeconfig",
            "AFLSYNC_LABEL_SELECTOR": "label_selector",
            "AFLSYNC_SYNC_DIR": "sync_dir",
            "AFLSYNC_STAGING_DIR": "staging_dir",
            "AFLSYNC_COORDINATOR_PREFIX": "coordinator_prefix",
            "AFLSYNC_WORKER_PREFIX": "worker_prefix",
            "AFLSYNC_GRACE_PERIOD": ("grace_period", float),
            "AFLSYNC_VERBOSE": ("verbose", int),
        }

        for env_var, attr in env_mapping.items():
            value = os.environ.get(env_var)
            if value:
                if isinstance(attr, tuple):
                    attr_name, converter = attr
                    setattr(self, attr_name, converter(value))
                else:
                    setattr(self, attr, value)

    def save(self, config_path: Optional[str] = None) -> None:
        """
        Save configuration to file.

        Args:
            config_path: Optional path for config file
        """
        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def expand_paths(self) -> None:
        """Expand ~ in local path configurations."""
        if self.kubeconfig:
            self.kubeconfig = os.path.expanduser(self.kubeconfig)
