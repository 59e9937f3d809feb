"""
Error taxonomy for pod synchronization.

Fatal errors abort the whole run; the others are recorded against the
single operation that raised them and the run carries on.
"""


class AflSyncError(Exception):
    """Base class for all aflsync errors."""

    fatal = False


class BootstrapError(AflSyncError):
    """Kubernetes credentials or API transport could not be set up."""

    fatal = True


class InventoryError(AflSyncError):
    """Listing the fuzzing pods failed."""

    fatal = True


class ExecutionError(AflSyncError):
    """The exec channel into a pod could not be opened or broke mid-stream."""


class RemoteCommandError(AflSyncError):
    """The exec channel worked but the remote command reported a failure."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr
