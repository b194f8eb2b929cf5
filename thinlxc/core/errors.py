"""Exception hierarchy for container lifecycle operations."""
from typing import Sequence


class ThinLxcError(Exception):
    """Base exception for all thin-lxc errors."""

    pass


class ValidationError(ThinLxcError):
    """Raised for bad parameters or name collisions, before any side effect."""

    pass


class ConflictError(ThinLxcError):
    """Raised when the runtime state forbids the operation (e.g. destroy while running)."""

    pass


class AlreadyExistsError(ThinLxcError):
    """Raised when a resource that must be created is already present."""

    pass


class NotFoundError(ThinLxcError):
    """Raised when a container record or a bind mount source is missing."""

    pass


class StorageError(ThinLxcError):
    """Raised when a filesystem create/write fails."""

    pass


class BaseImageError(ThinLxcError):
    """Raised when the base image cannot be downloaded or verified."""

    pass


class ExternalToolError(ThinLxcError):
    """Raised when an external command exits non-zero.

    Carries the command line and the combined stdout+stderr of the tool.
    """

    def __init__(self, command: Sequence[str], returncode: int, output: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.output = output or ""
        detail = self.output.strip() or "no output"
        super().__init__(
            f"{' '.join(self.command)} exited with status {returncode}: {detail}"
        )


class MountError(ExternalToolError):
    """mount/umount failure."""

    pass


class FirewallError(ExternalToolError):
    """iptables failure."""

    pass


class RuntimeCommandError(ExternalToolError):
    """lxc-* command failure."""

    pass
