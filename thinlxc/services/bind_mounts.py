"""Host-side preparation of bind mounts."""
import os
from typing import Dict

from thinlxc.core.errors import NotFoundError, StorageError
from thinlxc.core.logger import get_logger
from thinlxc.models.container import Container

logger = get_logger(__name__)


class BindMountPreparer:
    """Checks mount sources and creates their destinations inside rootfs."""

    def __init__(self, container: Container):
        self.container = container

    def resolve(self, cont_path: str) -> str:
        """Prefix a container path with rootfs unless it already is."""
        rootfs = self.container.rootfs
        if cont_path.startswith(rootfs):
            return cont_path
        return rootfs + cont_path

    @staticmethod
    def wants_file(host_path: str, destination: str) -> bool:
        """Decide whether a missing destination is created as a file.

        Regular files and directories are mirrored; for other sources
        (devices, sockets, fifos) a destination with an extension is a file.

        This differs from deciding by extension alone: a directory mounted at
        `/etc/nginx/conf.d` gets a directory, and a file mounted at `/tmp/y`
        gets an empty file.
        """
        if os.path.isdir(host_path):
            return False
        if os.path.isfile(host_path):
            return True
        return os.path.splitext(destination)[1] != ""

    def prepare(self) -> Dict[str, str]:
        """Ensure every bind mount can be applied by the runtime.

        Missing destinations are created as an empty file or a directory
        matching the source. Existing destinations are left as they are.

        Returns:
            Mapping of host path to resolved destination path

        Raises:
            NotFoundError: If a host source path does not exist
            StorageError: If a destination cannot be created
        """
        resolved = {}
        for host_path, cont_path in self.container.bind_mounts.items():
            if not os.path.exists(host_path):
                raise NotFoundError(f"{host_path} doesn't exist")

            destination = self.resolve(cont_path)
            resolved[host_path] = destination
            if os.path.exists(destination):
                continue

            try:
                if self.wants_file(host_path, destination):
                    os.makedirs(os.path.dirname(destination), mode=0o700, exist_ok=True)
                    open(destination, 'a').close()
                else:
                    os.makedirs(destination, mode=0o700, exist_ok=True)
            except OSError as e:
                raise StorageError(f"Failed to create bind mount target {destination}: {e}") from e
            logger.debug(f"Created bind mount target {destination}")

        return resolved
