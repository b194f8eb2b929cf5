"""Overlay filesystem backing a container's root."""
import os
import shutil
import time
from pathlib import Path

from thinlxc.core.commands import run_command
from thinlxc.core.errors import MountError, StorageError
from thinlxc.core.logger import get_logger
from thinlxc.models.container import Container

logger = get_logger(__name__)

UNMOUNT_BACKOFF = 1.0


class OverlayFilesystem:
    """Creates and tears down the read-only + writable layer pair.

    The base image is the lower layer, `wr_layer` the upper one, and the merged
    view is mounted on `ro_layer`.
    """

    def __init__(self, container: Container, fstype: str = "overlay"):
        self.container = container
        self.fstype = fstype

    def setup(self) -> None:
        """Create the layer directories (no-op if present).

        Raises:
            StorageError: If a directory cannot be created
        """
        c = self.container
        try:
            for path in (c.ro_layer, c.wr_layer, c.work_layer):
                os.makedirs(path, mode=0o700, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to set up layers for {c.name}: {e}") from e

    def mount_options(self) -> str:
        c = self.container
        options = f"upperdir={c.wr_layer},lowerdir={c.base_image_path}"
        # legacy overlayfs predates workdir
        if self.fstype == "overlay":
            options += f",workdir={c.work_layer}"
        return options

    def mount(self) -> None:
        """Mount the merged view on ro_layer.

        Callers check is_mounted() first; mounting twice stacks mounts.

        Raises:
            MountError: If the base image is missing or mount exits non-zero
        """
        c = self.container
        cmd = ["mount", "-t", self.fstype, "-o", self.mount_options(), "none", c.ro_layer]
        if not os.path.isdir(c.base_image_path):
            raise MountError(cmd, 1, f"base image {c.base_image_path} does not exist")

        logger.info(f"Mounting {self.fstype} for {c.name} on {c.ro_layer}")
        run_command(cmd, MountError)

    def unmount(self, max_retries: int = 5) -> None:
        """Unmount ro_layer, retrying busy mounts.

        Args:
            max_retries: Extra attempts after the first failure, 1s apart

        Raises:
            MountError: The last failure once all attempts are spent
        """
        c = self.container
        cmd = ["umount", c.ro_layer]
        logger.info(f"Unmounting {c.ro_layer}")

        for attempt in range(max_retries + 1):
            try:
                run_command(cmd, MountError)
                return
            except MountError as e:
                if attempt == max_retries:
                    logger.error(f"Giving up on {c.ro_layer} after {attempt + 1} attempt(s): {e}")
                    raise
                logger.warning(f"Unmount of {c.ro_layer} failed, retrying in {UNMOUNT_BACKOFF:.0f}s: {e}")
                time.sleep(UNMOUNT_BACKOFF)

    def is_mounted(self) -> bool:
        """Presence of rootfs stands in for a mount-table lookup."""
        return os.path.exists(self.container.rootfs)

    def cleanup(self) -> None:
        """Remove the whole container root. Only valid once unmounted.

        Raises:
            StorageError: If removal fails
        """
        path = Path(self.container.path)
        if not path.exists():
            return
        logger.info(f"Removing {path}")
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise StorageError(f"Failed to remove {path}: {e}") from e
