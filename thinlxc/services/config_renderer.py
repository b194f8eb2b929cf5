"""Renders the runtime config and the in-container network files."""
import os
from typing import Dict, List, Optional, Tuple

from jinja2 import BaseLoader, Environment, StrictUndefined, TemplateError

from thinlxc import templates
from thinlxc.core.config import ThinLxcSettings
from thinlxc.core.errors import StorageError
from thinlxc.core.logger import get_logger
from thinlxc.models.container import Container

logger = get_logger(__name__)


class ConfigRenderer:
    """Writes the lxc config plus interfaces, hosts, hostname and gateway files."""

    def __init__(self, settings: ThinLxcSettings):
        self.settings = settings
        self.jinja_env = Environment(
            loader=BaseLoader(),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )

    def targets(self, container: Container) -> List[Tuple[str, str]]:
        """Pairs of (template source, destination path)."""
        rootfs = container.rootfs
        return [
            (templates.LXC_CONFIG, container.config_path),
            (templates.INTERFACES, f"{rootfs}/etc/network/interfaces"),
            (templates.HOSTS, f"{rootfs}/etc/hosts"),
            (templates.HOSTNAME, f"{rootfs}/etc/hostname"),
            (templates.SETUP_GATEWAY, f"{rootfs}/etc/init/setup-gateway.conf"),
        ]

    def render(self, source: str, container: Container,
               bind_mounts: Optional[Dict[str, str]] = None) -> str:
        template = self.jinja_env.from_string(source)
        return template.render(
            c=container,
            settings=self.settings,
            bind_mounts=bind_mounts or {},
        )

    def write_all(self, container: Container,
                  bind_mounts: Optional[Dict[str, str]] = None) -> str:
        """Render every file for a mounted container.

        Args:
            container: Container whose rootfs is mounted
            bind_mounts: Resolved bind mounts from BindMountPreparer

        Returns:
            Path of the runtime config file

        Raises:
            StorageError: If rendering or writing fails
        """
        for source, path in self.targets(container):
            try:
                content = self.render(source, container, bind_mounts)
                os.makedirs(os.path.dirname(path), exist_ok=True)
                with open(path, 'w') as f:
                    f.write(content)
            except TemplateError as e:
                raise StorageError(f"Failed to render {path}: {e}") from e
            except OSError as e:
                raise StorageError(f"Failed to write {path}: {e}") from e
            logger.debug(f"Wrote {path}")

        # lxc.mount points at this file; it must exist even when empty
        fstab = container.fstab_path
        if not os.path.exists(fstab):
            try:
                open(fstab, 'a').close()
            except OSError as e:
                raise StorageError(f"Failed to write {fstab}: {e}") from e

        return container.config_path
