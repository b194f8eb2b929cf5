"""Container lifecycle: create, destroy, reload."""
import os
from typing import List, Optional

from thinlxc.core.config import ThinLxcSettings
from thinlxc.core.errors import ConflictError, ThinLxcError, ValidationError
from thinlxc.core.logger import get_logger
from thinlxc.core.metadata_store import MetadataStore
from thinlxc.models.container import Container
from thinlxc.models.state import ContainerState, ContainerStatus, ReloadReport
from thinlxc.services.bind_mounts import BindMountPreparer
from thinlxc.services.config_renderer import ConfigRenderer
from thinlxc.services.overlay import OverlayFilesystem
from thinlxc.services.port_forward import PortForwarder
from thinlxc.services.runtime import LxcRuntime

logger = get_logger(__name__)


class ContainerLifecycle:
    """Sequences the filesystem, bind mount and forwarding steps of a container.

    Steps run in order and the first failure propagates. Nothing is rolled
    back; a later destroy or reload converges partial state.
    """

    def __init__(self, settings: ThinLxcSettings, runtime: Optional[LxcRuntime] = None):
        self.settings = settings
        self.store = MetadataStore(settings.containers_root)
        self.runtime = runtime or LxcRuntime()
        self.renderer = ConfigRenderer(settings)

    def overlay(self, container: Container) -> OverlayFilesystem:
        return OverlayFilesystem(container, fstype=self.settings.fstype)

    def forwarder(self, container: Container) -> PortForwarder:
        return PortForwarder(container, subnet=self.settings.subnet)

    def new_container(
        self,
        name: str,
        ports: str = "",
        hostname: str = "",
        ip: str = "",
        bind_mounts: str = "",
        base_image_path: Optional[str] = None,
    ) -> Container:
        """Build a Container from CLI-style parameters using configured roots."""
        return Container.new(
            containers_root=self.settings.containers_root,
            base_image_path=base_image_path or self.settings.base_image_path,
            name=name,
            ports=ports,
            hostname=hostname,
            ip=ip,
            bind_mounts=bind_mounts,
        )

    def create(self, container: Container) -> str:
        """Lay down, mount and configure a new container.

        Returns:
            Path of the runtime config to pass to lxc-start

        Raises:
            ValidationError: If the name is taken
            ThinLxcError: From the first failing step
        """
        if self.store.exists(container.name):
            raise ValidationError(f"Container with name {container.name} already exists")

        overlay = self.overlay(container)
        logger.info(f"Creating container {container.name}")

        overlay.setup()
        # persisted before mounting so a crash mid-create can be destroyed or reloaded
        self.store.persist(container)
        overlay.mount()
        bind_mounts = BindMountPreparer(container).prepare()
        config_path = self.renderer.write_all(container, bind_mounts)
        self.forwarder(container).forward()

        logger.info(f"✓ Container {container.name} created")
        return config_path

    def destroy(self, name: str) -> None:
        """Remove forwarding, unmount and delete a stopped container.

        Raises:
            NotFoundError: If no record exists for `name`
            ConflictError: If the runtime reports the container running
            ThinLxcError: From the first failing step
        """
        container = self.store.load(name)
        if self.runtime.is_running(name):
            raise ConflictError(f"Container {name} is running. Stop it before destroying it")

        overlay = self.overlay(container)
        logger.info(f"Destroying container {name}")

        self.forwarder(container).unforward()
        if overlay.is_mounted():
            overlay.unmount(self.settings.unmount_retries)
        overlay.cleanup()

        logger.info(f"✓ Container {name} destroyed")

    def reload_one(self, name: str) -> None:
        """Restore mount, config files and forwarding for one container."""
        container = self.store.load(name)
        overlay = self.overlay(container)

        if not overlay.is_mounted():
            overlay.mount()
        if not os.path.exists(container.config_path):
            bind_mounts = BindMountPreparer(container).prepare()
            self.renderer.write_all(container, bind_mounts)

        forwarder = self.forwarder(container)
        if container.wants_forwarding and not forwarder.rule_exists():
            forwarder.forward()

    def reload(self) -> ReloadReport:
        """Re-establish mounts and forwarding lost across a host reboot.

        A failing container is logged and recorded; the sweep continues.
        """
        report = ReloadReport()
        for name in self.store.enumerate():
            try:
                self.reload_one(name)
            except ThinLxcError as e:
                logger.error(f"Unable to reload {name}: {e}")
                report.failures.append((name, e))
                continue
            except Exception as e:
                logger.error(f"Unexpected failure reloading {name}: {e}")
                report.failures.append((name, e))
                continue
            logger.info(f"✓ Reloaded {name}")
            report.succeeded += 1
        return report

    def start(self, name: str) -> str:
        """Start a created container with its rendered config.

        Raises:
            ConflictError: If the container's filesystem is not mounted
        """
        container = self.store.load(name)
        if not self.overlay(container).is_mounted():
            raise ConflictError(f"Container {name} is not mounted; run reload first")
        self.runtime.start(name, container.config_path)
        return container.config_path

    def stop(self, name: str) -> None:
        self.store.load(name)
        self.runtime.stop(name)

    def status(self, name: str) -> ContainerStatus:
        container = self.store.load(name)
        return ContainerStatus(
            name=name,
            state=self.runtime.state(name),
            mounted=self.overlay(container).is_mounted(),
            forwarding=container.wants_forwarding and self.forwarder(container).rule_exists(),
            ip=container.ip,
            host_port=container.host_port,
            port=container.port,
        )

    def list(self) -> List[ContainerStatus]:
        rows = []
        for name in self.store.enumerate():
            try:
                rows.append(self.status(name))
            except ThinLxcError as e:
                logger.warning(f"Skipping {name}: {e}")
                rows.append(ContainerStatus(name, ContainerState.UNKNOWN, False, False))
        return rows
