"""Container entity and its persisted record."""
import random
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple

from thinlxc.core.errors import ValidationError

SCHEMA_VERSION = 1

# LXC's registered OUI; the last three octets are random per container
HWADDR_PREFIX = "00:16:3e"


@dataclass
class Container:
    """A copy-on-write container backed by an overlay of the base image."""

    base_image_path: str
    path: str
    ro_layer: str
    wr_layer: str
    work_layer: str
    rootfs: str
    config_path: str
    hostname: str
    ip: str
    inet: str
    hwaddr: str
    name: str
    port: int = 0
    host_port: int = 0
    bind_mounts: Dict[str, str] = field(default_factory=dict)
    # keys from newer records, written back untouched
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(
        cls,
        containers_root: str,
        base_image_path: str,
        name: str,
        ports: str = "",
        hostname: str = "",
        ip: str = "",
        bind_mounts: str = "",
    ) -> "Container":
        """Build a container from user-supplied parameters.

        Name uniqueness on disk is checked by the lifecycle, not here.

        Raises:
            ValidationError: If any parameter is malformed
        """
        validate_name(name)
        host_port, port = parse_ports(ports)
        if host_port and not ip:
            raise ValidationError("Port forwarding requires a static ip")

        path = f"{containers_root.rstrip('/')}/{name}"
        return cls(
            base_image_path=base_image_path,
            path=path,
            **layer_paths(path, name),
            hostname=hostname or name,
            ip=ip,
            inet="manual" if ip else "dhcp",
            hwaddr=random_hwaddr(),
            name=name,
            port=port,
            host_port=host_port,
            bind_mounts=parse_bind_mounts(bind_mounts),
        )

    @property
    def has_static_ip(self) -> bool:
        return len(self.ip) > 0

    @property
    def ip_config(self) -> str:
        return f"{self.ip}/24"

    @property
    def fstab_path(self) -> str:
        return f"{self.ro_layer}/fstab"

    @property
    def metadata_path(self) -> str:
        return f"{self.path}/.metadata.json"

    @property
    def wants_forwarding(self) -> bool:
        return not (self.port == 0 and self.host_port == 0)

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the on-disk JSON record."""
        record = dict(self.extra)
        for f in fields(self):
            if f.name != "extra":
                value = getattr(self, f.name)
                record[f.name] = dict(value) if isinstance(value, dict) else value
        record["schema_version"] = SCHEMA_VERSION
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Container":
        """Rebuild a container from a record written by any schema version.

        Raises:
            ValueError: If required fields are missing
        """
        data = dict(record)
        data.pop("schema_version", None)

        name = data.get("name")
        path = data.get("path")
        if not name or not path:
            raise ValueError("record lacks name or path")

        # fields introduced after the first record layout
        for key, default in layer_paths(path, name).items():
            data.setdefault(key, default)
        data.setdefault("inet", "manual" if data.get("ip") else "dhcp")

        known = {f.name for f in fields(cls)} - {"extra"}
        missing = [k for k in known if k not in data and _required(k)]
        if missing:
            raise ValueError(f"record lacks fields: {', '.join(sorted(missing))}")

        kwargs = {k: data.pop(k) for k in list(data) if k in known}
        kwargs["port"] = int(kwargs.get("port", 0))
        kwargs["host_port"] = int(kwargs.get("host_port", 0))
        kwargs["bind_mounts"] = dict(kwargs.get("bind_mounts") or {})
        return cls(**kwargs, extra=data)


def _required(name: str) -> bool:
    return name not in ("port", "host_port", "bind_mounts")


def layer_paths(path: str, name: str) -> Dict[str, str]:
    """Derive the layer paths under a container root."""
    ro_layer = f"{path}/{name}"
    return {
        "ro_layer": ro_layer,
        "wr_layer": f"{path}/.wlayer",
        "work_layer": f"{path}/.work",
        "rootfs": f"{ro_layer}/rootfs",
        "config_path": f"{ro_layer}/config",
    }


def validate_name(name: str) -> None:
    if not name:
        raise ValidationError("Container name is required")
    if "/" in name or name in (".", ".."):
        raise ValidationError(f"Invalid container name: {name!r}")
    if name.startswith("."):
        raise ValidationError(f"Container name cannot start with '.': {name!r}")


def random_hwaddr(rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    octets = [f"{rng.randint(0, 255):02x}" for _ in range(3)]
    return ":".join([HWADDR_PREFIX] + octets)


def parse_ports(ports: str) -> Tuple[int, int]:
    """Parse 'hostPort:containerPort'.

    Returns:
        (host_port, container_port); (0, 0) when ports is empty

    Raises:
        ValidationError: If the mapping is malformed or out of range
    """
    if not ports:
        return 0, 0

    parts = ports.split(":")
    if len(parts) != 2:
        raise ValidationError(f"Port mapping must be hostPort:containerPort, got {ports!r}")

    try:
        host_port, port = int(parts[0]), int(parts[1])
    except ValueError as e:
        raise ValidationError(f"Ports must be integers, got {ports!r}") from e

    for value in (host_port, port):
        if not 1 <= value <= 65535:
            raise ValidationError(f"Port out of range: {value}")
    return host_port, port


def parse_bind_mounts(mounts: str) -> Dict[str, str]:
    """Parse 'hostPath:containerPath[,hostPath:containerPath...]'.

    Raises:
        ValidationError: On a malformed entry or a duplicated host path
    """
    bind_mounts: Dict[str, str] = {}
    if not mounts:
        return bind_mounts

    for entry in mounts.split(","):
        parts = entry.split(":")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ValidationError(f"Bind mount must be hostPath:containerPath, got {entry!r}")
        host_path, cont_path = parts
        if host_path in bind_mounts:
            raise ValidationError(f"Duplicate bind mount source: {host_path}")
        bind_mounts[host_path] = cont_path
    return bind_mounts
