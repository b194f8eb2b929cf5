"""thin-lxc runtime settings.

Settings are resolved once per invocation and validated before any side
effect. Precedence, lowest first: dataclass defaults, the YAML settings file,
THIN_LXC_* environment variables.
"""
import ipaddress
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from thinlxc.core.errors import ValidationError
from thinlxc.core.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SETTINGS_FILE = Path("/etc/thin-lxc/thin-lxc.yml")
ENV_PREFIX = "THIN_LXC_"


@dataclass
class ThinLxcSettings:
    """Settings for lifecycle operations.

    Attributes:
        containers_root: Directory holding one subdirectory per container
        base_image_path: Shared read-only base container (contains rootfs/)
        base_image_url: Tarball downloaded on first use
        base_image_md5_url: Text file with the expected MD5 of the tarball
        fstype: Union filesystem type passed to mount ('overlay' or legacy 'overlayfs')
        bridge: Host bridge the container veth is attached to
        subnet: Private container network; excluded from DNAT matching
        gateway: Default route installed inside containers
        unmount_retries: Extra umount attempts on destroy
        poll_interval: Seconds between state queries while waiting
        settle_delay: Extra seconds after RUNNING is observed
        wait_timeout: Seconds before a state wait gives up (0 = never)
        lock_file: Host-wide operation lock
    """

    containers_root: str = "/containers"
    base_image_path: str = "/var/lib/lxc/baseCN"
    base_image_url: str = "https://s3-eu-west-1.amazonaws.com/thin-lxc/baseCN.tar.gz"
    base_image_md5_url: str = "https://s3-eu-west-1.amazonaws.com/thin-lxc/md5-baseCN.txt"
    fstype: str = "overlay"
    bridge: str = "lxcbr0"
    subnet: str = "10.0.3.0/24"
    gateway: str = "10.0.3.1"
    unmount_retries: int = 5
    poll_interval: float = 0.5
    settle_delay: float = 5.0
    wait_timeout: float = 120.0
    lock_file: str = "/run/thin-lxc/operation.lock"

    @classmethod
    def load(cls, settings_file: Optional[str] = None) -> "ThinLxcSettings":
        """Resolve settings from file and environment.

        Args:
            settings_file: Explicit YAML file; falls back to THIN_LXC_CONFIG,
                then /etc/thin-lxc/thin-lxc.yml when it exists.

        Returns:
            Validated settings
        """
        values: Dict[str, Any] = {}

        path = settings_file or os.environ.get(f"{ENV_PREFIX}CONFIG")
        if path is None and DEFAULT_SETTINGS_FILE.exists():
            path = str(DEFAULT_SETTINGS_FILE)
        if path:
            values.update(cls._read_file(Path(path)))

        values.update(cls._read_env())

        settings = cls(**values)
        settings.validate()
        return settings

    @classmethod
    def _read_file(cls, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise ValidationError(f"Settings file not found: {path}")

        try:
            with open(path) as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in {path}: {e}")
            raise ValidationError(f"Invalid YAML in settings file {path}: {e}") from e
        except OSError as e:
            raise ValidationError(f"Cannot read settings file {path}: {e}") from e

        if not isinstance(raw, dict):
            raise ValidationError(f"Settings file {path} must contain a mapping")

        known = {f.name for f in fields(cls)}
        unknown = set(raw) - known
        if unknown:
            raise ValidationError(
                f"Unknown settings in {path}: {', '.join(sorted(unknown))}"
            )
        logger.debug(f"Loaded settings from {path}")
        return {key: cls._coerce(key, value) for key, value in raw.items()}

    @classmethod
    def _read_env(cls) -> Dict[str, Any]:
        values = {}
        for f in fields(cls):
            raw = os.environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is not None:
                values[f.name] = cls._coerce(f.name, raw)
        return values

    @classmethod
    def _coerce(cls, name: str, value: Any) -> Any:
        """Convert a raw value to the type of the default for `name`."""
        default = next(f.default for f in fields(cls) if f.name == name)
        try:
            return type(default)(value)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid value for {name}: {value!r}") from e

    def validate(self) -> None:
        """Check settings are consistent.

        Raises:
            ValidationError: On the first invalid setting
        """
        for name in ("containers_root", "base_image_path", "lock_file"):
            if not os.path.isabs(getattr(self, name)):
                raise ValidationError(f"{name} must be an absolute path")

        if self.fstype not in ("overlay", "overlayfs"):
            raise ValidationError(f"Unsupported fstype: {self.fstype}")

        try:
            network = ipaddress.IPv4Network(self.subnet)
            gateway = ipaddress.IPv4Address(self.gateway)
        except ValueError as e:
            raise ValidationError(f"Invalid network settings: {e}") from e
        if gateway not in network:
            raise ValidationError(f"Gateway {self.gateway} is outside {self.subnet}")

        if self.unmount_retries < 0:
            raise ValidationError("unmount_retries must be >= 0")
        for name in ("poll_interval", "settle_delay", "wait_timeout"):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name} must be >= 0")
        if self.poll_interval == 0:
            raise ValidationError("poll_interval must be > 0")
