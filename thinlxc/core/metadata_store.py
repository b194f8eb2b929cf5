"""Durable per-container records under the containers root."""
import json
from pathlib import Path
from typing import List

from thinlxc.core.errors import NotFoundError, StorageError
from thinlxc.core.logger import get_logger
from thinlxc.models.container import SCHEMA_VERSION, Container

logger = get_logger(__name__)

METADATA_FILE = ".metadata.json"


class MetadataStore:
    """Reads and writes `{containers_root}/{name}/.metadata.json`.

    The record is the single source of truth for destroy and reload; the
    in-memory Container never outlives the process that built it.
    """

    def __init__(self, containers_root: str):
        self.containers_root = Path(containers_root)

    def record_path(self, name: str) -> Path:
        return self.containers_root / name / METADATA_FILE

    def exists(self, name: str) -> bool:
        """Check whether anything already occupies the container's root."""
        return (self.containers_root / name).exists()

    def persist(self, container: Container) -> None:
        """Write the full record atomically.

        Raises:
            StorageError: If the container root is not writable
        """
        target = Path(container.metadata_path)
        temp_file = target.with_suffix('.tmp')
        try:
            with open(temp_file, 'w') as f:
                json.dump(container.to_record(), f, indent=2, sort_keys=True)
            temp_file.rename(target)
        except OSError as e:
            raise StorageError(f"Failed to persist metadata for {container.name}: {e}") from e
        logger.debug(f"Persisted metadata to {target}")

    def load(self, name: str) -> Container:
        """Read a container record.

        Raises:
            NotFoundError: If the record is absent or unparsable
        """
        path = self.record_path(name)
        try:
            with open(path) as f:
                record = json.load(f)
        except FileNotFoundError as e:
            raise NotFoundError(f"No container named {name} ({path} missing)") from e
        except (OSError, json.JSONDecodeError) as e:
            raise NotFoundError(f"Unreadable metadata for {name}: {e}") from e

        if not isinstance(record, dict):
            raise NotFoundError(f"Unreadable metadata for {name}: not a JSON object")

        version = record.get("schema_version", 0)
        if isinstance(version, int) and version > SCHEMA_VERSION:
            logger.warning(
                f"Metadata for {name} has schema version {version}, "
                f"newer than supported {SCHEMA_VERSION}; unknown fields are kept"
            )

        try:
            return Container.from_record(record)
        except (TypeError, ValueError) as e:
            raise NotFoundError(f"Unreadable metadata for {name}: {e}") from e

    def enumerate(self) -> List[str]:
        """List container names that have a persisted record.

        Directories without a record (partial creates, foreign dirs) are skipped.
        """
        if not self.containers_root.is_dir():
            return []

        names = []
        for entry in sorted(self.containers_root.iterdir()):
            if not entry.is_dir():
                continue
            if (entry / METADATA_FILE).is_file():
                names.append(entry.name)
            else:
                logger.debug(f"Skipping {entry}: no {METADATA_FILE}")
        return names
