"""One-time download of the shared base container."""
import hashlib
import os
from pathlib import Path

import requests

from thinlxc.core.commands import run_command
from thinlxc.core.config import ThinLxcSettings
from thinlxc.core.errors import BaseImageError, ExternalToolError
from thinlxc.core.logger import get_logger
from thinlxc.core.retry import retry

logger = get_logger(__name__)

TARBALL_NAME = "baseCN.tar.gz"
CHUNK_SIZE = 1 << 20


class BaseImageManager:
    """Downloads, verifies and extracts the base image next to its final path."""

    def __init__(self, settings: ThinLxcSettings, timeout: float = 30.0):
        self.settings = settings
        self.timeout = timeout
        self.base_path = Path(settings.base_image_path)
        self.extract_dir = self.base_path.parent
        self.tarball = self.extract_dir / TARBALL_NAME

    def is_available(self) -> bool:
        return (self.base_path / "rootfs").exists()

    def ensure_available(self) -> bool:
        """Make sure the base image is on disk.

        Returns:
            True if it had to be fetched, False if already present

        Raises:
            BaseImageError: If download, checksum or extraction fails
        """
        if self.is_available():
            logger.debug(f"Base image present at {self.base_path}")
            return False

        logger.info(f"Downloading base container from {self.settings.base_image_url}")
        self.download()

        expected = self.expected_md5()
        actual = self.md5sum(self.tarball)
        if expected != actual:
            raise BaseImageError(f"MD5 sum check failed {expected} != {actual}")
        logger.info("Base container checksum verified")

        logger.info(f"Extracting base container to {self.extract_dir}")
        try:
            run_command(["tar", "-C", str(self.extract_dir), "-xf", str(self.tarball)])
        except ExternalToolError as e:
            raise BaseImageError(f"Failed to extract {self.tarball}: {e}") from e

        if not self.is_available():
            raise BaseImageError(f"Archive did not contain {self.base_path}/rootfs")
        return True

    @retry(max_attempts=3, delay=5, backoff=2.0, exceptions=(requests.RequestException,))
    def _fetch(self, url: str) -> requests.Response:
        response = requests.get(url, stream=True, timeout=self.timeout)
        response.raise_for_status()
        return response

    def download(self) -> None:
        try:
            os.makedirs(self.extract_dir, mode=0o700, exist_ok=True)
            response = self._fetch(self.settings.base_image_url)
            with open(self.tarball, 'wb') as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    f.write(chunk)
        except requests.RequestException as e:
            raise BaseImageError(f"Failed to download base image: {e}") from e
        except OSError as e:
            raise BaseImageError(f"Failed to write {self.tarball}: {e}") from e

    def expected_md5(self) -> str:
        try:
            response = self._fetch(self.settings.base_image_md5_url)
        except requests.RequestException as e:
            raise BaseImageError(f"Failed to download base image checksum: {e}") from e
        # the published file may be in md5sum format: "<hash>  <file>"
        fields = response.text.split()
        if not fields:
            raise BaseImageError("Base image checksum file is empty")
        return fields[0].lower()

    @staticmethod
    def md5sum(path: Path) -> str:
        digest = hashlib.md5()
        with open(path, 'rb') as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                digest.update(chunk)
        return digest.hexdigest()
