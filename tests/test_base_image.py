"""Tests for base image download and verification."""
import hashlib
import os

import pytest
import requests

from thinlxc.core.errors import BaseImageError
from thinlxc.services.base_image import BaseImageManager

TARBALL = b"not really a tarball"


class FakeResponse:
    def __init__(self, content=b"", status=200):
        self.content = content
        self.status_code = status

    @property
    def text(self):
        return self.content.decode()

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]


class FakeRemote:
    """In-memory download server keyed by URL."""

    def __init__(self):
        self.files = {}
        self.requested = []

    def get(self, url, stream=False, timeout=None):
        self.requested.append(url)
        return self.files[url]


@pytest.fixture
def remote(monkeypatch, settings):
    server = FakeRemote()
    server.files[settings.base_image_url] = FakeResponse(TARBALL)
    server.files[settings.base_image_md5_url] = FakeResponse(
        f"{hashlib.md5(TARBALL).hexdigest()}  baseCN.tar.gz\n".encode()
    )
    monkeypatch.setattr(requests, "get", server.get)
    return server


@pytest.fixture
def missing_base(settings, tmp_path):
    settings.base_image_path = str(tmp_path / "lxc" / "baseCN")
    return settings


@pytest.fixture
def extract(monkeypatch):
    """Pretend tar unpacked baseCN/rootfs into the -C directory."""
    commands = []

    def fake_run(cmd, error_class=None):
        commands.append(cmd)
        target = cmd[cmd.index("-C") + 1]
        os.makedirs(os.path.join(target, "baseCN", "rootfs"))
        return ""

    monkeypatch.setattr("thinlxc.services.base_image.run_command", fake_run)
    return commands


class TestBaseImageManager:

    def test_present_image_is_not_fetched(self, settings, remote):
        manager = BaseImageManager(settings)

        assert manager.is_available()
        assert manager.ensure_available() is False
        assert remote.requested == []

    def test_download_verify_extract(self, missing_base, remote, extract):
        manager = BaseImageManager(missing_base)

        assert manager.ensure_available() is True

        assert manager.tarball.read_bytes() == TARBALL
        assert extract[0] == ["tar", "-C", str(manager.extract_dir), "-xf", str(manager.tarball)]
        assert manager.is_available()

    def test_checksum_mismatch(self, missing_base, remote, extract):
        remote.files[missing_base.base_image_md5_url] = FakeResponse(b"0" * 32)

        with pytest.raises(BaseImageError, match="MD5 sum check failed"):
            BaseImageManager(missing_base).ensure_available()

        assert extract == []

    def test_empty_checksum_file(self, missing_base, remote, extract):
        remote.files[missing_base.base_image_md5_url] = FakeResponse(b"\n")
        with pytest.raises(BaseImageError, match="empty"):
            BaseImageManager(missing_base).ensure_available()

    def test_http_error_retried_then_reported(self, missing_base, remote, sleeps):
        remote.files[missing_base.base_image_url] = FakeResponse(status=503)

        with pytest.raises(BaseImageError, match="Failed to download"):
            BaseImageManager(missing_base).ensure_available()

        assert remote.requested.count(missing_base.base_image_url) == 3
        assert sleeps == [5, 10.0]

    def test_archive_without_rootfs(self, missing_base, remote, monkeypatch):
        monkeypatch.setattr("thinlxc.services.base_image.run_command", lambda cmd, error_class=None: "")
        with pytest.raises(BaseImageError, match="did not contain"):
            BaseImageManager(missing_base).ensure_available()

    def test_md5sum(self, tmp_path):
        path = tmp_path / "blob"
        path.write_bytes(TARBALL)
        assert BaseImageManager.md5sum(path) == hashlib.md5(TARBALL).hexdigest()
