"""Shared test fixtures for thin-lxc tests.

`fake_host` replaces subprocess.run with an in-memory host that understands
mount/umount, iptables and the lxc tools, so lifecycle code runs unprivileged.
"""
import os
import shutil
import subprocess
import time
from pathlib import Path

import pytest

from thinlxc.core.config import ThinLxcSettings
from thinlxc.services.lifecycle import ContainerLifecycle


class FakeHost:
    """Simulated host tools.

    A mount copies the lower then the upper layer onto the target; an unmount
    folds the merged view back into the upper layer and empties the target.
    """

    def __init__(self):
        self.mounts = {}
        self.rules = set()
        self.states = {}
        self.busy = {}
        self.broken = set()
        # tool -> (exception, substring of the command line it applies to)
        self.raising = {}
        self.calls = []

    def run(self, cmd, stdout=None, stderr=None, text=None, check=False, **kwargs):
        cmd = list(cmd)
        self.calls.append(cmd)
        tool = cmd[0]
        if tool in self.raising:
            error, match = self.raising[tool]
            if match in " ".join(cmd):
                raise error
        if tool in self.broken:
            rc, out = 1, f"{tool}: simulated failure"
        else:
            handler = getattr(self, "_" + tool.replace("-", "_"))
            rc, out = handler(cmd)
        return subprocess.CompletedProcess(cmd, rc, stdout=out, stderr=None)

    def calls_to(self, tool):
        return [c for c in self.calls if c[0] == tool]

    def reboot(self):
        """Drop every mount and firewall rule, as a host restart would."""
        for target in list(self.mounts):
            self._umount(["umount", target])
        self.rules.clear()
        self.states.clear()

    def _mount(self, cmd):
        target = cmd[-1]
        options = dict(o.split("=", 1) for o in cmd[cmd.index("-o") + 1].split(","))
        if target in self.mounts:
            return 32, f"mount: {target}: already mounted"
        if not os.path.isdir(target):
            return 32, f"mount: {target}: mount point does not exist"
        shutil.copytree(options["lowerdir"], target, dirs_exist_ok=True)
        shutil.copytree(options["upperdir"], target, dirs_exist_ok=True)
        self.mounts[target] = options["upperdir"]
        return 0, ""

    def _umount(self, cmd):
        target = cmd[1]
        if self.busy.get(target, 0) > 0:
            self.busy[target] -= 1
            return 32, f"umount: {target}: target is busy"
        if target not in self.mounts:
            return 32, f"umount: {target}: not mounted"
        upper = self.mounts.pop(target)
        shutil.copytree(target, upper, dirs_exist_ok=True)
        for entry in Path(target).iterdir():
            if entry.is_dir():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        return 0, ""

    def _iptables(self, cmd):
        action, rule = cmd[3], tuple(cmd[4:])
        if action == "-C":
            if rule in self.rules:
                return 0, ""
            return 1, "iptables: Bad rule (does a matching rule exist in that chain?)."
        if action == "-A":
            self.rules.add(rule)
            return 0, ""
        if action == "-D":
            if rule not in self.rules:
                return 1, "iptables: Bad rule (does a matching rule exist in that chain?)."
            self.rules.remove(rule)
            return 0, ""
        return 2, f"iptables: unknown action {action}"

    def _lxc_info(self, cmd):
        name = cmd[2]
        state = self.states.get(name, "STOPPED")
        return 0, f"Name:           {name}\nState:          {state}\n"

    def _lxc_start(self, cmd):
        self.states[cmd[2]] = "RUNNING"
        return 0, ""

    def _lxc_stop(self, cmd):
        self.states[cmd[2]] = "STOPPED"
        return 0, ""


@pytest.fixture
def fake_host(monkeypatch):
    """Install the simulated host tools."""
    host = FakeHost()
    monkeypatch.setattr(subprocess, "run", host.run)
    return host


@pytest.fixture
def sleeps(monkeypatch):
    """Record retry and backoff sleeps instead of sleeping."""
    recorded = []
    monkeypatch.setattr(time, "sleep", recorded.append)
    return recorded


@pytest.fixture
def base_image(tmp_path):
    """Minimal base container: rootfs with the directories templates target."""
    base = tmp_path / "baseCN"
    for sub in ("rootfs/etc/network", "rootfs/etc/init", "rootfs/tmp"):
        (base / sub).mkdir(parents=True)
    (base / "rootfs/etc/hostname").write_text("baseCN\n")
    return base


@pytest.fixture
def settings(tmp_path, base_image):
    """Settings pointing every host path into tmp_path."""
    return ThinLxcSettings(
        containers_root=str(tmp_path / "containers"),
        base_image_path=str(base_image),
        lock_file=str(tmp_path / "run" / "operation.lock"),
        poll_interval=0.01,
        settle_delay=0.0,
        wait_timeout=2.0,
    )


@pytest.fixture
def lifecycle(settings, fake_host, sleeps):
    """ContainerLifecycle wired to the fake host."""
    return ContainerLifecycle(settings)
