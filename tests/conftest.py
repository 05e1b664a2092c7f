"""Shared test fixtures for lxdhost tests."""
import shlex
from typing import Dict, List, Optional, Set

import pytest
import yaml

from lxdhost.core.config import ProvisionConfig
from lxdhost.core.runner import CommandResult, CommandRunner


class SimulatedHost(CommandRunner):
    """In-memory stand-in for a host with apt, snap, LXD and one container.

    Mutating commands change the simulated state, so a second provisioning
    run sees the effects of the first. Every command is recorded in
    ``calls`` and every sleep in ``sleeps``.
    """

    def __init__(self):
        super().__init__(mock=False)
        self.calls: List[List[str]] = []
        self.sleeps: List[float] = []
        self.failures: Dict[str, str] = {}

        self.snap_installed = False
        self.lxd_installed = False
        self.pools: Set[str] = set()
        self.networks: Set[str] = set()
        self.containers: Dict[str, str] = {}
        self.siblings: Dict[str, str] = {}
        self.address: Optional[str] = "10.0.3.15"
        self.address_after_lookups = 0
        self.devices: Dict[str, Dict[str, str]] = {}
        self.panel_listening = False
        self.installer_starts_panel = True
        self.sudo_user = ""
        self.groups: Dict[str, Set[str]] = {}
        self._lookups = 0

    # -- scenario helpers -------------------------------------------------

    def provisioned(self, name: str = "webhost-lxc") -> "SimulatedHost":
        """Put the host in the state a successful run leaves behind."""
        self.snap_installed = True
        self.lxd_installed = True
        self.pools.add("default")
        self.networks.add("lxdbr0")
        self.containers[name] = "RUNNING"
        self.panel_listening = True
        for rule in ProvisionConfig().proxy_rules:
            self.devices[rule.name] = {
                "type": "proxy", "listen": rule.listen, "connect": rule.connect,
            }
        return self

    def fail(self, prefix: str, stderr: str = "boom") -> None:
        """Make every command starting with ``prefix`` exit 1."""
        self.failures[prefix] = stderr

    def commands(self, prefix: str) -> List[List[str]]:
        return [cmd for cmd in self.calls if shlex.join(cmd).startswith(prefix)]

    def mutations(self) -> List[str]:
        mutating = (
            "apt-get install", "snap install", "usermod", "lxd init",
            "lxc storage create", "lxc launch", "lxc start", "lxc config device add",
        )
        return [shlex.join(cmd) for cmd in self.calls if shlex.join(cmd).startswith(mutating)]

    # -- CommandRunner interface -----------------------------------------

    def which(self, name: str) -> Optional[str]:
        if name == "snap" and not self.snap_installed:
            return None
        return f"/usr/bin/{name}"

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)

    def run(self, cmd, env=None, interactive=False, timeout=None) -> CommandResult:
        cmd = [str(part) for part in cmd]
        self.calls.append(cmd)
        line = shlex.join(cmd)
        for prefix, stderr in self.failures.items():
            if line.startswith(prefix):
                return CommandResult(cmd, 1, stderr=stderr)
        if cmd[0] == "lxc" and len(cmd) > 2 and cmd[1] == "exec":
            return self._exec(cmd)
        return self._host(cmd)

    def _ok(self, cmd, stdout=""):
        return CommandResult(cmd, 0, stdout=stdout)

    def _missing(self, cmd, what="not found"):
        return CommandResult(cmd, 1, stderr=f"Error: {what}")

    def _host(self, cmd) -> CommandResult:
        head = cmd[:3]

        if cmd[0] == "apt-get":
            if cmd[1:4] == ["install", "-y", "snapd"]:
                self.snap_installed = True
            return self._ok(cmd)
        if cmd[:3] == ["snap", "list", "lxd"]:
            return self._ok(cmd, "lxd 5.21") if self.lxd_installed else self._missing(cmd)
        if cmd[:3] == ["snap", "install", "lxd"]:
            self.lxd_installed = True
            return self._ok(cmd)
        if cmd[0] == "logname":
            return self._ok(cmd, self.sudo_user + "\n") if self.sudo_user else self._missing(cmd)
        if cmd[:2] == ["id", "-nG"]:
            return self._ok(cmd, " ".join(sorted(self.groups.get(cmd[2], {cmd[2]}))))
        if cmd[0] == "usermod":
            self.groups.setdefault(cmd[4], {cmd[4]}).add(cmd[3])
            return self._ok(cmd)
        if cmd[:3] == ["lxd", "init", "--auto"]:
            self.pools.add("default")
            self.networks.add("lxdbr0")
            return self._ok(cmd)

        if head == ["lxc", "storage", "show"]:
            return self._ok(cmd) if cmd[3] in self.pools else self._missing(cmd)
        if head == ["lxc", "storage", "create"]:
            self.pools.add(cmd[3])
            return self._ok(cmd)
        if head == ["lxc", "network", "show"]:
            return self._ok(cmd) if cmd[3] in self.networks else self._missing(cmd)
        if cmd[:2] == ["lxc", "info"]:
            return self._info(cmd)
        if cmd[:2] == ["lxc", "launch"]:
            self.containers[cmd[3]] = "RUNNING"
            return self._ok(cmd)
        if cmd[:2] == ["lxc", "start"]:
            self.containers[cmd[2]] = "RUNNING"
            return self._ok(cmd)
        if cmd[:2] == ["lxc", "list"]:
            return self._ok(cmd, self._list_csv(cmd[2]))
        if cmd[:3] == ["lxc", "config", "device"]:
            return self._device(cmd)

        return self._ok(cmd)

    def _address_ready(self) -> bool:
        self._lookups += 1
        return self.address is not None and self._lookups > self.address_after_lookups

    def _list_csv(self, pattern) -> str:
        # a plain filter matches by name prefix, ^name$ matches exactly
        if pattern.startswith("^") and pattern.endswith("$"):
            matches = lambda name: name == pattern[1:-1]
        else:
            matches = lambda name: name.startswith(pattern)

        rows = []
        for name in sorted({**self.siblings, **self.containers}):
            if not matches(name):
                continue
            if name in self.siblings:
                address = self.siblings[name]
            elif self.containers[name] == "RUNNING" and self._address_ready():
                address = self.address
            else:
                address = ""
            rows.append(f'"{address} (eth0)"' if address else '""')
        return "".join(row + "\n" for row in rows)

    def _info(self, cmd) -> CommandResult:
        name = cmd[2]
        if name not in self.containers:
            return self._missing(cmd, f"Instance not found: {name}")
        status = self.containers[name]
        return self._ok(cmd, f"Name: {name}\nStatus: {status}\nType: container\n")

    def _device(self, cmd) -> CommandResult:
        action, name = cmd[3], cmd[4]
        if name not in self.containers:
            return self._missing(cmd, "Instance not found")
        if action == "get":
            device = self.devices.get(cmd[5])
            return self._ok(cmd, device["type"]) if device else self._missing(cmd, "Device doesn't exist")
        if action == "add":
            options = dict(arg.split("=", 1) for arg in cmd[7:])
            self.devices[cmd[5]] = {"type": cmd[6], **options}
            return self._ok(cmd)
        if action == "show":
            return self._ok(cmd, yaml.safe_dump(self.devices))
        return self._ok(cmd)

    def _exec(self, cmd) -> CommandResult:
        inner = cmd[cmd.index("--") + 1:]
        if self.containers.get(cmd[2]) != "RUNNING":
            return self._missing(cmd, "Instance is not running")
        if inner[:2] == ["ss", "-tulnp"]:
            lines = ["Netid State  Recv-Q Send-Q Local Address:Port Peer Address:Port"]
            lines.append("tcp   LISTEN 0      511    0.0.0.0:80        0.0.0.0:*")
            if self.panel_listening:
                lines.append("tcp   LISTEN 0      511    *:8443            *:*")
            return self._ok(cmd, "\n".join(lines) + "\n")
        if inner[:2] == ["bash", "-c"]:
            if self.installer_starts_panel:
                self.panel_listening = True
            return CommandResult(cmd, 0)
        return self._ok(cmd)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep the caller's environment out of config and user detection."""
    for var in (
        "LXDHOST_MOCK", "LXDHOST_CONFIG", "LXDHOST_CONTAINER_NAME", "LXDHOST_IMAGE",
        "LXDHOST_STORAGE_BACKEND", "LXDHOST_STORAGE_POOL", "LXDHOST_NETWORK",
        "LXDHOST_BOOT_TIMEOUT", "LXDHOST_PANEL_PROBE_TIMEOUT", "SUDO_USER",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def config():
    """Default provisioning config."""
    return ProvisionConfig()


@pytest.fixture
def host():
    """A fresh host: no snapd, no LXD, no container."""
    return SimulatedHost()


@pytest.fixture
def provisioned_host():
    """A host after a successful provisioning run."""
    return SimulatedHost().provisioned()


@pytest.fixture
def as_root(monkeypatch):
    monkeypatch.setattr("lxdhost.core.privilege.os.geteuid", lambda: 0)


@pytest.fixture
def as_user(monkeypatch):
    monkeypatch.setattr("lxdhost.core.privilege.os.geteuid", lambda: 1000)
