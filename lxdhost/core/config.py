"""Provisioning configuration: defaults, environment and YAML overrides."""
import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from lxdhost.models.container import ProxyRule

DEFAULT_PROXY_RULES: Tuple[ProxyRule, ...] = (
    ProxyRule("myport80", "tcp:0.0.0.0:80", "tcp:127.0.0.1:80"),
    ProxyRule("myport443", "tcp:0.0.0.0:443", "tcp:127.0.0.1:443"),
    ProxyRule("clpadminport", "tcp:0.0.0.0:8443", "tcp:127.0.0.1:8443"),
)

CONFIG_PATHS = [
    "./lxdhost.yml",
    str(Path.home() / ".config" / "lxdhost" / "lxdhost.yml"),
    "/etc/lxdhost/lxdhost.yml",
]


class ConfigError(ValueError):
    """Raised when a configuration file or value is invalid."""


@dataclass(frozen=True)
class ProvisionConfig:
    """Immutable settings handed to every provisioning component.

    Attributes:
        container_name: Name of the LXD container to create or resume
        image: Base image for ``lxc launch`` (CloudPanel supports Ubuntu 22.04)
        storage_backend: Backend for ``lxd init`` (dir needs no ZFS tooling)
        storage_pool: Storage pool the container lives on
        network: Managed bridge whose presence marks LXD as initialized
        lxd_group: Group that grants non-root access to ``lxc``
        dependencies: Packages installed inside the container
        installer_url: CloudPanel installer script
        panel_port: Port the panel admin UI listens on inside the container
        proxy_rules: Host-to-container port forwards
        boot_timeout: Seconds to wait for the container to report RUNNING
        boot_poll_interval: First delay between container status checks
        address_attempts: Maximum container address lookups
        address_interval: Seconds between address lookups
        panel_probe_timeout: Seconds to wait for the panel port to listen
        panel_probe_interval: Seconds between panel port probes
    """

    container_name: str = "webhost-lxc"
    image: str = "ubuntu:22.04"
    storage_backend: str = "dir"
    storage_pool: str = "default"
    network: str = "lxdbr0"
    lxd_group: str = "lxd"
    dependencies: Tuple[str, ...] = ("curl", "wget", "sudo")
    installer_url: str = "https://installer.cloudpanel.io/ce/v2/install.sh"
    panel_port: int = 8443
    proxy_rules: Tuple[ProxyRule, ...] = field(default=DEFAULT_PROXY_RULES)

    boot_timeout: int = 60
    boot_poll_interval: int = 2
    address_attempts: int = 5
    address_interval: int = 5
    panel_probe_timeout: int = 60
    panel_probe_interval: int = 5

    def __post_init__(self):
        if not self.container_name:
            raise ConfigError("container_name must not be empty")
        if self.storage_backend not in ("dir", "zfs", "btrfs", "lvm", "ceph"):
            raise ConfigError(f"Unsupported storage backend: {self.storage_backend}")
        if self.address_attempts < 1:
            raise ConfigError("address_attempts must be at least 1")
        for name in ("boot_poll_interval", "address_interval", "panel_probe_interval"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("boot_timeout", "panel_probe_timeout"):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative, got {getattr(self, name)}")
        names = [rule.name for rule in self.proxy_rules]
        if len(names) != len(set(names)):
            raise ConfigError("Proxy rule names must be unique")

    @classmethod
    def from_env(cls) -> "ProvisionConfig":
        """Create config from environment variables.

        Environment variables:
            LXDHOST_CONTAINER_NAME: Container name
            LXDHOST_IMAGE: Base image
            LXDHOST_STORAGE_BACKEND: lxd init storage backend
            LXDHOST_STORAGE_POOL: Storage pool name
            LXDHOST_NETWORK: LXD bridge name
            LXDHOST_BOOT_TIMEOUT: Container boot timeout in seconds
            LXDHOST_PANEL_PROBE_TIMEOUT: Panel port probe timeout in seconds
        """
        return cls(
            container_name=os.getenv("LXDHOST_CONTAINER_NAME", cls.container_name),
            image=os.getenv("LXDHOST_IMAGE", cls.image),
            storage_backend=os.getenv("LXDHOST_STORAGE_BACKEND", cls.storage_backend),
            storage_pool=os.getenv("LXDHOST_STORAGE_POOL", cls.storage_pool),
            network=os.getenv("LXDHOST_NETWORK", cls.network),
            boot_timeout=_env_int("LXDHOST_BOOT_TIMEOUT", cls.boot_timeout),
            panel_probe_timeout=_env_int("LXDHOST_PANEL_PROBE_TIMEOUT", cls.panel_probe_timeout),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data view, suitable for YAML output."""
        data = dataclasses.asdict(self)
        data["dependencies"] = list(self.dependencies)
        data["proxy_rules"] = [dataclasses.asdict(rule) for rule in self.proxy_rules]
        return data


def _env_int(var: str, default: int) -> int:
    value = os.getenv(var)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigError(f"{var} must be an integer, got {value!r}") from exc


def find_config(config_path: Optional[str] = None) -> Optional[str]:
    """Locate the configuration file, or None to run on defaults."""
    if config_path:
        return config_path

    if env_config := os.environ.get("LXDHOST_CONFIG"):
        return env_config

    for path in CONFIG_PATHS:
        if Path(path).exists():
            return path

    return None


def _coerce(name: str, value: Any, default: Any) -> Any:
    if name == "proxy_rules":
        if not isinstance(value, list):
            raise ConfigError("proxy_rules must be a list of {name, listen, connect}")
        rules = []
        for entry in value:
            if not isinstance(entry, dict) or set(entry) != {"name", "listen", "connect"}:
                raise ConfigError(f"Invalid proxy rule: {entry!r}")
            try:
                rules.append(ProxyRule(**{k: str(v) for k, v in entry.items()}))
            except ValueError as exc:
                raise ConfigError(str(exc)) from exc
        return tuple(rules)

    if name == "dependencies":
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ConfigError("dependencies must be a list of package names")
        return tuple(value)

    if isinstance(default, bool):
        raise ConfigError(f"Unsupported option type for {name}")
    if isinstance(default, int):
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{name} must be an integer, got {value!r}") from exc

    if not isinstance(value, str):
        raise ConfigError(f"{name} must be a string, got {value!r}")
    return value


def load_config(config_path: Optional[str] = None) -> ProvisionConfig:
    """Build the effective configuration.

    Environment variables override defaults; the YAML file, when one is
    found, overrides both.

    Raises:
        ConfigError: If the file is missing, malformed, or has unknown keys
    """
    base = ProvisionConfig.from_env()
    path = find_config(config_path)
    if path is None:
        return base

    config_file = Path(path)
    if not config_file.exists():
        raise ConfigError(f"Config file not found: {config_file}")

    try:
        with open(config_file) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {config_file}: {exc}") from exc

    if raw is None:
        return base
    if not isinstance(raw, dict):
        raise ConfigError(f"{config_file}: top level must be a mapping")

    known = {f.name: f for f in dataclasses.fields(ProvisionConfig)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise ConfigError(f"{config_file}: unknown option(s): {', '.join(unknown)}")

    overrides = {
        name: _coerce(name, value, getattr(base, name))
        for name, value in raw.items()
    }
    return dataclasses.replace(base, **overrides)
