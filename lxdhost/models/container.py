"""Container and proxy device models."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ContainerState(Enum):
    """Lifecycle state of the managed container."""
    ABSENT = "absent"
    STOPPED = "stopped"
    RUNNING = "running"


class InstallOutcome(Enum):
    """What is known about the panel after its installer ran.

    The installer is a vendor script that owns its own exit semantics, so
    the only signal is whether the panel port is listening afterwards.
    """
    UNKNOWN = "unknown"
    ALREADY_INSTALLED = "already-installed"
    PROBED_LISTENING = "probed-listening"
    PROBED_NOT_LISTENING = "probed-not-listening"

    @property
    def is_listening(self) -> bool:
        return self in (InstallOutcome.ALREADY_INSTALLED, InstallOutcome.PROBED_LISTENING)


@dataclass(frozen=True)
class ProxyRule:
    """Host-to-container TCP forward backed by an LXD proxy device."""
    name: str
    listen: str  # e.g. tcp:0.0.0.0:80
    connect: str  # e.g. tcp:127.0.0.1:80

    def __post_init__(self):
        if not self.name:
            raise ValueError("Proxy rule must have a device name")
        for field_name in ("listen", "connect"):
            value = getattr(self, field_name)
            if value.count(":") < 2:
                raise ValueError(
                    f"Proxy rule '{self.name}': {field_name} must look like "
                    f"'tcp:<address>:<port>', got '{value}'"
                )
            port = value.rsplit(":", 1)[1]
            if not port.isdigit() or not 0 < int(port) < 65536:
                raise ValueError(
                    f"Proxy rule '{self.name}': {field_name} port must be a number "
                    f"from 1 to 65535, got '{port}'"
                )

    @property
    def listen_port(self) -> int:
        return int(self.listen.rsplit(":", 1)[1])

    def device_args(self):
        """Arguments for ``lxc config device add``."""
        return [self.name, "proxy", f"listen={self.listen}", f"connect={self.connect}"]


@dataclass
class ContainerInfo:
    """Runtime information about the managed container."""
    name: str
    state: ContainerState
    address: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self.state == ContainerState.RUNNING
