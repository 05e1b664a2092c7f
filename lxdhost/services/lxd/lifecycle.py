"""Container lifecycle: create or resume, wait for boot, find the address."""
import csv
import io
import ipaddress
import re
from typing import Optional

from lxdhost.core.config import ProvisionConfig
from lxdhost.core.logger import get_logger
from lxdhost.core.retry import PollTimeout, poll_until
from lxdhost.core.runner import CommandRunner, LxcClient
from lxdhost.models.container import ContainerInfo, ContainerState
from lxdhost.models.results import StepResult

logger = get_logger(__name__)

_LEGACY_INET_RE = re.compile(r"eth0:.*inet\s+(\S+)")
_INTERFACE_RE = re.compile(r"^\s*(\S+):\s*$")
_INET_RE = re.compile(r"^\s*inet:\s+(\S+)")


def _first_ipv4(text: str) -> Optional[str]:
    for token in re.split(r"[\s,]+", text):
        candidate = token.split("/", 1)[0]
        try:
            if isinstance(ipaddress.ip_address(candidate), ipaddress.IPv4Address):
                return candidate
        except ValueError:
            continue
    return None


def parse_list_csv(output: str) -> Optional[str]:
    """First IPv4 address from ``lxc list --format csv -c 4`` output.

    The column looks like ``10.0.3.15 (eth0)``; several addresses share one
    quoted field separated by newlines.
    """
    for row in csv.reader(io.StringIO(output)):
        for cell in row:
            if not cell.strip() or cell.strip().upper() in ("NAME", "IPV4"):
                continue
            address = _first_ipv4(cell)
            if address:
                return address
    return None


def parse_info_address(output: str, interface: str = "eth0") -> Optional[str]:
    """IPv4 address of ``interface`` from ``lxc info`` output.

    Handles the legacy one-line form (``eth0: inet 10.0.3.15 vethXYZ``) and
    the block form used by current LXD::

        eth0:
          Type: broadcast
          IP addresses:
            inet:  10.0.3.15/24 (global)
    """
    current = None
    for line in output.splitlines():
        if interface == "eth0":
            legacy = _LEGACY_INET_RE.search(line)
            if legacy:
                address = _first_ipv4(legacy.group(1))
                if address:
                    return address

        header = _INTERFACE_RE.match(line)
        if header:
            current = header.group(1)
            continue

        inet = _INET_RE.match(line)
        if inet and current == interface:
            address = _first_ipv4(inet.group(1))
            if address:
                return address
    return None


class ContainerLifecycle:
    """Drives the container from absent/stopped to running."""

    def __init__(self, config: ProvisionConfig, runner: CommandRunner):
        self.config = config
        self.runner = runner
        self.lxc = LxcClient(runner)

    @property
    def name(self) -> str:
        return self.config.container_name

    def get_state(self) -> ContainerState:
        result = self.lxc.run("info", self.name)
        if not result.ok:
            return ContainerState.ABSENT
        if re.search(r"^Status:\s*RUNNING\b", result.stdout, re.MULTILINE | re.IGNORECASE):
            return ContainerState.RUNNING
        if self.runner.mock:
            # mock queries carry no output
            return ContainerState.RUNNING
        return ContainerState.STOPPED

    def get_info(self) -> ContainerInfo:
        state = self.get_state()
        address = self.lookup_address() if state == ContainerState.RUNNING else None
        return ContainerInfo(name=self.name, state=state, address=address)

    def ensure_running(self) -> StepResult:
        """Launch, start, or leave the container as it is.

        absent -> one ``lxc launch``; stopped -> one ``lxc start``;
        running -> nothing. A launch or start is followed by a wait for the
        container to report RUNNING.
        """
        state = self.get_state()

        if state == ContainerState.RUNNING:
            logger.info(f"Container '{self.name}' is already running.")
            return StepResult.success("Container start", "already running")

        if state == ContainerState.STOPPED:
            step = f"Starting existing container '{self.name}'"
            logger.warning(f"Container '{self.name}' already exists. Ensuring it is started.")
            result = self.lxc.run("start", self.name)
            if not result.ok:
                return StepResult.failure(step, result.error_output())
        else:
            step = "LXC container launch"
            logger.info(
                f"Launching LXC container '{self.name}' with image '{self.config.image}'..."
            )
            result = self.lxc.run(
                "launch", self.config.image, self.name, "--storage", self.config.storage_pool
            )
            if not result.ok:
                return StepResult.failure(step, result.error_output())

        try:
            self.wait_until_running()
        except PollTimeout as e:
            return StepResult.failure(step, str(e))

        return StepResult.success(step, f"{state.value} -> running", changed=True)

    def wait_until_running(self) -> None:
        poll_until(
            lambda: self.get_state() == ContainerState.RUNNING,
            description=f"container '{self.name}' to be running",
            interval=self.config.boot_poll_interval,
            timeout=self.config.boot_timeout,
            backoff=2.0,
            sleep=self.runner.sleep,
        )

    def lookup_address(self) -> Optional[str]:
        """Single address lookup: ``lxc list`` first, ``lxc info`` as fallback.

        ``lxc list`` filters by name prefix, so the name is anchored.
        """
        listing = self.lxc.run("list", f"^{self.name}$", "--format", "csv", "-c", "4")
        address = parse_list_csv(listing.stdout) if listing.ok else None
        if address:
            return address

        info = self.lxc.run("info", self.name)
        return parse_info_address(info.stdout) if info.ok else None

    def resolve_address(self) -> Optional[str]:
        """Poll for the container's IPv4 address; best-effort.

        At most ``address_attempts`` lookups spaced ``address_interval``
        seconds apart. Returns None, after a warning, when nothing is found.
        """
        logger.info(f"Waiting for container '{self.name}' to get an IP address...")
        try:
            address = poll_until(
                self.lookup_address,
                description=f"an IP address for '{self.name}'",
                interval=self.config.address_interval,
                max_attempts=self.config.address_attempts,
                sleep=self.runner.sleep,
            )
        except PollTimeout:
            logger.warning(
                f"Could not automatically determine container IP after "
                f"{self.config.address_attempts} attempts. Check manually with "
                f"'lxc list {self.name}'."
            )
            return None

        logger.info(f"Container '{self.name}' IP Address: {address}")
        return address
