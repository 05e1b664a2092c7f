"""Host-to-container port forwarding through LXD proxy devices."""
from typing import Dict, List

import yaml

from lxdhost.core.config import ProvisionConfig
from lxdhost.core.logger import get_logger
from lxdhost.core.runner import CommandRunner, LxcClient
from lxdhost.models.container import ProxyRule
from lxdhost.models.results import StepResult

logger = get_logger(__name__)


class PortExposureManager:
    """Creates the configured proxy devices that do not exist yet.

    Existing devices are matched by name only; a device whose listen or
    connect address differs from the configuration is left untouched.
    """

    def __init__(self, config: ProvisionConfig, runner: CommandRunner):
        self.config = config
        self.runner = runner
        self.lxc = LxcClient(runner)

    @property
    def container(self) -> str:
        return self.config.container_name

    def device_exists(self, device: str) -> bool:
        return self.lxc.run("config", "device", "get", self.container, device, "type").ok

    def ensure_forward(self, rule: ProxyRule) -> StepResult:
        step = f"Adding proxy for port {rule.listen_port}"

        if self.device_exists(rule.name):
            logger.info(f"Proxy device {rule.name} already exists for '{self.container}'.")
            return StepResult.success(step, "already exists")

        result = self.lxc.run("config", "device", "add", self.container, *rule.device_args())
        if not result.ok:
            return StepResult.failure(step, result.error_output())

        logger.info(f"✓ Proxy device {rule.name}: {rule.listen} -> {rule.connect}")
        return StepResult.success(step, f"{rule.listen} -> {rule.connect}", changed=True)

    def ensure_forwards(self) -> StepResult:
        ports = ", ".join(str(rule.listen_port) for rule in self.config.proxy_rules)
        logger.info(f"Setting up LXD proxy devices ({ports}) for container '{self.container}'...")

        created = []
        for rule in self.config.proxy_rules:
            result = self.ensure_forward(rule)
            if not result.ok:
                return result
            if result.changed:
                created.append(rule.name)

        detail = f"created {', '.join(created)}" if created else "all present"
        return StepResult.success("Port forwarding", detail, changed=bool(created))

    def list_forwards(self) -> List[Dict[str, str]]:
        """Proxy devices currently attached to the container.

        Returns:
            List of dicts with name, listen, connect
        """
        result = self.lxc.run("config", "device", "show", self.container)
        if not result.ok:
            logger.error(f"Failed to read devices of '{self.container}': {result.error_output()}")
            return []

        try:
            devices = yaml.safe_load(result.stdout) or {}
        except yaml.YAMLError as e:
            logger.error(f"Unparseable device list for '{self.container}': {e}")
            return []

        forwards = []
        for name, device in sorted(devices.items()):
            if not isinstance(device, dict) or device.get("type") != "proxy":
                continue
            forwards.append({
                "name": name,
                "listen": device.get("listen", ""),
                "connect": device.get("connect", ""),
            })
        return forwards
