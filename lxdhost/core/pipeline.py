"""End-to-end provisioning pipeline."""
from typing import Callable, Optional

from rich.console import Console

from lxdhost.core.config import ProvisionConfig
from lxdhost.core.logger import get_logger
from lxdhost.core.privilege import PrivilegeGuard
from lxdhost.core.runner import CommandRunner
from lxdhost.models.results import ProvisionReport, StepResult
from lxdhost.reporter import Reporter
from lxdhost.services.host import HostPreparer
from lxdhost.services.lxd import ContainerLifecycle, PortExposureManager, RuntimeInitializer
from lxdhost.services.post_install import ContainerProvisioner, PanelInstaller

logger = get_logger(__name__)


class Provisioner:
    """Runs every provisioning component in order.

    Order: privilege check, host preparation, LXD group membership, LXD
    init, container start, address lookup, container packages, CloudPanel
    installer, port forwarding. A failed checked step ends the run; the
    address lookup and the installer only ever warn.
    """

    def __init__(
        self,
        config: ProvisionConfig,
        runner: Optional[CommandRunner] = None,
        console: Optional[Console] = None,
        guard: Optional[PrivilegeGuard] = None,
    ):
        self.config = config
        self.runner = runner or CommandRunner()
        self.reporter = Reporter(console or Console(), config)
        self.guard = guard or PrivilegeGuard(mock=self.runner.mock)

        self.host = HostPreparer(config, self.runner)
        self.initializer = RuntimeInitializer(config, self.runner)
        self.lifecycle = ContainerLifecycle(config, self.runner)
        self.provisioner = ContainerProvisioner(config, self.runner)
        self.installer = PanelInstaller(config, self.runner)
        self.ports = PortExposureManager(config, self.runner)
        self.group_user_added: Optional[str] = None

    def _checked(self, report: ProvisionReport, step: Callable[[], StepResult]) -> bool:
        result = report.add(step())
        self.reporter.step(result)
        if not result.ok:
            logger.error(f"\"{result.name}\" failed: {result.detail}")
        return result.ok

    def run(self) -> ProvisionReport:
        report = ProvisionReport()

        if not self._checked(report, self.guard.check):
            return report

        self.reporter.banner()

        for step in (self.host.prepare, self.ensure_group, self.initializer.ensure_initialized):
            if not self._checked(report, step):
                return report

        report.group_user_added = self.group_user_added

        if not self._checked(report, self.lifecycle.ensure_running):
            return report

        report.container_address = self.lifecycle.resolve_address()
        if report.container_address is None:
            self.reporter.warning(
                f"Container address unknown; check with 'lxc list {self.config.container_name}'."
            )

        if not self._checked(report, self.provisioner.install_dependencies):
            return report

        report.install_outcome = self.installer.run()
        if not report.install_outcome.is_listening:
            self.reporter.warning(
                f"CloudPanel install outcome: {report.install_outcome.value}. "
                f"Follow-up may be needed inside the container."
            )

        self._checked(report, self.ports.ensure_forwards)
        return report

    def ensure_group(self) -> StepResult:
        result = self.host.ensure_group_membership()
        if result.ok and result.changed:
            self.group_user_added = result.detail
        return result
