"""Provisioning inside the container: packages and the CloudPanel installer.

Runs commands inside the container via `lxc exec`.
"""
from typing import List

from lxdhost.core.config import ProvisionConfig
from lxdhost.core.logger import get_logger
from lxdhost.core.retry import PollTimeout, poll_until
from lxdhost.core.runner import NONINTERACTIVE_ENV, CommandRunner, LxcClient
from lxdhost.models.container import InstallOutcome
from lxdhost.models.results import StepResult

logger = get_logger(__name__)


class ContainerProvisioner:
    """Updates the container and installs the packages the installer needs."""

    def __init__(self, config: ProvisionConfig, runner: CommandRunner):
        self.config = config
        self.runner = runner
        self.lxc = LxcClient(runner)

    def _steps(self) -> List[tuple]:
        return [
            ("Container package list update (apt-get update)", ["apt-get", "update"]),
            ("Container package upgrade (apt-get upgrade -y)", ["apt-get", "upgrade", "-y"]),
            (
                "Container dependency installation",
                ["apt-get", "install", "-y", *self.config.dependencies],
            ),
        ]

    def install_dependencies(self) -> StepResult:
        """Run the apt steps in order; the first failure ends the run."""
        name = self.config.container_name
        logger.info(f"Updating packages within the container '{name}'...")

        for step, command in self._steps():
            result = self.lxc.exec(name, command, env=NONINTERACTIVE_ENV)
            if not result.ok:
                return StepResult.failure(step, result.error_output())
            logger.info(f"\"{step}\" completed successfully.")

        deps = ", ".join(self.config.dependencies)
        return StepResult.success("Container packages", f"installed {deps}", changed=True)


class PanelInstaller:
    """Runs the vendor CloudPanel installer and probes for its admin port.

    The installer is interactive (it prompts for a database engine) and owns
    its own exit semantics, so its exit code never fails provisioning. The
    only signal reported back is an ``InstallOutcome``.
    """

    def __init__(self, config: ProvisionConfig, runner: CommandRunner):
        self.config = config
        self.runner = runner
        self.lxc = LxcClient(runner)

    @property
    def container(self) -> str:
        return self.config.container_name

    def install_command(self) -> str:
        return (
            f"curl -sS {self.config.installer_url} -o /tmp/install.sh "
            f"&& sudo bash /tmp/install.sh"
        )

    def probe(self) -> InstallOutcome:
        """One check of whether the panel port is listening in the container."""
        result = self.lxc.exec(self.container, ["ss", "-tulnp"])
        if not result.ok:
            return InstallOutcome.UNKNOWN
        if self.runner.mock:
            return InstallOutcome.PROBED_LISTENING

        marker = f":{self.config.panel_port}"
        for line in result.stdout.splitlines():
            for column in line.split():
                if column.endswith(marker):
                    return InstallOutcome.PROBED_LISTENING
        return InstallOutcome.PROBED_NOT_LISTENING

    def wait_for_panel(self) -> InstallOutcome:
        """Probe until the panel listens or the probe timeout passes."""
        outcomes = []

        def listening():
            outcome = self.probe()
            outcomes.append(outcome)
            return outcome == InstallOutcome.PROBED_LISTENING

        try:
            poll_until(
                listening,
                description=f"port {self.config.panel_port} in '{self.container}'",
                interval=self.config.panel_probe_interval,
                timeout=self.config.panel_probe_timeout,
                sleep=self.runner.sleep,
            )
        except PollTimeout:
            return outcomes[-1]
        return InstallOutcome.PROBED_LISTENING

    def run(self) -> InstallOutcome:
        port = self.config.panel_port

        if self.probe() == InstallOutcome.PROBED_LISTENING and not self.runner.mock:
            logger.info(
                f"Port {port} is already listening in '{self.container}'; "
                f"skipping the CloudPanel installer."
            )
            return InstallOutcome.ALREADY_INSTALLED

        logger.info(f"Starting CloudPanel installation in container '{self.container}'...")
        logger.warning("The CloudPanel installation script will run now. This may take 5-15 minutes.")
        logger.warning(
            "You WILL BE PROMPTED by the CloudPanel script to choose a database engine "
            "(e.g., MariaDB or MySQL). Please monitor the terminal for this prompt."
        )

        result = self.lxc.exec(
            self.container, ["bash", "-c", self.install_command()], interactive=True
        )
        logger.info(f"CloudPanel installer exited with code {result.returncode}")

        outcome = self.wait_for_panel()
        if outcome == InstallOutcome.PROBED_LISTENING:
            logger.info(
                f"CloudPanel installation script seems to have run. "
                f"Port {port} is listening in the container."
            )
        elif outcome == InstallOutcome.PROBED_NOT_LISTENING:
            logger.warning(
                f"CloudPanel installation script finished, but port {port} was not detected "
                f"as listening after {self.config.panel_probe_timeout}s. Check the installer "
                f"output above, or troubleshoot with 'lxc exec {self.container} -- bash'."
            )
        else:
            logger.warning(
                f"Could not probe port {port} in '{self.container}'; "
                f"the installer outcome is unknown."
            )
        return outcome
