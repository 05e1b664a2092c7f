"""Host preparation: apt packages, snapd, the LXD snap and group access."""
import os
from typing import Optional

from lxdhost.core.config import ProvisionConfig
from lxdhost.core.logger import get_logger
from lxdhost.core.runner import NONINTERACTIVE_ENV, CommandRunner
from lxdhost.models.results import StepResult

logger = get_logger(__name__)


class HostPreparer:
    """Brings the host to a state where LXD can be used."""

    def __init__(self, config: ProvisionConfig, runner: CommandRunner):
        self.config = config
        self.runner = runner

    def prepare(self) -> StepResult:
        """Run every host step in order, stopping at the first failure."""
        steps = (
            self.update_packages,
            self.ensure_snapd,
            self.ensure_lxd,
        )
        changed = False
        for step in steps:
            result = step()
            if not result.ok:
                return result
            changed = changed or result.changed
        return StepResult.success("Host preparation", changed=changed)

    def update_packages(self) -> StepResult:
        name = "Host system package update"
        logger.info("Updating host system packages (apt-get update && apt-get upgrade -y)...")

        for cmd in (["apt-get", "update"], ["apt-get", "upgrade", "-y"]):
            result = self.runner.run(cmd, env=NONINTERACTIVE_ENV)
            if not result.ok:
                return StepResult.failure(name, result.error_output())

        return StepResult.success(name, changed=True)

    def ensure_snapd(self) -> StepResult:
        name = "snapd installation"
        if self.runner.which("snap"):
            return StepResult.success(name, "snap is available")

        logger.info("snapd not found. Installing snapd...")
        result = self.runner.run(["apt-get", "install", "-y", "snapd"], env=NONINTERACTIVE_ENV)
        if not result.ok:
            return StepResult.failure(name, result.error_output())
        return StepResult.success(name, "snapd installed", changed=True)

    def ensure_lxd(self) -> StepResult:
        name = "LXD snap installation"
        if self.runner.succeeds(["snap", "list", "lxd"]):
            logger.info("LXD snap is already installed.")
            return StepResult.success(name, "already installed")

        logger.info("Installing the LXD snap...")
        result = self.runner.run(["snap", "install", "lxd"])
        if not result.ok:
            return StepResult.failure(name, result.error_output())
        return StepResult.success(name, "lxd snap installed", changed=True)

    def invoking_user(self) -> Optional[str]:
        """Return the non-root user who invoked sudo, if any."""
        user = os.environ.get("SUDO_USER")
        if not user:
            result = self.runner.run(["logname"])
            user = result.stdout.strip() if result.ok else ""
        if not user or user == "root":
            return None
        return user

    def user_in_group(self, user: str) -> bool:
        result = self.runner.run(["id", "-nG", user])
        return result.ok and self.config.lxd_group in result.stdout.split()

    def ensure_group_membership(self) -> StepResult:
        """Add the invoking user to the LXD group, at most once."""
        group = self.config.lxd_group
        user = self.invoking_user()
        name = f"Adding user to '{group}' group"

        if user is None:
            logger.warning(
                f"Running as root or could not determine the sudo user. 'lxc' commands "
                f"will be run as root. To manage LXD as a non-root user, add them to "
                f"the '{group}' group."
            )
            return StepResult.success(name, "no invoking user")

        if self.user_in_group(user):
            logger.info(f"User '{user}' is already in the '{group}' group.")
            return StepResult.success(name, user)

        logger.info(f"Adding user '{user}' to the '{group}' group...")
        result = self.runner.run(["usermod", "-a", "-G", group, user])
        if not result.ok:
            return StepResult.failure(f"Adding {user} to {group} group", result.error_output())

        logger.warning(
            f"User '{user}' has been added to the '{group}' group. A new login session "
            f"(or 'newgrp {group}') is required before they can run lxc without sudo."
        )
        return StepResult.success(name, user, changed=True)
