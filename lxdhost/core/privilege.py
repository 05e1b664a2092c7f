"""Root privilege check run before any host mutation."""
import os

from lxdhost.core.logger import get_logger
from lxdhost.models.results import StepResult

logger = get_logger(__name__)

STEP_NAME = "Privilege check"


class PrivilegeGuard:
    """Verifies the process runs with an effective UID of 0."""

    def __init__(self, mock: bool = False):
        self.mock = mock

    def is_privileged(self) -> bool:
        return os.geteuid() == 0

    def check(self) -> StepResult:
        if self.mock:
            logger.info("MOCK: Skipping root privilege check")
            return StepResult.success(STEP_NAME, "mock mode")

        if not self.is_privileged():
            return StepResult.failure(
                STEP_NAME,
                "This command must be run with sudo or as root. "
                "Example: sudo lxdhost provision",
            )

        return StepResult.success(STEP_NAME, "running as root")
