"""One-time LXD initialization (storage pool and default bridge)."""
from lxdhost.core.config import ProvisionConfig
from lxdhost.core.logger import get_logger
from lxdhost.core.runner import CommandRunner, LxcClient
from lxdhost.models.results import StepResult

logger = get_logger(__name__)

STEP_NAME = "LXD initialization (lxd init)"


class RuntimeInitializer:
    """Runs ``lxd init --auto`` unless the pool and bridge already exist."""

    def __init__(self, config: ProvisionConfig, runner: CommandRunner):
        self.config = config
        self.runner = runner
        self.lxc = LxcClient(runner)

    def pool_exists(self) -> bool:
        return self.lxc.run("storage", "show", self.config.storage_pool).ok

    def network_exists(self) -> bool:
        return self.lxc.run("network", "show", self.config.network).ok

    def is_initialized(self) -> bool:
        return self.pool_exists() and self.network_exists()

    def ensure_initialized(self) -> StepResult:
        pool = self.config.storage_pool
        backend = self.config.storage_backend

        if self.is_initialized():
            logger.info("LXD appears to be already initialized. Skipping 'lxd init'.")
            return StepResult.success(STEP_NAME, "already initialized")

        logger.info(f"Initializing LXD (backend '{backend}', pool '{pool}')...")
        result = self.runner.run(["lxd", "init", "--auto", "--storage-backend", backend])
        if not result.ok:
            return StepResult.failure(STEP_NAME, result.error_output())

        # lxd init --auto always names its pool "default"
        if not self.pool_exists():
            logger.info(f"Creating storage pool '{pool}'...")
            result = self.lxc.run("storage", "create", pool, backend)
            if not result.ok:
                return StepResult.failure(f"Storage pool '{pool}' creation", result.error_output())

        return StepResult.success(STEP_NAME, "initialized", changed=True)
