"""Step and run results for the provisioning pipeline."""
from dataclasses import dataclass, field
from typing import List, Optional

from lxdhost.models.container import InstallOutcome


@dataclass
class StepResult:
    """Outcome of one named provisioning step.

    ``changed`` is True when the step mutated host or container state, False
    when its idempotency check found nothing to do.
    """
    name: str
    ok: bool
    detail: str = ""
    changed: bool = False

    @classmethod
    def success(cls, name: str, detail: str = "", changed: bool = False) -> "StepResult":
        return cls(name=name, ok=True, detail=detail, changed=changed)

    @classmethod
    def failure(cls, name: str, detail: str) -> "StepResult":
        return cls(name=name, ok=False, detail=detail)

    def __bool__(self) -> bool:
        return self.ok


@dataclass
class ProvisionReport:
    """Everything a provisioning run produced, in execution order."""
    steps: List[StepResult] = field(default_factory=list)
    container_address: Optional[str] = None
    install_outcome: InstallOutcome = InstallOutcome.UNKNOWN
    group_user_added: Optional[str] = None

    def add(self, result: StepResult) -> StepResult:
        self.steps.append(result)
        return result

    @property
    def failed_step(self) -> Optional[StepResult]:
        for step in self.steps:
            if not step.ok:
                return step
        return None

    @property
    def succeeded(self) -> bool:
        return self.failed_step is None

    @property
    def changed_steps(self) -> List[StepResult]:
        return [step for step in self.steps if step.changed]
