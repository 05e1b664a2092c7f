"""Data models for lxdhost."""
from .container import ContainerInfo, ContainerState, InstallOutcome, ProxyRule
from .results import ProvisionReport, StepResult

__all__ = [
    'ContainerInfo',
    'ContainerState',
    'InstallOutcome',
    'ProxyRule',
    'ProvisionReport',
    'StepResult',
]
