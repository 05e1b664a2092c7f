"""LXD management.

- RuntimeInitializer: one-time ``lxd init`` (storage pool, bridge)
- ContainerLifecycle: launch/start the container and find its address
- PortExposureManager: proxy devices forwarding host ports to the container
"""
from .initializer import RuntimeInitializer
from .lifecycle import ContainerLifecycle
from .proxy import PortExposureManager

__all__ = [
    'RuntimeInitializer',
    'ContainerLifecycle',
    'PortExposureManager',
]
