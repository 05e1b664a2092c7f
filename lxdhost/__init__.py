"""lxdhost - LXD host and CloudPanel container provisioning."""

__version__ = "0.1.0"
