#!/usr/bin/env python3
"""lxdhost CLI - LXD host and CloudPanel container provisioning."""

import typer
from rich.console import Console

from lxdhost.cli_container_commands import register_container_commands
from lxdhost.cli_provision_commands import register_provision_commands

app = typer.Typer(
    name="lxdhost",
    help="""lxdhost - LXD host and CloudPanel container provisioning

Sets up LXD, launches one container, installs CloudPanel in it and
forwards ports 80, 443 and 8443 from the host.

Quick start:
  sudo lxdhost provision          # Run everything (safe to re-run)
  lxdhost status                  # Container state and address
  lxdhost ports                   # Proxy devices on the container
""",
    add_completion=False,
)

console = Console()

register_provision_commands(app, console)
register_container_commands(app, console)


def main():
    app()


if __name__ == "__main__":
    main()
