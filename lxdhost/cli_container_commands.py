"""Container inspection CLI commands - status, ports."""
from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from lxdhost.cli_support import get_runner, load_cli_config, print_error, print_warning
from lxdhost.models.container import ContainerState
from lxdhost.services.lxd import ContainerLifecycle, PortExposureManager


def register_container_commands(app: typer.Typer, console: Console) -> None:
    """Attach container-related commands to the main CLI."""

    @app.command("status")
    def status_command(
        config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
    ) -> None:
        """Show the container's state and IPv4 address."""
        cfg = load_cli_config(config, console)
        info = ContainerLifecycle(cfg, get_runner()).get_info()

        if info.state == ContainerState.ABSENT:
            print_error(console, f"Container '{info.name}' does not exist")
            raise typer.Exit(1)

        colour = "green" if info.is_running else "yellow"
        console.print(f"[bold]{info.name}[/bold]: [{colour}]{info.state.value}[/{colour}]")
        if info.address:
            console.print(f"  IPv4: {info.address}")
        elif info.is_running:
            print_warning(console, "No IPv4 address assigned yet")

    @app.command("ports")
    def ports_command(
        config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
    ) -> None:
        """List proxy devices forwarding host ports into the container."""
        cfg = load_cli_config(config, console)
        forwards = PortExposureManager(cfg, get_runner()).list_forwards()

        if not forwards:
            print_warning(console, f"No proxy devices on '{cfg.container_name}'")
            return

        configured = {rule.name: rule for rule in cfg.proxy_rules}
        table = Table(title=f"Proxy devices on {cfg.container_name}")
        table.add_column("Device", style="cyan")
        table.add_column("Listen")
        table.add_column("Connect")
        table.add_column("Matches config")
        for forward in forwards:
            rule = configured.get(forward["name"])
            if rule is None:
                match = "[dim]unmanaged[/dim]"
            elif (rule.listen, rule.connect) == (forward["listen"], forward["connect"]):
                match = "[green]yes[/green]"
            else:
                match = "[yellow]drifted[/yellow]"
            table.add_row(forward["name"], forward["listen"], forward["connect"], match)
        console.print(table)
