"""Provisioning CLI commands - provision, next-steps, config."""
from typing import Optional

import typer
import yaml
from rich.console import Console

from lxdhost.cli_support import get_runner, load_cli_config, print_success, setup_file_logging
from lxdhost.core.pipeline import Provisioner
from lxdhost.reporter import Reporter


def register_provision_commands(app: typer.Typer, console: Console) -> None:
    """Attach provisioning commands to the main CLI."""

    @app.command()
    def provision(
        config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
        mock: bool = typer.Option(False, "--mock", help="Log commands instead of running them"),
        verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
        log_file: Optional[str] = typer.Option(None, "--log-file", help="Log file path"),
    ):
        """Provision the LXD host, the container, CloudPanel and port forwards.

        Safe to re-run: every step checks current state before changing it.
        Exits 1 when a checked step fails or when not run as root.
        """
        cfg = load_cli_config(config, console)
        runner = get_runner(mock=True if mock else None)
        if not runner.mock:
            setup_file_logging(log_file=log_file, verbose=verbose)

        provisioner = Provisioner(cfg, runner=runner, console=console)
        report = provisioner.run()
        provisioner.reporter.summary(report)

        if not report.succeeded:
            raise typer.Exit(1)

        print_success(console, "Script execution complete.")

    @app.command("next-steps")
    def next_steps(
        config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
        address: Optional[str] = typer.Option(None, "--address", help="Container IP to show"),
    ):
        """Show the manual follow-up steps after provisioning."""
        cfg = load_cli_config(config, console)
        Reporter(console, cfg).next_steps(address)

    @app.command("config")
    def show_config(
        config: Optional[str] = typer.Option(None, "--config", "-c", help="Config file path"),
    ):
        """Print the effective configuration as YAML."""
        cfg = load_cli_config(config, console)
        console.print(
            yaml.safe_dump(cfg.to_dict(), sort_keys=False),
            markup=False,
            highlight=False,
            soft_wrap=True,
        )
