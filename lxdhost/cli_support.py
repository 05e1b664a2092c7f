"""Shared utilities for lxdhost CLI modules."""
from __future__ import annotations

import os
from typing import Optional

import typer
from rich.console import Console

from lxdhost.core.config import ConfigError, ProvisionConfig, load_config
from lxdhost.core.runner import CommandRunner


def is_mock() -> bool:
    """Return True when the CLI runs in mock mode."""
    return os.environ.get("LXDHOST_MOCK") == "1"


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    """Set up file logging for CLI commands."""
    from lxdhost.core.logger import setup_file_logging as _setup_file_logging
    _setup_file_logging(log_file=log_file, verbose=verbose)


def get_runner(mock: Optional[bool] = None) -> CommandRunner:
    """Return a CommandRunner honouring LXDHOST_MOCK by default."""
    if mock is None:
        mock = is_mock()
    return CommandRunner(mock=mock)


def load_cli_config(config_path: Optional[str], console: Console) -> ProvisionConfig:
    """Load configuration, turning ConfigError into a clean exit."""
    try:
        return load_config(config_path)
    except ConfigError as e:
        handle_cli_error(e, console)


def handle_cli_error(
    e: Exception,
    console: Console,
    verbose: bool = False,
    exit_code: int = 1
) -> None:
    """Print an error consistently and exit.

    Args:
        e: Exception to handle
        console: Rich console for output
        verbose: Show exception traceback if True
        exit_code: Exit code to use
    """
    console.print(f"[red]Error:[/red] {e}")
    if verbose:
        console.print_exception()
    raise typer.Exit(exit_code)


def print_success(console: Console, message: str, prefix: str = "✓") -> None:
    console.print(f"[green]{prefix}[/green] {message}")


def print_error(console: Console, message: str, prefix: str = "✗") -> None:
    console.print(f"[red]{prefix}[/red] {message}")


def print_warning(console: Console, message: str, prefix: str = "⚠") -> None:
    console.print(f"[yellow]{prefix}[/yellow] {message}")
