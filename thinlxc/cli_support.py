"""Shared utilities for thin-lxc CLI modules."""
from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console

from thinlxc.core.config import ThinLxcSettings
from thinlxc.services.lifecycle import ContainerLifecycle


def load_settings(settings_file: Optional[str] = None) -> ThinLxcSettings:
    """Resolve and validate settings before any command touches the host."""
    return ThinLxcSettings.load(settings_file)


def get_lifecycle(settings: ThinLxcSettings) -> ContainerLifecycle:
    return ContainerLifecycle(settings)


def setup_file_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    from thinlxc.core.logger import setup_file_logging as _setup_file_logging
    _setup_file_logging(log_file=log_file, verbose=verbose)


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


def print_info(console: Console, message: str, prefix: str = "ℹ") -> None:
    console.print(f"[cyan]{prefix}[/cyan] {message}")
