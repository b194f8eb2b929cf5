#!/usr/bin/env python3
"""thin-lxc CLI - copy-on-write LXC containers on a shared base image."""
from typing import Optional

import typer
from rich.console import Console

from thinlxc import __version__
from thinlxc.cli_container_commands import register_container_commands
from thinlxc.cli_host_commands import register_host_commands
from thinlxc.core.logger import get_logger

app = typer.Typer(
    name="thin-lxc",
    help="""thin-lxc - lightweight LXC containers sharing one base image

Quick start:
  thin-lxc create web --ip 10.0.3.20 --ports 8080:80
  thin-lxc start web
  thin-lxc stop web && thin-lxc destroy web

After a host reboot run: thin-lxc reload
""",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        console.print(__version__)
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None, "--config", "-c", envvar="THIN_LXC_CONFIG",
        help="Settings file (default: /etc/thin-lxc/thin-lxc.yml)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging and tracebacks."),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Also log to this file."),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Print version and exit."),
) -> None:
    ctx.obj = {"config": config, "verbose": verbose, "log_file": log_file}


register_container_commands(app, console)
register_host_commands(app, console)

if __name__ == "__main__":
    app()
