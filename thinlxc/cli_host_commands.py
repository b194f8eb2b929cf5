"""Host-wide CLI commands: reload, list, fetch-base."""
from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from thinlxc.cli_container_commands import command_context
from thinlxc.cli_support import get_lifecycle, print_error, print_info, print_success
from thinlxc.services.base_image import BaseImageManager


def register_host_commands(root: typer.Typer, console: Console) -> None:
    """Attach host-wide commands to the main CLI."""

    @root.command("reload")
    def reload_command(ctx: typer.Context) -> None:
        """Restore mounts and port forwards after a host reboot."""
        with command_context(ctx, console) as settings:
            report = get_lifecycle(settings).reload()

        for name, error in report.failures:
            print_error(console, f"{name}: {error}")
        print_info(console, f"Reloaded {report.succeeded} container(s), {len(report.failures)} failed")
        if not report.ok:
            raise typer.Exit(1)

    @root.command("list")
    def list_command(ctx: typer.Context) -> None:
        """List containers with their state."""
        with command_context(ctx, console, lock=False) as settings:
            rows = get_lifecycle(settings).list()

        if not rows:
            print_info(console, f"No containers under {settings.containers_root}")
            return

        table = Table(title="thin-lxc containers")
        table.add_column("Name", style="cyan")
        table.add_column("State", style="green")
        table.add_column("Mounted")
        table.add_column("Address", style="yellow")
        table.add_column("Ports", style="magenta")

        for row in rows:
            table.add_row(
                row.name,
                row.state.value,
                "yes" if row.mounted else "no",
                row.address,
                row.ports,
            )
        console.print(table)

    @root.command("fetch-base")
    def fetch_base_command(ctx: typer.Context) -> None:
        """Download and verify the base container if missing."""
        with command_context(ctx, console) as settings:
            fetched = BaseImageManager(settings).ensure_available()

        if fetched:
            print_success(console, f"Base container ready at {settings.base_image_path}")
        else:
            print_info(console, f"Base container already present at {settings.base_image_path}")
