"""Per-container CLI commands: create, destroy, start, stop, status, wait."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Optional

import typer
from rich.console import Console

from thinlxc.cli_support import (
    get_lifecycle,
    handle_cli_error,
    load_settings,
    print_success,
    print_warning,
    setup_file_logging,
)
from thinlxc.core.errors import ThinLxcError
from thinlxc.core.lock import LockError, operation_lock
from thinlxc.models.state import ContainerState
from thinlxc.services.base_image import BaseImageManager
from thinlxc.services.monitor import StateMonitor, WatchOutcome


@contextmanager
def command_context(ctx: typer.Context, console: Console, lock: bool = True):
    """Resolve settings, take the operation lock and map errors to exit codes.

    Yields:
        Validated ThinLxcSettings
    """
    opts = ctx.obj or {}
    verbose = opts.get("verbose", False)
    try:
        settings = load_settings(opts.get("config"))
        if opts.get("log_file") or verbose:
            setup_file_logging(opts.get("log_file"), verbose=verbose)
        if lock:
            with operation_lock(settings.lock_file):
                yield settings
        else:
            yield settings
    except (ThinLxcError, LockError) as e:
        handle_cli_error(e, console, verbose=verbose)


def _wait(console: Console, settings, name: str, target: ContainerState,
          timeout: Optional[float]) -> None:
    monitor = StateMonitor(
        get_lifecycle(settings).runtime,
        poll_interval=settings.poll_interval,
        settle_delay=settings.settle_delay,
    )
    with console.status(f"Waiting for {name} to reach {target.value}..."):
        result = monitor.wait_for(name, target, timeout=timeout or None)
    if result.outcome is not WatchOutcome.REACHED:
        print_warning(console, f"{name} did not reach {target.value} (last seen {result.state.value})")
        raise typer.Exit(1)
    print_success(console, f"{name} is {result.state.value}")


def register_container_commands(root: typer.Typer, console: Console) -> None:
    """Attach per-container commands to the main CLI."""

    @root.command("create")
    def create_command(
        ctx: typer.Context,
        name: str = typer.Argument(..., help="Container name (also the lxc handle)."),
        hostname: str = typer.Option("", "--hostname", "-H", help="Hostname (defaults to name)."),
        ip: str = typer.Option("", "--ip", help="Static address in the container subnet; DHCP when empty."),
        base: Optional[str] = typer.Option(None, "--base", "-b", help="Base container path."),
        ports: str = typer.Option("", "--ports", "-p", help="Port forward hostPort:containerPort."),
        mounts: str = typer.Option("", "--mounts", "-m", help="Bind mounts hostPath:containerPath[,...]."),
    ) -> None:
        """Create and mount a new container."""
        with command_context(ctx, console) as settings:
            lifecycle = get_lifecycle(settings)
            container = lifecycle.new_container(
                name, ports=ports, hostname=hostname, ip=ip,
                bind_mounts=mounts, base_image_path=base,
            )
            if base is None:
                BaseImageManager(settings).ensure_available()
            config_path = lifecycle.create(container)

        print_success(console, f"Container {name} created")
        console.print(f"Start it with: [bold]thin-lxc start {name}[/bold] "
                      f"or lxc-start -n {name} -f {config_path} -d")

    @root.command("destroy")
    def destroy_command(
        ctx: typer.Context,
        name: str = typer.Argument(..., help="Container name."),
        stop: bool = typer.Option(False, "--stop", help="Stop the container first if it is running."),
    ) -> None:
        """Remove a stopped container and everything it wrote."""
        with command_context(ctx, console) as settings:
            lifecycle = get_lifecycle(settings)
            if stop and lifecycle.runtime.is_running(name):
                lifecycle.stop(name)
                _wait(console, settings, name, ContainerState.STOPPED, settings.wait_timeout)
            lifecycle.destroy(name)

        print_success(console, f"Container {name} destroyed")

    @root.command("start")
    def start_command(
        ctx: typer.Context,
        name: str = typer.Argument(..., help="Container name."),
        wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait until RUNNING."),
    ) -> None:
        """Start a created container."""
        with command_context(ctx, console) as settings:
            get_lifecycle(settings).start(name)
            if wait:
                _wait(console, settings, name, ContainerState.RUNNING, settings.wait_timeout)
            else:
                print_success(console, f"Started {name}")

    @root.command("stop")
    def stop_command(
        ctx: typer.Context,
        name: str = typer.Argument(..., help="Container name."),
        wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait until STOPPED."),
    ) -> None:
        """Stop a running container."""
        with command_context(ctx, console) as settings:
            get_lifecycle(settings).stop(name)
            if wait:
                _wait(console, settings, name, ContainerState.STOPPED, settings.wait_timeout)
            else:
                print_success(console, f"Stopped {name}")

    @root.command("status")
    def status_command(
        ctx: typer.Context,
        name: str = typer.Argument(..., help="Container name."),
    ) -> None:
        """Show runtime state, mount and forwarding of a container."""
        with command_context(ctx, console, lock=False) as settings:
            status = get_lifecycle(settings).status(name)

        console.print(f"[bold]{status.name}[/bold]")
        console.print(f"  State:      {status.state.value}")
        console.print(f"  Mounted:    {'yes' if status.mounted else 'no'}")
        console.print(f"  Address:    {status.address}")
        console.print(f"  Ports:      {status.ports}")
        console.print(f"  Forwarding: {'yes' if status.forwarding else 'no'}")

    @root.command("wait")
    def wait_command(
        ctx: typer.Context,
        name: str = typer.Argument(..., help="Container name."),
        state: str = typer.Argument(..., help="Target state, e.g. RUNNING or STOPPED."),
        timeout: Optional[float] = typer.Option(None, "--timeout", "-t",
                                                help="Seconds to wait (default from settings, 0 = forever)."),
    ) -> None:
        """Block until a container reaches a state."""
        target = ContainerState.parse(state)
        if target is ContainerState.UNKNOWN:
            raise typer.BadParameter(f"Unknown state {state!r}", param_hint="state")

        with command_context(ctx, console, lock=False) as settings:
            limit = settings.wait_timeout if timeout is None else timeout
            _wait(console, settings, name, target, limit)
