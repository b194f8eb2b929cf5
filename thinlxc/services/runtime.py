"""Client for the external LXC runtime tools."""
from thinlxc.core.commands import run_command
from thinlxc.core.errors import RuntimeCommandError
from thinlxc.core.logger import get_logger
from thinlxc.models.state import ContainerState

logger = get_logger(__name__)


class LxcRuntime:
    """Queries and drives containers through lxc-info, lxc-start and lxc-stop."""

    def state(self, name: str) -> ContainerState:
        """Return the runtime's view of a container.

        Any query failure degrades to UNKNOWN instead of raising.
        """
        try:
            output = run_command(["lxc-info", "-n", name], RuntimeCommandError)
        except RuntimeCommandError as e:
            logger.debug(f"lxc-info failed for {name}: {e}")
            return ContainerState.UNKNOWN
        return self.parse_state(output)

    @staticmethod
    def parse_state(output: str) -> ContainerState:
        """Extract the state from lxc-info output ("State:   RUNNING")."""
        for line in output.splitlines():
            key, sep, value = line.partition(":")
            if sep and key.strip().lower() == "state":
                return ContainerState.parse(value)
        return ContainerState.UNKNOWN

    def is_running(self, name: str) -> bool:
        return self.state(name) == ContainerState.RUNNING

    def start(self, name: str, config_path: str) -> None:
        """Start a container in the background.

        Raises:
            RuntimeCommandError: If lxc-start exits non-zero
        """
        logger.info(f"Starting container {name}")
        run_command(["lxc-start", "-n", name, "-f", config_path, "-d"], RuntimeCommandError)

    def stop(self, name: str) -> None:
        """Stop a container.

        Raises:
            RuntimeCommandError: If lxc-stop exits non-zero
        """
        logger.info(f"Stopping container {name}")
        run_command(["lxc-stop", "-n", name], RuntimeCommandError)
