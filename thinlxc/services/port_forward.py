"""NAT port forwarding from a host port to a container."""
from typing import List

from thinlxc.core.commands import run_command
from thinlxc.core.errors import AlreadyExistsError, FirewallError
from thinlxc.core.logger import get_logger
from thinlxc.models.container import Container

logger = get_logger(__name__)


class PortForwarder:
    """Keeps exactly one PREROUTING DNAT rule per forwarding container."""

    def __init__(self, container: Container, subnet: str = "10.0.3.0/24"):
        self.container = container
        self.subnet = subnet

    def rule(self, action: str) -> List[str]:
        """Build the iptables command for action -C, -A or -D."""
        c = self.container
        # connections originating in the container subnet are not rewritten
        return [
            "iptables", "-t", "nat", action, "PREROUTING",
            "-p", "tcp",
            "!", "-s", self.subnet,
            "--dport", str(c.host_port),
            "-j", "DNAT",
            "--to-destination", f"{c.ip}:{c.port}",
        ]

    def rule_exists(self) -> bool:
        """Check for the rule without changing anything.

        A failing iptables invocation reads as "absent".
        """
        try:
            run_command(self.rule("-C"), FirewallError)
        except FirewallError:
            return False
        return True

    def forward(self) -> None:
        """Append the rule; no-op when no ports are configured.

        Raises:
            AlreadyExistsError: If the rule is already present
            FirewallError: If iptables rejects the append
        """
        c = self.container
        if not c.wants_forwarding:
            return
        if self.rule_exists():
            raise AlreadyExistsError(
                f"iptables rule for {c.name} (port {c.host_port}) already exists"
            )
        logger.info(f"Forwarding host port {c.host_port} to {c.ip}:{c.port}")
        run_command(self.rule("-A"), FirewallError)

    def unforward(self) -> None:
        """Delete the rule; no-op when it is absent.

        Raises:
            FirewallError: If iptables rejects the delete
        """
        if not self.rule_exists():
            return
        c = self.container
        logger.info(f"Removing forward of host port {c.host_port} for {c.name}")
        run_command(self.rule("-D"), FirewallError)
