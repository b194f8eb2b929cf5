"""Tests for NAT port forwarding."""
import pytest

from thinlxc.core.errors import AlreadyExistsError, FirewallError
from thinlxc.models.container import Container
from thinlxc.services.port_forward import PortForwarder


def forwarder(ports="9999:8888", ip="10.0.3.246"):
    c = Container.new("/containers", "/base", "c2", ports=ports, ip=ip)
    return PortForwarder(c)


class TestPortForwarder:

    def test_rule_shape(self):
        cmd = forwarder().rule("-A")
        assert cmd == [
            "iptables", "-t", "nat", "-A", "PREROUTING",
            "-p", "tcp", "!", "-s", "10.0.3.0/24",
            "--dport", "9999",
            "-j", "DNAT", "--to-destination", "10.0.3.246:8888",
        ]

    def test_custom_subnet(self):
        c = Container.new("/containers", "/base", "c2", ports="1:2", ip="10.1.0.5")
        assert "10.1.0.0/24" in PortForwarder(c, subnet="10.1.0.0/24").rule("-C")

    def test_zero_ports_is_noop(self, fake_host):
        pf = forwarder(ports="", ip="10.0.3.245")
        pf.forward()
        assert not pf.rule_exists()
        assert fake_host.calls_to("iptables") == [pf.rule("-C")]

    def test_forward_then_unforward(self, fake_host):
        pf = forwarder()
        assert not pf.rule_exists()
        pf.forward()
        assert pf.rule_exists()
        pf.unforward()
        assert not pf.rule_exists()

    def test_forward_twice_fails(self, fake_host):
        pf = forwarder()
        pf.forward()
        with pytest.raises(AlreadyExistsError):
            pf.forward()
        assert len(fake_host.rules) == 1

    def test_unforward_absent_rule_is_noop(self, fake_host):
        pf = forwarder()
        pf.unforward()
        assert all(c[3] == "-C" for c in fake_host.calls_to("iptables"))

    def test_tool_failure_reads_as_absent(self, fake_host):
        fake_host.broken.add("iptables")
        assert forwarder().rule_exists() is False

    def test_append_failure_raises(self, fake_host, monkeypatch):
        pf = forwarder()
        monkeypatch.setattr(pf, "rule_exists", lambda: False)
        fake_host.broken.add("iptables")
        with pytest.raises(FirewallError):
            pf.forward()
