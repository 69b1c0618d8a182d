"""Tests for the TCP connect scanner."""

import pytest

from wirefish.errors import (
    ProbeIOError,
    ProbeRefused,
    ProbeTimeout,
    ResolutionError,
    StructuralError,
    ValidationError,
)
from wirefish.net.core import ResolvedAddress
from wirefish.scanner import PortScanner, PortState, ScanResult, ScanTable, run_port_scan
from wirefish.scanner import core


class FakeConnection:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


@pytest.fixture
def scripted_network(monkeypatch):
    """
    Replace resolution and connect. Ports divisible by 3 are open,
    remainder 1 refuses, remainder 2 times out.
    """
    connections = []

    def fake_connect(address, timeout):
        assert address.ip == "192.0.2.50"
        if address.port % 3 == 0:
            conn = FakeConnection()
            connections.append(conn)
            return conn
        if address.port % 3 == 1:
            raise ProbeRefused(f"refused {address.port}")
        raise ProbeTimeout(f"timeout {address.port}")

    monkeypatch.setattr(core, "resolve", lambda host: ResolvedAddress("192.0.2.50"))
    monkeypatch.setattr(core, "timed_connect", fake_connect)
    return connections


@pytest.fixture
def no_network(monkeypatch):
    def forbidden(*args):
        raise AssertionError("network touched")

    monkeypatch.setattr(core, "resolve", forbidden)
    monkeypatch.setattr(core, "timed_connect", forbidden)


class TestScanTable:
    def test_rejects_out_of_order_ports(self):
        table = ScanTable()
        table.append(ScanResult(80, PortState.OPEN, 1))
        with pytest.raises(StructuralError):
            table.append(ScanResult(80, PortState.CLOSED, 1))
        with pytest.raises(StructuralError):
            table.append(ScanResult(22, PortState.CLOSED, 1))
        assert len(table) == 1

    def test_to_dict(self):
        table = ScanTable("host", "192.0.2.1")
        table.append(ScanResult(22, PortState.OPEN, 4))
        table.append(ScanResult(23, PortState.FILTERED))

        assert table.to_dict() == {
            "type": "scan",
            "results": [
                {"port": 22, "state": "open", "latency_ms": 4},
                {"port": 23, "state": "filtered", "latency_ms": None},
            ],
        }

    def test_by_state(self):
        table = ScanTable()
        table.append(ScanResult(1, PortState.CLOSED, 0))
        table.append(ScanResult(2, PortState.OPEN, 0))
        table.append(ScanResult(3, PortState.CLOSED, 0))
        assert [r.port for r in table.by_state(PortState.CLOSED)] == [1, 3]


class TestRunPortScan:
    @pytest.mark.parametrize("ports_from,ports_to", [(1, 1), (1, 10), (100, 131), (65530, 65535)])
    def test_one_row_per_port_in_order(self, scripted_network, ports_from, ports_to):
        table = run_port_scan("scripted.test", ports_from, ports_to, 50)

        assert len(table) == ports_to - ports_from + 1
        assert [r.port for r in table] == list(range(ports_from, ports_to + 1))

    def test_classification(self, scripted_network):
        table = run_port_scan("scripted.test", 3, 5, 50)

        assert [r.state for r in table] == [PortState.OPEN, PortState.CLOSED, PortState.FILTERED]
        assert table.address == "192.0.2.50"
        assert table.target == "scripted.test"

    def test_latency_present_unless_filtered(self, scripted_network):
        table = run_port_scan("scripted.test", 1, 30, 50)

        for row in table:
            assert (row.latency_ms is None) == (row.state == PortState.FILTERED)
            if row.latency_ms is not None:
                assert row.latency_ms >= 0

    def test_open_connections_are_closed(self, scripted_network):
        run_port_scan("scripted.test", 1, 9, 50)
        assert len(scripted_network) == 3
        assert all(conn.closed for conn in scripted_network)

    def test_other_probe_errors_are_filtered(self, monkeypatch):
        def unreachable(address, timeout):
            raise ProbeIOError("no route")

        monkeypatch.setattr(core, "resolve", lambda host: ResolvedAddress("192.0.2.50"))
        monkeypatch.setattr(core, "timed_connect", unreachable)

        table = run_port_scan("scripted.test", 1, 2, 50)
        assert [r.state for r in table] == [PortState.FILTERED, PortState.FILTERED]

    @pytest.mark.parametrize(
        "ports_from,ports_to",
        [(100, 50), (0, 10), (1, 65536), (-5, 5), (70000, 70001)],
    )
    def test_invalid_range_rejected_before_io(self, no_network, ports_from, ports_to):
        with pytest.raises(ValidationError):
            run_port_scan("127.0.0.1", ports_from, ports_to)

    def test_empty_target_rejected(self, no_network):
        with pytest.raises(ValidationError, match="No target"):
            run_port_scan("", 1, 10)

    def test_non_positive_timeout_rejected(self, no_network):
        with pytest.raises(ValidationError):
            run_port_scan("127.0.0.1", 1, 10, per_probe_timeout_ms=0)

    def test_resolution_error_propagates(self, monkeypatch):
        def fail(host):
            raise ResolutionError(host, "Name or service not known")

        monkeypatch.setattr(core, "resolve", fail)
        with pytest.raises(ResolutionError):
            run_port_scan("nonexistent.invalid", 1, 10)

    def test_structural_failure_aborts_without_partial_result(self, scripted_network, monkeypatch):
        original = ScanTable.append

        def append_once(self, result):
            if len(self):
                raise StructuralError("Failed to store scan result")
            original(self, result)

        monkeypatch.setattr(ScanTable, "append", append_once)
        with pytest.raises(StructuralError):
            run_port_scan("scripted.test", 1, 5, 50)


class TestLocalhost:
    def test_low_ports_are_closed_or_filtered(self):
        table = run_port_scan("127.0.0.1", 1, 3, 200)

        assert [r.port for r in table] == [1, 2, 3]
        for row in table:
            assert row.state in (PortState.CLOSED, PortState.FILTERED)
            assert (row.latency_ms is None) == (row.state == PortState.FILTERED)

    def test_listener_is_open(self, listening_port):
        table = run_port_scan("127.0.0.1", listening_port, listening_port, 1000)

        assert len(table) == 1
        assert table[0].state == PortState.OPEN
        assert table[0].latency_ms >= 0

    def test_closed_port(self, closed_port):
        result = PortScanner(timeout_ms=1000).probe(ResolvedAddress("127.0.0.1"), closed_port)
        assert result.state == PortState.CLOSED
        assert result.latency_ms is not None
