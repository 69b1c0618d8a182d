"""Tests for interface bandwidth monitoring."""

import threading
from types import SimpleNamespace

import pytest

from wirefish.errors import MonitorError, ValidationError
from wirefish.monitor import RollingAverage, detect_interface, read_counters, run_monitor
from wirefish.monitor import core

PROC_HEADER = (
    "Inter-|   Receive                                                |  Transmit\n"
    " face |bytes    packets errs drop fifo frame compressed multicast|"
    "bytes    packets errs drop fifo colls carrier compressed\n"
)


@pytest.fixture
def proc_net_dev(tmp_path):
    def write(*lines):
        path = tmp_path / "dev"
        path.write_text(PROC_HEADER + "".join(line + "\n" for line in lines))
        return str(path)
    return write


@pytest.fixture
def counters(monkeypatch):
    """Script read_counters() and the monotonic clock, one value per call."""

    def install(readings, clock):
        readings = iter(readings)
        clock = iter(clock)

        def fake_read(iface, proc_path):
            value = next(readings)
            if isinstance(value, Exception):
                raise value
            return value

        monkeypatch.setattr(core, "read_counters", fake_read)
        monkeypatch.setattr(core, "time", SimpleNamespace(monotonic=lambda: next(clock)))

    return install


LO = "    lo:  1000      10    0    0    0     0          0         0     1000      10    0    0    0     0       0          0"
ETH0 = "  eth0: 5000      50    0    0    0     0          0         0     7000      70    0    0    0     0       0          0"


class TestReadCounters:
    def test_reads_rx_and_tx(self, proc_net_dev):
        path = proc_net_dev(LO, ETH0)
        assert read_counters("eth0", path) == (5000, 7000)
        assert read_counters("lo", path) == (1000, 1000)

    def test_counters_without_space_after_colon(self, proc_net_dev):
        path = proc_net_dev("wlan0:123 1 0 0 0 0 0 0 456 2 0 0 0 0 0 0")
        assert read_counters("wlan0", path) == (123, 456)

    def test_missing_interface(self, proc_net_dev):
        with pytest.raises(MonitorError, match="eth9"):
            read_counters("eth9", proc_net_dev(LO, ETH0))

    def test_missing_file(self, tmp_path):
        with pytest.raises(MonitorError):
            read_counters("eth0", str(tmp_path / "absent"))


class TestDetectInterface:
    def test_skips_loopback(self, proc_net_dev):
        assert detect_interface(proc_net_dev(LO, ETH0)) == "eth0"

    def test_only_loopback(self, proc_net_dev):
        with pytest.raises(MonitorError, match="auto-detect"):
            detect_interface(proc_net_dev(LO))


class TestRollingAverage:
    def test_empty_mean_is_zero(self):
        assert RollingAverage().mean == 0.0

    def test_window_drops_oldest(self):
        window = RollingAverage(window=3)
        for value in (1.0, 2.0, 3.0, 4.0):
            window.push(value)
        assert len(window) == 3
        assert window.mean == 3.0

    def test_default_window(self):
        window = RollingAverage()
        for value in range(20):
            window.push(float(value))
        assert len(window) == 10
        assert window.mean == 14.5


class TestRunMonitor:
    def test_rates_and_averages(self, counters):
        counters(
            readings=[(0, 0), (1000, 2000), (3000, 2000)],
            clock=[0.0, 1.0, 2.0],
        )
        series = run_monitor("eth0", interval_ms=1, samples=2)

        assert len(series) == 2
        assert not series.cancelled
        first, second = series
        assert (first.rx_rate_bps, first.tx_rate_bps) == (8000.0, 16000.0)
        assert (second.rx_rate_bps, second.tx_rate_bps) == (16000.0, 0.0)
        assert second.rx_avg_bps == 12000.0
        assert second.tx_avg_bps == 8000.0
        assert (second.rx_bytes, second.tx_bytes) == (3000, 2000)

    def test_counter_reset_clamps_to_zero(self, counters):
        counters(readings=[(5000, 5000), (100, 100)], clock=[0.0, 1.0])
        series = run_monitor("eth0", interval_ms=1, samples=1)
        assert series[0].rx_rate_bps == 0.0
        assert series[0].tx_rate_bps == 0.0

    def test_failed_read_skips_sample(self, counters):
        counters(
            readings=[(0, 0), MonitorError("gone"), (1000, 1000)],
            clock=[0.0, 2.0],
        )
        series = run_monitor("eth0", interval_ms=1, samples=2)

        assert len(series) == 1
        assert series[0].rx_rate_bps == 4000.0

    def test_cancellation(self, counters):
        counters(readings=[(0, 0)], clock=[0.0])
        stop = threading.Event()
        stop.set()

        series = run_monitor("eth0", interval_ms=1000, samples=5, stop_event=stop)

        assert series.cancelled
        assert len(series) == 0

    def test_auto_detects_interface(self, proc_net_dev):
        series = run_monitor(None, interval_ms=1, samples=1, proc_path=proc_net_dev(LO, ETH0))

        assert series.iface == "eth0"
        assert len(series) == 1
        assert series[0].rx_bytes == 5000

    def test_missing_interface_at_start(self, proc_net_dev):
        with pytest.raises(MonitorError):
            run_monitor("eth9", interval_ms=1, samples=1, proc_path=proc_net_dev(LO, ETH0))

    @pytest.mark.parametrize("interval_ms,samples", [(0, 1), (1, 0), (-10, 5)])
    def test_validation(self, interval_ms, samples):
        with pytest.raises(ValidationError):
            run_monitor("eth0", interval_ms=interval_ms, samples=samples)

    def test_to_dict(self, counters):
        counters(readings=[(0, 0), (1, 2)], clock=[0.0, 3.0])
        data = run_monitor("eth0", interval_ms=1, samples=1).to_dict()

        assert data["type"] == "monitor"
        assert data["samples"] == [{
            "iface": "eth0",
            "rx_bytes": 1,
            "tx_bytes": 2,
            "rx_bps": 2.67,
            "tx_bps": 5.33,
            "rx_avg_bps": 2.67,
            "tx_avg_bps": 5.33,
        }]
