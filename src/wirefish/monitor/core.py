"""
Interface bandwidth monitoring.

Samples RX/TX byte counters from /proc/net/dev at a fixed interval and
computes instantaneous and rolling-average rates in bits per second.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

from wirefish.config import DEFAULT_INTERVAL_MS, DEFAULT_MONITOR_SAMPLES, validate_positive
from wirefish.errors import MonitorError

logger = logging.getLogger(__name__)

PROC_NET_DEV = "/proc/net/dev"
WINDOW_SIZE = 10
IFACE_MAX_LEN = 63


@dataclass
class IfaceStats:
    """One bandwidth sample for an interface."""
    iface: str
    rx_bytes: int
    tx_bytes: int
    rx_rate_bps: float = 0.0
    tx_rate_bps: float = 0.0
    rx_avg_bps: float = 0.0
    tx_avg_bps: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "iface": self.iface,
            "rx_bytes": self.rx_bytes,
            "tx_bytes": self.tx_bytes,
            "rx_bps": round(self.rx_rate_bps, 2),
            "tx_bps": round(self.tx_rate_bps, 2),
            "rx_avg_bps": round(self.rx_avg_bps, 2),
            "tx_avg_bps": round(self.tx_avg_bps, 2),
        }


class MonitorSeries:
    """Ordered samples for one monitoring run."""

    def __init__(self, iface: str, interval_ms: int):
        self.iface = iface
        self.interval_ms = interval_ms
        self.samples: list[IfaceStats] = []
        self.cancelled = False

    def append(self, sample: IfaceStats) -> None:
        self.samples.append(sample)

    def __len__(self) -> int:
        return len(self.samples)

    def __iter__(self) -> Iterator[IfaceStats]:
        return iter(self.samples)

    def __getitem__(self, index: int) -> IfaceStats:
        return self.samples[index]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "monitor",
            "samples": [s.to_dict() for s in self.samples],
        }


class RollingAverage:
    """Mean over the last `window` values."""

    def __init__(self, window: int = WINDOW_SIZE):
        self._values: deque[float] = deque(maxlen=window)

    def push(self, value: float) -> None:
        self._values.append(value)

    @property
    def mean(self) -> float:
        if not self._values:
            return 0.0
        return sum(self._values) / len(self._values)

    def __len__(self) -> int:
        return len(self._values)


def _read_proc(proc_path: str) -> list[str]:
    try:
        lines = Path(proc_path).read_text().splitlines()
    except OSError as e:
        raise MonitorError(f"Cannot open {proc_path}: {e}") from e
    # First two lines are headers
    return lines[2:]


def read_counters(iface: str, proc_path: str = PROC_NET_DEV) -> tuple[int, int]:
    """
    Read RX/TX byte counters for an interface.

    Line format: 'iface: rx_bytes rx_packets ... (8 rx fields) tx_bytes ...'

    Returns:
        (rx_bytes, tx_bytes)
    """
    for line in _read_proc(proc_path):
        name, sep, rest = line.partition(":")
        if not sep or name.strip() != iface:
            continue
        fields = rest.split()
        if len(fields) < 9:
            continue
        try:
            return int(fields[0]), int(fields[8])
        except ValueError as e:
            raise MonitorError(f"Malformed counters for '{iface}' in {proc_path}") from e

    raise MonitorError(f"Interface '{iface}' not found in {proc_path}")


def detect_interface(proc_path: str = PROC_NET_DEV) -> str:
    """First non-loopback interface listed in /proc/net/dev."""
    for line in _read_proc(proc_path):
        name, sep, _ = line.partition(":")
        name = name.strip()
        if sep and name and name != "lo":
            return name
    raise MonitorError("Could not auto-detect interface")


def run_monitor(
    iface: str | None = None,
    interval_ms: int = DEFAULT_INTERVAL_MS,
    samples: int = DEFAULT_MONITOR_SAMPLES,
    stop_event: threading.Event | None = None,
    proc_path: str = PROC_NET_DEV,
) -> MonitorSeries:
    """
    Sample interface bandwidth.

    Args:
        iface: Interface name, auto-detected when empty
        interval_ms: Sampling interval in milliseconds
        samples: Number of samples to collect
        stop_event: Cancellation token; setting it ends the run early
        proc_path: Counter source (defaults to /proc/net/dev)

    Returns:
        MonitorSeries with at most `samples` entries

    Raises:
        ValidationError: Non-positive interval or sample count
        MonitorError: Interface missing or counters unreadable at start
    """
    validate_positive("interval_ms", interval_ms)
    validate_positive("samples", samples)

    if not iface:
        iface = detect_interface(proc_path)
        logger.info(f"Auto-detected interface: {iface}")
    iface = iface[:IFACE_MAX_LEN]

    stop_event = stop_event or threading.Event()
    rx_window = RollingAverage()
    tx_window = RollingAverage()

    prev_rx, prev_tx = read_counters(iface, proc_path)
    prev_time = time.monotonic()

    series = MonitorSeries(iface=iface, interval_ms=interval_ms)
    logger.info(f"Monitoring {iface} every {interval_ms}ms for {samples} samples")

    # One attempt per sample; skipped reads shorten the series
    for _ in range(samples):
        if stop_event.wait(interval_ms / 1000.0):
            series.cancelled = True
            logger.info("Monitoring stopped")
            break

        try:
            curr_rx, curr_tx = read_counters(iface, proc_path)
        except MonitorError as e:
            logger.warning(f"Skipping sample: {e}")
            continue

        curr_time = time.monotonic()
        elapsed = curr_time - prev_time
        if elapsed <= 0:
            continue

        # Counters can reset when the interface goes down
        rx_rate = max(0, curr_rx - prev_rx) * 8.0 / elapsed
        tx_rate = max(0, curr_tx - prev_tx) * 8.0 / elapsed
        rx_window.push(rx_rate)
        tx_window.push(tx_rate)

        series.append(IfaceStats(
            iface=iface,
            rx_bytes=curr_rx,
            tx_bytes=curr_tx,
            rx_rate_bps=rx_rate,
            tx_rate_bps=tx_rate,
            rx_avg_bps=rx_window.mean,
            tx_avg_bps=tx_window.mean,
        ))

        prev_rx, prev_tx, prev_time = curr_rx, curr_tx, curr_time

    return series
