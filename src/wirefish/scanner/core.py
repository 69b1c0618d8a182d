"""
TCP connect port scanning.

Resolves the target once, then probes each port of an inclusive range
in ascending order, one connection at a time, classifying it as
open, closed or filtered.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator

from wirefish.config import (
    DEFAULT_TIMEOUT_MS,
    validate_port_range,
    validate_positive,
    validate_target,
)
from wirefish.errors import ProbeError, ProbeRefused, StructuralError
from wirefish.net.core import ResolvedAddress, resolve, timed_connect

logger = logging.getLogger(__name__)


class PortState(str, Enum):
    """Port classification."""
    OPEN = "open"          # handshake completed
    CLOSED = "closed"      # peer sent a reset
    FILTERED = "filtered"  # no answer, or any other error


@dataclass(frozen=True)
class ScanResult:
    """Result of probing a single port."""
    port: int
    state: PortState
    latency_ms: int | None = None  # None when FILTERED

    def to_dict(self) -> dict[str, Any]:
        return {
            "port": self.port,
            "state": self.state.value,
            "latency_ms": self.latency_ms,
        }


class ScanTable:
    """Append-only, port-ordered collection of ScanResult."""

    def __init__(self, target: str = "", address: str | None = None):
        self.target = target
        self.address = address
        self._rows: list[ScanResult] = []

    def append(self, result: ScanResult) -> None:
        if self._rows and result.port <= self._rows[-1].port:
            raise StructuralError(
                f"Port {result.port} appended after port {self._rows[-1].port}"
            )
        try:
            self._rows.append(result)
        except MemoryError as e:
            raise StructuralError("Failed to store scan result") from e

    @property
    def rows(self) -> tuple[ScanResult, ...]:
        return tuple(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[ScanResult]:
        return iter(self._rows)

    def __getitem__(self, index: int) -> ScanResult:
        return self._rows[index]

    def by_state(self, state: PortState) -> list[ScanResult]:
        return [r for r in self._rows if r.state == state]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "scan",
            "results": [r.to_dict() for r in self._rows],
        }


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.monotonic() - start) * 1000))


class PortScanner:
    """Sequential TCP connect scanner."""

    def __init__(self, timeout_ms: int = DEFAULT_TIMEOUT_MS):
        validate_positive("per_probe_timeout_ms", timeout_ms)
        self.timeout_ms = timeout_ms

    @property
    def timeout(self) -> float:
        return self.timeout_ms / 1000.0

    def probe(self, address: ResolvedAddress, port: int) -> ScanResult:
        """Classify one port with a single connect attempt."""
        start = time.monotonic()

        try:
            conn = timed_connect(address.with_port(port), self.timeout)
        except ProbeRefused:
            return ScanResult(port=port, state=PortState.CLOSED, latency_ms=_elapsed_ms(start))
        except ProbeError as e:
            # Timeouts and unrelated errors (unreachable, no route) both land here
            logger.debug(f"Port {port} filtered: {e}")
            return ScanResult(port=port, state=PortState.FILTERED)

        latency = _elapsed_ms(start)
        conn.close()
        return ScanResult(port=port, state=PortState.OPEN, latency_ms=latency)

    def scan_range(self, target: str, ports_from: int, ports_to: int) -> ScanTable:
        """
        Scan an inclusive port range on a target.

        Args:
            target: Hostname or IPv4 address
            ports_from: First port (1-65535)
            ports_to: Last port (1-65535), >= ports_from

        Returns:
            ScanTable with exactly ports_to - ports_from + 1 rows

        Raises:
            ValidationError: Invalid target or range (before any I/O)
            ResolutionError: Target cannot be resolved
            StructuralError: Result collection could not grow
        """
        validate_target(target)
        validate_port_range(ports_from, ports_to)

        address = resolve(target)
        logger.info(
            f"Scanning {target} ({address.ip}) ports {ports_from}-{ports_to}, "
            f"timeout {self.timeout_ms}ms"
        )

        table = ScanTable(target=target, address=address.ip)
        for port in range(ports_from, ports_to + 1):
            table.append(self.probe(address, port))

        logger.info(
            f"Scan of {target} done: {len(table.by_state(PortState.OPEN))} open, "
            f"{len(table.by_state(PortState.CLOSED))} closed, "
            f"{len(table.by_state(PortState.FILTERED))} filtered"
        )
        return table


def run_port_scan(
    target: str,
    ports_from: int,
    ports_to: int,
    per_probe_timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> ScanTable:
    """Scan ports_from..ports_to on target, one port at a time."""
    scanner = PortScanner(timeout_ms=per_probe_timeout_ms)
    return scanner.scan_range(target, ports_from, ports_to)
