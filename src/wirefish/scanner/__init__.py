"""
Port Scan Module

TCP connect scanning of a port range on a single host.
"""

from wirefish.scanner.core import (
    run_port_scan,
    PortScanner,
    PortState,
    ScanResult,
    ScanTable,
)

__all__ = [
    "run_port_scan",
    "PortScanner",
    "PortState",
    "ScanResult",
    "ScanTable",
]
