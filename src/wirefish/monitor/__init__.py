"""
Monitor Module

Interface bandwidth sampling with rolling averages.
"""

from wirefish.monitor.core import (
    run_monitor,
    read_counters,
    detect_interface,
    RollingAverage,
    IfaceStats,
    MonitorSeries,
)

__all__ = [
    "run_monitor",
    "read_counters",
    "detect_interface",
    "RollingAverage",
    "IfaceStats",
    "MonitorSeries",
]
