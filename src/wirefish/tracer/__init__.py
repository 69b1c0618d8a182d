"""
Traceroute Module

TTL-stepped ICMP echo path discovery.
"""

from wirefish.tracer.core import (
    run_traceroute,
    Tracer,
    Hop,
    TraceRoute,
)

__all__ = [
    "run_traceroute",
    "Tracer",
    "Hop",
    "TraceRoute",
]
