"""
Probe Substrate

Address resolution, timed TCP connect, TTL control and raw ICMP
socket allocation used by the scanner and tracer.
"""

from wirefish.net.core import (
    ResolvedAddress,
    resolve,
    timed_connect,
    set_ttl,
    open_raw_icmp_socket,
    wait_readable,
    reverse_lookup,
)

__all__ = [
    "ResolvedAddress",
    "resolve",
    "timed_connect",
    "set_ttl",
    "open_raw_icmp_socket",
    "wait_readable",
    "reverse_lookup",
]
