"""
Exception hierarchy for WireFish.

Per-probe failures (ProbeError, TruncatedPacketError) are recovered by the
engines into result values. Everything else aborts the run.
"""


class WirefishError(Exception):
    """Base exception for WireFish errors."""
    pass


class ValidationError(WirefishError, ValueError):
    """Invalid run parameters, raised before any network I/O."""
    pass


class ResolutionError(WirefishError):
    """Target could not be resolved to an IPv4 address."""

    def __init__(self, host: str, reason: str):
        super().__init__(f"Failed to resolve target '{host}': {reason}")
        self.host = host
        self.reason = reason


class ProbeError(WirefishError):
    """A single TCP connect probe failed."""
    pass


class ProbeRefused(ProbeError):
    """Peer explicitly refused the connection (RST)."""
    pass


class ProbeTimeout(ProbeError):
    """No response within the probe timeout."""
    pass


class ProbeIOError(ProbeError):
    """Any other connect failure (unreachable, no route, ...)."""
    pass


class TruncatedPacketError(WirefishError, ValueError):
    """Received datagram too short to hold an IP + ICMP header."""
    pass


class SocketSetupError(WirefishError):
    """Socket or socket option failure outside a single probe."""
    pass


class RawSocketPermissionError(SocketSetupError, PermissionError):
    """Raw socket creation refused for lack of privilege."""

    hint = "Run as root or grant CAP_NET_RAW to the Python interpreter."


class StructuralError(WirefishError):
    """Result collection could not grow."""
    pass


class MonitorError(WirefishError):
    """Interface counters could not be read."""
    pass
