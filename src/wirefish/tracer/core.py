"""
ICMP traceroute.

Sends one ICMP echo request per TTL over a raw socket, waits a bounded
time for the answer (time exceeded from a router, echo reply from the
destination) and records one hop per TTL.

Requires root or CAP_NET_RAW.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Iterator

from wirefish.config import (
    DEFAULT_TIMEOUT_MS,
    validate_positive,
    validate_target,
    validate_ttl_range,
)
from wirefish.errors import (
    SocketSetupError,
    StructuralError,
    TruncatedPacketError,
    ValidationError,
)
from wirefish.icmp.codec import IcmpResponse, IcmpType, build_echo_request, parse_response
from wirefish.net.core import (
    ResolvedAddress,
    open_raw_icmp_socket,
    resolve,
    reverse_lookup,
    set_ttl,
    wait_readable,
)

logger = logging.getLogger(__name__)

IP_TEXT_MAX_LEN = 63
HOST_TEXT_MAX_LEN = 255
RECV_BUFFER_SIZE = 1024

TIMEOUT_IP = "*"
UNKNOWN_HOST = "?"
UNKNOWN_ICMP_TYPE = -1

DEFAULT_PAYLOAD = b"wirefish" * 4


@dataclass
class Hop:
    """A single traceroute hop."""
    ttl: int
    ip: str = TIMEOUT_IP
    host: str = UNKNOWN_HOST
    rtt_ms: int | None = None
    timed_out: bool = True
    icmp_type: int = UNKNOWN_ICMP_TYPE

    def __post_init__(self):
        # Bounded text fields, silently truncated
        self.ip = self.ip[:IP_TEXT_MAX_LEN]
        self.host = self.host[:HOST_TEXT_MAX_LEN]
        if self.timed_out != (self.rtt_ms is None):
            raise ValueError(f"Hop {self.ttl}: rtt_ms must be set exactly when the hop answered")

    @classmethod
    def timeout(cls, ttl: int) -> "Hop":
        return cls(ttl=ttl)

    @property
    def reached_destination(self) -> bool:
        return self.icmp_type == IcmpType.ECHO_REPLY

    def to_dict(self) -> dict[str, Any]:
        return {
            "hop": self.ttl,
            "ip": self.ip,
            "host": self.host,
            "rtt_ms": self.rtt_ms,
            "timeout": self.timed_out,
            "icmp_type": self.icmp_type,
        }


class TraceRoute:
    """Append-only, TTL-ordered collection of Hop."""

    def __init__(self, target: str = "", address: str | None = None):
        self.target = target
        self.address = address
        self._hops: list[Hop] = []

    def append(self, hop: Hop) -> None:
        if self._hops and hop.ttl <= self._hops[-1].ttl:
            raise StructuralError(f"Hop {hop.ttl} appended after hop {self._hops[-1].ttl}")
        try:
            self._hops.append(hop)
        except MemoryError as e:
            raise StructuralError("Failed to store hop") from e

    @property
    def hops(self) -> tuple[Hop, ...]:
        return tuple(self._hops)

    @property
    def reached(self) -> bool:
        return bool(self._hops) and self._hops[-1].reached_destination

    def __len__(self) -> int:
        return len(self._hops)

    def __iter__(self) -> Iterator[Hop]:
        return iter(self._hops)

    def __getitem__(self, index: int) -> Hop:
        return self._hops[index]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "trace",
            "hops": [h.to_dict() for h in self._hops],
        }


class Tracer:
    """
    TTL-stepped ICMP echo tracer.

    Usage:
        tracer = Tracer(timeout_ms=500)
        route = tracer.trace("example.com", 1, 30)
        for hop in route:
            print(hop.ttl, hop.ip, hop.rtt_ms)
    """

    def __init__(
        self,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        identifier: int | None = None,
        payload: bytes = DEFAULT_PAYLOAD,
        resolve_names: bool = True,
    ):
        validate_positive("per_probe_timeout_ms", timeout_ms)
        if identifier is None:
            identifier = os.getpid() & 0xFFFF
        if not 0 <= identifier <= 0xFFFF:
            raise ValidationError(f"ICMP identifier out of range: {identifier}")

        self.timeout_ms = timeout_ms
        self.identifier = identifier
        self.payload = payload
        self.resolve_names = resolve_names

    @property
    def timeout(self) -> float:
        return self.timeout_ms / 1000.0

    def _answers_probe(self, response: IcmpResponse, ttl: int) -> bool:
        """True if a reply belongs to the probe sent with this TTL."""
        if response.icmp_type == IcmpType.ECHO_REPLY:
            return (response.identifier, response.sequence) == (self.identifier, ttl)
        if response.icmp_type in (IcmpType.TIME_EXCEEDED, IcmpType.DEST_UNREACHABLE):
            return (response.quoted_identifier, response.quoted_sequence) == (self.identifier, ttl)
        # Echo requests (our own, looped back) and anything else
        return False

    def _probe(self, sock, address: ResolvedAddress, ttl: int) -> Hop:
        set_ttl(sock, ttl)
        # Sequence = TTL; only one probe is ever in flight
        packet = build_echo_request(self.identifier, ttl, self.payload)

        start = time.monotonic()
        deadline = start + self.timeout
        try:
            sock.sendto(packet, address.sockaddr)
        except OSError as e:
            raise SocketSetupError(f"Failed to send probe with TTL {ttl}: {e}") from e

        # The raw socket sees every ICMP datagram on the host; skip the
        # ones that don't answer this probe until the deadline passes
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0 or not wait_readable(sock, remaining):
                logger.debug(f"TTL {ttl}: no reply within {self.timeout_ms}ms")
                return Hop.timeout(ttl)

            try:
                data, peer = sock.recvfrom(RECV_BUFFER_SIZE)
            except OSError as e:
                raise SocketSetupError(f"Failed to receive reply for TTL {ttl}: {e}") from e
            rtt_ms = max(0, int((time.monotonic() - start) * 1000))

            peer_ip = peer[0]
            try:
                response = parse_response(data)
            except TruncatedPacketError as e:
                logger.debug(f"TTL {ttl}: unusable reply from {peer_ip}: {e}")
                return Hop.timeout(ttl)

            if self._answers_probe(response, ttl):
                break

            logger.debug(f"TTL {ttl}: ignoring unrelated ICMP type {response.icmp_type} from {peer_ip}")

        host = reverse_lookup(peer_ip) if self.resolve_names else None

        return Hop(
            ttl=ttl,
            ip=peer_ip,
            host=host or peer_ip,
            rtt_ms=rtt_ms,
            timed_out=False,
            icmp_type=response.icmp_type,
        )

    def trace(self, target: str, ttl_start: int, ttl_max: int) -> TraceRoute:
        """
        Trace the path to a target.

        Args:
            target: Hostname or IPv4 address
            ttl_start: First TTL (1-255)
            ttl_max: Last TTL (1-255), >= ttl_start

        Returns:
            TraceRoute with one hop per TTL, ending early at the destination

        Raises:
            ValidationError: Invalid target or TTL range (before any I/O)
            ResolutionError: Target cannot be resolved
            RawSocketPermissionError: Missing privilege for the raw socket
            SocketSetupError: Socket option, send or receive failure
        """
        validate_target(target)
        validate_ttl_range(ttl_start, ttl_max)

        address = resolve(target)
        sock = open_raw_icmp_socket()
        logger.info(
            f"Tracing route to {target} ({address.ip}), TTL {ttl_start}-{ttl_max}, "
            f"timeout {self.timeout_ms}ms"
        )

        route = TraceRoute(target=target, address=address.ip)
        try:
            for ttl in range(ttl_start, ttl_max + 1):
                hop = self._probe(sock, address, ttl)
                route.append(hop)
                if hop.reached_destination:
                    logger.info(f"Reached {address.ip} at TTL {ttl}")
                    break
        finally:
            sock.close()

        return route


def run_traceroute(
    target: str,
    ttl_start: int,
    ttl_max: int,
    per_probe_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    resolve_names: bool = True,
) -> TraceRoute:
    """Trace target over TTLs ttl_start..ttl_max, one probe per TTL."""
    tracer = Tracer(timeout_ms=per_probe_timeout_ms, resolve_names=resolve_names)
    return tracer.trace(target, ttl_start, ttl_max)
