"""
Low-level socket helpers shared by the scanner and tracer.

Resolution, TCP connect with an explicit timeout, TTL control and
raw ICMP socket allocation. IPv4 only.
"""

import errno
import logging
import select
import socket
from dataclasses import dataclass

from netaddr import valid_ipv4

from wirefish.errors import (
    ProbeIOError,
    ProbeRefused,
    ProbeTimeout,
    RawSocketPermissionError,
    ResolutionError,
    SocketSetupError,
)

logger = logging.getLogger(__name__)

# connect_ex() results meaning "handshake still in progress"
_CONNECT_PENDING = {errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EALREADY}


@dataclass(frozen=True)
class ResolvedAddress:
    """A resolved IPv4 socket address."""
    ip: str
    port: int = 0

    @property
    def family(self) -> int:
        return socket.AF_INET

    @property
    def sockaddr(self) -> tuple[str, int]:
        return (self.ip, self.port)

    def with_port(self, port: int) -> "ResolvedAddress":
        """Same host, different port."""
        return ResolvedAddress(ip=self.ip, port=port)


def resolve(host: str) -> ResolvedAddress:
    """
    Resolve a hostname or IPv4 literal to the first IPv4 stream address.

    Args:
        host: Hostname or dotted-quad address

    Returns:
        ResolvedAddress for the first candidate returned by the resolver

    Raises:
        ResolutionError: If resolution fails or yields no IPv4 candidate
    """
    flags = socket.AI_NUMERICHOST if valid_ipv4(host) else 0

    try:
        candidates = socket.getaddrinfo(
            host, None, socket.AF_INET, socket.SOCK_STREAM, 0, flags
        )
    except socket.gaierror as e:
        raise ResolutionError(host, e.strerror or str(e)) from e
    except UnicodeError as e:
        raise ResolutionError(host, str(e)) from e

    if not candidates:
        raise ResolutionError(host, "no IPv4 addresses found")

    _, _, _, _, sockaddr = candidates[0]
    logger.debug(f"Resolved {host} to {sockaddr[0]}")
    return ResolvedAddress(ip=sockaddr[0])


def _connect_error(code: int, address: ResolvedAddress):
    reason = f"{address.ip}:{address.port}: {errno.errorcode.get(code, code)} ({code})"
    if code == errno.ECONNREFUSED:
        return ProbeRefused(f"Connection refused by {reason}")
    if code == errno.ETIMEDOUT:
        return ProbeTimeout(f"Connection timed out to {reason}")
    return ProbeIOError(f"Connection failed to {reason}")


def timed_connect(address: ResolvedAddress, timeout: float) -> socket.socket:
    """
    Open a TCP connection, waiting at most `timeout` seconds.

    The connect is issued non-blocking. A pending connect is resolved by
    waiting for writability and then reading SO_ERROR, since a failed
    connect also makes the descriptor writable.

    Args:
        address: Target address including the port
        timeout: Maximum wait in seconds

    Returns:
        Connected socket in blocking mode; the caller must close it

    Raises:
        ProbeRefused: Peer sent a reset
        ProbeTimeout: No outcome within the timeout
        ProbeIOError: Any other connect failure
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    except OSError as e:
        raise ProbeIOError(f"Could not create TCP socket: {e}") from e

    try:
        sock.setblocking(False)
        code = sock.connect_ex(address.sockaddr)

        if code in _CONNECT_PENDING:
            try:
                _, writable, _ = select.select([], [sock], [], timeout)
            except OSError as e:
                raise ProbeIOError(f"Waiting for {address.ip}:{address.port} failed: {e}") from e

            if not writable:
                raise ProbeTimeout(
                    f"No response from {address.ip}:{address.port} within {timeout:.3f}s"
                )
            code = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)

        if code != 0:
            raise _connect_error(code, address)

        sock.setblocking(True)
        return sock
    except BaseException:
        sock.close()
        raise


def set_ttl(sock: socket.socket, ttl: int) -> None:
    """Set the outgoing IP TTL on a socket."""
    try:
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL, ttl)
    except OSError as e:
        raise SocketSetupError(f"Could not set TTL {ttl}: {e}") from e


def open_raw_icmp_socket() -> socket.socket:
    """
    Allocate a raw ICMP socket.

    Raises:
        RawSocketPermissionError: Missing root / CAP_NET_RAW
        SocketSetupError: Any other OS failure
    """
    try:
        return socket.socket(socket.AF_INET, socket.SOCK_RAW, socket.IPPROTO_ICMP)
    except PermissionError as e:
        raise RawSocketPermissionError(
            f"Raw ICMP socket requires elevated privileges. {RawSocketPermissionError.hint}"
        ) from e
    except OSError as e:
        raise SocketSetupError(f"Could not create raw ICMP socket: {e}") from e


def wait_readable(sock: socket.socket, timeout: float) -> bool:
    """Wait up to `timeout` seconds for data; True if the socket is readable."""
    try:
        readable, _, _ = select.select([sock], [], [], timeout)
    except OSError as e:
        raise SocketSetupError(f"Waiting for reply failed: {e}") from e
    return bool(readable)


def reverse_lookup(ip: str) -> str | None:
    """Reverse DNS for an address, None if it has no name."""
    try:
        hostname, _, _ = socket.gethostbyaddr(ip)
        return hostname
    except (socket.herror, socket.gaierror, OSError):
        return None
