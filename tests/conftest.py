"""Shared fixtures for the WireFish test suite."""

import logging
import os
import socket
import struct

import pytest

import wirefish.config
from wirefish.icmp.codec import checksum


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Fresh global config and no WIREFISH_* overrides for every test."""
    for name in list(os.environ):
        if name.startswith("WIREFISH_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(wirefish.config, "_config", None)
    yield


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger("wirefish")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def listening_port():
    """A localhost TCP port with a listener behind it."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    server.bind(("127.0.0.1", 0))
    server.listen(8)
    yield server.getsockname()[1]
    server.close()


@pytest.fixture
def closed_port():
    """A localhost TCP port with nothing listening."""
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()
    return port


def _ip_header(src: str, dst: str = "192.0.2.10", ihl_words: int = 5, payload_len: int = 0) -> bytes:
    header = bytearray(ihl_words * 4)
    struct.pack_into(
        "!BBHHHBBH4s4s", header, 0,
        (4 << 4) | ihl_words, 0, len(header) + payload_len, 0, 0, 64, 1, 0,
        socket.inet_aton(src), socket.inet_aton(dst),
    )
    return bytes(header)


def _icmp(icmp_type: int, code: int = 0, identifier: int = 0, sequence: int = 0, payload: bytes = b"") -> bytes:
    packet = bytearray(struct.pack("!BBHHH", icmp_type, code, 0, identifier, sequence) + payload)
    struct.pack_into("!H", packet, 2, checksum(packet))
    return bytes(packet)


@pytest.fixture
def make_echo_reply():
    """Raw IP datagram carrying an echo reply from `src`."""
    def build(src: str, identifier: int, sequence: int, payload: bytes = b"") -> bytes:
        icmp = _icmp(0, 0, identifier, sequence, payload)
        return _ip_header(src, payload_len=len(icmp)) + icmp
    return build


@pytest.fixture
def make_echo_request():
    """Raw IP datagram carrying an echo request, as a raw socket sees our own probes."""
    def build(src: str, identifier: int, sequence: int) -> bytes:
        icmp = _icmp(8, 0, identifier, sequence)
        return _ip_header(src, payload_len=len(icmp)) + icmp
    return build


@pytest.fixture
def make_time_exceeded():
    """Raw IP datagram carrying a time exceeded that quotes our probe."""
    def build(src: str, identifier: int, sequence: int) -> bytes:
        quoted_probe = _icmp(8, 0, identifier, sequence)
        quoted = _ip_header("192.0.2.10", dst="203.0.113.9", payload_len=len(quoted_probe)) + quoted_probe
        icmp = _icmp(11, 0, 0, 0, quoted)
        return _ip_header(src, payload_len=len(icmp)) + icmp
    return build


@pytest.fixture
def make_ip_header():
    return _ip_header


class FakeRawSocket:
    """
    Raw socket double. `replies` maps a TTL to the (datagram, peer), or a
    list of them in arrival order, delivered after a probe sent with that
    TTL; missing TTLs stay silent.
    """

    def __init__(self, replies=None, send_error: OSError | None = None):
        self.replies = replies or {}
        self.send_error = send_error
        self.ttl = None
        self.sent = []
        self.pending = []
        self.closed = False

    def setsockopt(self, level, option, value):
        if level == socket.IPPROTO_IP and option == socket.IP_TTL:
            self.ttl = value

    def sendto(self, data, address):
        if self.send_error:
            raise self.send_error
        self.sent.append((data, address, self.ttl))
        queued = self.replies.get(self.ttl, [])
        self.pending = list(queued) if isinstance(queued, list) else [queued]

    def recvfrom(self, bufsize):
        return self.pending.pop(0)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_raw_socket_cls():
    return FakeRawSocket
