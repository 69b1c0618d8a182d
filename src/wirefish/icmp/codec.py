"""
ICMP packet codec.

Builds echo requests and parses replies received on a raw socket
(which always include the IPv4 header).
"""

import socket
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from wirefish.errors import TruncatedPacketError

IP_MIN_HEADER_LEN = 20
ICMP_HEADER_LEN = 8

# type(1) code(1) checksum(2) identifier(2) sequence(2)
_ICMP_HEADER = struct.Struct("!BBHHH")


class IcmpType(IntEnum):
    """ICMP message types used by traceroute."""
    ECHO_REPLY = 0
    DEST_UNREACHABLE = 3
    ECHO_REQUEST = 8
    TIME_EXCEEDED = 11


@dataclass
class IcmpResponse:
    """ICMP header fields of a received datagram."""
    icmp_type: int
    code: int
    checksum: int
    identifier: int
    sequence: int
    header_length: int  # IP header length in bytes
    source: str
    # Identifier/sequence of our probe quoted in error messages
    quoted_identifier: int | None = None
    quoted_sequence: int | None = None

    @property
    def is_echo_reply(self) -> bool:
        return self.icmp_type == IcmpType.ECHO_REPLY

    def to_dict(self) -> dict[str, Any]:
        return {
            "icmp_type": self.icmp_type,
            "code": self.code,
            "checksum": self.checksum,
            "identifier": self.identifier,
            "sequence": self.sequence,
            "header_length": self.header_length,
            "source": self.source,
            "quoted_identifier": self.quoted_identifier,
            "quoted_sequence": self.quoted_sequence,
        }


def checksum(data: bytes) -> int:
    """
    RFC 1071 Internet checksum.

    Sums big-endian 16-bit words (an odd trailing byte is padded with a
    zero byte), folds the carries back into the low 16 bits until none
    remain and returns the one's complement.
    """
    if len(data) % 2:
        data = bytes(data) + b"\x00"

    total = sum(struct.unpack(f"!{len(data) // 2}H", data))
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)

    return ~total & 0xFFFF


def verify_checksum(packet: bytes) -> bool:
    """True if a packet carrying its checksum sums to zero."""
    return checksum(packet) == 0


def build_echo_request(identifier: int, sequence: int, payload: bytes = b"") -> bytes:
    """
    Build an ICMP echo request.

    Args:
        identifier: 16-bit identifier
        sequence: 16-bit sequence number
        payload: Optional data appended after the header

    Returns:
        Packet bytes with the checksum filled in
    """
    if not 0 <= identifier <= 0xFFFF:
        raise ValueError(f"ICMP identifier out of range: {identifier}")
    if not 0 <= sequence <= 0xFFFF:
        raise ValueError(f"ICMP sequence out of range: {sequence}")

    packet = bytearray(ICMP_HEADER_LEN + len(payload))
    _ICMP_HEADER.pack_into(packet, 0, IcmpType.ECHO_REQUEST, 0, 0, identifier, sequence)
    packet[ICMP_HEADER_LEN:] = payload

    struct.pack_into("!H", packet, 2, checksum(packet))
    return bytes(packet)


def _ip_header_length(buffer: bytes, offset: int = 0) -> int:
    if len(buffer) - offset < IP_MIN_HEADER_LEN:
        raise TruncatedPacketError(
            f"Packet shorter than minimum IP header: {len(buffer) - offset} bytes"
        )
    ihl = (buffer[offset] & 0x0F) * 4
    if ihl < IP_MIN_HEADER_LEN:
        raise TruncatedPacketError(f"Invalid IP header length: {ihl} bytes")
    return ihl


def _parse_quoted(buffer: bytes, offset: int) -> tuple[int | None, int | None]:
    # Time exceeded / unreachable carry the original IP header + 8 bytes
    try:
        inner_ihl = _ip_header_length(buffer, offset)
    except TruncatedPacketError:
        return None, None

    start = offset + inner_ihl
    if len(buffer) < start + ICMP_HEADER_LEN:
        return None, None

    _, _, _, identifier, sequence = _ICMP_HEADER.unpack_from(buffer, start)
    return identifier, sequence


def parse_response(buffer: bytes) -> IcmpResponse:
    """
    Parse a datagram received on a raw ICMP socket.

    Args:
        buffer: Raw bytes starting with the IPv4 header

    Returns:
        IcmpResponse with the ICMP type found after the IP header

    Raises:
        TruncatedPacketError: If the IP header or ICMP header is incomplete
    """
    ihl = _ip_header_length(buffer)
    if len(buffer) < ihl + ICMP_HEADER_LEN:
        raise TruncatedPacketError(
            f"Packet shorter than IP header + ICMP header: {len(buffer)} < {ihl + ICMP_HEADER_LEN}"
        )

    icmp_type, code, csum, identifier, sequence = _ICMP_HEADER.unpack_from(buffer, ihl)
    source = socket.inet_ntoa(buffer[12:16])

    response = IcmpResponse(
        icmp_type=icmp_type,
        code=code,
        checksum=csum,
        identifier=identifier,
        sequence=sequence,
        header_length=ihl,
        source=source,
    )

    if icmp_type in (IcmpType.TIME_EXCEEDED, IcmpType.DEST_UNREACHABLE):
        response.quoted_identifier, response.quoted_sequence = _parse_quoted(
            buffer, ihl + ICMP_HEADER_LEN
        )

    return response
