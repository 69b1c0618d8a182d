"""
ICMP Codec

Checksum, echo request construction and response parsing.
"""

from wirefish.icmp.codec import (
    IcmpType,
    IcmpResponse,
    checksum,
    verify_checksum,
    build_echo_request,
    parse_response,
)

__all__ = [
    "IcmpType",
    "IcmpResponse",
    "checksum",
    "verify_checksum",
    "build_echo_request",
    "parse_response",
]
