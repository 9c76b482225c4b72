"""Request packet framing for the trapper protocol.

Wire layout (little-endian, no padding)::

    offset 0   [4]  magic "ZBXD"
    offset 4   [1]  flag 0x01 (standard communications)
    offset 5   [4]  payload length, excludes the header
    offset 9   [4]  reserved, always 0
    offset 13  [N]  UTF-8 JSON payload

Large packets (64-bit length field) are not supported.
"""

from __future__ import annotations

import json
import logging
import struct
from collections.abc import Sequence

from trapper_sender.adapters.driven.trapper.errors import (
    PacketSizeLimitExceededError,
    RequestEncodingError,
    UnexpectedProtocolError,
    UnsupportedProtocolFlagError,
)
from trapper_sender.ports.trapper import TrapperData

__all__ = [
    "DATA_LEN_OFFSET",
    "HEADER",
    "HEADER_LEN",
    "NON_LARGE_PACKET_SIZE_LIMIT",
    "PROTOCOL",
    "PROTOCOL_FLAG_COMMUNICATIONS",
    "REQUEST_TYPE",
    "build_request_packet",
    "decode_header",
    "encode_header",
    "encode_request",
]

logger = logging.getLogger(__name__)

PROTOCOL = b"ZBXD"
PROTOCOL_FLAG_COMMUNICATIONS = 0x01
REQUEST_TYPE = "sender data"

# magic, flag, data length, reserved
HEADER = struct.Struct("<4sBII")
HEADER_LEN = HEADER.size
DATA_LEN_OFFSET = len(PROTOCOL) + 1
_DATA_LEN = struct.Struct("<I")

NON_LARGE_PACKET_SIZE_LIMIT = 1024 * 1024 * 1024  # 1 GiB


def encode_header(data_len: int) -> bytes:
    """Return the 13-byte header announcing ``data_len`` payload bytes."""
    return HEADER.pack(PROTOCOL, PROTOCOL_FLAG_COMMUNICATIONS, data_len, 0)


def decode_header(header: bytes) -> int:
    """Validate a 13-byte header and return the announced payload length.

    Args:
        header: Exactly HEADER_LEN bytes.

    Returns:
        Payload length in bytes.

    Raises:
        UnexpectedProtocolError: If the magic is not "ZBXD".
        UnsupportedProtocolFlagError: If the flag is not 0x01.
    """
    magic, flag, data_len, _reserved = HEADER.unpack(header)
    if magic != PROTOCOL:
        raise UnexpectedProtocolError(
            f"unexpected response protocol: {magic!r}", details={"header": header}
        )
    if flag != PROTOCOL_FLAG_COMMUNICATIONS:
        raise UnsupportedProtocolFlagError(
            f"unsupported response protocol flag: {flag:#04x}", details={"header": header}
        )
    return data_len


def encode_request(data: Sequence[TrapperData]) -> bytes:
    """Serialize samples into the "sender data" request JSON.

    Raises:
        RequestEncodingError: If a sample holds lone surrogates, e.g. from
            command-line bytes that were not valid UTF-8.
    """
    request = {"request": REQUEST_TYPE, "data": [item.to_json() for item in data]}
    body = json.dumps(request, ensure_ascii=False, separators=(",", ":"))
    try:
        return body.encode("utf-8")
    except UnicodeEncodeError as e:
        raise RequestEncodingError(
            f"encode request: {e}", details={"text": e.object[e.start : e.end]}
        ) from e


def build_request_packet(data: Sequence[TrapperData], *, size_limit: int | None = None) -> bytes:
    """Build the full request packet (header + JSON) for a batch of samples.

    The packet is assembled with a zero length, checked against the size
    ceiling, then the length field is patched in place.

    Args:
        data: Samples to send, in order.
        size_limit: Ceiling for header + payload; defaults to 1 GiB.

    Returns:
        Bytes ready to be written to the connection.

    Raises:
        PacketSizeLimitExceededError: If the packet is larger than the ceiling.
        RequestEncodingError: If a sample cannot be encoded as UTF-8.
    """
    limit = NON_LARGE_PACKET_SIZE_LIMIT if size_limit is None else size_limit

    packet = bytearray(encode_header(0))
    packet += encode_request(data)

    if len(packet) > limit:
        raise PacketSizeLimitExceededError(
            "request packet size limit exceeded",
            details={"packet_len": len(packet), "limit": limit},
        )

    _DATA_LEN.pack_into(packet, DATA_LEN_OFFSET, len(packet) - HEADER_LEN)
    logger.debug(f"Built request packet: {len(data)} samples, {len(packet)} bytes")
    return bytes(packet)
