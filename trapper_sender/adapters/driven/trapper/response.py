"""Response parsing for the trapper protocol."""

from __future__ import annotations

import asyncio
import json
import logging
import re

from trapper_sender.adapters.driven.trapper.errors import (
    HeaderReadError,
    PayloadReadError,
    ResponseInfoParseError,
    ResponseTooLargeError,
    ResponseUnmarshalError,
)
from trapper_sender.adapters.driven.trapper.packet import (
    HEADER_LEN,
    NON_LARGE_PACKET_SIZE_LIMIT,
    decode_header,
)
from trapper_sender.ports.trapper import TrapperResponse

__all__ = ["INFO_PATTERN", "parse_info", "parse_response"]

logger = logging.getLogger(__name__)

_INT = r"[-+]?\d+"
_FLOAT = r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?"

# processed: %d; failed: %d; total: %d; seconds spent: %f
INFO_PATTERN = re.compile(
    rf"processed: (?P<processed>{_INT}); "
    rf"failed: (?P<failed>{_INT}); "
    rf"total: (?P<total>{_INT}); "
    rf"seconds spent: (?P<seconds_spent>{_FLOAT})"
)


def parse_info(info: str) -> tuple[int, int, int, float]:
    """Extract the counters from the response info string.

    The whole string must match the template; anything else (a missing field,
    a renamed label, trailing text) is a hard failure.

    Args:
        info: Raw info string, e.g.
            "processed: 1; failed: 0; total: 1; seconds spent: 0.060753".

    Returns:
        Tuple of (processed, failed, total, seconds_spent).

    Raises:
        ResponseInfoParseError: If the string does not match the template.
    """
    match = INFO_PATTERN.fullmatch(info)
    if match is None:
        raise ResponseInfoParseError(info)
    return (
        int(match["processed"]),
        int(match["failed"]),
        int(match["total"]),
        float(match["seconds_spent"]),
    )


async def parse_response(
    reader: asyncio.StreamReader, *, max_data_len: int | None = None
) -> TrapperResponse:
    """Read one framed response from the stream and decode it.

    Args:
        reader: Stream positioned at the start of a response.
        max_data_len: Largest payload accepted; defaults to 1 GiB.

    Returns:
        Decoded response with counters filled in.

    Raises:
        HeaderReadError: If the read fails or the stream ends inside the header.
        UnexpectedProtocolError: If the magic is wrong.
        UnsupportedProtocolFlagError: If the flag is wrong.
        ResponseTooLargeError: If the announced length exceeds max_data_len.
        PayloadReadError: If the read fails or the stream ends inside the payload.
        ResponseUnmarshalError: If the payload is not the expected JSON object.
        ResponseInfoParseError: If the info string does not match the template.
    """
    limit = NON_LARGE_PACKET_SIZE_LIMIT if max_data_len is None else max_data_len

    try:
        header = await reader.readexactly(HEADER_LEN)
    except asyncio.IncompleteReadError as e:
        raise HeaderReadError(
            f"read response header: got {len(e.partial)} of {HEADER_LEN} bytes",
            details={"partial": e.partial},
        ) from e
    except TimeoutError:
        raise
    except OSError as e:
        raise HeaderReadError(f"read response header: {e}") from e

    data_len = decode_header(header)
    if data_len > limit:
        raise ResponseTooLargeError(
            f"response data length {data_len} exceeds limit {limit}",
            details={"header": header, "data_len": data_len, "limit": limit},
        )

    try:
        data = await reader.readexactly(data_len)
    except asyncio.IncompleteReadError as e:
        raise PayloadReadError(
            f"read response data: got {len(e.partial)} of {data_len} bytes",
            details={"partial": e.partial},
        ) from e
    except TimeoutError:
        raise
    except OSError as e:
        raise PayloadReadError(f"read response data: {e}") from e

    logger.debug(f"Received response payload: {data!r}")
    response = _unmarshal(data)
    (
        response.processed,
        response.failed,
        response.total,
        response.seconds_spent,
    ) = parse_info(response.info)
    return response


def _unmarshal(data: bytes) -> TrapperResponse:
    """Decode the JSON payload into a response with empty counters."""
    try:
        obj = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ResponseUnmarshalError(f"unmarshal response: {e}", details={"data": data}) from e

    if not isinstance(obj, dict):
        raise ResponseUnmarshalError(
            "unmarshal response: payload is not a JSON object", details={"data": data}
        )

    status = obj.get("response", "")
    info = obj.get("info", "")
    if not isinstance(status, str) or not isinstance(info, str):
        raise ResponseUnmarshalError(
            "unmarshal response: response and info must be strings", details={"data": data}
        )
    return TrapperResponse(response=status, info=info)
