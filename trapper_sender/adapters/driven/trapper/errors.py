"""Exception hierarchy for the trapper protocol client.

Every failure of a send is raised as a subclass of TrapperError so callers can
catch the whole family at once, or pick a category (connection, timeout,
transmission, protocol, decoding) to decide on a retry policy.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "DecodingError",
    "HeaderReadError",
    "PacketSizeLimitExceededError",
    "PayloadReadError",
    "ProtocolError",
    "RequestEncodingError",
    "ResponseInfoParseError",
    "ResponseTooLargeError",
    "ResponseUnmarshalError",
    "ShortWriteError",
    "TransmissionError",
    "TrapperConnectionError",
    "TrapperError",
    "TrapperTimeoutError",
    "UnexpectedProtocolError",
    "UnsupportedProtocolFlagError",
]


class TrapperError(Exception):
    """Base exception for all trapper client errors.

    Attributes:
        message: Human-readable description.
        details: Diagnostic context (raw bytes, raw info string, phase, ...).
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Encoding


class PacketSizeLimitExceededError(TrapperError):
    """Request packet is larger than the non-large packet ceiling."""


class RequestEncodingError(TrapperError):
    """A sample holds text that cannot be encoded as UTF-8."""


# Connection


class TrapperConnectionError(TrapperError):
    """Address could not be resolved or the connection was refused."""


class TrapperTimeoutError(TrapperError, TimeoutError):
    """The send deadline expired; ``details["phase"]`` tells where."""


# Transmission


class TransmissionError(TrapperError):
    """Writing the request packet failed."""


class ShortWriteError(TransmissionError):
    """Only part of the request packet reached the connection."""


# Protocol


class ProtocolError(TrapperError):
    """Response framing is broken."""


class HeaderReadError(ProtocolError):
    """Fewer than 13 header bytes could be read."""


class UnexpectedProtocolError(ProtocolError):
    """Response does not start with the protocol magic."""


class UnsupportedProtocolFlagError(ProtocolError):
    """Response carries a protocol flag other than standard communications."""


class PayloadReadError(ProtocolError):
    """Fewer payload bytes could be read than the header announced."""


class ResponseTooLargeError(ProtocolError):
    """Announced payload length is above the accepted maximum."""


# Decoding


class DecodingError(TrapperError):
    """Response payload could not be decoded."""


class ResponseUnmarshalError(DecodingError):
    """Payload is not the expected JSON object."""


class ResponseInfoParseError(DecodingError):
    """The info string does not follow the processed/failed/total template."""

    def __init__(self, info: str) -> None:
        super().__init__(f"could not parse response info: {info!r}", details={"info": info})
        self.info = info
