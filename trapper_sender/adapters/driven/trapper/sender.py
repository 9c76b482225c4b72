"""Trapper sender adapter: one connection, one round trip per send."""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
import socket
from collections.abc import Sequence

from trapper_sender.adapters.driven.trapper.errors import (
    ShortWriteError,
    TransmissionError,
    TrapperConnectionError,
    TrapperTimeoutError,
)
from trapper_sender.adapters.driven.trapper.packet import build_request_packet
from trapper_sender.adapters.driven.trapper.response import parse_response
from trapper_sender.ports.trapper import SenderPort, TrapperData, TrapperResponse

__all__ = [
    "DEFAULT_SERVER_PORT",
    "SendPhase",
    "Sender",
    "add_default_port",
    "get_now_time",
    "split_host_port",
]

logger = logging.getLogger(__name__)

DEFAULT_SERVER_PORT = 10051


class SendPhase(str, enum.Enum):
    """Where a send currently is; reported with timeouts."""

    RESOLVING_ADDRESS = "resolving-address"
    CONNECTING = "connecting"
    WRITING = "writing"
    AWAITING_RESPONSE = "awaiting-response"
    DONE = "done"


def get_now_time() -> float:
    """Get current monotonic time in seconds from the running event loop.

    Deadlines passed to asyncio.timeout_at() must use this clock.

    Returns:
        Current time in seconds (monotonic).
    """
    return asyncio.get_running_loop().time()


def split_host_port(address: str) -> tuple[str, str]:
    """Split "host:port" or "[v6host]:port" into host and port.

    Raises:
        ValueError: If the address has no port or is ambiguous.
    """
    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address: {address}")
        if not address.startswith(":", end + 1):
            raise ValueError(f"missing port in address: {address}")
        return address[1:end], address[end + 2 :]

    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address: {address}")
    if ":" in host:
        raise ValueError(f"too many colons in address: {address}")
    return host, port


def add_default_port(address: str, port: int = DEFAULT_SERVER_PORT) -> str:
    """Append the default trapper port to an address that has none.

    "host" becomes "host:10051", "::1" becomes "[::1]:10051" and an address
    that already carries a port is returned unchanged.
    """
    try:
        split_host_port(address)
    except ValueError:
        host = address
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        if ":" in host:
            return f"[{host}]:{port}"
        return f"{host}:{port}"
    return address


class Sender(SenderPort):
    """Client for the trapper protocol.

    Each call to send() resolves the address, opens a TCP connection, writes
    one request packet, reads one response and closes the connection. A single
    absolute deadline, taken when send() starts, bounds connect, write and
    response wait together.

    Safe to share between tasks: no state is kept between calls.
    """

    def __init__(
        self,
        server_address: str,
        timeout_sec: float,
        *,
        size_limit: int | None = None,
        max_response_len: int | None = None,
    ) -> None:
        """Initialize sender.

        Args:
            server_address: Collector address, "host" or "host:port".
            timeout_sec: Budget for the whole round trip.
            size_limit: Ceiling for request packets; defaults to 1 GiB.
            max_response_len: Ceiling for response payloads; defaults to 1 GiB.
        """
        self.server_address = server_address
        self.timeout_sec = timeout_sec
        self.size_limit = size_limit
        self.max_response_len = max_response_len

    async def send(self, data: Sequence[TrapperData]) -> TrapperResponse:
        """Send samples in one packet and return the parsed acknowledgement.

        A response with a failure status is returned, not raised; check
        TrapperResponse.is_success().

        Args:
            data: Samples to report, in order.

        Returns:
            Parsed response.

        Raises:
            PacketSizeLimitExceededError: If the request packet is too large.
            TrapperConnectionError: If the address is invalid, cannot be
                resolved or refuses the connection.
            TrapperTimeoutError: If the deadline expires in any phase.
            TransmissionError: If writing the packet fails.
            ProtocolError: If the response framing is broken.
            DecodingError: If the response payload cannot be decoded.
        """
        deadline = get_now_time() + self.timeout_sec
        packet = build_request_packet(data, size_limit=self.size_limit)

        phase = SendPhase.RESOLVING_ADDRESS
        address = add_default_port(self.server_address)
        host, port = self._split_address(address)

        writer: asyncio.StreamWriter | None = None
        try:
            async with asyncio.timeout_at(deadline):
                sockaddrs = await self._lookup(host, port, address)

                phase = SendPhase.CONNECTING
                logger.debug(f"Connecting to {address}...")
                reader, writer = await self._connect(sockaddrs, address)

                phase = SendPhase.WRITING
                await self._write_packet(writer, packet)

                phase = SendPhase.AWAITING_RESPONSE
                response = await parse_response(reader, max_data_len=self.max_response_len)
                phase = SendPhase.DONE
        except TimeoutError as e:
            raise TrapperTimeoutError(
                f"{phase.value} {address}: timed out after {self.timeout_sec}s",
                details={"address": address, "phase": phase.value},
            ) from e
        finally:
            if writer is not None:
                await self._close(writer, abort=phase is not SendPhase.DONE)

        logger.debug(f"Response from {address}: {response}")
        return response

    @staticmethod
    def _split_address(address: str) -> tuple[str, int]:
        """Split a normalized address into host and numeric port."""
        try:
            host, port = split_host_port(address)
            return host, int(port)
        except ValueError as e:
            raise TrapperConnectionError(
                f"invalid server address {address}: {e}", details={"address": address}
            ) from e

    @staticmethod
    async def _lookup(host: str, port: int, address: str) -> list[tuple[str, int]]:
        """Resolve the host to (ip, port) pairs, in resolver order.

        Raises:
            TrapperConnectionError: If the name cannot be resolved.
        """
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(host, port, type=socket.SOCK_STREAM)
        except TimeoutError:
            raise
        except OSError as e:
            raise TrapperConnectionError(
                f"resolve {address}: {e}", details={"address": address}
            ) from e
        if not infos:
            raise TrapperConnectionError(
                f"resolve {address}: no addresses found", details={"address": address}
            )
        return [(sockaddr[0], sockaddr[1]) for *_, sockaddr in infos]

    @staticmethod
    async def _connect(
        sockaddrs: list[tuple[str, int]], address: str
    ) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        """Connect to the first resolved address that accepts.

        Raises:
            TrapperConnectionError: If every address refuses or fails.
        """
        last_exc: OSError | None = None
        for ip, port in sockaddrs:
            try:
                return await asyncio.open_connection(ip, port)
            except TimeoutError:
                raise
            except OSError as e:
                logger.debug(f"Connect to {ip}:{port} failed: {e}")
                last_exc = e
        raise TrapperConnectionError(
            f"connect to {address}: {last_exc}", details={"address": address}
        ) from last_exc

    @staticmethod
    async def _write_packet(writer: asyncio.StreamWriter, packet: bytes) -> None:
        """Write the whole packet and wait until the transport has flushed it.

        Raises:
            TransmissionError: If the connection fails while writing.
            ShortWriteError: If part of the packet was left unsent.
        """
        # drain() only returns once the buffer is empty
        writer.transport.set_write_buffer_limits(high=0)
        writer.write(packet)
        try:
            await writer.drain()
        except TimeoutError:
            raise
        except OSError as e:
            raise TransmissionError(f"send request packet: {e}") from e

        unsent = writer.transport.get_write_buffer_size()
        if unsent:
            raise ShortWriteError(
                "short write for sending request packet",
                details={"written": len(packet) - unsent, "packet_len": len(packet)},
            )

    @staticmethod
    async def _close(writer: asyncio.StreamWriter, *, abort: bool) -> None:
        """Close the connection; abort it if the round trip did not finish."""
        if abort:
            writer.transport.abort()
            return
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
