"""Trapper port definition (interface and DTOs)."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

__all__ = ["SUCCESS_RESPONSE", "SenderPort", "TrapperData", "TrapperResponse"]

SUCCESS_RESPONSE = "success"


@dataclass(slots=True, frozen=True)
class TrapperData:
    """Immutable metric sample pushed to a trapper item.

    Attributes:
        host: Host name as configured on the collector.
        key: Item key of the trapper item.
        value: Value, always sent as text.
        clock: Epoch seconds of the sample; 0 lets the server assign it.
        ns: Nanoseconds within ``clock``; only sent together with ``clock``.
    """

    host: str
    key: str
    value: str
    clock: int = 0
    ns: int = 0

    def to_json(self) -> dict[str, Any]:
        """Return the JSON object for this sample, keys in wire order."""
        item: dict[str, Any] = {"host": self.host, "key": self.key, "value": self.value}
        if self.clock:
            item["clock"] = self.clock
            item["ns"] = self.ns
        return item


@dataclass(slots=True)
class TrapperResponse:
    """Acknowledgement returned by the collector.

    The counters are extracted from ``info``; ``total`` is whatever the server
    reported and is not checked against ``processed + failed``.

    Attributes:
        response: Raw status string ("success" or "failed").
        info: Raw free-text summary.
        processed: Number of values processed.
        failed: Number of values rejected.
        total: Number of values received.
        seconds_spent: Server-side processing time.
    """

    response: str
    info: str
    processed: int = 0
    failed: int = 0
    total: int = 0
    seconds_spent: float = 0.0

    def is_success(self) -> bool:
        """Return True if the server accepted every value."""
        return self.response == SUCCESS_RESPONSE and self.failed == 0


class SenderPort(Protocol):
    """Interface for pushing a batch of samples in one round trip."""

    async def send(self, data: Sequence[TrapperData], /) -> TrapperResponse:
        """Send samples and return the parsed acknowledgement.

        Args:
            data: Samples in the order they should be reported.

        Returns:
            Parsed response, whatever its status.
        """
        ...
