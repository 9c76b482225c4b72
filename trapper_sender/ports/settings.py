"""Settings port definition (DTO)."""

from dataclasses import dataclass

__all__ = ["SettingsPort"]


@dataclass
class SettingsPort:
    """Runtime settings for talking to the collector.

    Decouples core from concrete configuration sources, enabling
    easy testing and implementation swapping.

    Attributes:
        server_address: Collector address, "host" or "host:port".
        timeout_sec: Budget for connect, write and response wait together.
        retries: Attempts per send (1 = no retry).
    """

    server_address: str
    timeout_sec: float
    retries: int = 1
