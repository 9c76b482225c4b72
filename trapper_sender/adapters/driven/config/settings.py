"""Configuration loading from environment variables and command-line overrides."""

import logging
import os
import re
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

__all__ = ["Settings", "load_settings", "parse_duration"]

load_dotenv()

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"(?P<amount>\d+(?:\.\d*)?|\.\d+)(?P<unit>ms|s|m|h)?")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, None: 1.0}


def parse_duration(value: str) -> float:
    """Parse "5", "5s", "500ms", "1.5m" or "1h" into seconds.

    Raises:
        ValueError: If the string is not a duration.
    """
    match = _DURATION_RE.fullmatch(value.strip())
    if match is None:
        raise ValueError(f"invalid duration: {value!r}")
    return float(match["amount"]) * _UNIT_SECONDS[match["unit"]]


class Settings(BaseModel):
    """Runtime configuration for the trapper sender.

    Attributes:
        server_address: Collector address ("host" or "host:port").
        timeout_sec: Round-trip budget in seconds (must be positive).
        retries: Attempts per send on connection errors and timeouts.
    """

    server_address: str = Field(..., min_length=1, description="Collector address.")
    timeout_sec: float = Field(default=5.0, gt=0, description="Send timeout in seconds.")
    retries: int = Field(default=1, ge=1, description="Attempts per send (1 = no retry).")

    @field_validator("server_address")
    @classmethod
    def validate_server_address(cls, v: str) -> str:
        """Strip surrounding whitespace and reject blank addresses.

        Args:
            v: Address to validate.

        Returns:
            The stripped address.

        Raises:
            ValueError: If the address is blank.
        """
        v = v.strip()
        if not v:
            raise ValueError("Server address must not be blank")
        return v

    @field_validator("timeout_sec", mode="before")
    @classmethod
    def validate_timeout(cls, v: Any) -> Any:
        """Accept duration strings such as "5s" or "500ms".

        Args:
            v: Raw timeout value.

        Returns:
            Timeout in seconds, or the value unchanged if it is not a string.
        """
        if isinstance(v, str):
            return parse_duration(v)
        return v


def load_settings(**overrides: Any) -> Settings:
    """Load and validate settings from environment, then apply overrides.

    Environment variables:
    - TRAPPER_SERVER: Collector address (required unless overridden).
    - TRAPPER_TIMEOUT: Send timeout, e.g. "5s" (default 5s).
    - TRAPPER_RETRIES: Attempts per send (default 1).

    Args:
        **overrides: Values from the command line; None means "not given".

    Returns:
        Validated Settings object.

    Raises:
        RuntimeError: If no server address is configured.
        ValueError: If configuration is invalid.
    """
    raw: dict[str, Any] = {}
    env_map = {
        "server_address": "TRAPPER_SERVER",
        "timeout_sec": "TRAPPER_TIMEOUT",
        "retries": "TRAPPER_RETRIES",
    }
    for field, env_name in env_map.items():
        value = os.getenv(env_name)
        if value:
            raw[field] = value
    raw.update({k: v for k, v in overrides.items() if v is not None})

    if "server_address" not in raw:
        raise RuntimeError("Missing server address: pass --server or set TRAPPER_SERVER")

    # pydantic's ValidationError is a ValueError
    settings = Settings(**raw)

    logger.debug(
        f"Sender configured: server={settings.server_address}, "
        f"timeout={settings.timeout_sec}s, "
        f"retries={settings.retries}"
    )

    return settings
