"""Structured logging setup for the sender."""

import logging

__all__ = ["configure_logs"]


def configure_logs(debug: bool = False) -> None:
    """Configure console logging.

    Sets up:
    - Root logger at INFO level, writing to stderr.
    - Framework loggers (asyncio) at WARNING level.
    - Application loggers (trapper_sender) at DEBUG level when debug is set.
    - Structured format with timestamp, level, module, and line number.

    Args:
        debug: Enable debug output of the application loggers.
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
    date_format = "%d/%m/%y %H:%M:%S"

    formatter = logging.Formatter(log_format, date_format)
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    # Root logger
    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(handler)

    # Suppress verbose framework loggers
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    # Application loggers
    logging.getLogger("trapper_sender").setLevel(logging.DEBUG if debug else logging.INFO)
