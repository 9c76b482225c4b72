"""Application entrypoint."""

import asyncio
import logging
from importlib.metadata import PackageNotFoundError, version

from trapper_sender.adapters.driven.config.settings import load_settings
from trapper_sender.adapters.driven.logging.logging_config import configure_logs
from trapper_sender.adapters.driven.trapper.errors import TrapperError
from trapper_sender.adapters.driven.trapper.retry import retry
from trapper_sender.adapters.driven.trapper.sender import Sender
from trapper_sender.adapters.driving.cli import build_parser
from trapper_sender.core.reporting import RunKeys, SendFn, run_and_report, send_metric
from trapper_sender.ports.settings import SettingsPort
from trapper_sender.ports.trapper import TrapperData

__all__ = ["entrypoint", "get_version", "main", "make_send_fn"]

logger = logging.getLogger(__name__)

DISTRIBUTION_NAME = "trapper-sender"
CONFIG_ERROR_EXIT_CODE = 2


def get_version() -> str:
    """Return the installed version, or "(devel)" when running from a checkout."""
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return "(devel)"


def make_send_fn(settings: SettingsPort) -> SendFn:
    """Create the send function for the configured collector.

    Args:
        settings: Runtime settings.

    Returns:
        Sender.send, wrapped with retry when more than one attempt is allowed.
    """
    sender = Sender(settings.server_address, settings.timeout_sec)
    if settings.retries > 1:
        return retry(times=settings.retries)(sender.send)
    return sender.send


async def main(argv: list[str] | None = None) -> int:
    """Run the command given on the command line.

    Startup sequence:
    1. Parse arguments.
    2. Configure logging.
    3. Load and validate configuration (environment + flags).
    4. Run the send or run command.

    Args:
        argv: Arguments without the program name; sys.argv when None.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)
    configure_logs(debug=args.debug)

    if args.cmd == "version":
        print(get_version())
        return 0

    try:
        config = load_settings(
            server_address=args.server,
            timeout_sec=args.timeout,
            retries=args.retries,
        )
    except (RuntimeError, ValueError) as exc:
        logger.error(
            "Configuration error: %s\n"
            "Hint: check --server/TRAPPER_SERVER, --timeout/TRAPPER_TIMEOUT "
            "and --retries/TRAPPER_RETRIES.",
            exc,
        )
        return CONFIG_ERROR_EXIT_CODE

    # Wrap config into port so core depends on interface (hexagonal)
    settings_port = SettingsPort(
        server_address=config.server_address,
        timeout_sec=config.timeout_sec,
        retries=config.retries,
    )
    send_fn = make_send_fn(settings_port)

    if args.cmd == "send":
        clock, ns = args.time or (0, 0)
        sample = TrapperData(host=args.host, key=args.key, value=args.value, clock=clock, ns=ns)
        try:
            resp = await send_metric(send_fn, sample)
        except TrapperError as e:
            logger.error(f"Failed to send metric to {settings_port.server_address}: {e}")
            return 1
        return 0 if resp.is_success() else 1

    keys = RunKeys.from_prefix(
        args.prefix,
        start_time_suffix=args.start_time_suffix,
        elapsed_time_suffix=args.elapsed_time_suffix,
        exit_code_suffix=args.exit_code_suffix,
    )
    return await run_and_report(send_fn, args.host, keys, args.command, args.args)


def entrypoint() -> None:
    """Console script entrypoint."""
    try:
        raise SystemExit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Interrupted by user (Ctrl+C).")
        raise SystemExit(130) from None


if __name__ == "__main__":
    entrypoint()
