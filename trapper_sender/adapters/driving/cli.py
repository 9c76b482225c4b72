"""Command-line interface definition."""

import argparse
import calendar
import re
from datetime import datetime

__all__ = ["build_parser", "parse_metric_time"]

_METRIC_TIME_RE = re.compile(r"(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(?P<frac>\d{1,9}))?")


def parse_metric_time(value: str) -> tuple[int, int]:
    """Parse "YYYY-mm-ddTHH:MM:SS(.fffffffff)" (UTC) into (clock, ns).

    Raises:
        argparse.ArgumentTypeError: If the value is not in that format.
    """
    match = _METRIC_TIME_RE.fullmatch(value)
    if match is None:
        raise argparse.ArgumentTypeError(
            f"invalid time {value!r}, expected YYYY-mm-ddTHH:MM:SS(.sssssssss)"
        )
    try:
        base = datetime.strptime(match["base"], "%Y-%m-%dT%H:%M:%S")
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid time {value!r}: {e}") from e

    clock = calendar.timegm(base.timetuple())
    ns = int((match["frac"] or "0").ljust(9, "0"))
    return clock, ns


def _add_server_args(p: argparse.ArgumentParser) -> None:
    group = p.add_argument_group("collector")
    group.add_argument(
        "--server",
        default=None,
        help="Collector address in host[:port] format (default port 10051, env TRAPPER_SERVER).",
    )
    group.add_argument(
        "--timeout",
        default=None,
        help="Send timeout such as 5s or 500ms (default 5s, env TRAPPER_TIMEOUT).",
    )
    group.add_argument(
        "--retries",
        default=None,
        type=int,
        help="Attempts per send on connection errors and timeouts (default 1).",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for all commands.

    Returns:
        Parser whose namespace carries the chosen command in ``cmd``.
    """
    p = argparse.ArgumentParser(prog="trapper-sender")
    p.add_argument("--debug", action="store_true", help="Enable debug mode.")

    sub = p.add_subparsers(dest="cmd", required=True)

    send = sub.add_parser("send", help="Send a metric to a collector.")
    metric = send.add_argument_group("metric")
    metric.add_argument("--host", required=True, help="Hostname for the metric.")
    metric.add_argument("--key", required=True, help="Metric item key.")
    metric.add_argument("--value", required=True, help="Metric value.")
    metric.add_argument(
        "--time",
        type=parse_metric_time,
        default=None,
        help="UTC time for the metric in YYYY-mm-ddTHH:MM:SS(.sssssssss) format.",
    )
    _add_server_args(send)

    run = sub.add_parser(
        "run",
        help=(
            "Run a command and send metrics "
            "(start time before running, elapsed time and exit code after running)."
        ),
    )
    metric = run.add_argument_group("metric")
    metric.add_argument("--host", required=True, help="Hostname for the metric.")
    metric.add_argument("--prefix", required=True, help="Metric item key prefix.")
    metric.add_argument("--start-time-suffix", default="_start_time")
    metric.add_argument("--elapsed-time-suffix", default="_elapsed_time")
    metric.add_argument("--exit-code-suffix", default="_exit_code")
    _add_server_args(run)
    run.add_argument("command", help="Path to command to be executed.")
    run.add_argument("args", nargs=argparse.REMAINDER, help="Arguments for the command.")

    sub.add_parser("version", help="Show version and exit.")

    return p
