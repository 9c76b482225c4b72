"""Use cases: report a single metric, or wrap a command and report how it ran."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from time import monotonic, time

from trapper_sender.adapters.driven.trapper.errors import TrapperError
from trapper_sender.ports.trapper import TrapperData, TrapperResponse

__all__ = [
    "COMMAND_NOT_STARTED_EXIT_CODE",
    "RunKeys",
    "SendFn",
    "format_elapsed_seconds",
    "run_and_report",
    "run_command",
    "send_metric",
]

logger = logging.getLogger(__name__)

SendFn = Callable[[Sequence[TrapperData]], Awaitable[TrapperResponse]]

# Same code a shell uses for "command not found"
COMMAND_NOT_STARTED_EXIT_CODE = 127


@dataclass(frozen=True)
class RunKeys:
    """Item keys reported around a wrapped command.

    Attributes:
        start_time: Key receiving the start time in epoch seconds.
        elapsed_time: Key receiving the run time in seconds.
        exit_code: Key receiving the command's exit code.
    """

    start_time: str
    elapsed_time: str
    exit_code: str

    @classmethod
    def from_prefix(
        cls,
        prefix: str,
        start_time_suffix: str = "_start_time",
        elapsed_time_suffix: str = "_elapsed_time",
        exit_code_suffix: str = "_exit_code",
    ) -> "RunKeys":
        """Build the three keys from a common prefix."""
        return cls(
            start_time=prefix + start_time_suffix,
            elapsed_time=prefix + elapsed_time_suffix,
            exit_code=prefix + exit_code_suffix,
        )


def format_elapsed_seconds(elapsed: float) -> str:
    """Format seconds in the shortest form that round-trips, e.g. "1.25"."""
    return repr(float(elapsed))


async def send_metric(send_fn: SendFn, sample: TrapperData) -> TrapperResponse:
    """Send one sample and log the acknowledgement.

    Errors are not caught here; the caller decides how to report them.

    Args:
        send_fn: Async function used to send one batch.
        sample: Sample to report.

    Returns:
        Parsed response.
    """
    resp = await send_fn([sample])
    if resp.is_success():
        logger.info(f"Sent metrics: {resp}")
    else:
        logger.warning(f"Collector did not accept all metrics: {resp}")
    return resp


async def run_command(command: str, *args: str) -> int:
    """Run a command with inherited stdin/stdout/stderr and wait for it.

    Args:
        command: Program to execute.
        *args: Arguments passed to the program.

    Returns:
        The command's exit code (negative signal number if it was killed),
        or COMMAND_NOT_STARTED_EXIT_CODE if it could not be started.
    """
    try:
        proc = await asyncio.create_subprocess_exec(command, *args)
    except OSError as e:
        logger.error(f"Command failed to start: {e}")
        return COMMAND_NOT_STARTED_EXIT_CODE

    exit_code = await proc.wait()
    if exit_code != 0:
        logger.error(f"Command {command} exited with code {exit_code}")
    return exit_code


async def run_and_report(
    send_fn: SendFn,
    host: str,
    keys: RunKeys,
    command: str,
    args: Sequence[str] = (),
) -> int:
    """Run a command and report its start time, run time and exit code.

    The start time is sent before the command runs; the exit code and the
    elapsed time are sent together afterwards. Send failures are logged and
    never stop the command from running.

    Args:
        send_fn: Async function used to send one batch.
        host: Host name the items belong to.
        keys: Item keys to report to.
        command: Program to execute.
        args: Arguments passed to the program.

    Returns:
        The command's exit code.
    """
    start_time = time()
    start_mono = monotonic()

    await _report(
        send_fn,
        [TrapperData(host=host, key=keys.start_time, value=str(int(start_time)))],
        stage="pre-run",
    )

    exit_code = await run_command(command, *args)
    elapsed = monotonic() - start_mono

    await _report(
        send_fn,
        [
            TrapperData(host=host, key=keys.exit_code, value=str(exit_code)),
            TrapperData(
                host=host, key=keys.elapsed_time, value=format_elapsed_seconds(elapsed)
            ),
        ],
        stage="post-run",
    )
    return exit_code


async def _report(send_fn: SendFn, data: Sequence[TrapperData], stage: str) -> None:
    """Send a batch, logging instead of raising on failure."""
    try:
        resp = await send_fn(data)
    except TrapperError as e:
        logger.error(f"Failed to send {stage} metrics: {e}")
        return

    if resp.is_success():
        logger.info(f"Sent {stage} metrics: {resp}")
    else:
        logger.warning(f"Collector did not accept all {stage} metrics: {resp}")
