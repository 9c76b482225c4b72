"""Tests for the reporting use cases."""

import asyncio
import sys
from unittest.mock import AsyncMock, Mock, patch

import pytest

from trapper_sender.adapters.driven.trapper.errors import TrapperConnectionError
from trapper_sender.adapters.driven.trapper.sender import Sender
from trapper_sender.core.reporting import (
    COMMAND_NOT_STARTED_EXIT_CODE,
    RunKeys,
    format_elapsed_seconds,
    run_and_report,
    run_command,
    send_metric,
)
from trapper_sender.ports.trapper import TrapperData, TrapperResponse

__all__ = []

SUCCESS = TrapperResponse(
    response="success",
    info="processed: 1; failed: 0; total: 1; seconds spent: 0.000050",
    processed=1,
    total=1,
    seconds_spent=0.00005,
)


def test_run_keys_from_prefix() -> None:
    """Keys should be prefix + suffix."""
    keys = RunKeys.from_prefix("backup", exit_code_suffix=".rc")

    assert keys == RunKeys(
        start_time="backup_start_time",
        elapsed_time="backup_elapsed_time",
        exit_code="backup.rc",
    )


def test_format_elapsed_seconds() -> None:
    """Elapsed time should use the shortest round-trip form."""
    assert format_elapsed_seconds(1.25) == "1.25"
    assert format_elapsed_seconds(0.1) == "0.1"


@pytest.mark.asyncio
async def test_send_metric_sends_single_sample() -> None:
    """send_metric should send a batch of one and return the response."""
    send_fn = AsyncMock(return_value=SUCCESS)
    sample = TrapperData(host="web01", key="app.ping", value="1")

    resp = await send_metric(send_fn, sample)

    assert resp is SUCCESS
    send_fn.assert_awaited_once_with([sample])


@pytest.mark.asyncio
async def test_send_metric_propagates_errors() -> None:
    """send_metric should leave error handling to the caller."""
    send_fn = AsyncMock(side_effect=TrapperConnectionError("refused"))

    with pytest.raises(TrapperConnectionError):
        await send_metric(send_fn, TrapperData(host="h", key="k", value="v"))


@pytest.mark.asyncio
async def test_run_command_returns_exit_code() -> None:
    """run_command should return the child's exit code."""
    assert await run_command(sys.executable, "-c", "raise SystemExit(3)") == 3


@pytest.mark.asyncio
async def test_run_command_missing_executable() -> None:
    """Command that cannot start should map to exit code 127."""
    exit_code = await run_command("/nonexistent/definitely-not-a-command")

    assert exit_code == COMMAND_NOT_STARTED_EXIT_CODE


@pytest.mark.asyncio
async def test_run_and_report_sends_pre_and_post_metrics() -> None:
    """Start time should be sent before, exit code and elapsed time after."""
    send_fn = AsyncMock(return_value=SUCCESS)
    keys = RunKeys.from_prefix("job")

    with (
        patch("trapper_sender.core.reporting.run_command", new=AsyncMock(return_value=3)),
        patch("trapper_sender.core.reporting.time", return_value=1700000000.75),
        patch("trapper_sender.core.reporting.monotonic", side_effect=[10.0, 12.5]),
    ):
        exit_code = await run_and_report(send_fn, "web01", keys, "backup.sh", ["--full"])

    assert exit_code == 3
    assert send_fn.await_count == 2
    pre_run = send_fn.await_args_list[0].args[0]
    post_run = send_fn.await_args_list[1].args[0]
    assert pre_run == [TrapperData(host="web01", key="job_start_time", value="1700000000")]
    assert post_run == [
        TrapperData(host="web01", key="job_exit_code", value="3"),
        TrapperData(host="web01", key="job_elapsed_time", value="2.5"),
    ]


@pytest.mark.asyncio
async def test_run_and_report_runs_command_when_sending_fails() -> None:
    """Send failures should be logged and not stop the command."""
    send_fn = AsyncMock(side_effect=TrapperConnectionError("refused"))
    mock_run = AsyncMock(return_value=0)

    with patch("trapper_sender.core.reporting.run_command", new=mock_run):
        exit_code = await run_and_report(
            send_fn, "web01", RunKeys.from_prefix("job"), "true"
        )

    assert exit_code == 0
    mock_run.assert_awaited_once_with("true")
    assert send_fn.await_count == 2


@pytest.mark.asyncio
async def test_run_and_report_runs_command_when_connection_resets() -> None:
    """A reset from the collector should be logged and the command still run."""

    async def reset_connection(host, port):
        reader = asyncio.StreamReader()
        reader.set_exception(ConnectionResetError("Connection reset by peer"))
        writer = Mock()
        writer.drain = AsyncMock()
        writer.transport.get_write_buffer_size.return_value = 0
        return reader, writer

    mock_run = AsyncMock(return_value=5)

    with (
        patch(
            "trapper_sender.adapters.driven.trapper.sender.asyncio.open_connection",
            new=reset_connection,
        ),
        patch("trapper_sender.core.reporting.run_command", new=mock_run),
    ):
        exit_code = await run_and_report(
            Sender("127.0.0.1", timeout_sec=1).send, "web01", RunKeys.from_prefix("job"), "true"
        )

    assert exit_code == 5
    mock_run.assert_awaited_once_with("true")
