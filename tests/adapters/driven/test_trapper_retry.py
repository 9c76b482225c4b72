"""Tests for the send retry decorator."""

from unittest.mock import AsyncMock, patch

import pytest

from trapper_sender.adapters.driven.trapper.errors import (
    ResponseInfoParseError,
    TrapperConnectionError,
    TrapperTimeoutError,
)
from trapper_sender.adapters.driven.trapper.retry import RETRYABLE_ERRORS, retry
from trapper_sender.ports.trapper import TrapperResponse

__all__ = []


@pytest.mark.asyncio
@pytest.mark.parametrize("exc_type", RETRYABLE_ERRORS)
async def test_retry_decorator_retries_on_transient_errors(
    exc_type: type[BaseException],
) -> None:
    """Retry decorator should retry on connection errors and timeouts."""
    exc = exc_type("collector unreachable")
    mock_fn = AsyncMock(side_effect=exc)
    wrapped = retry(times=3)(mock_fn)

    with (
        patch("trapper_sender.adapters.driven.trapper.retry.asyncio.sleep", new=AsyncMock()),
        pytest.raises(exc_type),
    ):
        await wrapped()

    # Should attempt 3 times
    assert mock_fn.call_count == 3


@pytest.mark.asyncio
async def test_retry_decorator_first_call_success() -> None:
    """Retry decorator should not retry on first call success."""
    response = TrapperResponse(response="success", info="")
    mock_fn = AsyncMock(return_value=response)
    wrapped = retry(times=3)(mock_fn)

    result = await wrapped([])

    assert mock_fn.call_count == 1
    mock_fn.assert_called_once_with([])
    assert result is response


@pytest.mark.asyncio
async def test_retry_decorator_recovers_after_transient_error() -> None:
    """Retry decorator should return the first successful result."""
    response = TrapperResponse(response="success", info="")
    mock_fn = AsyncMock(side_effect=[TrapperTimeoutError("timed out"), response])
    wrapped = retry(times=3)(mock_fn)

    with patch("trapper_sender.adapters.driven.trapper.retry.asyncio.sleep", new=AsyncMock()):
        result = await wrapped()

    assert result is response
    assert mock_fn.call_count == 2


@pytest.mark.asyncio
async def test_retry_decorator_does_not_retry_permanent_errors() -> None:
    """Retry decorator should not retry decoding errors."""
    mock_fn = AsyncMock(side_effect=ResponseInfoParseError("processed: ?"))
    wrapped = retry(times=3)(mock_fn)

    with pytest.raises(ResponseInfoParseError):
        await wrapped()

    # Should only try once
    assert mock_fn.call_count == 1


@pytest.mark.asyncio
async def test_retry_decorator_delays_between_attempts() -> None:
    """Retry decorator should delay between retry attempts."""
    mock_fn = AsyncMock(side_effect=TrapperConnectionError("refused"))
    wrapped = retry(times=3, delay_sec=(0.1, 0.2, 0.3))(mock_fn)

    mock_sleep = AsyncMock()
    with (
        patch("trapper_sender.adapters.driven.trapper.retry.asyncio.sleep", mock_sleep),
        pytest.raises(TrapperConnectionError),
    ):
        await wrapped()

    # Should sleep between attempts (2 sleeps for 3 attempts)
    assert mock_sleep.call_count == 2
    assert [c.args[0] for c in mock_sleep.call_args_list] == [0.1, 0.2]
