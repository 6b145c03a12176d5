"""
Unit tests for the retry utilities module.
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from gauge_autovoter.shared.exceptions import (
    FeedException,
    NonRetryableException,
    RetryableException,
    SubmissionTimeout,
)
from gauge_autovoter.shared.retry import (
    DEFAULT_RETRYABLE_EXCEPTIONS,
    HTTP_RETRY_CONFIG,
    RPC_RETRY_CONFIG,
    RetryConfig,
    is_expired_blockhash,
    is_transient_failure,
    retry_async_operation,
)


class TestRetryAsyncOperation:
    """Tests for the retry_async_operation function."""

    @pytest.mark.asyncio
    async def test_with_args(self):
        mock_fn = AsyncMock(return_value="result")

        result = await retry_async_operation(
            mock_fn,
            "arg1",
            max_attempts=3,
            kwarg1="value1",
        )

        assert result == "result"
        mock_fn.assert_called_once_with("arg1", kwarg1="value1")

    @pytest.mark.asyncio
    async def test_feed_and_transport_errors_are_retried(self, no_sleep):
        mock_fn = AsyncMock(
            side_effect=[
                FeedException("503"),
                httpx.ConnectError("refused"),
                "holders",
            ]
        )

        assert await retry_async_operation(mock_fn, max_attempts=3) == "holders"
        assert mock_fn.call_count == 3

    @pytest.mark.asyncio
    async def test_last_error_raised_when_exhausted(self, no_sleep):
        mock_fn = AsyncMock(side_effect=RetryableException("always down"))

        with pytest.raises(RetryableException, match="always down"):
            await retry_async_operation(mock_fn, max_attempts=3)

        assert mock_fn.call_count == 3
        assert len(no_sleep) == 2

    @pytest.mark.asyncio
    async def test_non_retryable_propagates_immediately(self, no_sleep):
        mock_fn = AsyncMock(side_effect=NonRetryableException("bad account"))

        with pytest.raises(NonRetryableException, match="bad account"):
            await retry_async_operation(mock_fn, max_attempts=3)

        assert mock_fn.call_count == 1
        assert no_sleep == []

    @pytest.mark.asyncio
    async def test_exponential_backoff_is_capped(self, no_sleep):
        mock_fn = AsyncMock(side_effect=[TimeoutError("slow")] * 4 + ["ok"])

        result = await retry_async_operation(
            mock_fn, max_attempts=5, base_delay=4.0, max_delay=10.0
        )

        assert result == "ok"
        assert no_sleep == [4.0, 8.0, 10.0, 10.0]

    @pytest.mark.asyncio
    async def test_linear_backoff(self, no_sleep):
        mock_fn = AsyncMock(side_effect=[OSError("reset"), OSError("reset"), 1])

        await retry_async_operation(
            mock_fn, max_attempts=3, base_delay=2.0, exponential=False
        )

        assert no_sleep == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_custom_retryable_exceptions(self):
        mock_fn = AsyncMock(side_effect=ValueError("not retryable"))

        with pytest.raises(ValueError, match="not retryable"):
            await retry_async_operation(
                mock_fn, max_attempts=3, retryable_exceptions=(TypeError,)
            )

        assert mock_fn.call_count == 1

    @pytest.mark.asyncio
    async def test_operation_name_in_log(self, caplog):
        mock_fn = AsyncMock(side_effect=[FeedException("flaky"), "ok"])

        with patch("asyncio.sleep", AsyncMock()):
            result = await retry_async_operation(
                mock_fn, max_attempts=2, operation_name="gauge_list"
            )

        assert result == "ok"
        assert "Attempt 1/2 failed for gauge_list: flaky" in caplog.text


class TestRetryConfig:
    """Tests for RetryConfig class."""

    def test_default_config(self):
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.base_delay == 1.0
        assert config.max_delay == 30.0
        assert config.exponential is True
        assert config.retryable_exceptions == DEFAULT_RETRYABLE_EXCEPTIONS

    @pytest.mark.asyncio
    async def test_run(self, no_sleep):
        config = RetryConfig(max_attempts=2, base_delay=0.5)
        mock_fn = AsyncMock(side_effect=[SubmissionTimeout(), 7])

        assert await config.run(mock_fn, "x", operation_name="epoch") == 7
        mock_fn.assert_called_with("x")
        assert no_sleep == [0.5]

    @pytest.mark.asyncio
    async def test_run_respects_max_attempts(self, no_sleep):
        config = RetryConfig(max_attempts=2)
        mock_fn = AsyncMock(side_effect=ConnectionError("rpc down"))

        with pytest.raises(ConnectionError):
            await config.run(mock_fn)

        assert mock_fn.call_count == 2

    def test_preset_configs(self):
        assert RPC_RETRY_CONFIG.max_attempts == 3
        assert RPC_RETRY_CONFIG.max_delay == 10.0
        assert HTTP_RETRY_CONFIG.base_delay == 0.5
        assert HTTP_RETRY_CONFIG.max_delay == 5.0


class TestTransientFailures:
    """Tests for the submission failure allow-list."""

    def test_transient_reasons(self):
        assert is_transient_failure("Timeout")
        assert is_transient_failure("RPC error: Blockhash not found")
        assert is_transient_failure(
            "Signature abc has expired: block height exceeded"
        )

    def test_terminal_reasons(self):
        assert not is_transient_failure("insufficient funds for fee")
        assert not is_transient_failure("custom program error: 0x1771")

    def test_match_is_case_sensitive(self):
        assert not is_transient_failure("timeout")

    def test_expired_blockhash(self):
        assert is_expired_blockhash("Blockhash not found")
        assert not is_expired_blockhash("Timeout")
