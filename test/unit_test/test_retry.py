"""
Unit tests for retry logic module
"""

from unittest.mock import AsyncMock, patch

import pytest

from rsk_transaction_helper.infra.retry import (
    CONNECTION_ERROR_SIGNATURES,
    CorrelationContext,
    RetryExecutor,
    execute_with_retry,
    generate_correlation_id,
    get_correlation_id,
    is_connection_error,
)
from rsk_transaction_helper.errors import NodeConnectionError, RpcError


CONNECTION_ERROR = "CONNECTION ERROR: Couldn't connect to node http://localhost:4444."


class TestIsConnectionError:
    """Tests for error classification"""

    def test_web3js_style_message(self):
        assert is_connection_error(Exception(CONNECTION_ERROR))

    def test_alternative_wording(self):
        assert is_connection_error(RuntimeError("Could not connect to node at localhost"))

    def test_node_connection_error_instance(self):
        assert is_connection_error(NodeConnectionError.unreachable("http://localhost:4444"))

    def test_other_errors_are_not_connection_errors(self):
        assert not is_connection_error(Exception("nonce too low"))
        assert not is_connection_error(Exception("Connection timeout"))
        assert not is_connection_error(RpcError.from_response("evm_mine", {"code": -32601, "message": "not found"}))

    def test_signatures_are_lowercase(self):
        for signature in CONNECTION_ERROR_SIGNATURES:
            assert signature == signature.lower()


class TestExecuteWithRetry:
    """Tests for execute_with_retry"""

    @pytest.mark.asyncio
    async def test_success_on_first_attempt(self):
        operation = AsyncMock(return_value=42)

        with patch("rsk_transaction_helper.infra.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await execute_with_retry(operation, "test_operation", max_attempts=3, attempt_delay=1000)

        assert result == 42
        assert operation.await_count == 1
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_success_after_connection_errors(self):
        operation = AsyncMock(side_effect=[
            Exception(CONNECTION_ERROR),
            Exception(CONNECTION_ERROR),
            "ok",
        ])

        with patch("rsk_transaction_helper.infra.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await execute_with_retry(operation, "test_operation", max_attempts=5, attempt_delay=250)

        assert result == "ok"
        assert operation.await_count == 3
        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(0.25)

    @pytest.mark.asyncio
    async def test_exhaustion_reraises_last_connection_error(self):
        errors = [Exception(f"{CONNECTION_ERROR} #{i}") for i in range(3)]
        operation = AsyncMock(side_effect=errors)

        with patch("rsk_transaction_helper.infra.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(Exception) as exc_info:
                await execute_with_retry(operation, "test_operation", max_attempts=3, attempt_delay=1000)

        assert exc_info.value is errors[-1]
        assert operation.await_count == 3
        # Delay only between attempts, not after the last one
        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(1.0)

    @pytest.mark.asyncio
    async def test_non_connection_error_not_retried(self):
        error = ValueError("execution reverted")
        operation = AsyncMock(side_effect=error)

        with patch("rsk_transaction_helper.infra.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(ValueError) as exc_info:
                await execute_with_retry(operation, "test_operation", max_attempts=5, attempt_delay=1000)

        assert exc_info.value is error
        assert operation.await_count == 1
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_connection_error_after_connection_error(self):
        operation = AsyncMock(side_effect=[Exception(CONNECTION_ERROR), KeyError("boom")])

        with patch("rsk_transaction_helper.infra.retry.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(KeyError):
                await execute_with_retry(operation, "test_operation", max_attempts=5, attempt_delay=0)

        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_single_attempt_ceiling(self):
        operation = AsyncMock(side_effect=NodeConnectionError.unreachable("http://localhost:4444"))

        with patch("rsk_transaction_helper.infra.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(NodeConnectionError):
                await execute_with_retry(operation, "test_operation", max_attempts=1, attempt_delay=1000)

        assert operation.await_count == 1
        mock_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_synchronous_raise_from_operation_is_retried(self):
        """An operation that raises before returning an awaitable is handled too"""
        calls = []

        def operation():
            calls.append(1)
            if len(calls) == 1:
                raise NodeConnectionError.unreachable("http://localhost:4444")
            return AsyncMock(return_value="done")()

        with patch("rsk_transaction_helper.infra.retry.asyncio.sleep", new_callable=AsyncMock):
            result = await execute_with_retry(operation, "test_operation", max_attempts=2, attempt_delay=0)

        assert result == "done"
        assert len(calls) == 2


class TestRetryExecutor:

    @pytest.mark.asyncio
    async def test_run_uses_bound_settings(self):
        executor = RetryExecutor(max_attempts=4, attempt_delay=10)
        operation = AsyncMock(side_effect=Exception(CONNECTION_ERROR))

        with patch("rsk_transaction_helper.infra.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(Exception):
                await executor.run(operation, "bound")

        assert operation.await_count == 4
        assert mock_sleep.await_count == 3
        mock_sleep.assert_awaited_with(0.01)

    @pytest.mark.asyncio
    async def test_independent_invocations(self):
        executor = RetryExecutor(max_attempts=2, attempt_delay=0)
        operation = AsyncMock(side_effect=[1, 2])

        assert await executor.run(operation, "first") == 1
        assert await executor.run(operation, "second") == 2


class TestCorrelationContext:

    def test_generate_correlation_id(self):
        cid = generate_correlation_id()
        assert len(cid) == 12
        assert cid != generate_correlation_id()

    def test_context_sets_and_resets(self):
        assert get_correlation_id() is None
        with CorrelationContext("transfer") as cid:
            assert cid.startswith("transfer_")
            assert get_correlation_id() == cid
        assert get_correlation_id() is None
