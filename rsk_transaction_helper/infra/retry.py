"""
Retry Logic Helper Module

Runs remote calls against the node, retrying only when the node could not be
reached. Includes structured logging with correlation IDs for call tracing.
"""

import asyncio
import logging
import uuid
import contextvars
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ..errors import NodeConnectionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Context variable for correlation ID (task-local under asyncio)
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)


def generate_correlation_id() -> str:
    """Generate a unique correlation ID for call tracing."""
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str]) -> contextvars.Token:
    """Set the correlation ID in context. Returns token for reset."""
    return _correlation_id.set(correlation_id)


class CorrelationContext:
    """
    Context manager for correlation ID scoping.

    Usage:
        with CorrelationContext("transfer") as cid:
            tx_hash = await helper.transfer_funds(...)
    """

    def __init__(self, prefix: Optional[str] = None):
        self.correlation_id = generate_correlation_id()
        if prefix:
            self.correlation_id = f"{prefix}_{self.correlation_id}"
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = set_correlation_id(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._token is not None:
            _correlation_id.reset(self._token)


def _log_with_correlation(
    level: int,
    message: str,
    operation_name: str,
    attempt: Optional[int] = None,
    max_attempts: Optional[int] = None,
    **extra
):
    """
    Log message with correlation ID and structured context.

    Args:
        level: Logging level (logging.INFO, logging.WARNING, etc.)
        message: Log message
        operation_name: Name of the operation being executed
        attempt: Current attempt number (1-indexed)
        max_attempts: Attempt ceiling
        **extra: Additional context fields
    """
    cid = get_correlation_id()

    parts = []
    if cid:
        parts.append(f"[{cid}]")
    parts.append(f"[{operation_name}]")
    if attempt is not None and max_attempts is not None:
        parts.append(f"[{attempt}/{max_attempts}]")
    parts.append(message)

    log_message = " ".join(parts)

    extra_context = {
        "correlation_id": cid,
        "operation": operation_name,
        "attempt": attempt,
        "max_attempts": max_attempts,
        **extra
    }

    logger.log(level, log_message, extra=extra_context)


# Message fragments that identify an unreachable node, lower-cased.
# web3.js words it "Couldn't connect to node"; NodeConnectionError reuses that text.
CONNECTION_ERROR_SIGNATURES = (
    "couldn't connect to node",
    "could not connect to node",
)


def is_connection_error(error: BaseException) -> bool:
    """
    True if the error means the node could not be reached.

    Only these errors are retried; everything else is terminal.
    """
    if isinstance(error, NodeConnectionError):
        return True
    error_str = str(error).lower()
    return any(signature in error_str for signature in CONNECTION_ERROR_SIGNATURES)


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    max_attempts: int = 1,
    attempt_delay: float = 1000,
) -> T:
    """
    Await an operation, retrying while the node is unreachable.

    Each attempt calls `operation()` afresh, so it must build a new awaitable
    every time (a lambda or an async function, not a coroutine object).

    Args:
        operation: Nullary callable returning an awaitable
        operation_name: Name for logging purposes
        max_attempts: Total attempts including the first one (>= 1)
        attempt_delay: Milliseconds to wait between attempts

    Returns:
        Whatever the operation returns on its first successful attempt

    Raises:
        The operation's own error immediately when it is not a connection
        error, or the last connection error once all attempts are used.

    Example:
        balance = await execute_with_retry(
            lambda: web3.eth.get_balance(address),
            "get_balance",
            max_attempts=3,
            attempt_delay=500,
        )
    """
    attempt = 0
    while True:
        try:
            result = await operation()
        except Exception as e:
            attempt += 1
            if not is_connection_error(e):
                raise

            if attempt >= max_attempts:
                _log_with_correlation(
                    logging.ERROR,
                    f"Node unreachable, giving up: {e}",
                    operation_name,
                    attempt,
                    max_attempts,
                    error_type="connection",
                )
                raise

            _log_with_correlation(
                logging.WARNING,
                f"Node unreachable, retrying in {attempt_delay}ms: {e}",
                operation_name,
                attempt,
                max_attempts,
                error_type="connection",
            )
            await asyncio.sleep(attempt_delay / 1000)
            continue

        if attempt > 0:
            _log_with_correlation(
                logging.INFO,
                f"Succeeded after {attempt + 1} attempts",
                operation_name,
                attempt + 1,
                max_attempts,
            )
        return result


class RetryExecutor:
    """
    execute_with_retry bound to one configuration's attempt ceiling and delay

    Usage:
        executor = RetryExecutor(max_attempts=3, attempt_delay=1000)
        block = await executor.run(lambda: web3.eth.get_block("latest"), "get_block")
    """

    def __init__(self, max_attempts: int = 1, attempt_delay: float = 1000):
        self.max_attempts = max_attempts
        self.attempt_delay = attempt_delay

    async def run(self, operation: Callable[[], Awaitable[Any]], operation_name: str) -> Any:
        return await execute_with_retry(
            operation,
            operation_name,
            max_attempts=self.max_attempts,
            attempt_delay=self.attempt_delay,
        )

    def __repr__(self) -> str:
        return f"RetryExecutor(max_attempts={self.max_attempts}, attempt_delay={self.attempt_delay})"
