"""
RSK Transaction Helper

Async helper around web3.py for RSK nodes: signed sends with balance
prechecks, connection-error retries and regtest administration calls.

Usage:
    from rsk_transaction_helper import RskTransactionHelper, RskConfig

    async with RskTransactionHelper(RskConfig(host_url="localhost:4444", chain_id=33)) as helper:
        tx_hash = await helper.transfer_funds_checking_balance(sender, key, recipient, 10**9)
        await helper.mine()
"""

from .config import RskConfig, LoggingConfig, setup_logging, enable_file_logging
from .errors import (
    ErrorCode,
    RskHelperError,
    NodeConnectionError,
    RpcError,
    InsufficientBalance,
    TransactionError,
    SignerError,
    ConfigurationError,
    InvalidArgument,
)
from .helper import RskTransactionHelper, MINE_TIME_INCREASE
from .infra import CorrelationContext, RetryExecutor, execute_with_retry, is_connection_error
from .types import BalanceCheckResult, GasOptions, RawTransaction, TRANSFER_GAS_COST

__version__ = "0.1.0"

__all__ = [
    "RskTransactionHelper",
    "RskConfig",
    "LoggingConfig",
    "setup_logging",
    "enable_file_logging",
    "MINE_TIME_INCREASE",
    # Errors
    "ErrorCode",
    "RskHelperError",
    "NodeConnectionError",
    "RpcError",
    "InsufficientBalance",
    "TransactionError",
    "SignerError",
    "ConfigurationError",
    "InvalidArgument",
    # Retry
    "CorrelationContext",
    "RetryExecutor",
    "execute_with_retry",
    "is_connection_error",
    # Types
    "BalanceCheckResult",
    "GasOptions",
    "RawTransaction",
    "TRANSFER_GAS_COST",
]
