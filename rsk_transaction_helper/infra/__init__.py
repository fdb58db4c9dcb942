"""
Infrastructure layer for RSK Transaction Helper

Provides:
- execute_with_retry / RetryExecutor: connection-error retry loop
- JsonRpcSender: raw JSON-RPC envelopes with explicit ids
- create_web3: AsyncWeb3 client for a node
- EVMSigner: local transaction signing using eth-account
"""

from .retry import (
    CorrelationContext,
    RetryExecutor,
    execute_with_retry,
    is_connection_error,
)
from .rpc import JsonRpcSender, NodeHTTPProvider, create_web3, new_request_id
from .evm_signer import EVMSigner, sign_raw_transaction

__all__ = [
    "CorrelationContext",
    "RetryExecutor",
    "execute_with_retry",
    "is_connection_error",
    "JsonRpcSender",
    "NodeHTTPProvider",
    "create_web3",
    "new_request_id",
    "EVMSigner",
    "sign_raw_transaction",
]
