"""
Error definitions for RSK Transaction Helper
"""

from .exceptions import (
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

__all__ = [
    "ErrorCode",
    "RskHelperError",
    "NodeConnectionError",
    "RpcError",
    "InsufficientBalance",
    "TransactionError",
    "SignerError",
    "ConfigurationError",
    "InvalidArgument",
]
