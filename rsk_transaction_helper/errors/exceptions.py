"""
Exception definitions for RSK Transaction Helper
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """
    Unified error codes for helper operations

    1xxx - RPC errors
    2xxx - Transaction errors
    6xxx - Signer errors
    7xxx - Operation errors
    9xxx - Configuration errors
    """
    # RPC errors
    RPC_CONNECTION_FAILED = "1001"
    RPC_TIMEOUT = "1002"
    RPC_INVALID_RESPONSE = "1004"

    # Transaction errors
    TX_SEND_FAILED = "2002"
    TX_INSUFFICIENT_FUNDS = "2004"

    # Signer errors
    SIGNER_INVALID_KEY = "6001"
    SIGNER_FAILED = "6002"

    # Operation errors
    INVALID_ARGUMENT = "7003"

    # Configuration errors
    CONFIG_INVALID = "9001"
    CONFIG_MISSING = "9002"


class RskHelperError(Exception):
    """
    Base exception for all helper errors

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        recoverable: Whether the error might succeed on retry
        original_error: The underlying exception if any
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.recoverable = recoverable
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        if self.original_error is not None:
            return f"[{self.code.value}] {self.message}: {self.original_error}"
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"

    @property
    def should_retry(self) -> bool:
        """Indicate if the operation should be retried"""
        return self.recoverable


class NodeConnectionError(RskHelperError):
    """
    The node could not be reached - the only error class the retry loop retries

    The message always carries the "Couldn't connect to node" signature so
    errors raised by other layers with the same wording classify identically.
    """

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        endpoint: Optional[str] = None,
    ):
        super().__init__(
            message,
            ErrorCode.RPC_CONNECTION_FAILED,
            recoverable=True,
            original_error=original_error,
            details={"endpoint": endpoint} if endpoint else None,
        )
        self.endpoint = endpoint

    @classmethod
    def unreachable(cls, endpoint: str, error: Exception = None) -> "NodeConnectionError":
        return cls(
            f"CONNECTION ERROR: Couldn't connect to node {endpoint}.",
            original_error=error,
            endpoint=endpoint,
        )


class RpcError(RskHelperError):
    """
    The node answered, but with a JSON-RPC error object or an unusable payload

    Raised when:
    - The response carries an "error" member
    - The HTTP status is not 2xx
    - The body is not valid JSON-RPC
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.RPC_INVALID_RESPONSE,
        method: Optional[str] = None,
        rpc_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            code,
            recoverable=False,
            original_error=original_error,
            details={"method": method, "rpc_code": rpc_code},
        )
        self.method = method
        self.rpc_code = rpc_code

    @classmethod
    def from_response(cls, method: str, error: dict) -> "RpcError":
        return cls(
            f"RPC error on {method}: {error.get('message', error)}",
            method=method,
            rpc_code=error.get("code"),
        )

    @classmethod
    def invalid_response(cls, method: str, reason: str, error: Exception = None) -> "RpcError":
        return cls(
            f"Invalid response for {method}: {reason}",
            method=method,
            original_error=error,
        )

    @classmethod
    def timeout(cls, method: str, timeout_seconds: float, error: Exception = None) -> "RpcError":
        return cls(
            f"RPC request {method} timed out after {timeout_seconds}s",
            ErrorCode.RPC_TIMEOUT,
            method=method,
            original_error=error,
        )


class InsufficientBalance(RskHelperError):
    """
    Sender balance does not cover value plus gas - never retried

    Amounts are kept as integers (wei) so no precision is lost.
    """

    def __init__(
        self,
        message: str,
        required: Optional[int] = None,
        available: Optional[int] = None,
    ):
        super().__init__(
            message,
            ErrorCode.TX_INSUFFICIENT_FUNDS,
            recoverable=False,
            details={
                "required": str(required) if required is not None else None,
                "available": str(available) if available is not None else None,
            },
        )
        self.required = required
        self.available = available

    def __str__(self) -> str:
        return self.message

    @classmethod
    def for_amounts(cls, required: int, available: int) -> "InsufficientBalance":
        return cls(
            f"Insufficient balance. Required: {required}, current balance: {available}",
            required=required,
            available=available,
        )


class TransactionError(RskHelperError):
    """
    Transaction construction, signing or broadcast failed

    The underlying failure is kept both as `original_error` and as the
    exception's `__cause__` (raise ... from ...), so its traceback survives.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TX_SEND_FAILED,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, code, recoverable=False, original_error=original_error)

    @classmethod
    def wrap(cls, operation: str, error: Exception) -> "TransactionError":
        return cls(f"Error on {operation}", original_error=error)


class SignerError(RskHelperError):
    """
    Signing-related errors

    Raised when:
    - The private key cannot be parsed
    - The signing primitive rejects the transaction
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.SIGNER_FAILED,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, code, recoverable=False, original_error=original_error)

    @classmethod
    def invalid_key(cls, error: Exception = None) -> "SignerError":
        return cls("Invalid private key", ErrorCode.SIGNER_INVALID_KEY, original_error=error)

    @classmethod
    def failed(cls, reason: str, error: Exception = None) -> "SignerError":
        return cls(f"Signing failed: {reason}", ErrorCode.SIGNER_FAILED, original_error=error)


class ConfigurationError(RskHelperError):
    """
    Configuration-related errors

    Raised when:
    - Required configuration is missing (host URL, chain id)
    - Configuration values are invalid
    - The RPC client cannot be constructed from the configuration
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_INVALID,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, code, recoverable=False, original_error=original_error)

    @classmethod
    def missing(cls, param: str) -> "ConfigurationError":
        return cls(f"Missing required configuration: {param}", ErrorCode.CONFIG_MISSING)

    @classmethod
    def invalid(cls, param: str, reason: str) -> "ConfigurationError":
        return cls(f"Invalid configuration '{param}': {reason}", ErrorCode.CONFIG_INVALID)

    @classmethod
    def client_failed(cls, error: Exception) -> "ConfigurationError":
        return cls(
            "Could not create RPC client from configuration",
            ErrorCode.CONFIG_INVALID,
            original_error=error,
        )


class InvalidArgument(RskHelperError):
    """
    A caller-supplied argument is out of range - raised before any network call
    """

    def __init__(self, message: str, argument: Optional[str] = None):
        super().__init__(
            message,
            ErrorCode.INVALID_ARGUMENT,
            recoverable=False,
            details={"argument": argument},
        )
        self.argument = argument

    @classmethod
    def out_of_range(cls, argument: str, value, reason: str) -> "InvalidArgument":
        return cls(f"Invalid {argument}={value!r}: {reason}", argument=argument)
