"""
Type definitions for RSK Transaction Helper
"""

from .result import BalanceCheckResult
from .transaction import GasOptions, RawTransaction, TRANSFER_GAS_COST

__all__ = [
    "BalanceCheckResult",
    "GasOptions",
    "RawTransaction",
    "TRANSFER_GAS_COST",
]
