"""
Result type definitions for balance checks
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class BalanceCheckResult:
    """
    Outcome of a balance precheck for a contract call

    All amounts are in wei as Python ints.

    Attributes:
        estimated_gas: Gas the node estimated for the call
        required_balance: estimated_gas * gas_price
        caller_balance: Caller balance at check time
        is_enough: caller_balance > required_balance (equal is not enough)
        gas_price: Gas price used for the estimate (never below 1)
    """
    estimated_gas: int
    required_balance: int
    caller_balance: int
    is_enough: bool
    gas_price: int

    @classmethod
    def compute(cls, estimated_gas: int, gas_price: int, caller_balance: int) -> "BalanceCheckResult":
        required_balance = estimated_gas * gas_price
        return cls(
            estimated_gas=estimated_gas,
            required_balance=required_balance,
            caller_balance=caller_balance,
            is_enough=caller_balance > required_balance,
            gas_price=gas_price,
        )
