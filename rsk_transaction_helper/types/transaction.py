"""
Transaction type definitions
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from web3 import Web3


# Gas consumed by a plain value transfer with no payload
TRANSFER_GAS_COST = 21000


@dataclass(frozen=True)
class GasOptions:
    """Caller overrides for gas; unset fields are fetched from the node"""
    gas_price: Optional[int] = None
    gas_limit: Optional[int] = None


@dataclass(frozen=True)
class RawTransaction:
    """
    Unsigned legacy transaction, built per send and handed straight to the signer

    Attributes:
        nonce: Sender's pending transaction count
        gas_price: Wei per gas unit
        gas_limit: Maximum gas the transaction may use
        to: Destination address (any case, checksummed on signing)
        value: Wei transferred
        data: Call payload as 0x-prefixed hex or bytes
        chain_id: Set only when the signature must carry replay protection
    """
    nonce: int
    gas_price: int
    gas_limit: int
    to: str
    value: int = 0
    data: Optional[Any] = None
    chain_id: Optional[int] = None

    def to_signable_dict(self) -> Dict[str, Any]:
        """Dict in the shape eth-account expects for a legacy transaction"""
        tx: Dict[str, Any] = {
            "nonce": self.nonce,
            "gasPrice": self.gas_price,
            "gas": self.gas_limit,
            "to": Web3.to_checksum_address(self.to),
            "value": self.value,
            "data": self.data or b"",
        }
        if self.chain_id is not None:
            tx["chainId"] = self.chain_id
        return tx
