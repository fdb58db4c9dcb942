"""
EVM Transaction Signer using eth-account

Local signing only: the private key never leaves the process.
"""

from __future__ import annotations

import logging
from typing import Tuple

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3

from ..errors import SignerError
from ..types import RawTransaction

logger = logging.getLogger(__name__)


class EVMSigner:
    """
    Local EVM signer

    Usage:
        signer = EVMSigner.from_private_key("c85e...")
        raw_tx, tx_hash = signer.sign_transaction(raw_transaction)
    """

    def __init__(self, account: LocalAccount):
        self._account = account

    @property
    def address(self) -> str:
        """Get wallet address (checksummed)"""
        return self._account.address

    def sign_transaction(self, raw_tx: RawTransaction) -> Tuple[bytes, str]:
        """
        Sign a transaction

        Without raw_tx.chain_id the signature is a plain legacy one (v = 27/28);
        with it, EIP-155 (v = chain_id * 2 + 35/36).

        Args:
            raw_tx: Unsigned transaction record

        Returns:
            (raw_tx_bytes, tx_hash_hex)
        """
        try:
            signed = self._account.sign_transaction(raw_tx.to_signable_dict())
        except Exception as e:
            raise SignerError.failed(str(e), e) from e
        return bytes(signed.raw_transaction), Web3.to_hex(signed.hash)

    @classmethod
    def from_private_key(cls, private_key: str) -> "EVMSigner":
        """
        Create signer from private key

        Args:
            private_key: Hex-encoded private key (with or without 0x prefix)
        """
        if not isinstance(private_key, str) or not private_key:
            raise SignerError.invalid_key()

        if not private_key.startswith("0x"):
            private_key = "0x" + private_key

        try:
            account = Account.from_key(private_key)
        except Exception as e:
            raise SignerError.invalid_key(e) from e
        return cls(account)

    def __repr__(self) -> str:
        return f"EVMSigner(address={self.address})"


def sign_raw_transaction(raw_tx: RawTransaction, private_key: str) -> bytes:
    """Sign with a one-off signer and return the serialized transaction"""
    signer = EVMSigner.from_private_key(private_key)
    raw_bytes, tx_hash = signer.sign_transaction(raw_tx)
    logger.debug(f"Signed tx {tx_hash} from {signer.address} nonce={raw_tx.nonce}")
    return raw_bytes
