"""
Test Signer Module

Tests for local signing against the reference regtest transfer.
"""

import pytest
from eth_account import Account
from web3 import Web3

from rsk_transaction_helper.errors import SignerError
from rsk_transaction_helper.infra.evm_signer import EVMSigner, sign_raw_transaction
from rsk_transaction_helper.types import RawTransaction, TRANSFER_GAS_COST

from conftest import (
    RECIPIENT,
    SENDER_ADDRESS,
    SENDER_PRIVATE_KEY,
    SERIALIZED_TRANSFER,
    TRANSFER_VALUE,
)


def _transfer(chain_id=None, data=None) -> RawTransaction:
    return RawTransaction(
        nonce=5,
        gas_price=1000,
        gas_limit=TRANSFER_GAS_COST,
        to=RECIPIENT,
        value=TRANSFER_VALUE,
        data=data,
        chain_id=chain_id,
    )


class TestEVMSigner:

    def test_from_private_key_without_prefix(self):
        signer = EVMSigner.from_private_key(SENDER_PRIVATE_KEY)
        assert signer.address.lower() == SENDER_ADDRESS

    def test_from_private_key_with_prefix(self):
        signer = EVMSigner.from_private_key("0x" + SENDER_PRIVATE_KEY)
        assert signer.address == Web3.to_checksum_address(SENDER_ADDRESS)

    @pytest.mark.parametrize("key", ["", "not-a-key", "c85e", None])
    def test_invalid_private_key(self, key):
        with pytest.raises(SignerError):
            EVMSigner.from_private_key(key)

    def test_reference_vector(self):
        """Legacy signature reproduces the known serialized transfer"""
        raw_tx, tx_hash = EVMSigner.from_private_key(SENDER_PRIVATE_KEY).sign_transaction(_transfer())

        assert Web3.to_hex(raw_tx) == SERIALIZED_TRANSFER
        assert tx_hash == Web3.to_hex(Web3.keccak(raw_tx))

    def test_empty_hex_data_matches_no_data(self):
        assert sign_raw_transaction(_transfer(data="0x"), SENDER_PRIVATE_KEY) == \
            sign_raw_transaction(_transfer(), SENDER_PRIVATE_KEY)

    def test_signing_is_deterministic(self):
        first = sign_raw_transaction(_transfer(), SENDER_PRIVATE_KEY)
        second = sign_raw_transaction(_transfer(), SENDER_PRIVATE_KEY)
        assert first == second

    def test_replay_protected_signature(self):
        raw_tx = sign_raw_transaction(_transfer(chain_id=33), SENDER_PRIVATE_KEY)

        assert Web3.to_hex(raw_tx) != SERIALIZED_TRANSFER
        assert Account.recover_transaction(raw_tx).lower() == SENDER_ADDRESS

    def test_recovered_sender(self):
        raw_tx = sign_raw_transaction(_transfer(), SENDER_PRIVATE_KEY)
        assert Account.recover_transaction(raw_tx).lower() == SENDER_ADDRESS

    def test_invalid_destination(self):
        with pytest.raises(SignerError):
            sign_raw_transaction(
                RawTransaction(nonce=0, gas_price=1, gas_limit=21000, to="0x1234"),
                SENDER_PRIVATE_KEY,
            )


class TestRawTransaction:

    def test_signable_dict_legacy(self):
        tx = _transfer().to_signable_dict()

        assert tx["to"] == Web3.to_checksum_address(RECIPIENT)
        assert tx["gas"] == TRANSFER_GAS_COST
        assert tx["gasPrice"] == 1000
        assert tx["data"] == b""
        assert "chainId" not in tx

    def test_signable_dict_with_chain_id(self):
        assert _transfer(chain_id=33).to_signable_dict()["chainId"] == 33

    def test_big_values_kept_exact(self):
        value = 2 ** 200 + 7
        tx = RawTransaction(nonce=0, gas_price=1, gas_limit=21000, to=RECIPIENT, value=value)
        assert tx.to_signable_dict()["value"] == value
