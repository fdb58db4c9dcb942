"""
Shared fixtures for unit tests.

The web3 client is replaced by a MagicMock whose eth methods are AsyncMocks;
no test talks to a node.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, PropertyMock

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from rsk_transaction_helper import RskConfig, RskTransactionHelper


PROVIDER_URL = "http://localhost:4444"

# Regtest account and transfer used by the reference signing vector
SENDER_ADDRESS = "0xcd2a3d9f938e13cd947ec05abc7fe734df8dd826"
SENDER_PRIVATE_KEY = "c85ef7d79691fe79573b1a7064c19c1a9819ebdbd1faaab1a8ec92344438aaf4"
RECIPIENT = "0xe6dae024a76a42f13e6b92241d3802b465e55c1a"
TRANSFER_VALUE = 1000000000
EXPECTED_TX_HASH = "0x5729dbdf533d580d6e3510d38b704e4295b5523d8f9e0d13b601e2ba04579364"

# nonce=5, gasPrice=1000, gas=21000, value=1e9, no data, legacy signature (v=28)
SERIALIZED_TRANSFER = (
    "0xf865058203e882520894e6dae024a76a42f13e6b92241d3802b465e55c1a843b9aca00801c"
    "a07d7ef090470ae6ac7e18ea9f1d298da325d53b13b4c342577f358868cf17a68c"
    "a05d1305ccd7940ab13bcc84144480a5821a4d677a4f2f52af310ee940bc579d64"
)


async def _resolved(value):
    return value


def set_awaitable_property(mock: MagicMock, name: str, value) -> PropertyMock:
    """
    Make `await mock.<name>` yield value, like AsyncWeb3's eth.gas_price.

    Each access builds a new coroutine so retried reads work.
    """
    prop = PropertyMock(side_effect=lambda: _resolved(value))
    setattr(type(mock), name, prop)
    return prop


def make_client(
    balance: int = 0,
    gas_price: int = 1000,
    nonce: int = 5,
    block_number: int = 10,
) -> MagicMock:
    client = MagicMock()
    client.eth.get_balance = AsyncMock(return_value=balance)
    client.eth.get_transaction_count = AsyncMock(return_value=nonce)
    client.eth.send_raw_transaction = AsyncMock(return_value=bytes.fromhex(EXPECTED_TX_HASH[2:]))
    client.eth.estimate_gas = AsyncMock(return_value=21000)
    client.eth.get_block = AsyncMock(return_value={"number": block_number})
    client.eth.get_transaction_receipt = AsyncMock(return_value={"status": 1})
    client.eth.send_transaction = AsyncMock(return_value=bytes.fromhex(EXPECTED_TX_HASH[2:]))
    client.manager.coro_request = AsyncMock(return_value=None)
    set_awaitable_property(client.eth, "gas_price", gas_price)
    set_awaitable_property(client.eth, "block_number", block_number)
    return client


@pytest.fixture
def client():
    return make_client()


@pytest.fixture
def config():
    return RskConfig(host_url=PROVIDER_URL, chain_id=33, max_attempts=1, attempt_delay=0)


@pytest.fixture
def helper(config, client):
    return RskTransactionHelper(config, client=client)
