"""
RSK Transaction Helper

Wraps an AsyncWeb3 client to send signed transactions, check balances and
drive node-specific administrative calls (mining, account creation, bridge
updates). Every remote call goes through the connection-error retry loop.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from web3 import AsyncWeb3, Web3
from web3.exceptions import TransactionNotFound

from .config import RskConfig
from .errors import (
    ConfigurationError,
    InsufficientBalance,
    InvalidArgument,
    RskHelperError,
    TransactionError,
)
from .infra.evm_signer import sign_raw_transaction
from .infra.retry import RetryExecutor, is_connection_error
from .infra.rpc import JsonRpcSender, create_web3, new_request_id
from .types import BalanceCheckResult, GasOptions, RawTransaction, TRANSFER_GAS_COST

logger = logging.getLogger(__name__)


# evm_increaseTime argument used by mine(), in milliseconds (one minute)
MINE_TIME_INCREASE = 60000

DEFAULT_GAS_PERCENT_INCREMENT = 10


def encode_call_data(call) -> str:
    """ABI-encoded calldata (0x hex) of a bound web3 contract function"""
    # ContractFunction._encode_transaction_data is private; present throughout web3 7.x (pinned <8)
    return call._encode_transaction_data()


class RskTransactionHelper:
    """
    Transaction helper for RSK nodes

    Usage:
        helper = RskTransactionHelper(RskConfig(host_url="localhost:4444", chain_id=33))

        tx_hash = await helper.transfer_funds_checking_balance(
            sender, sender_private_key, recipient, 1_000_000_000
        )
        await helper.mine()
        receipt = await helper.get_tx_receipt(tx_hash)

        # Bring your own client
        helper = RskTransactionHelper(config, client=AsyncWeb3(...))
    """

    def __init__(
        self,
        config: Union[RskConfig, Mapping[str, Any], None],
        client: Optional[AsyncWeb3] = None,
    ):
        """
        Initialize helper

        Args:
            config: RskConfig, or a mapping of its fields (camelCase accepted)
            client: Preconstructed AsyncWeb3 client; one is created from
                config.host_url when omitted

        Raises:
            ConfigurationError: Invalid configuration or client construction failure
        """
        if config is None:
            raise ConfigurationError.missing("host_url")
        if not isinstance(config, RskConfig):
            if not isinstance(config, Mapping):
                raise ConfigurationError.invalid("config", f"expected RskConfig or mapping, got {type(config).__name__}")
            config = RskConfig.from_mapping(config)

        self._config = config
        self._executor = RetryExecutor(config.max_attempts, config.attempt_delay)

        # An injected client belongs to the caller and is never disconnected here
        self._owns_client = client is None
        if client is None:
            try:
                client = create_web3(config.host_url, timeout_seconds=config.request_timeout)
            except Exception as e:
                raise ConfigurationError.client_failed(e) from e
        self._client = client
        self._rpc = JsonRpcSender(config.host_url, timeout_seconds=config.request_timeout)

    @property
    def config(self) -> RskConfig:
        return self._config

    @property
    def executor(self) -> RetryExecutor:
        return self._executor

    def get_client(self) -> AsyncWeb3:
        return self._client

    def extend_client(self, modules: Dict[str, Any]) -> None:
        """Attach extra web3 modules (custom RPC bindings) to the client. Not retried."""
        self._client.attach_modules(modules)

    async def close(self) -> None:
        """
        Release the HTTP sessions held by the helper

        The raw JSON-RPC session is always closed; the web3 provider session
        only when the helper built the client itself.
        """
        await self._rpc.close()
        if self._owns_client:
            await self._client.provider.disconnect()

    async def __aenter__(self) -> "RskTransactionHelper":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ------------------------------------------------------------------
    # Retry plumbing
    # ------------------------------------------------------------------

    async def _retry(self, operation: Callable[[], Awaitable[Any]], operation_name: str) -> Any:
        return await self._executor.run(operation, operation_name)

    async def _raw_request(self, method: str, params, request_id: Optional[int] = None) -> Any:
        if request_id is None:
            request_id = new_request_id()
        return await self._retry(
            lambda: self._rpc.request(method, params, request_id=request_id),
            method,
        )

    def _require_chain_id(self) -> int:
        if self._config.chain_id is None:
            raise ConfigurationError.missing("chain_id")
        return self._config.chain_id

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_balance(self, address: str) -> int:
        """Balance of address in wei"""
        checksum_address = Web3.to_checksum_address(address)
        balance = await self._retry(
            lambda: self._client.eth.get_balance(checksum_address),
            "get_balance",
        )
        return int(balance)

    async def get_gas_price(self) -> int:
        """Node gas price in wei; a zero price is reported as 1"""
        gas_price = int(await self._retry(lambda: self._client.eth.gas_price, "get_gas_price"))
        if gas_price == 0:
            return 1
        return gas_price

    async def get_block_number(self) -> int:
        return int(await self._retry(lambda: self._client.eth.block_number, "get_block_number"))

    async def get_block(self, block_identifier: Union[str, int] = "latest", full_transactions: bool = False):
        return await self._retry(
            lambda: self._client.eth.get_block(block_identifier, full_transactions),
            "get_block",
        )

    async def get_tx_receipt(self, tx_hash: str):
        """Receipt for tx_hash, or None while the node does not know it"""
        async def fetch():
            try:
                return await self._client.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                return None

        return await self._retry(fetch, "get_tx_receipt")

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        """eth_sendTransaction passthrough (node-side signing with an unlocked account)"""
        tx_hash = await self._retry(lambda: self._client.eth.send_transaction(tx), "send_transaction")
        return Web3.to_hex(tx_hash)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def sign_and_send_transaction(
        self,
        sender_address: str,
        sender_private_key: str,
        destination_address: str,
        data: Optional[Union[str, bytes]] = None,
        value: int = 0,
        gas_options: Optional[GasOptions] = None,
    ) -> str:
        """
        Build, sign locally and broadcast a transaction

        Gas price and limit not given in gas_options are taken from the node
        (eth_gasPrice and eth_estimateGas).

        Args:
            sender_address: Address the nonce is read for
            sender_private_key: Hex private key (0x optional)
            destination_address: Recipient or contract address
            data: Call payload
            value: Wei to transfer
            gas_options: Gas price / limit overrides

        Returns:
            Transaction hash once the node accepted the transaction

        Raises:
            ConfigurationError: chain_id is not configured
            NodeConnectionError: Node unreachable after all attempts
            TransactionError: Any other build, sign or broadcast failure
        """
        gas_options = gas_options or GasOptions()
        return await self._build_and_send(
            "sign_and_send_transaction",
            sender_address,
            sender_private_key,
            destination_address,
            data=data,
            value=value,
            gas_price=gas_options.gas_price,
            gas_limit=gas_options.gas_limit,
        )

    async def transfer_funds(
        self,
        sender_address: str,
        sender_private_key: str,
        destination_address: str,
        value: int = 0,
        gas_options: Optional[GasOptions] = None,
    ) -> str:
        """Send value with the fixed transfer gas limit and no payload"""
        gas_options = gas_options or GasOptions()
        return await self._build_and_send(
            "transfer_funds",
            sender_address,
            sender_private_key,
            destination_address,
            data=None,
            value=value,
            gas_price=gas_options.gas_price,
            gas_limit=TRANSFER_GAS_COST,
        )

    async def _build_and_send(
        self,
        operation_name: str,
        sender_address: str,
        sender_private_key: str,
        destination_address: str,
        data: Optional[Union[str, bytes]],
        value: int,
        gas_price: Optional[int],
        gas_limit: Optional[int],
    ) -> str:
        chain_id = self._require_chain_id()

        try:
            sender = Web3.to_checksum_address(sender_address)
            destination = Web3.to_checksum_address(destination_address)
            value = int(value or 0)

            nonce = await self._retry(
                lambda: self._client.eth.get_transaction_count(sender, "pending"),
                "get_transaction_count",
            )

            if gas_price is None:
                gas_price = await self.get_gas_price()

            if gas_limit is None:
                estimate_params: Dict[str, Any] = {"from": sender, "to": destination, "value": value}
                if data:
                    estimate_params["data"] = data
                gas_limit = await self._retry(
                    lambda: self._client.eth.estimate_gas(estimate_params),
                    "estimate_gas",
                )

            raw_tx = RawTransaction(
                nonce=int(nonce),
                gas_price=int(gas_price),
                gas_limit=int(gas_limit),
                to=destination,
                value=value,
                data=data,
                chain_id=chain_id if self._config.replay_protection else None,
            )
            signed_tx = sign_raw_transaction(raw_tx, sender_private_key)

            # Resubmitting the same signed bytes is idempotent: same hash, same nonce
            tx_hash = await self._retry(
                lambda: self._client.eth.send_raw_transaction(signed_tx),
                "send_raw_transaction",
            )
        except RskHelperError:
            raise
        except Exception as e:
            if is_connection_error(e):
                raise
            logger.error(f"{operation_name} failed: {e}")
            raise TransactionError.wrap(operation_name, e) from e

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(
            f"{operation_name}: sent {tx_hash_hex} from {sender} nonce={raw_tx.nonce} "
            f"gas={raw_tx.gas_limit} gas_price={raw_tx.gas_price}"
        )
        return tx_hash_hex

    # ------------------------------------------------------------------
    # Balance prechecks
    # ------------------------------------------------------------------

    async def check_balance_for_call(self, call, caller_address: str) -> BalanceCheckResult:
        """
        Check whether caller can pay the gas for a contract call

        Args:
            call: Bound web3 contract function, e.g. contract.functions.foo(1)
            caller_address: Address that would send the call

        Returns:
            BalanceCheckResult; is_enough requires balance strictly above the cost
        """
        caller = Web3.to_checksum_address(caller_address)
        estimated_gas = int(await self._retry(
            lambda: call.estimate_gas({"from": caller}),
            "estimate_gas",
        ))
        gas_price = await self.get_gas_price()
        caller_balance = await self.get_balance(caller)

        return BalanceCheckResult.compute(estimated_gas, gas_price, caller_balance)

    async def transfer_funds_checking_balance(
        self,
        sender_address: str,
        sender_private_key: str,
        destination_address: str,
        value: int = 0,
        gas_options: Optional[GasOptions] = None,
    ) -> str:
        """
        transfer_funds, refused up front when balance cannot cover value plus gas

        The balance may still change between the check and the send.

        Raises:
            InsufficientBalance: balance <= value + TRANSFER_GAS_COST * gas_price
        """
        self._require_chain_id()
        gas_options = gas_options or GasOptions()
        value = int(value or 0)

        balance = await self.get_balance(sender_address)
        gas_price = gas_options.gas_price
        if gas_price is None:
            gas_price = await self.get_gas_price()

        required_balance = value + TRANSFER_GAS_COST * gas_price
        if balance <= required_balance:
            raise InsufficientBalance.for_amounts(required_balance, balance)

        return await self.transfer_funds(
            sender_address,
            sender_private_key,
            destination_address,
            value,
            GasOptions(gas_price=gas_price),
        )

    async def sign_and_send_transaction_checking_balance(
        self,
        call,
        sender_address: str,
        sender_private_key: str,
        destination_address: str,
        estimated_gas_percent_increment: int = DEFAULT_GAS_PERCENT_INCREMENT,
        value: int = 0,
    ) -> str:
        """
        Send a contract call after checking the sender can pay for it

        The gas limit is the node's estimate plus estimated_gas_percent_increment
        percent (integer division). value is attached for payable calls.

        Raises:
            InsufficientBalance: check_balance_for_call reported not enough
        """
        self._require_chain_id()
        check = await self.check_balance_for_call(call, sender_address)

        if not check.is_enough:
            raise InsufficientBalance.for_amounts(check.required_balance, check.caller_balance)

        gas_limit = check.estimated_gas * (100 + estimated_gas_percent_increment) // 100

        return await self.sign_and_send_transaction(
            sender_address,
            sender_private_key,
            destination_address,
            encode_call_data(call),
            int(value or 0),
            GasOptions(gas_price=check.gas_price, gas_limit=gas_limit),
        )

    # ------------------------------------------------------------------
    # Node administration
    # ------------------------------------------------------------------

    async def mine(self, amount_of_blocks: int = 1) -> None:
        """
        Mine blocks on a regtest node

        Each block is evm_increaseTime (one minute) followed by evm_mine, with
        consecutive request ids. Blocks are mined one after the other.
        """
        if isinstance(amount_of_blocks, bool) or not isinstance(amount_of_blocks, int) or amount_of_blocks < 1:
            raise InvalidArgument.out_of_range("amount_of_blocks", amount_of_blocks, "must be at least 1")

        for block in range(amount_of_blocks):
            request_id = new_request_id(span=2)
            await self._raw_request("evm_increaseTime", [MINE_TIME_INCREASE], request_id)
            await self._raw_request("evm_mine", None, request_id + 1)
            logger.debug(f"Mined block {block + 1}/{amount_of_blocks}")

    async def new_account_with_seed(self, seed: str) -> str:
        """Create a node-managed account derived from seed; returns its address"""
        return await self._raw_request("personal_newAccountWithSeed", [seed])

    async def update_bridge(self) -> Any:
        """Ask the federation node to update the bridge; None on success"""
        return await self._raw_request("fed_updateBridge", [])

    async def import_account(self, private_key: str, passphrase: str = "") -> str:
        """Import a raw private key into the node keystore; returns the address"""
        return await self._retry(
            lambda: self._client.manager.coro_request("personal_importRawKey", [private_key, passphrase]),
            "import_account",
        )

    async def unlock_account(self, address: str, passphrase: str = "", duration: Optional[int] = None) -> bool:
        """Unlock a node-managed account for eth_sendTransaction"""
        params = [address, passphrase]
        if duration is not None:
            params.append(duration)
        return await self._retry(
            lambda: self._client.manager.coro_request("personal_unlockAccount", params),
            "unlock_account",
        )

    def __repr__(self) -> str:
        return f"RskTransactionHelper(host_url={self._config.host_url!r}, chain_id={self._config.chain_id})"
