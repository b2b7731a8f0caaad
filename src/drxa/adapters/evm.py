"""EVM adapter (Ethereum, BSC, Polygon, ...).

Talks JSON-RPC over httpx and signs locally with eth_account. One instance
serves one chain; every EVM chain gets its own instance and addresses.
Supports native transfers, ERC20 transfers and fee estimation. History is
available when an Etherscan-compatible explorer API is configured.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

import httpx
from eth_abi import encode
from eth_account import Account
from eth_utils import is_address, to_checksum_address, to_hex

from drxa.adapters.base import (
    AmountLike,
    Capability,
    FeeEstimate,
    HistoryEntry,
    HttpChainAdapter,
    SendResult,
)
from drxa.adapters.subscription import IncomingTransfer, Poller
from drxa.derivation import DeriveParams
from drxa.errors import AdapterConfigurationError, InvalidAddressError, InvalidAmountError, RpcError

logger = logging.getLogger(__name__)

# Standard ETH transfer gas
NATIVE_TRANSFER_GAS = 21000

# ERC20 function selectors
TRANSFER_SELECTOR = bytes.fromhex("a9059cbb")     # transfer(address,uint256)
BALANCE_OF_SELECTOR = bytes.fromhex("70a08231")   # balanceOf(address)
DECIMALS_SELECTOR = bytes.fromhex("313ce567")     # decimals()


class EvmAdapter(HttpChainAdapter):
    """Adapter for one EVM-compatible chain.

    Example:
        adapter = EvmAdapter("ethereum", secret, rpc_url="https://eth.llamarpc.com")
        balance = await adapter.balance(params)
    """

    def __init__(
        self,
        chain_name: str,
        master_secret: bytes,
        rpc_url: str,
        chain_id: Optional[int] = None,
        explorer_api_url: Optional[str] = None,
        explorer_api_key: Optional[str] = None,
        poll_interval: float = 12.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize EVM adapter.

        Args:
            chain_name: EVM chain identifier (ethereum, bsc, ...)
            master_secret: Root secret for key derivation
            rpc_url: JSON-RPC endpoint
            chain_id: EIP-155 chain id (defaults to the chain profile's)
            explorer_api_url: Etherscan-compatible API for history
            explorer_api_key: API key for the explorer
            poll_interval: Seconds between subscription polls
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        super().__init__(chain_name, master_secret, poll_interval, timeout, transport)

        if not self.profile.is_evm:
            raise AdapterConfigurationError(f"{self.chain_name} is not an EVM chain")
        if not rpc_url:
            raise AdapterConfigurationError(f"No RPC URL configured for {self.chain_name}")

        self.rpc_url = rpc_url
        self.chain_id = chain_id if chain_id is not None else self.profile.chain_id
        self.explorer_api_url = explorer_api_url
        self.explorer_api_key = explorer_api_key
        self._request_id = 0

        self.capabilities = Capability.ESTIMATE_FEE | Capability.SEND_TOKEN
        if explorer_api_url:
            self.capabilities |= Capability.GET_HISTORY

    # ------------------------------------------------------------------
    # JSON-RPC
    # ------------------------------------------------------------------

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        """Call a JSON-RPC method and return its result.

        Raises:
            RpcError: If the node returns an error object
            httpx.HTTPError: On transport or HTTP status errors
        """
        client = await self._get_client()
        self._request_id += 1

        response = await client.post(
            self.rpc_url,
            json={
                "jsonrpc": "2.0",
                "method": method,
                "params": params,
                "id": self._request_id,
            },
        )
        response.raise_for_status()
        data = response.json()

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcError(error.get("message", str(error)), code=error.get("code"))
            raise RpcError(str(error))

        return data.get("result")

    async def _rpc_int(self, method: str, params: list[Any]) -> int:
        result = await self._rpc(method, params)
        if result is None:
            raise RpcError(f"{method} returned no result")
        return int(result, 16)

    async def _gas_price(self) -> int:
        """Current gas price in wei."""
        return await self._rpc_int("eth_gasPrice", [])

    async def _nonce(self, address: str) -> int:
        return await self._rpc_int("eth_getTransactionCount", [address, "pending"])

    async def _broadcast(self, account, tx: dict) -> str:
        signed = account.sign_transaction(tx)
        return await self._rpc("eth_sendRawTransaction", [to_hex(signed.raw_transaction)])

    # ------------------------------------------------------------------
    # Base contract
    # ------------------------------------------------------------------

    async def balance(self, params: DeriveParams) -> Decimal:
        """Native balance (ETH, BNB, ...) of the derived address."""
        address = self._derive(params).address
        wei = await self._rpc_int("eth_getBalance", [address, "latest"])
        return self.from_base_units(wei)

    async def send(self, params: DeriveParams, to: str, amount: AmountLike) -> SendResult:
        """Sign and broadcast a native transfer.

        Returns as soon as the node accepts the transaction.
        """
        key = self._derive(params)
        self._check_address(to)
        value = self.to_base_units(self._check_amount(amount))

        account = Account.from_key(key.private_key)
        tx = {
            "nonce": await self._nonce(account.address),
            "gasPrice": await self._gas_price(),
            "gas": NATIVE_TRANSFER_GAS,
            "to": to_checksum_address(to),
            "value": value,
            "chainId": self.chain_id,
        }

        tx_hash = await self._broadcast(account, tx)
        logger.info(f"{self.chain_name} send broadcast: {amount} {self.profile.symbol} to {to} ({tx_hash})")
        return SendResult(tx_hash=tx_hash)

    def create_poller(self, address: str) -> Poller:
        """Poll the balance per block and report increases.

        Transfers are reported as pseudo hashes "block<N>" because a plain
        JSON-RPC node cannot list incoming transfers by address.
        """
        last_balance: Optional[int] = None

        async def poll() -> list[IncomingTransfer]:
            nonlocal last_balance
            block = await self._rpc_int("eth_blockNumber", [])
            current = await self._rpc_int("eth_getBalance", [address, hex(block)])

            previous, last_balance = last_balance, current
            if previous is None or current <= previous:
                return []
            return [IncomingTransfer(
                tx_hash=f"block{block}",
                amount=self.from_base_units(current - previous),
            )]

        return poll

    # ------------------------------------------------------------------
    # Optional capabilities
    # ------------------------------------------------------------------

    async def estimate_fee(
        self, params: DeriveParams, to: str, amount: AmountLike
    ) -> FeeEstimate:
        """Estimate a native transfer fee at the current gas price."""
        self._derive(params)
        self._check_address(to)
        self._check_amount(amount)

        gas_price = await self._gas_price()
        fee_wei = gas_price * NATIVE_TRANSFER_GAS

        return FeeEstimate(
            chain=self.chain_name,
            fee=self.from_base_units(fee_wei),
            fee_asset=self.profile.symbol,
            gas_limit=NATIVE_TRANSFER_GAS,
            gas_price=gas_price,
        )

    async def get_history(self, params: DeriveParams) -> list[HistoryEntry]:
        """Native transfers of the derived address from the explorer API."""
        address = self._derive(params).address
        if not self.explorer_api_url:
            raise AdapterConfigurationError(f"No explorer API configured for {self.chain_name}")

        client = await self._get_client()
        query = {
            "module": "account",
            "action": "txlist",
            "address": address,
            "sort": "desc",
        }
        if self.explorer_api_key:
            query["apikey"] = self.explorer_api_key

        response = await client.get(self.explorer_api_url, params=query)
        response.raise_for_status()
        data = response.json()

        if data.get("status") != "1":
            # Explorer returns status 0 with an empty list when there is no history
            if isinstance(data.get("result"), list) and not data["result"]:
                return []
            raise RpcError(f"Explorer error: {data.get('message')} {data.get('result')}")

        own = address.lower()
        entries = []
        for tx in data["result"]:
            incoming = (tx.get("to") or "").lower() == own
            entries.append(HistoryEntry(
                tx_hash=tx["hash"],
                amount=self.from_base_units(int(tx.get("value", "0"))),
                direction="incoming" if incoming else "outgoing",
                block_height=int(tx["blockNumber"]) if tx.get("blockNumber") else None,
                confirmed=tx.get("isError", "0") == "0",
                counterparty=tx.get("from") if incoming else tx.get("to"),
            ))

        return entries

    async def _token_decimals(self, token_contract: str) -> int:
        result = await self._rpc(
            "eth_call",
            [{"to": token_contract, "data": to_hex(DECIMALS_SELECTOR)}, "latest"],
        )
        return int(result, 16)

    @staticmethod
    def _check_token(token_contract: str) -> str:
        if not isinstance(token_contract, str) or not is_address(token_contract):
            raise InvalidAddressError(f"Invalid token contract: {token_contract!r}")
        return to_checksum_address(token_contract)

    async def token_balance(self, params: DeriveParams, token_contract: str) -> Decimal:
        """ERC20 balance of the derived address, scaled by token decimals."""
        address = self._derive(params).address
        token = self._check_token(token_contract)

        data = BALANCE_OF_SELECTOR + encode(["address"], [address])
        result = await self._rpc("eth_call", [{"to": token, "data": to_hex(data)}, "latest"])
        decimals = await self._token_decimals(token)
        return Decimal(int(result, 16)).scaleb(-decimals)

    async def send_token(
        self, params: DeriveParams, token_contract: str, to: str, amount: AmountLike
    ) -> SendResult:
        """Sign and broadcast an ERC20 transfer.

        Args:
            params: Derivation parameters of the sender
            token_contract: ERC20 contract address
            to: Recipient address
            amount: Amount in token units (scaled by decimals())
        """
        key = self._derive(params)
        token = self._check_token(token_contract)
        self._check_address(to)
        value = self._check_amount(amount)

        decimals = await self._token_decimals(token)
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise InvalidAmountError(f"{value} has more than {decimals} decimal places")

        account = Account.from_key(key.private_key)
        data = to_hex(TRANSFER_SELECTOR + encode(
            ["address", "uint256"], [to_checksum_address(to), int(scaled)]
        ))
        gas = await self._rpc_int(
            "eth_estimateGas", [{"from": account.address, "to": token, "data": data}]
        )

        tx = {
            "nonce": await self._nonce(account.address),
            "gasPrice": await self._gas_price(),
            "gas": gas,
            "to": token,
            "value": 0,
            "data": data,
            "chainId": self.chain_id,
        }

        tx_hash = await self._broadcast(account, tx)
        logger.info(f"{self.chain_name} token send broadcast: {value} of {token} to {to} ({tx_hash})")
        return SendResult(tx_hash=tx_hash)
