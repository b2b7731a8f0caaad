"""Bitcoin adapter backed by an Esplora API (blockstream.info, mempool.space).

Addresses are BIP86 taproot (bc1p...). Balance, history, fee estimation and
deposit watching are served by Esplora. Transaction construction is done by
an externally supplied TransactionBuilder; this adapter only fetches UTXOs
and broadcasts the raw hex it returns.

Docs: https://github.com/Blockstream/esplora/blob/master/API.md
"""

import inspect
import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Awaitable, Callable, Optional, Union

import httpx
from bip_utils import P2PKHAddrDecoder, P2SHAddrDecoder, P2TRAddrDecoder, P2WPKHAddrDecoder

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
from drxa.derivation.base import ADDRESS_DECODE_ERRORS
from drxa.errors import AdapterConfigurationError, InvalidAddressError, RpcError

logger = logging.getLogger(__name__)

# Key-path spend: 10.5 overhead + 57.5 per P2TR input + 43 per P2TR output
TAPROOT_TX_VSIZE = 154

# Esplora confirmation target used for estimates (blocks)
DEFAULT_FEE_TARGET = "6"

# Mainnet legacy version bytes
P2PKH_NET_VER = b"\x00"
P2SH_NET_VER = b"\x05"


@dataclass
class Utxo:
    """Unspent output of a derived address."""

    txid: str
    vout: int
    value: int          # satoshis
    confirmed: bool = True


@dataclass
class BitcoinSendRequest:
    """Everything a TransactionBuilder needs to build and sign a transfer."""

    from_address: str
    to_address: str
    amount_sats: int
    fee_rate: Decimal                   # sat/vB
    utxos: list[Utxo]
    private_key: bytes = field(repr=False)


TransactionBuilder = Callable[[BitcoinSendRequest], Union[str, Awaitable[str]]]


def is_bitcoin_address(address: str, hrp: str = "bc") -> bool:
    """Check for a taproot, P2WPKH, P2PKH or P2SH address."""
    if not isinstance(address, str) or not address:
        return False

    decoders = (
        (P2TRAddrDecoder, {"hrp": hrp}),
        (P2WPKHAddrDecoder, {"hrp": hrp}),
        (P2PKHAddrDecoder, {"net_ver": P2PKH_NET_VER}),
        (P2SHAddrDecoder, {"net_ver": P2SH_NET_VER}),
    )
    for decoder, kwargs in decoders:
        try:
            decoder.DecodeAddr(address, **kwargs)
            return True
        except ADDRESS_DECODE_ERRORS:
            continue
    return False


def _sum_outputs(tx: dict, address: str) -> int:
    return sum(
        vout.get("value", 0)
        for vout in tx.get("vout", [])
        if vout.get("scriptpubkey_address") == address
    )


def _sum_inputs(tx: dict, address: str) -> int:
    return sum(
        (vin.get("prevout") or {}).get("value", 0)
        for vin in tx.get("vin", [])
        if (vin.get("prevout") or {}).get("scriptpubkey_address") == address
    )


class BitcoinAdapter(HttpChainAdapter):
    """Bitcoin mainnet adapter using taproot addresses."""

    MAINNET_URL = "https://blockstream.info/api"

    capabilities = Capability.ESTIMATE_FEE | Capability.GET_HISTORY

    def __init__(
        self,
        master_secret: bytes,
        api_url: Optional[str] = None,
        tx_builder: Optional[TransactionBuilder] = None,
        poll_interval: float = 15.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Bitcoin adapter.

        Args:
            master_secret: Root secret for key derivation
            api_url: Esplora base URL (defaults to blockstream.info)
            tx_builder: Callable building signed raw transactions for send()
            poll_interval: Seconds between subscription polls
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        super().__init__("bitcoin", master_secret, poll_interval, timeout, transport)
        self.api_url = (api_url or self.MAINNET_URL).rstrip("/")
        self.tx_builder = tx_builder

    def _check_address(self, address: str) -> str:
        # Destinations and watched addresses need not be taproot
        if not is_bitcoin_address(address):
            raise InvalidAddressError(f"Invalid bitcoin address: {address!r}")
        return address

    async def _get(self, path: str) -> httpx.Response:
        client = await self._get_client()
        response = await client.get(f"{self.api_url}{path}")
        response.raise_for_status()
        return response

    async def _fee_rate(self, target: str = DEFAULT_FEE_TARGET) -> Decimal:
        """Fee rate in sat/vB for a confirmation target."""
        estimates = (await self._get("/fee-estimates")).json()
        if not estimates:
            raise RpcError("Esplora returned no fee estimates")

        if target in estimates:
            rate = estimates[target]
        else:
            # Closest target that is not faster than requested
            slower = sorted((int(k) for k in estimates if int(k) >= int(target)))
            key = str(slower[0]) if slower else max(estimates, key=int)
            rate = estimates[key]

        return Decimal(str(rate))

    async def get_utxos(self, address: str) -> list[Utxo]:
        """Unspent outputs of an address."""
        data = (await self._get(f"/address/{address}/utxo")).json()
        return [
            Utxo(
                txid=u["txid"],
                vout=u["vout"],
                value=u["value"],
                confirmed=u.get("status", {}).get("confirmed", False),
            )
            for u in data
        ]

    async def balance(self, params: DeriveParams) -> Decimal:
        """Confirmed plus mempool balance of the derived address."""
        address = self._derive(params).address
        data = (await self._get(f"/address/{address}")).json()

        sats = 0
        for stats_key in ("chain_stats", "mempool_stats"):
            stats = data.get(stats_key, {})
            sats += stats.get("funded_txo_sum", 0) - stats.get("spent_txo_sum", 0)

        return self.from_base_units(sats)

    async def send(self, params: DeriveParams, to: str, amount: AmountLike) -> SendResult:
        """Build a transfer with the configured builder and broadcast it.

        Raises:
            AdapterConfigurationError: If no TransactionBuilder is configured
        """
        key = self._derive(params)
        if self.tx_builder is None:
            raise AdapterConfigurationError("Bitcoin send requires a TransactionBuilder")

        self._check_address(to)
        amount_sats = self.to_base_units(self._check_amount(amount))

        request = BitcoinSendRequest(
            from_address=key.address,
            to_address=to,
            amount_sats=amount_sats,
            fee_rate=await self._fee_rate(),
            utxos=await self.get_utxos(key.address),
            private_key=key.private_key,
        )

        raw_tx = self.tx_builder(request)
        if inspect.isawaitable(raw_tx):
            raw_tx = await raw_tx

        client = await self._get_client()
        response = await client.post(f"{self.api_url}/tx", content=raw_tx)
        if response.status_code >= 400:
            raise RpcError(f"Broadcast rejected: {response.text.strip()}", code=response.status_code)

        tx_hash = response.text.strip()
        logger.info(f"bitcoin send broadcast: {amount_sats} sats to {to} ({tx_hash})")
        return SendResult(tx_hash=tx_hash)

    async def estimate_fee(
        self, params: DeriveParams, to: str, amount: AmountLike
    ) -> FeeEstimate:
        """Estimate the fee of a one-input, two-output taproot spend."""
        self._derive(params)
        self._check_address(to)
        self._check_amount(amount)

        rate = await self._fee_rate()
        fee_sats = math.ceil(rate * TAPROOT_TX_VSIZE)

        return FeeEstimate(
            chain=self.chain_name,
            fee=self.from_base_units(fee_sats),
            fee_asset=self.profile.symbol,
            fee_rate=rate,
        )

    async def get_history(self, params: DeriveParams) -> list[HistoryEntry]:
        """Recent transactions of the derived address, newest first."""
        address = self._derive(params).address
        txs = (await self._get(f"/address/{address}/txs")).json()

        entries = []
        for tx in txs:
            net = _sum_outputs(tx, address) - _sum_inputs(tx, address)
            status = tx.get("status", {})
            entries.append(HistoryEntry(
                tx_hash=tx["txid"],
                amount=self.from_base_units(abs(net)),
                direction="incoming" if net >= 0 else "outgoing",
                block_height=status.get("block_height"),
                confirmed=status.get("confirmed", False),
            ))

        return entries

    def create_poller(self, address: str) -> Poller:
        async def poll() -> list[IncomingTransfer]:
            txs = (await self._get(f"/address/{address}/txs")).json()
            transfers = []
            for tx in txs:
                # Change outputs back to the watched address are not incoming
                net = _sum_outputs(tx, address) - _sum_inputs(tx, address)
                if net > 0:
                    transfers.append(IncomingTransfer(
                        tx_hash=tx["txid"],
                        amount=self.from_base_units(net),
                    ))
            return transfers

        return poll
