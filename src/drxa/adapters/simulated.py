"""Simulated adapter for dry runs and testing (no network access).

Keeps an in-memory ledger per chain. Addresses and keys are derived exactly
as on the real chain, so switching to a live adapter keeps every address.
"""

import logging
import secrets
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from eth_utils import to_checksum_address

from drxa.adapters.base import (
    AmountLike,
    Capability,
    ChainAdapter,
    FeeEstimate,
    HistoryEntry,
    SendResult,
)
from drxa.adapters.subscription import IncomingTransfer, Poller
from drxa.derivation import DeriveParams
from drxa.errors import RpcError

logger = logging.getLogger(__name__)


@dataclass
class SimulatedTransfer:
    """A transfer recorded in the simulated ledger."""

    tx_hash: str
    to_address: str
    amount: Decimal
    from_address: Optional[str] = None  # None for external deposits
    token: Optional[str] = None         # None for the native asset
    block_height: int = 0


class SimulatedAdapter(ChainAdapter):
    """In-memory adapter supporting every capability."""

    capabilities = Capability.ESTIMATE_FEE | Capability.GET_HISTORY | Capability.SEND_TOKEN

    def __init__(
        self,
        chain_name: str,
        master_secret: bytes,
        poll_interval: float = 1.0,
        network_fee: Decimal = Decimal("0"),
    ):
        """Initialize simulated adapter.

        Args:
            chain_name: Chain identifier
            master_secret: Root secret for key derivation
            poll_interval: Seconds between subscription polls
            network_fee: Flat fee charged on every native send
        """
        super().__init__(chain_name, master_secret, poll_interval)
        self.network_fee = network_fee
        self._balances: dict[str, Decimal] = {}
        self._token_balances: dict[tuple[str, str], Decimal] = {}
        self._transfers: list[SimulatedTransfer] = []
        self._block_height = 800000

    def _ledger_key(self, address: str) -> str:
        """Ledger key for an address; EVM addresses are case-insensitive."""
        if self.profile.is_evm:
            return to_checksum_address(address)
        return address

    @staticmethod
    def _new_tx_hash() -> str:
        return f"sim_tx_{secrets.token_hex(32)}"

    def _record(self, transfer: SimulatedTransfer) -> None:
        self._block_height += 1
        transfer.block_height = self._block_height
        self._transfers.append(transfer)

    def add_simulated_deposit(
        self,
        address: str,
        amount: AmountLike,
        tx_hash: Optional[str] = None,
        token: Optional[str] = None,
    ) -> str:
        """Credit an address from outside the wallet.

        Returns:
            The transaction hash of the deposit
        """
        address = self._ledger_key(self._check_address(address))
        value = self._check_amount(amount)
        tx_hash = tx_hash or self._new_tx_hash()

        if token is None:
            self._balances[address] = self._balances.get(address, Decimal("0")) + value
        else:
            key = (address, token)
            self._token_balances[key] = self._token_balances.get(key, Decimal("0")) + value

        self._record(SimulatedTransfer(tx_hash=tx_hash, to_address=address, amount=value, token=token))
        return tx_hash

    def balance_of(self, address: str) -> Decimal:
        """Native balance of any address in the simulated ledger."""
        return self._balances.get(self._ledger_key(address), Decimal("0"))

    def token_balance_of(self, address: str, token_contract: str) -> Decimal:
        """Token balance of any address in the simulated ledger."""
        return self._token_balances.get((self._ledger_key(address), token_contract), Decimal("0"))

    async def balance(self, params: DeriveParams) -> Decimal:
        """Return simulated native balance."""
        return self.balance_of(self._derive(params).address)

    async def send(self, params: DeriveParams, to: str, amount: AmountLike) -> SendResult:
        """Move funds inside the simulated ledger."""
        sender = self._ledger_key(self._derive(params).address)
        to = self._ledger_key(self._check_address(to))
        value = self._check_amount(amount)

        total = value + self.network_fee
        available = self.balance_of(sender)
        if available < total:
            raise RpcError(
                f"insufficient funds for transfer: have {available}, need {total}",
                code=-32000,
            )

        self._balances[sender] = available - total
        self._balances[to] = self.balance_of(to) + value

        tx_hash = self._new_tx_hash()
        self._record(SimulatedTransfer(tx_hash=tx_hash, to_address=to, amount=value, from_address=sender))

        logger.info(f"[SIMULATED] {self.chain_name} send: {value} {self.profile.symbol} to {to}")
        return SendResult(tx_hash=tx_hash)

    async def estimate_fee(
        self, params: DeriveParams, to: str, amount: AmountLike
    ) -> FeeEstimate:
        """Return the flat simulated fee."""
        self._derive(params)
        self._check_address(to)
        self._check_amount(amount)
        return FeeEstimate(
            chain=self.chain_name,
            fee=self.network_fee,
            fee_asset=self.profile.symbol,
        )

    async def get_history(self, params: DeriveParams) -> list[HistoryEntry]:
        """List simulated native transfers of the derived address, newest first."""
        address = self._ledger_key(self._derive(params).address)
        entries = []

        for transfer in reversed(self._transfers):
            if transfer.token is not None:
                continue
            if transfer.to_address == address:
                direction = "incoming"
                counterparty = transfer.from_address
            elif transfer.from_address == address:
                direction = "outgoing"
                counterparty = transfer.to_address
            else:
                continue

            entries.append(HistoryEntry(
                tx_hash=transfer.tx_hash,
                amount=transfer.amount,
                direction=direction,
                block_height=transfer.block_height,
                confirmed=True,
                counterparty=counterparty,
            ))

        return entries

    async def send_token(
        self, params: DeriveParams, token_contract: str, to: str, amount: AmountLike
    ) -> SendResult:
        """Move token balance inside the simulated ledger."""
        sender = self._ledger_key(self._derive(params).address)
        to = self._ledger_key(self._check_address(to))
        value = self._check_amount(amount)

        available = self.token_balance_of(sender, token_contract)
        if available < value:
            raise RpcError(
                f"insufficient token balance: have {available}, need {value}",
                code=-32000,
            )

        self._token_balances[(sender, token_contract)] = available - value
        self._token_balances[(to, token_contract)] = self.token_balance_of(to, token_contract) + value

        tx_hash = self._new_tx_hash()
        self._record(SimulatedTransfer(
            tx_hash=tx_hash,
            to_address=to,
            amount=value,
            from_address=sender,
            token=token_contract,
        ))

        logger.info(f"[SIMULATED] {self.chain_name} token send: {value} of {token_contract} to {to}")
        return SendResult(tx_hash=tx_hash)

    def create_poller(self, address: str) -> Poller:
        address = self._ledger_key(address)

        async def poll() -> list[IncomingTransfer]:
            return [
                IncomingTransfer(tx_hash=t.tx_hash, amount=t.amount)
                for t in self._transfers
                if t.to_address == address and t.token is None
            ]

        return poll
