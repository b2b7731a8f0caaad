"""Chain adapter contract.

Every adapter implements the base operations (derive_address, balance,
send, subscribe). Optional operations are declared through the
`capabilities` flag set and must be checked with `supports()` before use.

Lifecycle:
    CONSTRUCTED -> REGISTERED -> ACTIVE -> SHUTDOWN

After shutdown every operation raises AdapterShutdownError.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum, Flag, auto
from typing import Optional, Union

import httpx

from drxa.adapters.subscription import OnIncoming, Poller, Subscription
from drxa.derivation import DerivedKey, DeriveParams, derive_for_chain, get_chain_profile
from drxa.derivation.entropy import validate_master_secret
from drxa.derivation.factory import validate_address
from drxa.derivation.params import normalize_chain
from drxa.errors import (
    AdapterShutdownError,
    CapabilityNotSupportedError,
    InvalidAddressError,
    InvalidAmountError,
    InvalidDeriveParamsError,
)

logger = logging.getLogger(__name__)


class Capability(Flag):
    """Optional adapter operations."""

    NONE = 0
    ESTIMATE_FEE = auto()
    GET_HISTORY = auto()
    SEND_TOKEN = auto()


# Operation name for each optional capability
CAPABILITY_OPERATIONS = {
    Capability.ESTIMATE_FEE: "estimate_fee",
    Capability.GET_HISTORY: "get_history",
    Capability.SEND_TOKEN: "send_token",
}


class AdapterState(str, Enum):
    """Adapter lifecycle state."""

    CONSTRUCTED = "constructed"
    REGISTERED = "registered"
    ACTIVE = "active"
    SHUTDOWN = "shutdown"


@dataclass
class SendResult:
    """Result of a broadcast transfer."""

    tx_hash: str


@dataclass
class FeeEstimate:
    """Estimated network fee for a transfer."""

    chain: str
    fee: Decimal                        # In fee_asset whole units
    fee_asset: str
    gas_limit: Optional[int] = None     # EVM
    gas_price: Optional[int] = None     # EVM, wei
    fee_rate: Optional[Decimal] = None  # UTXO, sat/vB


@dataclass
class HistoryEntry:
    """A past transfer involving a derived address."""

    tx_hash: str
    amount: Decimal
    direction: str                      # incoming/outgoing
    block_height: Optional[int] = None
    confirmed: bool = True
    counterparty: Optional[str] = None


AmountLike = Union[Decimal, int, str]


class ChainAdapter(ABC):
    """Abstract base class for chain adapters.

    Adapters hold the master secret so they can re-derive signing keys per
    call. Keys are never kept between calls.
    """

    capabilities: Capability = Capability.NONE

    def __init__(self, chain_name: str, master_secret: bytes, poll_interval: float = 15.0):
        """Initialize adapter.

        Args:
            chain_name: Chain identifier; must have a chain profile
            master_secret: Root secret for key derivation
            poll_interval: Seconds between subscription polls
        """
        self.chain_name = normalize_chain(chain_name)
        self.profile = get_chain_profile(self.chain_name)
        self.poll_interval = poll_interval
        self._master_secret = validate_master_secret(master_secret)
        self._state = AdapterState.CONSTRUCTED
        self._subscriptions: set[Subscription] = set()

    @property
    def state(self) -> AdapterState:
        return self._state

    @property
    def is_shutdown(self) -> bool:
        return self._state == AdapterState.SHUTDOWN

    @property
    def subscriptions(self) -> list[Subscription]:
        """Live subscriptions."""
        return list(self._subscriptions)

    def supports(self, capability: Capability) -> bool:
        """Check whether an optional capability is declared."""
        if not capability:
            return False
        return capability in self.capabilities

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def mark_registered(self) -> None:
        """Called by the registry when the adapter is bound to a name."""
        self._ensure_not_shutdown()
        if self._state == AdapterState.CONSTRUCTED:
            self._state = AdapterState.REGISTERED

    def _ensure_not_shutdown(self) -> None:
        if self._state == AdapterState.SHUTDOWN:
            raise AdapterShutdownError(f"Adapter for {self.chain_name} has been shut down")

    def _activate(self) -> None:
        self._ensure_not_shutdown()
        if self._state != AdapterState.ACTIVE:
            self._state = AdapterState.ACTIVE

    async def shutdown(self) -> None:
        """Close all subscriptions and release resources. Idempotent."""
        if self._state == AdapterState.SHUTDOWN:
            return
        self._state = AdapterState.SHUTDOWN

        subscriptions = list(self._subscriptions)
        for sub in subscriptions:
            sub.unsubscribe()
        for sub in subscriptions:
            await sub.wait_closed()

        await self._close_resources()
        logger.info(
            f"Adapter for {self.chain_name} shut down "
            f"({len(subscriptions)} subscriptions closed)"
        )

    async def _close_resources(self) -> None:
        """Release network clients. Override in adapters that hold any."""
        pass

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _derive(self, params: DeriveParams) -> DerivedKey:
        """Derive key material for params on this adapter's chain."""
        self._activate()
        if not isinstance(params, DeriveParams):
            raise InvalidDeriveParamsError("params must be a DeriveParams instance")
        if params.chain != self.chain_name:
            raise InvalidDeriveParamsError(
                f"params.chain is {params.chain!r} but adapter serves {self.chain_name!r}"
            )
        return derive_for_chain(self._master_secret, params)

    def _check_address(self, address: str) -> str:
        if not validate_address(self.chain_name, address):
            raise InvalidAddressError(f"Invalid {self.chain_name} address: {address!r}")
        return address

    @staticmethod
    def _check_amount(amount: AmountLike) -> Decimal:
        if isinstance(amount, float):
            raise InvalidAmountError("Amounts must be Decimal, int or str, not float")
        try:
            value = Decimal(amount)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidAmountError(f"Invalid amount: {amount!r}")
        if not value.is_finite() or value <= 0:
            raise InvalidAmountError(f"Amount must be positive: {amount!r}")
        return value

    def to_base_units(self, amount: Decimal) -> int:
        """Convert whole units (ETH, BTC) to the smallest unit (wei, sat)."""
        scaled = amount.scaleb(self.profile.decimals)
        if scaled != scaled.to_integral_value():
            raise InvalidAmountError(
                f"{amount} has more than {self.profile.decimals} decimal places"
            )
        return int(scaled)

    def from_base_units(self, value: int) -> Decimal:
        """Convert the smallest unit to whole units."""
        return Decimal(value).scaleb(-self.profile.decimals)

    # ------------------------------------------------------------------
    # Base contract
    # ------------------------------------------------------------------

    def derive_address(self, params: DeriveParams) -> str:
        """Derive the address for params on this chain."""
        return self._derive(params).address

    @abstractmethod
    async def balance(self, params: DeriveParams) -> Decimal:
        """Get the native balance of the derived address, in whole units."""
        pass

    @abstractmethod
    async def send(self, params: DeriveParams, to: str, amount: AmountLike) -> SendResult:
        """Send native asset from the derived address.

        Args:
            params: Derivation parameters of the sender
            to: Destination address
            amount: Amount in whole units (e.g. Decimal("0.1") ETH)

        Returns:
            SendResult with the transaction hash
        """
        pass

    @abstractmethod
    def create_poller(self, address: str) -> Poller:
        """Build the poll function used by subscribe for an address."""
        pass

    async def subscribe(self, address: str, on_incoming: OnIncoming) -> Subscription:
        """Watch an address for incoming transfers.

        Args:
            address: Address to watch
            on_incoming: Callback called as on_incoming(tx_hash, amount)

        Returns:
            Subscription whose unsubscribe() stops delivery
        """
        self._activate()
        self._check_address(address)

        sub = Subscription(
            address=address,
            on_incoming=on_incoming,
            poller=self.create_poller(address),
            interval=self.poll_interval,
            label=self.chain_name,
            on_close=self._subscriptions.discard,
        )
        self._subscriptions.add(sub)

        try:
            await sub.start()
        except BaseException:
            sub.unsubscribe()
            raise

        return sub

    # ------------------------------------------------------------------
    # Optional capabilities
    # ------------------------------------------------------------------

    async def estimate_fee(
        self, params: DeriveParams, to: str, amount: AmountLike
    ) -> FeeEstimate:
        """Estimate the fee for send(). Requires Capability.ESTIMATE_FEE."""
        raise CapabilityNotSupportedError(self.chain_name, "estimate_fee")

    async def get_history(self, params: DeriveParams) -> list[HistoryEntry]:
        """List past transfers. Requires Capability.GET_HISTORY."""
        raise CapabilityNotSupportedError(self.chain_name, "get_history")

    async def send_token(
        self, params: DeriveParams, token_contract: str, to: str, amount: AmountLike
    ) -> SendResult:
        """Send a token. Requires Capability.SEND_TOKEN."""
        raise CapabilityNotSupportedError(self.chain_name, "send_token")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(chain={self.chain_name}, state={self._state.value})"


class HttpChainAdapter(ChainAdapter):
    """Adapter base holding a lazily created httpx.AsyncClient."""

    def __init__(
        self,
        chain_name: str,
        master_secret: bytes,
        poll_interval: float = 15.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize adapter.

        Args:
            chain_name: Chain identifier
            master_secret: Root secret for key derivation
            poll_interval: Seconds between subscription polls
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        super().__init__(chain_name, master_secret, poll_interval)
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def _close_resources(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
