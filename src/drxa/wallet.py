"""Wallet facade: derives addresses locally and routes operations to adapters.

The facade holds no per-user state. Everything it returns is a function of
the master secret and the derivation parameters, so two facades built from
the same secret behave identically.
"""

import logging
from decimal import Decimal
from typing import Optional, Union

from drxa.adapters.base import (
    CAPABILITY_OPERATIONS,
    AmountLike,
    Capability,
    ChainAdapter,
    FeeEstimate,
    HistoryEntry,
    SendResult,
)
from drxa.adapters.registry import AdapterRegistry
from drxa.adapters.subscription import OnIncoming, Subscription
from drxa.derivation import Chain, DeriveParams, derive_address
from drxa.derivation.entropy import validate_master_secret
from drxa.errors import CapabilityNotSupportedError

logger = logging.getLogger(__name__)


class HDWallet:
    """Multi-chain wallet facade.

    Usage:
        wallet = HDWallet(secret, registry)
        params = DeriveParams(scope="wallet", user_id=uid, chain="ethereum", index="0")
        address = wallet.derive_address(params)
        result = await wallet.send(params, to, Decimal("0.1"))
    """

    def __init__(self, master_secret: bytes, registry: Optional[AdapterRegistry] = None):
        """Initialize wallet.

        Args:
            master_secret: Root secret for key derivation
            registry: Adapter registry (a fresh empty one if omitted)
        """
        self._master_secret = validate_master_secret(master_secret)
        self.registry = registry if registry is not None else AdapterRegistry()

    def derive_address(self, params: DeriveParams) -> str:
        """Derive an address without touching any adapter."""
        return derive_address(self._master_secret, params)

    def _adapter(self, params: DeriveParams) -> ChainAdapter:
        return self.registry.get(params.chain)

    def _require(self, adapter: ChainAdapter, capability: Capability) -> None:
        if not adapter.supports(capability):
            raise CapabilityNotSupportedError(
                adapter.chain_name, CAPABILITY_OPERATIONS[capability]
            )

    def capabilities(self, chain: Union[str, Chain]) -> Capability:
        """Optional capabilities of the adapter registered for a chain."""
        return self.registry.get(chain).capabilities

    async def balance(self, params: DeriveParams) -> Decimal:
        """Native balance of the derived address."""
        return await self._adapter(params).balance(params)

    async def send(self, params: DeriveParams, to: str, amount: AmountLike) -> SendResult:
        """Send native asset from the derived address.

        Adapter and network errors propagate unchanged.
        """
        adapter = self._adapter(params)
        logger.debug(f"Dispatching send on {params.chain} to {to}")
        return await adapter.send(params, to, amount)

    async def subscribe(self, params: DeriveParams, on_incoming: OnIncoming) -> Subscription:
        """Watch the derived address for incoming transfers.

        Args:
            params: Derivation parameters of the address to watch
            on_incoming: Callback called as on_incoming(tx_hash, amount)
        """
        adapter = self._adapter(params)
        address = self.derive_address(params)
        return await adapter.subscribe(address, on_incoming)

    async def estimate_fee(
        self, params: DeriveParams, to: str, amount: AmountLike
    ) -> FeeEstimate:
        """Estimate the fee of a native send.

        Raises:
            CapabilityNotSupportedError: If the adapter cannot estimate fees
        """
        adapter = self._adapter(params)
        self._require(adapter, Capability.ESTIMATE_FEE)
        return await adapter.estimate_fee(params, to, amount)

    async def get_history(self, params: DeriveParams) -> list[HistoryEntry]:
        """Past transfers of the derived address.

        Raises:
            CapabilityNotSupportedError: If the adapter has no history source
        """
        adapter = self._adapter(params)
        self._require(adapter, Capability.GET_HISTORY)
        return await adapter.get_history(params)

    async def send_token(
        self, params: DeriveParams, token_contract: str, to: str, amount: AmountLike
    ) -> SendResult:
        """Send a token from the derived address.

        Raises:
            CapabilityNotSupportedError: If the adapter cannot send tokens
        """
        adapter = self._adapter(params)
        self._require(adapter, Capability.SEND_TOKEN)
        return await adapter.send_token(params, token_contract, to, amount)
