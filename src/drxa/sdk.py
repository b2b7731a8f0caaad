"""SDK bootstrap: builds a registry of adapters from settings.

Usage:
    async with WalletSDK(seed_hex) as sdk:
        address = sdk.wallet.derive_address(params)
        balance = await sdk.wallet.balance(params)
"""

import logging
from typing import Any, Optional, Union

import httpx

from drxa.adapters.bitcoin import BitcoinAdapter, TransactionBuilder
from drxa.adapters.evm import EvmAdapter
from drxa.adapters.registry import AdapterRegistry
from drxa.adapters.simulated import SimulatedAdapter
from drxa.config import RpcEndpoints, Settings, get_settings
from drxa.derivation import Chain, get_chain_profile, get_supported_chains
from drxa.derivation.entropy import validate_master_secret
from drxa.errors import InvalidMasterSecretError
from drxa.wallet import HDWallet

logger = logging.getLogger(__name__)


def normalize_seed(seed: Union[bytes, bytearray, str]) -> bytes:
    """Accept raw bytes or a hex string (with or without 0x)."""
    if isinstance(seed, str):
        text = seed.strip()
        if text[:2].lower() == "0x":
            text = text[2:]
        try:
            seed = bytes.fromhex(text)
        except ValueError as e:
            raise InvalidMasterSecretError(f"Seed is not valid hex: {e}") from e
    return validate_master_secret(seed)


class WalletSDK:
    """Owns an adapter registry and hands out wallet facades.

    Endpoint overrides apply to this instance only.
    """

    def __init__(
        self,
        seed: Union[bytes, bytearray, str],
        rpc_endpoints: Optional[dict[str, Union[RpcEndpoints, dict[str, Any]]]] = None,
        settings: Optional[Settings] = None,
        register_defaults: bool = True,
        bitcoin_tx_builder: Optional[TransactionBuilder] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize SDK.

        Args:
            seed: Master secret as bytes or hex
            rpc_endpoints: Per-chain endpoint overrides
            settings: Settings (defaults to get_settings())
            register_defaults: Register the bundled adapters
            bitcoin_tx_builder: Transaction builder for Bitcoin sends
            transport: Optional httpx transport shared by HTTP adapters
        """
        self._seed = normalize_seed(seed)
        self.settings = settings or get_settings()
        self.rpc_overrides: dict[str, RpcEndpoints] = {
            chain.strip().lower(): (
                endpoints if isinstance(endpoints, RpcEndpoints)
                else RpcEndpoints.model_validate(endpoints)
            )
            for chain, endpoints in (rpc_endpoints or {}).items()
        }
        self.bitcoin_tx_builder = bitcoin_tx_builder
        self._transport = transport

        self.registry = AdapterRegistry()
        self.wallet = HDWallet(self._seed, self.registry)

        if register_defaults:
            self.register_default_adapters()

    def get_rpc_endpoints(self, chain: Union[str, Chain]) -> Optional[RpcEndpoints]:
        """Effective endpoints for a chain (overrides first, then settings)."""
        name = chain.value if isinstance(chain, Chain) else chain
        return self.settings.get_rpc_endpoints(name, self.rpc_overrides)

    def register_default_adapters(self) -> None:
        """Register the bundled adapters according to settings."""
        if self.settings.dry_run:
            for chain in get_supported_chains():
                self.registry.register(SimulatedAdapter(
                    chain,
                    self._seed,
                    poll_interval=self.settings.simulated_poll_interval,
                ))
            logger.info(f"Dry run: registered simulated adapters for {len(self.registry)} chains")
            return

        for chain in get_supported_chains():
            profile = get_chain_profile(chain)
            endpoints = self.get_rpc_endpoints(chain)
            if endpoints is None:
                continue

            if profile.is_evm and endpoints.http:
                self.registry.register(EvmAdapter(
                    chain,
                    self._seed,
                    rpc_url=endpoints.http,
                    chain_id=profile.chain_id,
                    explorer_api_url=endpoints.explorer_api,
                    explorer_api_key=self.settings.explorer_api_keys.get(chain),
                    poll_interval=self.settings.evm_poll_interval,
                    timeout=self.settings.http_timeout,
                    transport=self._transport,
                ))
            elif chain == Chain.BITCOIN.value and (endpoints.explorer_api or endpoints.http):
                self.registry.register(BitcoinAdapter(
                    self._seed,
                    api_url=endpoints.explorer_api or endpoints.http,
                    tx_builder=self.bitcoin_tx_builder,
                    poll_interval=self.settings.bitcoin_poll_interval,
                    timeout=self.settings.http_timeout,
                    transport=self._transport,
                ))

        logger.info(f"Registered adapters for: {', '.join(self.registry.chain_names())}")

    def create_wallet(self) -> HDWallet:
        """New facade sharing this SDK's registry."""
        return HDWallet(self._seed, self.registry)

    async def close(self) -> None:
        """Shut down every registered adapter."""
        await self.registry.shutdown()

    async def __aenter__(self) -> "WalletSDK":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"WalletSDK(chains={self.registry.chain_names()}, dry_run={self.settings.dry_run})"
