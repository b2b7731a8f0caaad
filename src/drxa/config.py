"""SDK configuration using pydantic-settings.

Values come from DRXA_* environment variables or a .env file. Master
secrets are never read from settings; they are passed to the SDK directly.
"""

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RpcEndpoints(BaseModel):
    """Network endpoints for one chain."""

    http: str
    ws: Optional[str] = None
    explorer: Optional[str] = None
    explorer_api: Optional[str] = None


def _default_rpc_endpoints() -> dict[str, RpcEndpoints]:
    return {
        "ethereum": RpcEndpoints(
            http="https://eth.llamarpc.com",
            ws="wss://mainnet.gateway.tenderly.co",
            explorer="https://etherscan.io",
            explorer_api="https://api.etherscan.io/api",
        ),
        "bsc": RpcEndpoints(
            http="https://bsc-dataseed.binance.org/",
            ws="wss://bsc-ws-node.nariox.org:443",
            explorer="https://bscscan.com",
            explorer_api="https://api.bscscan.com/api",
        ),
        "cronos": RpcEndpoints(
            http="https://evm-cronos.crypto.org",
            ws="wss://evm-cronos.crypto.org/ws",
            explorer="https://cronoscan.com",
            explorer_api="https://api.cronoscan.com/api",
        ),
        "polygon": RpcEndpoints(
            http="https://polygon-bor-rpc.publicnode.com",
            ws="wss://polygon-bor-rpc.publicnode.com",
            explorer="https://polygonscan.com",
            explorer_api="https://api.polygonscan.com/api",
        ),
        "avalanche": RpcEndpoints(
            http="https://avalanche-c-chain-rpc.publicnode.com",
            ws="wss://avalanche-c-chain-rpc.publicnode.com",
            explorer="https://snowtrace.io",
            explorer_api="https://api.snowtrace.io/api",
        ),
        "fantom": RpcEndpoints(
            http="https://rpc.ftm.tools",
            ws="wss://wsapi.fantom.network/",
            explorer="https://ftmscan.com",
            explorer_api="https://api.ftmscan.com/api",
        ),
        "optimism": RpcEndpoints(
            http="https://mainnet.optimism.io",
            ws="wss://mainnet.optimism.io/ws",
            explorer="https://optimistic.etherscan.io",
            explorer_api="https://api-optimistic.etherscan.io/api",
        ),
        "arbitrum": RpcEndpoints(
            http="https://arb1.arbitrum.io/rpc",
            ws="wss://arb1.arbitrum.io/ws",
            explorer="https://arbiscan.io",
            explorer_api="https://api.arbiscan.io/api",
        ),
        "tron": RpcEndpoints(
            http="https://tron-rpc.publicnode.com",
            explorer="https://tronscan.org",
            explorer_api="https://api.trongrid.io",
        ),
        "solana": RpcEndpoints(
            http="https://api.mainnet-beta.solana.com",
            ws="wss://api.mainnet-beta.solana.com",
            explorer="https://explorer.solana.com",
            explorer_api="https://public-api.solscan.io",
        ),
        "polkadot": RpcEndpoints(
            http="https://rpc.polkadot.io",
            explorer="https://polkascan.io/polkadot",
            explorer_api="https://polkadot.api.subscan.io/api/scan",
        ),
        "bitcoin": RpcEndpoints(
            http="https://blockstream.info/api",
            explorer="https://blockstream.info",
            explorer_api="https://blockstream.info/api",
        ),
    }


class Settings(BaseSettings):
    """SDK settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DRXA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Mode
    # ======================
    dry_run: bool = Field(
        default=False, description="Register simulated adapters instead of live ones"
    )

    # ======================
    # Network
    # ======================
    http_timeout: float = Field(default=30.0, description="HTTP client timeout in seconds")
    rpc_endpoints: dict[str, RpcEndpoints] = Field(
        default_factory=_default_rpc_endpoints,
        description="Per-chain endpoints (JSON in DRXA_RPC_ENDPOINTS)",
    )
    explorer_api_keys: dict[str, str] = Field(
        default_factory=dict, description="Per-chain explorer API keys"
    )

    # ======================
    # Subscriptions
    # ======================
    evm_poll_interval: float = Field(default=12.0, description="EVM poll interval (seconds)")
    bitcoin_poll_interval: float = Field(
        default=15.0, description="Bitcoin poll interval (seconds)"
    )
    simulated_poll_interval: float = Field(
        default=1.0, description="Simulated adapter poll interval (seconds)"
    )

    def get_rpc_endpoints(
        self, chain: str, overrides: Optional[dict[str, RpcEndpoints]] = None
    ) -> Optional[RpcEndpoints]:
        """Get effective endpoints for a chain.

        Args:
            chain: Chain identifier
            overrides: Per-chain endpoints taking precedence over settings

        Returns:
            Endpoints or None if the chain has none configured
        """
        chain = chain.strip().lower()
        if overrides and chain in overrides:
            return overrides[chain]
        return self.rpc_endpoints.get(chain)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
