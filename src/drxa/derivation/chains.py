"""Chain profiles: static mapping from chain identifier to key strategy.

Every EVM chain shares one strategy, so the same (scope, user, index)
yields a different address per EVM chain only because the chain name is
part of the HMAC input.
"""

from dataclasses import dataclass
from typing import Optional

from drxa.derivation.base import AddressEncoding, CurveFamily, KeyStrategy
from drxa.derivation.bip32 import TaprootKeyStrategy
from drxa.derivation.ed25519 import (
    AptosKeyStrategy,
    NearKeyStrategy,
    SolanaKeyStrategy,
    SuiKeyStrategy,
)
from drxa.derivation.params import Chain
from drxa.derivation.secp256k1 import EvmKeyStrategy, TronKeyStrategy
from drxa.derivation.sr25519 import kusama_strategy, polkadot_strategy


@dataclass(frozen=True)
class ChainProfile:
    """Static description of a chain's key and address scheme."""

    chain: str
    strategy: KeyStrategy
    symbol: str
    decimals: int
    chain_id: Optional[int] = None  # EIP-155 chain id for EVM chains

    @property
    def curve_family(self) -> CurveFamily:
        return self.strategy.curve_family

    @property
    def address_encoding(self) -> AddressEncoding:
        return self.strategy.address_encoding

    @property
    def is_evm(self) -> bool:
        return self.address_encoding == AddressEncoding.HEX_KECCAK

    @property
    def is_hd(self) -> bool:
        return self.curve_family == CurveFamily.BIP32_SECP256K1


_evm = EvmKeyStrategy()
_solana = SolanaKeyStrategy()

# (chain, symbol, chain_id)
EVM_CHAINS: list[tuple[Chain, str, int]] = [
    (Chain.ETHEREUM, "ETH", 1),
    (Chain.OPTIMISM, "ETH", 10),
    (Chain.CRONOS, "CRO", 25),
    (Chain.BSC, "BNB", 56),
    (Chain.POLYGON, "POL", 137),
    (Chain.SONIC, "S", 146),
    (Chain.FANTOM, "FTM", 250),
    (Chain.BASE, "ETH", 8453),
    (Chain.ARBITRUM, "ETH", 42161),
    (Chain.AVALANCHE, "AVAX", 43114),
]


def builtin_profiles() -> list[ChainProfile]:
    """Profiles for every chain supported out of the box."""
    profiles = [
        ChainProfile(chain.value, _evm, symbol, 18, chain_id)
        for chain, symbol, chain_id in EVM_CHAINS
    ]
    profiles.extend([
        ChainProfile(Chain.TRON.value, TronKeyStrategy(), "TRX", 6),
        ChainProfile(Chain.SOLANA.value, _solana, "SOL", 9),
        ChainProfile(Chain.APTOS.value, AptosKeyStrategy(), "APT", 8),
        ChainProfile(Chain.SUI.value, SuiKeyStrategy(), "SUI", 9),
        ChainProfile(Chain.NEAR.value, NearKeyStrategy(), "NEAR", 24),
        ChainProfile(Chain.POLKADOT.value, polkadot_strategy(), "DOT", 10),
        ChainProfile(Chain.KUSAMA.value, kusama_strategy(), "KSM", 12),
        ChainProfile(Chain.BITCOIN.value, TaprootKeyStrategy(hrp="bc"), "BTC", 8),
    ])
    return profiles


# Chain identifier to profile mapping
CHAIN_PROFILES: dict[str, ChainProfile] = {p.chain: p for p in builtin_profiles()}
