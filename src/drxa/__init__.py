"""drxa - deterministic multi-chain address derivation and wallet SDK."""

import logging

from drxa.adapters import (
    AdapterRegistry,
    BitcoinAdapter,
    Capability,
    ChainAdapter,
    EvmAdapter,
    SimulatedAdapter,
    Subscription,
)
from drxa.derivation import Chain, DeriveParams, derive_address, derive_entropy
from drxa.sdk import WalletSDK
from drxa.wallet import HDWallet

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AdapterRegistry",
    "BitcoinAdapter",
    "Capability",
    "Chain",
    "ChainAdapter",
    "DeriveParams",
    "EvmAdapter",
    "HDWallet",
    "SimulatedAdapter",
    "Subscription",
    "WalletSDK",
    "derive_address",
    "derive_entropy",
]
