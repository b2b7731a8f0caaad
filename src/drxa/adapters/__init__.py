"""Chain adapters and the adapter registry."""

from drxa.adapters.base import (
    AdapterState,
    Capability,
    ChainAdapter,
    FeeEstimate,
    HistoryEntry,
    HttpChainAdapter,
    SendResult,
)
from drxa.adapters.bitcoin import BitcoinAdapter, BitcoinSendRequest, TransactionBuilder, Utxo
from drxa.adapters.evm import EvmAdapter
from drxa.adapters.registry import AdapterRegistry
from drxa.adapters.simulated import SimulatedAdapter
from drxa.adapters.subscription import IncomingTransfer, Subscription

__all__ = [
    "AdapterRegistry",
    "AdapterState",
    "BitcoinAdapter",
    "BitcoinSendRequest",
    "Capability",
    "ChainAdapter",
    "EvmAdapter",
    "FeeEstimate",
    "HistoryEntry",
    "HttpChainAdapter",
    "IncomingTransfer",
    "SendResult",
    "SimulatedAdapter",
    "Subscription",
    "TransactionBuilder",
    "Utxo",
]
