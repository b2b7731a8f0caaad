"""Derivation parameters and their canonical byte encoding.

A derivation is identified by the exact tuple (scope, user_id, chain, index).
Each field is length-prefixed before hashing so that no two distinct tuples
produce the same byte string (e.g. scope="a", user_id="b:c" and
scope="a:b", user_id="c" stay distinct).
"""

import struct
from dataclasses import dataclass
from enum import Enum
from typing import Union

from drxa.errors import InvalidDeriveParamsError


class Chain(str, Enum):
    """Built-in chain identifiers."""

    ETHEREUM = "ethereum"
    BSC = "bsc"
    POLYGON = "polygon"
    AVALANCHE = "avalanche"
    ARBITRUM = "arbitrum"
    OPTIMISM = "optimism"
    FANTOM = "fantom"
    CRONOS = "cronos"
    SONIC = "sonic"
    BASE = "base"
    TRON = "tron"
    SOLANA = "solana"
    APTOS = "aptos"
    SUI = "sui"
    NEAR = "near"
    POLKADOT = "polkadot"
    KUSAMA = "kusama"
    BITCOIN = "bitcoin"


def normalize_chain(chain: Union[str, Chain]) -> str:
    """Return the lower-case string identifier for a chain.

    Surrounding whitespace is stripped and case is folded, so " ETHEREUM "
    and "ethereum" name the same chain and derive the same keys.
    """
    if isinstance(chain, Enum):
        chain = chain.value
    if not isinstance(chain, str) or not chain.strip():
        raise InvalidDeriveParamsError("chain must be a non-empty string")
    return chain.strip().lower()


@dataclass(frozen=True)
class DeriveParams:
    """Parameters selecting one deterministic key.

    Attributes:
        scope: Application scope, e.g. "wallet"
        user_id: Caller-defined user identifier
        chain: Chain identifier (see Chain); stripped and lower-cased
            before encoding, so it is case-insensitive
        index: Caller-defined key index, as a string
    """

    scope: str
    user_id: str
    chain: str
    index: str

    def __post_init__(self) -> None:
        for name in ("scope", "user_id", "index"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise InvalidDeriveParamsError(f"{name} must be a non-empty string")
        object.__setattr__(self, "chain", normalize_chain(self.chain))

    def for_chain(self, chain: Union[str, Chain]) -> "DeriveParams":
        """Same scope/user/index on another chain."""
        return DeriveParams(self.scope, self.user_id, chain, self.index)

    def canonical_bytes(self) -> bytes:
        """Injective encoding: 4-byte big-endian length + UTF-8 bytes, per field."""
        parts = []
        for value in (self.scope, self.user_id, self.chain, self.index):
            encoded = value.encode("utf-8")
            parts.append(struct.pack(">I", len(encoded)))
            parts.append(encoded)
        return b"".join(parts)
