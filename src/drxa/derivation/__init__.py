"""Deterministic key derivation: entropy engine and chain key mapper."""

from drxa.derivation.base import (
    AddressEncoding,
    CurveFamily,
    DerivedKey,
    KeyPair,
    KeyStrategy,
)
from drxa.derivation.chains import ChainProfile
from drxa.derivation.entropy import derive_entropy
from drxa.derivation.factory import (
    derive_address,
    derive_for_chain,
    get_chain_profile,
    get_supported_chains,
    is_supported_chain,
    register_chain_profile,
    validate_address,
)
from drxa.derivation.params import Chain, DeriveParams

__all__ = [
    "AddressEncoding",
    "Chain",
    "ChainProfile",
    "CurveFamily",
    "DeriveParams",
    "DerivedKey",
    "KeyPair",
    "KeyStrategy",
    "derive_address",
    "derive_entropy",
    "derive_for_chain",
    "get_chain_profile",
    "get_supported_chains",
    "is_supported_chain",
    "register_chain_profile",
    "validate_address",
]
