"""Chain key mapper: profile lookup and per-chain derivation.

This module provides the single entry point used by adapters and the wallet
facade to turn (master secret, params) into a DerivedKey.
"""

import logging
from typing import Union

from drxa.derivation.base import DerivedKey
from drxa.derivation.chains import CHAIN_PROFILES, ChainProfile
from drxa.derivation.entropy import derive_entropy
from drxa.derivation.params import Chain, DeriveParams, normalize_chain
from drxa.errors import InvalidDeriveParamsError, UnsupportedChainError
from drxa.utils.locks import ReadWriteLock

logger = logging.getLogger(__name__)

_profiles_lock = ReadWriteLock("chain-profiles")


def get_supported_chains() -> list[str]:
    """Get list of chain identifiers with a key strategy."""
    with _profiles_lock.read():
        return list(CHAIN_PROFILES.keys())


def is_supported_chain(chain: Union[str, Chain]) -> bool:
    """Check if a chain has a profile."""
    try:
        name = normalize_chain(chain)
    except InvalidDeriveParamsError:
        return False
    with _profiles_lock.read():
        return name in CHAIN_PROFILES


def get_chain_profile(chain: Union[str, Chain]) -> ChainProfile:
    """Get the profile for a chain.

    Raises:
        UnsupportedChainError: If no profile exists for the chain
    """
    name = normalize_chain(chain)
    with _profiles_lock.read():
        profile = CHAIN_PROFILES.get(name)
    if profile is None:
        raise UnsupportedChainError(name)
    return profile


def register_chain_profile(profile: ChainProfile, replace: bool = False) -> None:
    """Add a chain profile so derive_for_chain can serve a new chain.

    Args:
        profile: Profile with its key strategy
        replace: Overwrite an existing profile of the same name

    Raises:
        ValueError: If the chain already has a profile and replace is False
    """
    name = normalize_chain(profile.chain)
    if name != profile.chain:
        raise ValueError(f"Chain profile names must be lower-case: {profile.chain!r}")
    with _profiles_lock.write():
        if name in CHAIN_PROFILES and not replace:
            raise ValueError(f"Chain profile already registered: {name}")
        CHAIN_PROFILES[name] = profile
    logger.info(
        f"Registered chain profile {name} "
        f"({profile.curve_family.value}/{profile.address_encoding.value})"
    )


def derive_for_chain(master_secret: bytes, params: DeriveParams) -> DerivedKey:
    """Derive the private key and address for a chain.

    Args:
        master_secret: Root secret
        params: Derivation parameters; params.chain selects the strategy

    Returns:
        DerivedKey with private key, public key and chain-native address

    Raises:
        UnsupportedChainError: If params.chain has no profile
        AddressDerivationError: If the curve operation fails
    """
    profile = get_chain_profile(params.chain)
    entropy = derive_entropy(master_secret, params)
    pair = profile.strategy.derive(entropy)

    return DerivedKey(
        chain=profile.chain,
        address=pair.address,
        private_key=pair.private_key,
        public_key=pair.public_key,
    )


def derive_address(master_secret: bytes, params: DeriveParams) -> str:
    """Derive only the address for params."""
    return derive_for_chain(master_secret, params).address


def validate_address(chain: Union[str, Chain], address: str) -> bool:
    """Check an address is well formed for a chain's encoding."""
    if not isinstance(address, str) or not address:
        return False
    return get_chain_profile(chain).strategy.validate_address(address)
