"""Entropy engine: HMAC-SHA512 over canonical derivation parameters."""

import hashlib
import hmac

from drxa.derivation.params import DeriveParams
from drxa.errors import InvalidDeriveParamsError, InvalidMasterSecretError

ENTROPY_LENGTH = 64
KEY_MATERIAL_LENGTH = 32


def validate_master_secret(master_secret: bytes) -> bytes:
    """Check the master secret is non-empty bytes and return it as bytes."""
    if not isinstance(master_secret, (bytes, bytearray, memoryview)):
        raise InvalidMasterSecretError("master secret must be bytes")
    secret = bytes(master_secret)
    if not secret:
        raise InvalidMasterSecretError("master secret must not be empty")
    return secret


def derive_entropy(master_secret: bytes, params: DeriveParams) -> bytes:
    """Compute 64 bytes of deterministic entropy for a derivation.

    Args:
        master_secret: Root secret used as the HMAC key
        params: Derivation parameters

    Returns:
        HMAC-SHA512(master_secret, canonical(params))
    """
    if not isinstance(params, DeriveParams):
        raise InvalidDeriveParamsError("params must be a DeriveParams instance")
    secret = validate_master_secret(master_secret)
    return hmac.new(secret, params.canonical_bytes(), hashlib.sha512).digest()


def key_material(entropy: bytes) -> bytes:
    """First 32 bytes of entropy, used as scalar/seed by non-HD chains."""
    return entropy[:KEY_MATERIAL_LENGTH]
