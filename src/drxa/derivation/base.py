"""Key strategy interface for the chain key mapper.

Each strategy turns 64 bytes of entropy into a key pair and a chain-native
address for one curve/encoding family. Adding a chain means adding a
strategy (or reusing one) and a ChainProfile; dispatch never changes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

from bip_utils import Base58ChecksumError, Bech32ChecksumError, SS58ChecksumError

from drxa.derivation.entropy import ENTROPY_LENGTH
from drxa.errors import AddressDerivationError

# Raised by bip_utils address decoders on malformed input
ADDRESS_DECODE_ERRORS = (
    ValueError,
    TypeError,
    Base58ChecksumError,
    Bech32ChecksumError,
    SS58ChecksumError,
)


class CurveFamily(str, Enum):
    """Signature scheme used by a chain."""

    SECP256K1 = "secp256k1"
    ED25519 = "ed25519"
    SR25519 = "sr25519"
    BIP32_SECP256K1 = "bip32-secp256k1"


class AddressEncoding(str, Enum):
    """How a public key is serialized into an address."""

    HEX_KECCAK = "hex-keccak"        # 0x + last 20 bytes of keccak256, EIP-55
    BASE58 = "base58"                # raw public key, no version byte
    BASE58_CHECK = "base58check"     # version byte + hash + checksum (Tron)
    SS58 = "ss58"                    # Substrate
    BECH32M_TAPROOT = "bech32m"      # P2TR
    HEX_SHA3 = "hex-sha3"            # Aptos
    HEX_BLAKE2B = "hex-blake2b"      # Sui
    HEX_PUBKEY = "hex-pubkey"        # NEAR implicit account


@dataclass(frozen=True)
class KeyPair:
    """Raw output of a strategy."""

    address: str
    private_key: bytes = field(repr=False)
    public_key: bytes = field(repr=False)


@dataclass(frozen=True)
class DerivedKey:
    """Key material and address for one (secret, params) derivation.

    Never cached and never logged; private_key is excluded from repr.
    """

    chain: str
    address: str
    private_key: bytes = field(repr=False)
    public_key: bytes = field(repr=False)


class KeyStrategy(ABC):
    """Maps entropy to a key pair and address."""

    @property
    @abstractmethod
    def curve_family(self) -> CurveFamily:
        """Curve family handled by this strategy."""
        pass

    @property
    @abstractmethod
    def address_encoding(self) -> AddressEncoding:
        """Address encoding produced by this strategy."""
        pass

    @abstractmethod
    def key_pair(self, entropy: bytes) -> KeyPair:
        """Build the key pair for 64 bytes of entropy."""
        pass

    @abstractmethod
    def validate_address(self, address: str) -> bool:
        """Check an address is well formed for this encoding."""
        pass

    def derive(self, entropy: bytes) -> KeyPair:
        """Derive a key pair, wrapping curve failures in AddressDerivationError."""
        if len(entropy) != ENTROPY_LENGTH:
            raise AddressDerivationError(
                f"Expected {ENTROPY_LENGTH} bytes of entropy, got {len(entropy)}"
            )
        try:
            return self.key_pair(entropy)
        except AddressDerivationError:
            raise
        except (ValueError, TypeError) as e:
            raise AddressDerivationError(
                f"{self.curve_family.value} derivation failed: {e}"
            ) from e

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(curve={self.curve_family.value}, "
            f"encoding={self.address_encoding.value})"
        )
