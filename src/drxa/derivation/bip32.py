"""BIP32 strategy for UTXO chains (Bitcoin Taproot).

Unlike the other families, the whole 64-byte entropy is used as the BIP32
master seed. A fixed hardened child (m/0') provides the signing key, and
the address is a BIP86 key-path-only P2TR output (bech32m, bc1p...).
"""

from bip_utils import (
    Bip32KeyError,
    Bip32PathError,
    Bip32Secp256k1,
    P2TRAddrDecoder,
    P2TRAddrEncoder,
)

from drxa.derivation.base import (
    ADDRESS_DECODE_ERRORS,
    AddressEncoding,
    CurveFamily,
    KeyPair,
    KeyStrategy,
)
from drxa.errors import AddressDerivationError

TAPROOT_CHILD_PATH = "m/0'"


class TaprootKeyStrategy(KeyStrategy):
    """Bitcoin Taproot address from an HD master seed.

    Example:
        strategy = TaprootKeyStrategy(hrp="bc")
        pair = strategy.derive(entropy)
        # KeyPair(address="bc1p...")
    """

    def __init__(self, hrp: str = "bc", path: str = TAPROOT_CHILD_PATH):
        """Initialize strategy.

        Args:
            hrp: Bech32 human-readable part ("bc" mainnet, "tb" testnet)
            path: Child path derived from the master node
        """
        self.hrp = hrp
        self.path = path

    @property
    def curve_family(self) -> CurveFamily:
        return CurveFamily.BIP32_SECP256K1

    @property
    def address_encoding(self) -> AddressEncoding:
        return AddressEncoding.BECH32M_TAPROOT

    def key_pair(self, entropy: bytes) -> KeyPair:
        try:
            master = Bip32Secp256k1.FromSeed(entropy)
            child = master.DerivePath(self.path)
        except (Bip32KeyError, Bip32PathError) as e:
            raise AddressDerivationError(f"BIP32 derivation failed at {self.path}: {e}") from e

        pub = child.PublicKey().KeyObject()
        address = P2TRAddrEncoder.EncodeKey(pub, hrp=self.hrp)

        return KeyPair(
            address=address,
            private_key=child.PrivateKey().Raw().ToBytes(),
            public_key=pub.RawCompressed().ToBytes(),
        )

    def validate_address(self, address: str) -> bool:
        try:
            P2TRAddrDecoder.DecodeAddr(address, hrp=self.hrp)
            return True
        except ADDRESS_DECODE_ERRORS:
            return False
