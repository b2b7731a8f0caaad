"""ed25519 strategies (Solana, Aptos, Sui, NEAR).

The first 32 bytes of entropy are the ed25519 seed; the public key follows
from standard ed25519 key generation. Only the address encoding differs
between chains.
"""

from abc import abstractmethod

from bip_utils import (
    AptosAddrDecoder,
    AptosAddrEncoder,
    Ed25519PrivateKey,
    Ed25519PublicKey,
    NearAddrDecoder,
    NearAddrEncoder,
    SolAddrDecoder,
    SolAddrEncoder,
    SuiAddrDecoder,
    SuiAddrEncoder,
)

from drxa.derivation.base import (
    ADDRESS_DECODE_ERRORS,
    AddressEncoding,
    CurveFamily,
    KeyPair,
    KeyStrategy,
)
from drxa.derivation.entropy import key_material


class Ed25519KeyStrategy(KeyStrategy):
    """Shared ed25519 key generation; subclasses pick the address encoder."""

    # bip_utils address encoder/decoder classes for the chain
    encoder = None
    decoder = None

    @property
    def curve_family(self) -> CurveFamily:
        return CurveFamily.ED25519

    @property
    @abstractmethod
    def address_encoding(self) -> AddressEncoding:
        pass

    def key_pair(self, entropy: bytes) -> KeyPair:
        seed = key_material(entropy)
        pub = Ed25519PrivateKey.FromBytes(seed).PublicKey()

        return KeyPair(
            address=self.encode_address(pub),
            private_key=seed,
            public_key=raw_public_key(pub),
        )

    def encode_address(self, pub: Ed25519PublicKey) -> str:
        return self.encoder.EncodeKey(pub)

    def validate_address(self, address: str) -> bool:
        try:
            self.decoder.DecodeAddr(address)
            return True
        except ADDRESS_DECODE_ERRORS:
            return False


def raw_public_key(pub: Ed25519PublicKey) -> bytes:
    """32-byte ed25519 public key (bip_utils prefixes a 0x00 byte)."""
    return pub.RawCompressed().ToBytes()[1:]


class SolanaKeyStrategy(Ed25519KeyStrategy):
    """Solana: base58 of the raw 32-byte public key, no version byte."""

    encoder = SolAddrEncoder
    decoder = SolAddrDecoder

    @property
    def address_encoding(self) -> AddressEncoding:
        return AddressEncoding.BASE58


class AptosKeyStrategy(Ed25519KeyStrategy):
    """Aptos: 0x + sha3-256(pubkey || 0x00)."""

    encoder = AptosAddrEncoder
    decoder = AptosAddrDecoder

    @property
    def address_encoding(self) -> AddressEncoding:
        return AddressEncoding.HEX_SHA3


class SuiKeyStrategy(Ed25519KeyStrategy):
    """Sui: 0x + blake2b-256(0x00 || pubkey)."""

    encoder = SuiAddrEncoder
    decoder = SuiAddrDecoder

    @property
    def address_encoding(self) -> AddressEncoding:
        return AddressEncoding.HEX_BLAKE2B


class NearKeyStrategy(Ed25519KeyStrategy):
    """NEAR implicit account: hex of the raw public key."""

    encoder = NearAddrEncoder
    decoder = NearAddrDecoder

    @property
    def address_encoding(self) -> AddressEncoding:
        return AddressEncoding.HEX_PUBKEY
