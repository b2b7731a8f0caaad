"""secp256k1 strategies for account-based chains (EVM family, Tron).

Private key: first 32 bytes of entropy, used directly as the scalar.
Address: keccak256 of the uncompressed public key (sans 0x04 prefix),
low 20 bytes. EVM chains render it as 0x + EIP-55 checksum hex, Tron as
base58check with the 0x41 version byte.
"""

from bip_utils import (
    EthAddrEncoder,
    Secp256k1PrivateKey,
    TrxAddrDecoder,
    TrxAddrEncoder,
)
from eth_utils import is_address

from drxa.derivation.base import (
    ADDRESS_DECODE_ERRORS,
    AddressEncoding,
    CurveFamily,
    KeyPair,
    KeyStrategy,
)
from drxa.derivation.entropy import key_material


class EvmKeyStrategy(KeyStrategy):
    """Ethereum-style addresses, shared by every EVM-compatible chain.

    Example:
        strategy = EvmKeyStrategy()
        pair = strategy.derive(entropy)
        # KeyPair(address="0x...")
    """

    @property
    def curve_family(self) -> CurveFamily:
        return CurveFamily.SECP256K1

    @property
    def address_encoding(self) -> AddressEncoding:
        return AddressEncoding.HEX_KECCAK

    def key_pair(self, entropy: bytes) -> KeyPair:
        priv = key_material(entropy)
        pub = Secp256k1PrivateKey.FromBytes(priv).PublicKey()

        # EthAddrEncoder hashes the uncompressed key and applies EIP-55 casing
        address = EthAddrEncoder.EncodeKey(pub)

        return KeyPair(
            address=address,
            private_key=priv,
            public_key=pub.RawUncompressed().ToBytes(),
        )

    def validate_address(self, address: str) -> bool:
        # Accepts all-lower/all-upper hex or a correct EIP-55 checksum
        return isinstance(address, str) and address.startswith("0x") and is_address(address)


class TronKeyStrategy(KeyStrategy):
    """TRON addresses (T...), same key as EVM, base58check encoded."""

    @property
    def curve_family(self) -> CurveFamily:
        return CurveFamily.SECP256K1

    @property
    def address_encoding(self) -> AddressEncoding:
        return AddressEncoding.BASE58_CHECK

    def key_pair(self, entropy: bytes) -> KeyPair:
        priv = key_material(entropy)
        pub = Secp256k1PrivateKey.FromBytes(priv).PublicKey()

        return KeyPair(
            address=TrxAddrEncoder.EncodeKey(pub),
            private_key=priv,
            public_key=pub.RawUncompressed().ToBytes(),
        )

    def validate_address(self, address: str) -> bool:
        try:
            TrxAddrDecoder.DecodeAddr(address)
            return True
        except ADDRESS_DECODE_ERRORS:
            return False
