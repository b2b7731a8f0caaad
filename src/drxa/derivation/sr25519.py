"""sr25519 strategy for Substrate chains (Polkadot, Kusama).

The first 32 bytes of entropy are used as the sr25519 mini-secret and
expanded in Ed25519 mode, which is what polkadot.js `addFromSeed` does.
Addresses are SS58 with the chain's network prefix.
"""

from bip_utils import Substrate, SubstrateCoins, SubstrateSr25519AddrDecoder

from drxa.derivation.base import (
    ADDRESS_DECODE_ERRORS,
    AddressEncoding,
    CurveFamily,
    KeyPair,
    KeyStrategy,
)
from drxa.derivation.entropy import key_material


class SubstrateKeyStrategy(KeyStrategy):
    """Substrate sr25519 key pair with SS58 address.

    The returned private key is the 32-byte mini-secret; the expanded
    64-byte sr25519 secret is recomputed from it when signing.
    """

    def __init__(self, coin: SubstrateCoins, ss58_format: int):
        """Initialize strategy.

        Args:
            coin: bip_utils Substrate coin (selects the SS58 prefix)
            ss58_format: SS58 network prefix, used for address validation
        """
        self.coin = coin
        self.ss58_format = ss58_format

    @property
    def curve_family(self) -> CurveFamily:
        return CurveFamily.SR25519

    @property
    def address_encoding(self) -> AddressEncoding:
        return AddressEncoding.SS58

    def key_pair(self, entropy: bytes) -> KeyPair:
        mini_secret = key_material(entropy)
        ctx = Substrate.FromSeed(mini_secret, self.coin)
        pub = ctx.PublicKey()

        return KeyPair(
            address=pub.ToAddress(),
            private_key=mini_secret,
            public_key=pub.RawCompressed().ToBytes(),
        )

    def validate_address(self, address: str) -> bool:
        try:
            SubstrateSr25519AddrDecoder.DecodeAddr(address, ss58_format=self.ss58_format)
            return True
        except ADDRESS_DECODE_ERRORS:
            return False


def polkadot_strategy() -> SubstrateKeyStrategy:
    return SubstrateKeyStrategy(SubstrateCoins.POLKADOT, ss58_format=0)


def kusama_strategy() -> SubstrateKeyStrategy:
    return SubstrateKeyStrategy(SubstrateCoins.KUSAMA, ss58_format=2)
