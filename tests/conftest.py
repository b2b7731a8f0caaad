"""Pytest configuration and fixtures."""

import os

import pytest

# Keep developer .env / environment out of settings-based tests
for _key in [k for k in os.environ if k.startswith("DRXA_")]:
    del os.environ[_key]

from drxa.derivation import DeriveParams
from drxa.config import get_settings


# 32 zero bytes; a fixed public test secret
ZERO_SECRET = bytes(32)

# Any other fixed secret, for "different secret" checks
OTHER_SECRET = bytes(range(32))


@pytest.fixture
def master_secret() -> bytes:
    """Deterministic master secret for tests."""
    return ZERO_SECRET


@pytest.fixture
def other_secret() -> bytes:
    return OTHER_SECRET


@pytest.fixture
def eth_params() -> DeriveParams:
    """Derivation parameters on Ethereum."""
    return DeriveParams(scope="wallet", user_id="user-1", chain="ethereum", index="0")


@pytest.fixture
def make_params():
    """Factory for DeriveParams with sensible defaults."""

    def _make(chain: str = "ethereum", user_id: str = "user-1", index: str = "0",
              scope: str = "wallet") -> DeriveParams:
        return DeriveParams(scope=scope, user_id=user_id, chain=chain, index=index)

    return _make


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached per process; reset around each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
