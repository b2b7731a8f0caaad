"""Tests for the adapter registry and adapter lifecycle."""

import pytest

from drxa.adapters import AdapterRegistry, AdapterState, SimulatedAdapter
from drxa.derivation import Chain
from drxa.errors import (
    AdapterAlreadyRegisteredError,
    AdapterNotRegisteredError,
    AdapterShutdownError,
)


@pytest.fixture
def registry():
    return AdapterRegistry()


class TestAdapterRegistry:
    """Tests for AdapterRegistry."""

    def test_register_and_get(self, registry, master_secret):
        """Test a registered adapter is returned by get."""
        adapter = SimulatedAdapter("ethereum", master_secret)
        registry.register(adapter)

        assert registry.get("ethereum") is adapter
        assert registry.get(Chain.ETHEREUM) is adapter
        assert adapter.state == AdapterState.REGISTERED

    def test_get_missing(self, registry):
        """Test get raises AdapterNotRegisteredError."""
        with pytest.raises(AdapterNotRegisteredError):
            registry.get("ethereum")

    def test_missing_is_lookup_error(self, registry):
        """Test callers can catch LookupError."""
        with pytest.raises(LookupError):
            registry.get("solana")

    def test_duplicate_rejected(self, registry, master_secret):
        """Test a second adapter for the same chain is refused."""
        first = SimulatedAdapter("ethereum", master_secret)
        registry.register(first)

        with pytest.raises(AdapterAlreadyRegisteredError):
            registry.register(SimulatedAdapter("ethereum", master_secret))

        assert registry.get("ethereum") is first

    def test_replace(self, registry, master_secret):
        """Test replace=True overwrites the binding."""
        registry.register(SimulatedAdapter("ethereum", master_secret))
        second = SimulatedAdapter("ethereum", master_secret)
        registry.register(second, replace=True)

        assert registry.get("ethereum") is second
        assert len(registry) == 1

    def test_reregister_same_adapter(self, registry, master_secret):
        """Test registering the same instance twice is harmless."""
        adapter = SimulatedAdapter("bsc", master_secret)
        registry.register(adapter)
        registry.register(adapter)
        assert registry.get("bsc") is adapter

    def test_visible_immediately(self, registry, master_secret):
        """Test registration is visible to the next lookup."""
        assert "sui" not in registry
        registry.register(SimulatedAdapter("sui", master_secret))
        assert "sui" in registry
        assert registry.has("SUI")

    def test_unregister(self, registry, master_secret):
        """Test unregister returns the adapter without shutting it down."""
        adapter = SimulatedAdapter("near", master_secret)
        registry.register(adapter)

        assert registry.unregister("near") is adapter
        assert not adapter.is_shutdown
        with pytest.raises(AdapterNotRegisteredError):
            registry.unregister("near")

    def test_chain_names(self, registry, master_secret):
        """Test chain_names lists every binding."""
        for chain in ("ethereum", "solana", "bitcoin"):
            registry.register(SimulatedAdapter(chain, master_secret))
        assert sorted(registry.chain_names()) == ["bitcoin", "ethereum", "solana"]

    def test_contains_ignores_non_strings(self, registry):
        """Test membership with a non-string is False."""
        assert 42 not in registry

    @pytest.mark.asyncio
    async def test_shutdown(self, registry, master_secret):
        """Test shutdown stops and removes every adapter."""
        adapters = [SimulatedAdapter(c, master_secret) for c in ("ethereum", "tron")]
        for adapter in adapters:
            registry.register(adapter)

        await registry.shutdown()

        assert len(registry) == 0
        assert all(a.is_shutdown for a in adapters)

    @pytest.mark.asyncio
    async def test_register_shut_down_adapter(self, registry, master_secret):
        """Test shut-down adapters cannot be registered."""
        adapter = SimulatedAdapter("ethereum", master_secret)
        await adapter.shutdown()

        with pytest.raises(AdapterShutdownError):
            registry.register(adapter)

    def test_registries_are_independent(self, master_secret):
        """Test two registries do not share bindings."""
        a, b = AdapterRegistry(), AdapterRegistry()
        a.register(SimulatedAdapter("ethereum", master_secret))
        assert "ethereum" not in b


class TestAdapterLifecycle:
    """Tests for adapter state transitions."""

    @pytest.mark.asyncio
    async def test_states(self, master_secret, eth_params):
        """Test CONSTRUCTED -> REGISTERED -> ACTIVE -> SHUTDOWN."""
        adapter = SimulatedAdapter("ethereum", master_secret)
        assert adapter.state == AdapterState.CONSTRUCTED

        AdapterRegistry().register(adapter)
        assert adapter.state == AdapterState.REGISTERED

        await adapter.balance(eth_params)
        assert adapter.state == AdapterState.ACTIVE

        await adapter.shutdown()
        assert adapter.state == AdapterState.SHUTDOWN

    @pytest.mark.asyncio
    async def test_operations_after_shutdown(self, master_secret, eth_params):
        """Test every operation fails after shutdown."""
        adapter = SimulatedAdapter("ethereum", master_secret)
        address = adapter.derive_address(eth_params)
        await adapter.shutdown()

        with pytest.raises(AdapterShutdownError):
            adapter.derive_address(eth_params)
        with pytest.raises(AdapterShutdownError):
            await adapter.balance(eth_params)
        with pytest.raises(AdapterShutdownError):
            await adapter.send(eth_params, address, "1")
        with pytest.raises(AdapterShutdownError):
            await adapter.subscribe(address, lambda tx, amount: None)

    @pytest.mark.asyncio
    async def test_shutdown_idempotent(self, master_secret):
        """Test shutdown can be called repeatedly."""
        adapter = SimulatedAdapter("ethereum", master_secret)
        await adapter.shutdown()
        await adapter.shutdown()
        assert adapter.is_shutdown
