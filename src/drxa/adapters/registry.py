"""Adapter registry: one adapter instance per chain name.

The registry is an explicit object owned by a wallet or SDK instance, so
several independent wallets can live in one process. Lookups are never
cached; a registration is visible to the very next get().
"""

import logging
from typing import Union

from drxa.adapters.base import ChainAdapter
from drxa.derivation.params import Chain, normalize_chain
from drxa.errors import (
    AdapterAlreadyRegisteredError,
    AdapterNotRegisteredError,
    AdapterShutdownError,
)
from drxa.utils.locks import ReadWriteLock

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Maps chain name to adapter.

    Duplicate registration is rejected unless the caller passes
    replace=True. Writes are exclusive; reads may run concurrently.

    Usage:
        registry = AdapterRegistry()
        registry.register(EvmAdapter("ethereum", secret, rpc_url=...))
        adapter = registry.get("ethereum")
    """

    def __init__(self):
        self._adapters: dict[str, ChainAdapter] = {}
        self._lock = ReadWriteLock("adapter-registry")

    def register(self, adapter: ChainAdapter, replace: bool = False) -> None:
        """Bind adapter.chain_name to adapter.

        Args:
            adapter: Adapter to register
            replace: Overwrite an existing adapter for the same chain

        Raises:
            AdapterAlreadyRegisteredError: If the name is taken and replace is False
            AdapterShutdownError: If the adapter has been shut down
        """
        if adapter.is_shutdown:
            raise AdapterShutdownError(
                f"Cannot register shut-down adapter for {adapter.chain_name}"
            )

        name = adapter.chain_name
        with self._lock.write():
            existing = self._adapters.get(name)
            if existing is not None and existing is not adapter and not replace:
                raise AdapterAlreadyRegisteredError(name)
            adapter.mark_registered()
            self._adapters[name] = adapter

        if existing is not None and existing is not adapter:
            logger.info(f"Replaced {type(existing).__name__} for {name} with {type(adapter).__name__}")
        else:
            logger.info(f"Registered {type(adapter).__name__} for {name}")

    def unregister(self, chain_name: Union[str, Chain]) -> ChainAdapter:
        """Remove and return the adapter for a chain.

        The adapter is not shut down; the caller owns it again.

        Raises:
            AdapterNotRegisteredError: If nothing is registered for the chain
        """
        name = normalize_chain(chain_name)
        with self._lock.write():
            adapter = self._adapters.pop(name, None)
        if adapter is None:
            raise AdapterNotRegisteredError(name)
        logger.info(f"Unregistered {type(adapter).__name__} for {name}")
        return adapter

    def get(self, chain_name: Union[str, Chain]) -> ChainAdapter:
        """Get the adapter for a chain.

        Raises:
            AdapterNotRegisteredError: If nothing is registered for the chain
        """
        name = normalize_chain(chain_name)
        with self._lock.read():
            adapter = self._adapters.get(name)
        if adapter is None:
            raise AdapterNotRegisteredError(name)
        return adapter

    def has(self, chain_name: Union[str, Chain]) -> bool:
        """Check if an adapter is registered for a chain."""
        name = normalize_chain(chain_name)
        with self._lock.read():
            return name in self._adapters

    def chain_names(self) -> list[str]:
        """Registered chain names."""
        with self._lock.read():
            return list(self._adapters.keys())

    async def shutdown(self) -> None:
        """Shut down and remove every registered adapter."""
        with self._lock.write():
            adapters = list(self._adapters.values())
            self._adapters.clear()

        for adapter in adapters:
            await adapter.shutdown()

        if adapters:
            logger.info(f"Registry shut down {len(adapters)} adapters")

    def __contains__(self, chain_name: object) -> bool:
        if not isinstance(chain_name, (str, Chain)):
            return False
        return self.has(chain_name)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._adapters)

    def __repr__(self) -> str:
        return f"AdapterRegistry(chains={self.chain_names()})"
