"""Polling subscriptions for incoming transfers.

Each subscription owns an asyncio task that polls the chain, de-duplicates
transfers by hash in its own seen-set, and hands new ones to a callback.
Subscriptions on the same adapter share nothing.
"""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class IncomingTransfer:
    """A transfer detected for a watched address."""

    tx_hash: str
    amount: Decimal


# Callback signature: on_incoming(tx_hash, amount), sync or async
OnIncoming = Callable[[str, Decimal], Union[None, Awaitable[None]]]

# Returns the transfers currently visible for the watched address
Poller = Callable[[], Awaitable[list[IncomingTransfer]]]


class Subscription:
    """Handle for a live subscription.

    Usage:
        sub = await adapter.subscribe(address, on_incoming)
        ...
        sub.unsubscribe()  # idempotent, no callbacks after this returns
    """

    def __init__(
        self,
        address: str,
        on_incoming: OnIncoming,
        poller: Poller,
        interval: float,
        label: str = "",
        on_close: Optional[Callable[["Subscription"], None]] = None,
    ):
        """Initialize subscription.

        Args:
            address: Watched address
            on_incoming: Callback for new transfers
            poller: Coroutine function returning visible transfers
            interval: Seconds between polls
            label: Chain name, for logging
            on_close: Called once when the subscription closes
        """
        self.address = address
        self.interval = interval
        self.label = label
        self._on_incoming = on_incoming
        self._poller = poller
        self._on_close = on_close
        self._seen: set[str] = set()
        self._closed = False
        self._task: Optional[asyncio.Task] = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def seen(self) -> frozenset[str]:
        """Transfer hashes already observed by this subscription."""
        return frozenset(self._seen)

    async def start(self, prime: bool = True) -> None:
        """Start polling.

        Args:
            prime: Mark transfers visible right now as seen, so only
                transfers arriving after subscribe are delivered
        """
        if prime:
            for transfer in await self._poller():
                self._seen.add(transfer.tx_hash)

        self._task = asyncio.create_task(self._run())
        logger.info(
            f"Subscribed to {self.label} transfers for {self.address} "
            f"(interval: {self.interval}s)"
        )

    async def _run(self) -> None:
        while not self._closed:
            await asyncio.sleep(self.interval)
            if self._closed:
                break

            try:
                transfers = await self._poller()
            except Exception as e:
                logger.error(f"{self.label} poll error for {self.address}: {e}")
                continue

            await self._deliver(transfers)

    async def _deliver(self, transfers: list[IncomingTransfer]) -> None:
        for transfer in transfers:
            if self._closed:
                return
            if transfer.tx_hash in self._seen:
                continue
            self._seen.add(transfer.tx_hash)

            try:
                result = self._on_incoming(transfer.tx_hash, transfer.amount)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Incoming transfer callback error for {transfer.tx_hash}: {e}")

    def unsubscribe(self) -> None:
        """Stop polling. Safe to call any number of times."""
        if self._closed:
            return
        self._closed = True

        if self._task is not None and not self._task.done():
            self._task.cancel()

        if self._on_close is not None:
            self._on_close(self)

        logger.info(f"Unsubscribed from {self.label} transfers for {self.address}")

    async def wait_closed(self) -> None:
        """Wait for the polling task to finish after unsubscribe."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            pass

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"Subscription({self.label}:{self.address}, {state})"
