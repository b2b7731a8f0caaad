"""Tests for the simulated adapter and polling subscriptions."""

import asyncio
from decimal import Decimal

import pytest

from drxa.adapters import Capability, SimulatedAdapter
from drxa.adapters.subscription import IncomingTransfer, Subscription
from drxa.derivation import derive_address
from drxa.errors import (
    InvalidAddressError,
    InvalidAmountError,
    InvalidDeriveParamsError,
    RpcError,
)

POLL = 0.01


@pytest.fixture
def adapter(master_secret):
    return SimulatedAdapter("ethereum", master_secret, poll_interval=POLL)


async def wait_for(predicate, timeout: float = 2.0) -> None:
    """Poll a condition until it holds."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(POLL)


class TestSimulatedAdapter:
    """Tests for SimulatedAdapter operations."""

    def test_declares_all_capabilities(self, adapter):
        """Test every optional capability is declared."""
        for capability in (Capability.ESTIMATE_FEE, Capability.GET_HISTORY, Capability.SEND_TOKEN):
            assert adapter.supports(capability)
        assert not adapter.supports(Capability.NONE)

    def test_address_matches_derivation(self, adapter, master_secret, eth_params):
        """Test adapter addresses equal direct derivation."""
        assert adapter.derive_address(eth_params) == derive_address(master_secret, eth_params)

    def test_params_for_other_chain_rejected(self, adapter, make_params):
        """Test params.chain must match the adapter."""
        with pytest.raises(InvalidDeriveParamsError):
            adapter.derive_address(make_params(chain="bsc"))

    @pytest.mark.asyncio
    async def test_deposit_and_balance(self, adapter, eth_params):
        """Test deposits credit the derived address."""
        address = adapter.derive_address(eth_params)
        adapter.add_simulated_deposit(address, Decimal("1.5"))
        adapter.add_simulated_deposit(address, "0.5")

        assert await adapter.balance(eth_params) == Decimal("2.0")

    @pytest.mark.asyncio
    async def test_send(self, adapter, make_params):
        """Test send moves funds between derived addresses."""
        alice, bob = make_params(user_id="alice"), make_params(user_id="bob")
        adapter.add_simulated_deposit(adapter.derive_address(alice), Decimal("3"))

        result = await adapter.send(alice, adapter.derive_address(bob), Decimal("1.25"))

        assert result.tx_hash.startswith("sim_tx_")
        assert await adapter.balance(alice) == Decimal("1.75")
        assert await adapter.balance(bob) == Decimal("1.25")

    @pytest.mark.asyncio
    async def test_send_to_lowercase_evm_address(self, adapter, make_params):
        """Test EVM ledger entries do not depend on address case."""
        alice, bob = make_params(user_id="alice"), make_params(user_id="bob")
        bob_addr = adapter.derive_address(bob)
        adapter.add_simulated_deposit(adapter.derive_address(alice), "1")

        await adapter.send(alice, bob_addr.lower(), "0.5")

        assert await adapter.balance(bob) == Decimal("0.5")
        assert adapter.balance_of(bob_addr.lower()) == Decimal("0.5")
        assert adapter.balance_of(bob_addr) == Decimal("0.5")

        history = await adapter.get_history(bob)
        assert [(h.direction, h.amount) for h in history] == [("incoming", Decimal("0.5"))]

    @pytest.mark.asyncio
    async def test_send_insufficient_funds(self, adapter, eth_params):
        """Test overspending raises RpcError like a node would."""
        with pytest.raises(RpcError) as exc_info:
            await adapter.send(eth_params, adapter.derive_address(eth_params), "1")
        assert exc_info.value.code == -32000

    @pytest.mark.asyncio
    async def test_send_charges_fee(self, master_secret, make_params):
        """Test the flat network fee is deducted from the sender."""
        adapter = SimulatedAdapter("ethereum", master_secret, network_fee=Decimal("0.01"))
        alice, bob = make_params(user_id="alice"), make_params(user_id="bob")
        adapter.add_simulated_deposit(adapter.derive_address(alice), "1")

        fee = await adapter.estimate_fee(alice, adapter.derive_address(bob), "0.5")
        await adapter.send(alice, adapter.derive_address(bob), "0.5")

        assert fee.fee == Decimal("0.01")
        assert fee.fee_asset == "ETH"
        assert await adapter.balance(alice) == Decimal("0.49")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, "-1", "abc", 1.5, "NaN"])
    async def test_invalid_amount(self, adapter, eth_params, amount):
        """Test non-positive, float and malformed amounts are refused."""
        with pytest.raises(InvalidAmountError):
            await adapter.send(eth_params, adapter.derive_address(eth_params), amount)

    @pytest.mark.asyncio
    async def test_too_many_decimals(self, adapter, eth_params):
        """Test amounts finer than the chain's base unit are refused."""
        with pytest.raises(InvalidAmountError):
            adapter.to_base_units(Decimal("0.0000000000000000001"))

    @pytest.mark.asyncio
    async def test_invalid_destination(self, adapter, eth_params):
        """Test malformed destinations are refused."""
        with pytest.raises(InvalidAddressError):
            await adapter.send(eth_params, "bc1notanaddress", "1")

    @pytest.mark.asyncio
    async def test_history(self, adapter, make_params):
        """Test history lists transfers newest first with direction."""
        alice, bob = make_params(user_id="alice"), make_params(user_id="bob")
        alice_addr, bob_addr = adapter.derive_address(alice), adapter.derive_address(bob)
        deposit = adapter.add_simulated_deposit(alice_addr, "2")
        sent = await adapter.send(alice, bob_addr, "1")

        history = await adapter.get_history(alice)

        assert [h.tx_hash for h in history] == [sent.tx_hash, deposit]
        assert history[0].direction == "outgoing"
        assert history[0].counterparty == bob_addr
        assert history[1].direction == "incoming"
        assert history[0].block_height > history[1].block_height

    @pytest.mark.asyncio
    async def test_send_token(self, adapter, make_params):
        """Test token balances move independently of native balance."""
        token = "0xdAC17F958D2ee523a2206206994597C13D831ec7"
        alice, bob = make_params(user_id="alice"), make_params(user_id="bob")
        alice_addr, bob_addr = adapter.derive_address(alice), adapter.derive_address(bob)
        adapter.add_simulated_deposit(alice_addr, "100", token=token)

        await adapter.send_token(alice, token, bob_addr, "40")

        assert adapter.token_balance_of(alice_addr, token) == Decimal("60")
        assert adapter.token_balance_of(bob_addr, token) == Decimal("40")
        assert await adapter.balance(alice) == Decimal("0")

    @pytest.mark.asyncio
    async def test_send_token_insufficient(self, adapter, eth_params):
        """Test overspending tokens raises RpcError."""
        with pytest.raises(RpcError):
            await adapter.send_token(
                eth_params,
                "0xdAC17F958D2ee523a2206206994597C13D831ec7",
                adapter.derive_address(eth_params),
                "1",
            )

    @pytest.mark.asyncio
    async def test_non_evm_chain(self, master_secret, make_params):
        """Test the simulated ledger works with chain-native addresses."""
        adapter = SimulatedAdapter("solana", master_secret)
        params = make_params(chain="solana")
        address = adapter.derive_address(params)
        adapter.add_simulated_deposit(address, "0.000000001")

        assert await adapter.balance(params) == Decimal("0.000000001")
        assert adapter.to_base_units(Decimal("1")) == 10**9


class TestSubscriptions:
    """Tests for subscribe/unsubscribe."""

    @pytest.mark.asyncio
    async def test_delivers_new_transfers(self, adapter, eth_params):
        """Test deposits after subscribe reach the callback once."""
        address = adapter.derive_address(eth_params)
        received = []

        sub = await adapter.subscribe(address, lambda tx, amount: received.append((tx, amount)))
        tx_hash = adapter.add_simulated_deposit(address, "1")

        await wait_for(lambda: received)
        await asyncio.sleep(POLL * 5)
        sub.unsubscribe()

        assert received == [(tx_hash, Decimal("1"))]

    @pytest.mark.asyncio
    async def test_deposit_to_lowercase_address_delivered(self, adapter, eth_params):
        """Test a checksummed subscription sees deposits made to the lowercase form."""
        address = adapter.derive_address(eth_params)
        received = []

        sub = await adapter.subscribe(address, lambda tx, amount: received.append(amount))
        adapter.add_simulated_deposit(address.lower(), "3")
        await wait_for(lambda: received)
        sub.unsubscribe()

        assert received == [Decimal("3")]

    @pytest.mark.asyncio
    async def test_existing_transfers_not_replayed(self, adapter, eth_params):
        """Test transfers visible at subscribe time are primed as seen."""
        address = adapter.derive_address(eth_params)
        old = adapter.add_simulated_deposit(address, "1")
        received = []

        sub = await adapter.subscribe(address, lambda tx, amount: received.append(tx))
        new = adapter.add_simulated_deposit(address, "2")
        await wait_for(lambda: received)
        sub.unsubscribe()

        assert old in sub.seen
        assert received == [new]

    @pytest.mark.asyncio
    async def test_async_callback(self, adapter, eth_params):
        """Test coroutine callbacks are awaited."""
        address = adapter.derive_address(eth_params)
        event = asyncio.Event()

        async def on_incoming(tx_hash, amount):
            event.set()

        sub = await adapter.subscribe(address, on_incoming)
        adapter.add_simulated_deposit(address, "1")
        await asyncio.wait_for(event.wait(), timeout=2)
        sub.unsubscribe()

    @pytest.mark.asyncio
    async def test_no_callbacks_after_unsubscribe(self, adapter, eth_params):
        """Test unsubscribe stops delivery."""
        address = adapter.derive_address(eth_params)
        received = []

        sub = await adapter.subscribe(address, lambda tx, amount: received.append(tx))
        sub.unsubscribe()
        adapter.add_simulated_deposit(address, "1")
        await asyncio.sleep(POLL * 10)

        assert received == []
        assert sub.closed

    @pytest.mark.asyncio
    async def test_unsubscribe_idempotent(self, adapter, eth_params):
        """Test unsubscribe can be called repeatedly."""
        sub = await adapter.subscribe(adapter.derive_address(eth_params), lambda tx, amount: None)
        sub.unsubscribe()
        sub.unsubscribe()
        await sub.wait_closed()
        assert adapter.subscriptions == []

    @pytest.mark.asyncio
    async def test_subscriptions_independent(self, adapter, eth_params):
        """Test two subscriptions on one address each get every transfer."""
        address = adapter.derive_address(eth_params)
        first, second = [], []

        sub1 = await adapter.subscribe(address, lambda tx, amount: first.append(tx))
        sub2 = await adapter.subscribe(address, lambda tx, amount: second.append(tx))
        sub1.unsubscribe()

        tx_hash = adapter.add_simulated_deposit(address, "1")
        await wait_for(lambda: second)
        sub2.unsubscribe()

        assert first == []
        assert second == [tx_hash]

    @pytest.mark.asyncio
    async def test_callback_error_does_not_stop_polling(self, adapter, eth_params):
        """Test a failing callback is logged and later transfers still arrive."""
        address = adapter.derive_address(eth_params)
        calls = []

        def on_incoming(tx_hash, amount):
            calls.append(tx_hash)
            if len(calls) == 1:
                raise RuntimeError("callback failed")

        sub = await adapter.subscribe(address, on_incoming)
        adapter.add_simulated_deposit(address, "1")
        await wait_for(lambda: len(calls) == 1)
        adapter.add_simulated_deposit(address, "2")
        await wait_for(lambda: len(calls) == 2)
        sub.unsubscribe()

    @pytest.mark.asyncio
    async def test_shutdown_closes_subscriptions(self, adapter, eth_params):
        """Test adapter shutdown closes live subscriptions."""
        sub = await adapter.subscribe(adapter.derive_address(eth_params), lambda tx, amount: None)
        await adapter.shutdown()
        assert sub.closed
        assert adapter.subscriptions == []

    @pytest.mark.asyncio
    async def test_invalid_address(self, adapter):
        """Test subscribing to a malformed address fails."""
        with pytest.raises(InvalidAddressError):
            await adapter.subscribe("not-an-address", lambda tx, amount: None)


class TestSubscriptionPolling:
    """Tests for Subscription with a stub poller."""

    @pytest.mark.asyncio
    async def test_poll_errors_are_survived(self):
        """Test a raising poller does not end the subscription."""
        results = [
            [],
            RuntimeError("node down"),
            [IncomingTransfer("0xabc", Decimal("1"))],
        ]
        received = []

        async def poller():
            item = results.pop(0) if results else []
            if isinstance(item, Exception):
                raise item
            return item

        sub = Subscription("addr", lambda tx, amount: received.append(tx), poller, interval=POLL)
        await sub.start()
        await wait_for(lambda: received)
        sub.unsubscribe()
        await sub.wait_closed()

        assert received == ["0xabc"]

    @pytest.mark.asyncio
    async def test_on_close_called_once(self):
        """Test the close hook fires exactly once."""
        closed = []

        async def poller():
            return []

        sub = Subscription("addr", lambda tx, amount: None, poller, interval=POLL, on_close=closed.append)
        await sub.start()
        sub.unsubscribe()
        sub.unsubscribe()

        assert closed == [sub]
