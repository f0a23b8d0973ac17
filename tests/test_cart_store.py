"""
Cart Store Tests

LOCAL and REMOTE regimes, fallback on remote failure, login,
discounts and mutation ordering.
"""

import asyncio
import itertools
from decimal import Decimal

import pytest

from storecore.cart_store import CartStore, LocalRegime, RemoteRegime
from storecore.errors import RecoverableSyncError
from storecore.models import SourceOfTruth
from storecore.pos import PosTerminal


@pytest.fixture
def local_cart(gateway, mirror):
    return CartStore(gateway, mirror)


@pytest.fixture
def remote_cart(gateway, mirror):
    return CartStore(gateway, mirror, identity="user-1")


class TestLocalRegime:

    async def test_starts_local_and_empty(self, local_cart):
        state = await local_cart.initialize()

        assert isinstance(local_cart.regime, LocalRegime)
        assert state.source_of_truth == SourceOfTruth.LOCAL
        assert state.items == []

    async def test_update_to_zero_on_empty_cart_is_noop(self, local_cart):
        result = await local_cart.update_quantity("prod-001", 0)

        assert result.success
        assert local_cart.item_count == 0
        assert local_cart.items == []

    async def test_update_below_one_keeps_line(self, local_cart, brake_pads):
        await local_cart.add_to_cart(brake_pads, 2)

        await local_cart.update_quantity(brake_pads.id, 0)
        await local_cart.update_quantity(brake_pads.id, -3)

        assert local_cart.items[0].quantity == 2

    async def test_adding_same_product_merges_lines(self, local_cart, brake_pads):
        await local_cart.add_to_cart(brake_pads, 1)
        await local_cart.add_to_cart(brake_pads, 2)

        assert len(local_cart.items) == 1
        assert local_cart.items[0].quantity == 3
        assert local_cart.subtotal == Decimal("3000")

    async def test_insertion_order_is_kept(self, local_cart, brake_pads, engine_oil):
        await local_cart.add_to_cart(engine_oil)
        await local_cart.add_to_cart(brake_pads)
        await local_cart.add_to_cart(engine_oil)

        assert [item.product_id for item in local_cart.items] == [engine_oil.id, brake_pads.id]

    async def test_remove_absent_product_is_noop(self, local_cart, brake_pads):
        await local_cart.add_to_cart(brake_pads)

        result = await local_cart.remove_from_cart("missing")

        assert result.success
        assert local_cart.item_count == 1

    async def test_mutations_write_mirror(self, local_cart, mirror, brake_pads, engine_oil):
        await local_cart.add_to_cart(brake_pads, 2)
        await local_cart.add_to_cart(engine_oil)
        await local_cart.remove_from_cart(engine_oil.id)

        saved = mirror.load()
        assert [(item.product_id, item.quantity) for item in saved] == [(brake_pads.id, 2)]

    async def test_mirror_survives_restart(self, gateway, mirror, brake_pads):
        first = CartStore(gateway, mirror)
        await first.add_to_cart(brake_pads, 4)

        second = CartStore(gateway, mirror)
        await second.initialize()

        assert second.items == first.items

    async def test_local_mutations_never_call_remote(self, local_cart, gateway, brake_pads):
        await local_cart.add_to_cart(brake_pads)
        await local_cart.update_quantity(brake_pads.id, 5)
        await local_cart.clear_cart()

        assert gateway.calls == []

    async def test_clear_cart_drops_discount(self, local_cart, brake_pads):
        await local_cart.add_to_cart(brake_pads, 2)
        await local_cart.apply_discount("WELCOME10")

        await local_cart.clear_cart()

        assert local_cart.items == []
        assert local_cart.discount is None
        assert local_cart.total == Decimal("0")


class TestRemoteRegime:

    async def test_remote_add_failure_falls_back_locally(self, remote_cart, gateway, brake_pads, engine_oil):
        """Failed remote add is shown locally, flagged, then cleared by the next good sync"""
        await remote_cart.initialize()
        gateway.failing.add("add_remote_item")

        result = await remote_cart.add_to_cart(brake_pads)

        assert result.success
        assert isinstance(result.error, RecoverableSyncError)
        assert isinstance(remote_cart.error, RecoverableSyncError)
        assert [item.product_id for item in remote_cart.items] == [brake_pads.id]

        gateway.failing.clear()
        result = await remote_cart.add_to_cart(engine_oil)

        assert result.success
        assert result.error is None
        assert remote_cart.error is None

    async def test_remote_list_wins_and_discrepancy_is_reported(self, remote_cart, gateway, brake_pads, engine_oil):
        await remote_cart.initialize()
        gateway.failing.add("add_remote_item")
        await remote_cart.add_to_cart(brake_pads)
        gateway.failing.clear()

        await remote_cart.add_to_cart(engine_oil)

        assert [item.product_id for item in remote_cart.items] == [engine_oil.id]
        assert remote_cart.discrepancies == [brake_pads.id]

    async def test_successful_mutation_adopts_remote_list(self, remote_cart, gateway, brake_pads):
        await remote_cart.initialize()
        gateway.remote_cart("user-1").add(brake_pads, 5)

        await remote_cart.update_quantity(brake_pads.id, 2)

        assert remote_cart.items[0].quantity == 2
        assert remote_cart.source_of_truth == SourceOfTruth.REMOTE

    async def test_refresh_failure_applies_locally(self, remote_cart, gateway, brake_pads):
        await remote_cart.initialize()
        gateway.failing.add("get_remote_cart")

        result = await remote_cart.add_to_cart(brake_pads, 2)

        assert result.success
        assert remote_cart.items[0].quantity == 2
        assert remote_cart.error is not None
        assert gateway.remote_cart("user-1").quantity_of(brake_pads.id) == 2

    async def test_remote_regime_does_not_write_mirror(self, remote_cart, mirror, brake_pads):
        await remote_cart.initialize()
        await remote_cart.add_to_cart(brake_pads)

        assert mirror.load() == []

    async def test_initialize_failure_sets_error(self, remote_cart, gateway):
        gateway.failing.add("get_remote_cart")

        state = await remote_cart.initialize()

        assert state.items == []
        assert isinstance(remote_cart.error, RecoverableSyncError)

        remote_cart.clear_error()
        assert remote_cart.error is None


class TestLogin:

    async def test_login_replaces_anonymous_items(self, local_cart, gateway, brake_pads, engine_oil):
        await local_cart.add_to_cart(brake_pads, 3)
        gateway.remote_cart("user-1").add(engine_oil, 1)

        state = await local_cart.login("user-1")

        assert local_cart.regime == RemoteRegime("user-1")
        assert state.source_of_truth == SourceOfTruth.REMOTE
        assert [item.product_id for item in state.items] == [engine_oil.id]
        assert gateway.remote_cart("user-1").quantity_of(brake_pads.id) == 0

    async def test_second_login_is_rejected(self, remote_cart):
        with pytest.raises(RuntimeError):
            await remote_cart.login("user-2")


class TestDiscounts:

    async def test_apply_valid_code(self, local_cart, brake_pads):
        await local_cart.add_to_cart(brake_pads, 2)

        result = await local_cart.apply_discount("WELCOME10")

        assert result.success
        assert local_cart.discount_amount == Decimal("200")
        assert local_cart.total == Decimal("1800")

    async def test_invalid_code_keeps_previous_discount(self, local_cart, brake_pads):
        await local_cart.add_to_cart(brake_pads, 2)
        await local_cart.apply_discount("WELCOME10")

        result = await local_cart.apply_discount("BOGUS")

        assert not result.success
        assert result.error_code == "invalid_code"
        assert local_cart.discount.code == "WELCOME10"

    async def test_blank_code_rejected_without_remote_call(self, local_cart, gateway):
        result = await local_cart.apply_discount("   ")

        assert not result.success
        assert "validate_discount_code" not in gateway.calls

    async def test_validation_outage_is_invalid_code(self, local_cart, gateway):
        gateway.failing.add("validate_discount_code")

        result = await local_cart.apply_discount("WELCOME10")

        assert not result.success
        assert result.error_code == "invalid_code"
        assert gateway.calls.count("validate_discount_code") == 1

    async def test_remove_discount(self, local_cart, brake_pads):
        await local_cart.add_to_cart(brake_pads)
        await local_cart.apply_discount("WELCOME10")

        local_cart.remove_discount()

        assert local_cart.discount_amount == Decimal("0")


class TestOrdering:

    async def test_concurrent_mutations_apply_in_call_order(self, remote_cart, gateway, brake_pads):
        await remote_cart.initialize()

        await asyncio.gather(
            remote_cart.add_to_cart(brake_pads, 1),
            remote_cart.update_quantity(brake_pads.id, 7),
            remote_cart.add_to_cart(brake_pads, 1),
        )

        assert remote_cart.items[0].quantity == 8
        assert not remote_cart.busy

    async def test_clear_queued_behind_add_tracks_added_product(self, remote_cart, gateway, brake_pads, engine_oil):
        """A clear waiting on the lock sees the product added before it ran"""
        await remote_cart.initialize()
        released = asyncio.Event()
        add_item = gateway.add_remote_item

        async def slow_add(identity, product_id, quantity=1):
            await released.wait()
            await add_item(identity, product_id, quantity)

        gateway.add_remote_item = slow_add
        adding = asyncio.create_task(remote_cart.add_to_cart(brake_pads))
        await asyncio.sleep(0)
        gateway.failing.add("clear_remote_cart")
        clearing = asyncio.create_task(remote_cart.clear_cart())
        await asyncio.sleep(0)
        released.set()
        await asyncio.gather(adding, clearing)

        gateway.failing.clear()
        gateway.add_remote_item = add_item
        await remote_cart.add_to_cart(engine_oil)

        assert remote_cart.discrepancies == [brake_pads.id]


# Each step is (operation, product key, quantity)
SEQUENCES = [
    [("add", "brakes", 1), ("add", "brakes", 2), ("update", "brakes", 0)],
    [("add", "oil", 2), ("update", "oil", 5), ("remove", "oil", 0), ("update", "oil", 3)],
    [("add", "brakes", 1), ("add", "oil", 1), ("remove", "brakes", 0), ("add", "brakes", 4)],
    [("update", "brakes", 2), ("remove", "oil", 0), ("add", "oil", 1), ("update", "oil", -1)],
    [("add", "oil", 3), ("update", "oil", 1), ("add", "brakes", 0), ("add", "oil", 1), ("remove", "brakes", 0)],
]


async def run_sequence(cart, sequence, products):
    for operation, key, quantity in sequence:
        product = products[key]
        if operation == "add":
            await cart.add_to_cart(product, quantity)
        elif operation == "update":
            await cart.update_quantity(product.id, quantity)
        else:
            await cart.remove_from_cart(product.id)


class TestSequenceInvariants:

    @pytest.mark.parametrize("identity", [None, "user-1"], ids=["local", "remote"])
    @pytest.mark.parametrize("sequence", SEQUENCES)
    async def test_item_count_matches_lines(self, gateway, mirror, brake_pads, engine_oil, identity, sequence):
        cart = CartStore(gateway, mirror, identity=identity)
        await cart.initialize()

        await run_sequence(cart, sequence, {"brakes": brake_pads, "oil": engine_oil})

        assert cart.item_count == sum(item.quantity for item in cart.items)
        assert all(item.quantity >= 1 for item in cart.items)
        assert len({item.product_id for item in cart.items}) == len(cart.items)

    @pytest.mark.parametrize("sequence", SEQUENCES)
    def test_pos_item_count_matches_lines(self, gateway, settings, brake_pads, engine_oil, sequence):
        terminal = PosTerminal(gateway, settings)
        products = {"brakes": brake_pads, "oil": engine_oil}
        for operation, key, quantity in sequence:
            product = products[key]
            if operation == "add":
                terminal.add_to_cart(product, quantity)
            elif operation == "update":
                terminal.update_quantity(product.id, quantity)
            else:
                terminal.remove_from_cart(product.id)

        assert terminal.item_count == sum(item.quantity for item in terminal.items)
        assert all(item.quantity >= 1 for item in terminal.items)

    @pytest.mark.parametrize("order", list(itertools.permutations(range(3))))
    async def test_subtotal_independent_of_add_order(self, gateway, mirror, brake_pads, engine_oil, last_battery, order):
        adds = [(brake_pads, 2), (engine_oil, 3), (last_battery, 1)]
        cart = CartStore(gateway, mirror)

        for index in order:
            await cart.add_to_cart(*adds[index])

        assert cart.subtotal == Decimal("8390")
        assert cart.item_count == 6
