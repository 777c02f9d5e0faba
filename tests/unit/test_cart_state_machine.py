"""Тесты для Selection и Cart State Machine.

Coverage:
- Слияние выбора, дедупликация экземпляров, clamp при удалении
- Переходы EMPTY/POPULATED/CONSTRUCTED/SENT
- Недопустимые переходы → CartStateError
"""

import pytest

from bartercart.cart import CartError, CartState, CartStateError, UserCart
from bartercart.core.domain import Selection, Side
from bartercart.core.math import REFINED_SKU, Currencies

PARTNER = "76561198012345678"
HAT = "378;6"


class TestSelection:
    def test_add_merges_amounts(self):
        selection = Selection()
        selection.add(HAT, 1)
        selection.add(HAT, 2)

        assert selection.count(HAT) == 3

    def test_assets_deduplicated_and_raise_amount(self):
        selection = Selection()
        selection.add(HAT, 0, assets=["a", "b", "a"])

        assert selection.assets_of(HAT) == ["a", "b"]
        assert selection.count(HAT) == 2
        assert selection.get(HAT).generic_amount == 0

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            Selection().add(HAT, -1)

    def test_remove_trims_assets(self):
        selection = Selection()
        selection.add(HAT, 3, assets=["a", "b", "c"])

        assert selection.remove(HAT, 2) == 1
        assert selection.assets_of(HAT) == ["a"]

    def test_remove_more_than_present_clamps_to_zero(self):
        selection = Selection()
        selection.add(HAT, 2)

        assert selection.remove(HAT, 5) == 0
        assert HAT not in selection
        assert selection.remove("missing") == 0

    def test_retain_assets_keeps_amount_and_order(self):
        selection = Selection()
        selection.add(HAT, 2, assets=["a", "gone"])
        selection.add(REFINED_SKU, 1)

        selection.retain_assets(HAT, ["a"])

        assert list(selection) == [HAT, REFINED_SKU]
        assert selection.assets_of(HAT) == ["a"]
        assert selection.count(HAT) == 2

    def test_snapshot_is_independent(self):
        selection = Selection()
        selection.add(HAT, 1, assets=["a"])
        snapshot = selection.snapshot()

        selection.add(HAT, 1, assets=["b"])

        assert snapshot[HAT].assets == ["a"]
        assert snapshot[HAT].amount == 1


class TestCartStateMachine:
    def test_add_and_remove_move_between_empty_and_populated(self, world):
        cart = UserCart(PARTNER, world.context())
        assert cart.state == CartState.EMPTY

        cart.add_item(Side.OUR, HAT, 2)
        assert cart.state == CartState.POPULATED
        assert cart.get_count(Side.OUR, HAT) == 2

        cart.remove_our_item(HAT)
        assert cart.state == CartState.EMPTY
        assert cart.is_empty()

    def test_clear_bumps_generation(self, world):
        cart = UserCart(PARTNER, world.context())
        cart.add_their_item(HAT)
        generation = cart.generation

        cart.clear()

        assert cart.generation == generation + 1
        assert cart.get_their_count(HAT) == 0
        assert cart.state == CartState.EMPTY
        assert [t.new_state for t in cart.transitions] == [CartState.POPULATED, CartState.EMPTY]

    def test_illegal_transition_raises(self, world):
        cart = UserCart(PARTNER, world.context())

        with pytest.raises(CartStateError):
            cart._transition(CartState.SENT, "skip construction")

        assert issubclass(CartStateError, CartError)

    @pytest.mark.asyncio
    async def test_changing_constructed_cart_invalidates_offer(self, world):
        world.schema.names[HAT] = "Team Captain"
        world.prices.set(HAT, buy=Currencies(metal=1), sell=Currencies(metal=2))
        world.our_inventory.add(HAT, 2)
        world.inventory_of(PARTNER).add(REFINED_SKU, 4)

        cart = UserCart(PARTNER, world.context())
        cart.add_our_item(HAT)
        await cart.construct_offer()
        assert cart.state == CartState.CONSTRUCTED

        cart.add_our_item(HAT)

        assert cart.state == CartState.POPULATED
        assert cart.offer is None
        assert cart.descriptor is None

    @pytest.mark.asyncio
    async def test_sent_cart_is_frozen_until_cleared(self, world):
        world.schema.names[HAT] = "Team Captain"
        world.prices.set(HAT, buy=Currencies(metal=1), sell=Currencies(metal=2))
        world.our_inventory.add(HAT, 1)
        world.inventory_of(PARTNER).add(REFINED_SKU, 2)

        cart = UserCart(PARTNER, world.context())
        cart.add_our_item(HAT)
        result = await cart.checkout()
        assert result.sent

        with pytest.raises(CartStateError):
            cart.add_our_item(HAT)

        cart.clear()
        assert cart.state == CartState.EMPTY
