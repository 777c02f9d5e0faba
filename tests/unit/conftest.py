"""
In-memory коллабораторы для тестов корзины и pre-send гейтов.

FakeWorld собирает все fakes и строит CartContext; тесты настраивают
инвентари, цены и trust-ответы через его атрибуты.
"""

import asyncio
from itertools import count
from typing import Any, Iterable, Optional

import pytest

from bartercart.cart import CartContext
from bartercart.config import CartConfig
from bartercart.core.domain import DupeVerdict, InventoryItem, ItemRef, PriceEntry, Side, TradeLimit
from bartercart.core.math import KEY_SKU, RECLAIMED_SKU, REFINED_SKU, SCRAP_SKU, Currencies

BOT_ID = "76561198000000001"
PARTNER = "76561198012345678"
KEY_RATE = 5.56  # 50 scrap
PURE = (KEY_SKU, REFINED_SKU, RECLAIMED_SKU, SCRAP_SKU)


class FakeOffer:
    def __init__(self, partner: str, reject_ids: Iterable[str] = (), send_error: Optional[Exception] = None):
        self.partner = partner
        self.items: dict[Side, list[str]] = {Side.OUR: [], Side.THEIR: []}
        self.refs: list[ItemRef] = []
        self.data: dict[str, Any] = {}
        self.reject_ids = set(reject_ids)
        self.send_error = send_error
        self.sent = False

    def add_item(self, side: Side, item: ItemRef) -> bool:
        instance_id = item.instance_id
        if instance_id in self.reject_ids or instance_id in self.items[side]:
            return False
        self.items[side].append(instance_id)
        self.refs.append(item)
        return True

    def set_data(self, key: str, value: Any) -> None:
        self.data[key] = value

    async def send(self) -> str:
        await asyncio.sleep(0)
        if self.send_error is not None:
            raise self.send_error
        self.sent = True
        return "sent"


class FakeTransport:
    def __init__(self):
        self.offers: list[FakeOffer] = []
        self.reject_ids: set[str] = set()
        self.send_error: Optional[Exception] = None

    def create_offer(self, partner: str) -> FakeOffer:
        offer = FakeOffer(partner, self.reject_ids, self.send_error)
        self.offers.append(offer)
        return offer


class FakeInventory:
    def __init__(self, owner: str):
        self.owner = owner
        self._items: dict[str, list[InventoryItem]] = {}
        self.untradable: set[str] = set()
        self.fetch_error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.fetch_calls = 0
        self.release_calls = 0
        self._ids = count(1)

    def add(self, sku: str, amount: int = 1, **fields: Any) -> list[str]:
        ids = []
        for _ in range(amount):
            instance_id = f"{self.owner}-{next(self._ids)}"
            self._items.setdefault(sku, []).append(InventoryItem(id=instance_id, **fields))
            ids.append(instance_id)
        return ids

    async def fetch(self) -> None:
        self.fetch_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.fetch_error is not None:
            raise self.fetch_error

    def find_by_sku(self, sku: str, tradable_only: bool = True) -> list[str]:
        return [
            item.id
            for item in self._items.get(sku, [])
            if not (tradable_only and item.id in self.untradable)
        ]

    def items_for(self, sku: str) -> list[InventoryItem]:
        return list(self._items.get(sku, []))

    def currency_holdings(self, weapon_skus: Iterable[str] = (), with_ids: bool = True) -> dict[str, list[str]]:
        return {sku: self.find_by_sku(sku) for sku in PURE + tuple(weapon_skus)}

    def total_item_count(self) -> int:
        return sum(len(items) for items in self._items.values())

    def release(self) -> None:
        self.release_calls += 1


class FakePrices:
    def __init__(self):
        self.entries: dict[str, PriceEntry] = {
            KEY_SKU: PriceEntry(
                sku=KEY_SKU,
                name="Mann Co. Supply Crate Key",
                buy=Currencies(metal=5.5),
                sell=Currencies(metal=KEY_RATE),
            )
        }
        self.overrides: dict[str, PriceEntry] = {}

    def set(self, sku: str, buy: Currencies, sell: Currencies, name: str = "") -> PriceEntry:
        entry = PriceEntry(sku=sku, name=name, buy=buy, sell=sell)
        self.entries[sku] = entry
        return entry

    def price_for(self, sku: str) -> Optional[PriceEntry]:
        return self.entries.get(sku)

    def instance_price_override(self, instance_id: str) -> Optional[PriceEntry]:
        return self.overrides.get(instance_id)

    def key_price(self) -> PriceEntry:
        return self.entries[KEY_SKU]


class FakeSchema:
    def __init__(self):
        self.names: dict[str, str] = {
            KEY_SKU: "Mann Co. Supply Crate Key",
            REFINED_SKU: "Refined Metal",
            RECLAIMED_SKU: "Reclaimed Metal",
            SCRAP_SKU: "Scrap Metal",
        }
        self.duplicable: set[str] = set()

    def name(self, sku: str) -> str:
        return self.names.get(sku, sku)

    def is_duplicable(self, sku: str) -> bool:
        return sku in self.duplicable


class FakeVolumePolicy:
    def __init__(self, schema: FakeSchema):
        self.schema = schema
        self.limits: dict[tuple[str, bool], int] = {}
        self.default = 1000
        self.calls: list[tuple[str, bool]] = []

    def max_tradable_amount(self, sku: str, as_buyer: bool) -> TradeLimit:
        self.calls.append((sku, as_buyer))
        return TradeLimit(
            most_can_trade=self.limits.get((sku, as_buyer), self.default),
            name=self.schema.name(sku),
        )


class FakeListings:
    def __init__(self):
        self.refreshed: list[str] = []

    def refresh_listing(self, sku: str) -> None:
        self.refreshed.append(sku)


class FakeActiveTrades:
    def __init__(self):
        self.in_trade: set[str] = set()

    def is_in_trade(self, instance_id: str) -> bool:
        return instance_id in self.in_trade


class FakeTrust:
    def __init__(self):
        self.banned = False
        self.escrow = False
        self.ban_error: Optional[Exception] = None
        self.block_error: Optional[Exception] = None
        self.verdicts: dict[str, DupeVerdict] = {}
        self.dupe_errors: dict[str, Exception] = {}
        self.blocked: list[str] = []
        self.dupe_calls: list[tuple[str, str]] = []

    async def is_banned(self, partner: str) -> bool:
        await asyncio.sleep(0)
        if self.ban_error is not None:
            raise self.ban_error
        return self.banned

    async def would_escrow(self, offer) -> bool:
        await asyncio.sleep(0)
        return self.escrow

    async def check_duplicate(self, instance_id: str, context_id: str) -> DupeVerdict:
        await asyncio.sleep(0)
        self.dupe_calls.append((instance_id, context_id))
        if instance_id in self.dupe_errors:
            raise self.dupe_errors[instance_id]
        return self.verdicts.get(instance_id, DupeVerdict.CLEAN)

    async def block_user(self, partner: str) -> None:
        await asyncio.sleep(0)
        if self.block_error is not None:
            raise self.block_error
        self.blocked.append(partner)


class FakeWorld:
    """Все коллабораторы одного бота."""

    def __init__(self):
        self.transport = FakeTransport()
        self.our_inventory = FakeInventory("bot")
        self.their_inventories: dict[str, FakeInventory] = {}
        self.factory_calls: list[str] = []
        self.prices = FakePrices()
        self.schema = FakeSchema()
        self.volume = FakeVolumePolicy(self.schema)
        self.listings = FakeListings()
        self.active_trades = FakeActiveTrades()
        self.trust = FakeTrust()

    def inventory_of(self, partner: str = PARTNER) -> FakeInventory:
        if partner not in self.their_inventories:
            self.their_inventories[partner] = FakeInventory(partner[-4:])
        return self.their_inventories[partner]

    def inventory_factory(self, partner: str) -> FakeInventory:
        self.factory_calls.append(partner)
        return self.inventory_of(partner)

    def context(self, **config: Any) -> CartContext:
        return CartContext(
            transport=self.transport,
            our_inventory=self.our_inventory,
            inventory_factory=self.inventory_factory,
            prices=self.prices,
            volume_policy=self.volume,
            listings=self.listings,
            active_trades=self.active_trades,
            schema=self.schema,
            trust=self.trust,
            bot_id=BOT_ID,
            config=CartConfig(**config),
        )


@pytest.fixture
def world() -> FakeWorld:
    return FakeWorld()
