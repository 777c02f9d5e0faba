"""
CartContext — явные зависимости корзины.

Прайс-лист, инвентари, transport и trust-коллабораторы передаются в корзину
при создании, а не читаются из глобального состояния бота.
"""

from dataclasses import dataclass, field

from bartercart.config import CartConfig
from bartercart.interfaces import (
    ActiveTrades,
    InventoryFactory,
    InventorySource,
    ItemSchema,
    ListingRefresher,
    PriceOracle,
    TradeOfferTransport,
    TradeVolumePolicy,
    TrustService,
)


@dataclass(frozen=True)
class CartContext:
    """Коллабораторы, общие для всех корзин бота (read-only для корзины)."""

    transport: TradeOfferTransport
    our_inventory: InventorySource
    inventory_factory: InventoryFactory
    prices: PriceOracle
    volume_policy: TradeVolumePolicy
    listings: ListingRefresher
    active_trades: ActiveTrades
    schema: ItemSchema
    trust: TrustService
    # Идентификатор бота: контекст для dupe check
    bot_id: str = ""
    config: CartConfig = field(default_factory=CartConfig)
