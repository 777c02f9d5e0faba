"""
Domain models and value objects.

Contains the entities shared by carts and gates: Side, Selection,
InventoryItem, PriceEntry, OfferDescriptor and typed results.
"""

from bartercart.core.domain.inventory import HIGH_VALUE_ATTACHMENTS, InventoryItem
from bartercart.core.domain.items import ItemRef, Selection, SelectionEntry, Side
from bartercart.core.domain.offer import (
    ExchangeSide,
    HighValueSummary,
    OfferDescriptor,
    OfferItems,
    OfferValue,
)
from bartercart.core.domain.pricing import PriceEntry, TradeLimit
from bartercart.core.domain.results import (
    CheckoutResult,
    ConstructionResult,
    DupeVerdict,
    RejectReason,
)

__all__ = [
    # Items
    "Side",
    "Selection",
    "SelectionEntry",
    "ItemRef",
    # Inventory
    "HIGH_VALUE_ATTACHMENTS",
    "InventoryItem",
    # Pricing
    "PriceEntry",
    "TradeLimit",
    # Offer
    "ExchangeSide",
    "HighValueSummary",
    "OfferDescriptor",
    "OfferItems",
    "OfferValue",
    # Results
    "CheckoutResult",
    "ConstructionResult",
    "DupeVerdict",
    "RejectReason",
]
