"""
DonationCart — безвозмездная передача предметов бота.

Offer адресуется donation partner из конфигурации; сторона контрагента
должна быть пустой. Цены, оплата и pre-send проверки не применяются.
"""

import logging
import time

from bartercart.cart.assignment import InstanceAssigner, order_candidates
from bartercart.cart.base import Cart
from bartercart.cart.text import CartNotes
from bartercart.core.domain import ConstructionResult, OfferDescriptor, OfferItems, RejectReason, Side

logger = logging.getLogger(__name__)

DONATION_REQUESTS_ITEMS_MESSAGE = "donations can't request items from the other side"


class DonationCart(Cart):
    """Корзина пожертвования: только наши предметы."""

    @property
    def recipient(self) -> str:
        return self.config.donation_partner

    async def _construct_offer(self, generation: int) -> ConstructionResult:
        started = time.monotonic()

        if not self.their.is_empty():
            return ConstructionResult.reject(
                RejectReason.DONATION_REQUESTS_ITEMS,
                DONATION_REQUESTS_ITEMS_MESSAGE,
                details=f"{len(self.their)} SKUs selected on the other side",
            )

        notes = CartNotes()
        our_inventory = self.context.our_inventory
        self._clamp_to_stock(Side.OUR, our_inventory, notes)

        if self.is_empty():
            return ConstructionResult.reject(
                RejectReason.ALL_ITEMS_REMOVED, str(notes), altered_message=str(notes)
            )

        offer = self.context.transport.create_offer(self.recipient)
        assigner = InstanceAssigner(
            offer=offer,
            app_id=self.config.app_id,
            context_id=self.config.context_id,
            active_trades=self.context.active_trades,
            skip_items_in_trade=self.config.skip_items_in_trade,
        )

        for sku, entry in self.our.items():
            candidates = order_candidates(entry.assets, our_inventory.find_by_sku(sku, True))
            outcome = assigner.assign(Side.OUR, sku, candidates, entry.amount)
            if not outcome.complete:
                reason = RejectReason.ITEM_RESERVED if outcome.skipped else RejectReason.ITEM_UNAVAILABLE
                message = "Something went wrong while constructing the offer"
                if outcome.skipped:
                    message += ". Reason: Item(s) are currently being used in another active trade."
                return ConstructionResult.reject(
                    reason,
                    message,
                    details=f"{sku}: missing {outcome.missing} of {outcome.required}",
                    altered_message=str(notes),
                )

        descriptor = OfferDescriptor(
            partner=self.recipient,
            items=OfferItems.from_entries(self.our.snapshot(), {}),
            inventory_count={Side.OUR.value: our_inventory.total_item_count(), Side.THEIR.value: 0},
            donation=True,
            construct_time_ms=int((time.monotonic() - started) * 1000),
        )
        return self._attach_descriptor(offer, descriptor, notes)
