"""
UserCart — обмен с контрагентом: построение offer с оплатой и сдачей.

Стадии построения (fail fast):
1. Коррекция нашей стороны: прайс-лист, наличие, лимиты продажи
2. Загрузка инвентаря контрагента (снапшот освобождается ровно один раз)
3. Коррекция их стороны: наличие, лимиты покупки
4. Стоимости сторон → кто платит и сколько
5. Проверка платёжеспособности
6. Назначение экземпляров предметов
7. Settlement + назначение валюты
8. Сдача
9. Аннотации (стоимость, цены, high-value, dupe check) и заморозка descriptor

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Никакое исключение коллаборатора не выходит за пределы construct_offer
2. inventory.release() вызывается ровно один раз после успешного fetch()
3. clear() во время fetch() → CANCELLED, поздний результат отбрасывается
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from bartercart.cart.assignment import AssignmentOutcome, InstanceAssigner, order_candidates
from bartercart.cart.base import CANCELLED_MESSAGE, Cart
from bartercart.cart.context import CartContext
from bartercart.cart.text import CartNotes, pluralize
from bartercart.core.domain import (
    ConstructionResult,
    ExchangeSide,
    HighValueSummary,
    OfferDescriptor,
    OfferItems,
    OfferValue,
    PriceEntry,
    RejectReason,
    SelectionEntry,
    Side,
)
from bartercart.core.math import (
    KEY_SKU,
    Currencies,
    SettlementResult,
    build_change_table,
    build_denomination_table,
    is_negative,
    is_positive,
    pure_stock,
    round_value,
    select_change,
    settle,
    to_refined,
    to_scrap,
)
from bartercart.gatekeeper import PreSendResult, PreSendValidator
from bartercart.interfaces import InventorySource

logger = logging.getLogger(__name__)

INVENTORY_UNAVAILABLE_MESSAGE = (
    "Failed to load your inventory, Steam might be down. Please try again later. "
    "If you have your profile/inventory set to private, please set it to public and try again."
)
ITEM_ASSIGNMENT_MESSAGE = "Something went wrong while constructing the offer"
ITEM_RESERVED_SUFFIX = ". Reason: Item(s) are currently being used in another active trade."
CURRENCY_RESERVED_SUFFIX = " (probably because some of the pure are in another active trade)"
CURRENCY_ASSIGNMENT_MESSAGE = "Something went wrong while constructing the offer"
FRACTIONAL_VALUE_MESSAGE = (
    "The value of this trade can't be settled with the available pure, "
    "please change the amount and try again"
)
NOT_CONSTRUCTED_MESSAGE = "offer is not constructed"


@dataclass(frozen=True)
class TradeBalance:
    """Стоимости сторон и направление оплаты (scrap)."""

    our_value: float
    their_value: float
    # Курс ключа в ref и в scrap
    key_rate: float
    key_value: float
    can_use_keys: bool

    @property
    def is_buyer(self) -> bool:
        """True — платит бот."""
        return self.our_value < self.their_value

    @property
    def payer(self) -> Side:
        return Side.OUR if self.is_buyer else Side.THEIR

    @property
    def price(self) -> float:
        return round_value(abs(self.their_value - self.our_value))

    def owed(self) -> Currencies:
        return Currencies.from_value(self.price, self.key_rate if self.can_use_keys else None)


def _not_enough_pure(is_buyer: bool, counts: Optional[dict[str, int]] = None) -> str:
    if not is_buyer:
        return "You don't have enough pure for this trade."
    message = "I don't have enough pure for this trade."
    if counts is not None:
        message += "\n💰 Current pure stock: " + ", ".join(pure_stock(counts)) + "."
    return message


class UserCart(Cart):
    """Корзина обмена с контрагентом."""

    def __init__(self, partner: str, context: CartContext):
        super().__init__(partner, context)
        self._pre_send = PreSendValidator(context.trust, context.bot_id, context.config)

    # =========================================================================
    # PRICING
    # =========================================================================

    def _entry_value(self, side: Side, sku: str, entry: SelectionEntry, key_rate: float) -> float:
        """Стоимость выбора одного SKU: наша сторона по sell, их — по buy."""
        prices = self.context.prices
        value = 0.0
        generic = entry.amount

        if side is Side.OUR:
            for asset in entry.assets:
                override = prices.instance_price_override(asset)
                if override is not None:
                    value += override.sell.to_value(key_rate)
                    generic -= 1

        price = prices.price_for(sku)
        if price is not None and generic > 0:
            currencies = price.sell if side is Side.OUR else price.buy
            value += generic * currencies.to_value(key_rate)
        return round_value(value)

    def _price_entry(self, side: Side, sku: str) -> Optional[PriceEntry]:
        if side is Side.OUR:
            for asset in self.our.assets_of(sku):
                override = self.context.prices.instance_price_override(asset)
                if override is not None:
                    return override
        return self.context.prices.price_for(sku)

    def balance(self) -> TradeBalance:
        """Текущий баланс сторон по прайс-листу (без инвентарей)."""
        key_rate = self.context.prices.key_price().sell.metal
        our_value = sum(
            self._entry_value(Side.OUR, sku, entry, key_rate) for sku, entry in self.our.items()
        )
        their_value = sum(
            self._entry_value(Side.THEIR, sku, entry, key_rate) for sku, entry in self.their.items()
        )
        can_use_keys = self.config.use_keys and KEY_SKU not in self.our and KEY_SKU not in self.their
        return TradeBalance(
            our_value=round_value(our_value),
            their_value=round_value(their_value),
            key_rate=key_rate,
            key_value=to_scrap(key_rate),
            can_use_keys=can_use_keys,
        )

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    def _drop_untracked(self, side: Side, notes: CartNotes) -> None:
        selection = self._selection(side)
        prices = self.context.prices

        for sku in selection:
            if prices.price_for(sku) is not None:
                continue
            name = self.context.schema.name(sku)

            overridden = []
            if side is Side.OUR:
                overridden = [
                    asset
                    for asset in selection.assets_of(sku)
                    if prices.instance_price_override(asset) is not None
                ]
            if overridden:
                # Без цены SKU продаются только экземпляры с собственной ценой
                if selection.count(sku) > len(overridden):
                    selection.remove(sku)
                    selection.add(sku, len(overridden), overridden)
                    notes.set(sku, f"I am only selling {pluralize(name, len(overridden), inclusive=True)}")
                continue

            selection.remove(sku)
            verb = "selling" if side is Side.OUR else "buying"
            notes.set(sku, f"I am not {verb} {pluralize(name)}")

    def _clamp_to_limits(self, side: Side, notes: CartNotes) -> None:
        selection = self._selection(side)
        mine = side is Side.OUR
        verb = "sell" if mine else "buy"

        for sku in selection:
            amount = selection.count(sku)
            limit = self.context.volume_policy.max_tradable_amount(sku, not mine)
            if amount <= limit.most_can_trade:
                continue

            name = limit.name or self.context.schema.name(sku)
            most = limit.most_can_trade
            assets = selection.assets_of(sku)
            selection.remove(sku)

            if most == 0:
                notes.set(sku, f"I can't {verb} more {pluralize(name)}")
                self.context.listings.refresh_listing(sku)
                continue

            selection.add(sku, most, assets[:most])
            notes.set(sku, f"I can only {verb} {most} more {pluralize(name, most)}")

    def _reconcile(self, side: Side, inventory: InventorySource, notes: CartNotes) -> None:
        self._drop_untracked(side, notes)
        self._clamp_to_stock(side, inventory, notes)
        self._clamp_to_limits(side, notes)

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    async def _construct_offer(self, generation: int) -> ConstructionResult:
        started = time.monotonic()
        notes = CartNotes()

        self._reconcile(Side.OUR, self.context.our_inventory, notes)

        their_inventory = self.context.inventory_factory(self.partner)
        try:
            await their_inventory.fetch()
        except Exception as err:
            logger.error("Failed to load inventory of %s: %s", self.partner, err)
            return ConstructionResult.reject(
                RejectReason.INVENTORY_UNAVAILABLE,
                INVENTORY_UNAVAILABLE_MESSAGE,
                details=repr(err),
                altered_message=str(notes),
            )

        try:
            if self._is_cancelled(generation):
                return ConstructionResult.reject(RejectReason.CANCELLED, CANCELLED_MESSAGE)
            return self._build(their_inventory, notes, started)
        finally:
            their_inventory.release()

    def _build(
        self, their_inventory: InventorySource, notes: CartNotes, started: float
    ) -> ConstructionResult:
        """Синхронная часть построения над загруженным снапшотом."""
        ctx = self.context
        config = self.config
        inventories = {Side.OUR: ctx.our_inventory, Side.THEIR: their_inventory}

        self._reconcile(Side.THEIR, their_inventory, notes)

        if self.is_empty():
            return ConstructionResult.reject(
                RejectReason.ALL_ITEMS_REMOVED, str(notes), altered_message=str(notes)
            )

        balance = self.balance()
        payer = balance.payer
        price = balance.price

        table = build_denomination_table(
            balance.key_value,
            balance.can_use_keys,
            config.weapons,
            config.weapons_as_currency,
            price,
        )
        holdings = inventories[payer].currency_holdings(config.weapons, True)
        counts = {sku: len(holdings.get(sku, [])) for sku in table.skus}
        affordable = table.value_of(counts)

        if is_negative(affordable - price):
            return ConstructionResult.reject(
                RejectReason.INSUFFICIENT_FUNDS,
                _not_enough_pure(balance.is_buyer, counts),
                details=f"price={price} affordable={affordable}",
                altered_message=str(notes),
            )

        offer = ctx.transport.create_offer(self.partner)
        assigner = InstanceAssigner(
            offer=offer,
            app_id=config.app_id,
            context_id=config.context_id,
            active_trades=ctx.active_trades,
            skip_items_in_trade=config.skip_items_in_trade,
        )

        rejection = self._assign_our_items(assigner, notes)
        if rejection is None:
            rejection = self._assign_their_items(assigner, their_inventory, notes)
        if rejection is not None:
            return rejection

        # Экземпляры валюты, уже назначенные как предметы, в оплату не идут
        payer_pools = {
            sku: [i for i in holdings.get(sku, []) if not assigner.is_assigned(payer, i)]
            for sku in table.skus
        }
        settlement = settle(price, {sku: len(ids) for sku, ids in payer_pools.items()}, table)

        if is_positive(settlement.remainder):
            if is_negative(settlement.remainder - table.smallest_unit):
                return ConstructionResult.reject(
                    RejectReason.FRACTIONAL_VALUE,
                    FRACTIONAL_VALUE_MESSAGE,
                    details=f"price={price} remainder={settlement.remainder}",
                    altered_message=str(notes),
                )
            return ConstructionResult.reject(
                RejectReason.INSUFFICIENT_FUNDS,
                _not_enough_pure(balance.is_buyer),
                details=f"price={price} shortfall={settlement.shortfall}",
                altered_message=str(notes),
            )

        currencies: dict[str, dict[str, int]] = {Side.OUR.value: {}, Side.THEIR.value: {}}
        for sku, count in settlement.selected_counts.items():
            if count == 0:
                continue
            outcome = assigner.assign(payer, sku, payer_pools[sku], count)
            if not outcome.complete:
                return ConstructionResult.reject(
                    RejectReason.CURRENCY_RESERVED if outcome.skipped else RejectReason.CURRENCY_UNAVAILABLE,
                    CURRENCY_ASSIGNMENT_MESSAGE + (CURRENCY_RESERVED_SUFFIX if outcome.skipped else ""),
                    details=f"{sku}: missing {outcome.missing} of {outcome.required}",
                    altered_message=str(notes),
                )
            currencies[payer.value][sku] = count

        if is_positive(settlement.change):
            rejection, change_counts = self._give_change(
                assigner, payer.other, inventories[payer.other], settlement.change, notes
            )
            if rejection is not None:
                return rejection
            currencies[payer.other.value] = change_counts

        entries = {Side.OUR: self.our.snapshot(), Side.THEIR: self.their.snapshot()}
        for side in Side:
            for sku, count in currencies[side.value].items():
                entry = entries[side].setdefault(sku, SelectionEntry())
                entry.amount += count

        descriptor = OfferDescriptor(
            partner=self.partner,
            items=OfferItems.from_entries(entries[Side.OUR], entries[Side.THEIR]),
            currencies=currencies,
            inventory_count={
                Side.OUR.value: ctx.our_inventory.total_item_count(),
                Side.THEIR.value: their_inventory.total_item_count(),
            },
            value=self._exchange_value(balance, settlement),
            prices=self._item_prices(),
            high_value=self._high_value(assigner, inventories),
            dupe_check=self._dupe_candidates(assigner, balance),
            construct_time_ms=int((time.monotonic() - started) * 1000),
        )
        logger.debug(
            "Offer for %s: price=%s payer=%s change=%s",
            self.partner,
            price,
            payer.value,
            settlement.change,
        )
        return self._attach_descriptor(offer, descriptor, notes)

    # =========================================================================
    # ASSIGNMENT
    # =========================================================================

    @staticmethod
    def _item_rejection(outcome: AssignmentOutcome, notes: CartNotes) -> ConstructionResult:
        message = ITEM_ASSIGNMENT_MESSAGE
        if outcome.skipped:
            message += ITEM_RESERVED_SUFFIX
        return ConstructionResult.reject(
            RejectReason.ITEM_RESERVED if outcome.skipped else RejectReason.ITEM_UNAVAILABLE,
            message,
            details=f"{outcome.sku}: missing {outcome.missing} of {outcome.required}",
            altered_message=str(notes),
        )

    def _assign_our_items(
        self, assigner: InstanceAssigner, notes: CartNotes
    ) -> Optional[ConstructionResult]:
        prices = self.context.prices
        inventory = self.context.our_inventory

        for sku, entry in self.our.items():
            candidates = order_candidates(entry.assets, inventory.find_by_sku(sku, True))
            explicit = [i for i in candidates if i in entry.assets]
            rest = candidates[len(explicit):]
            # Экземпляры с собственной ценой продаются только явно
            generic = [i for i in rest if prices.instance_price_override(i) is None]

            if len(explicit) + len(generic) < entry.amount:
                overridden = [i for i in rest if i not in generic]
                name = self.context.schema.name(sku)
                return ConstructionResult.reject(
                    RejectReason.ITEM_UNAVAILABLE,
                    f"I am not selling the generic version of {name}, "
                    f"these are priced individually: {', '.join(overridden)}",
                    details=f"{sku}: {len(generic)} generic of {entry.generic_amount} requested",
                    altered_message=str(notes),
                )

            outcome = assigner.assign(Side.OUR, sku, explicit + generic, entry.amount)
            if not outcome.complete:
                return self._item_rejection(outcome, notes)
        return None

    def _assign_their_items(
        self, assigner: InstanceAssigner, inventory: InventorySource, notes: CartNotes
    ) -> Optional[ConstructionResult]:
        for sku, entry in self.their.items():
            tradable = inventory.find_by_sku(sku, True)
            full_uses_only = self.config.requires_full_uses(sku)

            if full_uses_only:
                full = {item.id for item in inventory.items_for(sku) if item.full_uses is True}
                tradable = [i for i in tradable if i in full]

            candidates = order_candidates(entry.assets, tradable)
            outcome = assigner.assign(Side.THEIR, sku, candidates, entry.amount)
            if outcome.complete:
                continue

            if full_uses_only:
                name = self.context.schema.name(sku)
                return ConstructionResult.reject(
                    RejectReason.ITEM_UNAVAILABLE,
                    f"you only have {pluralize(name, len(candidates), inclusive=True)} with full uses",
                    details=f"{sku}: missing {outcome.missing} of {outcome.required}",
                    altered_message=str(notes),
                )
            return self._item_rejection(outcome, notes)
        return None

    def _give_change(
        self,
        assigner: InstanceAssigner,
        giver: Side,
        inventory: InventorySource,
        change: float,
        notes: CartNotes,
    ) -> tuple[Optional[ConstructionResult], dict[str, int]]:
        """Подобрать и назначить сдачу из валюты стороны giver (без ключей)."""
        prices = self.context.prices
        # Оружие из прайс-листа сдачей не выдаётся
        weapons = tuple(sku for sku in self.config.weapons if prices.price_for(sku) is None)
        table = build_change_table(weapons, self.config.weapons_as_currency)
        holdings = inventory.currency_holdings(weapons, True)
        pools = {sku: assigner.available(giver, holdings.get(sku, [])) for sku in table.skus}
        skipped = any(
            assigner.is_skippable(giver, instance_id)
            for sku in table.skus
            for instance_id in holdings.get(sku, [])
        )

        result = select_change(change, {sku: len(ids) for sku, ids in pools.items()}, table)
        missing = result.remainder

        picked: dict[str, int] = {}
        if not is_positive(missing):
            for sku, count in result.selected_counts.items():
                if count == 0:
                    continue
                outcome = assigner.assign(giver, sku, pools[sku], count)
                if not outcome.complete:
                    missing = round_value(outcome.missing * table.unit_value_of(sku))
                    skipped = skipped or outcome.skipped
                    break
                picked[sku] = count

        if is_positive(missing):
            who = "I am" if giver is Side.OUR else "You are"
            message = f"{who} missing {to_refined(missing)} ref as change"
            if skipped:
                message += CURRENCY_RESERVED_SUFFIX
            return (
                ConstructionResult.reject(
                    RejectReason.CHANGE_RESERVED if skipped else RejectReason.CHANGE_UNAVAILABLE,
                    message,
                    details=f"change={change} missing={missing} skipped={skipped}",
                    altered_message=str(notes),
                ),
                {},
            )
        return None, picked

    # =========================================================================
    # ANNOTATIONS
    # =========================================================================

    def _exchange_value(self, balance: TradeBalance, settlement: SettlementResult) -> OfferValue:
        payer = balance.payer
        paid = round_value(balance.price - settlement.remainder)
        keys = settlement.selected_counts.get(KEY_SKU, 0)

        totals = {Side.OUR: balance.our_value, Side.THEIR: balance.their_value}
        scrap = dict(totals)
        key_counts = {payer: keys, payer.other: 0}

        totals[payer] += paid
        scrap[payer] += paid - keys * balance.key_value
        totals[payer.other] += settlement.change
        scrap[payer.other] += settlement.change

        sides = {}
        for side in Side:
            total = round_value(totals[side])
            if self.config.show_only_metal:
                sides[side] = ExchangeSide(total=total, keys=0, metal=to_refined(total))
            else:
                sides[side] = ExchangeSide(
                    total=total, keys=key_counts[side], metal=to_refined(round_value(scrap[side]))
                )
        return OfferValue(our=sides[Side.OUR], their=sides[Side.THEIR], rate=balance.key_rate)

    def _item_prices(self) -> dict[str, dict]:
        prices = {}
        for side, selection in ((Side.OUR, self.our), (Side.THEIR, self.their)):
            for sku in selection:
                entry = self._price_entry(side, sku)
                if entry is not None:
                    prices[sku] = entry.to_prices_dict()
        return prices

    def _high_value(
        self, assigner: InstanceAssigner, inventories: dict[Side, InventorySource]
    ) -> HighValueSummary:
        """High-value вложения назначенных экземпляров; иначе флаг полных использований."""
        items: dict[str, dict] = {Side.OUR.value: {}, Side.THEIR.value: {}}
        is_mention = {Side.OUR.value: False, Side.THEIR.value: False}

        for side, inventory in inventories.items():
            for sku, ids in assigner.assigned[side].items():
                if not ids:
                    continue
                for item in inventory.items_for(sku):
                    if item.id not in ids:
                        continue
                    if item.high_value:
                        items[side.value].setdefault(sku, {})[item.id] = item.high_value
                        if item.needs_mention():
                            is_mention[side.value] = True
                    elif item.full_uses is not None:
                        items[side.value].setdefault(sku, {})[item.id] = {"isFull": item.full_uses}

        return HighValueSummary(items=items, is_mention=is_mention)

    def _dupe_candidates(self, assigner: InstanceAssigner, balance: TradeBalance) -> tuple[str, ...]:
        """Экземпляры контрагента дороже minimum_keys_dupe_check ключей."""
        if not self.config.dupe_check_enabled:
            return ()

        threshold = self.config.minimum_keys_dupe_check * balance.key_value
        candidates: list[str] = []
        for sku, ids in assigner.assigned[Side.THEIR].items():
            if not ids or sku not in self.their:
                continue
            if not self.context.schema.is_duplicable(sku):
                continue
            price = self.context.prices.price_for(sku)
            if price is None or price.buy.to_value(balance.key_rate) <= threshold:
                continue
            candidates.extend(ids)
        return tuple(candidates)

    # =========================================================================
    # PRE-SEND / TEXT
    # =========================================================================

    async def pre_send_offer(self) -> PreSendResult:
        if self.offer is None or self.descriptor is None:
            return PreSendResult(
                send_allowed=False,
                block_reason=RejectReason.NOT_CONSTRUCTED,
                message=NOT_CONSTRUCTED_MESSAGE,
            )
        return await self._pre_send.evaluate(self.partner, self.offer, self.descriptor.dupe_check)

    def _payment_line(self, side: Side) -> Optional[str]:
        balance = self.balance()
        if balance.payer is side and is_positive(balance.price):
            return str(balance.owed())
        return None

    def _summarize(self, side: Side) -> list[str]:
        lines = super()._summarize(side)
        if self.descriptor is None:
            payment = self._payment_line(side)
            if payment is not None:
                lines.append(payment)
        return lines
