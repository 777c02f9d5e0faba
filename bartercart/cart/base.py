"""Cart — корзина обмена одного контрагента и её State Machine.

Состояния:
- EMPTY: выбор обеих сторон пуст
- POPULATED: есть выбор, offer не построен (или устарел после изменения)
- CONSTRUCTING: идёт построение offer
- CONSTRUCTED: offer построен и заморожен
- FAILED: построение или pre-send отклонены
- SENT: offer отправлен (терминальное, кроме clear)

Переходы табличные; недопустимый переход → CartStateError.
Изменение выбора в процессе построения не меняет состояние: построение
прерывается только через clear() (generation counter).
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Final, Iterable, Optional

from jsonschema import ValidationError

from bartercart.cart.context import CartContext
from bartercart.cart.text import CartNotes, pluralize
from bartercart.config import CartConfig
from bartercart.core.contracts import validate_offer_metadata
from bartercart.core.domain import (
    CheckoutResult,
    ConstructionResult,
    OfferDescriptor,
    RejectReason,
    Selection,
    Side,
)
from bartercart.gatekeeper import PreSendResult
from bartercart.interfaces import InventorySource, TradeOfferHandle

logger = logging.getLogger(__name__)

EMPTY_CART_MESSAGE: Final[str] = "cart is empty"
CANCELLED_MESSAGE: Final[str] = "cart was cleared while the offer was being constructed"
CONSTRUCT_ERROR_MESSAGE: Final[str] = (
    "Something went wrong while constructing the offer, please try again later"
)
SEND_FAILED_MESSAGE: Final[str] = (
    "Something went wrong while sending the offer, please try again later"
)


# =============================================================================
# ERRORS
# =============================================================================


class CartError(Exception):
    """Базовая ошибка корзины."""


class CartStateError(CartError):
    """Недопустимый переход состояния корзины."""


# =============================================================================
# STATE MACHINE
# =============================================================================


class CartState(str, Enum):
    EMPTY = "EMPTY"
    POPULATED = "POPULATED"
    CONSTRUCTING = "CONSTRUCTING"
    CONSTRUCTED = "CONSTRUCTED"
    FAILED = "FAILED"
    SENT = "SENT"


_ALLOWED_TRANSITIONS: Final[dict[CartState, frozenset[CartState]]] = {
    CartState.EMPTY: frozenset({CartState.EMPTY, CartState.POPULATED}),
    CartState.POPULATED: frozenset({CartState.EMPTY, CartState.POPULATED, CartState.CONSTRUCTING}),
    CartState.CONSTRUCTING: frozenset(
        {CartState.CONSTRUCTED, CartState.FAILED, CartState.EMPTY, CartState.POPULATED}
    ),
    CartState.CONSTRUCTED: frozenset(
        {
            CartState.EMPTY,
            CartState.POPULATED,
            CartState.CONSTRUCTING,
            CartState.FAILED,
            CartState.SENT,
        }
    ),
    CartState.FAILED: frozenset({CartState.EMPTY, CartState.POPULATED, CartState.CONSTRUCTING}),
    CartState.SENT: frozenset({CartState.EMPTY}),
}


@dataclass(frozen=True)
class CartTransition:
    """Запись о переходе состояния (для диагностики)."""

    previous_state: CartState
    new_state: CartState
    reason: str


class Cart(ABC):
    """
    Корзина обмена: выбор двух сторон + построение одного offer.

    Один экземпляр на диалог с контрагентом; корзины не разделяют
    изменяемое состояние.
    """

    def __init__(self, partner: str, context: CartContext):
        self.partner = partner
        self.context = context

        self.our = Selection()
        self.their = Selection()

        self.offer: Optional[TradeOfferHandle] = None
        self.descriptor: Optional[OfferDescriptor] = None

        self._state = CartState.EMPTY
        self._generation = 0
        self._transitions: list[CartTransition] = []

    @property
    def config(self) -> CartConfig:
        return self.context.config

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def transitions(self) -> tuple[CartTransition, ...]:
        return tuple(self._transitions)

    @property
    def generation(self) -> int:
        return self._generation

    def _transition(self, new_state: CartState, reason: str) -> None:
        previous = self._state
        if new_state not in _ALLOWED_TRANSITIONS[previous]:
            raise CartStateError(
                f"Illegal cart transition {previous.value} -> {new_state.value} ({reason})"
            )
        self._state = new_state
        self._transitions.append(CartTransition(previous, new_state, reason))
        logger.debug("Cart %s: %s -> %s (%s)", self.partner, previous.value, new_state.value, reason)

    def _selection(self, side: Side) -> Selection:
        return self.our if side is Side.OUR else self.their

    def _on_selection_changed(self, reason: str) -> None:
        """Изменение выбора делает построенный offer устаревшим."""
        if self._state is CartState.CONSTRUCTING:
            return
        self.offer = None
        self.descriptor = None
        self._transition(CartState.EMPTY if self.is_empty() else CartState.POPULATED, reason)

    # =========================================================================
    # SELECTION
    # =========================================================================

    def add_item(self, side: Side, sku: str, amount: int = 1, assets: Optional[Iterable[str]] = None) -> None:
        """
        Добавить amount единиц SKU на сторону side.

        Наличие не проверяется до построения offer.

        Raises:
            ValueError: Если amount < 0
            CartStateError: Если корзина уже отправлена
        """
        if self._state is CartState.SENT:
            raise CartStateError("Cart was already sent; clear it before changing the selection")
        self._selection(side).add(sku, amount, assets)
        self._on_selection_changed(f"add {side.value} {sku}")

    def remove_item(self, side: Side, sku: str, amount: Optional[int] = None) -> int:
        """Убрать amount единиц SKU (None — целиком). Возвращает новое количество."""
        if self._state is CartState.SENT:
            raise CartStateError("Cart was already sent; clear it before changing the selection")
        remaining = self._selection(side).remove(sku, amount)
        self._on_selection_changed(f"remove {side.value} {sku}")
        return remaining

    def add_our_item(self, sku: str, amount: int = 1, assets: Optional[Iterable[str]] = None) -> None:
        self.add_item(Side.OUR, sku, amount, assets)

    def add_their_item(self, sku: str, amount: int = 1, assets: Optional[Iterable[str]] = None) -> None:
        self.add_item(Side.THEIR, sku, amount, assets)

    def remove_our_item(self, sku: str, amount: Optional[int] = None) -> int:
        return self.remove_item(Side.OUR, sku, amount)

    def remove_their_item(self, sku: str, amount: Optional[int] = None) -> int:
        return self.remove_item(Side.THEIR, sku, amount)

    def get_count(self, side: Side, sku: str) -> int:
        return self._selection(side).count(sku)

    def get_our_count(self, sku: str) -> int:
        return self.our.count(sku)

    def get_their_count(self, sku: str) -> int:
        return self.their.count(sku)

    def is_empty(self) -> bool:
        return self.our.is_empty() and self.their.is_empty()

    def clear(self) -> None:
        """Очистить корзину; построение в процессе будет отменено."""
        self._generation += 1
        self.our.clear()
        self.their.clear()
        self.offer = None
        self.descriptor = None
        self._transition(CartState.EMPTY, "clear")

    def _is_cancelled(self, generation: int) -> bool:
        return generation != self._generation

    # =========================================================================
    # CONSTRUCTION
    # =========================================================================

    async def construct_offer(self) -> ConstructionResult:
        """
        Построить offer из текущего выбора.

        Исключения коллабораторов не выходят за пределы метода:
        любой отказ — ConstructionResult.reject(...).
        """
        if self.is_empty():
            return ConstructionResult.reject(RejectReason.EMPTY_CART, EMPTY_CART_MESSAGE)

        self._transition(CartState.CONSTRUCTING, "construct_offer")
        generation = self._generation
        started = time.monotonic()

        try:
            result = await self._construct_offer(generation)
        except Exception as err:
            logger.exception("Unexpected error while constructing offer for %s", self.partner)
            result = ConstructionResult.reject(
                RejectReason.INTERNAL_ERROR, CONSTRUCT_ERROR_MESSAGE, details=repr(err)
            )

        if self._is_cancelled(generation):
            logger.info("Construction for %s cancelled by clear()", self.partner)
            return ConstructionResult.reject(RejectReason.CANCELLED, CANCELLED_MESSAGE)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        if result.success:
            self._transition(CartState.CONSTRUCTED, "offer constructed")
            logger.info("Offer for %s constructed in %s ms", self.partner, elapsed_ms)
        else:
            self.offer = None
            self.descriptor = None
            self._transition(CartState.FAILED, result.reason.value if result.reason else "rejected")
            logger.info(
                "Offer for %s rejected: %s (%s)",
                self.partner,
                result.reason.value if result.reason else None,
                result.details or result.message,
            )
        return result

    @abstractmethod
    async def _construct_offer(self, generation: int) -> ConstructionResult:
        """Построение offer; при успехе выставляет self.offer и self.descriptor."""

    def _clamp_to_stock(self, side: Side, inventory: InventorySource, notes: CartNotes) -> None:
        """
        Урезать выбор стороны до числа tradable экземпляров в инвентаре.

        Явные экземпляры, отсутствующие среди tradable экземпляров снапшота,
        всегда отбрасываются; количество при этом сохраняется (generic).
        """
        selection = self._selection(side)
        mine = side is Side.OUR

        for sku in selection:
            amount = selection.count(sku)
            available = inventory.find_by_sku(sku, True)
            assets = selection.assets_of(sku)
            kept = [asset for asset in assets if asset in available]

            if amount <= len(available):
                if len(kept) < len(assets):
                    logger.debug(
                        "Dropping stale %s assets of %s: %s",
                        side.value,
                        sku,
                        [asset for asset in assets if asset not in kept],
                    )
                    selection.retain_assets(sku, kept)
                continue

            name = self.context.schema.name(sku)
            selection.remove(sku)

            if not available:
                owner = "I don't" if mine else "you don't"
                notes.set(sku, f"{owner} have any {pluralize(name)}")
                continue

            selection.add(sku, len(available), kept[: len(available)])
            owner = "I only" if mine else "you only"
            notes.set(sku, f"{owner} have {pluralize(name, len(available), inclusive=True)}")

    def _attach_descriptor(
        self, offer: TradeOfferHandle, descriptor: OfferDescriptor, notes: CartNotes
    ) -> ConstructionResult:
        """Проверить метаданные контрактом, прикрепить к offer и заморозить."""
        metadata = descriptor.to_metadata()
        try:
            validate_offer_metadata(metadata)
        except ValidationError as err:
            logger.error("Offer metadata for %s violates contract: %s", self.partner, err.message)
            return ConstructionResult.reject(
                RejectReason.CONTRACT_VIOLATION,
                CONSTRUCT_ERROR_MESSAGE,
                details=err.message,
                altered_message=str(notes),
            )

        for key, value in metadata.items():
            offer.set_data(key, value)

        self.offer = offer
        self.descriptor = descriptor
        return ConstructionResult.ok(str(notes))

    async def pre_send_offer(self) -> PreSendResult:
        """Проверки перед отправкой (по умолчанию — без проверок)."""
        return PreSendResult.allowed("no pre-send checks")

    async def checkout(self) -> CheckoutResult:
        """Построение → pre-send → отправка offer."""
        generation = self._generation
        construction = await self.construct_offer()
        if not construction.success:
            return CheckoutResult(
                sent=False,
                altered_message=construction.altered_message,
                reason=construction.reason,
                message=construction.message,
            )

        pre_send = await self.pre_send_offer()
        if self._is_cancelled(generation):
            return CheckoutResult(sent=False, reason=RejectReason.CANCELLED, message=CANCELLED_MESSAGE)
        if not pre_send.send_allowed:
            self._transition(CartState.FAILED, pre_send.block_reason.value if pre_send.block_reason else "pre-send")
            return CheckoutResult(
                sent=False,
                altered_message=construction.altered_message,
                reason=pre_send.block_reason,
                message=pre_send.message,
            )

        offer = self.offer
        if offer is None:
            return CheckoutResult(
                sent=False,
                reason=RejectReason.NOT_CONSTRUCTED,
                message=CONSTRUCT_ERROR_MESSAGE,
            )

        try:
            status = await offer.send()
        except Exception:
            logger.exception("Failed to send offer to %s", self.partner)
            if not self._is_cancelled(generation):
                self._transition(CartState.FAILED, "send failed")
            return CheckoutResult(
                sent=False,
                altered_message=construction.altered_message,
                reason=RejectReason.SEND_FAILED,
                message=SEND_FAILED_MESSAGE,
            )

        if not self._is_cancelled(generation):
            self._transition(CartState.SENT, f"offer sent: {status}")
        logger.info("Offer sent to %s (status=%s)", self.partner, status)
        return CheckoutResult(
            sent=True,
            altered_message=construction.altered_message,
            offer_status=status,
        )

    # =========================================================================
    # TEXT
    # =========================================================================

    def _summarize(self, side: Side) -> list[str]:
        """Строки "N Name" по выбору стороны (или по построенному offer)."""
        if self.descriptor is not None:
            entries = {
                sku: int(entry["amount"])
                for sku, entry in getattr(self.descriptor.items, side.value).items()
            }
        else:
            entries = {sku: entry.amount for sku, entry in self._selection(side).items()}

        lines = []
        for sku, amount in entries.items():
            name = self.context.schema.name(sku)
            lines.append(pluralize(name, amount, inclusive=True))
        return lines

    def summarize_our(self) -> str:
        return ", ".join(self._summarize(Side.OUR))

    def summarize_their(self) -> str:
        return ", ".join(self._summarize(Side.THEIR))

    def _cart_lines(self, side: Side) -> list[str]:
        """Строки выбора для to_text: наши явные экземпляры поштучно, остальное "Nx Name"."""
        lines = []
        for sku, entry in self._selection(side).items():
            name = self.context.schema.name(sku)
            generic = entry.amount
            if side is Side.OUR:
                lines.extend(f"{name} ({asset})" for asset in entry.assets)
                generic = entry.generic_amount
            if generic > 0:
                lines.append(f"{generic}x {name}")
        return lines

    def _payment_line(self, side: Side) -> Optional[str]:
        """Оплата, которую вносит сторона (у корзины без оплаты её нет)."""
        return None

    def to_text(self) -> str:
        """Текст корзины для чата."""
        if self.is_empty():
            return "Your cart is empty."

        lines = ["🛒== YOUR CART ==🛒"]
        for side, header in (
            (Side.OUR, "My side (items you will receive):"),
            (Side.THEIR, "Your side (items you will lose):"),
        ):
            items = self._cart_lines(side)
            lines.extend(["", header])
            lines.extend(f"- {line}" for line in items)
            payment = self._payment_line(side)
            if payment is not None:
                lines.append(("and " if items else "") + payment)
        lines.extend(["", "Type !checkout to checkout and proceed trade, or !clearcart to cancel."])
        return "\n".join(lines)
