"""
Results — типизированные результаты построения и отправки offer

Каждая стадия возвращает успех или RejectReason + сообщение для контрагента.
Исключения коллабораторов через границу оркестратора не пропагируют.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


# =============================================================================
# ENUMS
# =============================================================================


class RejectReason(str, Enum):
    """Причина отказа в построении/отправке offer"""

    # Построение
    EMPTY_CART = "empty_cart"
    ALL_ITEMS_REMOVED = "all_items_removed"  # корзина опустела после коррекции
    INVENTORY_UNAVAILABLE = "inventory_unavailable"  # ошибка загрузки инвентаря
    INSUFFICIENT_FUNDS = "insufficient_funds"
    FRACTIONAL_VALUE = "fractional_value"  # половина scrap без оружия
    ITEM_UNAVAILABLE = "item_unavailable"
    ITEM_RESERVED = "item_reserved"  # экземпляры заняты в другом активном обмене
    CURRENCY_UNAVAILABLE = "currency_unavailable"
    CURRENCY_RESERVED = "currency_reserved"
    CHANGE_UNAVAILABLE = "change_unavailable"
    CHANGE_RESERVED = "change_reserved"  # валюта для сдачи занята в другом обмене
    DONATION_REQUESTS_ITEMS = "donation_requests_items"
    CONTRACT_VIOLATION = "contract_violation"
    CANCELLED = "cancelled"  # корзина очищена во время построения
    INTERNAL_ERROR = "internal_error"  # непредвиденная ошибка коллаборатора

    # Pre-send
    BANNED = "banned"
    ESCROW = "escrow"
    TRUST_CHECK_FAILED = "trust_check_failed"
    DUPED = "duped"
    DUPE_CHECK_INDETERMINATE = "dupe_check_indeterminate"
    DUPE_CHECK_FAILED = "dupe_check_failed"

    # Отправка
    NOT_CONSTRUCTED = "not_constructed"
    SEND_FAILED = "send_failed"


class DupeVerdict(str, Enum):
    """Вердикт внешней проверки на дюп"""

    CLEAN = "clean"
    DUPLICATE = "duplicate"
    INDETERMINATE = "indeterminate"


# =============================================================================
# RESULTS
# =============================================================================


@dataclass(frozen=True)
class ConstructionResult:
    """Результат построения offer."""

    success: bool
    # Склеенные заметки о коррекции корзины ("" если коррекций не было)
    altered_message: str = ""
    reason: Optional[RejectReason] = None
    message: str = ""

    # Диагностика
    details: str = ""

    @classmethod
    def ok(cls, altered_message: str = "", details: str = "") -> "ConstructionResult":
        return cls(success=True, altered_message=altered_message, details=details)

    @classmethod
    def reject(
        cls, reason: RejectReason, message: str, details: str = "", altered_message: str = ""
    ) -> "ConstructionResult":
        return cls(
            success=False,
            altered_message=altered_message,
            reason=reason,
            message=message,
            details=details,
        )


@dataclass(frozen=True)
class CheckoutResult:
    """Результат checkout: построение → pre-send → отправка."""

    sent: bool
    altered_message: str = ""
    reason: Optional[RejectReason] = None
    message: str = ""
    offer_status: Optional[str] = None
