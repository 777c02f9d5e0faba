"""
Контракты внешних коллабораторов.

Корзина — клиент этих интерфейсов: собственного wire-формата у неё нет.
Реализации (Steam transport, прайс-лист, backpack.tf/reptf проверки)
живут вне пакета и передаются явно через CartContext.
"""

from typing import Any, Callable, Iterable, Optional, Protocol

from bartercart.core.domain import DupeVerdict, InventoryItem, ItemRef, PriceEntry, Side, TradeLimit


class TradeOfferHandle(Protocol):
    def add_item(self, side: Side, item: ItemRef) -> bool:
        """Добавить экземпляр в offer. False — не добавлен (никогда не бросает)."""
        ...

    def set_data(self, key: str, value: Any) -> None:
        """Прикрепить метаданные к offer."""
        ...

    async def send(self) -> str:
        """Отправить offer; возвращает статус transport."""
        ...


class TradeOfferTransport(Protocol):
    def create_offer(self, partner: str) -> TradeOfferHandle:
        ...


class InventorySource(Protocol):
    async def fetch(self) -> None:
        """Загрузить инвентарь. Может бросить исключение."""
        ...

    def find_by_sku(self, sku: str, tradable_only: bool = True) -> list[str]:
        """Экземпляры SKU в порядке инвентаря."""
        ...

    def items_for(self, sku: str) -> list[InventoryItem]:
        ...

    def currency_holdings(
        self, weapon_skus: Iterable[str] = (), with_ids: bool = True
    ) -> dict[str, list[str]]:
        """SKU номинала → экземпляры (ключи, металл и оружие из weapon_skus)."""
        ...

    def total_item_count(self) -> int:
        ...

    def release(self) -> None:
        """Освободить загруженный снапшот."""
        ...


class PriceOracle(Protocol):
    def price_for(self, sku: str) -> Optional[PriceEntry]:
        """None — SKU отсутствует в прайс-листе."""
        ...

    def instance_price_override(self, instance_id: str) -> Optional[PriceEntry]:
        ...

    def key_price(self) -> PriceEntry:
        ...


class TrustService(Protocol):
    async def is_banned(self, partner: str) -> bool:
        ...

    async def would_escrow(self, offer: TradeOfferHandle) -> bool:
        ...

    async def check_duplicate(self, instance_id: str, context_id: str) -> DupeVerdict:
        ...

    async def block_user(self, partner: str) -> None:
        ...


class TradeVolumePolicy(Protocol):
    def max_tradable_amount(self, sku: str, as_buyer: bool) -> TradeLimit:
        ...


class ListingRefresher(Protocol):
    def refresh_listing(self, sku: str) -> None:
        ...


class ActiveTrades(Protocol):
    def is_in_trade(self, instance_id: str) -> bool:
        ...


class ItemSchema(Protocol):
    def name(self, sku: str) -> str:
        ...

    def is_duplicable(self, sku: str) -> bool:
        """Подлежит ли SKU проверке на дюп (например, unusual)."""
        ...


InventoryFactory = Callable[[str], InventorySource]
