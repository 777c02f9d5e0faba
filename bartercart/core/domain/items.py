"""
Items — стороны обмена, выбор предметов в корзине, ссылки на экземпляры

Selection хранит предварительный (оптимистичный) выбор одной стороны:
SKU → SelectionEntry(amount, assets). Проверка наличия откладывается
до построения offer.

Инвариант: len(assets) <= amount; разница — "generic" часть,
экземпляры для которой подбираются из инвентаря при построении.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class Side(str, Enum):
    """Сторона обмена"""

    OUR = "our"  # бот отдаёт
    THEIR = "their"  # бот получает

    @property
    def other(self) -> "Side":
        return Side.THEIR if self is Side.OUR else Side.OUR


# =============================================================================
# SELECTION
# =============================================================================


@dataclass
class SelectionEntry:
    """Выбор одного SKU: количество и явно выбранные экземпляры."""

    amount: int = 0
    assets: list[str] = field(default_factory=list)

    @property
    def generic_amount(self) -> int:
        return self.amount - len(self.assets)

    def copy(self) -> "SelectionEntry":
        return SelectionEntry(amount=self.amount, assets=list(self.assets))

    def to_dict(self) -> dict:
        return {"amount": self.amount, "assets": list(self.assets)}


class Selection:
    """
    Выбор одной стороны: SKU → SelectionEntry.

    Мутируется только через add/remove/retain_assets; порядок SKU сохраняется.
    """

    def __init__(self) -> None:
        self._entries: dict[str, SelectionEntry] = {}

    def __contains__(self, sku: str) -> bool:
        return sku in self._entries

    def __iter__(self):
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, sku: str) -> Optional[SelectionEntry]:
        return self._entries.get(sku)

    def items(self):
        return list(self._entries.items())

    def count(self, sku: str) -> int:
        entry = self._entries.get(sku)
        return entry.amount if entry is not None else 0

    def assets_of(self, sku: str) -> list[str]:
        entry = self._entries.get(sku)
        return list(entry.assets) if entry is not None else []

    def is_empty(self) -> bool:
        return len(self._entries) == 0

    def add(self, sku: str, amount: int, assets: Optional[Iterable[str]] = None) -> SelectionEntry:
        """
        Добавление amount единиц SKU.

        Явные экземпляры дедуплицируются; amount поднимается до len(assets).

        Raises:
            ValueError: Если amount < 0
        """
        if amount < 0:
            raise ValueError(f"amount must be non-negative, got {amount}")

        entry = self._entries.get(sku)
        if entry is None:
            entry = SelectionEntry()

        for asset in assets or ():
            if asset not in entry.assets:
                entry.assets.append(asset)

        entry.amount = max(entry.amount + amount, len(entry.assets))
        if entry.amount == 0:
            self._entries.pop(sku, None)
            return entry

        self._entries[sku] = entry
        return entry

    def retain_assets(self, sku: str, keep: Iterable[str]) -> None:
        """Оставить среди явных экземпляров SKU только keep; amount не меняется."""
        entry = self._entries.get(sku)
        if entry is not None:
            keep = set(keep)
            entry.assets = [asset for asset in entry.assets if asset in keep]

    def remove(self, sku: str, amount: Optional[int] = None) -> int:
        """
        Уменьшение количества SKU.

        amount=None или больше текущего — SKU удаляется целиком (clamp к 0).

        Returns:
            Новое количество SKU
        """
        entry = self._entries.get(sku)
        if entry is None:
            return 0
        if amount is not None and amount < 0:
            raise ValueError(f"amount must be non-negative, got {amount}")

        if amount is None or amount >= entry.amount:
            del self._entries[sku]
            return 0

        entry.amount -= amount
        if len(entry.assets) > entry.amount:
            del entry.assets[entry.amount:]
        return entry.amount

    def clear(self) -> None:
        self._entries.clear()

    def snapshot(self) -> dict[str, SelectionEntry]:
        """Глубокая копия выбора (для offer descriptor)."""
        return {sku: entry.copy() for sku, entry in self._entries.items()}


# =============================================================================
# ITEM REFERENCE
# =============================================================================


class ItemRef(BaseModel):
    """Ссылка на экземпляр предмета для trade offer transport."""

    collection_id: int = Field(..., description="appid игры")
    sub_collection_id: str = Field(..., description="contextid инвентаря")
    instance_id: str = Field(..., min_length=1, description="assetid экземпляра")

    model_config = {"frozen": True}
