"""
OfferDescriptor — неизменяемое описание построенного trade offer

Создаётся один раз в конце успешного построения и передаётся transport
коллаборатору. Сериализуется в метаданные offer через to_metadata();
формат метаданных закреплён контрактом offer_descriptor.json.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from bartercart.core.domain.items import SelectionEntry, Side


# =============================================================================
# NESTED MODELS
# =============================================================================


class ExchangeSide(BaseModel):
    """Стоимость одной стороны обмена."""

    total: float = Field(..., ge=0, description="Полная стоимость стороны (scrap)")
    keys: int = Field(0, ge=0, description="Ключей в оплате")
    metal: float = Field(0.0, ge=0, description="Металл в оплате (ref)")

    model_config = {"frozen": True}


class OfferValue(BaseModel):
    """Стоимости обеих сторон и курс ключа."""

    our: ExchangeSide
    their: ExchangeSide
    rate: float = Field(..., ge=0, description="Курс ключа (ref)")

    model_config = {"frozen": True}


class HighValueSummary(BaseModel):
    """High-value предметы в offer по сторонам."""

    items: dict[str, dict[str, Any]] = Field(
        default_factory=lambda: {Side.OUR.value: {}, Side.THEIR.value: {}}
    )
    is_mention: dict[str, bool] = Field(
        default_factory=lambda: {Side.OUR.value: False, Side.THEIR.value: False},
        serialization_alias="isMention",
    )

    model_config = {"frozen": True}

    def is_empty(self) -> bool:
        return not any(self.items.get(side.value) for side in Side)


class OfferItems(BaseModel):
    """Снапшот выбора обеих сторон (включая валюту и сдачу)."""

    our: dict[str, dict[str, Any]] = Field(default_factory=dict)
    their: dict[str, dict[str, Any]] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @classmethod
    def from_entries(
        cls, our: dict[str, SelectionEntry], their: dict[str, SelectionEntry]
    ) -> "OfferItems":
        return cls(
            our={sku: entry.to_dict() for sku, entry in our.items()},
            their={sku: entry.to_dict() for sku, entry in their.items()},
        )

    def total_amount(self, side: Side) -> int:
        """Сколько предметов стороны в offer (валюта и сдача включены)."""
        return sum(int(entry["amount"]) for entry in getattr(self, side.value).values())


# =============================================================================
# OFFER DESCRIPTOR
# =============================================================================


class OfferDescriptor(BaseModel):
    """
    Описание построенного offer.

    Immutable модель (frozen=True).
    """

    partner: str = Field(..., min_length=1, description="Идентификатор контрагента")
    items: OfferItems = Field(default_factory=OfferItems)
    # Выбранные номиналы валюты и сдачи по сторонам: side → SKU → count
    currencies: dict[str, dict[str, int]] = Field(
        default_factory=lambda: {Side.OUR.value: {}, Side.THEIR.value: {}}
    )
    # Всего предметов в инвентарях сторон на момент построения
    inventory_count: dict[str, int] = Field(
        default_factory=lambda: {Side.OUR.value: 0, Side.THEIR.value: 0}
    )
    value: Optional[OfferValue] = None
    prices: dict[str, dict[str, Any]] = Field(default_factory=dict)
    high_value: HighValueSummary = Field(default_factory=HighValueSummary)
    dupe_check: tuple[str, ...] = Field(default_factory=tuple)
    donation: bool = False
    construct_time_ms: int = Field(0, ge=0)

    model_config = {"frozen": True}

    def to_metadata(self) -> dict[str, Any]:
        """
        Метаданные для offer.set_data().

        Ключи совпадают с тем, что читают обработчики offer:
        dict, value, prices, highValue, _dupeCheck, constructOfferTime, donation,
        inventoryCount, itemsCount.
        """
        metadata: dict[str, Any] = {
            "partner": self.partner,
            "dict": self.items.model_dump(),
            "currencies": {side: dict(counts) for side, counts in self.currencies.items()},
            "prices": dict(self.prices),
            "_dupeCheck": list(self.dupe_check),
            "constructOfferTime": self.construct_time_ms,
            "inventoryCount": dict(self.inventory_count),
            "itemsCount": {side.value: self.items.total_amount(side) for side in Side},
        }
        if self.value is not None:
            metadata["value"] = self.value.model_dump()
        if not self.high_value.is_empty():
            metadata["highValue"] = self.high_value.model_dump(by_alias=True)
        if self.donation:
            metadata["donation"] = True
        return metadata
