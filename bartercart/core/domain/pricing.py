"""
Pricing — записи прайс-листа и лимиты объёма торговли
"""

from pydantic import BaseModel, Field

from bartercart.core.math.currencies import Currencies


class PriceEntry(BaseModel):
    """
    Цена SKU (или конкретного экземпляра) в прайс-листе.

    buy — по какой цене бот покупает, sell — по какой продаёт.
    """

    sku: str = Field(..., min_length=1, description="SKU предмета")
    name: str = Field("", description="Отображаемое имя")
    buy: Currencies = Field(default_factory=Currencies, description="Цена покупки")
    sell: Currencies = Field(default_factory=Currencies, description="Цена продажи")

    model_config = {"frozen": True}

    def to_prices_dict(self) -> dict:
        return {
            "buy": {"keys": self.buy.keys, "metal": self.buy.metal},
            "sell": {"keys": self.sell.keys, "metal": self.sell.metal},
        }


class TradeLimit(BaseModel):
    """Сколько ещё единиц SKU бот готов купить/продать."""

    most_can_trade: int = Field(..., ge=0, description="Максимум единиц к обмену")
    name: str = Field(..., description="Отображаемое имя SKU")

    model_config = {"frozen": True}
