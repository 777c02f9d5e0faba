"""
Currencies — централизованный модуль конверсии валютных единиц

Единственный допустимый способ преобразований между:
- scrap (базовая единица, value)
- refined metal (1 ref = 9 scrap, отображение с точностью 0.01)
- keys (курс ключа задаётся прайс-листом в ref)

ЗАПРЕЩЕНО смешивать единицы без явного конвертера из этого модуля.
"""

import math
from typing import Final, Mapping, Optional

from pydantic import BaseModel, Field

from bartercart.core.math.numerical_safeguards import EPS_VALUE, floor_units, round_value

# =============================================================================
# SKU ВАЛЮТ
# =============================================================================

KEY_SKU: Final[str] = "5021;6"
REFINED_SKU: Final[str] = "5002;6"
RECLAIMED_SKU: Final[str] = "5001;6"
SCRAP_SKU: Final[str] = "5000;6"

# Металл от старшего к младшему
METAL_SKUS: Final[tuple[str, ...]] = (REFINED_SKU, RECLAIMED_SKU, SCRAP_SKU)

# Стоимость единиц в scrap
REFINED_VALUE: Final[float] = 9.0
RECLAIMED_VALUE: Final[float] = 3.0
SCRAP_VALUE: Final[float] = 1.0
WEAPON_VALUE: Final[float] = 0.5

METAL_VALUES: Final[Mapping[str, float]] = {
    REFINED_SKU: REFINED_VALUE,
    RECLAIMED_SKU: RECLAIMED_VALUE,
    SCRAP_SKU: SCRAP_VALUE,
}


# =============================================================================
# БАЗОВЫЕ КОНВЕРТЕРЫ
# =============================================================================


def to_scrap(refined: float) -> float:
    """
    Конверсия: ref → scrap, с округлением до ближайшей половины scrap.

    Examples:
        >>> to_scrap(1.33)
        12.0
        >>> to_scrap(0.05)
        0.5
    """
    scrap = refined * REFINED_VALUE
    return math.floor(scrap * 2 + 0.5) / 2


def to_refined(scrap: float) -> float:
    """
    Конверсия: scrap → ref, усечение до 0.01.

    Examples:
        >>> to_refined(10)
        1.11
        >>> to_refined(0.5)
        0.05
    """
    refined = scrap / REFINED_VALUE
    sign = -1 if refined < 0 else 1
    return sign * math.trunc(abs(refined) * 100 + EPS_VALUE * 100) / 100


def metal_value(refined: int = 0, reclaimed: int = 0, scrap: int = 0, weapons: int = 0) -> float:
    """Стоимость набора металла (и оружия) в scrap."""
    return (
        refined * REFINED_VALUE
        + reclaimed * RECLAIMED_VALUE
        + scrap * SCRAP_VALUE
        + weapons * WEAPON_VALUE
    )


def _pluralize_keys(keys: float) -> str:
    return "key" if keys == 1 else "keys"


# =============================================================================
# CURRENCIES
# =============================================================================


class Currencies(BaseModel):
    """
    Цена в keys + metal.

    Immutable модель (frozen=True). metal хранится в ref.
    """

    keys: float = Field(0.0, ge=0, description="Количество ключей")
    metal: float = Field(0.0, ge=0, description="Металл в ref")

    model_config = {"frozen": True}

    def to_value(self, key_price_metal: Optional[float] = None) -> float:
        """
        Стоимость в scrap.

        Args:
            key_price_metal: Курс ключа в ref (обязателен, если keys != 0)

        Raises:
            ValueError: Если keys != 0 и курс не передан
        """
        value = to_scrap(self.metal)
        if self.keys != 0:
            if key_price_metal is None:
                raise ValueError("key_price_metal is required to convert keys to value")
            value += self.keys * to_scrap(key_price_metal)
        return round_value(value)

    @classmethod
    def from_value(cls, value: float, key_price_metal: Optional[float] = None) -> "Currencies":
        """
        Обратная конверсия: scrap → keys + metal.

        Ключи выделяются только если передан курс ключа.
        """
        keys = 0
        if key_price_metal is not None and key_price_metal > 0:
            keys = floor_units(value, to_scrap(key_price_metal))
            value = round_value(value - keys * to_scrap(key_price_metal))
        return cls(keys=keys, metal=to_refined(value))

    def __str__(self) -> str:
        parts = []
        if self.keys != 0 or self.metal == 0:
            keys = int(self.keys) if float(self.keys).is_integer() else self.keys
            parts.append(f"{keys} {_pluralize_keys(self.keys)}")
        if self.metal != 0 or self.keys == 0:
            metal = int(self.metal) if float(self.metal).is_integer() else self.metal
            parts.append(f"{metal} ref")
        return ", ".join(parts)


def pure_stock(counts: Mapping[str, int]) -> list[str]:
    """Текстовое описание запаса pure: ["2 keys", "5.33 ref"]."""
    keys = counts.get(KEY_SKU, 0)
    metal = metal_value(
        refined=counts.get(REFINED_SKU, 0),
        reclaimed=counts.get(RECLAIMED_SKU, 0),
        scrap=counts.get(SCRAP_SKU, 0),
    )
    return [f"{keys} {_pluralize_keys(keys)}", f"{to_refined(metal)} ref"]
