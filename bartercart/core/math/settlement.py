"""
Settlement — выбор номиналов валюты для оплаты разницы в стоимости

Чистая функция без I/O: по цене (scrap) и количеству номиналов у плательщика
возвращает выбранные количества и знаковый остаток.

Алгоритм (greedy с корректирующим обратным проходом):
1. Forward pass (от старшего номинала к младшему):
   take = min(floor(remaining / unit), owned)
2. remaining == 0 → точная оплата, остальные проходы не выполняются
3. Reverse pass (от младшего к старшему), если remaining > 0:
   take = min(ceil(remaining / unit), owned - taken), пока remaining > 0
4. Cleanup pass (от младшего к старшему), если remaining < 0:
   снимаем min(floor(-remaining / unit), taken) единиц, не делая remaining > 0
5. remainder = price - paid

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. sum(selected[d] * unit[d]) - price == -remainder
2. selected[d] <= owned[d] для каждого номинала
3. Функция никогда не бросает исключений на недостаток средств:
   remainder > 0 интерпретирует вызывающий код
4. Часть цены меньше минимального номинала (residue) не добирается
   обратным проходом и остаётся в remainder
"""

from dataclasses import dataclass, field
from typing import Final, Iterable, Mapping, Optional

from bartercart.core.math.currencies import (
    KEY_SKU,
    METAL_SKUS,
    METAL_VALUES,
    SCRAP_VALUE,
    WEAPON_VALUE,
)
from bartercart.core.math.numerical_safeguards import (
    ceil_units,
    floor_units,
    is_negative,
    is_positive,
    is_zero,
    residue_of,
    round_value,
)

# =============================================================================
# CONSTANTS
# =============================================================================

PASS_FORWARD: Final[str] = "forward"
PASS_REVERSE: Final[str] = "reverse"
PASS_CLEANUP: Final[str] = "cleanup"


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class Denomination:
    """Номинал валюты: SKU и стоимость одной единицы в scrap."""

    sku: str
    unit_value: float


@dataclass(frozen=True)
class DenominationTable:
    """
    Упорядоченная таблица номиналов, строго убывающая по unit_value.

    Строится на каждый расчёт; оружие добавляется в конец при построении,
    общий словарь номиналов не мутируется.
    """

    denominations: tuple[Denomination, ...]

    def __post_init__(self) -> None:
        if not self.denominations:
            raise ValueError("DenominationTable requires at least one denomination")
        previous: Optional[float] = None
        for denomination in self.denominations:
            if denomination.unit_value <= 0:
                raise ValueError(
                    f"unit_value must be positive, got {denomination.unit_value} for {denomination.sku}"
                )
            if previous is not None and denomination.unit_value > previous:
                raise ValueError("denominations must be ordered by decreasing unit_value")
            previous = denomination.unit_value

    def __iter__(self):
        return iter(self.denominations)

    def __len__(self) -> int:
        return len(self.denominations)

    @property
    def skus(self) -> tuple[str, ...]:
        return tuple(d.sku for d in self.denominations)

    @property
    def smallest_unit(self) -> float:
        return self.denominations[-1].unit_value

    def unit_value_of(self, sku: str) -> float:
        for denomination in self.denominations:
            if denomination.sku == sku:
                return denomination.unit_value
        raise KeyError(sku)

    def value_of(self, counts: Mapping[str, int]) -> float:
        """Суммарная стоимость counts по номиналам таблицы (scrap)."""
        return round_value(
            sum(counts.get(d.sku, 0) * d.unit_value for d in self.denominations)
        )


@dataclass(frozen=True)
class SettlementResult:
    """Результат расчёта оплаты."""

    selected_counts: dict[str, int]
    # remainder = price - paid; > 0 недоплата, < 0 сдача
    remainder: float
    # Часть цены, не представимая минимальным номиналом таблицы
    residue: float = 0.0
    passes: tuple[str, ...] = field(default=(PASS_FORWARD,))

    @property
    def change(self) -> float:
        """Сдача, которую должна вернуть другая сторона (>= 0)."""
        return -self.remainder if is_negative(self.remainder) else 0.0

    @property
    def shortfall(self) -> float:
        """Недостающая сумма (>= 0)."""
        return self.remainder if is_positive(self.remainder) else 0.0


# =============================================================================
# TABLE BUILDERS
# =============================================================================


def _metal_denominations() -> list[Denomination]:
    return [Denomination(sku, METAL_VALUES[sku]) for sku in METAL_SKUS]


def needs_weapons(price: float) -> bool:
    """True если цена содержит половину scrap (не представима металлом)."""
    return not is_zero(residue_of(price, SCRAP_VALUE))


def build_denomination_table(
    key_value: float,
    use_keys: bool,
    weapon_skus: Iterable[str] = (),
    weapons_enabled: bool = False,
    price: Optional[float] = None,
) -> DenominationTable:
    """
    Таблица номиналов для оплаты.

    Args:
        key_value: Стоимость ключа в scrap
        use_keys: Разрешено ли платить ключами
        weapon_skus: SKU оружия, используемого как 0.5 scrap
        weapons_enabled: Включено ли оружие как валюта
        price: Цена (scrap); оружие добавляется, только если цена дробная

    Returns:
        DenominationTable: [key] > ref > rec > scrap [> weapons]
    """
    denominations: list[Denomination] = []
    if use_keys and key_value > 0:
        denominations.append(Denomination(KEY_SKU, key_value))
    denominations.extend(_metal_denominations())
    if weapons_enabled and price is not None and needs_weapons(price):
        denominations.extend(Denomination(sku, WEAPON_VALUE) for sku in weapon_skus)
    return DenominationTable(tuple(denominations))


def build_change_table(
    weapon_skus: Iterable[str] = (),
    weapons_enabled: bool = False,
) -> DenominationTable:
    """Таблица номиналов для сдачи: сдача никогда не выдаётся ключами."""
    denominations = _metal_denominations()
    if weapons_enabled:
        denominations.extend(Denomination(sku, WEAPON_VALUE) for sku in weapon_skus)
    return DenominationTable(tuple(denominations))


# =============================================================================
# PASSES
# =============================================================================


def _forward_pass(
    remaining: float,
    payer_counts: Mapping[str, int],
    table: DenominationTable,
    selected: dict[str, int],
) -> float:
    for denomination in table:
        if not is_positive(remaining):
            break
        owned = payer_counts.get(denomination.sku, 0) - selected[denomination.sku]
        take = min(floor_units(remaining, denomination.unit_value), max(owned, 0))
        if take > 0:
            selected[denomination.sku] += take
            remaining = round_value(remaining - take * denomination.unit_value)
    return remaining


def _reverse_pass(
    remaining: float,
    payer_counts: Mapping[str, int],
    table: DenominationTable,
    selected: dict[str, int],
) -> float:
    for denomination in reversed(table.denominations):
        if not is_positive(remaining):
            break
        available = payer_counts.get(denomination.sku, 0) - selected[denomination.sku]
        take = min(ceil_units(remaining, denomination.unit_value), max(available, 0))
        if take > 0:
            selected[denomination.sku] += take
            remaining = round_value(remaining - take * denomination.unit_value)
    return remaining


def _cleanup_pass(
    remaining: float,
    table: DenominationTable,
    selected: dict[str, int],
) -> float:
    for denomination in reversed(table.denominations):
        if not is_negative(remaining):
            break
        removable = min(floor_units(-remaining, denomination.unit_value), selected[denomination.sku])
        if removable > 0:
            selected[denomination.sku] -= removable
            remaining = round_value(remaining + removable * denomination.unit_value)
    return remaining


# =============================================================================
# SETTLEMENT
# =============================================================================


def settle(
    price: float,
    payer_counts: Mapping[str, int],
    table: DenominationTable,
) -> SettlementResult:
    """
    Расчёт оплаты price из запасов плательщика.

    Args:
        price: Сумма к оплате (scrap, >= 0)
        payer_counts: SKU номинала → количество единиц у плательщика
        table: Таблица номиналов (определяет, можно ли платить ключами/оружием)

    Returns:
        SettlementResult:
        - remainder == 0: точная оплата
        - remainder < 0: переплата, |remainder| возвращается сдачей
        - remainder > 0: плательщику не хватает средств (или residue)

    Raises:
        ValueError: Если price < 0

    Examples:
        >>> table = build_denomination_table(key_value=50, use_keys=True)
        >>> result = settle(110, {"5021;6": 3, "5002;6": 1, "5001;6": 2, "5000;6": 1}, table)
        >>> result.selected_counts["5021;6"], result.selected_counts["5002;6"], result.remainder
        (2, 1, 0.0)
    """
    if is_negative(price):
        raise ValueError(f"price must be non-negative, got {price}")

    selected = {denomination.sku: 0 for denomination in table}
    residue = residue_of(price, table.smallest_unit)
    remaining = round_value(price - residue)
    passes = [PASS_FORWARD]

    remaining = _forward_pass(remaining, payer_counts, table, selected)

    if is_positive(remaining):
        passes.append(PASS_REVERSE)
        remaining = _reverse_pass(remaining, payer_counts, table, selected)

    if is_negative(remaining):
        passes.append(PASS_CLEANUP)
        remaining = _cleanup_pass(remaining, table, selected)

    return SettlementResult(
        selected_counts=selected,
        remainder=round_value(remaining + residue),
        residue=residue,
        passes=tuple(passes),
    )


def select_change(
    change: float,
    holder_counts: Mapping[str, int],
    table: DenominationTable,
) -> SettlementResult:
    """
    Подбор сдачи из запасов другой стороны.

    Только forward pass: сдача не должна превышать change.
    remainder > 0 — сумма сдачи, которую не удалось покрыть.
    """
    if is_negative(change):
        raise ValueError(f"change must be non-negative, got {change}")

    selected = {denomination.sku: 0 for denomination in table}
    remaining = _forward_pass(round_value(change), holder_counts, table, selected)
    return SettlementResult(
        selected_counts=selected,
        remainder=round_value(remaining),
        residue=0.0,
        passes=(PASS_FORWARD,),
    )
