"""
Numerical Safeguards — безопасная арифметика для значений в scrap

Все значения валюты выражены в scrap (1 ref = 9 scrap). Благодаря оружию
(0.5 scrap) значения бывают дробными, поэтому сравнения и деление на номинал
выполняются с epsilon-защитой.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. floor/ceil по номиналу устойчивы к ошибкам представления float (9.000000001 → 9)
2. Значения, отличающиеся меньше чем на EPS_VALUE, считаются равными
3. Все операции детерминированы и воспроизводимы
"""

import math
from typing import Final

# =============================================================================
# EPSILON-ПАРАМЕТРЫ
# =============================================================================

# Epsilon для значений в scrap
# Минимальный номинал 0.5 scrap, поэтому 1e-9 с запасом ниже любого шага
EPS_VALUE: Final[float] = 1e-9

# Количество знаков для нормализации значений после вычитаний
VALUE_DECIMALS: Final[int] = 6


# =============================================================================
# СРАВНЕНИЯ
# =============================================================================


def is_zero(value: float, eps: float = EPS_VALUE) -> bool:
    """
    Проверка значения на ноль с допуском.

    Args:
        value: Значение в scrap
        eps: Абсолютный допуск

    Returns:
        True если |value| <= eps

    Examples:
        >>> is_zero(1e-12)
        True
        >>> is_zero(0.5)
        False
    """
    return abs(value) <= eps


def is_positive(value: float, eps: float = EPS_VALUE) -> bool:
    """True если value > eps."""
    return value > eps


def is_negative(value: float, eps: float = EPS_VALUE) -> bool:
    """True если value < -eps."""
    return value < -eps


def is_close(a: float, b: float, eps: float = EPS_VALUE) -> bool:
    """Абсолютное сравнение двух значений в scrap."""
    return abs(a - b) <= eps


# =============================================================================
# ОКРУГЛЕНИЕ
# =============================================================================


def round_value(value: float) -> float:
    """
    Нормализация значения после арифметики.

    Убирает хвосты вида 10.499999999998 → 10.5 и -0.0 → 0.0.
    """
    rounded = round(value, VALUE_DECIMALS)
    if is_zero(rounded):
        return 0.0
    return rounded


def floor_units(value: float, unit_value: float) -> int:
    """
    Сколько целых единиц номинала помещается в value.

    Args:
        value: Значение в scrap
        unit_value: Стоимость одной единицы номинала (> 0)

    Returns:
        floor(value / unit_value) с epsilon-коррекцией, не меньше 0

    Raises:
        ValueError: Если unit_value <= 0

    Examples:
        >>> floor_units(18.0, 9.0)
        2
        >>> floor_units(8.999999999999, 9.0)
        1
    """
    if unit_value <= 0:
        raise ValueError(f"unit_value must be positive, got {unit_value}")
    if value <= 0:
        return 0
    return max(0, math.floor(value / unit_value + EPS_VALUE))


def ceil_units(value: float, unit_value: float) -> int:
    """
    Минимальное число единиц номинала, покрывающее value.

    Examples:
        >>> ceil_units(10.0, 9.0)
        2
        >>> ceil_units(9.000000000001, 9.0)
        1
    """
    if unit_value <= 0:
        raise ValueError(f"unit_value must be positive, got {unit_value}")
    if value <= 0:
        return 0
    return max(0, math.ceil(value / unit_value - EPS_VALUE))


def residue_of(value: float, unit_value: float) -> float:
    """
    Остаток value по модулю unit_value (часть, не представимая целыми единицами).

    Examples:
        >>> residue_of(10.5, 1.0)
        0.5
        >>> residue_of(10.0, 1.0)
        0.0
    """
    if unit_value <= 0:
        raise ValueError(f"unit_value must be positive, got {unit_value}")
    residue = round_value(math.fmod(value, unit_value))
    if is_close(residue, unit_value):
        return 0.0
    return residue
