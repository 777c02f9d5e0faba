"""
Core math modules для bartercart

Конверсия валютных единиц и алгоритм выбора номиналов.
"""

# Numerical Safeguards
from bartercart.core.math.numerical_safeguards import (
    EPS_VALUE,
    ceil_units,
    floor_units,
    is_close,
    is_negative,
    is_positive,
    is_zero,
    residue_of,
    round_value,
)

# Currencies
from bartercart.core.math.currencies import (
    KEY_SKU,
    METAL_SKUS,
    RECLAIMED_SKU,
    REFINED_SKU,
    SCRAP_SKU,
    WEAPON_VALUE,
    Currencies,
    metal_value,
    pure_stock,
    to_refined,
    to_scrap,
)

# Settlement
from bartercart.core.math.settlement import (
    Denomination,
    DenominationTable,
    SettlementResult,
    build_change_table,
    build_denomination_table,
    needs_weapons,
    select_change,
    settle,
)

__all__ = [
    # Numerical Safeguards
    "EPS_VALUE",
    "ceil_units",
    "floor_units",
    "is_close",
    "is_negative",
    "is_positive",
    "is_zero",
    "residue_of",
    "round_value",
    # Currencies: Constants
    "KEY_SKU",
    "METAL_SKUS",
    "RECLAIMED_SKU",
    "REFINED_SKU",
    "SCRAP_SKU",
    "WEAPON_VALUE",
    # Currencies: Types and functions
    "Currencies",
    "metal_value",
    "pure_stock",
    "to_refined",
    "to_scrap",
    # Settlement
    "Denomination",
    "DenominationTable",
    "SettlementResult",
    "build_change_table",
    "build_denomination_table",
    "needs_weapons",
    "select_change",
    "settle",
]
