"""
Тесты для Currency Settlement

Проверяет:
1. Инвариант оплаты: value(selected) - price == -remainder
2. Выбор не превышает запасов плательщика
3. Forward / reverse / cleanup проходы
4. Residue (половина scrap) без оружия
5. Подбор сдачи (только forward, без ключей)
6. Построение таблиц номиналов
"""

import pytest

from bartercart.core.math import (
    KEY_SKU,
    RECLAIMED_SKU,
    REFINED_SKU,
    SCRAP_SKU,
    Denomination,
    DenominationTable,
    build_change_table,
    build_denomination_table,
    is_close,
    needs_weapons,
    select_change,
    settle,
)

WEAPON = "45;6"
KEY_VALUE = 50.0


def _counts(keys: int = 0, ref: int = 0, rec: int = 0, scrap: int = 0, **extra: int) -> dict[str, int]:
    counts = {KEY_SKU: keys, REFINED_SKU: ref, RECLAIMED_SKU: rec, SCRAP_SKU: scrap}
    counts.update(extra)
    return counts


# =============================================================================
# ИНВАРИАНТЫ
# =============================================================================


class TestSettlementInvariants:
    @pytest.mark.parametrize("price", [0, 1, 4, 7, 9.5, 12, 27, 49, 50, 51, 110, 163.5])
    @pytest.mark.parametrize(
        "holdings",
        [
            _counts(keys=3, ref=1, rec=2, scrap=1),
            _counts(ref=2),
            _counts(ref=1, scrap=3),
            _counts(keys=1, rec=5),
            _counts(),
        ],
    )
    def test_paid_minus_price_equals_negative_remainder(self, price, holdings):
        """sum(selected * unit) - price == -remainder, selected <= owned"""
        table = build_denomination_table(KEY_VALUE, use_keys=True)

        result = settle(price, holdings, table)

        paid = table.value_of(result.selected_counts)
        assert is_close(paid - price, -result.remainder)
        for sku, taken in result.selected_counts.items():
            assert 0 <= taken <= holdings.get(sku, 0)

    def test_never_raises_on_shortfall(self):
        table = build_denomination_table(KEY_VALUE, use_keys=True)

        result = settle(20, _counts(ref=1), table)

        assert result.remainder == 11
        assert result.shortfall == 11
        assert result.change == 0

    def test_negative_price_rejected(self):
        table = build_denomination_table(KEY_VALUE, use_keys=True)

        with pytest.raises(ValueError):
            settle(-1, _counts(ref=1), table)


# =============================================================================
# СЦЕНАРИИ
# =============================================================================


class TestSettlementScenarios:
    def test_keys_and_metal_exact(self):
        """2 keys + 10 scrap при курсе 50: 2 keys + 1 ref + 1 scrap"""
        table = build_denomination_table(KEY_VALUE, use_keys=True)

        result = settle(110, _counts(keys=3, ref=1, rec=2, scrap=1), table)

        assert result.selected_counts == {KEY_SKU: 2, REFINED_SKU: 1, RECLAIMED_SKU: 0, SCRAP_SKU: 1}
        assert result.remainder == 0
        assert result.passes == ("forward",)

    def test_reverse_pass_overpays(self):
        """12 scrap только из refined: 2 ref, сдача 6"""
        table = build_denomination_table(KEY_VALUE, use_keys=True)

        result = settle(12, _counts(ref=2), table)

        assert result.selected_counts[REFINED_SKU] == 2
        assert result.remainder == -6
        assert result.change == 6
        assert result.passes == ("forward", "reverse", "cleanup")

    def test_cleanup_removes_unneeded_small_units(self):
        """Scrap, взятые forward, снимаются после переплаты refined"""
        table = build_denomination_table(KEY_VALUE, use_keys=True)

        result = settle(4, _counts(ref=1, scrap=3), table)

        assert result.selected_counts[REFINED_SKU] == 1
        assert result.selected_counts[SCRAP_SKU] == 0
        assert result.remainder == -5

    def test_keys_excluded_when_not_usable(self):
        table = build_denomination_table(KEY_VALUE, use_keys=False)

        result = settle(54, _counts(keys=5, ref=6), table)

        assert KEY_SKU not in result.selected_counts
        assert result.selected_counts[REFINED_SKU] == 6

    def test_half_scrap_without_weapons_leaves_residue(self):
        table = build_denomination_table(KEY_VALUE, use_keys=True)

        result = settle(10.5, _counts(ref=1, scrap=5), table)

        assert result.residue == 0.5
        assert result.remainder == 0.5
        assert result.selected_counts[SCRAP_SKU] == 1

    def test_half_scrap_paid_with_weapon(self):
        table = build_denomination_table(
            KEY_VALUE, use_keys=True, weapon_skus=(WEAPON,), weapons_enabled=True, price=10.5
        )

        result = settle(10.5, _counts(ref=1, scrap=1, **{WEAPON: 2}), table)

        assert result.remainder == 0
        assert result.selected_counts[WEAPON] == 1
        assert result.residue == 0

    def test_zero_price(self):
        table = build_denomination_table(KEY_VALUE, use_keys=True)

        result = settle(0, _counts(keys=1, ref=1), table)

        assert sum(result.selected_counts.values()) == 0
        assert result.remainder == 0


# =============================================================================
# СДАЧА
# =============================================================================


class TestSelectChange:
    def test_exact_change(self):
        result = select_change(6, _counts(ref=1, rec=2), build_change_table())

        assert result.selected_counts == {REFINED_SKU: 0, RECLAIMED_SKU: 2, SCRAP_SKU: 0}
        assert result.remainder == 0

    def test_change_never_exceeds_amount(self):
        result = select_change(7, _counts(ref=1, rec=2), build_change_table())

        assert result.selected_counts[RECLAIMED_SKU] == 2
        assert result.remainder == 1

    def test_change_table_has_no_keys(self):
        table = build_change_table()

        assert KEY_SKU not in table.skus

    def test_negative_change_rejected(self):
        with pytest.raises(ValueError):
            select_change(-1, _counts(ref=1), build_change_table())


# =============================================================================
# ТАБЛИЦЫ НОМИНАЛОВ
# =============================================================================


class TestDenominationTable:
    def test_default_order(self):
        table = build_denomination_table(KEY_VALUE, use_keys=True)

        assert table.skus == (KEY_SKU, REFINED_SKU, RECLAIMED_SKU, SCRAP_SKU)
        assert table.smallest_unit == 1
        assert table.unit_value_of(KEY_SKU) == KEY_VALUE

    def test_weapons_only_for_fractional_price(self):
        whole = build_denomination_table(
            KEY_VALUE, use_keys=True, weapon_skus=(WEAPON,), weapons_enabled=True, price=10
        )
        fractional = build_denomination_table(
            KEY_VALUE, use_keys=True, weapon_skus=(WEAPON,), weapons_enabled=True, price=10.5
        )

        assert WEAPON not in whole.skus
        assert fractional.skus[-1] == WEAPON
        assert fractional.smallest_unit == 0.5

    def test_needs_weapons(self):
        assert needs_weapons(0.5)
        assert not needs_weapons(27)

    def test_empty_table_rejected(self):
        with pytest.raises(ValueError):
            DenominationTable(())

    def test_increasing_order_rejected(self):
        with pytest.raises(ValueError):
            DenominationTable((Denomination(SCRAP_SKU, 1), Denomination(REFINED_SKU, 9)))

    def test_non_positive_unit_rejected(self):
        with pytest.raises(ValueError):
            DenominationTable((Denomination(SCRAP_SKU, 0),))

    def test_unknown_sku(self):
        with pytest.raises(KeyError):
            build_change_table().unit_value_of(KEY_SKU)

    def test_value_of(self):
        table = build_denomination_table(KEY_VALUE, use_keys=True)

        assert table.value_of(_counts(keys=1, ref=1, rec=1, scrap=1)) == 63
