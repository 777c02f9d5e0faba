"""
Тесты для модуля Currencies

Проверяет:
1. ref → scrap с округлением до половины scrap
2. scrap → ref с усечением до 0.01
3. Currencies: стоимость, обратная конверсия, текстовое представление
4. Описание запаса pure
"""

import pytest
from pydantic import ValidationError

from bartercart.core.math import (
    KEY_SKU,
    RECLAIMED_SKU,
    REFINED_SKU,
    Currencies,
    metal_value,
    pure_stock,
    to_refined,
    to_scrap,
)

KEY_RATE = 5.56  # 50 scrap


class TestConverters:
    @pytest.mark.parametrize(
        ("refined", "scrap"),
        [(1.0, 9.0), (1.33, 12.0), (1.11, 10.0), (0.05, 0.5), (0.0, 0.0), (KEY_RATE, 50.0)],
    )
    def test_to_scrap_rounds_to_half(self, refined, scrap) -> None:
        assert to_scrap(refined) == scrap

    @pytest.mark.parametrize(
        ("scrap", "refined"),
        [(10, 1.11), (9, 1.0), (0.5, 0.05), (21, 2.33), (-10, -1.11)],
    )
    def test_to_refined_truncates(self, scrap, refined) -> None:
        assert to_refined(scrap) == refined

    def test_metal_value(self) -> None:
        assert metal_value(refined=1, reclaimed=1, scrap=1, weapons=1) == 13.5


class TestCurrencies:
    def test_to_value_with_keys(self) -> None:
        assert Currencies(keys=1, metal=5).to_value(KEY_RATE) == 95.0

    def test_to_value_metal_only_needs_no_rate(self) -> None:
        assert Currencies(metal=1.33).to_value() == 12.0

    def test_keys_without_rate_rejected(self) -> None:
        with pytest.raises(ValueError):
            Currencies(keys=1).to_value()

    def test_from_value_splits_keys(self) -> None:
        assert Currencies.from_value(110, KEY_RATE) == Currencies(keys=2, metal=1.11)

    def test_from_value_without_rate_is_metal(self) -> None:
        assert Currencies.from_value(110) == Currencies(keys=0, metal=12.22)

    @pytest.mark.parametrize(
        ("currencies", "text"),
        [
            (Currencies(keys=1), "1 key"),
            (Currencies(keys=2, metal=1.11), "2 keys, 1.11 ref"),
            (Currencies(metal=5), "5 ref"),
            (Currencies(), "0 keys, 0 ref"),
        ],
    )
    def test_str(self, currencies, text) -> None:
        assert str(currencies) == text

    def test_negative_amounts_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Currencies(keys=-1)

    def test_frozen(self) -> None:
        currencies = Currencies(metal=1)
        with pytest.raises(ValidationError):
            currencies.metal = 2


class TestPureStock:
    def test_describes_keys_and_metal(self) -> None:
        counts = {KEY_SKU: 1, REFINED_SKU: 2, RECLAIMED_SKU: 1}

        assert pure_stock(counts) == ["1 key", "2.33 ref"]

    def test_empty_stock(self) -> None:
        assert pure_stock({}) == ["0 keys", "0.0 ref"]
