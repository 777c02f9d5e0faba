"""
Конфигурация корзины и построения offer.

CartConfig — неизменяемая конфигурация с дефолтами; load_cart_config()
собирает её из окружения (и .env в корне проекта через python-dotenv).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]

# Backpack.tf donation bot
DEFAULT_DONATION_PARTNER: Final[str] = (
    "https://steamcommunity.com/tradeoffer/new/?partner=432099474&token=Cc9yZSv0"
)

DUELING_MINI_GAME_SKU: Final[str] = "241;6"


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_int(*keys: str, default: int | None = None) -> int | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return int(v)


def _get_float(*keys: str, default: float) -> float:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return float(v)


def _get_bool(*keys: str, default: bool) -> bool:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "on")


def _get_list(*keys: str) -> tuple[str, ...]:
    v = _get_env(*keys, default="") or ""
    return tuple(dict.fromkeys(s.strip() for s in v.split(",") if s.strip()))


@dataclass(frozen=True)
class CartConfig:
    """Конфигурация корзины.

    Параметры построения offer и pre-send проверок.
    """

    # Transport: appid/contextid экземпляров
    app_id: int = 440
    context_id: str = "2"

    # Платить ли ключами, когда в обмене нет ключей
    use_keys: bool = True

    # Пропускать экземпляры, занятые в другом активном обмене
    skip_items_in_trade: bool = True

    # Оружие как валюта (0.5 scrap)
    weapons_as_currency: bool = False
    weapon_skus: tuple[str, ...] = ()

    # Отображать стоимость только в металле
    show_only_metal: bool = False

    # Принимать только предметы со всеми использованиями
    check_uses_duel: bool = True
    check_uses_noise_maker: bool = True

    # Dupe check: предметы дороже minimum_keys_dupe_check ключей
    dupe_check_enabled: bool = True
    minimum_keys_dupe_check: float = 10.0
    # Максимум проверок за один offer (0: без ограничения)
    dupe_check_max_items: int = 0

    donation_partner: str = DEFAULT_DONATION_PARTNER

    # Noise makers: проверяются на 25 использований
    noise_maker_skus: frozenset[str] = field(default=frozenset())
    full_uses_skus: frozenset[str] = field(default=frozenset())

    def __post_init__(self) -> None:
        if self.minimum_keys_dupe_check < 0:
            raise ValueError(
                f"minimum_keys_dupe_check must be non-negative, got {self.minimum_keys_dupe_check}"
            )
        if self.dupe_check_max_items < 0:
            raise ValueError(
                f"dupe_check_max_items must be non-negative, got {self.dupe_check_max_items}"
            )

    @property
    def weapons(self) -> tuple[str, ...]:
        """SKU оружия, если оружие как валюта включено."""
        return self.weapon_skus if self.weapons_as_currency else ()

    def requires_full_uses(self, sku: str) -> bool:
        """Требует ли SKU полного числа использований на стороне контрагента."""
        if sku in self.full_uses_skus:
            return True
        if self.check_uses_duel and sku == DUELING_MINI_GAME_SKU:
            return True
        return self.check_uses_noise_maker and sku in self.noise_maker_skus


def load_cart_config(env_path: Path | None = None) -> CartConfig:
    """
    Сборка CartConfig из окружения.

    Args:
        env_path: Путь к .env (по умолчанию ROOT_DIR/.env)
    """
    load_dotenv(dotenv_path=env_path or ROOT_DIR / ".env")

    defaults = CartConfig()
    return CartConfig(
        app_id=_get_int("APP_ID", default=defaults.app_id) or defaults.app_id,
        context_id=_get_env("CONTEXT_ID", default=defaults.context_id) or defaults.context_id,
        use_keys=_get_bool("USE_KEYS", default=defaults.use_keys),
        skip_items_in_trade=_get_bool("SKIP_ITEMS_IN_TRADE", default=defaults.skip_items_in_trade),
        weapons_as_currency=_get_bool("WEAPONS_AS_CURRENCY", default=defaults.weapons_as_currency),
        weapon_skus=_get_list("WEAPON_SKUS"),
        show_only_metal=_get_bool("SHOW_ONLY_METAL", default=defaults.show_only_metal),
        check_uses_duel=_get_bool("CHECK_USES_DUEL", default=defaults.check_uses_duel),
        check_uses_noise_maker=_get_bool(
            "CHECK_USES_NOISE_MAKER", default=defaults.check_uses_noise_maker
        ),
        dupe_check_enabled=_get_bool("DUPE_CHECK_ENABLED", default=defaults.dupe_check_enabled),
        minimum_keys_dupe_check=_get_float(
            "MINIMUM_KEYS_DUPE_CHECK", default=defaults.minimum_keys_dupe_check
        ),
        dupe_check_max_items=_get_int(
            "DUPE_CHECK_MAX_ITEMS", default=defaults.dupe_check_max_items
        ) or 0,
        donation_partner=_get_env("DONATION_PARTNER", default=defaults.donation_partner)
        or defaults.donation_partner,
        noise_maker_skus=frozenset(_get_list("NOISE_MAKER_SKUS")),
        full_uses_skus=frozenset(_get_list("FULL_USES_SKUS")),
    )
