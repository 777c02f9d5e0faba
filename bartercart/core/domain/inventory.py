"""
Inventory — записи экземпляров в снапшоте инвентаря

High-value вложения (attachments) — части предмета, требующие ручного
внимания перед обменом:
- s  : strange parts
- sp : spells
- ks : killstreakers
- ke : sheens
- p  : paints
"""

from typing import Final, Optional

from pydantic import BaseModel, Field

HIGH_VALUE_ATTACHMENTS: Final[tuple[str, ...]] = ("s", "sp", "ks", "ke", "p")


class InventoryItem(BaseModel):
    """
    Экземпляр предмета в снапшоте инвентаря.

    Immutable модель (frozen=True).
    """

    id: str = Field(..., min_length=1, description="assetid экземпляра")
    full_uses: Optional[bool] = Field(
        None, description="Есть ли у предмета все использования (duel, noise maker)"
    )
    high_value: Optional[dict[str, dict[str, bool]]] = Field(
        None, description="attachment → {attachment SKU → требует упоминания}"
    )

    model_config = {"frozen": True}

    def needs_mention(self) -> bool:
        """True если хоть одно high-value вложение помечено для ручного внимания."""
        if not self.high_value:
            return False
        return any(
            flag is True
            for attachment in HIGH_VALUE_ATTACHMENTS
            for flag in (self.high_value.get(attachment) or {}).values()
        )
