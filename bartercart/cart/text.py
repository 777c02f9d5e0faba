"""Форматирование заметок о коррекции корзины."""

from typing import Optional

import inflect

_ENGINE = inflect.engine()


def pluralize(word: str, count: Optional[int] = None, inclusive: bool = False) -> str:
    """
    Множественное число английского имени предмета.

    Examples:
        >>> pluralize("Mann Co. Supply Crate Key")
        'Mann Co. Supply Crate Keys'
        >>> pluralize("Team Spirit", 1, inclusive=True)
        '1 Team Spirit'
        >>> pluralize("Strange Bat", 3, inclusive=True)
        '3 Strange Bats'
        >>> pluralize("Festive Knife")
        'Festive Knives'
    """
    plural = word if count == 1 or not word else _ENGINE.plural_noun(word)

    if inclusive and count is not None:
        return f"{count} {plural}"
    return plural


def join_notes(notes: list[str]) -> str:
    return ", ".join(notes)


class CartNotes:
    """
    Заметки о коррекции корзины: не больше одной на SKU.

    Повторная заметка для того же SKU заменяет предыдущую,
    порядок SKU сохраняется.
    """

    def __init__(self) -> None:
        self._notes: dict[str, str] = {}

    def set(self, sku: str, note: str) -> None:
        self._notes[sku] = note

    def get(self, sku: str) -> Optional[str]:
        return self._notes.get(sku)

    def __len__(self) -> int:
        return len(self._notes)

    def __bool__(self) -> bool:
        return bool(self._notes)

    def __str__(self) -> str:
        return join_notes(list(self._notes.values()))
