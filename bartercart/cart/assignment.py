"""
Назначение конкретных экземпляров в trade offer.

Политика пропуска: экземпляры бота, занятые в другом активном обмене,
пропускаются (если skip_items_in_trade включён); факт пропуска
фиксируется, чтобы отличать "заняты" от "нет в наличии".
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from bartercart.core.domain import ItemRef, Side
from bartercart.interfaces import ActiveTrades, TradeOfferHandle

logger = logging.getLogger(__name__)


def order_candidates(assets: Iterable[str], tradable: Iterable[str]) -> list[str]:
    """
    Кандидаты на назначение: явно выбранные первыми, затем остальные.

    Явные экземпляры, которых нет среди tradable (ушли из инвентаря,
    стали untradable или чужие), отбрасываются.
    """
    tradable = list(tradable)
    explicit = [asset for asset in dict.fromkeys(assets) if asset in tradable]
    return explicit + [instance_id for instance_id in tradable if instance_id not in explicit]


@dataclass(frozen=True)
class AssignmentOutcome:
    """Результат назначения экземпляров одного SKU."""

    sku: str
    required: int
    added: tuple[str, ...]
    # Были ли пропущены экземпляры, занятые в другом обмене
    skipped: bool = False

    @property
    def missing(self) -> int:
        return self.required - len(self.added)

    @property
    def complete(self) -> bool:
        return self.missing == 0


@dataclass
class InstanceAssigner:
    """Добавляет экземпляры в offer и помнит, что уже добавлено."""

    offer: TradeOfferHandle
    app_id: int
    context_id: str
    active_trades: ActiveTrades
    skip_items_in_trade: bool = True
    assigned: dict[Side, dict[str, list[str]]] = field(
        default_factory=lambda: {Side.OUR: {}, Side.THEIR: {}}
    )

    def _ref(self, instance_id: str) -> ItemRef:
        return ItemRef(
            collection_id=self.app_id,
            sub_collection_id=self.context_id,
            instance_id=instance_id,
        )

    def is_assigned(self, side: Side, instance_id: str) -> bool:
        return any(instance_id in ids for ids in self.assigned[side].values())

    def is_skippable(self, side: Side, instance_id: str) -> bool:
        """Занятые экземпляры пропускаются только на нашей стороне."""
        return (
            side is Side.OUR
            and self.skip_items_in_trade
            and self.active_trades.is_in_trade(instance_id)
        )

    def available(self, side: Side, candidates: Iterable[str]) -> list[str]:
        """Кандидаты, которые ещё можно назначить (не добавлены и не заняты)."""
        return [
            instance_id
            for instance_id in candidates
            if not self.is_assigned(side, instance_id) and not self.is_skippable(side, instance_id)
        ]

    def assign(
        self,
        side: Side,
        sku: str,
        candidates: Iterable[str],
        amount: int,
        record_as: Optional[str] = None,
    ) -> AssignmentOutcome:
        """
        Добавить amount экземпляров из candidates (в порядке приоритета).

        Args:
            side: Сторона, чьи экземпляры добавляются
            sku: SKU (для учёта назначенного)
            candidates: Упорядоченные экземпляры: явно выбранные первыми
            amount: Сколько нужно добавить
            record_as: SKU, под которым учитывать назначенное (по умолчанию sku)
        """
        added: list[str] = []
        skipped = False

        if amount > 0:
            for instance_id in candidates:
                if self.is_assigned(side, instance_id) or instance_id in added:
                    continue
                if self.is_skippable(side, instance_id):
                    skipped = True
                    continue
                if self.offer.add_item(side, self._ref(instance_id)):
                    added.append(instance_id)
                    if len(added) == amount:
                        break

        self.assigned[side].setdefault(record_as or sku, []).extend(added)

        outcome = AssignmentOutcome(sku=sku, required=amount, added=tuple(added), skipped=skipped)
        if not outcome.complete:
            logger.warning(
                "Failed to assign %s items sku=%s required=%s missing=%s skipped=%s",
                side.value,
                sku,
                amount,
                outcome.missing,
                skipped,
            )
        return outcome
