"""GATE 1: Dupe check

Второй gate (после GATE 0):
- Проверяет кандидатов на дюп последовательно, по одному запросу на экземпляр
- DUPLICATE → отказ DUPED
- INDETERMINATE или ошибка коллаборатора → отказ (fail-closed)
- dupe_check_max_items ограничивает конвейер: кандидаты сверх лимита
  считаются непроверенными

Интеграция:
- Использует результат GATE 0 (заблокированный offer не проверяется)
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from bartercart.core.domain import DupeVerdict, RejectReason
from bartercart.gatekeeper.gates.gate_00_trust_screen import Gate00Result
from bartercart.interfaces import TrustService

logger = logging.getLogger(__name__)

DUPED_MESSAGE = "offer contains duped items"
DUPE_CHECK_FAILED_MESSAGE = "failed to check for duped items, try sending an offer instead"


@dataclass(frozen=True)
class Gate01Config:
    """Конфигурация GATE 1."""

    enabled: bool = True
    # 0: без ограничения
    max_items: int = 0


@dataclass(frozen=True)
class Gate01Result:
    """Результат GATE 1."""

    send_allowed: bool
    block_reason: Optional[RejectReason]
    message: str

    checked: tuple[str, ...]
    # Первый экземпляр с вердиктом DUPLICATE/INDETERMINATE (если есть)
    flagged: Optional[str]

    details: str


class Gate01DupeCheck:
    """GATE 1: Dupe check.

    Порядок:
    1. GATE 0 заблокировал → пропуск причины
    2. Проверка отключена или кандидатов нет → допуск
    3. Кандидатов больше max_items → DUPE_CHECK_INDETERMINATE
    4. Последовательная проверка каждого кандидата
    """

    def __init__(self, trust: TrustService, context_id: str, config: Optional[Gate01Config] = None):
        """
        Args:
            trust: коллаборатор проверки дюпов
            context_id: контекст проверки (идентификатор бота)
            config: конфигурация gate
        """
        self.trust = trust
        self.context_id = context_id
        self.config = config or Gate01Config()

    async def evaluate(self, gate00_result: Gate00Result, candidates: Sequence[str]) -> Gate01Result:
        """Оценка GATE 1.

        Args:
            gate00_result: результат GATE 0
            candidates: экземпляры контрагента, требующие проверки

        Returns:
            Gate01Result с решением о допуске
        """
        if not gate00_result.send_allowed:
            return Gate01Result(
                send_allowed=False,
                block_reason=gate00_result.block_reason,
                message=gate00_result.message,
                checked=(),
                flagged=None,
                details=f"GATE 0 blocked: {gate00_result.details}",
            )

        if not self.config.enabled or not candidates:
            return Gate01Result(
                send_allowed=True,
                block_reason=None,
                message="",
                checked=(),
                flagged=None,
                details="dupe check skipped",
            )

        if self.config.max_items and len(candidates) > self.config.max_items:
            logger.warning(
                "Too many dupe check candidates: %s > %s", len(candidates), self.config.max_items
            )
            return Gate01Result(
                send_allowed=False,
                block_reason=RejectReason.DUPE_CHECK_INDETERMINATE,
                message=DUPE_CHECK_FAILED_MESSAGE,
                checked=(),
                flagged=None,
                details=f"{len(candidates)} candidates exceed max_items={self.config.max_items}",
            )

        checked: list[str] = []
        for instance_id in candidates:
            logger.debug("Dupe checking %s...", instance_id)
            try:
                verdict = await self.trust.check_duplicate(instance_id, self.context_id)
            except Exception as err:
                logger.warning("Failed to check for duped items: %s", err)
                return Gate01Result(
                    send_allowed=False,
                    block_reason=RejectReason.DUPE_CHECK_FAILED,
                    message=DUPE_CHECK_FAILED_MESSAGE,
                    checked=tuple(checked),
                    flagged=instance_id,
                    details=f"dupe check error for {instance_id}: {err!r}",
                )
            checked.append(instance_id)

            if verdict is DupeVerdict.DUPLICATE:
                logger.info("Offer contains duped item %s", instance_id)
                return Gate01Result(
                    send_allowed=False,
                    block_reason=RejectReason.DUPED,
                    message=DUPED_MESSAGE,
                    checked=tuple(checked),
                    flagged=instance_id,
                    details=f"{instance_id} is duped",
                )
            if verdict is not DupeVerdict.CLEAN:
                return Gate01Result(
                    send_allowed=False,
                    block_reason=RejectReason.DUPE_CHECK_INDETERMINATE,
                    message=DUPE_CHECK_FAILED_MESSAGE,
                    checked=tuple(checked),
                    flagged=instance_id,
                    details=f"dupe status of {instance_id} is unknown",
                )

        return Gate01Result(
            send_allowed=True,
            block_reason=None,
            message="",
            checked=tuple(checked),
            flagged=None,
            details=f"{len(checked)} items checked, none duped",
        )
