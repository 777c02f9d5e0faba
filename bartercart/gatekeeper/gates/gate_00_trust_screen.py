"""GATE 0: Trust screen — бан контрагента и escrow

Первый gate перед отправкой offer:
- Проверка бана и escrow выполняются параллельно (asyncio.gather)
- Бан → попытка заблокировать контрагента (best-effort) и отказ
- Escrow → отказ с просьбой включить Steam Guard Mobile Authenticator
- Ошибка коллаборатора → отказ TRUST_CHECK_FAILED (fail-closed)
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from bartercart.core.domain import RejectReason
from bartercart.interfaces import TradeOfferHandle, TrustService

logger = logging.getLogger(__name__)

BANNED_MESSAGE = "you are banned in one or more trading communities"
ESCROW_MESSAGE = (
    "trade would be held. "
    "I do not accept escrow (trade holds). To prevent this from happening in the future, "
    "please enable Steam Guard Mobile Authenticator."
    "\nRead:\n"
    "• Steam Guard Mobile Authenticator - https://support.steampowered.com/kb_article.php?ref=8625-WRAH-9030"
    "\n• How to set up Steam Guard Mobile Authenticator - "
    "https://support.steampowered.com/kb_article.php?ref=4440-RTUI-9218"
)
TRUST_CHECK_FAILED_MESSAGE = "failed to check your trade status, please try again later"


@dataclass(frozen=True)
class Gate00Result:
    """Результат GATE 0."""

    send_allowed: bool
    block_reason: Optional[RejectReason]
    message: str

    banned: bool
    escrow: bool
    # Была ли попытка заблокировать контрагента
    block_attempted: bool

    details: str


class Gate00TrustScreen:
    """GATE 0: Trust screen.

    Порядок:
    1. is_banned + would_escrow параллельно
    2. banned → block_user (ошибки только логируются) → BANNED
    3. escrow → ESCROW
    """

    def __init__(self, trust: TrustService):
        self.trust = trust

    async def evaluate(self, partner: str, offer: TradeOfferHandle) -> Gate00Result:
        """Оценка GATE 0.

        Args:
            partner: идентификатор контрагента
            offer: построенный offer (для проверки escrow)

        Returns:
            Gate00Result с решением о допуске
        """
        try:
            banned, escrow = await asyncio.gather(
                self.trust.is_banned(partner),
                self.trust.would_escrow(offer),
            )
        except Exception as err:
            logger.warning("Trust check failed for %s: %s", partner, err)
            return Gate00Result(
                send_allowed=False,
                block_reason=RejectReason.TRUST_CHECK_FAILED,
                message=TRUST_CHECK_FAILED_MESSAGE,
                banned=False,
                escrow=False,
                block_attempted=False,
                details=f"trust collaborator error: {err!r}",
            )

        if banned:
            await self._block(partner)
            return Gate00Result(
                send_allowed=False,
                block_reason=RejectReason.BANNED,
                message=BANNED_MESSAGE,
                banned=True,
                escrow=bool(escrow),
                block_attempted=True,
                details=f"partner {partner} is banned",
            )

        if escrow:
            return Gate00Result(
                send_allowed=False,
                block_reason=RejectReason.ESCROW,
                message=ESCROW_MESSAGE,
                banned=False,
                escrow=True,
                block_attempted=False,
                details=f"trade with {partner} would be held in escrow",
            )

        return Gate00Result(
            send_allowed=True,
            block_reason=None,
            message="",
            banned=False,
            escrow=False,
            block_attempted=False,
            details="not banned, no escrow",
        )

    async def _block(self, partner: str) -> None:
        try:
            await self.trust.block_user(partner)
            logger.info("Blocked banned partner %s", partner)
        except Exception as err:
            logger.warning("Failed to block user %s: %s", partner, err)
