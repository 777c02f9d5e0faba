"""
Pre-send validator — цепочка гейтов перед отправкой offer.

GATE 0 → GATE 1; первый отказ останавливает цепочку.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from bartercart.config import CartConfig
from bartercart.core.domain import RejectReason
from bartercart.gatekeeper.gates import (
    Gate00Result,
    Gate00TrustScreen,
    Gate01Config,
    Gate01DupeCheck,
    Gate01Result,
)
from bartercart.interfaces import TradeOfferHandle, TrustService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreSendResult:
    """Итог pre-send проверок."""

    send_allowed: bool
    block_reason: Optional[RejectReason] = None
    message: str = ""

    gate00: Optional[Gate00Result] = None
    gate01: Optional[Gate01Result] = None

    details: str = ""

    @classmethod
    def allowed(cls, details: str = "") -> "PreSendResult":
        return cls(send_allowed=True, details=details)


class PreSendValidator:
    def __init__(self, trust: TrustService, context_id: str, config: Optional[CartConfig] = None):
        config = config or CartConfig()
        self.gate00 = Gate00TrustScreen(trust)
        self.gate01 = Gate01DupeCheck(
            trust,
            context_id,
            Gate01Config(
                enabled=config.dupe_check_enabled,
                max_items=config.dupe_check_max_items,
            ),
        )

    async def evaluate(
        self,
        partner: str,
        offer: TradeOfferHandle,
        dupe_candidates: Sequence[str] = (),
    ) -> PreSendResult:
        gate00 = await self.gate00.evaluate(partner, offer)
        if not gate00.send_allowed:
            logger.info("Pre-send blocked at GATE 0: %s", gate00.details)
            return PreSendResult(
                send_allowed=False,
                block_reason=gate00.block_reason,
                message=gate00.message,
                gate00=gate00,
                details=gate00.details,
            )

        gate01 = await self.gate01.evaluate(gate00, dupe_candidates)
        if not gate01.send_allowed:
            logger.info("Pre-send blocked at GATE 1: %s", gate01.details)
            return PreSendResult(
                send_allowed=False,
                block_reason=gate01.block_reason,
                message=gate01.message,
                gate00=gate00,
                gate01=gate01,
                details=gate01.details,
            )

        return PreSendResult(
            send_allowed=True,
            gate00=gate00,
            gate01=gate01,
            details=f"{gate00.details}; {gate01.details}",
        )
