"""Gatekeeper — pre-send проверки построенного offer.

- GATE 0: Trust screen
- GATE 1: Dupe check
"""

from .gates import Gate00Result, Gate00TrustScreen, Gate01Config, Gate01DupeCheck, Gate01Result
from .presend import PreSendResult, PreSendValidator

__all__ = [
    "Gate00TrustScreen",
    "Gate00Result",
    "Gate01DupeCheck",
    "Gate01Result",
    "Gate01Config",
    "PreSendValidator",
    "PreSendResult",
]
