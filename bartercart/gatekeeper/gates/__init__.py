"""Gates — индивидуальные pre-send гейты.

- GATE 0: Trust screen (бан контрагента, escrow)
- GATE 1: Dupe check (дорогие предметы контрагента)
"""

from .gate_00_trust_screen import Gate00Result, Gate00TrustScreen
from .gate_01_dupe_check import Gate01Config, Gate01DupeCheck, Gate01Result

__all__ = [
    "Gate00TrustScreen",
    "Gate00Result",
    "Gate01DupeCheck",
    "Gate01Result",
    "Gate01Config",
]
