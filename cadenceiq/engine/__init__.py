"""Engine package - Business logic layer.

Modules:
    - dates: Calendar-day date math
    - stages: Stage policy (order and day offsets)
    - cadence: Sequence engine (stage advancement)
    - calendar: Follow-up calendar store
    - contacts: Contact store
    - access: Paid-unlock access gate
"""

from cadenceiq.engine.cadence import AdvanceResult, advance
from cadenceiq.engine.stages import (
    STAGE_OFFSETS,
    STAGE_ORDER,
    is_terminal,
    next_stage,
    offset_days,
)

__all__ = [
    # Stage policy
    "STAGE_ORDER",
    "STAGE_OFFSETS",
    "next_stage",
    "offset_days",
    "is_terminal",
    # Sequence engine
    "AdvanceResult",
    "advance",
]
