"""Stage policy for the outreach cadence.

Four ordered stages, each due a fixed number of days after the
contact was first logged. Offsets are cumulative from that single
origin, not from the previous stage.

Usage:
    from cadenceiq.engine.stages import next_stage, offset_days

    nxt = next_stage(SequenceStage.FIRST_EMAIL)   # SECOND_EMAIL
    days = offset_days(nxt)                        # 7
"""

from cadenceiq.db.models import SequenceStage

# =============================================================================
# CADENCE TABLE
# =============================================================================

STAGE_ORDER: tuple[SequenceStage, ...] = (
    SequenceStage.FIRST_EMAIL,
    SequenceStage.SECOND_EMAIL,
    SequenceStage.PHONE_LINKEDIN_CONNECT,
    SequenceStage.BREAKUP_EMAIL,
)

STAGE_OFFSETS: dict[SequenceStage, int] = {
    SequenceStage.FIRST_EMAIL: 0,
    SequenceStage.SECOND_EMAIL: 7,
    SequenceStage.PHONE_LINKEDIN_CONNECT: 14,
    SequenceStage.BREAKUP_EMAIL: 21,
}

INITIAL_STAGE = STAGE_ORDER[0]
TERMINAL_STAGE = STAGE_ORDER[-1]


def next_stage(current: SequenceStage) -> SequenceStage:
    """Return the stage one step after current.

    The terminal stage maps to itself: it is an absorbing state,
    not an error.
    """
    index = STAGE_ORDER.index(current)
    if index == len(STAGE_ORDER) - 1:
        return current
    return STAGE_ORDER[index + 1]


def offset_days(stage: SequenceStage) -> int:
    """Cumulative day offset from first contact for a stage."""
    return STAGE_OFFSETS[stage]


def is_terminal(stage: SequenceStage) -> bool:
    """True for the last stage of the cadence."""
    return stage == TERMINAL_STAGE
