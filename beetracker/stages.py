# beetracker/stages.py
from __future__ import annotations

import logging

from .errors import InvalidState, InvalidTransition, ValidationError
from .models import BACKFILL, NEW_DISCOVERY, STAGES, Day

logger = logging.getLogger(__name__)

STAGE_ORDER = {stage: i for i, stage in enumerate(STAGES)}


def transition(day: Day, target: str) -> bool:
    """
    Move `day` forward to `target`. Stages only advance one step at a time;
    asking for the current stage is a no-op. Entering new-discovery clears
    the backfill cursor. Returns True when the stage actually changed.
    """
    if target not in STAGE_ORDER:
        raise ValidationError(f"Invalid stage: {target}")

    current = STAGE_ORDER[day.current_stage]
    wanted = STAGE_ORDER[target]
    if wanted < current:
        raise InvalidTransition(f"Cannot transition backward from {day.current_stage} to {target}")
    if wanted > current + 1:
        raise InvalidTransition(f"Cannot skip stages: {day.current_stage} to {target}")
    if wanted == current:
        return False

    logger.info("day %s: %s -> %s", day.date, day.current_stage, target)
    day.current_stage = target
    if target == NEW_DISCOVERY:
        day.backfill_cursor_word_id = None
    return True


def require_backfill(day: Day) -> None:
    if day.current_stage != BACKFILL:
        raise InvalidState(f"Day is in {day.current_stage} stage, not backfill")
