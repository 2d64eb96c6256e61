# beetracker/backfill.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .days import get_day, lock_day
from .errors import InvalidState, ValidationError
from .ledger import serialize_word, serialize_words
from .models import ACCEPTED, BACKFILL, NEW_DISCOVERY, PENDING, PRE_PANGRAM, REJECTED, Day, Word
from .stages import require_backfill, transition

logger = logging.getLogger(__name__)

ACTIONS = {"accept": ACCEPTED, "reject": REJECTED, "skip": None}


# The cursor lives only in days.backfill_cursor_word_id; everything else is
# re-derived from the words on each call, so reloads and restarts resume
# exactly where the review stopped.

async def review_list(db: AsyncSession, day: Day) -> List[Word]:
    """Pre-pangram words in position order, minus the confirmed pangram(s)."""
    res = await db.execute(
        select(Word)
        .where(Word.day_id == day.id, Word.stage == PRE_PANGRAM, Word.is_pangram.is_(False))
        .order_by(Word.position)
    )
    return list(res.scalars().all())


def resolve_cursor(day: Day, words: List[Word]) -> int:
    """Index of the word under review, or -1 when nothing is left."""
    if day.backfill_cursor_word_id is not None:
        for i, w in enumerate(words):
            if w.id == day.backfill_cursor_word_id:
                return i
    for i, w in enumerate(words):
        if w.status == PENDING:
            return i
    return -1


def _next_pending(words: List[Word], after: int) -> Optional[Word]:
    for w in words[after + 1:]:
        if w.status == PENDING:
            return w
    return None


async def get_state(db: AsyncSession, date: str) -> Dict[str, Any]:
    day = await get_day(db, date)
    require_backfill(day)

    # an unset cursor gets persisted below; derive it under the day lock so
    # a concurrent advance cannot commit between our read and our write
    locked = day.backfill_cursor_word_id is None
    if locked:
        day = await lock_day(db, date)
        require_backfill(day)

    words = await review_list(db, day)
    idx = resolve_cursor(day, words)
    current = words[idx] if idx >= 0 else None

    if current is not None and day.backfill_cursor_word_id is None:
        day.backfill_cursor_word_id = current.id

    processed = sum(1 for w in words if w.status != PENDING)
    res = await db.execute(
        select(Word).where(Word.day_id == day.id, Word.stage == BACKFILL).order_by(Word.position)
    )
    state = {
        "current_word": await serialize_word(db, day, current) if current is not None else None,
        "cursor_index": idx,
        "total_pre_pangram": len(words),
        "processed_count": processed,
        "is_complete": current is None or processed >= len(words),
        "backfill_words": await serialize_words(db, day, res.scalars().all()),
    }
    if locked:
        await db.commit()
    return state


async def advance(db: AsyncSession, date: str, action: str) -> Dict[str, Any]:
    """
    Judge the word under review (accept/reject) or pass over it (skip), then
    move the cursor to the next pending word. Skip never touches status.
    """
    if action not in ACTIONS:
        raise ValidationError("action must be accept, reject, or skip")

    day = await lock_day(db, date)
    require_backfill(day)

    words = await review_list(db, day)
    idx = resolve_cursor(day, words)
    if idx < 0:
        raise InvalidState("No more words to process")

    current = words[idx]
    if ACTIONS[action] is not None:
        current.status = ACTIONS[action]

    nxt = _next_pending(words, idx)
    day.backfill_cursor_word_id = nxt.id if nxt is not None else None
    await db.commit()

    return {
        "processed_word": await serialize_word(db, day, current),
        "next_word": await serialize_word(db, day, nxt) if nxt is not None else None,
        "is_complete": nxt is None,
    }


async def complete(db: AsyncSession, date: str) -> Day:
    """Leave backfill for new-discovery regardless of how many words were judged."""
    day = await lock_day(db, date)
    require_backfill(day)
    transition(day, NEW_DISCOVERY)
    await db.commit()
    logger.info("backfill complete for %s", date)
    return day
