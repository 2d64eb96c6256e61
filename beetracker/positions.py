# beetracker/positions.py
from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Word

logger = logging.getLogger(__name__)

# below this gap midpoints are no longer trusted; the day is renumbered first
MIN_GAP = 1e-9


async def next_position(db: AsyncSession, day_id: int) -> float:
    """Position for appending after the current last word of the day."""
    res = await db.execute(select(func.max(Word.position)).where(Word.day_id == day_id))
    max_pos = res.scalar_one_or_none()
    return (max_pos or 0.0) + 1.0


async def _bounds(db: AsyncSession, day_id: int, after_word_id: int):
    res = await db.execute(
        select(Word.position).where(Word.id == after_word_id, Word.day_id == day_id)
    )
    anchor = res.scalar_one_or_none()
    if anchor is None:
        return None, None
    res = await db.execute(
        select(func.min(Word.position)).where(Word.day_id == day_id, Word.position > anchor)
    )
    return anchor, res.scalar_one_or_none()


async def position_after(db: AsyncSession, day_id: int, after_word_id: int) -> float:
    """
    Position strictly between `after_word_id` and its current successor.
    Falls back to appending when the anchor is not a word of this day.
    """
    anchor, successor = await _bounds(db, day_id, after_word_id)
    if anchor is None:
        return await next_position(db, day_id)
    if successor is None:
        return anchor + 1.0

    mid = (anchor + successor) / 2.0
    if successor - anchor >= MIN_GAP and anchor < mid < successor:
        return mid

    await renumber(db, day_id)
    anchor, successor = await _bounds(db, day_id, after_word_id)
    return (anchor + successor) / 2.0


async def renumber(db: AsyncSession, day_id: int) -> int:
    """Rewrite the day's positions to 1.0 .. n, keeping their order."""
    res = await db.execute(
        select(Word).where(Word.day_id == day_id).order_by(Word.position, Word.id)
    )
    words = res.scalars().all()
    # positions are unique per day and always positive: park every row on a
    # negative slot first so no intermediate UPDATE collides
    for i, w in enumerate(words, start=1):
        w.position = -float(i)
    await db.flush()
    for i, w in enumerate(words, start=1):
        w.position = float(i)
    await db.flush()
    logger.warning("renumbered %d word positions for day_id=%s", len(words), day_id)
    return len(words)
