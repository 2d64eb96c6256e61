# beetracker/days.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .db import insert_ignore, now
from .errors import Conflict, InvalidState, NotFound, ValidationError
from .models import BACKFILL, Day, Word
from .schema import DayPatch
from .stages import transition

logger = logging.getLogger(__name__)

DAY_FIELDS = (
    "id", "date", "letters", "center_letter", "genius_achieved",
    "current_stage", "backfill_cursor_word_id", "created_at", "updated_at",
)


def serialize_day(day: Day) -> Dict[str, Any]:
    return {f: getattr(day, f) for f in DAY_FIELDS}


def normalize_letters(letters: List[str]) -> List[str]:
    if not isinstance(letters, list) or len(letters) != 7:
        raise ValidationError("date and letters (array of 7) are required")
    out = [str(l).strip().upper() for l in letters]
    if not all(len(l) == 1 and l.isalpha() for l in out):
        raise ValidationError("Each letter must be a single alphabetic character")
    if len(set(out)) != 7:
        raise ValidationError("All 7 letters must be unique (duplicate letters found)")
    return out


async def get_day(db: AsyncSession, date: str) -> Day:
    res = await db.execute(select(Day).where(Day.date == date))
    day = res.scalar_one_or_none()
    if day is None:
        raise NotFound("Day not found")
    return day


async def lock_day(db: AsyncSession, date: str) -> Day:
    """
    Open a write transaction on `date` and return the day. Must be the first
    statement of the transaction: the UPDATE takes the row lock (PostgreSQL)
    or the database write lock (SQLite) so writes to one day run one at a time.
    """
    res = await db.execute(
        update(Day)
        .where(Day.date == date)
        .values(updated_at=now())
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        raise NotFound("Day not found")
    day = await get_day(db, date)
    await db.refresh(day)
    return day


async def create_day(db: AsyncSession, date: str, letters: List[str]) -> Day:
    date = (date or "").strip()
    if not date:
        raise ValidationError("date and letters (array of 7) are required")
    letters = normalize_letters(letters)

    # first writer wins
    ts = now()
    res = await insert_ignore(
        db,
        Day,
        [dict(date=date, letters=letters, center_letter=letters[0], genius_achieved=False,
              current_stage="pre-pangram", created_at=ts, updated_at=ts)],
        index_elements=["date"],
    )
    if res.rowcount == 0:
        await db.rollback()
        raise Conflict("Day already exists for this date")
    await db.commit()
    logger.info("created day %s letters=%s", date, "".join(letters))
    return await get_day(db, date)


async def list_days(db: AsyncSession) -> List[Dict[str, Any]]:
    word_count = (
        select(func.count(Word.id)).where(Word.day_id == Day.id).correlate(Day).scalar_subquery()
    )
    pangram_count = (
        select(func.count(Word.id))
        .where(Word.day_id == Day.id, Word.is_pangram.is_(True))
        .correlate(Day)
        .scalar_subquery()
    )
    res = await db.execute(select(Day, word_count, pangram_count).order_by(Day.date.desc()))
    return [
        {**serialize_day(day), "word_count": wc, "pangram_count": pc}
        for day, wc, pc in res.all()
    ]


async def patch_day(db: AsyncSession, date: str, patch: DayPatch) -> Day:
    fields = patch.model_dump(exclude_unset=True)
    if not fields:
        return await get_day(db, date)

    day = await lock_day(db, date)
    if fields.get("current_stage") is not None:
        transition(day, fields["current_stage"])
    if fields.get("genius_achieved") is not None:
        day.genius_achieved = bool(fields["genius_achieved"])
    if "backfill_cursor_word_id" in fields:
        cursor_id = fields["backfill_cursor_word_id"]
        if cursor_id is not None:
            if day.current_stage != BACKFILL:
                raise InvalidState(f"Day is in {day.current_stage} stage, not backfill")
            res = await db.execute(select(Word.id).where(Word.id == cursor_id, Word.day_id == day.id))
            if res.scalar_one_or_none() is None:
                raise ValidationError(f"Word {cursor_id} does not belong to this day")
        day.backfill_cursor_word_id = cursor_id

    await db.commit()
    return day


async def delete_day(db: AsyncSession, date: str) -> None:
    res = await db.execute(delete(Day).where(Day.date == date))
    if res.rowcount == 0:
        raise NotFound("Day not found")
    await db.commit()
    logger.info("deleted day %s", date)
