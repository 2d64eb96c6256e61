# beetracker/inspirations.py
from __future__ import annotations

from typing import Dict, Iterable, List

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from .db import insert_ignore
from .errors import ValidationError
from .models import Word, WordInspiration

# Edges word -> inspired_by_word. Multi-parent, any depth, no cycle check:
# a word may end up (transitively) inspired by itself.


async def get_sources(db: AsyncSession, word_id: int) -> List[int]:
    res = await db.execute(
        select(WordInspiration.inspired_by_word_id)
        .where(WordInspiration.word_id == word_id)
        .order_by(WordInspiration.id)
    )
    return list(res.scalars().all())


async def sources_by_word(db: AsyncSession, word_ids: Iterable[int]) -> Dict[int, List[int]]:
    ids = list(word_ids)
    out: Dict[int, List[int]] = {i: [] for i in ids}
    if not ids:
        return out
    res = await db.execute(
        select(WordInspiration.word_id, WordInspiration.inspired_by_word_id)
        .where(WordInspiration.word_id.in_(ids))
        .order_by(WordInspiration.id)
    )
    for word_id, source_id in res.all():
        out[word_id].append(source_id)
    return out


async def _check_same_day(db: AsyncSession, day_id: int, source_ids: List[int]) -> None:
    res = await db.execute(select(Word.id).where(Word.day_id == day_id, Word.id.in_(source_ids)))
    missing = set(source_ids) - set(res.scalars().all())
    if missing:
        raise ValidationError(
            f"Unknown inspiration source word id(s): {', '.join(str(i) for i in sorted(missing))}"
        )


async def add_sources(db: AsyncSession, day_id: int, word_id: int, source_ids: Iterable[int]) -> None:
    """Add edges; pairs that already exist are left alone."""
    ids = list(dict.fromkeys(int(i) for i in source_ids))
    if not ids:
        return
    await _check_same_day(db, day_id, ids)
    await insert_ignore(
        db,
        WordInspiration,
        [{"word_id": word_id, "inspired_by_word_id": i} for i in ids],
        index_elements=["word_id", "inspired_by_word_id"],
    )


async def set_sources(db: AsyncSession, day_id: int, word_id: int, source_ids: Iterable[int] | None) -> None:
    """Replace every source of `word_id` with `source_ids` (None clears)."""
    await db.execute(delete(WordInspiration).where(WordInspiration.word_id == word_id))
    await add_sources(db, day_id, word_id, source_ids or [])
