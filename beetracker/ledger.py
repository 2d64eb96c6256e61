# beetracker/ledger.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from . import config
from .days import get_day, lock_day, serialize_day
from .errors import NotFound, ValidationError
from .inspirations import add_sources, get_sources, set_sources, sources_by_word
from .models import PENDING, Day, Word, WordAttempt
from .positions import next_position, position_after
from .schema import WordPatch

logger = logging.getLogger(__name__)

WORD_FIELDS = (
    "id", "day_id", "word", "position", "stage", "status", "is_pangram",
    "inspiration_confidence", "chain_depth", "notes", "created_at",
)


# ───────── Helpers ─────────
def normalize_word(text: Optional[str]) -> str:
    return (text or "").strip().upper()


def check_length(word: str) -> None:
    if not word:
        raise ValidationError("word is required")
    if len(word) < config.MIN_WORD_LEN:
        raise ValidationError(f"Word must be at least {config.MIN_WORD_LEN} letters: {word}")


def check_pangram(day: Day, word: str) -> None:
    missing = [l for l in day.letters if l not in word]
    if missing:
        raise ValidationError(f"{word} is not a pangram: missing letters {', '.join(missing)}")


def is_valid(day: Day, word: str) -> bool:
    """Uses only the day's letters and includes the center letter."""
    return day.center_letter in word and all(ch in day.letters for ch in word)


async def attempt_counts(db: AsyncSession, word_ids: Sequence[int]) -> Dict[int, int]:
    if not word_ids:
        return {}
    res = await db.execute(
        select(WordAttempt.word_id, func.count(WordAttempt.id))
        .where(WordAttempt.word_id.in_(list(word_ids)))
        .group_by(WordAttempt.word_id)
    )
    counts = dict(res.all())
    return {i: counts.get(i, 0) for i in word_ids}


def _word_dict(day: Day, w: Word, sources: List[int], attempts: int) -> Dict[str, Any]:
    return {
        **{f: getattr(w, f) for f in WORD_FIELDS},
        "inspired_by_ids": sources,
        "attempt_count": attempts,
        "valid": is_valid(day, w.word),
    }


async def serialize_words(db: AsyncSession, day: Day, words: Sequence[Word]) -> List[Dict[str, Any]]:
    ids = [w.id for w in words]
    sources = await sources_by_word(db, ids)
    counts = await attempt_counts(db, ids)
    return [_word_dict(day, w, sources[w.id], counts[w.id]) for w in words]


async def serialize_word(db: AsyncSession, day: Day, word: Word) -> Dict[str, Any]:
    counts = await attempt_counts(db, [word.id])
    return _word_dict(day, word, await get_sources(db, word.id), counts[word.id])


def serialize_attempts(attempts: Sequence[WordAttempt]) -> List[Dict[str, Any]]:
    return [
        {"id": a.id, "word_id": a.word_id, "attempted_at": a.attempted_at, "stage": a.stage, "context": a.context}
        for a in attempts
    ]


async def get_word(db: AsyncSession, day: Day, word_id: int, what: str = "Word") -> Word:
    res = await db.execute(select(Word).where(Word.id == word_id, Word.day_id == day.id))
    word = res.scalar_one_or_none()
    if word is None:
        raise NotFound(f"{what} not found")
    return word


async def _log_attempt(db: AsyncSession, word_id: int, stage: str, context: Optional[str]) -> None:
    db.add(WordAttempt(word_id=word_id, stage=stage, context=context))
    await db.flush()


# ───────── Submission ─────────
async def _submit(
    db: AsyncSession,
    day: Day,
    text: Optional[str],
    *,
    stage: Optional[str] = None,
    status: Optional[str] = None,
    is_pangram: bool = False,
    after_word_id: Optional[int] = None,
    inspired_by: Optional[List[int]] = None,
    notes: Optional[str] = None,
    confidence: Optional[str] = None,
    chain_depth: Optional[int] = None,
    context: Optional[str] = None,
) -> Tuple[Dict[str, Any], bool]:
    """Runs inside a transaction opened by lock_day(); commits on success."""
    word = normalize_word(text)
    check_length(word)
    if is_pangram:
        check_pangram(day, word)

    stage = stage or day.current_stage
    res = await db.execute(select(Word).where(Word.day_id == day.id, Word.word == word))
    existing = res.scalar_one_or_none()

    if existing is not None:
        await _log_attempt(db, existing.id, stage, context)
        out = await serialize_word(db, day, existing)
        await db.commit()
        logger.debug("reattempt %s on %s (%d attempts)", word, day.date, out["attempt_count"])
        return out, True

    if after_word_id is not None:
        position = await position_after(db, day.id, after_word_id)
    else:
        position = await next_position(db, day.id)

    new = Word(
        day_id=day.id,
        word=word,
        position=position,
        stage=stage,
        status=status or PENDING,
        is_pangram=bool(is_pangram),
        inspiration_confidence=confidence,
        chain_depth=chain_depth or 0,
        notes=notes,
    )
    db.add(new)
    await db.flush()

    await _log_attempt(db, new.id, stage, context)
    if inspired_by:
        await add_sources(db, day.id, new.id, inspired_by)
    out = await serialize_word(db, day, new)
    await db.commit()
    return out, False


async def submit_word(
    db: AsyncSession,
    date: str,
    text: Optional[str],
    **kwargs,
) -> Tuple[Dict[str, Any], bool]:
    """
    Enter `text` for the day. The first submission of a normalized text creates
    the word; every later one only appends an attempt and returns the existing
    word untouched. Returns (word, is_reattempt).
    """
    day = await lock_day(db, date)
    return await _submit(db, day, text, **kwargs)


async def inspire_word(
    db: AsyncSession,
    date: str,
    source_word_id: int,
    text: Optional[str],
    *,
    status: Optional[str] = None,
    confidence: Optional[str] = None,
    chain_depth: Optional[int] = None,
) -> Tuple[Dict[str, Any], bool]:
    """Enter `text` directly after `source_word_id`, linked to it as its inspiration."""
    day = await lock_day(db, date)
    source = await get_word(db, day, source_word_id, what="Source word")
    return await _submit(
        db,
        day,
        text,
        status=status,
        after_word_id=source.id,
        inspired_by=[source.id],
        confidence=confidence or "certain",
        chain_depth=source.chain_depth + 1 if chain_depth is None else chain_depth,
        context=f"inspired by {source.word}",
    )


async def update_word(db: AsyncSession, date: str, word_id: int, patch: WordPatch) -> Dict[str, Any]:
    fields = patch.model_dump(exclude_unset=True)
    if not fields:
        day = await get_day(db, date)
        return await serialize_word(db, day, await get_word(db, day, word_id))

    day = await lock_day(db, date)
    word = await get_word(db, day, word_id)

    if "status" in fields and fields["status"] is not None:
        word.status = fields["status"]
    if "is_pangram" in fields and fields["is_pangram"] is not None:
        if fields["is_pangram"]:
            check_pangram(day, word.word)
        word.is_pangram = bool(fields["is_pangram"])
    if "notes" in fields:
        word.notes = fields["notes"]
    if "inspiration_confidence" in fields:
        word.inspiration_confidence = fields["inspiration_confidence"]
    if "chain_depth" in fields and fields["chain_depth"] is not None:
        word.chain_depth = fields["chain_depth"]
    if "inspired_by" in fields:
        await set_sources(db, day.id, word.id, fields["inspired_by"])

    await db.commit()
    return await serialize_word(db, day, word)


# ───────── Reads ─────────
async def list_words(db: AsyncSession, date: str) -> List[Dict[str, Any]]:
    day = await get_day(db, date)
    res = await db.execute(select(Word).where(Word.day_id == day.id).order_by(Word.position))
    return await serialize_words(db, day, res.scalars().all())


async def get_attempts(db: AsyncSession, date: str, word_id: int) -> List[Dict[str, Any]]:
    day = await get_day(db, date)
    await get_word(db, day, word_id)
    res = await db.execute(
        select(WordAttempt)
        .where(WordAttempt.word_id == word_id)
        .order_by(WordAttempt.attempted_at, WordAttempt.id)
    )
    return serialize_attempts(res.scalars().all())


async def get_attractors(db: AsyncSession, date: str) -> List[Dict[str, Any]]:
    """Words submitted more than once, most attempted first."""
    day = await get_day(db, date)
    n = func.count(WordAttempt.id).label("n")
    res = await db.execute(
        select(Word, n)
        .join(WordAttempt, WordAttempt.word_id == Word.id)
        .where(Word.day_id == day.id)
        .group_by(Word.id)
        .having(n > 1)
        .order_by(n.desc(), Word.position)
    )
    return await serialize_words(db, day, [w for w, _n in res.all()])


async def export_day(db: AsyncSession, date: str) -> Dict[str, Any]:
    day = await get_day(db, date)
    res = await db.execute(select(Word).where(Word.day_id == day.id).order_by(Word.position))
    words = await serialize_words(db, day, res.scalars().all())
    res = await db.execute(
        select(WordAttempt)
        .join(Word, WordAttempt.word_id == Word.id)
        .where(Word.day_id == day.id)
        .order_by(WordAttempt.attempted_at, WordAttempt.id)
    )
    return {**serialize_day(day), "words": words, "attempts": serialize_attempts(res.scalars().all())}
