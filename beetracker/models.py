# beetracker/models.py
from __future__ import annotations

from datetime import datetime
from typing import List

from sqlalchemy import JSON, Boolean, CheckConstraint, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base, now

PRE_PANGRAM, BACKFILL, NEW_DISCOVERY = "pre-pangram", "backfill", "new-discovery"
STAGES = (PRE_PANGRAM, BACKFILL, NEW_DISCOVERY)

PENDING, ACCEPTED, REJECTED, SCRATCH = "pending", "accepted", "rejected", "scratch"
STATUSES = (PENDING, ACCEPTED, REJECTED, SCRATCH)

CONFIDENCES = ("certain", "uncertain")

LettersJSON = JSON().with_variant(JSONB(), "postgresql")


def _in(column: str, values) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


class Day(Base):
    __tablename__ = "days"
    __table_args__ = (CheckConstraint(_in("current_stage", STAGES), name="ck_days_stage"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)

    # seven upper-case letters, first one is the center letter
    letters: Mapped[List[str]] = mapped_column(LettersJSON, nullable=False)
    center_letter: Mapped[str] = mapped_column(String(1), nullable=False)

    genius_achieved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    current_stage: Mapped[str] = mapped_column(String(16), nullable=False, default=PRE_PANGRAM)

    # only meaningful while current_stage == backfill; not a FK (words reference days)
    backfill_cursor_word_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now)

    words: Mapped[List["Word"]] = relationship(
        back_populates="day", cascade="all, delete-orphan", passive_deletes=True
    )


class Word(Base):
    __tablename__ = "words"
    __table_args__ = (
        UniqueConstraint("day_id", "word", name="uq_words_day_word"),
        CheckConstraint(_in("stage", STAGES), name="ck_words_stage"),
        CheckConstraint(_in("status", STATUSES), name="ck_words_status"),
        CheckConstraint(
            f"inspiration_confidence IS NULL OR {_in('inspiration_confidence', CONFIDENCES)}",
            name="ck_words_confidence",
        ),
        CheckConstraint("chain_depth >= 0", name="ck_words_chain_depth"),
        UniqueConstraint("day_id", "position", name="uq_words_day_position"),
        Index("idx_words_day_stage", "day_id", "stage"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    day_id: Mapped[int] = mapped_column(ForeignKey("days.id", ondelete="CASCADE"), nullable=False)
    word: Mapped[str] = mapped_column(String(64), nullable=False)
    position: Mapped[float] = mapped_column(Float, nullable=False)
    stage: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=PENDING)
    is_pangram: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    inspiration_confidence: Mapped[str | None] = mapped_column(String(16), nullable=True)
    chain_depth: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now)

    day: Mapped[Day] = relationship(back_populates="words")


class WordInspiration(Base):
    __tablename__ = "word_inspirations"
    __table_args__ = (
        UniqueConstraint("word_id", "inspired_by_word_id", name="uq_inspirations_pair"),
        Index("idx_inspirations_source", "inspired_by_word_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    word_id: Mapped[int] = mapped_column(ForeignKey("words.id", ondelete="CASCADE"), nullable=False, index=True)
    inspired_by_word_id: Mapped[int] = mapped_column(ForeignKey("words.id", ondelete="CASCADE"), nullable=False)


class WordAttempt(Base):
    """Append-only: one row per submission of a word, including the first."""
    __tablename__ = "word_attempts"
    __table_args__ = (CheckConstraint(_in("stage", STAGES), name="ck_attempts_stage"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    word_id: Mapped[int] = mapped_column(ForeignKey("words.id", ondelete="CASCADE"), nullable=False, index=True)
    attempted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=now)
    stage: Mapped[str] = mapped_column(String(16), nullable=False)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)
