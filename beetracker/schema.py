# beetracker/schema.py
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Stage = Literal["pre-pangram", "backfill", "new-discovery"]
Status = Literal["pending", "accepted", "rejected", "scratch"]
Confidence = Literal["certain", "uncertain"]
Action = Literal["accept", "reject", "skip"]


# ───────── Requests ─────────
class DayCreate(BaseModel):
    date: str = Field(min_length=1)
    letters: List[str]


class DayPatch(BaseModel):
    current_stage: Optional[Stage] = None
    genius_achieved: Optional[bool] = None
    backfill_cursor_word_id: Optional[int] = None


class WordCreate(BaseModel):
    word: str
    stage: Optional[Stage] = None
    status: Optional[Status] = None
    is_pangram: bool = False
    after_word_id: Optional[int] = None
    inspired_by: Optional[List[int]] = None
    inspiration_confidence: Optional[Confidence] = None
    chain_depth: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None
    context: Optional[str] = None


class WordPatch(BaseModel):
    status: Optional[Status] = None
    is_pangram: Optional[bool] = None
    notes: Optional[str] = None
    inspiration_confidence: Optional[Confidence] = None
    chain_depth: Optional[int] = Field(default=None, ge=0)
    inspired_by: Optional[List[int]] = None


class InspireIn(BaseModel):
    word: str
    status: Optional[Status] = None
    inspiration_confidence: Optional[Confidence] = None
    chain_depth: Optional[int] = Field(default=None, ge=0)


class AdvanceIn(BaseModel):
    action: Action


# ───────── Responses ─────────
class DayOut(BaseModel):
    id: int
    date: str
    letters: List[str]
    center_letter: str
    genius_achieved: bool
    current_stage: Stage
    backfill_cursor_word_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class DaySummary(DayOut):
    word_count: int
    pangram_count: int


class WordOut(BaseModel):
    id: int
    day_id: int
    word: str
    position: float
    stage: Stage
    status: Status
    is_pangram: bool
    inspiration_confidence: Optional[Confidence] = None
    chain_depth: int
    notes: Optional[str] = None
    created_at: datetime
    inspired_by_ids: List[int]
    attempt_count: int
    valid: bool


class SubmittedWord(WordOut):
    is_reattempt: bool


class AttemptOut(BaseModel):
    id: int
    word_id: int
    attempted_at: datetime
    stage: Stage
    context: Optional[str] = None


class BackfillState(BaseModel):
    current_word: Optional[WordOut] = None
    cursor_index: int
    total_pre_pangram: int
    processed_count: int
    is_complete: bool
    backfill_words: List[WordOut]


class AdvanceOut(BaseModel):
    processed_word: WordOut
    next_word: Optional[WordOut] = None
    is_complete: bool


class DayExport(DayOut):
    words: List[WordOut]
    attempts: List[AttemptOut]


class Health(BaseModel):
    status: str
    timestamp: datetime
