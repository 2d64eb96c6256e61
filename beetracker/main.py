# beetracker/main.py
from __future__ import annotations

import logging
from typing import List

from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from . import backfill, config, db as database, days, ledger
from .db import get_db, now
from .errors import TrackerError
from .schema import (
    AdvanceIn,
    AdvanceOut,
    AttemptOut,
    BackfillState,
    DayCreate,
    DayExport,
    DayOut,
    DayPatch,
    DaySummary,
    Health,
    InspireIn,
    SubmittedWord,
    WordCreate,
    WordOut,
    WordPatch,
)

logger = logging.getLogger(__name__)

# ───────── App ─────────
app = FastAPI(title="Spelling Bee Tracker API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# ───────── Errors ─────────
@app.exception_handler(TrackerError)
async def tracker_error(_request: Request, exc: TrackerError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error(_request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"error": "; ".join(parts) or "Invalid request"})


# ───────── Lifecycle ─────────
@app.on_event("startup")
async def on_startup():
    await database.init_models()


@app.get("/api/health", response_model=Health)
async def health():
    return Health(status="ok", timestamp=now())


# ───────── Days ─────────
@app.get("/api/days", response_model=List[DaySummary])
async def list_days(db: AsyncSession = Depends(get_db)):
    return await days.list_days(db)


@app.post("/api/days", response_model=DayOut, status_code=201)
async def create_day(body: DayCreate, db: AsyncSession = Depends(get_db)):
    day = await days.create_day(db, body.date, body.letters)
    return days.serialize_day(day)


@app.get("/api/days/{date}", response_model=DayOut)
async def get_day(date: str, db: AsyncSession = Depends(get_db)):
    return days.serialize_day(await days.get_day(db, date))


@app.patch("/api/days/{date}", response_model=DayOut)
async def patch_day(date: str, body: DayPatch, db: AsyncSession = Depends(get_db)):
    return days.serialize_day(await days.patch_day(db, date, body))


@app.delete("/api/days/{date}", status_code=204)
async def delete_day(date: str, db: AsyncSession = Depends(get_db)):
    await days.delete_day(db, date)
    return Response(status_code=204)


@app.get("/api/days/{date}/export", response_model=DayExport)
async def export_day(date: str, db: AsyncSession = Depends(get_db)):
    return await ledger.export_day(db, date)


@app.get("/api/days/{date}/attractors", response_model=List[WordOut])
async def attractors(date: str, db: AsyncSession = Depends(get_db)):
    return await ledger.get_attractors(db, date)


# ───────── Words ─────────
@app.get("/api/days/{date}/words", response_model=List[WordOut])
async def list_words(date: str, db: AsyncSession = Depends(get_db)):
    return await ledger.list_words(db, date)


@app.post("/api/days/{date}/words", response_model=SubmittedWord, status_code=201)
async def add_word(date: str, body: WordCreate, response: Response, db: AsyncSession = Depends(get_db)):
    word, is_reattempt = await ledger.submit_word(
        db,
        date,
        body.word,
        stage=body.stage,
        status=body.status,
        is_pangram=body.is_pangram,
        after_word_id=body.after_word_id,
        inspired_by=body.inspired_by,
        notes=body.notes,
        confidence=body.inspiration_confidence,
        chain_depth=body.chain_depth,
        context=body.context,
    )
    if is_reattempt:
        response.status_code = 200
    return {**word, "is_reattempt": is_reattempt}


@app.patch("/api/days/{date}/words/{word_id}", response_model=WordOut)
async def patch_word(date: str, word_id: int, body: WordPatch, db: AsyncSession = Depends(get_db)):
    return await ledger.update_word(db, date, word_id, body)


@app.post("/api/days/{date}/words/{word_id}/inspire", response_model=SubmittedWord, status_code=201)
async def inspire_word(
    date: str, word_id: int, body: InspireIn, response: Response, db: AsyncSession = Depends(get_db)
):
    word, is_reattempt = await ledger.inspire_word(
        db,
        date,
        word_id,
        body.word,
        status=body.status,
        confidence=body.inspiration_confidence,
        chain_depth=body.chain_depth,
    )
    if is_reattempt:
        response.status_code = 200
    return {**word, "is_reattempt": is_reattempt}


@app.get("/api/days/{date}/words/{word_id}/attempts", response_model=List[AttemptOut])
async def word_attempts(date: str, word_id: int, db: AsyncSession = Depends(get_db)):
    return await ledger.get_attempts(db, date, word_id)


# ───────── Backfill ─────────
@app.get("/api/days/{date}/backfill", response_model=BackfillState)
async def backfill_state(date: str, db: AsyncSession = Depends(get_db)):
    return await backfill.get_state(db, date)


@app.post("/api/days/{date}/backfill/advance", response_model=AdvanceOut)
async def backfill_advance(date: str, body: AdvanceIn, db: AsyncSession = Depends(get_db)):
    return await backfill.advance(db, date, body.action)


@app.post("/api/days/{date}/backfill/complete", response_model=DayOut)
async def backfill_complete(date: str, db: AsyncSession = Depends(get_db)):
    return days.serialize_day(await backfill.complete(db, date))
