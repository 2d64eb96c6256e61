# beetracker/db.py
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Sequence

from sqlalchemy import event, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from . import config

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def now() -> datetime:
    return datetime.now(config.TZ)


def _enable_sqlite_fks(dbapi_connection, _record):
    # cascades on days -> words -> attempts/inspirations rely on this
    cur = dbapi_connection.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.close()


def configure_engine(url: str) -> AsyncEngine:
    """(Re)bind the module-level engine and session factory to `url`."""
    global engine, SessionLocal

    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
        logger.info("[DB] Using SQLite URL: %s", url)
        engine = create_async_engine(
            url,
            echo=False,
            poolclass=NullPool,
            connect_args={"timeout": config.DB_TIMEOUT},
        )
        event.listen(engine.sync_engine, "connect", _enable_sqlite_fks)
    else:
        logger.info("[DB] Connecting to %s", parsed.render_as_string(hide_password=True))
        engine = create_async_engine(url, echo=False, pool_pre_ping=True)

    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)
    return engine


engine: AsyncEngine
SessionLocal: async_sessionmaker[AsyncSession]
configure_engine(config.DATABASE_URL)


async def ping():
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def init_models():
    await ping()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with SessionLocal() as session:
        yield session


async def insert_ignore(db: AsyncSession, model, rows: Sequence[Dict[str, Any]], index_elements: List[str]):
    """INSERT rows, silently skipping any that collide on `index_elements`."""
    if not rows:
        return None
    dialect = db.bind.dialect.name
    insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
    stmt = insert(model).values(list(rows)).on_conflict_do_nothing(index_elements=index_elements)
    return await db.execute(stmt)
