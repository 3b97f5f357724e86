# app/core/database.py

import ssl
from typing import AsyncGenerator

from loguru import logger
from sqlmodel import SQLModel
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine
)
from sqlalchemy.pool import NullPool, StaticPool
from sqlalchemy import text

from app.core.config import settings


DATABASE_URL = settings.DATABASE_URL


# ----------------------------------------------------
# SSL for Supabase Pooler
# ----------------------------------------------------
def make_ssl():
    ctx = ssl.create_default_context()
    if not settings.DB_SSL_VERIFY:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    return ctx


def engine_options(url: str) -> dict:
    # Local SQLite (dev / tests): one shared in-process connection
    if url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }

    # AsyncPG SAFE Config (works with Supabase POOLER)
    return {
        "connect_args": {
            "ssl": make_ssl(),
            "statement_cache_size": 0,            # disable prepared statements
            "prepared_statement_name_func": None  # prevent SQLAlchemy from naming statements
        },
        "pool_pre_ping": True,
        "poolclass": NullPool,  # required for Pooler
    }


# ----------------------------------------------------
# Engine
# ----------------------------------------------------
engine = create_async_engine(
    DATABASE_URL,
    echo=False,
    future=True,
    **engine_options(DATABASE_URL),
)


# ----------------------------------------------------
# Sessions
# ----------------------------------------------------
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


# ----------------------------------------------------
# Create tables
# ----------------------------------------------------
async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


# ----------------------------------------------------
# Test Connection (SAFE)
# ----------------------------------------------------
async def test_connection():
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
        logger.debug("DB connection OK")
