from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from lessonkit.config import get_database_settings


class Base(DeclarativeBase):
  pass


engine: AsyncEngine | None = None
SessionLocal: async_sessionmaker[AsyncSession] | None = None


def async_database_url(dsn: str | None) -> str | None:
  """Point plain `postgresql://` DSNs at the asyncpg driver; other URLs pass through."""
  if dsn and dsn.startswith("postgresql://"):
    return "postgresql+asyncpg://" + dsn[len("postgresql://") :]
  return dsn


def get_db_engine() -> AsyncEngine | None:
  """Create the process-wide engine on first use; None when no DSN is configured."""
  global engine
  if engine is not None:
    return engine

  settings = get_database_settings()
  url = async_database_url(settings.pg_dsn)
  if not url:
    return None
  connect_args = {"timeout": settings.pg_connect_timeout} if url.startswith("postgresql+asyncpg://") else {}
  engine = create_async_engine(url, echo=settings.debug, connect_args=connect_args)
  return engine


def get_session_factory() -> async_sessionmaker[AsyncSession] | None:
  global SessionLocal
  if SessionLocal is None:
    db_engine = get_db_engine()
    if db_engine is not None:
      SessionLocal = async_sessionmaker(db_engine, expire_on_commit=False, class_=AsyncSession)
  return SessionLocal
