"""Database utilities and ORM models."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

LOGGER = logging.getLogger(__name__)

BUCKET_NAME = "speedtest"


class StoreOpenError(RuntimeError):
    """The telemetry database file could not be opened."""


class Base(DeclarativeBase):
    pass


class TelemetryEntry(Base):
    """One key/value pair in the telemetry bucket."""

    __tablename__ = BUCKET_NAME

    key: Mapped[str] = mapped_column(String(26), primary_key=True)
    value: Mapped[str] = mapped_column(Text)


def open_engine(db_path: Path) -> Engine:
    """Open the SQLite file backing the telemetry store.

    The bucket table is not created here; the store creates it on first write.
    """
    engine = create_engine(f"sqlite:///{db_path}", future=True)
    try:
        with engine.connect() as connection:
            connection.exec_driver_sql("PRAGMA journal_mode=WAL")
    except SQLAlchemyError as exc:
        engine.dispose()
        raise StoreOpenError(f"Failed to open telemetry database at {db_path}: {exc}") from exc
    LOGGER.info("Opened telemetry database at %s", db_path)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, future=True, expire_on_commit=False)


@contextmanager
def get_session(Session: sessionmaker) -> Iterator:
    session = Session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
