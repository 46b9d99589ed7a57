"""Append-only telemetry record store."""

from __future__ import annotations

import logging
import threading
from typing import List, Optional

from sqlalchemy import inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import BUCKET_NAME, TelemetryEntry, get_session, make_session_factory
from .ids import MonotonicULIDGenerator
from .models import TelemetryRecord, utcnow

LOGGER = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for telemetry storage failures."""


class RecordNotFound(StoreError):
    pass


class RecordDecodeError(StoreError):
    pass


class TelemetryStore:
    """Keeps one JSON document per completed test, keyed by a ULID.

    ULIDs sort in creation order, so the newest records are found by walking
    the primary key backwards. Writes go through a single lock; every read
    runs inside one transaction and sees a consistent snapshot.
    """

    def __init__(self, engine: Engine, id_generator: Optional[MonotonicULIDGenerator] = None):
        self.engine = engine
        self.Session = make_session_factory(engine)
        self._ids = id_generator or MonotonicULIDGenerator()
        self._write_lock = threading.Lock()

    def save(self, record: TelemetryRecord) -> str:
        with self._write_lock:
            record.id = self._ids.new()
            record.timestamp = utcnow()
            try:
                payload = record.to_json()
            except (TypeError, ValueError) as exc:
                raise StoreError(f"Failed to serialize record {record.id}: {exc}") from exc

            try:
                with get_session(self.Session) as session:
                    TelemetryEntry.__table__.create(session.connection(), checkfirst=True)
                    session.add(TelemetryEntry(key=record.id, value=payload))
            except SQLAlchemyError as exc:
                raise StoreError(f"Failed to write record {record.id}: {exc}") from exc

        LOGGER.debug("Stored telemetry record %s from %s", record.id, record.ip_address)
        return record.id

    def get_by_id(self, record_id: str) -> TelemetryRecord:
        try:
            with get_session(self.Session) as session:
                self._require_bucket(session)
                entry = session.get(TelemetryEntry, record_id)
                if entry is None:
                    raise RecordNotFound(f"Record {record_id} not found")
                value = entry.value
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read record {record_id}: {exc}") from exc
        return _decode(record_id, value)

    def get_last_n(self, limit: int) -> List[TelemetryRecord]:
        try:
            with get_session(self.Session) as session:
                self._require_bucket(session)
                if limit <= 0:
                    return []
                rows = session.execute(
                    select(TelemetryEntry.key, TelemetryEntry.value)
                    .order_by(TelemetryEntry.key.desc())
                    .limit(limit)
                ).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read latest records: {exc}") from exc

        records = [_decode(key, value) for key, value in rows]
        LOGGER.info("Fetched %d records from storage", len(records))
        return records

    def get_all(self) -> List[TelemetryRecord]:
        """Return every record, oldest first. Meant for diagnostics."""
        try:
            with get_session(self.Session) as session:
                self._require_bucket(session)
                rows = session.execute(
                    select(TelemetryEntry.key, TelemetryEntry.value).order_by(TelemetryEntry.key)
                ).all()
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to read records: {exc}") from exc

        records = [_decode(key, value) for key, value in rows]
        for record in records:
            LOGGER.debug("Record: %s", record.to_dict())
        return records

    @staticmethod
    def _require_bucket(session: Session) -> None:
        if not inspect(session.connection()).has_table(BUCKET_NAME):
            raise RecordNotFound("Storage bucket does not exist")


def _decode(key: str, value: str) -> TelemetryRecord:
    try:
        return TelemetryRecord.from_json(value)
    except (TypeError, ValueError) as exc:
        raise RecordDecodeError(f"Stored record {key} could not be decoded: {exc}") from exc
