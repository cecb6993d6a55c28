"""Record store for chat/identifier associations.

The store links an externally issued identifier (a UUID) to the chat it was
registered from.  Rows are only ever inserted or deleted; there is no update
path.  Every public operation issues exactly one statement inside its own
transaction so a failed command never leaves partial state behind.

The SQLAlchemy engine is the connection pool.  It is created once at startup
and shared by reference; individual calls are synchronous and are expected to
be run off the event loop (see :mod:`apps.dispatcher`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from lib.telemetry.logger import get_logger


logger = get_logger(__name__)

TABLE = "rattle_telegram"

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {TABLE} (
    external_id VARCHAR(36) NOT NULL,
    chat_id BIGINT NOT NULL,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT uq_{TABLE}_pair UNIQUE (external_id, chat_id)
)
"""

_INDEX = f"CREATE INDEX IF NOT EXISTS ix_{TABLE}_chat ON {TABLE} (chat_id)"


class StoreError(Exception):
    """Any failure reported by the underlying database."""


@dataclass(frozen=True)
class AssociationRecord:
    external_id: str
    chat_id: int


class RecordStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_dsn(cls, dsn: str) -> "RecordStore":
        """Create the shared pooled engine for ``dsn``.

        SQLite DSNs get a single static connection so an in-memory database
        is visible from every worker thread.
        """

        if dsn.startswith("sqlite"):
            engine = create_engine(
                dsn,
                future=True,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            engine = create_engine(dsn, pool_pre_ping=True, future=True)
        return cls(engine)

    def ensure_schema(self) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(text(_SCHEMA))
                conn.execute(text(_INDEX))
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def dispose(self) -> None:
        self.engine.dispose()

    # ─── Generic capability ────────────────────────────────────────────────
    def execute(self, statement: str, params: Optional[Mapping[str, Any]] = None) -> int:
        """Run a write statement and return the number of affected rows."""

        try:
            with self.engine.begin() as conn:
                result = conn.execute(text(statement), dict(params or {}))
                return result.rowcount
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def query(self, statement: str, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        try:
            with self.engine.connect() as conn:
                return list(conn.execute(text(statement), dict(params or {})))
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    # ─── Associations ──────────────────────────────────────────────────────
    def add_association(self, record: AssociationRecord) -> None:
        """Insert ``record``.

        A second insert of the same ``(external_id, chat_id)`` pair violates
        the unique constraint and surfaces as :class:`StoreError`.
        """

        self.execute(
            f"INSERT INTO {TABLE} (external_id, chat_id) VALUES (:external_id, :chat_id)",
            {"external_id": record.external_id, "chat_id": record.chat_id},
        )
        logger.debug("association added for chat %s", record.chat_id)

    def remove_association(self, record: AssociationRecord) -> int:
        """Delete ``record``; removing a pair that does not exist is not an error."""

        return self.execute(
            f"DELETE FROM {TABLE} WHERE external_id = :external_id AND chat_id = :chat_id",
            {"external_id": record.external_id, "chat_id": record.chat_id},
        )

    def list_external_ids(self, chat_id: int) -> List[str]:
        rows = self.query(
            f"SELECT external_id FROM {TABLE} WHERE chat_id = :chat_id "
            "ORDER BY created_at, external_id",
            {"chat_id": chat_id},
        )
        return [row.external_id for row in rows]


__all__ = ["AssociationRecord", "RecordStore", "StoreError", "TABLE"]
