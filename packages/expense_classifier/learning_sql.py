"""SQLAlchemy-backed learning repository.

Stores one row per merchant key in ``learning_records``. Any SQLAlchemy URL
works; tests use a file-backed SQLite database.

Usage
-----
from expense_classifier.learning import LearningStore
from expense_classifier.learning_sql import SqlLearningRepository

store = LearningStore(SqlLearningRepository("sqlite+pysqlite:///learning.db"))
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, String, Text, create_engine, delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from .models import LearningRecord

DATABASE_URL_ENV = "EXPENSE_CLASSIFIER_DATABASE_URL"


class Base(DeclarativeBase):
    pass


class LearningRecordRow(Base):
    __tablename__ = "learning_records"

    # Lower-cased, trimmed merchant; storage identity is case-insensitive.
    merchant_key: Mapped[str] = mapped_column(String, primary_key=True)
    merchant: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    frequency: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_memo: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Insertion order for deterministic substring-match precedence
    seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


def database_url_from_env(override: str | None = None) -> str | None:
    url = override or os.getenv(DATABASE_URL_ENV)
    return url.strip() if url and url.strip() else None


def _as_aware(dt: datetime) -> datetime:
    # SQLite drops tzinfo on round-trip; values are always written in UTC.
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


def _row_to_record(row: LearningRecordRow) -> LearningRecord:
    return LearningRecord(
        merchant=row.merchant,
        category=row.category,
        frequency=row.frequency,
        last_memo=row.last_memo,
        updated_at=_as_aware(row.updated_at),
    )


class SqlLearningRepository:
    """Learning repository over a SQLAlchemy engine.

    The table is created on first use. Errors (``SQLAlchemyError``) propagate
    to :class:`~expense_classifier.learning.LearningStore`, which logs and
    recovers.
    """

    def __init__(self, database_url: str | None = None, *, engine: Engine | None = None) -> None:
        if engine is None:
            url = database_url_from_env(database_url)
            if not url:
                raise RuntimeError(
                    f"{DATABASE_URL_ENV} is not set; cannot initialize the learning database"
                )
            engine = create_engine(url, pool_pre_ping=True)
        self.engine = engine
        self._session_maker = sessionmaker(bind=engine, expire_on_commit=False, class_=Session)
        self._schema_ready = False

    def _ensure_schema(self) -> None:
        if not self._schema_ready:
            Base.metadata.create_all(bind=self.engine)
            self._schema_ready = True

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""

        self._ensure_schema()
        session = self._session_maker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def load_all(self) -> list[LearningRecord]:
        with self.session_scope() as session:
            rows = session.scalars(
                select(LearningRecordRow).order_by(LearningRecordRow.seq)
            ).all()
            return [_row_to_record(r) for r in rows]

    def put(self, record: LearningRecord) -> None:
        with self.session_scope() as session:
            row = session.get(LearningRecordRow, record.key)
            if row is None:
                next_seq = session.scalar(select(func.count()).select_from(LearningRecordRow)) or 0
                row = LearningRecordRow(merchant_key=record.key, seq=next_seq)
                session.add(row)
            row.merchant = record.merchant
            row.category = record.category
            row.frequency = record.frequency
            row.last_memo = record.last_memo
            row.updated_at = record.updated_at

    def save_all(self, records: Iterable[LearningRecord]) -> None:
        with self.session_scope() as session:
            session.execute(delete(LearningRecordRow))
            for seq, record in enumerate(records):
                session.add(
                    LearningRecordRow(
                        merchant_key=record.key,
                        merchant=record.merchant,
                        category=record.category,
                        frequency=record.frequency,
                        last_memo=record.last_memo,
                        updated_at=record.updated_at,
                        seq=seq,
                    )
                )


__all__ = [
    "DATABASE_URL_ENV",
    "Base",
    "LearningRecordRow",
    "SqlLearningRepository",
    "database_url_from_env",
]
