"""SQLModel-backed storage facade for the change store."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, col, delete, select

from wdrc.storage.alembic_runner import upgrade_head
from wdrc.storage.common import build_engine, chunked, insert_ignore, upsert
from wdrc.storage.sqlmodel_models import (
    Creation,
    Deletion,
    LabelChange,
    MetaEntry,
    Redirect,
    StatementChange,
    TextEntry,
)
from wdrc.sync.errors import PersistenceError

logger = logging.getLogger(__name__)
DEFAULT_WRITE_BATCH_SIZE = 500


class ChangeStore:
    """Facade that persists change records and stream state using SQLModel and Alembic."""

    def __init__(self, db_url: str, *, batch_size: int = DEFAULT_WRITE_BATCH_SIZE) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be > 0")
        self.db_url = db_url
        self.batch_size = batch_size
        self.engine = build_engine(db_url)

    def close(self) -> None:
        self.engine.dispose()

    def init_schema(self) -> None:
        upgrade_head(self.db_url)

    def load_texts(self) -> dict[str, int]:
        with self._session() as session:
            rows = session.exec(select(TextEntry)).all()
            return {row.value: row.id for row in rows if row.id is not None}

    def insert_text(self, value: str) -> int:
        with self._session() as session:
            row = TextEntry(value=value)
            session.add(row)
            session.commit()
            session.refresh(row)
            if row.id is None:
                raise PersistenceError(f"No text row inserted for {value!r}")
            return row.id

    def get_meta(self, key: str) -> str | None:
        with self._session() as session:
            row = session.get(MetaEntry, key)
            if row is None:
                return None
            return row.value

    def set_meta(self, key: str, value: str) -> None:
        with self._session() as session:
            row = session.get(MetaEntry, key)
            if row is None:
                row = MetaEntry(key=key, value=value)
            else:
                row.value = value
            session.add(row)
            session.commit()

    def insert_label_changes(self, rows: Sequence[LabelChange]) -> int:
        return self._insert_ignore(LabelChange, rows)

    def insert_statement_changes(self, rows: Sequence[StatementChange]) -> int:
        return self._insert_ignore(StatementChange, rows)

    def record_creations(self, rows: Sequence[Creation]) -> int:
        """Store created items; a re-creation supersedes an earlier deletion."""

        if not rows:
            return 0
        written = self._upsert(Creation, rows, update_columns=("timestamp",))
        with self._session() as session:
            session.exec(
                delete(Deletion).where(col(Deletion.q).in_([row.q for row in rows])),
            )
            session.commit()
        return written

    def record_deletions(self, rows: Sequence[Deletion]) -> int:
        return self._upsert(Deletion, rows, update_columns=("timestamp",))

    def record_redirects(self, rows: Sequence[Redirect]) -> int:
        return self._upsert(Redirect, rows, update_columns=("target", "timestamp"))

    def _insert_ignore(self, model: type[SQLModel], rows: Sequence[SQLModel]) -> int:
        if not rows:
            return 0
        table = model.__table__  # type: ignore[attr-defined]
        statement = insert_ignore(table, self.engine.dialect.name)
        return self._execute_batches(statement, rows)

    def _upsert(
        self,
        model: type[SQLModel],
        rows: Sequence[SQLModel],
        *,
        update_columns: Sequence[str],
    ) -> int:
        if not rows:
            return 0
        table = model.__table__  # type: ignore[attr-defined]
        statement = upsert(table, self.engine.dialect.name, update_columns=update_columns)
        return self._execute_batches(statement, rows)

    def _execute_batches(self, statement: object, rows: Sequence[SQLModel]) -> int:
        payload = [row.model_dump() for row in rows]
        try:
            with self.engine.begin() as connection:
                for batch in chunked(payload, self.batch_size):
                    connection.execute(statement, list(batch))  # type: ignore[arg-type]
        except SQLAlchemyError as error:
            raise PersistenceError(f"Batch write failed: {error}") from error
        return len(payload)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with Session(self.engine) as session:
                yield session
        except SQLAlchemyError as error:
            raise PersistenceError(f"Change store access failed: {error}") from error
