"""SQLAlchemy implementation of the storage collaborator."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Any

from sqlalchemy import Column, MetaData, Table, create_engine, inspect, select, update
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from ..errors import StorageError
from ..formatters.base import Value
from ..redaction import default_redactor
from .base import Cursor, Page

logger = logging.getLogger(__name__)


def _storage_error(action: str, exc: SQLAlchemyError) -> StorageError:
    return StorageError(f"{action} failed: {default_redactor.describe(exc)}")


class SqlStorage:
    """Reads and updates rows of any database SQLAlchemy can reflect.

    Pages are fetched with keyset pagination on the primary key, so rows
    updated while the run is in progress are neither skipped nor read twice.
    Every update runs in its own transaction.
    """

    def __init__(self, url: str | None = None, *, engine: Engine | None = None) -> None:
        if engine is None:
            if url is None:
                raise ValueError("either url or engine is required")
            connect_args: dict[str, Any] = {}
            if make_url(url).get_backend_name() == "sqlite":
                connect_args["check_same_thread"] = False
            engine = create_engine(url, connect_args=connect_args)
        self.engine = engine
        self._tables: dict[str, Table] = {}
        self._lock = threading.Lock()

    def close(self) -> None:
        self.engine.dispose()

    def _table(self, name: str) -> Table:
        with self._lock:
            table = self._tables.get(name)
            if table is not None:
                return table
            try:
                table = Table(name, MetaData(), autoload_with=self.engine)
            except NoSuchTableError as exc:
                raise StorageError(f"table {name!r} does not exist") from exc
            except SQLAlchemyError as exc:
                raise _storage_error(f"reflecting {name!r}", exc) from exc
            logger.debug("table_reflected", extra={"event_type": "table_reflected", "table": name})
            self._tables[name] = table
            return table

    def _pk_column(self, name: str) -> Column:
        columns = list(self._table(name).primary_key.columns)
        if len(columns) != 1:
            raise StorageError(
                f"table {name!r} needs a single-column primary key, found {len(columns)}"
            )
        return columns[0]

    def list_tables(self) -> list[str]:
        try:
            return list(inspect(self.engine).get_table_names())
        except SQLAlchemyError as exc:
            raise _storage_error("listing tables", exc) from exc

    def primary_key(self, table: str) -> str:
        return self._pk_column(table).name

    def page_records(self, table: str, page_size: int, cursor: Cursor | None) -> Page:
        tbl = self._table(table)
        pk = self._pk_column(table)
        stmt = select(tbl).order_by(pk).limit(page_size)
        if cursor is not None:
            stmt = stmt.where(pk > cursor)
        try:
            with self.engine.connect() as conn:
                records = [dict(row) for row in conn.execute(stmt).mappings()]
        except SQLAlchemyError as exc:
            raise _storage_error(f"reading {table!r}", exc) from exc
        next_cursor = records[-1][pk.name] if len(records) == page_size else None
        return Page(records, next_cursor)

    def update_record(self, table: str, primary_key: Any, fields: Mapping[str, Value]) -> None:
        tbl = self._table(table)
        pk = self._pk_column(table)
        unknown = [name for name in fields if name not in tbl.c]
        if unknown:
            raise StorageError(f"table {table!r} has no column(s) {', '.join(sorted(unknown))}")
        stmt = update(tbl).where(pk == primary_key).values(dict(fields))
        try:
            with self.engine.begin() as conn:
                matched = conn.execute(stmt).rowcount
        except SQLAlchemyError as exc:
            raise _storage_error(f"updating {table!r}", exc) from exc
        if matched == 0:
            raise StorageError(f"no row in {table!r} with primary key {primary_key!r}")
