from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..formatters.base import Record, Value

Cursor = Any


@dataclass
class Page:
    records: Sequence[Record] = field(default_factory=list)
    # ``None`` means there is nothing after this page.
    next_cursor: Cursor | None = None


class Storage(Protocol):
    """Tabular store the engine reads records from and writes them back to.

    Implementations raise :class:`rowscrub.errors.StorageError` for any
    failure. Calls are made from worker threads, one table at a time per
    thread.
    """

    def list_tables(self) -> Sequence[str]: ...

    def primary_key(self, table: str) -> str: ...

    def page_records(self, table: str, page_size: int, cursor: Cursor | None) -> Page: ...

    def update_record(
        self, table: str, primary_key: Any, fields: Mapping[str, Value]
    ) -> None: ...
