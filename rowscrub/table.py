from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import AmbiguousTableSpecError, ConfigurationError, FormatterError
from .formatters.base import Formatter, Record, Value
from .formatters.resolver import Resolver

logger = logging.getLogger(__name__)


class TableShape(str, Enum):
    FIELDS = "fields"
    RECORD = "record"


async def _call(formatter: Formatter, generator: Any, target: Any) -> Any:
    result = formatter(generator, target)
    if inspect.isawaitable(result):
        return await result
    return result


@dataclass(frozen=True)
class TableSpec:
    """Resolved transformation rule for one table.

    Exactly one of ``fields`` (column name to formatter) or ``record`` (a
    formatter for the whole row) is set.
    """

    name: str
    fields: Mapping[str, Formatter] | None = None
    record: Formatter | None = None
    _warned_pk: set[str] = field(default_factory=set, compare=False, repr=False)

    def __post_init__(self) -> None:
        if (self.fields is None) == (self.record is None):
            raise AmbiguousTableSpecError(
                f"table {self.name!r} must declare either field formatters or one "
                "record formatter, not both or neither"
            )

    @property
    def shape(self) -> TableShape:
        return TableShape.RECORD if self.record is not None else TableShape.FIELDS

    async def apply(self, generator: Any, record: Record, primary_key: str) -> dict[str, Value]:
        """Return the column values to write back for ``record``."""

        if self.record is not None:
            return await self._apply_record(generator, record, primary_key)

        changes: dict[str, Value] = {}
        for column, formatter in (self.fields or {}).items():
            if column == primary_key:
                self._warn_primary_key(primary_key)
                continue
            if column not in record:
                continue
            changes[column] = await _call(formatter, generator, record[column])
        return changes

    async def _apply_record(
        self, generator: Any, record: Record, primary_key: str
    ) -> dict[str, Value]:
        result = await _call(self.record, generator, dict(record))
        if result is None:
            return {}
        if not isinstance(result, Mapping):
            raise FormatterError(
                f"record formatter for {self.name!r} returned {type(result).__name__}, "
                "expected a mapping"
            )
        changes = dict(result)
        if primary_key in changes:
            changes.pop(primary_key)
            self._warn_primary_key(primary_key)
        return changes

    def _warn_primary_key(self, primary_key: str) -> None:
        if primary_key in self._warned_pk:
            return
        self._warned_pk.add(primary_key)
        logger.warning(
            "primary_key_ignored",
            extra={"event_type": "primary_key_ignored", "table": self.name},
        )


def build_table_spec(name: str, entry: Any, resolver: Resolver) -> TableSpec:
    """Resolve one configuration entry into a :class:`TableSpec`.

    A mapping is read as column name to formatter; anything else is a single
    formatter applied to the whole record.
    """

    if isinstance(entry, Mapping):
        if not entry:
            raise ConfigurationError(f"table {name!r} has no field formatters")
        fields: dict[str, Formatter] = {}
        for column, raw in entry.items():
            if not isinstance(column, str) or not column:
                raise ConfigurationError(f"table {name!r} has an invalid column name {column!r}")
            try:
                fields[column] = resolver.resolve_raw(raw)
            except ConfigurationError as exc:
                raise type(exc)(f"{name}.{column}: {exc}") from exc
        return TableSpec(name, fields=fields)
    try:
        formatter = resolver.resolve_raw(entry)
    except ConfigurationError as exc:
        raise type(exc)(f"{name}: {exc}") from exc
    return TableSpec(name, record=formatter)


def build_table_specs(configuration: Mapping[str, Any], resolver: Resolver) -> dict[str, TableSpec]:
    if not isinstance(configuration, Mapping):
        raise ConfigurationError("configuration must map table names to formatters")
    specs: dict[str, TableSpec] = {}
    for name, entry in configuration.items():
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"invalid table name {name!r}")
        specs[name] = build_table_spec(name, entry, resolver)
    return specs
