"""Reads the table/formatter configuration from a YAML or JSON file."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError


def load_configuration(path: str | Path) -> dict[str, Any]:
    """Load ``path`` and check it maps table names to formatter entries.

    Example::

        users:
          first_name: firstName
          email: safeEmail
          bio: words:12,true
        audit_log: myapp.scrubbers.AuditLogScrubber
    """

    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"cannot read configuration {str(path)!r}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid configuration {str(path)!r}: {exc}") from exc
    if data is None:
        return {}
    return validate_configuration(data)


def validate_configuration(data: Any) -> dict[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigurationError("configuration must map table names to formatters")
    config: dict[str, Any] = {}
    for table, entry in data.items():
        if not isinstance(table, str) or not table:
            raise ConfigurationError(f"invalid table name {table!r}")
        if not isinstance(entry, (Mapping, str, list)):
            raise ConfigurationError(
                f"table {table!r} must be a mapping of fields, a formatter name or a list"
            )
        config[table] = dict(entry) if isinstance(entry, Mapping) else entry
    return config


def restrict_tables(configuration: Mapping[str, Any], tables: Iterable[str]) -> dict[str, Any]:
    """Keep only ``tables``; an empty selection keeps everything."""

    selected = list(tables)
    if not selected:
        return dict(configuration)
    unknown = [name for name in selected if name not in configuration]
    if unknown:
        raise ConfigurationError(f"table(s) not configured: {', '.join(unknown)}")
    return {name: entry for name, entry in configuration.items() if name in selected}
