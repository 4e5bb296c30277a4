from __future__ import annotations

from collections.abc import Awaitable, Mapping
from typing import Any, Protocol, Union

Value = Union[str, int, float, bool, None]
Record = Mapping[str, Value]


class Formatter(Protocol):
    def __call__(self, generator: Any, target: Any) -> Any | Awaitable[Any]:  # noqa: D401
        """Return a replacement for ``target``.

        Field formatters get one column value and return its replacement.
        Record formatters get the whole row and return a mapping of the
        columns to overwrite.
        """
