"""Scrubbing of sensitive values out of error messages.

Storage drivers like to echo the statement and its bound parameters back in
their exceptions, which would copy the very data being anonymized into the
report and the logs.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

EMAIL_RE = re.compile(r"[\w.+\-]+@[\w\-]+(?:\.[\w\-]+)+")
PHONE_RE = re.compile(r"\+?\b(?:\d{3}[ .-]?){2}\d{4}\b")
# SQLAlchemy appends "[SQL: ...]" and "[parameters: ...]" to DBAPI errors.
SQL_DUMP_RE = re.compile(r"\[(?:SQL|parameters): .*?\](?=\s*(?:\(|\[|$))", re.DOTALL)


@dataclass
class Redactor:
    enabled: bool = True
    patterns: Iterable[re.Pattern[str]] = (SQL_DUMP_RE, EMAIL_RE, PHONE_RE)
    replacement: str = "[REDACTED]"

    def redact(self, text: str) -> str:
        if not self.enabled:
            return text
        for pattern in self.patterns:
            text = pattern.sub(self.replacement, text)
        return text

    def describe(self, exc: BaseException) -> str:
        """Return a redacted ``"ExcType: message"`` line for ``exc``."""
        message = str(exc).strip()
        name = type(exc).__name__
        return f"{name}: {self.redact(message)}" if message else name


default_redactor = Redactor()
