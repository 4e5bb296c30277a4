from __future__ import annotations

import datetime as _dt
from dataclasses import asdict, dataclass, field
from typing import Any

from .errors import ErrorCategory


def _now() -> _dt.datetime:
    return _dt.datetime.now(_dt.timezone.utc)


# The record was not written.
SKIPPED = "skipped"
# The write timed out; the storage call may still have gone through.
UNKNOWN = "unknown"


@dataclass
class RecordFailure:
    table: str
    primary_key: Any
    error: str
    category: ErrorCategory = ErrorCategory.FORMATTER
    outcome: str = SKIPPED


@dataclass
class TableResult:
    name: str
    records_transformed: int = 0
    records_failed: int = 0
    pages: int = 0
    error: str | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.records_failed == 0 and not self.cancelled


@dataclass
class ScrubReport:
    """Outcome of one scrub run: what was written, skipped and why."""

    tables: dict[str, TableResult] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    failures: list[RecordFailure] = field(default_factory=list)
    cancelled: bool = False
    started_at: _dt.datetime = field(default_factory=_now)
    finished_at: _dt.datetime | None = None

    def table(self, name: str) -> TableResult:
        if name not in self.tables:
            self.tables[name] = TableResult(name)
        return self.tables[name]

    def record_failure(
        self,
        table: str,
        primary_key: Any,
        error: str,
        category: ErrorCategory,
        outcome: str = SKIPPED,
    ) -> None:
        self.failures.append(RecordFailure(table, primary_key, error, category, outcome))
        self.table(table).records_failed += 1

    @property
    def records_transformed(self) -> int:
        return sum(t.records_transformed for t in self.tables.values())

    @property
    def unknown_outcomes(self) -> list[RecordFailure]:
        """Failures whose write may have been applied after timing out."""
        return [f for f in self.failures if f.outcome == UNKNOWN]

    @property
    def failed_tables(self) -> list[str]:
        return [t.name for t in self.tables.values() if t.error is not None]

    @property
    def status(self) -> str:
        if self.cancelled:
            return "cancelled"
        if self.failures or self.failed_tables:
            return "completed_with_errors"
        return "completed"

    @property
    def ok(self) -> bool:
        return self.status == "completed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "records_transformed": self.records_transformed,
            "tables": {
                name: {k: v for k, v in asdict(result).items() if k != "name"}
                for name, result in self.tables.items()
            },
            "warnings": list(self.warnings),
            "failures": [
                {**asdict(f), "category": f.category.value} for f in self.failures
            ],
        }

    def summary_lines(self) -> list[str]:
        lines = [f"status: {self.status}"]
        for result in self.tables.values():
            line = (
                f"{result.name}: {result.records_transformed} scrubbed, "
                f"{result.records_failed} failed"
            )
            if result.error:
                line += f" (aborted: {result.error})"
            elif result.cancelled:
                line += " (cancelled)"
            lines.append(line)
        lines.extend(f"warning: {w}" for w in self.warnings)
        for f in self.failures:
            line = f"failed: {f.table}[{f.primary_key}] {f.category.value}: {f.error}"
            if f.outcome == UNKNOWN:
                line += " (write outcome unknown)"
            lines.append(line)
        return lines
