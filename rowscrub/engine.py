from __future__ import annotations

import asyncio
import datetime as _dt
import logging
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any, TypeVar

from .errors import ConfigurationError, StorageError, categorize
from .formatters.base import Record
from .formatters.resolver import Resolver
from .metrics import (
    page_fetch_ms,
    record_failures_total,
    records_scrubbed_total,
    tables_failed_total,
)
from .redaction import Redactor, default_redactor
from .report import SKIPPED, UNKNOWN, ScrubReport, TableResult
from .storage.base import Storage
from .table import TableSpec, build_table_specs

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RunState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ScrubEngine:
    """Reads, transforms and writes back every record of the configured tables.

    Configuration problems abort the run before any record is touched. Once
    the run is under way, failures are contained: a failing record is
    reported and skipped, a failing page fetch ends only that table.
    """

    def __init__(
        self,
        page_size: int = 500,
        timeout: float | None = 30.0,
        max_concurrent_tables: int = 1,
        *,
        redactor: Redactor | None = None,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        if max_concurrent_tables < 1:
            raise ValueError("max_concurrent_tables must be positive")
        self.page_size = page_size
        self.timeout = timeout
        self.max_concurrent_tables = max_concurrent_tables
        self.redactor = redactor or default_redactor
        self.state = RunState.IDLE

    @classmethod
    def from_settings(cls, settings: Any) -> ScrubEngine:
        return cls(
            page_size=settings.page_size,
            timeout=settings.storage_timeout_seconds,
            max_concurrent_tables=settings.max_concurrent_tables,
        )

    async def run(
        self,
        configuration: Mapping[str, Any],
        storage: Storage,
        generator: Any,
        stop: asyncio.Event | None = None,
    ) -> ScrubReport:
        """Scrub every configured table and return the report.

        ``stop`` is checked before each table and between pages; records of
        the page in progress are still written.
        """

        self.state = RunState.LOADING
        try:
            specs = build_table_specs(configuration, Resolver())
        except ConfigurationError:
            self.state = RunState.FAILED
            raise

        self.state = RunState.RUNNING
        stop = stop or asyncio.Event()
        report = ScrubReport()
        logger.info(
            "scrub_started",
            extra={"event_type": "scrub_started", "records": None, "table": None},
        )

        try:
            available = set(await self._storage_call(storage.list_tables))
        except StorageError as exc:
            message = self.redactor.describe(exc)
            for name in specs:
                self._fail_table(report.table(name), message, exc)
            return self._finish(report)

        present: list[TableSpec] = []
        for name, spec in specs.items():
            if name in available:
                report.table(name)
                present.append(spec)
                continue
            report.warnings.append(f"table {name!r} is configured but does not exist")
            logger.warning("table_missing", extra={"event_type": "table_missing", "table": name})

        semaphore = asyncio.Semaphore(self.max_concurrent_tables)

        async def worker(spec: TableSpec) -> None:
            async with semaphore:
                if stop.is_set():
                    report.table(spec.name).cancelled = True
                    report.cancelled = True
                    return
                await self._scrub_table(spec, storage, generator, report, stop)

        try:
            await asyncio.gather(*(worker(spec) for spec in present))
        except BaseException:
            # Storage bugs (anything but StorageError) are not recoverable here.
            self.state = RunState.FAILED
            raise
        return self._finish(report)

    def _finish(self, report: ScrubReport) -> ScrubReport:
        report.finished_at = _dt.datetime.now(_dt.timezone.utc)
        if report.cancelled:
            self.state = RunState.CANCELLED
        elif report.ok:
            self.state = RunState.COMPLETED
        else:
            self.state = RunState.COMPLETED_WITH_ERRORS
        logger.info(
            "scrub_finished",
            extra={
                "event_type": "scrub_finished",
                "records": report.records_transformed,
                "table": None,
            },
        )
        return report

    async def _scrub_table(
        self,
        spec: TableSpec,
        storage: Storage,
        generator: Any,
        report: ScrubReport,
        stop: asyncio.Event,
    ) -> None:
        result = report.table(spec.name)
        logger.info("table_started", extra={"event_type": "table_started", "table": spec.name})
        try:
            primary_key = await self._storage_call(storage.primary_key, spec.name)
        except StorageError as exc:
            self._fail_table(result, self.redactor.describe(exc), exc)
            return

        cursor = None
        while True:
            if stop.is_set():
                result.cancelled = True
                report.cancelled = True
                logger.info(
                    "table_cancelled", extra={"event_type": "table_cancelled", "table": spec.name}
                )
                return
            try:
                with page_fetch_ms.time() as span:
                    page = await self._storage_call(
                        storage.page_records, spec.name, self.page_size, cursor
                    )
            except StorageError as exc:
                self._fail_table(result, self.redactor.describe(exc), exc)
                return
            result.pages += 1
            for record in page.records:
                await self._scrub_record(spec, record, primary_key, storage, generator, report)
            logger.debug(
                "page_processed",
                extra={
                    "event_type": "page_processed",
                    "table": spec.name,
                    "records": len(page.records),
                    "latency_ms": span.ms,
                },
            )
            cursor = page.next_cursor
            if cursor is None or not page.records:
                break

        logger.info(
            "table_finished",
            extra={
                "event_type": "table_finished",
                "table": spec.name,
                "records": result.records_transformed,
            },
        )

    async def _scrub_record(
        self,
        spec: TableSpec,
        record: Record,
        primary_key: str,
        storage: Storage,
        generator: Any,
        report: ScrubReport,
    ) -> None:
        pk_value = record.get(primary_key)
        try:
            changes = await spec.apply(generator, record, primary_key)
        except Exception as exc:  # formatters are user code; contain per record
            self._fail_record(report, spec.name, pk_value, exc)
            return
        if changes:
            try:
                await self._storage_call(storage.update_record, spec.name, pk_value, changes)
            except StorageError as exc:
                # The worker thread cannot be cancelled, so a timed-out write may
                # still land.
                outcome = UNKNOWN if exc.timed_out else SKIPPED
                self._fail_record(report, spec.name, pk_value, exc, outcome)
                return
        report.table(spec.name).records_transformed += 1
        records_scrubbed_total.inc()

    def _fail_record(
        self,
        report: ScrubReport,
        table: str,
        pk_value: Any,
        exc: Exception,
        outcome: str = SKIPPED,
    ) -> None:
        category = categorize(exc)
        report.record_failure(table, pk_value, self.redactor.describe(exc), category, outcome)
        record_failures_total.inc()
        logger.warning(
            "record_failed",
            extra={
                "event_type": "record_failed",
                "table": table,
                "primary_key": pk_value,
                "error_category": category.value,
                "outcome": outcome,
            },
        )

    def _fail_table(self, result: TableResult, message: str, exc: Exception) -> None:
        result.error = message
        tables_failed_total.inc()
        logger.error(
            "table_failed",
            extra={
                "event_type": "table_failed",
                "table": result.name,
                "error_category": categorize(exc).value,
            },
        )

    async def _storage_call(self, func: Callable[..., T], *args: Any) -> T:
        call = asyncio.to_thread(func, *args)
        try:
            if self.timeout is None:
                return await call
            return await asyncio.wait_for(call, self.timeout)
        except asyncio.TimeoutError as exc:
            name = getattr(func, "__name__", "storage call")
            raise StorageError(f"{name} timed out after {self.timeout}s", timed_out=True) from exc
