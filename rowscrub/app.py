from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from collections.abc import Mapping
from typing import Any

from .config import Settings, get_settings
from .engine import ScrubEngine
from .generator import FakerGenerator
from .loader import load_configuration, restrict_tables
from .logging import configure_logging
from .report import ScrubReport
from .storage.base import Storage


def _install_signal_handlers(stop: asyncio.Event) -> list[signal.Signals]:
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on Windows or outside the main thread.
        with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
            loop.add_signal_handler(sig, stop.set)
            installed.append(sig)
    return installed


async def run(
    settings: Settings | None = None,
    *,
    configuration: Mapping[str, Any] | None = None,
    storage: Storage | None = None,
    generator: Any | None = None,
    stop: asyncio.Event | None = None,
) -> ScrubReport:
    """Run one scrub with collaborators built from ``settings``.

    Any collaborator passed explicitly is used instead of the default one.
    """

    configure_logging()
    settings = settings or get_settings()
    log = logging.getLogger(__name__)

    if configuration is None:
        configuration = load_configuration(settings.config_path)
    configuration = restrict_tables(configuration, settings.tables)

    owned_storage = None
    if storage is None:
        # Lazy import keeps SQLAlchemy out of programmatic use with custom storage.
        from .storage.sql import SqlStorage

        storage = owned_storage = SqlStorage(settings.database_url)
    if generator is None:
        generator = FakerGenerator(locale=settings.faker_locale, seed=settings.faker_seed)

    stop = stop or asyncio.Event()
    installed = _install_signal_handlers(stop)
    engine = ScrubEngine.from_settings(settings)
    log.info(
        "scrub starting",
        extra={
            "tables": list(configuration),
            "page_size": settings.page_size,
            "concurrency": settings.max_concurrent_tables,
        },
    )
    try:
        return await engine.run(configuration, storage, generator, stop=stop)
    finally:
        loop = asyncio.get_running_loop()
        for sig in installed:
            loop.remove_signal_handler(sig)
        if owned_storage is not None:
            owned_storage.close()
