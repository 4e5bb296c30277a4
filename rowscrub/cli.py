from __future__ import annotations

import asyncio
import json

import typer

from . import app as scrub_app
from .config import Settings
from .errors import ConfigurationError
from .formatters.resolver import Resolver
from .loader import load_configuration, restrict_tables
from .table import build_table_specs

app = typer.Typer(help="Anonymize database tables with realistic fake data")


def _settings(**values: object) -> Settings:
    overrides = {key: value for key, value in values.items() if value is not None}
    return Settings(**overrides)


@app.command()
def scrub(
    config: str | None = typer.Option(None, "--config", "-c", help="Formatter configuration"),
    database_url: str | None = typer.Option(None, help="SQLAlchemy database URL"),
    page_size: int | None = typer.Option(None, min=1, help="Records fetched per page"),
    timeout: float | None = typer.Option(None, help="Seconds allowed per storage call"),
    concurrency: int | None = typer.Option(None, min=1, help="Tables scrubbed in parallel"),
    seed: int | None = typer.Option(None, help="Seed for reproducible fake data"),
    locale: str | None = typer.Option(None, help="Faker locale, e.g. de_DE"),
    table: list[str] | None = typer.Option(None, "--table", "-t", help="Only scrub this table"),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON"),
    verbose: bool = typer.Option(False, help="Print effective settings"),
) -> None:
    """Scrub every configured table and print the report."""
    settings = _settings(
        config_path=config,
        database_url=database_url,
        page_size=page_size,
        storage_timeout_seconds=timeout,
        max_concurrent_tables=concurrency,
        faker_seed=seed,
        faker_locale=locale,
        tables=table or None,
    )
    if verbose:
        typer.echo(settings.model_dump_json(indent=2))
    try:
        report = asyncio.run(scrub_app.run(settings=settings))
    except ConfigurationError as exc:
        typer.echo(f"configuration error: {exc}", err=True)
        raise typer.Exit(code=2)
    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2, default=str))
    else:
        for line in report.summary_lines():
            typer.echo(line)
    if not report.ok:
        raise typer.Exit(code=1)


@app.command()
def check(
    config: str | None = typer.Option(None, "--config", "-c", help="Formatter configuration"),
    table: list[str] | None = typer.Option(None, "--table", "-t", help="Only check this table"),
) -> None:
    """Resolve the configuration without touching the database."""
    settings = _settings(config_path=config)
    try:
        configuration = restrict_tables(load_configuration(settings.config_path), table or [])
        specs = build_table_specs(configuration, Resolver())
    except ConfigurationError as exc:
        typer.echo(f"configuration error: {exc}", err=True)
        raise typer.Exit(code=2)
    for name, spec in specs.items():
        columns = ", ".join(spec.fields) if spec.fields is not None else "*"
        typer.echo(f"{name}: {spec.shape.value} ({columns})")


@app.command()
def tables(
    database_url: str | None = typer.Option(None, help="SQLAlchemy database URL"),
) -> None:
    """List the tables found in the database."""
    from .storage.sql import SqlStorage

    storage = SqlStorage(_settings(database_url=database_url).database_url)
    try:
        for name in storage.list_tables():
            typer.echo(name)
    finally:
        storage.close()


if __name__ == "__main__":  # pragma: no cover
    app()
