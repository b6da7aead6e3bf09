"""CLI principal (Typer).

Por qué la CLI es delgada:
- Solo traduce argumentos a llamadas del Core y pinta resultados con Rich.
- Toda la lógica de resolución/orquestación vive en `core` y `adapters`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from adapters.billing_api import BillingApiResolver
from adapters.json_store import JsonSiteStore
from cli import doctor
from cli.ui_components import (
    build_balance_panel,
    build_batch_table,
    build_sites_table,
    build_stats_panel,
)
from core.config import AppSettings
from core.domain.errors import ResolutionError, SiteNotFoundError, StorageError
from core.domain.models import BatchResultEntry, SiteStatus
from core.services.balance_poller import BalanceCheckService, PollHooks
from core.services.site_registry import SiteRegistry

app = typer.Typer(no_args_is_help=True, help="Track balances and models of free AI API sites.")
app.add_typer(doctor.app, name="doctor")

_console = Console()

EXIT_RESOLUTION_FAILED = 1
EXIT_STORAGE_FAILED = 2
EXIT_INVALID_INPUT = 3


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _store(settings: AppSettings) -> JsonSiteStore:
    return JsonSiteStore(settings.resolved_data_file())


def _fail(message: str, code: int) -> typer.Exit:
    _console.print(f"[red]{message}[/red]")
    return typer.Exit(code=code)


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    field = ".".join(str(part) for part in error["loc"])
    return f"{field}: {error['msg']}" if field else error["msg"]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log HTTP traffic (DEBUG)."),
) -> None:
    settings = AppSettings()
    configure_logging("DEBUG" if verbose else settings.log_level)


@app.command(name="list")
def list_sites() -> None:
    """List registered sites with their cached balance."""

    settings = AppSettings()
    try:
        records = SiteRegistry(_store(settings)).list_sites()
    except StorageError as exc:
        raise _fail(f"Storage error: {exc}", EXIT_STORAGE_FAILED)
    if not records:
        _console.print("[dim]No sites registered yet. Use `add` to register one.[/dim]")
        return
    _console.print(build_sites_table(records, low_balance_threshold=settings.low_balance_threshold))


@app.command()
def add(
    name: str = typer.Option(..., "--name", help="Display name."),
    url: str = typer.Option(..., "--url", help="Base URL of the OpenAI-compatible API."),
    api_key: str = typer.Option(..., "--api-key", help="Bearer token for the API."),
    balance: float = typer.Option(0.0, "--balance", help="Initial balance (USD) until the first check."),
    status: SiteStatus = typer.Option(SiteStatus.ACTIVE, "--status", help="active / inactive."),
) -> None:
    """Register a new site."""

    settings = AppSettings()
    try:
        record = SiteRegistry(_store(settings)).add_site(
            name=name, url=url, api_key=api_key, balance=balance, status=status
        )
    except ValidationError as exc:
        raise _fail(f"Invalid site: {_first_error(exc)}", EXIT_INVALID_INPUT)
    except StorageError as exc:
        raise _fail(f"Storage error: {exc}", EXIT_STORAGE_FAILED)
    _console.print(f"[green]Added[/green] {record.name} ([dim]{record.id}[/dim])")


@app.command()
def edit(
    site_id: str = typer.Argument(..., help="Site id (see `list`)."),
    name: Optional[str] = typer.Option(None, "--name", help="New display name."),
    url: Optional[str] = typer.Option(None, "--url", help="New base URL."),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="New bearer token."),
    balance: Optional[float] = typer.Option(None, "--balance", help="Override the cached balance (USD)."),
    status: Optional[SiteStatus] = typer.Option(None, "--status", help="active / inactive."),
) -> None:
    """Edit a site. Options left out keep their current value."""

    settings = AppSettings()
    try:
        record = SiteRegistry(_store(settings)).update_site(
            site_id, name=name, url=url, api_key=api_key, balance=balance, status=status
        )
    except SiteNotFoundError as exc:
        raise _fail(str(exc), EXIT_RESOLUTION_FAILED)
    except ValidationError as exc:
        raise _fail(f"Invalid site: {_first_error(exc)}", EXIT_INVALID_INPUT)
    except StorageError as exc:
        raise _fail(f"Storage error: {exc}", EXIT_STORAGE_FAILED)
    _console.print(f"[green]Updated[/green] {record.name} ([dim]{record.id}[/dim])")


@app.command()
def remove(site_id: str = typer.Argument(..., help="Site id (see `list`).")) -> None:
    """Delete a site."""

    settings = AppSettings()
    try:
        record = SiteRegistry(_store(settings)).remove_site(site_id)
    except SiteNotFoundError as exc:
        raise _fail(str(exc), EXIT_RESOLUTION_FAILED)
    except StorageError as exc:
        raise _fail(f"Storage error: {exc}", EXIT_STORAGE_FAILED)
    _console.print(f"[green]Removed[/green] {record.name}")


@app.command()
def models(site_id: str = typer.Argument(..., help="Site id (see `list`).")) -> None:
    """Print the cached model list of a site."""

    settings = AppSettings()
    try:
        record = SiteRegistry(_store(settings)).get_site(site_id)
    except SiteNotFoundError as exc:
        raise _fail(str(exc), EXIT_RESOLUTION_FAILED)
    except StorageError as exc:
        raise _fail(f"Storage error: {exc}", EXIT_STORAGE_FAILED)
    if not record.models:
        _console.print("[dim]No models cached. Run `check` first.[/dim]")
        return
    for model_id in record.models:
        _console.print(model_id)


@app.command()
def check(site_id: str = typer.Argument(..., help="Site id (see `list`).")) -> None:
    """Check balance and models of one site."""

    settings = AppSettings()
    store = _store(settings)
    service = BalanceCheckService(store, BillingApiResolver(settings))
    try:
        name = SiteRegistry(store).get_site(site_id).name
        data = asyncio.run(service.check_one(site_id))
    except SiteNotFoundError as exc:
        raise _fail(str(exc), EXIT_RESOLUTION_FAILED)
    except ResolutionError as exc:
        raise _fail(f"Balance check failed: {exc.message}", EXIT_RESOLUTION_FAILED)
    except StorageError as exc:
        raise _fail(f"Storage error: {exc}", EXIT_STORAGE_FAILED)

    _console.print(build_balance_panel(name, data))


@app.command(name="check-all")
def check_all() -> None:
    """Check balance and models of every site, one after another."""

    settings = AppSettings()
    service = BalanceCheckService(_store(settings), BillingApiResolver(settings))

    with _console.status("Checking balances...") as status:

        def on_start(total: int) -> None:
            status.update(f"Checking {total} sites...")

        def on_result(entry: BatchResultEntry) -> None:
            mark = "[green]OK[/green]" if entry.success else "[red]FAIL[/red]"
            _console.log(f"{mark} {entry.name}")

        try:
            result = asyncio.run(service.check_all(PollHooks(start=on_start, result=on_result)))
        except StorageError as exc:
            raise _fail(f"Storage error: {exc}", EXIT_STORAGE_FAILED)

    if not result.entries:
        _console.print("[dim]No sites registered yet.[/dim]")
        return

    _console.print(build_batch_table(result.entries))
    _console.print(
        f"[green]{result.success_count} succeeded[/green], "
        f"[red]{result.failure_count} failed[/red]"
    )


@app.command()
def stats() -> None:
    """Show aggregate balance stats."""

    settings = AppSettings()
    try:
        summary = SiteRegistry(_store(settings)).stats(low_balance_threshold=settings.low_balance_threshold)
    except StorageError as exc:
        raise _fail(f"Storage error: {exc}", EXIT_STORAGE_FAILED)
    _console.print(build_stats_panel(summary))


def run() -> None:
    app()
