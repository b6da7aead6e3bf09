"""Doctor command for environment diagnostics."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from adapters.json_store import JsonSiteStore
from core.config import AppSettings, get_user_env_file
from core.domain.errors import StorageError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _check_store(settings: AppSettings) -> tuple[bool, str]:
    path = settings.resolved_data_file()
    if not path.exists():
        return True, f"{path} (not created yet)"
    try:
        records = JsonSiteStore(path).load()
    except StorageError as exc:
        return False, str(exc)
    return True, f"{path} ({len(records)} sites)"


@app.command()
def run() -> None:
    """Show effective configuration and check the site store."""

    settings = AppSettings()

    table = Table(title="freeapi-tracker doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    user_env = get_user_env_file()
    table.add_row("User config", "OK" if user_env.exists() else "OPTIONAL", str(user_env))
    table.add_row("HTTP timeout", "OK", f"{settings.http_timeout_seconds:g}s")

    if settings.verify_tls:
        table.add_row("TLS verification", "OK", "Certificates are validated")
    else:
        table.add_row(
            "TLS verification",
            "WARN",
            "Disabled (self-signed mirrors accepted). Set FREEAPI_TRACKER_VERIFY_TLS=true to enforce.",
        )

    ok_store, detail_store = _check_store(settings)
    table.add_row("Site store", "OK" if ok_store else "FAIL", detail_store)

    _console.print(table)

    if not ok_store:
        raise typer.Exit(code=2)
