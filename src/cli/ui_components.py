"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from datetime import datetime, timezone

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import BalanceData, BatchResultEntry, EndpointRecord, SiteStats, SiteStatus


def balance_style(balance: float, *, low_balance_threshold: float = 10.0) -> str:
    """Color según saldo: agotado, bajo o suficiente."""

    if balance <= 0:
        return "red"
    if balance < low_balance_threshold:
        return "yellow"
    return "green"


def format_relative(moment: datetime | None, *, now: datetime | None = None) -> str:
    """Tiempo relativo corto ("5m ago"); fechas de más de una semana en ISO."""

    if moment is None:
        return "never"
    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    seconds = (now - moment).total_seconds()
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return moment.date().isoformat()


def build_sites_table(records: list[EndpointRecord], *, low_balance_threshold: float = 10.0) -> Table:
    table = Table(title="Sites")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("URL", style="magenta")
    table.add_column("Balance", justify="right")
    table.add_column("Models", justify="right")
    table.add_column("Status")
    table.add_column("Last check", style="dim")

    for record in records:
        status_style = "green" if record.status is SiteStatus.ACTIVE else "dim"
        table.add_row(
            record.id,
            record.name,
            record.url,
            Text(f"${record.balance:.2f}", style=balance_style(record.balance, low_balance_threshold=low_balance_threshold)),
            str(len(record.models)),
            Text(record.status.value, style=status_style),
            format_relative(record.last_checked),
        )
    return table


def build_balance_panel(name: str, data: BalanceData) -> Panel:
    body = Text()
    body.append("Balance: ", style="bold")
    body.append(f"${data.balance:.2f}\n", style=balance_style(data.balance))
    body.append("Hard limit: ", style="bold")
    body.append("n/a\n" if data.total_limit is None else f"{data.total_limit}\n")
    body.append("Models: ", style="bold")
    body.append(str(data.model_count))
    return Panel(body, title=Text(name or "Balance", style="bold cyan"), border_style="cyan")


def build_batch_table(entries: list[BatchResultEntry]) -> Table:
    table = Table(title="Balance check")
    table.add_column("Name", style="cyan")
    table.add_column("Result")
    table.add_column("Balance", justify="right")
    table.add_column("Models", justify="right")
    table.add_column("Error", style="red")

    for entry in entries:
        if entry.success:
            table.add_row(
                entry.name,
                Text("OK", style="green"),
                f"${entry.balance:.2f}" if entry.balance is not None else "",
                str(entry.model_count or 0),
                "",
            )
        else:
            table.add_row(entry.name, Text("FAIL", style="red"), "", "", entry.error or "")
    return table


def build_stats_panel(stats: SiteStats) -> Panel:
    body = Text()
    body.append(f"Sites: {stats.total}  (active {stats.active})\n")
    body.append(f"No balance: {stats.no_balance}\n", style="red" if stats.no_balance else "")
    body.append(f"Low balance: {stats.low_balance}\n", style="yellow" if stats.low_balance else "")
    body.append(f"Total balance: ${stats.total_balance:.2f}", style="bold green")
    return Panel(body, title=Text("Stats", style="bold yellow"), border_style="yellow")
