"""Rich-based display functions for Gmail Subscription Tracker."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .catalog import ProviderCatalog
from .models import ScanResult, Subscription

console = Console()

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def configure_logging(verbose: bool = False) -> None:
    """Route library logging through the shared console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _status_color(status: str) -> str:
    return "green" if status == "active" else "red"


def _fmt_date(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%d") if value else "-"


def _fmt_amount(amount: float | None, currency: str | None) -> str:
    if amount is None:
        return "-"
    return f"{currency or ''} {amount:,.2f}".strip()


def create_progress(description: str) -> Progress:
    """Create a configured Rich Progress bar."""
    return Progress(
        SpinnerColumn(),
        TextColumn(f"[bold blue]{description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    )


def display_subscriptions(
    subscriptions: Iterable[Subscription], title: str = "Subscriptions"
) -> None:
    """Display stored subscriptions, soonest billing first."""
    subs = sorted(
        subscriptions,
        key=lambda s: (s.next_billing is None, s.next_billing or _FAR_FUTURE, s.provider),
    )

    table = Table(title=title)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Provider")
    table.add_column("Product")
    table.add_column("Amount", justify="right")
    table.add_column("Tag")
    table.add_column("Next billing")
    table.add_column("Status")

    for idx, sub in enumerate(subs, start=1):
        color = _status_color(sub.status)
        table.add_row(
            str(idx),
            sub.provider,
            sub.product or "-",
            _fmt_amount(sub.amount, sub.currency),
            sub.tag or "-",
            _fmt_date(sub.next_billing),
            f"[{color}]{sub.status}[/{color}]",
        )

    console.print(table)


def display_scan_summary(scan_result: ScanResult) -> None:
    merge = scan_result.merge
    lines = [
        f"Messages analysed: {scan_result.total_messages}",
        f"Subscriptions found: {len(scan_result.candidates)}",
        f"[green]New: {len(merge.created)}[/green]  |  Updated: {len(merge.updated)}",
    ]
    if merge.failed:
        lines.append(f"[red]Failed: {len(merge.failed)}[/red]")
        for failure in merge.failed:
            lines.append(f"  - {failure.provider}: {failure.error}")
    console.print(Panel("\n".join(lines), title=f"Scan for {scan_result.user_id}"))


def display_catalog(catalog: ProviderCatalog) -> None:
    table = Table(title="Provider Catalog")
    table.add_column("Provider")
    table.add_column("Tag")
    for entry in catalog:
        table.add_row(entry.name, entry.tag)
    console.print(table)
    console.print(f"[dim]{len(catalog)} providers[/dim]")
