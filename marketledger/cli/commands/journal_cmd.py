"""``marketledger history`` / ``marketledger verify`` — read the notification journal."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from marketledger.config import config
from marketledger.core.journal import JournalIntegrityError, NotificationJournal
from marketledger.monitor.renderer import MarketRenderer

console = Console()


def _open_journal(journal_db: Path) -> NotificationJournal:
    if not journal_db.exists():
        console.print(f"[bold red]Journal not found:[/bold red] {journal_db}")
        raise typer.Exit(code=1)
    return NotificationJournal(journal_db)


def history_cmd(
    journal_db: Path = typer.Option(
        config.journal_path,
        "--journal",
        "-j",
        help="Path to the notification journal SQLite database.",
    ),
    item_id: int = typer.Option(
        None,
        "--item-id",
        "-i",
        help="Only show notifications about this item.",
    ),
) -> None:
    """Show journaled notifications, one table per market."""
    journal = _open_journal(journal_db)
    renderer = MarketRenderer(console=console)

    markets = journal.markets()
    if not markets:
        console.print("[dim]No notifications journaled.[/dim]")
        return

    for market in markets:
        if item_id is None:
            entries = journal.entries(market)
        else:
            entries = journal.item_history(market, item_id)
        console.print(renderer.journal_table(entries, title=f"Market {market}"))


def verify_cmd(
    journal_db: Path = typer.Option(
        config.journal_path,
        "--journal",
        "-j",
        help="Path to the notification journal SQLite database.",
    ),
) -> None:
    """Verify the hash chain of every market in the journal."""
    journal = _open_journal(journal_db)
    renderer = MarketRenderer(console=console)

    broken = 0
    for market in journal.markets():
        try:
            renderer.print_chain_verification(market, journal.verify_chain(market))
        except JournalIntegrityError as exc:
            broken += 1
            renderer.print_chain_verification(market, False)
            console.print(f"  [red]{exc}[/red]")

    if broken:
        raise typer.Exit(code=1)
