"""Rich terminal renderer for marketplace state.

Turns listings, quotes, balances and journal entries into Rich tables.
Amounts are stored in base units and displayed in whole currency units.

Color scheme
------------
- green  : open listing / bought
- dim    : sold listing
- cyan   : offered
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from marketledger.core.units import DEFAULT_DECIMALS, from_base_units
from marketledger.models.journal import JournalEntry
from marketledger.models.listings import Listing, MarketStats, Quote
from marketledger.models.notifications import NotificationKind

_KIND_STYLES: dict[NotificationKind, str] = {
    NotificationKind.OFFERED: "[cyan]OFFERED[/cyan]",
    NotificationKind.BOUGHT: "[green]BOUGHT[/green]",
}


class MarketRenderer:
    """Renders marketplace records as Rich terminal output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    decimals:
        Base-unit decimals used to format amounts.
    """

    def __init__(
        self, console: Console | None = None, decimals: int = DEFAULT_DECIMALS
    ) -> None:
        self.console = console or Console()
        self.decimals = decimals

    def fmt(self, value: int) -> str:
        return str(from_base_units(value, self.decimals))

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def listings_table(self, listings: list[Listing], title: str = "Listings") -> Table:
        table = Table(title=title, header_style="bold cyan")
        table.add_column("Item", justify="right", style="dim")
        table.add_column("Registry")
        table.add_column("Token", justify="right")
        table.add_column("Price", justify="right", style="green")
        table.add_column("Seller")
        table.add_column("Status", justify="center")

        for listing in listings:
            status = "[dim]sold[/dim]" if listing.sold else "[green]open[/green]"
            table.add_row(
                str(listing.item_id),
                _short(listing.registry_ref),
                str(listing.token_id),
                self.fmt(listing.price),
                listing.seller,
                status,
            )
        return table

    def quotes_table(self, quotes: list[Quote], title: str = "For Sale") -> Table:
        table = Table(title=title, header_style="bold cyan")
        table.add_column("Item", justify="right", style="dim")
        table.add_column("Price", justify="right")
        table.add_column("Fee", justify="right")
        table.add_column("Total", justify="right", style="bold green")
        for quote in quotes:
            table.add_row(
                str(quote.item_id),
                self.fmt(quote.price),
                self.fmt(quote.fee),
                self.fmt(quote.total_price),
            )
        return table

    def balances_table(self, balances: dict[str, int], title: str = "Balances") -> Table:
        table = Table(title=title, header_style="bold cyan")
        table.add_column("Account")
        table.add_column("Balance", justify="right", style="green")
        for account, amount in balances.items():
            table.add_row(account, self.fmt(amount))
        return table

    def journal_table(self, entries: list[JournalEntry], title: str = "Journal") -> Table:
        table = Table(title=title, header_style="bold cyan", expand=True)
        table.add_column("#", justify="right", style="dim", width=5)
        table.add_column("Kind", justify="center")
        table.add_column("Item", justify="right")
        table.add_column("Time")
        table.add_column("Entry hash", style="dim")
        for entry in entries:
            table.add_row(
                str(entry.sequence),
                _KIND_STYLES.get(entry.kind, entry.kind.value),
                str(entry.item_id),
                entry.timestamp_utc.strftime("%Y-%m-%d %H:%M:%S"),
                entry.entry_hash[:16] + "...",
            )
        return table

    def stats_panel(self, stats: MarketStats, market: str) -> Panel:
        return Panel(
            "\n".join([
                f"[bold]Market:[/bold]      {market}",
                f"[bold]Listings:[/bold]    {stats.total} "
                f"({stats.sold_count} sold, {stats.unsold_count} open)",
                f"[bold]Listed:[/bold]      {self.fmt(stats.listed_volume)}",
                f"[bold]Settled:[/bold]     {self.fmt(stats.settled_volume)}",
            ]),
            title="[bold]Market Summary[/bold]",
            border_style="green",
            padding=(1, 2),
        )

    # ------------------------------------------------------------------
    # Standalone print
    # ------------------------------------------------------------------

    def print_chain_verification(self, market: str, valid: bool) -> None:
        """Print a chain verification result."""
        if valid:
            self.console.print(f"[green]Journal chain for {market} is valid.[/green]")
        else:
            self.console.print(f"[bold red]Journal chain for {market} is BROKEN![/bold red]")


def _short(identity: str) -> str:
    return identity if len(identity) <= 14 else f"{identity[:8]}...{identity[-4:]}"
