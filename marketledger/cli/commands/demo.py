"""``marketledger demo`` — list and sell items end to end with sample accounts.

Deploys a marketplace against the in-memory item registry and payment rail,
has two sellers list one item each, lets a buyer purchase the first, and
journals every notification.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from marketledger.config import config
from marketledger.core.errors import MarketError
from marketledger.core.journal import NotificationJournal
from marketledger.core.marketplace import MarketplaceLedger
from marketledger.core.payments import InMemoryPaymentRail
from marketledger.core.registry import InMemoryItemRegistry, RegistryDirectory
from marketledger.core.units import to_base_units
from marketledger.monitor.renderer import MarketRenderer

console = Console()

DEPLOYER = "0xdeployer"
SELLERS = ("0xalice", "0xbob")
BUYER = "0xcarol"


def demo_cmd(
    journal_db: Path = typer.Option(
        config.journal_path,
        "--journal",
        "-j",
        help="Path to the notification journal SQLite database.",
    ),
    fee_percent: int = typer.Option(
        config.fee_percent,
        "--fee-percent",
        "-f",
        min=0,
        help="Marketplace fee in whole percentage points.",
    ),
) -> None:
    """Run the two-seller listing and purchase scenario."""
    decimals = config.currency_decimals
    renderer = MarketRenderer(console=console, decimals=decimals)

    nft = InMemoryItemRegistry()
    rail = InMemoryPaymentRail()
    market = MarketplaceLedger(
        fee_percent, DEPLOYER, RegistryDirectory([nft]), rail
    )
    journal = NotificationJournal(journal_db)
    journal.attach(market.bus)
    rail.credit(BUYER, to_base_units("10", decimals))

    console.print()
    console.print(
        Panel(
            "[bold]marketledger demo[/bold]\n\n"
            f"Marketplace {market.address} (fee {fee_percent}%)\n"
            f"Journal: {journal_db}",
            border_style="cyan",
            padding=(1, 2),
        )
    )

    try:
        for seller, price in zip(SELLERS, ("2.0", "1.5")):
            token_id = nft.mint(seller, f"ipfs://demo/{seller}")
            nft.set_approval_for_all(seller, market.address, True)
            item_id = market.list_item(
                seller, nft.address, token_id, to_base_units(price, decimals)
            )
            console.print(f"[cyan]Listed[/cyan] item {item_id} by {seller} at {price}")

        console.print(renderer.quotes_table(market.list_unsold()))

        total = market.get_total_price(1)
        receipt = market.purchase_item(BUYER, 1, total)
        console.print(
            f"[green]Bought[/green] item {receipt.item_id} by {receipt.buyer} "
            f"for {renderer.fmt(receipt.paid)}; holder is now {nft.holder_of(receipt.token_id)}"
        )
    except MarketError as exc:
        console.print(f"[bold red]Demo failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    console.print(renderer.listings_table(market.list_all()))
    console.print(renderer.balances_table(rail.balances()))
    console.print(renderer.stats_panel(market.get_stats(), market.address))
    renderer.print_chain_verification(market.address, journal.verify_chain(market.address))
