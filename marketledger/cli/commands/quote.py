"""``marketledger quote PRICE`` — show the total a buyer pays for a price."""

from __future__ import annotations

import typer
from rich.console import Console

from marketledger.config import config
from marketledger.core.arithmetic import fee_for, total_price
from marketledger.core.errors import MarketError
from marketledger.core.units import from_base_units, to_base_units

console = Console()


def quote_cmd(
    price: str = typer.Argument(..., help="Listing price in whole currency units, e.g. 2.0"),
    fee_percent: int = typer.Option(
        config.fee_percent,
        "--fee-percent",
        "-f",
        min=0,
        help="Marketplace fee in whole percentage points.",
    ),
    decimals: int = typer.Option(
        config.currency_decimals,
        "--decimals",
        min=0,
        help="Base-unit decimals of the currency.",
    ),
) -> None:
    """Compute price + fee for a listing price, in integer base units."""
    try:
        base_price = to_base_units(price, decimals)
        fee = fee_for(base_price, fee_percent)
        total = total_price(base_price, fee_percent)
    except (ValueError, MarketError) as exc:
        console.print(f"[bold red]Cannot quote {price!r}:[/bold red] {exc}")
        raise typer.Exit(code=1)

    console.print(f"[bold]Price:[/bold] {from_base_units(base_price, decimals)} ({base_price})")
    console.print(f"[bold]Fee ({fee_percent}%):[/bold] {from_base_units(fee, decimals)} ({fee})")
    console.print(
        f"[bold green]Total:[/bold green] {from_base_units(total, decimals)} ({total})"
    )
