"""Main Typer application — imports and registers all CLI commands.

Entry point: ``marketledger`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from marketledger.cli.commands.demo import demo_cmd
from marketledger.cli.commands.journal_cmd import history_cmd, verify_cmd
from marketledger.cli.commands.quote import quote_cmd
from marketledger.config import config

app = typer.Typer(
    name="marketledger",
    help="marketledger: fixed-price marketplace ledger with atomic settlement.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="quote", help="Show price + fee for a listing price.")(quote_cmd)
app.command(name="demo", help="List and sell items with sample accounts.")(demo_cmd)
app.command(name="history", help="Show journaled notifications.")(history_cmd)
app.command(name="verify", help="Verify notification journal hash chains.")(verify_cmd)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        config.log_level, "--log-level", help="Logging level (DEBUG, INFO, ...)."
    ),
) -> None:
    """Configure logging before any command runs."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=config.debug)],
        force=True,
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
