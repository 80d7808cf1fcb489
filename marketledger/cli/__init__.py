"""marketledger CLI — Typer-based command-line interface.

Provides the ``marketledger`` command with subcommands for quoting prices,
running the demo scenario and inspecting the notification journal.

All output uses Rich for formatted terminal display.
"""
