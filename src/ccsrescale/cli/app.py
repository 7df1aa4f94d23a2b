"""Main Typer application, the entry point for the ``ccs-rescale`` CLI."""

from __future__ import annotations

import typer

from ccsrescale.cli.rescale import PROG_NAME, rescale_cmd

app = typer.Typer(
    name=PROG_NAME,
    help="Signal a running Charm++ job over CCS to rescale its worker slots.",
    add_completion=False,
    rich_markup_mode="rich",
)

# Extra trailing positionals are ignored and negative numbers reach the
# resolver instead of being parsed as options.
app.command(
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)(rescale_cmd)
