"""``ccs-rescale`` command: signal a running job to change its slot count.

Standard output carries exactly one of: the usage text, ``0`` or ``1``.
Diagnostics go to standard error.
"""

from __future__ import annotations

import logging
from typing import NoReturn

import typer
from rich.console import Console
from rich.panel import Panel

from ccsrescale import __version__
from ccsrescale._internal.config import load_config
from ccsrescale._internal.errors import ConfigError, UsageError
from ccsrescale._internal.logging import setup_logging
from ccsrescale.engine.exchange import execute_rescale
from ccsrescale.protocol.bitmap import encode_bitmap, payload_length
from ccsrescale.protocol.request import Mode, RescaleRequest, resolve_request

console = Console(stderr=True)

PROG_NAME = "ccs-rescale"
USAGE = f"Usage: {PROG_NAME} <hostname> <port> <oldprocs> <newprocs>"


def _usage_exit() -> NoReturn:
    typer.echo(USAGE)
    raise typer.Exit(code=1)


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"{PROG_NAME} {__version__}")
        raise typer.Exit


def _request_panel(request: RescaleRequest) -> Panel:
    """Summarise a request for ``--verbose`` output."""
    lines = [
        f"[bold]Server:[/bold]  {request.host}:{request.port}",
        f"[bold]Mode:[/bold]    {request.mode.name.lower()}",
        f"[bold]Slots:[/bold]   {request.old_count} -> {request.new_count}",
    ]
    if request.mode is not Mode.NOOP:
        active = encode_bitmap(request).active_slots
        lines.append(f"[bold]Kept:[/bold]    {len(active)} of {request.old_count}")
        lines.append(f"[bold]Payload:[/bold] {payload_length(request.old_count)} bytes")
    return Panel("\n".join(lines), title="ccs-rescale", border_style="cyan")


def rescale_cmd(
    hostname: str | None = typer.Argument(
        None,
        help="Control server hostname or IP address.",
        show_default=False,
    ),
    port: str | None = typer.Argument(
        None,
        help="Control server CCS port.",
        show_default=False,
    ),
    oldprocs: str | None = typer.Argument(
        None,
        help="Number of worker slots currently active.",
        show_default=False,
    ),
    newprocs: str | None = typer.Argument(
        None,
        help="Number of worker slots requested.",
        show_default=False,
    ),
    timeout: float | None = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Seconds to wait for the server's confirmation (default: $CCSRESCALE_RESPONSE_TIMEOUT or 180).",
    ),
    connect_timeout: float | None = typer.Option(
        None,
        "--connect-timeout",
        help="Seconds allowed to reach the server (default: $CCSRESCALE_CONNECT_TIMEOUT or 120).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging on stderr.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit log lines as JSON.",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Ask a running job's control server to move from OLDPROCS to NEWPROCS slots.

    Prints 1 once the server confirms, 0 otherwise.
    """
    if hostname is None or port is None or oldprocs is None or newprocs is None:
        _usage_exit()

    try:
        config = load_config().with_overrides(
            response_timeout=timeout,
            connect_timeout=connect_timeout,
        )
    except ConfigError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    setup_logging(
        logging.DEBUG if verbose else config.log_level,
        json_format=json_logs or config.json_logs,
    )

    try:
        request = resolve_request(hostname, port, oldprocs, newprocs)
    except UsageError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        _usage_exit()

    if verbose:
        console.print(_request_panel(request))

    result = execute_rescale(request, config=config)
    typer.echo(result.outcome.signal, nl=False)
