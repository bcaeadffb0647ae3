"""Typer application and CLI entry point for esplora.

A thin front end over :class:`~esplora.client.BlockingClient`: the root
callback resolves the connection settings (flags, then ``ESPLORA_*``
environment variables, then defaults) and installs the output manager; each
sub-command performs one call and prints the decoded result.

Every :class:`~esplora.exceptions.EsploraError` is reported on stderr and
the process exits with the error's ``exit_code`` (see
:mod:`esplora.exit_codes`).

Example::

    $ esplora --url https://mempool.space/api height
    $ esplora fee-estimate --target 6
"""

from __future__ import annotations

import signal
import sys
from typing import Any, Callable, Optional, TypeVar

import typer

from esplora import __version__, consensus
from esplora.client import BlockingClient
from esplora.config import config_from_env
from esplora.exceptions import EsploraError, NotFoundError, TransactionNotFoundError
from esplora.fees import convert_fee_rate
from esplora.output import (
    OutputFormat,
    OutputManager,
    configure_logging,
    get_output,
    set_output,
)

T = TypeVar("T")

app = typer.Typer(
    name="esplora",
    help="Query an Esplora blockchain-indexing API.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"esplora {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    url: Optional[str] = typer.Option(
        None, "--url", "-u", help="Esplora API base URL (env: ESPLORA_URL)."
    ),
    proxy: Optional[str] = typer.Option(
        None, "--proxy", help="Proxy URL (env: ESPLORA_PROXY)."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Socket timeout in seconds (env: ESPLORA_TIMEOUT)."
    ),
    max_retries: Optional[int] = typer.Option(
        None, "--max-retries", help="Retries on 429/500/503 (env: ESPLORA_MAX_RETRIES)."
    ),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Extra request header as NAME:VALUE (repeatable)."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log every request and retry to stderr."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~esplora.output.OutputManager` and stores the
    resolved :class:`~esplora.models.ClientConfig` in ``ctx.obj``.
    """
    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)

    headers: dict[str, str] = {}
    for item in header or []:
        name, sep, value = item.partition(":")
        if not sep:
            raise typer.BadParameter(f"expected NAME:VALUE, got {item!r}", param_hint="--header")
        headers[name.strip()] = value.strip()

    ctx.ensure_object(dict)
    ctx.obj["config"] = _run(
        lambda: config_from_env(
            base_url=url,
            proxy=proxy,
            timeout=timeout,
            max_retries=max_retries,
            headers=headers,
        )
    )


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _run(call: Callable[[], T]) -> T:
    """Run *call*, turning an :class:`EsploraError` into a clean exit."""
    try:
        return call()
    except EsploraError as exc:
        get_output().error(str(exc))
        raise typer.Exit(code=exc.exit_code) from exc


def _query(ctx: typer.Context, call: Callable[[BlockingClient], T]) -> T:
    def _with_client() -> T:
        with BlockingClient(ctx.obj["config"]) as client:
            return call(client)

    return _run(_with_client)


def _dump(model: Any) -> Any:
    return model.model_dump(mode="json")


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@app.command("height")
def height_command(ctx: typer.Context) -> None:
    """Print the height of the chain tip."""
    get_output().format_response(_query(ctx, lambda c: c.height()))


@app.command("tip-hash")
def tip_hash_command(ctx: typer.Context) -> None:
    """Print the hash of the chain tip."""
    get_output().format_response(_query(ctx, lambda c: c.tip_hash()))


@app.command("block-hash")
def block_hash_command(
    ctx: typer.Context,
    height: int = typer.Argument(..., min=0, help="Block height."),
) -> None:
    """Print the hash of the block at HEIGHT."""
    get_output().format_response(_query(ctx, lambda c: c.block_hash(height)))


@app.command("tx")
def tx_command(
    ctx: typer.Context,
    txid: str = typer.Argument(..., help="Transaction id."),
) -> None:
    """Print a raw transaction as consensus hex."""
    tx = _query(ctx, lambda c: c.tx_no_opt(txid))
    get_output().format_response(tx.consensus_serialize().hex())


@app.command("tx-info")
def tx_info_command(
    ctx: typer.Context,
    txid: str = typer.Argument(..., help="Transaction id."),
) -> None:
    """Print the JSON description of a transaction."""

    def _call(client: BlockingClient) -> Any:
        info = client.tx_info(txid)
        if info is None:
            raise TransactionNotFoundError(txid)
        return info

    get_output().format_response(_dump(_query(ctx, _call)))


@app.command("tx-status")
def tx_status_command(
    ctx: typer.Context,
    txid: str = typer.Argument(..., help="Transaction id."),
) -> None:
    """Print the confirmation status of a transaction."""
    get_output().format_response(_dump(_query(ctx, lambda c: c.tx_status(txid))))


@app.command("fee-estimate")
def fee_estimate_command(
    ctx: typer.Context,
    target: Optional[int] = typer.Option(
        None, "--target", "-t", min=0, help="Confirmation target in blocks."
    ),
) -> None:
    """Print fee estimates (sat/vB), or the single rate for --target."""
    estimates = _query(ctx, lambda c: c.fee_estimates())
    if target is None:
        get_output().format_response({str(k): v for k, v in sorted(estimates.items())})
        return

    def _select() -> float:
        rate = convert_fee_rate(target, estimates)
        if rate is None:
            raise NotFoundError(f"No fee estimate at or below {target} blocks")
        return rate

    get_output().format_response(_run(_select))


@app.command("blocks")
def blocks_command(
    ctx: typer.Context,
    height: Optional[int] = typer.Option(
        None, "--height", min=0, help="Start at this height instead of the tip."
    ),
) -> None:
    """List recent block summaries."""
    summaries = _query(ctx, lambda c: c.blocks(height))
    rows = [[str(b.height), b.id, str(b.timestamp)] for b in summaries]
    get_output().print_table(["height", "hash", "timestamp"], rows, title="Blocks")


@app.command("address")
def address_command(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="Bitcoin address."),
) -> None:
    """Print chain and mempool statistics for ADDRESS."""
    get_output().format_response(_dump(_query(ctx, lambda c: c.address_stats(address))))


@app.command("broadcast")
def broadcast_command(
    ctx: typer.Context,
    raw_hex: str = typer.Argument(..., help="Consensus-encoded transaction as hex."),
) -> None:
    """Broadcast a transaction and print its txid."""
    try:
        tx = consensus.Tx.consensus_deserialize(bytes.fromhex(raw_hex.strip()))
    except ValueError as exc:
        raise typer.BadParameter(f"not a valid transaction: {exc}", param_hint="RAW_HEX") from exc
    _query(ctx, lambda c: c.broadcast(tx))
    get_output().info("Transaction accepted")
    get_output().format_response(tx.txid())


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """Console-script entry point declared in ``pyproject.toml``."""
    _setup_signal_handlers()
    app()
