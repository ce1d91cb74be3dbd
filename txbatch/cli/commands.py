"""CLI command implementations for txbatch."""

from __future__ import annotations

import json
import os
import sys
from decimal import Decimal, InvalidOperation
from typing import Any

import click
from pydantic import ValidationError

from txbatch.models.config import Settings
from txbatch.utils.logger import configure_logging
from txbatch.utils.validators import format_validation_errors


def _get_settings() -> Settings:
    """Load settings from the environment and .env file."""
    return Settings()


def _print_result(title: str, fields: dict[str, Any]) -> None:
    click.echo(f"\n{title}")
    for key, value in fields.items():
        click.echo(f"  {key}: {value}")


def _fail(message: str) -> None:
    click.echo(f"[ERROR] {message}", err=True)
    sys.exit(1)


def _confirmation_skipped(yes: bool) -> bool:
    return yes or bool(os.environ.get("CI"))


# --- Token batches ---


@click.command()
@click.option("--rpc", required=True, help="JSON-RPC endpoint URL")
@click.option("--token", required=True, help="ERC20 token contract address")
@click.option("--to", "to_address", required=True, help="Recipient address")
@click.option("--count", default=20, type=int, show_default=True, help="Number of transfers")
@click.option("--min", "min_amount", default="0.01", show_default=True, help="Minimum amount")
@click.option("--max", "max_amount", default="0.5", show_default=True, help="Maximum amount")
@click.option("--delay", default=1.0, type=float, show_default=True, help="Seconds between sends")
@click.option("--retries", default=3, type=int, show_default=True, help="Attempts per transfer")
@click.option("--log", "log_dir", default=None, help="Transaction log directory")
@click.option("--dry-run", is_flag=True, help="Plan and print amounts without sending")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def transfer(
    rpc: str,
    token: str,
    to_address: str,
    count: int,
    min_amount: str,
    max_amount: str,
    delay: float,
    retries: int,
    log_dir: str | None,
    dry_run: bool,
    yes: bool,
    verbose: bool,
) -> None:
    """Send COUNT random-amount ERC20 transfers from the PRIVATE_KEY wallet."""
    settings = _get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)

    if dry_run:
        _preview(min_amount, max_amount, count)
        return

    if not settings.private_key:
        _fail("PRIVATE_KEY not set in environment (.env). Aborting.")

    from eth_account import Account

    from txbatch.models.batch_config import TokenTransferConfig

    try:
        config = TokenTransferConfig(
            private_key=settings.private_key or "",
            rpc=rpc,
            token=token,
            to=to_address,
            count=count,
            min_amount=min_amount,
            max_amount=max_amount,
            delay=delay,
            retries=retries,
            log_dir=log_dir or settings.log_dir,
        )
        sender = Account.from_key(config.private_key).address
    except ValidationError as exc:
        _fail(f"Invalid configuration: {format_validation_errors(exc.errors())}")
        return
    except ValueError:
        _fail("Invalid private key")
        return

    _print_result(
        "SUMMARY",
        {
            "Sender": sender,
            "Token": config.token,
            "To": config.to,
            "Count": config.count,
            "Amount range": f"{config.min_amount} - {config.max_amount}",
        },
    )
    if not _confirmation_skipped(yes) and not click.confirm("Type y to proceed", default=False):
        click.echo("Aborted by user.")
        return

    from txbatch.services.nonce_allocator import NonceAllocator
    from txbatch.services.orchestrator import BatchOrchestrator

    orchestrator = BatchOrchestrator(
        nonce_allocator=NonceAllocator(settings.nonce_lease_ttl_seconds),
        receipt_timeout=settings.receipt_timeout_seconds,
    )
    try:
        summary = orchestrator.run(config)
    except Exception as exc:
        click.echo(f"Fatal error: {exc}", err=True)
        sys.exit(1)

    for result in summary.results:
        click.echo(
            f"  #{result.index} amount={result.amount} nonce={result.nonce} "
            f"hash={result.hash} block={result.block_number}"
        )
    for failure in summary.failures:
        click.echo(f"  #{failure.index} skipped: {failure.error}")
    click.echo(
        f"All done in {summary.duration:.2f}s. "
        f"{summary.successful}/{summary.total} sent. Tx log saved to {summary.log_path}"
    )


def _preview(min_amount: str, max_amount: str, count: int) -> None:
    """Print the amounts a run would plan."""
    from txbatch.core.amounts import plan_amounts

    if count < 1:
        _fail("count must be at least 1")
    try:
        amounts = list(plan_amounts(min_amount, max_amount, count))
    except (ValueError, InvalidOperation) as exc:
        _fail(f"Invalid amount bounds: {exc}")
        return

    click.echo(f"[DRY RUN] Planned {count} transfer(s):")
    for index, amount in enumerate(amounts, start=1):
        click.echo(f"  #{index}: {amount}")
    click.echo(f"  Total: {sum((Decimal(amount) for amount in amounts), Decimal(0))}")
    click.echo("Nothing was broadcast.")


# --- One-off interactions ---


@click.command()
@click.option(
    "--action",
    required=True,
    type=click.Choice(["sign", "send-raw", "wallet"]),
    help="Interaction to perform",
)
@click.option("--message", default=None, help="Message to sign (sign)")
@click.option("--rpc", default=None, help="JSON-RPC endpoint URL (send-raw, wallet)")
@click.option("--to", "to_address", default=None, help="Destination address (send-raw)")
@click.option("--data", default=None, help="0x-prefixed calldata (send-raw)")
@click.option("--value", default="0", show_default=True, help="Ether value (send-raw)")
@click.option("--gas-limit", default=None, type=int, help="Gas limit (send-raw)")
@click.option("--chain-id", default=None, type=int, help="Chain id (send-raw)")
def interact(
    action: str,
    message: str | None,
    rpc: str | None,
    to_address: str | None,
    data: str | None,
    value: str,
    gas_limit: int | None,
    chain_id: int | None,
) -> None:
    """Sign a message, send one raw transaction or show wallet info."""
    settings = _get_settings()
    configure_logging(settings.log_level)
    if not settings.private_key:
        _fail("PRIVATE_KEY not set in .env")

    from txbatch.services.interaction import InteractionService

    service = InteractionService(receipt_timeout=settings.receipt_timeout_seconds)
    try:
        if action == "sign":
            if not message:
                _fail("Missing --message")
            result = service.sign_message(settings.private_key, message or "")
            _print_result(
                "Message Signed",
                {
                    "Address": result["address"],
                    "Message": result["message"],
                    "Signature": result["signature"],
                },
            )
        elif action == "send-raw":
            if not (rpc and to_address and data):
                _fail("Missing required args: --rpc, --to, --data")
            click.echo(f"\nSending transaction to {to_address} via {rpc}...")
            sent = service.send_raw_transaction(
                settings.private_key,
                rpc or "",
                to_address or "",
                data=data or "0x",
                value=value,
                gas_limit=gas_limit,
                chain_id=chain_id,
            )
            status = {1: "Success", 0: "Failed"}.get(sent["status"], "Unconfirmed")
            _print_result(
                "Transaction Sent",
                {
                    "Hash": sent["hash"],
                    "From": sent["from"],
                    "Block": sent["blockNumber"],
                    "Status": status,
                    "Gas Used": sent["gasUsed"],
                },
            )
        else:
            if not rpc:
                _fail("Missing --rpc")
            info = service.wallet_info(settings.private_key, rpc or "")
            _print_result(
                "Wallet Info",
                {
                    "Address": info["address"],
                    "Balance": f"{info['balance']} ETH",
                    "Nonce": info["nonce"],
                    "Chain ID": info["chainId"],
                    "Network": info["network"],
                },
            )
    except Exception as exc:
        click.echo(f"\nError: {exc}", err=True)
        sys.exit(1)


@click.command()
@click.option("--count", default=1, type=int, show_default=True, help="Wallets to create (1-100)")
@click.option(
    "--output-format",
    default="table",
    type=click.Choice(["table", "json"]),
    help="Output format",
)
def generate_wallets(count: int, output_format: str) -> None:
    """Create random wallets and print their addresses and private keys."""
    from txbatch.services.interaction import InteractionService

    try:
        wallets = InteractionService.generate_wallets(count)
    except ValueError as exc:
        _fail(str(exc))
        return

    if output_format == "json":
        click.echo(json.dumps({"count": len(wallets), "wallets": wallets}, indent=2))
        return
    for wallet in wallets:
        click.echo(f"{wallet['address']}  {wallet['privateKey']}")


# --- HTTP API ---


@click.command()
@click.option("--host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
@click.option("--port", default=None, type=int, help="Bind port (default: PORT or 3000)")
def serve(host: str | None, port: int | None) -> None:
    """Run the HTTP job API."""
    import uvicorn

    from txbatch.api.app import create_app

    settings = _get_settings()
    configure_logging(settings.log_level, json_output=True)
    app = create_app(settings)
    uvicorn.run(
        app,
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )
