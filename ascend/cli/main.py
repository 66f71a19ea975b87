"""
Ascend CLI - Command Line Interface for the auction ledger

Main entry point for all CLI commands.
"""

import json
import click
from pathlib import Path

from ascend.utils.logger import AscendLogger, setup_logging


def load_wallet_address(data_dir: Path, name: str) -> bytes:
    """
    Resolve a wallet name to its principal.

    Args:
        data_dir: CLI data directory
        name: Wallet name

    Returns:
        20-byte address
    """
    from ascend.crypto import hex_to_bytes

    wallet_path = data_dir / "wallets" / f"{name}.json"
    if not wallet_path.exists():
        raise click.ClickException(
            f"Wallet '{name}' not found. Create with: ascend wallet create --name {name}"
        )
    wallet_data = json.loads(wallet_path.read_text())
    return hex_to_bytes(wallet_data["address"])


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--data-dir", default="~/.ascend", help="Data directory")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, data_dir):
    """Ascend - Ascending-price auction with escrow"""
    import logging

    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = Path(data_dir).expanduser()
    ctx.obj["data_dir"].mkdir(parents=True, exist_ok=True)

    level = logging.DEBUG if debug else logging.WARNING
    AscendLogger.reset()
    setup_logging(level=level, log_dir=str(ctx.obj["data_dir"] / "logs"))


# =============================================================================
# Wallet Commands
# =============================================================================

@cli.group()
def wallet():
    """Wallet management commands"""
    pass


@wallet.command("create")
@click.option("--name", default="default", help="Wallet name")
@click.pass_context
def wallet_create(ctx, name):
    """Create a new wallet (address only; the host authenticates callers)"""
    from ascend.crypto import generate_keypair, bytes_to_hex
    from ascend.utils.validation import validate_wallet_name

    valid, error = validate_wallet_name(name)
    if not valid:
        raise click.ClickException(error)

    wallet_path = ctx.obj["data_dir"] / "wallets" / f"{name}.json"
    if wallet_path.exists():
        raise click.ClickException(f"Wallet '{name}' already exists")
    wallet_path.parent.mkdir(parents=True, exist_ok=True)

    kp = generate_keypair()
    wallet_data = {
        "name": name,
        "address": bytes_to_hex(kp.address),
        "public_key": bytes_to_hex(kp.public_key),
    }
    wallet_path.write_text(json.dumps(wallet_data, indent=2))

    click.echo(f"✓ Wallet created: {name}")
    click.echo(f"  Address: {wallet_data['address']}")
    click.echo(f"  Saved to: {wallet_path}")


@wallet.command("list")
@click.pass_context
def wallet_list(ctx):
    """List all wallets"""
    wallet_dir = ctx.obj["data_dir"] / "wallets"
    if not wallet_dir.exists() or not any(wallet_dir.glob("*.json")):
        click.echo("No wallets found.")
        return

    for wallet_file in sorted(wallet_dir.glob("*.json")):
        data = json.loads(wallet_file.read_text())
        click.echo(f"  {data['name']}: {data['address']}")


@wallet.command("balance")
@click.argument("name")
@click.pass_context
def wallet_balance(ctx, name):
    """Show total payouts received by a wallet"""
    from ascend.core.storage import StorageManager

    address = load_wallet_address(ctx.obj["data_dir"], name)
    storage = StorageManager(ctx.obj["data_dir"] / "auction")
    click.echo(f"Received: {storage.get_payout_total(address)}")


# =============================================================================
# Auction Commands
# =============================================================================


@cli.group()
@click.option("--now", type=int, default=None, help="Override the clock (unix seconds)")
@click.pass_context
def auction(ctx, now):
    """Auction ledger commands"""
    from ascend.core.clock import FixedClock, SystemClock

    ctx.obj["clock"] = FixedClock(now) if now is not None else SystemClock()


def _storage(ctx):
    from ascend.core.storage import StorageManager

    return StorageManager(ctx.obj["data_dir"] / "auction")


def _ledger(ctx):
    """Load the stored auction with the payout-book transfer backend."""
    from ascend.core.auction import AuctionLedger
    from ascend.core.payments import StoredTransfer

    storage = _storage(ctx)
    if not storage.has_ledger():
        raise click.ClickException("No auction yet. Open one with: ascend auction open --as OWNER")
    return AuctionLedger.load(storage, transfer=StoredTransfer(storage))


def _run(operation):
    """Run a ledger operation, turning rejections into CLI errors."""
    from ascend.core.auction import AuctionError

    try:
        return operation()
    except AuctionError as exc:
        raise click.ClickException(f"{type(exc).__name__}: {exc}")


@auction.command("open")
@click.option("--as", "as_wallet", required=True, help="Owner wallet name")
@click.option("--config", "config_path", default=None, help="dotenv file with ASCEND_* settings")
@click.pass_context
def auction_open(ctx, as_wallet, config_path):
    """Open a new auction"""
    from ascend.core.auction import AuctionLedger
    from ascend.core.config import load_config
    from ascend.core.payments import StoredTransfer

    owner = load_wallet_address(ctx.obj["data_dir"], as_wallet)
    storage = _storage(ctx)
    if storage.has_ledger():
        raise click.ClickException("An auction already exists in this data directory")

    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as exc:
        raise click.ClickException(str(exc))

    now = ctx.obj["clock"].now()
    ledger = AuctionLedger(
        owner,
        now,
        config=config,
        transfer=StoredTransfer(storage),
        storage_manager=storage,
    )

    click.echo("✓ Auction opened")
    click.echo(f"  Owner: {as_wallet}")
    click.echo(f"  Deadline: {ledger.deadline}")
    click.echo(f"  Minimum first bid: {ledger.minimum_next_bid()}")


@auction.command("bid")
@click.argument("amount", type=int)
@click.option("--as", "as_wallet", required=True, help="Bidder wallet name")
@click.pass_context
def auction_bid(ctx, amount, as_wallet):
    """Place a bid"""
    caller = load_wallet_address(ctx.obj["data_dir"], as_wallet)
    ledger = _ledger(ctx)
    now = ctx.obj["clock"].now()

    bid = _run(lambda: ledger.place_bid(caller, amount, now))

    click.echo(f"✓ Bid accepted: {bid.value}")
    click.echo(f"  Deadline: {ledger.deadline}")
    click.echo(f"  Next minimum: {ledger.minimum_next_bid()}")


@auction.command("withdraw")
@click.option("--as", "as_wallet", required=True, help="Bidder wallet name")
@click.pass_context
def auction_withdraw(ctx, as_wallet):
    """Withdraw escrow not backing a leading bid"""
    caller = load_wallet_address(ctx.obj["data_dir"], as_wallet)
    ledger = _ledger(ctx)
    now = ctx.obj["clock"].now()

    amount = _run(lambda: ledger.withdraw(caller, now))
    click.echo(f"✓ Withdrew {amount}")


@auction.command("close")
@click.option("--as", "as_wallet", required=True, help="Owner wallet name")
@click.pass_context
def auction_close(ctx, as_wallet):
    """Close the auction now"""
    caller = load_wallet_address(ctx.obj["data_dir"], as_wallet)
    ledger = _ledger(ctx)
    now = ctx.obj["clock"].now()

    _run(lambda: ledger.close_auction(caller, now))
    click.echo(f"✓ {ledger.events[-1].message}")


@auction.command("refund")
@click.option("--as", "as_wallet", required=True, help="Owner wallet name")
@click.option("--start", default=0, type=int, help="First bidder index")
@click.option("--batch-size", default=None, type=int, help="Bidders per call (default: all)")
@click.pass_context
def auction_refund(ctx, as_wallet, start, batch_size):
    """Refund losing bidders, less commission"""
    caller = load_wallet_address(ctx.obj["data_dir"], as_wallet)
    ledger = _ledger(ctx)
    now = ctx.obj["clock"].now()

    try:
        report = _run(lambda: ledger.refund_losers(caller, now, start=start, batch_size=batch_size))
    except ValueError as exc:
        raise click.ClickException(str(exc))

    click.echo(f"✓ Refunded {len(report.payouts)} bidders ({report.paid} paid, commission {report.commission})")
    if not report.done:
        click.echo(f"  More bidders remain; continue with --start {report.next_index}")


@auction.command("show")
@click.option("--json", "as_json", is_flag=True, help="Print the full snapshot as JSON")
@click.pass_context
def auction_show(ctx, as_json):
    """Show auction state"""
    from ascend.crypto import bytes_to_hex

    ledger = _ledger(ctx)
    now = ctx.obj["clock"].now()

    if as_json:
        click.echo(ledger.snapshot(now).model_dump_json(indent=2))
        return

    highest = ledger.get_highest_bid()
    click.echo("Auction")
    click.echo("-" * 40)
    click.echo(f"  Status: {'open' if ledger.is_open(now) else 'closed'}")
    click.echo(f"  Deadline: {ledger.deadline} ({ledger.time_remaining(now)}s left)")
    click.echo(f"  Highest bid: {highest.value} by {bytes_to_hex(highest.bidder)[:12]}...")
    click.echo(f"  Bids: {len(ledger.get_bids())}")
    click.echo(f"  Escrowed: {ledger.stats()['total_escrowed']}")


@auction.command("winner")
@click.pass_context
def auction_winner(ctx):
    """Show the winning bid (auction must be closed)"""
    from ascend.crypto import bytes_to_hex

    ledger = _ledger(ctx)
    now = ctx.obj["clock"].now()

    winner = _run(lambda: ledger.get_winner(now))
    click.echo(f"Winner: {bytes_to_hex(winner.bidder)} with {winner.value}")


@auction.command("events")
@click.pass_context
def auction_events(ctx):
    """List stored auction events"""
    storage = _storage(ctx)
    for name, payload in storage.load_events():
        fields = ", ".join(f"{k}={v}" for k, v in sorted(payload.items()))
        click.echo(f"  {name}({fields})")


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
@click.option("--base", default=1000, type=int, help="Sentinel base bid")
def demo(base):
    """Run an in-memory walkthrough of an auction"""
    from ascend.core.auction import AuctionLedger, AuctionError
    from ascend.core.clock import FixedClock
    from ascend.core.config import AuctionConfig
    from ascend.core.payments import InMemoryTransfer
    from ascend.crypto import generate_keypair

    click.echo("=" * 60)
    click.echo("  ASCEND - AUCTION DEMO")
    click.echo("=" * 60)
    click.echo()

    owner = generate_keypair().address
    alice = generate_keypair().address
    bob = generate_keypair().address

    clock = FixedClock(1_700_000_000)
    transfer = InMemoryTransfer()
    config = AuctionConfig(base_bid=base)
    ledger = AuctionLedger(owner, clock.now(), config=config, transfer=transfer)
    click.echo(f"📦 Auction opened, base bid {base}, deadline in {config.auction_duration}s")

    first = ledger.minimum_next_bid()
    ledger.place_bid(alice, first, clock.advance(60))
    click.echo(f"  ✓ Alice bids {first}")

    too_low = ledger.minimum_next_bid() - 1
    try:
        ledger.place_bid(bob, too_low, clock.advance(60))
    except AuctionError as exc:
        click.echo(f"  ✗ Bob bids {too_low}: {type(exc).__name__}")

    second = ledger.minimum_next_bid()
    ledger.place_bid(bob, second, clock.advance(60))
    click.echo(f"  ✓ Bob bids {second}")
    click.echo()

    click.echo("⚖️  Owner closes and refunds...")
    ledger.close_auction(owner, clock.advance(60))
    report = ledger.refund_losers(owner, clock.advance(1))
    winner = ledger.get_winner(clock.now())

    click.echo(f"  ✓ Winner bid: {winner.value}")
    click.echo(f"  ✓ Alice refunded {transfer.balance_of(alice)} (commission {report.commission})")
    click.echo(f"  ✓ Bob refunded {transfer.balance_of(bob)}")
    click.echo()
    click.echo(f"📊 {ledger.stats()}")
    click.echo("✅ Demo complete!")


if __name__ == "__main__":
    cli()
