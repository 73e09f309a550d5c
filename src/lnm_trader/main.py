"""CLI entry point - lnm-trader command line interface."""

import asyncio
import sys
from pathlib import Path

import click

from lnm_trader import __version__
from lnm_trader.config import Settings, get_settings
from lnm_trader.data.fetcher import IndicatorFetcher, RateLimiter
from lnm_trader.data.taapi import TaapiClient
from lnm_trader.engine import TradingEngine
from lnm_trader.errors import ConfigurationError
from lnm_trader.exchange.lnmarkets import LNMarketsClient
from lnm_trader.exec.dispatcher import TradeDispatcher
from lnm_trader.notify.telegram import TelegramNotifier
from lnm_trader.pipeline import CycleServices, TradingContext
from lnm_trader.risk.exposure import ExposureTracker
from lnm_trader.stream.lnmarkets_ws import LNMarketsStream
from lnm_trader.stream.supervisor import ConnectionSupervisor
from lnm_trader.utils.clock import SystemClock
from lnm_trader.utils.logging import get_logger, setup_logging


@click.group(invoke_without_command=True)
@click.option("--version", "-v", is_flag=True, help="Show the version")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """LN Markets RSI / Bollinger band trader.

    Streams BTC/USD prices, evaluates an adaptive RSI signal against
    Bollinger bands and trades 1x market positions.
    """
    if version:
        click.echo(f"lnm-trader version {__version__}")
        return

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Evaluate signals without submitting orders",
)
def run(dry_run: bool) -> None:
    """Connect to the live feed and trade until the feed gives up.

    Use Ctrl+C to stop.
    """
    setup_logging()
    logger = get_logger("lnm_trader.main")
    settings = get_settings()

    try:
        settings.require_credentials()
    except ConfigurationError as exc:
        logger.error("missing_required_config", category="error", missing_keys=exc.missing)
        sys.exit(1)

    logger.info(
        "starting_trader",
        category="info",
        network=settings.lnm_network.value,
        dry_run=dry_run,
        timeframe=settings.indicator_timeframe,
    )

    try:
        asyncio.run(run_trader(settings, dry_run=dry_run))
    except KeyboardInterrupt:
        logger.info("trader_stopped", category="info", message="User interrupted")
        sys.exit(0)
    except Exception as e:
        logger.exception("trader_failed", category="error", error=str(e))
        sys.exit(1)


async def run_trader(settings: Settings, *, dry_run: bool = False) -> None:
    """Wire the collaborators and run until the feed supervisor stops."""
    clock = SystemClock()
    venue = LNMarketsClient(settings)
    taapi = TaapiClient(settings)
    notifier = TelegramNotifier(settings)
    try:
        services = CycleServices(
            fetcher=IndicatorFetcher(taapi, RateLimiter(settings.indicator_cooldown_sec, clock), settings),
            exposure=ExposureTracker(venue, notifier, clock, settings),
            dispatcher=TradeDispatcher(venue, notifier, clock, settings, dry_run=dry_run),
            clock=clock,
            settings=settings,
        )
        engine = TradingEngine(TradingContext.from_settings(settings), services)
        supervisor = ConnectionSupervisor(LNMarketsStream(settings), clock, settings)
        await engine.run(supervisor)
    finally:
        await venue.aclose()
        await taapi.aclose()
        await notifier.aclose()


@cli.command()
def status() -> None:
    """Show a configuration summary."""
    setup_logging()
    settings = get_settings()

    click.echo("=" * 50)
    click.echo("LNM Trader - Status")
    click.echo("=" * 50)
    click.echo()

    click.echo(f"[{settings.lnm_network.value.upper()}] Network: {settings.lnm_network.value}")
    click.echo()

    click.echo("[API Configuration]")
    lnm_status = "[OK] Configured" if settings.lnm_api_key else "[--] Not configured"
    taapi_status = "[OK] Configured" if settings.taapi_api_key else "[--] Not configured"
    telegram_status = "[OK] Configured" if settings.telegram_enabled else "[--] Not configured"
    click.echo(f"   LN Markets API: {lnm_status}")
    click.echo(f"   taapi.io API: {taapi_status}")
    click.echo(f"   Telegram: {telegram_status}")
    click.echo()

    click.echo("[Signal Parameters]")
    click.echo(f"   Indicators: {settings.indicator_symbol} {settings.indicator_timeframe}")
    click.echo(f"   RSI average period: {settings.rsi_period} (history {settings.history_capacity})")
    click.echo(f"   RSI sell/buy offsets: +{settings.sell_rsi_offset} / -{settings.buy_rsi_offset}")
    click.echo(f"   Band factors: lower x{settings.sell_band_factor}, upper x{settings.buy_band_factor}")
    click.echo()

    click.echo("[Risk Parameters]")
    click.echo(f"   Take profit: pl > {settings.take_profit_pl}")
    click.echo(f"   Stop loss: pl < {settings.stop_loss_pl}")
    click.echo(f"   Max exposure per side: {settings.max_side_exposure}")
    click.echo(f"   Order: {settings.order_quantity} @ {settings.order_leverage}x")
    click.echo()

    click.echo("[Logging]")
    click.echo(f"   Log level: {settings.log_level}")
    click.echo(f"   Log format: {settings.log_format.value}")
    click.echo()

    missing = settings.validate_required()
    if missing:
        click.echo("[ERROR] Configuration incomplete, missing:")
        for key in missing:
            click.echo(f"   - {key}")
    else:
        click.echo("[OK] Configuration complete")

    click.echo()
    click.echo("=" * 50)


@cli.command()
def check() -> None:
    """Check dependencies and configuration."""
    setup_logging()
    logger = get_logger("lnm_trader.main")

    click.echo("Checking system dependencies...")
    click.echo()

    all_ok = True

    packages = [
        ("pydantic", "Configuration validation"),
        ("pydantic_settings", "Settings loading"),
        ("httpx", "HTTP client"),
        ("websockets", "Live data feed"),
        ("structlog", "Structured logging"),
        ("click", "CLI framework"),
        ("tenacity", "Retry mechanism"),
    ]

    for pkg_name, desc in packages:
        try:
            __import__(pkg_name)
            click.echo(f"  [OK] {pkg_name} - {desc}")
        except ImportError:
            click.echo(f"  [MISSING] {pkg_name} - {desc}")
            all_ok = False

    click.echo()

    env_file = Path(".env")
    if env_file.exists():
        click.echo("  [OK] .env configuration file exists")
    else:
        click.echo("  [WARN] .env file not found (using environment only)")

    click.echo()

    if all_ok:
        click.echo("[OK] All dependency checks passed")
    else:
        click.echo("[ERROR] Some dependencies missing. Run: pip install -e .")

    logger.info("dependency_check_completed", all_ok=all_ok)


if __name__ == "__main__":
    cli()
