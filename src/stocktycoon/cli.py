"""Stock Tycoon CLI."""

import asyncio
import contextlib

import click

from stocktycoon.app import StockTycoonApp, setup_logging
from stocktycoon.config_loader import load_config, load_config_with_overrides


@click.group()
def cli():
    """Stock Tycoon Command Line Interface."""
    pass


@cli.command()
@click.option(
    "--config",
    type=click.Path(exists=True),
    default="config/config.yaml",
    help="Path to configuration file",
)
@click.option("--port", type=int, help="Override listen port")
@click.option("--store", type=click.Choice(["memory", "supabase"]), help="Override store mode")
def serve(config, port, store):
    """Start the game server and market loop."""
    try:
        cfg = load_config_with_overrides(config, port=port, store_mode=store)
        setup_logging(cfg)
        StockTycoonApp(cfg).run_server()
    except KeyboardInterrupt:
        pass
    except Exception as e:
        click.echo(f"Fatal error: {e}", err=True)
        raise SystemExit(1) from e


@cli.command()
@click.option(
    "--config",
    type=click.Path(exists=True),
    default="config/config.yaml",
    help="Path to configuration file",
)
@click.option("--ticks", default=3, help="Market ticks to run")
def smoke_test(config, ticks):
    """Run a smoke test (wire components, run a few ticks, and exit)."""
    try:
        cfg = load_config(config)
        setup_logging(cfg)
        app = StockTycoonApp(cfg)

        async def run_ticks():
            document = None
            for _ in range(ticks):
                document = await app.loop.run_tick()
            await app.loop.wait_for_news()
            return document

        document = asyncio.run(run_ticks())
        mirrored = app.store.read_market_state()
        if mirrored is None or mirrored["gameTime"] != document["gameTime"]:
            raise RuntimeError("market document was not mirrored to the store")
        prices = ", ".join(f"{s['id']}={s['price']:.2f}" for s in document["stocks"])
        click.echo(f"Smoke test passed: gameTime={document['gameTime']} {prices}")
    except Exception as e:
        click.echo(f"Smoke test failed: {e}", err=True)
        raise SystemExit(1) from e


@cli.command()
def schema():
    """Print the Postgres schema for the Supabase store."""
    from stocktycoon.db.schema import schema_sql

    click.echo(schema_sql())


@cli.command()
@click.option(
    "--config",
    type=click.Path(exists=True),
    default="config/config.yaml",
    help="Path to configuration file",
)
@click.option("--uid", required=True, help="User whose limit orders to watch")
@click.option("--server", help="Override game server URL")
def watch(config, uid, server):
    """Watch a user's limit orders and settle them when triggered."""
    from stocktycoon.client.http import GameClient
    from stocktycoon.client.runner import OrderWatchRunner

    cfg = load_config(config)
    setup_logging(cfg)

    async def run():
        async with GameClient(server or cfg.watcher.server_url) as client:
            runner = OrderWatchRunner(
                client,
                uid,
                poll_seconds=cfg.watcher.poll_seconds,
                retry_cooldown=cfg.watcher.retry_cooldown_seconds,
            )
            await runner.start()

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run())


if __name__ == "__main__":
    cli()

# Alias for __main__.py
main = cli
