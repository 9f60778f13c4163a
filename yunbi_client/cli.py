"""Command-line interface for the Yunbi client.

Command results are printed to stdout as JSON; console logging goes to stderr.
"""

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, Optional

import aiohttp
import click

from .api.client import YunbiAPIClient
from .api.errors import YunbiAPIError
from .config.manager import ConfigManager, ConfigValidationError
from .logging import LoggerManager, initialize_logging


def _load_config(config_path: str) -> ConfigManager:
    manager = ConfigManager(config_path)
    try:
        manager.load_config()
    except ConfigValidationError as e:
        click.echo(click.style("✗ Configuration validation failed:", fg='red'), err=True)
        click.echo(f"  Error: {e.message}", err=True)
        if e.field_path:
            click.echo(f"  Field: {e.field_path}", err=True)
        sys.exit(1)
    return manager


def _setup_logging(manager: ConfigManager) -> Optional[LoggerManager]:
    logging_config = manager.get_config().get('logging')
    if not logging_config:
        return None

    log_manager = initialize_logging(
        log_dir=logging_config.get('log_dir', 'logs'),
        log_level=logging_config.get('log_level', 'INFO'),
        structured_format=logging_config.get('structured_format', True),
        console_output=logging_config.get('console_output', False),
        console_stream=sys.stderr,
    )
    if 'retention_days' in logging_config:
        log_manager.cleanup_old_logs(logging_config['retention_days'])
    return log_manager


def _run(ctx: click.Context, call: Callable[[YunbiAPIClient], Awaitable[Any]], sync_clock: bool = False) -> None:
    """Run one API call with a client built from the configuration and print the JSON result."""
    manager = ctx.obj['config']
    log_manager = ctx.obj.get('logging')

    async def runner():
        client = YunbiAPIClient.from_config(manager, sync_on_start=False)
        try:
            if sync_clock:
                await client.initialize()
            return await call(client)
        finally:
            await client.close()

    try:
        result = asyncio.run(runner())
    except (YunbiAPIError, aiohttp.ClientError, asyncio.TimeoutError) as e:
        if log_manager is not None:
            log_manager.log_error_with_context(e, {'command': ctx.info_name})
        if isinstance(e, YunbiAPIError):
            click.echo(click.style(f"✗ API error: {e.error_code}", fg='red'), err=True)
        else:
            click.echo(click.style(f"✗ Request failed: {e!r}", fg='red'), err=True)
        sys.exit(1)

    click.echo(json.dumps(result, indent=2, ensure_ascii=False))


@click.group()
@click.option('--config-path', '-c', default='config/default.yaml', help='Path to configuration file')
@click.pass_context
def cli(ctx: click.Context, config_path: str):
    """Yunbi exchange API client."""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    if ctx.invoked_subcommand != 'validate':
        ctx.obj['config'] = _load_config(config_path)
        ctx.obj['logging'] = _setup_logging(ctx.obj['config'])


@cli.command()
@click.pass_context
def validate(ctx: click.Context):
    """Validate the configuration file."""
    config_path = ctx.obj['config_path']
    click.echo(f"Validating configuration: {config_path}")

    manager = _load_config(config_path)
    click.echo(click.style("✓ Configuration is valid", fg='green'))

    api = manager.get_section('api')
    credential = manager.get_credentials()
    click.echo("\nConfiguration Summary:")
    click.echo(f"  Endpoint: {api['base_url']}{api['api_prefix']}")
    click.echo(f"  Timeout: {api['timeout']}s")
    click.echo(f"  Access key: {'set' if credential.access_key else 'not set'}")
    click.echo(f"  Secret key: {'set' if credential.secret_key else 'not set'}")


@cli.command()
@click.pass_context
def timestamp(ctx: click.Context):
    """Print the server time in seconds since epoch."""
    _run(ctx, lambda client: client.get_timestamp())


@cli.command()
@click.pass_context
def markets(ctx: click.Context):
    """List available markets."""
    _run(ctx, lambda client: client.get_markets())


@cli.command()
@click.argument('market')
@click.pass_context
def ticker(ctx: click.Context, market: str):
    """Show the ticker of MARKET (e.g. ethcny)."""
    _run(ctx, lambda client: client.get_ticker(market))


@cli.command('order-book')
@click.argument('market')
@click.option('--limit', '-l', default=20, show_default=True, help='Entries per side')
@click.pass_context
def order_book(ctx: click.Context, market: str, limit: int):
    """Show the order book of MARKET."""
    _run(ctx, lambda client: client.get_order_book(market, limit))


@cli.command()
@click.pass_context
def member(ctx: click.Context):
    """Show your profile and accounts (signed request)."""
    _run(ctx, lambda client: client.get_member(), sync_clock=True)


if __name__ == '__main__':
    cli()
