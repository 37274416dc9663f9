"""Click CLI commands for beanrecur."""

import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from dateutil import parser as date_parser

from beanrecur import __version__
from beanrecur.loader import load_config, load_records
from beanrecur.merchant import extract_merchant
from beanrecur.schema import GlobalConfig
from beanrecur.service import (
    BatchValidationError,
    ForbiddenError,
    JsonTransactionStore,
    RecurringService,
    prepare_batch,
)

from .formatters import print_groups_json, print_groups_table

logger = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_INVALID = 2
EXIT_FORBIDDEN = 3

format_option = click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format (default: table)",
)

now_option = click.option(
    "--now",
    default=None,
    help="Reference time for staleness checks, ISO 8601 (default: current time)",
)

owner_option = click.option(
    "--owner",
    default=None,
    help="Authenticated owner id (default: default_owner from config)",
)


def parse_now(value: Optional[str]) -> Optional[datetime]:
    """Parse the --now option, raising a click error on bad input."""
    if value is None:
        return None
    try:
        return date_parser.isoparse(value)
    except ValueError as e:
        raise click.BadParameter(f"'{value}' is not an ISO 8601 date: {e}", param_hint="--now") from e


def resolve_owner(owner: Optional[str], config: GlobalConfig) -> str:
    """Return the explicit owner or the configured default."""
    resolved = owner or config.default_owner
    if not resolved:
        raise click.UsageError("No owner given: pass --owner or set default_owner in config")
    return resolved


def print_groups(groups: list, output_format: str) -> None:
    """Print recurring groups in the requested format."""
    if output_format == "json":
        print_groups_json(groups)
        return

    if not groups:
        click.echo("No recurring transactions found.")
        return
    print_groups_table(groups)


def fail(error: Exception) -> None:
    """Report an error and exit with a status matching its kind."""
    click.echo(f"Error: {error}", err=True)
    if logger.isEnabledFor(logging.DEBUG):
        traceback.print_exc()
    if isinstance(error, ForbiddenError):
        sys.exit(EXIT_FORBIDDEN)
    if isinstance(error, BatchValidationError):
        sys.exit(EXIT_INVALID)
    sys.exit(EXIT_ERROR)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Config file (default: $BEANRECUR_CONFIG or ./beanrecur.yaml)",
)
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: Optional[str]):
    """Beanrecur - Recurring transaction detection."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    ctx.obj = load_config(Path(config_path) if config_path else None)


@main.command()
@click.argument("description", nargs=-1, required=True)
def merchant(description: tuple[str, ...]):
    """Print the merchant key for a transaction description.

    Examples:
        beanrecur merchant "Netflix 23XAB"
        beanrecur merchant 9th Ave Diner
    """
    click.echo(extract_merchant(" ".join(description)))


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@owner_option
@click.pass_obj
def validate(config: GlobalConfig, path: str, owner: Optional[str]):
    """Validate a transaction batch file without storing it.

    PATH is a YAML/JSON batch file or a Beancount ledger.

    Examples:
        beanrecur validate transactions.yaml --owner dberg
    """
    try:
        caller = resolve_owner(owner, config)
        records = load_records(Path(path), caller)
        transactions = prepare_batch(records, caller)
        merchants = {t.merchant for t in transactions}
        click.echo("✓ Validation successful!")
        click.echo(f"  Transactions: {len(transactions)}")
        click.echo(f"  Merchants: {len(merchants)}")
    except click.UsageError:
        raise
    except Exception as e:
        fail(e)


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@owner_option
@now_option
@format_option
@click.pass_obj
def detect(
    config: GlobalConfig,
    path: str,
    owner: Optional[str],
    now: Optional[str],
    output_format: str,
):
    """Detect recurring transactions in a batch file or ledger.

    Nothing is persisted; the batch is grouped on its own.

    Examples:
        beanrecur detect transactions.yaml --owner dberg
        beanrecur detect ledger.bean --owner dberg --format json
    """
    reference = parse_now(now)
    try:
        caller = resolve_owner(owner, config)
        records = load_records(Path(path), caller)
        groups = RecurringService(config=config).submit(records, caller, reference)
        print_groups(groups, output_format)
    except click.UsageError:
        raise
    except Exception as e:
        fail(e)


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False),
    required=True,
    help="JSON file holding stored transactions",
)
@owner_option
@now_option
@format_option
@click.pass_obj
def submit(
    config: GlobalConfig,
    path: str,
    store_path: str,
    owner: Optional[str],
    now: Optional[str],
    output_format: str,
):
    """Upsert a transaction batch into a store and print recurring groups.

    Examples:
        beanrecur submit transactions.yaml --store store.json --owner dberg
    """
    reference = parse_now(now)
    try:
        caller = resolve_owner(owner, config)
        records = load_records(Path(path), caller)
        service = RecurringService(JsonTransactionStore(Path(store_path)), config)
        groups = service.submit(records, caller, reference)
        print_groups(groups, output_format)
    except click.UsageError:
        raise
    except Exception as e:
        fail(e)


@main.command()
@click.option(
    "--store",
    "store_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="JSON file holding stored transactions",
)
@owner_option
@now_option
@format_option
@click.pass_obj
def recurring(
    config: GlobalConfig,
    store_path: str,
    owner: Optional[str],
    now: Optional[str],
    output_format: str,
):
    """Print the owner's recurring groups from a store.

    Examples:
        beanrecur recurring --store store.json --owner dberg
    """
    reference = parse_now(now)
    try:
        caller = resolve_owner(owner, config)
        service = RecurringService(JsonTransactionStore(Path(store_path)), config)
        groups = service.recurring(caller, reference)
        print_groups(groups, output_format)
    except click.UsageError:
        raise
    except Exception as e:
        fail(e)
