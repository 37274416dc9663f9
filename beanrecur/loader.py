"""Configuration, transaction file and Beancount ledger loaders."""

import logging
import os
import re
from datetime import datetime, time, timezone
from pathlib import Path
from typing import Any, Optional

import yaml
from beancount import loader as beancount_loader
from beancount.core import data
from beancount.core.compare import hash_entry

from . import constants
from .schema import GlobalConfig

logger = logging.getLogger(__name__)

_DISALLOWED_TEXT = re.compile(constants.DISALLOWED_TEXT_PATTERN)


def find_config_file() -> Optional[Path]:
    """
    Locate the beanrecur configuration file.

    Search order (highest to lowest priority):
    1. BEANRECUR_CONFIG environment variable
    2. beanrecur.yaml in current directory

    Returns:
        Path to the config file, or None if not found
    """
    if env_file := os.getenv(constants.ENV_CONFIG_FILE):
        path = Path(env_file)
        if path.is_file():
            return path
        logger.warning("BEANRECUR_CONFIG points to non-existent file: %s", env_file)

    cwd_file = Path.cwd() / constants.DEFAULT_CONFIG_FILE
    if cwd_file.is_file():
        return cwd_file

    return None


def load_config(path: Optional[Path] = None) -> GlobalConfig:
    """
    Load global configuration, falling back to defaults.

    Args:
        path: Explicit config file; discovered with find_config_file() if None

    Returns:
        GlobalConfig (defaults if no file is found or the file is invalid)
    """
    config_path = path if path is not None else find_config_file()
    if config_path is None:
        return GlobalConfig()

    try:
        with Path(config_path).open() as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            return GlobalConfig()

        config = GlobalConfig(**config_data)
        logger.debug("Loaded global config from: %s", config_path)
        return config
    except (OSError, yaml.YAMLError, ValueError, TypeError) as e:
        logger.warning("Failed to load config from '%s', using defaults: %s", config_path, e)
        return GlobalConfig()


def load_transactions_file(filepath: Path) -> list[dict[str, Any]]:
    """
    Load raw transaction records from a YAML or JSON file.

    The document is either a list of records or a mapping with a
    ``transactions`` list. Records are returned unvalidated; validation is
    the ingestion boundary's job.

    Args:
        filepath: Path to the batch file

    Returns:
        List of raw transaction records

    Raises:
        ValueError: If the file cannot be parsed or has the wrong shape
    """
    try:
        with Path(filepath).open() as f:
            document = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error("YAML parsing error in '%s': %s", filepath, e)
        raise ValueError(f"Could not parse transaction file '{filepath}': {e}") from e

    if document is None:
        logger.warning("Empty transaction file: %s", filepath)
        return []

    if isinstance(document, dict):
        document = document.get("transactions")

    if not isinstance(document, list):
        raise ValueError(
            f"Transaction file '{filepath}' must hold a list or a 'transactions' list"
        )

    return document


def _ledger_record(entry: data.Transaction, owner_id: str) -> Optional[dict[str, Any]]:
    """Convert one Beancount transaction into a raw record, or None if unusable."""
    if not entry.postings or entry.postings[0].units is None:
        return None

    description = (entry.payee or entry.narration or "").strip()
    if not description or _DISALLOWED_TEXT.search(description):
        return None

    # Hash covers the source filename and line, so included files never collide
    return {
        "id": hash_entry(entry),
        "owner_id": owner_id,
        "description": description,
        "amount": entry.postings[0].units.number,
        "occurred_at": datetime.combine(entry.date, time.min, tzinfo=timezone.utc),
    }


def load_transactions_from_ledger(ledger_path: Path, owner_id: str) -> list[dict[str, Any]]:
    """
    Load raw transaction records from a Beancount ledger.

    Each transaction becomes one record using the payee (or narration) as the
    description and the first posting's units as the amount.

    Args:
        ledger_path: Path to the .bean ledger
        owner_id: Owner assigned to every record

    Returns:
        List of raw transaction records

    Raises:
        ValueError: If Beancount reports errors loading the ledger
    """
    entries, errors, _ = beancount_loader.load_file(str(ledger_path))
    if errors:
        for error in errors:
            logger.error("Ledger error in '%s': %s", ledger_path, error.message)
        raise ValueError(f"Errors found while loading ledger '{ledger_path}'")

    records = []
    for entry in entries:
        if not isinstance(entry, data.Transaction):
            continue

        record = _ledger_record(entry, owner_id)
        if record is None:
            logger.warning(
                "Skipping ledger transaction on %s at line %s: no usable amount or description",
                entry.date,
                entry.meta.get("lineno"),
            )
            continue
        records.append(record)

    logger.info("Loaded %d transactions from ledger %s", len(records), ledger_path)
    return records


def load_records(path: Path, owner_id: str) -> list[dict[str, Any]]:
    """Load records from a ledger or a batch file, chosen by file suffix."""
    path = Path(path)
    if path.suffix in constants.LEDGER_SUFFIXES:
        return load_transactions_from_ledger(path, owner_id)
    return load_transactions_file(path)
