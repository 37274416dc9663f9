"""Pytest configuration and shared fixtures for beanrecur tests."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import yaml

from beanrecur.merchant import extract_merchant
from beanrecur.schema import GlobalConfig, Transaction
from beanrecur.service import RecurringService, TransactionStore

# Fixed reference time for staleness checks
NOW = datetime(2024, 3, 10, tzinfo=timezone.utc)

# ============================================================================
# Transaction Builders
# ============================================================================

_counter = {"next": 0}


def utc(year: int, month: int, day: int, hour: int = 8) -> datetime:
    """Create an aware UTC datetime."""
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def make_transaction(
    description: str,
    amount,
    occurred_at: datetime,
    owner_id: str = "user1",
    id: str = None,
    attach_merchant: bool = True,
) -> Transaction:
    """Create a Transaction with the merchant key attached, as ingestion does."""
    if id is None:
        _counter["next"] += 1
        id = f"txn-{_counter['next']}"

    return Transaction(
        id=id,
        owner_id=owner_id,
        description=description,
        amount=Decimal(str(amount)),
        occurred_at=occurred_at,
        merchant=extract_merchant(description) if attach_merchant else None,
    )


def make_series(
    description: str,
    amounts: list,
    latest: datetime,
    gap_days: int,
    owner_id: str = "user1",
) -> list[Transaction]:
    """Create transactions spaced ``gap_days`` apart, most recent first."""
    return [
        make_transaction(description, amount, latest - timedelta(days=gap_days * i), owner_id)
        for i, amount in enumerate(amounts)
    ]


def make_record(
    id: str = "123",
    owner_id: str = "user1",
    description: str = "Amazon 181015",
    amount="12.99",
    occurred_at: str = "2018-10-15T08:00:00Z",
) -> dict:
    """Create a raw transaction record as submitted over the wire."""
    return {
        "id": id,
        "owner_id": owner_id,
        "description": description,
        "amount": amount,
        "occurred_at": occurred_at,
    }


# ============================================================================
# Pytest Fixtures
# ============================================================================


@pytest.fixture
def global_config():
    """Fixture providing default GlobalConfig."""
    return GlobalConfig()


@pytest.fixture
def store():
    """Fixture providing an empty in-memory store."""
    return TransactionStore()


@pytest.fixture
def service(store, global_config):
    """Fixture providing a RecurringService over the in-memory store."""
    return RecurringService(store, global_config)


@pytest.fixture
def monthly_records():
    """Three monthly Amazon charges, 30 days apart, ending just before NOW."""
    return [
        make_record(id="a1", description="Amazon 240101", amount="12.99", occurred_at="2024-01-01T08:00:00Z"),
        make_record(id="a2", description="Amazon 240131", amount="12.99", occurred_at="2024-01-31T08:00:00Z"),
        make_record(id="a3", description="Amazon 240301", amount="13.02", occurred_at="2024-03-01T08:00:00Z"),
    ]


@pytest.fixture
def batch_file(tmp_path, monthly_records):
    """Fixture providing a YAML batch file with the monthly records."""
    path = tmp_path / "transactions.yaml"
    with open(path, "w") as f:
        yaml.dump({"transactions": monthly_records}, f)
    return path
