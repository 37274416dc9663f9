"""Ingestion boundary and recurring-transaction service.

Validates submitted batches, enforces ownership, attaches merchant keys,
upserts into a transaction store and recomputes recurring groups for the
authenticated caller.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

from pydantic import TypeAdapter, ValidationError

from .grouper import RecurrenceGroup, RecurrenceGrouper, sort_for_detection
from .merchant import extract_merchant
from .schema import GlobalConfig, Transaction

logger = logging.getLogger(__name__)

_BATCH_ADAPTER = TypeAdapter(list[Transaction])


class RecurringError(Exception):
    """Base error for rejected requests."""


class BatchValidationError(RecurringError):
    """A submitted batch failed validation; nothing was stored."""


class EmptyBatchError(BatchValidationError):
    """A submitted batch held no transactions."""


class ForbiddenError(RecurringError):
    """A transaction does not belong to the authenticated caller."""


def _format_validation_error(error: ValidationError) -> str:
    lines = [f"{error.error_count()} invalid field(s) in transaction batch:"]
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        lines.append(f"  [{location}] {detail['msg']}")
    return "\n".join(lines)


def prepare_batch(records: Optional[list[Any]], caller: str) -> list[Transaction]:
    """Validate a submitted batch and attach merchant keys.

    The batch is rejected as a whole if any record is invalid or belongs to
    someone other than ``caller``.

    Args:
        records: Raw transaction dicts (or Transaction instances).
        caller: Authenticated owner submitting the batch.

    Returns:
        Validated transactions with ``merchant`` populated.

    Raises:
        EmptyBatchError: If the batch is empty or missing.
        BatchValidationError: If any record fails validation.
        ForbiddenError: If any record is owned by another user.
    """
    if not records:
        raise EmptyBatchError("Empty transaction list")

    try:
        transactions = _BATCH_ADAPTER.validate_python(records)
    except ValidationError as e:
        raise BatchValidationError(_format_validation_error(e)) from e

    for txn in transactions:
        if txn.owner_id != caller:
            raise ForbiddenError(
                f"Transaction '{txn.id}' belongs to '{txn.owner_id}', not '{caller}'"
            )

    return [
        txn.model_copy(update={"merchant": extract_merchant(txn.description)})
        for txn in transactions
    ]


class TransactionStore:
    """In-memory transaction store keyed by transaction id."""

    def __init__(self, transactions: Iterable[Transaction] = ()):
        self._transactions: dict[str, Transaction] = {}
        for txn in transactions:
            self._transactions[txn.id] = txn

    def __len__(self) -> int:
        return len(self._transactions)

    def upsert_many(self, transactions: list[Transaction]) -> None:
        """Insert or replace transactions by id.

        Raises:
            ForbiddenError: If an id is already stored for a different owner.
        """
        for txn in transactions:
            existing = self._transactions.get(txn.id)
            if existing is not None and existing.owner_id != txn.owner_id:
                raise ForbiddenError(f"Transaction '{txn.id}' belongs to another user")

        for txn in transactions:
            self._transactions[txn.id] = txn
        logger.debug("Upserted %d transactions (%d stored)", len(transactions), len(self))

    def for_owner(self, owner_id: str) -> list[Transaction]:
        """All stored transactions for one owner, in insertion order."""
        return [t for t in self._transactions.values() if t.owner_id == owner_id]


class JsonTransactionStore(TransactionStore):
    """Transaction store persisted to a JSON file after every upsert."""

    def __init__(self, path: Path):
        self.path = Path(path)
        transactions: list[Transaction] = []
        if self.path.is_file():
            with self.path.open() as f:
                records = json.load(f)
            transactions = _BATCH_ADAPTER.validate_python(records)
            logger.debug("Loaded %d transactions from %s", len(transactions), self.path)
        super().__init__(transactions)

    def upsert_many(self, transactions: list[Transaction]) -> None:
        previous = dict(self._transactions)
        super().upsert_many(transactions)
        try:
            self.save()
        except Exception:
            self._transactions = previous
            raise

    def save(self) -> None:
        """Write all stored transactions to the JSON file atomically (tmp-file + rename)."""
        records = [t.to_record() for t in self._transactions.values()]
        payload = json.dumps(records, indent=2)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp.write_text(payload)
            tmp.replace(self.path)
        finally:
            tmp.unlink(missing_ok=True)


class RecurringService:
    """The two operations exposed to callers: submit a batch, fetch recurring groups."""

    def __init__(
        self,
        store: Optional[TransactionStore] = None,
        config: Optional[GlobalConfig] = None,
    ):
        self.store = store if store is not None else TransactionStore()
        self.config = config or GlobalConfig()
        self.grouper = RecurrenceGrouper.from_config(self.config)

    def submit(
        self,
        records: Optional[list[Any]],
        caller: str,
        now: Optional[datetime] = None,
    ) -> list[RecurrenceGroup]:
        """Validate and upsert a batch, then return the caller's recurring groups."""
        transactions = prepare_batch(records, caller)
        self.store.upsert_many(transactions)
        logger.info("Stored %d transactions for '%s'", len(transactions), caller)
        return self.recurring(caller, now)

    def recurring(self, caller: str, now: Optional[datetime] = None) -> list[RecurrenceGroup]:
        """Recompute recurring groups from the caller's full history."""
        transactions = sort_for_detection(self.store.for_owner(caller))
        return self.grouper.group(transactions, now)
