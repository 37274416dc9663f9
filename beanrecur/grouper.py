"""Recurring transaction grouping engine.

Scans a transaction history sorted by merchant key (then date descending, then
amount) in a single pass and clusters each merchant's transactions into
recurrence groups by amount similarity and date-gap similarity.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Iterable, Optional

from . import constants
from .merchant import merchant_for
from .schema import GlobalConfig, Transaction, as_utc, utcnow
from .types import Cadence

logger = logging.getLogger(__name__)


class UnsortedInputError(ValueError):
    """Raised when grouper input is not ordered by merchant key, then date descending."""


@dataclass(frozen=True)
class RecurrenceGroup:
    """A finalized group of recurring transactions."""

    label: str
    """Description of the most recent transaction in the group."""

    owner_id: str
    """Owner of the seeding transaction."""

    projected_amount: Decimal
    """Mean amount across members."""

    projected_next_date: Optional[datetime]
    """Next expected occurrence."""

    members: tuple[Transaction, ...] = ()
    """Member transactions, most recent first."""

    @property
    def count(self) -> int:
        """Number of transactions in group."""
        return len(self.members)

    def payload_amount(self) -> Decimal:
        """Mean amount rounded to cents, or to the members' finest precision if finer."""
        exponent = min(
            [-constants.PAYLOAD_AMOUNT_PLACES] + [m.amount.as_tuple().exponent for m in self.members]
        )
        return self.projected_amount.quantize(Decimal(1).scaleb(exponent))

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready payload for this group."""
        return {
            "label": self.label,
            "owner_id": self.owner_id,
            "projected_amount": str(self.payload_amount()),
            "projected_next_date": (
                self.projected_next_date.isoformat() if self.projected_next_date else None
            ),
            "members": [m.to_record() for m in self.members],
        }


@dataclass
class GroupBuilder:
    """Mutable accumulator for one candidate group during a grouping pass."""

    label: str
    owner_id: str
    projected_amount: Decimal
    most_recent_date: datetime
    projected_next_date: Optional[datetime] = None
    cadence: Cadence = Cadence.UNKNOWN
    members: list[Transaction] = field(default_factory=list)

    @classmethod
    def seed(cls, transaction: Transaction) -> "GroupBuilder":
        """Open a group holding a single transaction."""
        return cls(
            label=transaction.description,
            owner_id=transaction.owner_id,
            projected_amount=transaction.amount,
            most_recent_date=transaction.occurred_at,
            members=[transaction],
        )

    def match_date(self, candidate_date: datetime) -> bool:
        """Check whether a date fits this group's recurrence.

        The first match fixes the cadence from the day gap and projects the
        next occurrence from the most recent date. Later matches must land
        inside the tolerance window one period before the most recent date.
        """
        if self.cadence == Cadence.UNKNOWN:
            gap_days = (self.most_recent_date - candidate_date) // constants.ONE_DAY
            cadence = infer_cadence(gap_days)
            if cadence is None:
                return False
            self.cadence = cadence
            self.projected_next_date = self.most_recent_date + timedelta(
                days=constants.CADENCE_PERIOD_DAYS[cadence]
            )
            return True

        period = timedelta(days=constants.CADENCE_PERIOD_DAYS[self.cadence])
        tolerance = timedelta(days=constants.CADENCE_TOLERANCE_DAYS[self.cadence])
        expected = self.most_recent_date - period
        return expected - tolerance < candidate_date < expected + tolerance

    def is_active(self, now: datetime, grace: timedelta) -> bool:
        """Whether the projected next date is still within the grace period."""
        if self.projected_next_date is None:
            return False
        return self.projected_next_date > now - grace

    def fold_in(self, transaction: Transaction) -> None:
        """Add a member, updating the running average amount."""
        count = len(self.members)
        self.projected_amount = (self.projected_amount * count + transaction.amount) / (count + 1)
        self.members.append(transaction)

    def build(self) -> RecurrenceGroup:
        """Freeze into an output record, dropping cadence and most recent date."""
        return RecurrenceGroup(
            label=self.label,
            owner_id=self.owner_id,
            projected_amount=self.projected_amount,
            projected_next_date=self.projected_next_date,
            members=tuple(self.members),
        )


def infer_cadence(gap_days: int) -> Optional[Cadence]:
    """Classify a day gap into a cadence, or None if it fits no range."""
    for cadence, (low, high) in constants.CADENCE_GAP_RANGES.items():
        if low <= gap_days <= high:
            return cadence
    return None


def similar_amounts(
    group_amount: Decimal,
    txn_amount: Decimal,
    tolerance_pct: Decimal = Decimal("0.25"),
) -> bool:
    """Compare a transaction amount to a group's average amount.

    Equal amounts always match and a debit never matches a credit. Otherwise
    the amount must fall strictly inside a band of ``abs(group_amount *
    tolerance_pct)`` around the group amount.
    """
    if txn_amount == group_amount:
        return True
    if (txn_amount > 0 and group_amount < 0) or (txn_amount < 0 and group_amount > 0):
        return False
    offset = abs(group_amount * tolerance_pct)
    return group_amount - offset < txn_amount < group_amount + offset


def sort_for_detection(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Order transactions by merchant key, date descending, then amount."""
    return sorted(
        transactions,
        key=lambda t: (merchant_for(t), -t.occurred_at.timestamp(), t.amount),
    )


def check_sort_order(transactions: list[Transaction]) -> None:
    """Verify merchant keys are contiguous and dates descend within each key.

    Raises:
        UnsortedInputError: On the first transaction out of order.
    """
    seen: set[str] = set()
    previous: Optional[Transaction] = None
    previous_key: Optional[str] = None

    for txn in transactions:
        key = merchant_for(txn)
        if previous is not None and key == previous_key:
            if txn.occurred_at > previous.occurred_at:
                raise UnsortedInputError(
                    f"Transaction '{txn.id}' is newer than '{previous.id}' "
                    f"for merchant '{key}'; dates must be descending"
                )
        elif key in seen:
            raise UnsortedInputError(
                f"Transaction '{txn.id}' reopens merchant '{key}'; "
                "transactions must be grouped by merchant"
            )
        seen.add(key)
        previous = txn
        previous_key = key


class RecurrenceGrouper:
    """Single-pass grouping engine for recurring transactions."""

    def __init__(
        self,
        amount_tolerance_pct: float = constants.DEFAULT_AMOUNT_TOLERANCE_PERCENT,
        grace_period_days: int = constants.DEFAULT_GRACE_PERIOD_DAYS,
        check_order: bool = True,
    ):
        """Initialize grouper with configurable thresholds.

        Args:
            amount_tolerance_pct: Amount band as a fraction of the group average.
            grace_period_days: Days past the projected date before a group is stale.
            check_order: Verify the input ordering before grouping.
        """
        self.amount_tolerance_pct = Decimal(str(amount_tolerance_pct))
        self.grace = timedelta(days=grace_period_days)
        self.check_order = check_order

    @classmethod
    def from_config(cls, config: GlobalConfig) -> "RecurrenceGrouper":
        """Build a grouper from global configuration."""
        return cls(
            amount_tolerance_pct=config.amount_tolerance_percent,
            grace_period_days=config.grace_period_days,
            check_order=config.check_sort_order,
        )

    def group(
        self,
        transactions: Iterable[Transaction],
        now: Optional[datetime] = None,
    ) -> list[RecurrenceGroup]:
        """Group sorted transactions and return the active recurring groups.

        Args:
            transactions: Transactions sorted by merchant key, date descending,
                then amount (see ``sort_for_detection``).
            now: Reference time for the staleness check (default: current UTC time).

        Returns:
            Groups with more than one member, in the order they were flushed.

        Raises:
            UnsortedInputError: If ordering checks are enabled and fail.
        """
        now = as_utc(now) if now is not None else utcnow()
        txns = list(transactions)
        if self.check_order:
            check_sort_order(txns)

        results: list[RecurrenceGroup] = []
        open_groups: list[GroupBuilder] = []
        current_key: Optional[str] = None

        for txn in txns:
            key = merchant_for(txn)
            if not open_groups or key != current_key:
                self._flush(open_groups, results)
                current_key = key
                open_groups = [GroupBuilder.seed(txn)]
                continue

            found = False
            for builder in open_groups:
                if not similar_amounts(builder.projected_amount, txn.amount, self.amount_tolerance_pct):
                    continue
                if not builder.match_date(txn.occurred_at):
                    continue

                found = True
                builder.most_recent_date = txn.occurred_at
                if builder.is_active(now, self.grace):
                    builder.fold_in(txn)
                else:
                    logger.debug(
                        "Dropping '%s' from stale group '%s' (%s, next expected %s)",
                        txn.id,
                        builder.label,
                        builder.cadence.formatted_name(),
                        builder.projected_next_date,
                    )
                break

            if not found:
                logger.debug("Opening new group for '%s' under merchant '%s'", txn.id, key)
                open_groups.append(GroupBuilder.seed(txn))

        self._flush(open_groups, results)
        logger.info("Grouped %d transactions into %d recurring groups", len(txns), len(results))
        return results

    def _flush(self, open_groups: list[GroupBuilder], results: list[RecurrenceGroup]) -> None:
        for builder in open_groups:
            if len(builder.members) >= constants.MIN_GROUP_SIZE:
                results.append(builder.build())


def detect_recurring(
    transactions: Iterable[Transaction],
    now: Optional[datetime] = None,
    *,
    config: Optional[GlobalConfig] = None,
) -> list[RecurrenceGroup]:
    """Detect active recurring groups in a sorted transaction history.

    Args:
        transactions: One owner's transactions in ``sort_for_detection`` order.
        now: Reference time for the staleness check (default: current UTC time).
        config: Thresholds to use (default: GlobalConfig()).

    Returns:
        List of RecurrenceGroup records, possibly empty.
    """
    grouper = RecurrenceGrouper.from_config(config or GlobalConfig())
    return grouper.group(transactions, now)
