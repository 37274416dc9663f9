"""Beanrecur - Recurring transaction detection.

This package groups a user's transactions by merchant and recurrence cadence
to separate subscriptions, bills and paychecks from one-off purchases.

Main exports:
    detect_recurring: Group sorted transactions into active recurring groups
    extract_merchant: Derive a merchant key from a transaction description
    RecurringService: Validate, store and recompute for an authenticated owner
"""

__version__ = "1.0.0"

from .grouper import RecurrenceGroup, detect_recurring, sort_for_detection
from .merchant import extract_merchant
from .schema import GlobalConfig, Transaction
from .service import RecurringService

__all__ = [
    "GlobalConfig",
    "RecurrenceGroup",
    "RecurringService",
    "Transaction",
    "detect_recurring",
    "extract_merchant",
    "sort_for_detection",
]
