"""
Global constants for beanrecur.

This module centralizes all magic strings, thresholds, and default values
used by the grouper, the ingestion boundary and the CLI.
"""

from datetime import timedelta

from .types import Cadence

# ============================================================================
# File Paths and Environment
# ============================================================================

DEFAULT_CONFIG_FILE = "beanrecur.yaml"
ENV_CONFIG_FILE = "BEANRECUR_CONFIG"
LEDGER_SUFFIXES = (".bean", ".beancount")

# ============================================================================
# Matching Thresholds
# ============================================================================

DEFAULT_AMOUNT_TOLERANCE_PERCENT = 0.25  # 25% of the group average
DEFAULT_GRACE_PERIOD_DAYS = 4  # Staleness grace before a group is inactive
MIN_GROUP_SIZE = 2  # Groups smaller than this are never emitted
PAYLOAD_AMOUNT_PLACES = 2  # Minimum decimal places for projected amounts in payloads

ONE_DAY = timedelta(days=1)

# ============================================================================
# Cadence Detection
# ============================================================================

# Day-gap ranges (inclusive) used to infer a cadence from the first match
CADENCE_GAP_RANGES = {
    Cadence.WEEKLY: (5, 9),
    Cadence.BIWEEKLY: (12, 16),
    Cadence.MONTHLY: (26, 34),  # Wider for short months
    Cadence.SEMIANNUAL: (179, 187),
    Cadence.ANNUAL: (360, 369),
}

# Fixed period added to project the next occurrence
CADENCE_PERIOD_DAYS = {
    Cadence.WEEKLY: 7,
    Cadence.BIWEEKLY: 14,
    Cadence.MONTHLY: 30,
    Cadence.SEMIANNUAL: 183,
    Cadence.ANNUAL: 365,
}

# Window (±days, exclusive) around the expected date once a cadence is known
CADENCE_TOLERANCE_DAYS = {
    Cadence.WEEKLY: 2,
    Cadence.BIWEEKLY: 2,
    Cadence.MONTHLY: 4,
    Cadence.SEMIANNUAL: 4,
    Cadence.ANNUAL: 4,
}

# ============================================================================
# Validation Constraints
# ============================================================================

# Characters rejected in text fields to block injection-style payloads
DISALLOWED_TEXT_PATTERN = r"[<>`\"/:?()#;]"

# ============================================================================
# Display/Formatting Constants
# ============================================================================

MAX_LABEL_COLUMN_WIDTH = 30  # Max width for the label column in CLI tables
