"""Type definitions and enums for beanrecur."""

from enum import Enum


class Cadence(str, Enum):
    """Recurrence interval inferred for a transaction group."""

    UNKNOWN = "UNKNOWN"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    SEMIANNUAL = "SEMIANNUAL"
    ANNUAL = "ANNUAL"

    def formatted_name(self) -> str:
        """Return human-readable cadence name."""
        if self == Cadence.BIWEEKLY:
            return "Bi-weekly"
        if self == Cadence.SEMIANNUAL:
            return "Semi-annually"
        return self.value.capitalize()
