"""Pydantic schema models for transaction ingestion and configuration."""

import re
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)

from . import constants

_DISALLOWED_TEXT = re.compile(constants.DISALLOWED_TEXT_PATTERN)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Transaction(BaseModel):
    """A single financial transaction owned by one user.

    Field aliases accept the legacy wire names (``trans_id``, ``user_id``,
    ``name``, ``date``, ``company``) alongside the canonical ones.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("id", "trans_id"),
        description="Unique transaction identifier",
    )
    owner_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("owner_id", "user_id"),
        description="Owning user",
    )
    description: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("description", "name"),
        description="Raw transaction description",
    )
    amount: Decimal = Field(
        ...,
        allow_inf_nan=False,
        description="Signed amount (positive = credit, negative = debit)",
    )
    occurred_at: datetime = Field(
        default_factory=utcnow,
        validation_alias=AliasChoices("occurred_at", "date"),
        description="When the transaction happened (UTC, defaults to ingestion time)",
    )
    merchant: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("merchant", "company"),
        description="Merchant key attached at ingestion",
    )

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, v: Any) -> Any:
        """Trim surrounding whitespace from the description."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("id", "owner_id", "description", "merchant")
    @classmethod
    def validate_text(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Reject text containing characters used by injection-style payloads."""
        if v is not None and _DISALLOWED_TEXT.search(v):
            raise ValueError(f"Invalid {info.field_name}: contains disallowed characters")
        return v

    @field_validator("occurred_at", mode="before")
    @classmethod
    def default_occurred_at(cls, v: Any) -> Any:
        """Default a missing date to now and widen plain dates to midnight."""
        if v is None:
            return utcnow()
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime.combine(v, time.min, tzinfo=timezone.utc)
        return v

    @field_validator("occurred_at")
    @classmethod
    def normalize_occurred_at(cls, v: datetime) -> datetime:
        """Store every timestamp in UTC."""
        return as_utc(v)

    def to_record(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict using canonical field names."""
        return self.model_dump(mode="json")


class GlobalConfig(BaseModel):
    """Global configuration for beanrecur."""

    amount_tolerance_percent: float = Field(
        constants.DEFAULT_AMOUNT_TOLERANCE_PERCENT,
        description="Amount similarity band as a fraction of the group average",
    )
    grace_period_days: int = Field(
        constants.DEFAULT_GRACE_PERIOD_DAYS,
        description="Days past the projected date before a group counts as stale",
    )
    check_sort_order: bool = Field(
        True,
        description="Reject grouper input that is not sorted by merchant, then date",
    )
    default_owner: Optional[str] = Field(
        None,
        description="Owner used by the CLI when --owner is not given",
    )

    @field_validator("amount_tolerance_percent")
    @classmethod
    def validate_amount_tolerance(cls, v: float) -> float:
        """Ensure amount_tolerance_percent is in valid range."""
        if v < 0.0 or v > 1.0:
            raise ValueError("amount_tolerance_percent must be between 0.0 and 1.0")
        return v

    @field_validator("grace_period_days")
    @classmethod
    def validate_grace_period(cls, v: int) -> int:
        """Ensure grace_period_days is not negative."""
        if v < 0:
            raise ValueError("grace_period_days must be positive")
        return v
