"""Tests for Pydantic schema models."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from beanrecur.schema import GlobalConfig, Transaction, as_utc
from tests.conftest import make_record


class TestTransaction:
    """Tests for Transaction model validation."""

    def test_valid_transaction(self):
        """Test creating a valid transaction from a wire record."""
        txn = Transaction(**make_record())

        assert txn.id == "123"
        assert txn.owner_id == "user1"
        assert txn.description == "Amazon 181015"
        assert txn.amount == Decimal("12.99")
        assert txn.occurred_at == datetime(2018, 10, 15, 8, tzinfo=timezone.utc)
        assert txn.merchant is None

    def test_legacy_field_names(self):
        """Test the legacy wire names are accepted as aliases."""
        txn = Transaction.model_validate(
            {
                "trans_id": "123",
                "user_id": "dberg",
                "name": "Amazon 181015",
                "amount": 12.99,
                "date": "2018-10-15T08:00:00Z",
                "company": "Amazon",
            }
        )

        assert txn.id == "123"
        assert txn.owner_id == "dberg"
        assert txn.description == "Amazon 181015"
        assert txn.merchant == "Amazon"

    @pytest.mark.parametrize("field", ["id", "owner_id", "description"])
    def test_required_text_cannot_be_empty(self, field):
        """Test that empty id, owner and description are rejected."""
        record = make_record()
        record[field] = ""

        with pytest.raises(ValidationError):
            Transaction(**record)

    @pytest.mark.parametrize("field", ["id", "owner_id", "description", "amount"])
    def test_required_fields(self, field):
        """Test that missing required fields are rejected."""
        record = make_record()
        del record[field]

        with pytest.raises(ValidationError):
            Transaction(**record)

    @pytest.mark.parametrize("amount", ["", "twelve", "NaN", "Infinity"])
    def test_amount_must_be_numeric(self, amount):
        """Test that non-numeric amounts are rejected."""
        with pytest.raises(ValidationError):
            Transaction(**make_record(amount=amount))

    def test_amount_sign_preserved(self):
        """Test that debits stay negative."""
        assert Transaction(**make_record(amount="-45.10")).amount == Decimal("-45.10")

    def test_description_is_trimmed(self):
        """Test surrounding whitespace is removed from the description."""
        txn = Transaction(**make_record(description="  Netflix 23XAB  "))
        assert txn.description == "Netflix 23XAB"

    def test_blank_description_rejected(self):
        """Test a whitespace-only description is treated as empty."""
        with pytest.raises(ValidationError):
            Transaction(**make_record(description="   "))

    @pytest.mark.parametrize("char", ["<", ">", "`", '"', "/", ":", "?", "(", ")", "#", ";"])
    @pytest.mark.parametrize("field", ["id", "owner_id", "description"])
    def test_disallowed_characters(self, field, char):
        """Test injection-style characters are rejected in text fields."""
        record = make_record()
        record[field] = f"abc{char}def"

        with pytest.raises(ValidationError, match="disallowed characters"):
            Transaction(**record)

    def test_disallowed_characters_in_merchant(self):
        """Test the merchant key is checked too."""
        with pytest.raises(ValidationError):
            Transaction(**make_record(), merchant="<script>")

    def test_apostrophe_allowed(self):
        """Test ordinary punctuation outside the set is accepted."""
        txn = Transaction(**make_record(description="Henry's on 12th"))
        assert txn.description == "Henry's on 12th"

    def test_occurred_at_defaults_to_now(self):
        """Test a missing date defaults to ingestion time."""
        record = make_record()
        del record["occurred_at"]
        before = datetime.now(timezone.utc)

        txn = Transaction(**record)

        assert before <= txn.occurred_at <= datetime.now(timezone.utc)

    def test_occurred_at_none_defaults_to_now(self):
        """Test an explicit null date defaults to ingestion time."""
        txn = Transaction(**make_record(occurred_at=None))
        assert datetime.now(timezone.utc) - txn.occurred_at < timedelta(minutes=1)

    def test_plain_date_becomes_midnight_utc(self):
        """Test a calendar date widens to midnight UTC."""
        record = make_record()
        record["occurred_at"] = date(2024, 1, 15)

        txn = Transaction(**record)

        assert txn.occurred_at == datetime(2024, 1, 15, tzinfo=timezone.utc)

    def test_naive_datetime_treated_as_utc(self):
        """Test a naive timestamp is stored as UTC."""
        record = make_record()
        record["occurred_at"] = datetime(2024, 1, 15, 12, 30)

        txn = Transaction(**record)

        assert txn.occurred_at.tzinfo == timezone.utc
        assert txn.occurred_at.hour == 12

    def test_offset_converted_to_utc(self):
        """Test an offset timestamp is converted to UTC."""
        txn = Transaction(**make_record(occurred_at="2024-01-15T20:00:00-05:00"))
        assert txn.occurred_at == datetime(2024, 1, 16, 1, tzinfo=timezone.utc)

    def test_immutable(self):
        """Test transactions cannot be modified after creation."""
        txn = Transaction(**make_record())
        with pytest.raises(ValidationError):
            txn.amount = Decimal("1")

    def test_to_record_uses_canonical_names(self):
        """Test serialization round-trips through canonical names."""
        txn = Transaction(**make_record(), merchant="Amazon")
        record = txn.to_record()

        assert set(record) == {"id", "owner_id", "description", "amount", "occurred_at", "merchant"}
        assert Transaction.model_validate(record) == txn


class TestAsUtc:
    """Tests for as_utc()."""

    def test_naive(self):
        """Test naive datetimes gain UTC."""
        assert as_utc(datetime(2024, 1, 1)).tzinfo == timezone.utc

    def test_aware(self):
        """Test aware datetimes are converted."""
        eastern = timezone(timedelta(hours=-5))
        assert as_utc(datetime(2024, 1, 1, 20, tzinfo=eastern)) == datetime(
            2024, 1, 2, 1, tzinfo=timezone.utc
        )


class TestGlobalConfig:
    """Tests for GlobalConfig model."""

    def test_defaults(self):
        """Test default configuration values."""
        config = GlobalConfig()

        assert config.amount_tolerance_percent == 0.25
        assert config.grace_period_days == 4
        assert config.check_sort_order is True
        assert config.default_owner is None

    @pytest.mark.parametrize("value", [-0.1, 1.5])
    def test_tolerance_out_of_range(self, value):
        """Test amount tolerance outside 0.0-1.0 is rejected."""
        with pytest.raises(ValidationError, match="between 0.0 and 1.0"):
            GlobalConfig(amount_tolerance_percent=value)

    def test_negative_grace_period(self):
        """Test negative grace period is rejected."""
        with pytest.raises(ValidationError, match="must be positive"):
            GlobalConfig(grace_period_days=-1)
