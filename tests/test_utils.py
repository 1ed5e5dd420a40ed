"""Tests for money helpers, payload parsing and read retries."""

from decimal import Decimal

import pytest

from sales_assistant.errors import NotFoundError, PersistenceError
from sales_assistant.utils import format_currency, parse_leading_int, retry_read, to_money


class TestMoney:
    def test_half_up_rounding(self):
        assert to_money(Decimal("1.005")) == Decimal("1.01")
        assert to_money(Decimal("21215.154")) == Decimal("21215.15")

    def test_format_whole_units(self):
        assert format_currency(Decimal("1247950")) == "₱1,247,950"
        assert format_currency(Decimal("21215.15")) == "₱21,215"
        assert format_currency(Decimal("0.50")) == "₱1"


class TestParseLeadingInt:
    @pytest.mark.parametrize("value, prefix, expected", [
        ("DOWN_PAYMENT_30", "down_payment_", 30),
        ("TERM_48", "term_", 48),
        ("36 months", "term_", 36),
        ("  20% please", None, 20),
        ("twenty", None, None),
        ("-5", None, None),
    ])
    def test_parse(self, value, prefix, expected):
        assert parse_leading_int(value, prefix) == expected


class FlakyRead:
    def __init__(self, failures: int, error: Exception) -> None:
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self, key):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return f"value for {key}"


class TestRetryRead:
    def test_succeeds_after_transient_failure(self):
        read = FlakyRead(2, PersistenceError("busy"))
        assert retry_read(read, "k", attempts=2, backoff=0) == "value for k"
        assert read.calls == 3

    def test_gives_up_after_attempts(self):
        read = FlakyRead(5, PersistenceError("down"))
        with pytest.raises(PersistenceError):
            retry_read(read, "k", attempts=2, backoff=0)
        assert read.calls == 3

    def test_other_errors_not_retried(self):
        read = FlakyRead(1, NotFoundError("missing"))
        with pytest.raises(NotFoundError):
            retry_read(read, "k", attempts=2, backoff=0)
        assert read.calls == 1

    def test_last_error_propagates(self):
        calls = []

        def read(key):
            calls.append(key)
            raise PersistenceError(f"down {len(calls)}")

        with pytest.raises(PersistenceError, match="down 3"):
            retry_read(read, "k", attempts=2, backoff=0)

    def test_zero_attempts_reads_once(self):
        read = FlakyRead(1, PersistenceError("busy"))
        with pytest.raises(PersistenceError):
            retry_read(read, "k", attempts=0, backoff=0)
        assert read.calls == 1
