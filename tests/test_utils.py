from datetime import date
from decimal import Decimal

import pytest

from emi_calc.utils import (
    add_months,
    days_between,
    decimal_from_str,
    parse_amount,
    parse_date,
    parse_dated_value,
)


class TestParseDate:
    def test_full_date(self):
        assert parse_date("2025-03-16") == date(2025, 3, 16)

    def test_year_month(self):
        assert parse_date("2025-03") == date(2025, 3, 1)

    def test_iso_timestamp(self):
        assert parse_date("2025-03-16T00:00:00.000Z") == date(2025, 3, 16)

    @pytest.mark.parametrize("value", ["2025", "2025-13-01", "march", "2025-02-30"])
    def test_invalid(self, value):
        with pytest.raises(ValueError, match="Invalid date"):
            parse_date(value)


class TestAddMonths:
    def test_simple(self):
        assert add_months(date(2025, 1, 1), 1) == date(2025, 2, 1)

    def test_year_rollover(self):
        assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)

    def test_clamps_to_month_end(self):
        assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
        assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)

    def test_tenure_end(self):
        assert add_months(date(2024, 1, 1), 240) == date(2044, 1, 1)


class TestDaysBetween:
    def test_forward(self):
        assert days_between(date(2025, 1, 1), date(2026, 1, 1)) == 365

    def test_backward(self):
        assert days_between(date(2025, 3, 1), date(2025, 1, 1)) == -59


class TestAmounts:
    def test_decimal_from_str_strips_commas(self):
        assert decimal_from_str("45,00,000") == Decimal("4500000")

    def test_decimal_from_float_keeps_short_repr(self):
        assert decimal_from_str(8.1) == Decimal("8.1")

    def test_decimal_rejects_nan(self):
        with pytest.raises(ValueError):
            decimal_from_str("NaN")

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("4500000", Decimal("4500000")),
            ("45l", Decimal("4500000")),
            ("45 lakh", Decimal("4500000")),
            ("0.45cr", Decimal("4500000")),
            ("4.5m", Decimal("4500000")),
            ("4500k", Decimal("4500000")),
        ],
    )
    def test_parse_amount_suffixes(self, value, expected):
        assert parse_amount(value) == expected

    def test_parse_amount_invalid(self):
        with pytest.raises(ValueError, match="Invalid amount"):
            parse_amount("lots")


class TestDatedValue:
    def test_split(self):
        assert parse_dated_value("2025-03-16:15l") == (date(2025, 3, 16), "15l")

    def test_missing_value(self):
        with pytest.raises(ValueError, match="DATE:VALUE"):
            parse_dated_value("2025-03-16")
