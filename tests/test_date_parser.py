"""Tests for date parsing utilities."""

import pytest
from datetime import date, timedelta
from dateutil.relativedelta import relativedelta
from qbrecon.utils.date_parser import add_months, get_date_range, parse_date, parse_qb_date


def test_parse_qb_date_us_format():
    """QuickBooks exports write dates as MM/DD/YYYY."""
    assert parse_qb_date("01/02/2026") == date(2026, 1, 2)
    assert parse_qb_date("1/2/2026") == date(2026, 1, 2)


def test_parse_qb_date_iso_and_dashed():
    """ISO and MM-DD-YYYY dates are accepted."""
    assert parse_qb_date("2026-01-15") == date(2026, 1, 15)
    assert parse_qb_date("01-15-2026") == date(2026, 1, 15)


def test_parse_qb_date_spreadsheet_timestamp():
    """Spreadsheet cells arrive with a time part."""
    assert parse_qb_date("2024-01-15 00:00:00") == date(2024, 1, 15)


def test_parse_qb_date_invalid_returns_none():
    """Empty and impossible dates give None instead of raising."""
    assert parse_qb_date(None) is None
    assert parse_qb_date("") is None
    assert parse_qb_date("   ") is None
    assert parse_qb_date("13/45/2026") is None
    assert parse_qb_date("02/30/2026") is None


def test_parse_absolute_date():
    """Test parsing absolute dates."""
    result = parse_date("2024-01-15")
    assert result == date(2024, 1, 15)


def test_parse_today():
    """Test parsing 'today'."""
    assert parse_date("today") == date.today()


def test_parse_yesterday():
    """Test parsing 'yesterday'."""
    assert parse_date("yesterday") == date.today() - timedelta(days=1)


def test_parse_last_month():
    """Test parsing 'last month'."""
    result = parse_date("last month")
    # Should be first day of last month
    today = date.today()
    if today.month == 1:
        expected = date(today.year - 1, 12, 1)
    else:
        expected = date(today.year, today.month - 1, 1)
    assert result == expected


def test_parse_this_year():
    """Test parsing 'this year'."""
    today = date.today()
    assert parse_date("this year") == date(today.year, 1, 1)


def test_parse_invalid_relative():
    """Test parsing invalid relative date."""
    with pytest.raises(ValueError):
        parse_date("last invalid")


def test_parse_long_format():
    """Month names are handled by the generic parser."""
    assert parse_date("January 15, 2024") == date(2024, 1, 15)


def test_get_date_range_this_month():
    """Test get_date_range for this-month."""
    today = date.today()
    start, end = get_date_range("this-month")
    assert start == date(today.year, today.month, 1)
    assert end == today


def test_get_date_range_last_month():
    """Test get_date_range for last-month."""
    today = date.today()
    start, end = get_date_range("last-month")
    expected_start = (today - relativedelta(months=1)).replace(day=1)
    expected_end = today.replace(day=1) - timedelta(days=1)
    assert start == expected_start
    assert end == expected_end


def test_get_date_range_last_year():
    """Test get_date_range for last-year."""
    today = date.today()
    start, end = get_date_range("last-year")
    assert start == date(today.year - 1, 1, 1)
    assert end == date(today.year - 1, 12, 31)


def test_get_date_range_invalid_period():
    """Test get_date_range with invalid period."""
    with pytest.raises(ValueError, match="Unknown period"):
        get_date_range("invalid-period")


def test_add_months_clamps_to_month_end():
    """Adding months keeps the day where possible and clamps otherwise."""
    assert add_months(date(2026, 1, 15), 12) == date(2027, 1, 15)
    assert add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)
    assert add_months(date(2026, 3, 1), 0) == date(2026, 3, 1)
