from datetime import date

import pytest

from repayments.utils import (
    add_months,
    float_from_str,
    months_between,
    parse_date,
    parse_lump_sum,
)


def test_parse_date_year_month():
    assert parse_date("2024-03") == date(2024, 3, 1)


def test_parse_date_full():
    assert parse_date(" 2024-03-15 ") == date(2024, 3, 15)


@pytest.mark.parametrize("value", ["2024", "2024-13", "2024-02-30", "march", ""])
def test_parse_date_invalid(value):
    with pytest.raises(ValueError):
        parse_date(value)


def test_add_months_clamps_day():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)


def test_add_months_across_years():
    assert add_months(date(2020, 11, 15), 14) == date(2022, 1, 15)
    assert add_months(date(2020, 1, 1), 360) == date(2050, 1, 1)


def test_months_between_ignores_days():
    assert months_between(date(2020, 1, 31), date(2020, 2, 1)) == 1
    assert months_between(date(2020, 1, 1), date(2025, 1, 1)) == 60
    assert months_between(date(2020, 5, 1), date(2020, 2, 1)) == -3


@pytest.mark.parametrize(
    "value, expected",
    [
        ("1200", 1200.0),
        ("1,200.50", 1200.5),
        ("500k", 500_000.0),
        ("1.5M", 1_500_000.0),
    ],
)
def test_float_from_str(value, expected):
    assert float_from_str(value) == expected


def test_float_from_str_invalid():
    with pytest.raises(ValueError):
        float_from_str("abc")


def test_parse_lump_sum():
    assert parse_lump_sum("2030-06:25k") == (date(2030, 6, 1), 25_000.0)


@pytest.mark.parametrize("value", ["2030-06", "2030-06:1:2", "june:100"])
def test_parse_lump_sum_invalid(value):
    with pytest.raises(ValueError):
        parse_lump_sum(value)
