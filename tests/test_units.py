"""Tests for shared.units."""
import pytest

from shared.units import (
    fixed_to_price,
    format_amount,
    format_asset,
    format_duration,
    parse_amount,
    percent_change,
    price_to_fixed,
)


def test_price_to_fixed_rounds_to_nearest():
    assert price_to_fixed(95300.5) == 9_530_050_000_000
    assert price_to_fixed(1.000000005) == 100_000_001
    assert price_to_fixed(1.000000004) == 100_000_000


@pytest.mark.parametrize("price", [0.0, 0.00000001, 1.5, 95300.12345678, 123456.87654321])
def test_fixed_price_round_trip(price):
    assert fixed_to_price(price_to_fixed(price)) == pytest.approx(price, abs=1e-8)


def test_fixed_to_price_accepts_strings():
    assert fixed_to_price("9530050000000") == 95300.5


def test_token_amounts():
    assert format_amount(10000) == "1.0000"
    assert format_asset(1_000_000) == "100.0000 XPR"
    assert parse_amount("100.0000 XPR") == 1_000_000
    assert parse_amount("0.00019") == 1
    assert parse_amount(2.5) == 25000


def test_percent_change():
    assert percent_change(100.0, 101.0) == pytest.approx(1.0)
    assert percent_change(0.0, 5.0) == 0.0


def test_format_duration():
    assert format_duration(45) == "45s"
    assert format_duration(1800) == "30m"
    assert format_duration(5400) == "1h 30m"
    assert format_duration(90000) == "1d 1h"
    assert format_duration(-1) == "Ended"
