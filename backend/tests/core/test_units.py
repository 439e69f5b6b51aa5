"""Ether Units: exact parsing and formatting between ether strings and wei.

Tests:
    - Common amounts parse to exact wei (no float drift)
    - 18 fractional digits accepted, 19 rejected with PrecisionError
    - Malformed input (signs, exponents, empty, non-string) rejected with ValidationError
    - format_ether renders the shortest exact form; format_ether_fixed rounds half-up
    - ether -> wei -> ether round-trips exactly for 0..18 fractional digits
    - Non-ASCII digits are not decimal amounts
"""

from decimal import Decimal

import pytest

from donatechain.core.errors import PrecisionError, ValidationError
from donatechain.core.units import (
    format_ether, format_ether_fixed, parse_ether, short_address,
)


@pytest.mark.parametrize("text, wei", [
    ("0.5", 500_000_000_000_000_000),
    ("0.1", 100_000_000_000_000_000),
    ("1", 10 ** 18),
    ("1.0", 10 ** 18),
    (".25", 250_000_000_000_000_000),
    ("2.", 2 * 10 ** 18),
    (" 0.75 ", 750_000_000_000_000_000),
    ("0.000000000000000001", 1),
])
def test_parse_ether_is_exact(text, wei):
    assert parse_ether(text) == wei


def test_parse_ether_sums_without_float_drift():
    # 0.1 + 0.2 != 0.3 in binary floating point
    assert parse_ether("0.1") + parse_ether("0.2") == parse_ether("0.3")


def test_eighteen_fraction_digits_accepted():
    assert parse_ether("1.123456789012345678") == 1_123_456_789_012_345_678


def test_nineteen_fraction_digits_is_precision_error():
    with pytest.raises(PrecisionError) as exc_info:
        parse_ether("0.0000000000000000001")
    assert exc_info.value.code == "PRECISION_ERROR"
    assert exc_info.value.field == "amount"
    assert isinstance(exc_info.value, ValidationError)


@pytest.mark.parametrize("text", ["", "   ", ".", "-1", "+1", "1e18", "abc", "1,000", "nan", "1.2.3"])
def test_malformed_amounts_rejected(text):
    with pytest.raises(ValidationError):
        parse_ether(text)


def test_non_string_rejected():
    with pytest.raises(ValidationError):
        parse_ether(0.5)


def test_validation_error_names_field():
    with pytest.raises(ValidationError) as exc_info:
        parse_ether("x", field="value")
    assert "x" in exc_info.value.message


@pytest.mark.parametrize("wei, text", [
    (10 ** 18, "1.0"),
    (500_000_000_000_000_000, "0.5"),
    (0, "0.0"),
    (1, "0.000000000000000001"),
    (2_600_000_000_000_000_000, "2.6"),
])
def test_format_ether_shortest_exact(wei, text):
    assert format_ether(wei) == text


def test_format_ether_rejects_negative():
    with pytest.raises(ValueError):
        format_ether(-1)


def test_format_ether_fixed_rounds_half_up():
    assert format_ether_fixed(2_600_000_000_000_000_000, 2) == "2.60"
    assert format_ether_fixed(12_345_000_000_000_000, 4) == "0.0123"
    assert format_ether_fixed(12_350_000_000_000_000, 3) == "0.012"
    assert format_ether_fixed(12_500_000_000_000_000, 2) == "0.01"
    assert format_ether_fixed(15_000_000_000_000_000, 2) == "0.02"


def test_format_ether_fixed_handles_uint256_max():
    assert format_ether_fixed(2 ** 256 - 1, 2).endswith(".58")


def test_short_address():
    assert short_address("0x742d35Cc6634C0532925a3b844Bc9e7595f8bE21") == "0x742d...bE21"
    assert short_address(None) == ""


@pytest.mark.parametrize("text", [
    "0",
    "1.5",
    "1.50",
    "0.25",
    ".5",
    "7.",
    "123.456789",
    "0.000000001",
    "0.000000000000000001",
    "1.123456789012345678",
    "999999999.999999999999999999",
    str(2 ** 256 // 10 ** 18) + ".000000000000000001",
] + ["0." + "9" * digits for digits in range(1, 19)])
def test_ether_wei_ether_round_trip(text):
    assert Decimal(format_ether(parse_ether(text))) == Decimal(text)


@pytest.mark.parametrize("text", ["١.٥", "１", "1.٥", "২"])
def test_non_ascii_digits_rejected(text):
    with pytest.raises(ValidationError):
        parse_ether(text)
