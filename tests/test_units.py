"""Unit conversion and formatting."""

import threading
from decimal import Decimal

import pytest

from sinag_admin.units import (
    bps_to_percent,
    calculate_progress,
    days_until_maturity,
    format_amount,
    format_date,
    format_datetime,
    from_smallest_unit,
    micro_to_usdc,
    mist_to_sui,
    percent_to_bps,
    shorten_address,
    status_label,
    sui_to_mist,
    to_decimal,
    to_smallest_unit,
    usdc_to_micro,
    MS_PER_DAY,
)


def test_mist_round_trip():
    assert mist_to_sui(1_000_000_000) == Decimal("1")
    assert sui_to_mist(mist_to_sui(1_000_000_000)) == 1_000_000_000


def test_sub_unit_input_is_floored():
    assert sui_to_mist("1.2345678") == 1_234_567_800
    assert sui_to_mist("0.0000000019") == 1
    assert usdc_to_micro("2.9999999") == 2_999_999


def test_float_input_does_not_drift():
    # 0.1 as a binary float is 0.1000000000000000055...
    assert sui_to_mist(0.1) == 100_000_000
    assert to_smallest_unit(1.15, "USDC") == 1_150_000


def test_large_values_stay_exact():
    big = 2 ** 64 - 1
    assert to_smallest_unit(from_smallest_unit(big, "SUI"), "SUI") == big
    assert micro_to_usdc(big) == Decimal(big) / Decimal(1_000_000)


@pytest.mark.parametrize("bad", ["", "abc", "nan", "inf", None, True])
def test_invalid_amounts_rejected(bad):
    with pytest.raises(ValueError):
        to_decimal(bad)


def test_unknown_denomination_rejected():
    with pytest.raises(ValueError):
        to_smallest_unit("1", "ETH")


def test_basis_points():
    assert percent_to_bps("10.5") == 1050
    assert percent_to_bps("12.345") == 1234
    assert bps_to_percent(1050) == "10.50"


def test_format_amount_groups_thousands():
    assert format_amount(1_234_500_000_000, "SUI") == "1,234.50 SUI"
    assert format_amount(2_500_000, "USDC") == "2.50 USDC"


def test_progress_and_maturity():
    assert calculate_progress(0, 0) == 0
    assert calculate_progress(1, 3) == 33
    assert calculate_progress(2, 3) == 67
    now = 1_700_000_000_000
    assert days_until_maturity(now + MS_PER_DAY + 1, now) == 2
    assert days_until_maturity(now - MS_PER_DAY, now) == 0


def test_labels():
    assert shorten_address("0x1234567890abcdef") == "0x1234...cdef"
    assert status_label(0) == "Active"


def test_precision_does_not_depend_on_the_calling_thread():
    # 29 significant digits once scaled, past the default decimal context
    amount = "12345678901234567890.123456789"
    results = []

    worker = threading.Thread(target=lambda: results.append(to_smallest_unit(amount, "SUI")))
    worker.start()
    worker.join()

    assert results == [12345678901234567890123456789]
    assert percent_to_bps("1234567890123456789012345678.99") == 123456789012345678901234567899


def test_dates_are_formatted_in_utc():
    assert format_date(1_735_689_600_000) == "January 1, 2025"
    assert format_datetime(1_735_689_600_000 + 90 * 60 * 1000) == "January 1, 2025 01:30 UTC"
