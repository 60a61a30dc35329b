"""Conversion between display amounts and on-chain fixed-point integers.

All arithmetic goes through ``decimal.Decimal`` and Python ``int``; floats are
only accepted as input and are read through ``str()`` so ``1.5`` means exactly
one and a half units. Conversions into the smallest unit always floor.
"""

from datetime import datetime, timezone
from decimal import Context, Decimal, InvalidOperation, ROUND_FLOOR, ROUND_HALF_UP
from typing import Optional, Union
import time

from sinag_admin.config import STATUS_ACTIVE, STATUS_COMPLETED, STATUS_MANUALLY_CLOSED

# u64 amounts need 20 significant digits, leave headroom for the fractional part.
# Passed explicitly since the ambient decimal context is per thread.
_CONTEXT = Context(prec=40)

MIST_PER_SUI = 1_000_000_000
MICRO_USDC_PER_USDC = 1_000_000

DENOMINATION_SCALES = {
    "SUI": MIST_PER_SUI,
    "USDC": MICRO_USDC_PER_USDC,
}

MS_PER_DAY = 24 * 60 * 60 * 1000

Amount = Union[int, str, float, Decimal]


def to_decimal(amount: Amount) -> Decimal:
    """Parse a user-supplied amount without binary float drift."""
    if isinstance(amount, bool):
        raise ValueError(f"Not a numeric amount: {amount!r}")
    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, int):
        value = Decimal(amount)
    elif isinstance(amount, float):
        value = Decimal(repr(amount))
    elif isinstance(amount, str):
        try:
            value = Decimal(amount.strip())
        except InvalidOperation:
            raise ValueError(f"Not a numeric amount: {amount!r}")
    else:
        raise ValueError(f"Not a numeric amount: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"Amount must be finite: {amount!r}")
    return value


def scale_for(coin_type: str) -> int:
    try:
        return DENOMINATION_SCALES[coin_type]
    except KeyError:
        raise ValueError(f"Unsupported denomination: {coin_type}")


def to_smallest_unit(amount: Amount, coin_type: str) -> int:
    """Convert a display amount to the denomination's smallest unit, flooring."""
    scaled = _CONTEXT.multiply(to_decimal(amount), scale_for(coin_type))
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))


def from_smallest_unit(value: Union[int, str], coin_type: str) -> Decimal:
    """Convert an on-chain integer amount to display units (exact)."""
    return _CONTEXT.divide(Decimal(int(value)), Decimal(scale_for(coin_type)))


def sui_to_mist(sui: Amount) -> int:
    return to_smallest_unit(sui, "SUI")


def mist_to_sui(mist: Union[int, str]) -> Decimal:
    return from_smallest_unit(mist, "SUI")


def usdc_to_micro(usdc: Amount) -> int:
    return to_smallest_unit(usdc, "USDC")


def micro_to_usdc(micro: Union[int, str]) -> Decimal:
    return from_smallest_unit(micro, "USDC")


def percent_to_bps(percent: Amount) -> int:
    """10.5 (%) -> 1050 basis points, flooring sub-basis-point input."""
    return int(_CONTEXT.multiply(to_decimal(percent), 100).to_integral_value(rounding=ROUND_FLOOR))


def bps_to_percent(bps: Union[int, str]) -> str:
    return f"{Decimal(int(bps)) / 100:.2f}"


def format_amount(value: Union[int, str], coin_type: str = "SUI") -> str:
    """Format an on-chain integer amount for display, e.g. ``1,234.50 SUI``."""
    display = from_smallest_unit(value, coin_type).quantize(Decimal("0.01"), rounding=ROUND_FLOOR, context=_CONTEXT)
    return f"{display:,.2f} {coin_type}"


def _to_datetime(timestamp_ms: Union[int, str]) -> datetime:
    return datetime.fromtimestamp(int(timestamp_ms) / 1000, tz=timezone.utc)


def format_date(timestamp_ms: Union[int, str]) -> str:
    dt = _to_datetime(timestamp_ms)
    return f"{dt:%B} {dt.day}, {dt.year}"


def format_datetime(timestamp_ms: Union[int, str]) -> str:
    dt = _to_datetime(timestamp_ms)
    return f"{dt:%B} {dt.day}, {dt.year} {dt:%H:%M} UTC"


def now_ms() -> int:
    return int(time.time() * 1000)


def days_until_maturity(maturity_ms: Union[int, str], current_ms: Optional[int] = None) -> int:
    """Whole days left until maturity, rounded up and never negative."""
    if current_ms is None:
        current_ms = now_ms()
    diff = int(maturity_ms) - current_ms
    return max(0, -(-diff // MS_PER_DAY))


def calculate_progress(sold: Union[int, str], total: Union[int, str]) -> int:
    """Percentage of shares sold, rounded half up."""
    total = int(total)
    if total == 0:
        return 0
    ratio = _CONTEXT.divide(_CONTEXT.multiply(Decimal(int(sold)), 100), Decimal(total))
    return int(ratio.to_integral_value(rounding=ROUND_HALF_UP))


def shorten_address(address: str, chars: int = 4) -> str:
    if not address:
        return ""
    return f"{address[:chars + 2]}...{address[-chars:]}"


def status_label(status: int) -> str:
    return {
        STATUS_ACTIVE: "Active",
        STATUS_COMPLETED: "Completed",
        STATUS_MANUALLY_CLOSED: "Manually Closed",
    }.get(status, "Unknown")
