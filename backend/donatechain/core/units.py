"""Ether Units: exact conversion between decimal ether strings and integer wei.

Invariants:
    - parse_ether never touches float: "0.1" is exactly 100000000000000000 wei
    - More than 18 fractional digits is a PrecisionError, never silently truncated
    - format_ether(parse_ether(s)) is numerically equal to s for every accepted s
    - Signs, exponents, nan/inf, thousands separators and non-ASCII digits are rejected

Design Decisions:
    - Regex + integer arithmetic over Decimal for parsing: no context precision to configure
    - Decimal only for display rounding (format_ether_fixed), where rounding is allowed
"""

import re
from decimal import Decimal, ROUND_HALF_UP, localcontext

from donatechain.core.domain_types import ETHER_DECIMALS, WEI_PER_ETHER
from donatechain.core.errors import PrecisionError, ValidationError

_DECIMAL_RE = re.compile(r"^(?P<whole>[0-9]*)(?:\.(?P<frac>[0-9]*))?$")


def parse_ether(amount: str, field: str = "amount") -> int:
    """Parse a non-negative decimal ether string into wei. Pure."""
    if not isinstance(amount, str):
        raise ValidationError(
            f"{field} must be a decimal string, got {type(amount).__name__}", field,
        )
    text = amount.strip()
    match = _DECIMAL_RE.match(text)
    if not match or not (match.group("whole") or match.group("frac")):
        raise ValidationError(f"'{amount}' is not a valid decimal amount", field)

    whole = match.group("whole") or "0"
    frac = match.group("frac") or ""
    if len(frac) > ETHER_DECIMALS:
        raise PrecisionError(amount, ETHER_DECIMALS)

    return int(whole) * WEI_PER_ETHER + int(frac.ljust(ETHER_DECIMALS, "0"))


def format_ether(wei: int) -> str:
    """Render wei as the shortest exact ether string ("1.0", "0.25")."""
    if wei < 0:
        raise ValueError(f"wei amount must be non-negative, got {wei}")
    whole, frac = divmod(wei, WEI_PER_ETHER)
    frac_text = str(frac).zfill(ETHER_DECIMALS).rstrip("0") or "0"
    return f"{whole}.{frac_text}"


def format_ether_fixed(wei: int, places: int = 4) -> str:
    """Display-only rounding (half-up) to a fixed number of places."""
    with localcontext() as ctx:
        ctx.prec = 100  # uint256 wei has up to 78 digits
        value = Decimal(wei) / Decimal(WEI_PER_ETHER)
        quantum = Decimal(1).scaleb(-places)
        return str(value.quantize(quantum, rounding=ROUND_HALF_UP))


def short_address(address: str | None) -> str:
    """0x1234...abcd display form."""
    if not address:
        return ""
    return f"{address[:6]}...{address[-4:]}"
