import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Cents must fit a SQLite INTEGER and line totals the default decimal context.
MAX_AMOUNT = Decimal("1000000000000")


def clean_text(value: Any) -> Optional[str]:
    """Collapse whitespace; return None for blank or non-string input."""
    if not isinstance(value, str):
        return None
    cleaned = " ".join(value.split())
    return cleaned or None


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_money(val: Any) -> Decimal:
    """Parse a price into a cent-quantized Decimal.

    Accepts Decimals, ints, floats and strings like '14,70', '14.70',
    '1.470,00', '1,470.00' or '₹ 19.99'. Raises ValueError unless the
    whole string is one number, or when the amount reaches MAX_AMOUNT.
    Floats go through str() so 0.1 stays 0.10.
    """
    if isinstance(val, bool) or val is None:
        raise ValueError(f"invalid amount: {val!r}")
    if isinstance(val, Decimal):
        if not val.is_finite() or abs(val) >= MAX_AMOUNT:
            raise ValueError(f"invalid amount: {val!r}")
        try:
            return quantize_money(val)
        except ArithmeticError as exc:
            raise ValueError(f"invalid amount: {val!r}") from exc
    if isinstance(val, (int, float)):
        return parse_money(Decimal(str(val)))

    s = str(val).strip().replace(" ", "")
    if not s:
        raise ValueError("empty amount")
    has_dot = "." in s
    has_comma = "," in s
    s2 = s
    if has_dot and has_comma:
        if re.search(r",\d{1,2}$", s):
            s2 = s.replace(".", "").replace(",", ".")
        else:
            s2 = s.replace(",", "")
    elif has_comma:
        if re.search(r",\d{1,2}$", s):
            s2 = s.replace(",", ".")
        else:
            s2 = s.replace(",", "")

    # Leading currency markers such as '₹' or 'Rs.'
    s2 = re.sub(r"^[^\d\-.,]+(?:\.(?=\d))?", "", s2)
    if not re.fullmatch(r"-?\d+(?:\.\d+)?", s2):
        raise ValueError(f"invalid amount: {val!r}")
    return parse_money(Decimal(s2))


def to_cents(value: Decimal) -> int:
    return int(quantize_money(value) * 100)


def from_cents(cents: int) -> Decimal:
    return quantize_money(Decimal(int(cents)) / 100)


def format_money(value: Decimal, symbol: str = "") -> str:
    """Render an amount with two decimals and thousands separators."""
    return f"{symbol}{quantize_money(value):,.2f}"
