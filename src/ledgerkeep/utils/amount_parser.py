"""Amount parsing utilities."""

import re
from decimal import Decimal, InvalidOperation

CENTS = Decimal("0.01")


def parse_amount(amount_str: str, allow_negative: bool = True) -> Decimal:
    """Parse an amount string into a two-decimal Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45"
    - "-123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string
        allow_negative: Reject negative amounts when False

    Returns:
        Decimal amount with exactly two fractional digits

    Raises:
        ValueError: If the string cannot be parsed, has more than two
            fractional digits, or is negative when that is not allowed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    text = amount_str.strip()

    is_negative = False
    if text.startswith("(") and text.endswith(")"):
        is_negative = True
        text = text[1:-1]

    # Currency symbols and thousands separators
    text = re.sub(r"[$€£¥,\s]", "", text)

    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if amount != amount.quantize(CENTS):
        raise ValueError(f"Amount '{amount_str}' has more than two decimal places")

    if is_negative:
        amount = -amount
    if amount < 0 and not allow_negative:
        raise ValueError(f"Amount '{amount_str}' cannot be negative")
    return amount.quantize(CENTS)
