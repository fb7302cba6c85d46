"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re
from typing import Any, Optional

CENT = Decimal("0.01")
BLANK_AMOUNTS = {"", "-"}


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "฿123.45"
    - "-123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Currency symbols, thousands separators and inner whitespace
    amount_str = re.sub(r"[$€£¥฿,\s]", "", amount_str)

    try:
        amount = Decimal(amount_str)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount


def parse_statement_amount(value: Any, signed: bool = False) -> Optional[Decimal]:
    """Parse a statement cell into an amount.

    Statements usually put the sign in the column (withdrawal or deposit), so
    the absolute value is returned unless ``signed`` is set; some banks still
    export withdrawals as negative numbers.

    Returns:
        Amount rounded to cents, or None for an empty or "-" cell

    Raises:
        ValueError: If the cell holds something that is not a number
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            raise ValueError(f"Could not parse amount '{value}'")
        if not amount.is_finite():
            raise ValueError(f"Could not parse amount '{value}'")
    else:
        text = str(value).strip()
        if text in BLANK_AMOUNTS:
            return None
        amount = parse_amount(text)
    if not signed:
        amount = abs(amount)
    return amount.quantize(CENT)
