"""Ringgit / sen conversion.

Amounts are stored and sent to gateways as integer sen.
"""

from decimal import Decimal, InvalidOperation


def ringgit_to_sen(amount: str) -> int | None:
    """Convert a ringgit string such as ``"10.50"`` to integer sen.

    Returns None when the value is not a number.
    """
    try:
        return int((Decimal(amount) * 100).quantize(Decimal("1")))
    except (InvalidOperation, ValueError):
        return None


def sen_to_ringgit(amount: int) -> str:
    """Format integer sen as a two-decimal ringgit string."""
    return f"{Decimal(amount) / 100:.2f}"
