from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

_CENTS = Decimal("0.01")
ZERO = Decimal("0")


def round2(value: Decimal | int | float | str) -> Decimal:
    """Round to 2 decimal places, half away from zero."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def parse_amount(raw: object) -> Decimal:
    """Parse free-text numeric input, coercing anything invalid to 0.

    Blank strings, non-numeric text, NaN and infinities all become 0 so they
    can never reach a persisted snapshot.
    """
    if raw is None or isinstance(raw, bool):
        return ZERO
    text = str(raw).strip()
    if not text:
        return ZERO
    try:
        value = Decimal(text)
    except InvalidOperation:
        return ZERO
    if not value.is_finite():
        return ZERO
    return round2(value)
