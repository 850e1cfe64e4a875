from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from ..exceptions import ValidationError

ZERO = Decimal("0.00")
CENT = Decimal("0.01")

# Entries whose debits and credits differ by this much or more are rejected
BALANCE_TOLERANCE = CENT


def to_money(value, field="amount"):
    """Coerce user input (str/int/Decimal) to a 2-place Decimal.

    Floats go through str() first so 0.1 stays 0.10. Input finer than one
    paisa is refused rather than rounded; "100.50" and "100.500" are fine.
    """
    if value is None or value == "":
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{field} is not a valid amount: {value!r}", field=field) from exc
    if not amount.is_finite():
        raise ValidationError(f"{field} is not a valid amount: {value!r}", field=field)
    try:
        quantized = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValidationError(f"{field} is too large: {value!r}", field=field) from exc
    if quantized != amount:
        raise ValidationError(
            f"{field} has more than 2 decimal places: {value!r}", field=field, value=str(value)
        )
    return quantized


def round_money(amount):
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
