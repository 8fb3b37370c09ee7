# ==== DECIMAL ARITHMETIC LAYER ==== #

"""
Decimal helpers for every monetary computation in Credit Gate.

Amounts are always ``decimal.Decimal``. ``to_decimal`` is the single entry
point for values coming from the database, JSON payloads or callers, and it
rejects anything that is not a finite amount inside the column range.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from app.business.errors import InvalidAmountError


ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

# Maximum drift between ledger and cached balance treated as equal
RECONCILIATION_TOLERANCE = Decimal("0.01")

# Display cap for utilization when the limit is tiny
UTILIZATION_DISPLAY_CAP = Decimal("999")

# Numeric(18, 2) holds up to 16 integer digits, so magnitudes stay below 1e16
MAX_ABS_AMOUNT = Decimal("1e16")

AmountLike = Union[Decimal, int, float, str, None]


def to_decimal(value: AmountLike) -> Decimal:
    """
    Convert an external numeric value to a bounded Decimal.

    Floats go through their shortest repr so ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.

    Args:
        value: Amount from a driver, payload or caller; None means zero

    Returns:
        Decimal: Exact amount

    Raises:
        InvalidAmountError: For booleans, unparsable strings, NaN/Infinity and
            magnitudes outside the supported range
    """
    if value is None:
        return ZERO
    if isinstance(value, bool):
        raise InvalidAmountError(f"Boolean is not an amount: {value!r}")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation as exc:
            raise InvalidAmountError(f"Not a decimal amount: {value!r}") from exc
    else:
        raise InvalidAmountError(f"Unsupported amount type: {type(value).__name__}")

    if not amount.is_finite():
        raise InvalidAmountError(f"Amount must be finite: {value!r}")
    if abs(amount) >= MAX_ABS_AMOUNT:
        raise InvalidAmountError(f"Amount out of range: {value!r}")

    return amount


def quantize_money(amount: Decimal) -> Decimal:
    """Round an amount to cents, half up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal) -> str:
    """Render an amount as ``$1234.50``."""
    return f"${quantize_money(amount)}"


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """
    Express ``part`` as a percentage of ``whole``.

    A zero ``whole`` yields 100: with no limit, any usage is full usage.
    """
    if whole.is_zero():
        return HUNDRED
    return part / whole * HUNDRED


def cap_percent(value: Decimal) -> Decimal:
    """Cap a percentage for display and round it to two decimals."""
    return min(value, UTILIZATION_DISPLAY_CAP).quantize(CENT, rounding=ROUND_HALF_UP)
