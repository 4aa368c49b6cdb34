"""
Exact money arithmetic helpers.

Responsibility:
    Coercion to Decimal and the single cent-rounding rule used by every
    worksheet, draw and override computation.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Engines import from here;
    ``commission_kernel.db.types`` re-exports these names for the ORM layer.

Invariants enforced:
    - No floats anywhere in money math.  ``to_decimal`` refuses float input;
      callers convert at the edge with ``money_from_str``.
    - ``round_money`` is the ONLY sanctioned rounding function for currency
      values (cents, ROUND_HALF_UP).

Failure modes:
    - TypeError on float or bool input to ``to_decimal``.
    - decimal.InvalidOperation on non-numeric strings.
"""

from decimal import ROUND_HALF_UP, Decimal

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP
ZERO = Decimal("0")


def to_decimal(value: Decimal | int | str) -> Decimal:
    """
    Coerce an int, str, or Decimal to Decimal.

    Raises:
        TypeError: If value is a float (binary floats drift below the cent).
    """
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary value")
    if isinstance(value, float):
        raise TypeError("float is not accepted for monetary values; use Decimal or str")
    if isinstance(value, Decimal):
        return value
    return Decimal(value)


def money_from_str(value: str) -> Decimal:
    """Create a Money value from string (not rounded)."""
    return Decimal(value)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given decimal places.

    This is the ONLY sanctioned rounding function for currency values.
    Every derived amount on a commission worksheet passes through it.
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    return value.quantize(quantum, rounding=rounding)
