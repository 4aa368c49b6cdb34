"""
Module: commission_kernel.db.types
Responsibility: Annotated type aliases for monetary and percentage columns.
    The coercion and rounding helpers live in ``commission_kernel.domain.money``
    and are re-exported here so models and services import one place.
Architecture position: Kernel > DB.  May be imported by models/, services/,
    and selectors/.  Engines import ``commission_kernel.domain.money``
    instead.
Invariants enforced:
    - Money and Percentage columns are exact on every dialect
      (``ExactDecimal``).
"""

from decimal import Decimal
from typing import Annotated

from sqlalchemy import String

from commission_kernel.db.base import ExactDecimal
from commission_kernel.domain.money import (
    DEFAULT_ROUNDING,
    MONEY_DECIMAL_PLACES,
    ZERO,
    money_from_str,
    round_money,
    to_decimal,
)

# Monetary amount, exact on every dialect
Money = Annotated[Decimal, ExactDecimal()]

# Fractions such as O&P (0.15) and profit split (0.40)
Percentage = Annotated[Decimal, ExactDecimal()]

# SHA-256 hash as hex string (64 characters)
PayloadHash = Annotated[str, String(64)]

# Short identifier strings
ShortCode = Annotated[str, String(50)]

# Long text for notes and reasons
LongText = Annotated[str, String(4000)]

__all__ = [
    "DEFAULT_ROUNDING",
    "LongText",
    "MONEY_DECIMAL_PLACES",
    "Money",
    "PayloadHash",
    "Percentage",
    "ShortCode",
    "ZERO",
    "money_from_str",
    "round_money",
    "to_decimal",
]
