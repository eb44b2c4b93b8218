from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated

from pydantic import PlainSerializer

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def D(x) -> Decimal:
    """Coerce a number or numeric string to Decimal without float noise."""
    if isinstance(x, Decimal):
        return x
    if x is None or isinstance(x, bool):
        raise InvalidOperation(f"not a number: {x!r}")
    return Decimal(str(x))


def money2(x) -> Decimal:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(x, symbol: str = "Rs.") -> str:
    return f"{symbol} {money2(x):,.2f}"


# Full precision in memory, two places on the wire.
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(money2(v)), return_type=float, when_used="json"),
]

Percent = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]
