"""Display rounding for monetary amounts."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Context, Decimal, getcontext

CENT = Decimal("0.01")
ZERO = Decimal("0")


def round_money(amount: Decimal, quantize: Decimal = CENT) -> Decimal:
    """Round an exact amount for display. Never used mid-calculation.

    The quantize runs with enough precision for every integer digit of
    ``amount``, so large totals never overflow the default context.
    """
    digits = amount.adjusted() + 1 - int(quantize.as_tuple().exponent)
    context = Context(prec=max(getcontext().prec, digits + 1))
    return amount.quantize(quantize, rounding=ROUND_HALF_UP, context=context)


def format_money(amount: Decimal) -> str:
    return str(round_money(amount))


def total(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)
