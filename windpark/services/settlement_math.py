from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
PCT5 = Decimal("0.00001")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = Decimal("12")


def to_decimal(value: Decimal | str | int | float | None) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def optional_decimal(value: Decimal | str | int | float | None) -> Decimal | None:
    if value is None or value == "":
        return None
    amount = to_decimal(value)
    if amount == 0:
        return None
    return amount


def quantize_cent(value: Decimal | str | int | None) -> Decimal:
    return to_decimal(value or ZERO).quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_pct5(value: Decimal | str | int | None) -> Decimal:
    return to_decimal(value or ZERO).quantize(PCT5, rounding=ROUND_HALF_UP)


def sum_cents(values) -> Decimal:
    total = ZERO
    for value in values:
        total += value
    return quantize_cent(total)


def format_money_de(value: object) -> str:
    amount = quantize_cent(to_decimal(value))
    return f"{amount:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
