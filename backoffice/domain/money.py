from __future__ import annotations

from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import Any

ZERO_DECIMAL_CURRENCIES = frozenset(
    {"bif", "clp", "djf", "gnf", "isk", "jpy", "kmf", "krw", "pyg", "rwf", "ugx", "vnd", "vuv", "xaf", "xof", "xpf"}
)
THREE_DECIMAL_CURRENCIES = frozenset({"bhd", "iqd", "jod", "kwd", "lyd", "omr", "tnd"})

CURRENCY_SYMBOLS: dict[str, str] = {
    "usd": "$",
    "eur": "€",
    "gbp": "£",
    "jpy": "¥",
    "krw": "₩",
    "inr": "₹",
    "dkk": "kr",
    "sek": "kr",
    "nok": "kr",
    "chf": "CHF",
    "cad": "CA$",
    "aud": "A$",
    "cny": "CN¥",
    "vnd": "₫",
}


def to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # str() keeps the shortest repr, avoiding binary float noise
        return Decimal(str(value))
    return Decimal(value)


def currency_decimal_digits(currency_code: str) -> int:
    code = currency_code.lower()
    if code in ZERO_DECIMAL_CURRENCIES:
        return 0
    if code in THREE_DECIMAL_CURRENCIES:
        return 3
    return 2


def normalize_amount(currency_code: str, amount: Any) -> Decimal:
    """Convert an amount stored in minor units to major units."""
    divisor = Decimal(10) ** currency_decimal_digits(currency_code)
    return to_decimal(amount) / divisor


def persist_amount(currency_code: str, amount: Any) -> int:
    """Convert a major-unit amount to integer minor units."""
    multiplier = Decimal(10) ** currency_decimal_digits(currency_code)
    return round_minor(to_decimal(amount) * multiplier)


def round_minor(value: Any) -> int:
    """Round to the nearest integer, halves toward +infinity (-2.5 -> -2)."""
    return int((to_decimal(value) + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR))


def apply_tax(amount: Any, tax_rate: Any) -> Decimal:
    return to_decimal(amount) * (1 + to_decimal(tax_rate or 0) / 100)


def format_amount_with_symbol(
    amount: Any,
    currency_code: str,
    digits: int | None = None,
    tax: Any = 0,
) -> str:
    places = currency_decimal_digits(currency_code) if digits is None else digits
    major = normalize_amount(currency_code, apply_tax(amount, tax))
    quantum = Decimal(1).scaleb(-places)
    rounded = major.quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    text = f"{abs(rounded):,.{places}f}"
    symbol = CURRENCY_SYMBOLS.get(currency_code.lower())
    if symbol is None:
        return f"{sign}{text} {currency_code.upper()}"
    return f"{sign}{symbol}{text}"
