from __future__ import annotations

from decimal import Decimal

from backoffice.domain.money import (
    apply_tax,
    currency_decimal_digits,
    format_amount_with_symbol,
    normalize_amount,
    persist_amount,
    round_minor,
)


def test_minor_unit_conversion_follows_currency_digits():
    assert currency_decimal_digits("USD") == 2
    assert currency_decimal_digits("jpy") == 0
    assert currency_decimal_digits("kwd") == 3

    assert normalize_amount("usd", 1250) == Decimal("12.50")
    assert normalize_amount("jpy", 1250) == Decimal("1250")
    assert normalize_amount("kwd", 1250) == Decimal("1.250")

    assert persist_amount("usd", Decimal("12.50")) == 1250
    assert persist_amount("usd", "0.005") == 1
    assert persist_amount("jpy", 980) == 980


def test_round_minor_rounds_halves_toward_positive_infinity():
    assert round_minor(Decimal("2.5")) == 3
    assert round_minor(Decimal("3.5")) == 4
    assert round_minor(Decimal("1649.49")) == 1649
    assert round_minor(Decimal("-2.5")) == -2
    assert round_minor(Decimal("-2.6")) == -3
    assert round_minor(Decimal("-1600.5")) == -1600
    assert round_minor(0.5) == 1


def test_apply_tax_scales_by_percentage():
    assert apply_tax(1000, 10) == Decimal("1100")
    assert apply_tax(1000, Decimal("12.5")) == Decimal("1125")
    assert apply_tax(1000, None) == Decimal("1000")
    assert apply_tax(1000, 0) == Decimal("1000")


def test_format_amount_with_symbol():
    assert format_amount_with_symbol(1250, "usd") == "$12.50"
    assert format_amount_with_symbol(-1250, "usd") == "-$12.50"
    assert format_amount_with_symbol(123456, "eur") == "€1,234.56"
    assert format_amount_with_symbol(980, "JPY") == "¥980"
    assert format_amount_with_symbol(1000, "usd", tax=10) == "$11.00"
    assert format_amount_with_symbol(1250, "usd", digits=0) == "$13"
    assert format_amount_with_symbol(500, "xyz") == "5.00 XYZ"
