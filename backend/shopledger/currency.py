# Overview: Display formatting for amounts in activity and ledger descriptions.

from __future__ import annotations

DEFAULT_CURRENCY = "PKR"

CURRENCY_SYMBOLS = {
    "PKR": "Rs",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "AED": "AED",
}

# Symbols written with a separating space ("Rs 1,200.00" vs "$1,200.00")
_SPACED_SYMBOLS = {"Rs", "AED"}


def currency_symbol(currency_code: str | None) -> str:
    code = (currency_code or DEFAULT_CURRENCY).upper()
    return CURRENCY_SYMBOLS.get(code, code)


def format_currency(amount: float | None, currency_code: str | None = None) -> str:
    """
    Format an amount for human-readable descriptions.

    Stored amounts are never formatted; this is only used when composing
    description strings. Negative amounts keep their sign in front of the
    symbol ("-Rs 45.00").
    """
    value = float(amount or 0.0)
    symbol = currency_symbol(currency_code)
    sign = "-" if value < 0 else ""
    number = f"{abs(value):,.2f}"
    if symbol in _SPACED_SYMBOLS or symbol == (currency_code or "").upper():
        return f"{sign}{symbol} {number}"
    return f"{sign}{symbol}{number}"


def round_money(amount: float | None) -> float:
    """Round a stored amount to 2 decimal places."""
    return round(float(amount or 0.0), 2)
