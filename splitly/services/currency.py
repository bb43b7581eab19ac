# Rate tables map an ISO code to units per one anchor-currency unit, e.g. {"USD": 1.0, "EUR": 0.92}.
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from ..errors import MissingRateError
from ..logs import get_logger

log = get_logger(__name__)

CONVERSION_WARNING = "Could not convert currency. Using original amount."

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "THB": "฿",
    "AUD": "A$",
    "CAD": "C$",
    "CHF": "CHF",
    "CNY": "¥",
    "INR": "₹",
}


def _rate(code: str, rates: Mapping[str, float]) -> float:
    rate = rates.get(code)
    if not rate:
        raise MissingRateError(f"Missing or zero rate for {code}.")
    return rate


def exchange_rate(from_currency: str, to_currency: str, rates: Mapping[str, float]) -> float:
    if from_currency == to_currency:
        return 1.0
    return _rate(to_currency, rates) / _rate(from_currency, rates)


def convert(amount: float, from_currency: str, to_currency: str, rates: Mapping[str, float]) -> float:
    if from_currency == to_currency:
        return amount
    return amount / _rate(from_currency, rates) * _rate(to_currency, rates)


@dataclass(frozen=True, slots=True)
class Conversion:
    amount: float
    converted: bool
    warning: Optional[str] = None


def normalize(amount: float, currency: str, base_currency: str, rates: Mapping[str, float]) -> Conversion:
    if currency == base_currency:
        return Conversion(amount=amount, converted=False)
    try:
        return Conversion(amount=convert(amount, currency, base_currency, rates), converted=True)
    except MissingRateError as exc:
        log.warning(
            "currency_conversion_skipped",
            source=currency,
            target=base_currency,
            reason=exc.detail,
        )
        return Conversion(amount=amount, converted=False, warning=CONVERSION_WARNING)


def format_currency(amount: float, code: str) -> str:
    symbol = CURRENCY_SYMBOLS.get(code, code)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"
