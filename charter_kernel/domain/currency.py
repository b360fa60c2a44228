"""Currency -- ISO 4217 registry and precision-derived rounding."""

from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str


class CurrencyRegistry:
    """Registry of the ISO 4217 currencies documents may be raised in."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        # Home market
        "THB": CurrencyInfo("THB", 2, "Thai Baht"),
        # Charter guests and agencies
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "GBP": CurrencyInfo("GBP", 2, "Pound Sterling"),
        "SGD": CurrencyInfo("SGD", 2, "Singapore Dollar"),
        "AED": CurrencyInfo("AED", 2, "UAE Dirham"),
        "AUD": CurrencyInfo("AUD", 2, "Australian Dollar"),
        "CHF": CurrencyInfo("CHF", 2, "Swiss Franc"),
        "HKD": CurrencyInfo("HKD", 2, "Hong Kong Dollar"),
        "CNY": CurrencyInfo("CNY", 2, "Chinese Yuan"),
        "MYR": CurrencyInfo("MYR", 2, "Malaysian Ringgit"),
        "NZD": CurrencyInfo("NZD", 2, "New Zealand Dollar"),
        "RUB": CurrencyInfo("RUB", 2, "Russian Ruble"),
        "SEK": CurrencyInfo("SEK", 2, "Swedish Krona"),
        "DKK": CurrencyInfo("DKK", 2, "Danish Krone"),
        "NOK": CurrencyInfo("NOK", 2, "Norwegian Krone"),
        "INR": CurrencyInfo("INR", 2, "Indian Rupee"),
        "JPY": CurrencyInfo("JPY", 0, "Japanese Yen"),
        "KRW": CurrencyInfo("KRW", 0, "South Korean Won"),
    }

    DEFAULT_DECIMAL_PLACES: ClassVar[int] = 2

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a currency code is known."""
        if not code or not isinstance(code, str):
            return False
        return code.upper().strip() in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        """Get currency information by code."""
        if not code or not isinstance(code, str):
            return None
        return cls._CURRENCIES.get(code.upper().strip())

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        """Get decimal places for a currency."""
        info = cls.get_info(code)
        return info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES

    @classmethod
    def validate(cls, code: str) -> str:
        """Validate and normalize a currency code."""
        if not code or not isinstance(code, str):
            raise ValueError(f"Invalid currency code: {code!r}")

        normalized = code.upper().strip()

        if len(normalized) != 3:
            raise ValueError(f"Currency code must be 3 characters: {code!r}")

        if normalized not in cls._CURRENCIES:
            raise ValueError(f"Invalid ISO 4217 currency code: {code!r}")

        return normalized
