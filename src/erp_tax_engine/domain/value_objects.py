from decimal import Decimal
from enum import Enum

from erp_tax_engine.exceptions import (
    InvalidCurrencyError,
    UnknownComputationKindError,
    UnknownTaxDirectionError,
)


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    JPY = "JPY"
    CHF = "CHF"
    CAD = "CAD"
    AUD = "AUD"
    CNY = "CNY"
    HKD = "HKD"
    SGD = "SGD"
    IDR = "IDR"
    MYR = "MYR"
    INR = "INR"
    NZD = "NZD"
    SEK = "SEK"

    @classmethod
    def parse(cls, code: "Currency | str") -> "Currency":
        if isinstance(code, Currency):
            return code
        try:
            return cls[code.strip().upper()]
        except KeyError:
            raise InvalidCurrencyError(code) from None


class TaxDirection(str, Enum):
    """Which side of the business a document sits on."""

    SALES = "sales"
    PURCHASE = "purchase"

    @classmethod
    def parse(cls, value: "TaxDirection | str") -> "TaxDirection":
        if isinstance(value, TaxDirection):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownTaxDirectionError(value) from None


class TaxApplicability(str, Enum):
    SALES = "sales"
    PURCHASE = "purchase"
    BOTH = "both"

    def applies_to(self, direction: TaxDirection) -> bool:
        if self is TaxApplicability.BOTH:
            return True
        return self.value == direction.value


class ComputationKind(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"

    @classmethod
    def parse(
        cls, value: "ComputationKind | str", rule_name: str | None = None
    ) -> "ComputationKind":
        if isinstance(value, ComputationKind):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownComputationKindError(value, rule_name) from None


class PartyType(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"

    @classmethod
    def for_direction(cls, direction: TaxDirection) -> "PartyType":
        if direction is TaxDirection.SALES:
            return cls.CUSTOMER
        return cls.VENDOR


class ExchangeRateSource(str, Enum):
    MANUAL = "manual"
    BANK = "bank"
    API = "api"


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Coerce a numeric value to Decimal via its string form."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


ZERO = Decimal("0")
HUNDRED = Decimal("100")


__all__ = [
    "ComputationKind",
    "Currency",
    "ExchangeRateSource",
    "HUNDRED",
    "PartyType",
    "TaxApplicability",
    "TaxDirection",
    "ZERO",
    "to_decimal",
]
