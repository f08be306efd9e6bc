"""Exchange rates and the currency context used for base-currency mirrors."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from erp_tax_engine.domain.value_objects import ExchangeRateSource, to_decimal


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ExchangeRate:
    """Conversion rate between two currencies on a specific date.

    One unit of ``from_currency`` is worth ``rate`` units of ``to_currency``.
    """

    from_currency: str
    to_currency: str
    rate: Decimal
    effective_date: date
    id: UUID = field(default_factory=uuid4)
    source: ExchangeRateSource = ExchangeRateSource.MANUAL
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "rate", to_decimal(self.rate))
        if self.rate <= 0:
            raise ValueError(f"Exchange rate must be positive, got {self.rate}")

    @property
    def inverse(self) -> "ExchangeRate":
        return ExchangeRate(
            from_currency=self.to_currency,
            to_currency=self.from_currency,
            rate=Decimal("1") / self.rate,
            effective_date=self.effective_date,
            source=self.source,
        )

    @property
    def pair(self) -> str:
        return f"{self.from_currency}/{self.to_currency}"


@dataclass(frozen=True, slots=True)
class CurrencyContext:
    """Document currency, base currency and the rate between them.

    Passed explicitly to whatever needs base-currency figures; the tax
    engine itself only ever sees document-currency amounts.
    """

    document_currency: str
    base_currency: str
    exchange_rate: Decimal = Decimal("1")

    def __post_init__(self) -> None:
        object.__setattr__(self, "exchange_rate", to_decimal(self.exchange_rate))
        if self.exchange_rate <= 0:
            raise ValueError(
                f"Exchange rate must be positive, got {self.exchange_rate}"
            )

    @classmethod
    def identity(cls, currency: str) -> "CurrencyContext":
        return cls(document_currency=currency, base_currency=currency)

    @property
    def is_identity(self) -> bool:
        return self.document_currency == self.base_currency

    def to_base(self, amount: Decimal) -> Decimal:
        return amount * self.exchange_rate


__all__ = ["CurrencyContext", "ExchangeRate", "ExchangeRateSource"]
