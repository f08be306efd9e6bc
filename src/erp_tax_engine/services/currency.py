from datetime import date

from erp_tax_engine.domain.exchange_rates import CurrencyContext, ExchangeRate
from erp_tax_engine.domain.value_objects import Currency
from erp_tax_engine.exceptions import ExchangeRateNotFoundError
from erp_tax_engine.logging_config import get_logger
from erp_tax_engine.repositories.interfaces import ExchangeRateRepository
from erp_tax_engine.services.interfaces import CurrencyService

logger = get_logger(__name__)


def _get_currency_str(currency: Currency | str) -> str:
    return Currency.parse(currency).value


class CurrencyServiceImpl(CurrencyService):
    def __init__(
        self, exchange_rate_repo: ExchangeRateRepository, base_currency: str
    ) -> None:
        self._repo = exchange_rate_repo
        self._base_currency = _get_currency_str(base_currency)

    @property
    def base_currency(self) -> str:
        return self._base_currency

    def add_rate(self, rate: ExchangeRate) -> None:
        self._repo.add(rate)
        logger.info(
            "exchange_rate_added",
            pair=rate.pair,
            rate=str(rate.rate),
            effective_date=rate.effective_date.isoformat(),
        )

    def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        effective_date: date,
    ) -> ExchangeRate | None:
        return self._repo.get_rate(from_currency, to_currency, effective_date)

    def get_latest_rate(
        self,
        from_currency: str,
        to_currency: str,
    ) -> ExchangeRate | None:
        return self._repo.get_latest_rate(from_currency, to_currency)

    def get_rate_as_of(
        self,
        from_currency: str,
        to_currency: str,
        as_of_date: date,
    ) -> ExchangeRate | None:
        return self._repo.get_rate_as_of(from_currency, to_currency, as_of_date)

    def resolve_context(
        self,
        document_currency: str,
        as_of_date: date,
    ) -> CurrencyContext:
        """Build the context used to mirror document amounts in base currency.

        Each direction of the pair uses the newest rate effective on or
        before ``as_of_date``.

        Raises:
            InvalidCurrencyError: If the document currency is not supported
            ExchangeRateNotFoundError: If neither direction of the pair is stored
        """
        from_currency = _get_currency_str(document_currency)
        to_currency = self._base_currency
        if from_currency == to_currency:
            return CurrencyContext.identity(from_currency)

        rate = self._repo.get_rate_as_of(from_currency, to_currency, as_of_date)
        if rate is not None:
            return CurrencyContext(from_currency, to_currency, rate.rate)

        inverse = self._repo.get_rate_as_of(to_currency, from_currency, as_of_date)
        if inverse is not None:
            return CurrencyContext(from_currency, to_currency, 1 / inverse.rate)

        raise ExchangeRateNotFoundError(
            from_currency, to_currency, as_of_date.isoformat()
        )
