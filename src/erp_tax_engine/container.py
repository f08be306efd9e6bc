"""Dependency injection container for the ERP tax engine.

Repositories and services are built lazily from ``Settings`` and cached for
the life of the container.

Usage:
    from erp_tax_engine.container import get_container

    container = get_container()
    result = container.order_tax_service.calculate_order(lines, TaxDirection.SALES)
"""

from functools import cached_property, lru_cache
from typing import TYPE_CHECKING

from erp_tax_engine.config import Settings, get_settings
from erp_tax_engine.logging_config import get_logger

if TYPE_CHECKING:
    from erp_tax_engine.repositories.sqlite import (
        SQLiteCustomerRepository,
        SQLiteDatabase,
        SQLiteExchangeRateRepository,
        SQLiteItemRepository,
        SQLiteOrderRepository,
        SQLiteTaxConfigurationProvider,
        SQLiteTaxGroupRepository,
        SQLiteTaxRuleRepository,
        SQLiteVendorRepository,
    )
    from erp_tax_engine.services.currency import CurrencyServiceImpl
    from erp_tax_engine.services.order_tax import OrderTaxServiceImpl
    from erp_tax_engine.services.orders import OrderServiceImpl
    from erp_tax_engine.services.tax_configuration import TaxConfigurationServiceImpl
    from erp_tax_engine.services.tax_resolver import TaxResolverImpl

logger = get_logger(__name__)


class Container:
    """Dependency injection container.

    Tests can build one against an in-memory store:

        container = Container(settings=Settings(sqlite_path=":memory:"))
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        logger.debug(
            "container_created",
            environment=self._settings.environment.value,
            calculation_workers=self._settings.calculation_workers,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @cached_property
    def database(self) -> "SQLiteDatabase":
        """SQLite database, initialized on first access.

        Parallel calculation reads from worker threads, so the connection is
        opened without the same-thread check in that mode.
        """
        from erp_tax_engine.repositories.sqlite import SQLiteDatabase

        db_path = str(self._settings.sqlite_path)
        logger.info("initializing_sqlite_database", path=db_path)

        db = SQLiteDatabase(
            db_path, check_same_thread=not self._settings.parallel_calculation
        )
        db.initialize()
        return db

    @cached_property
    def tax_group_repository(self) -> "SQLiteTaxGroupRepository":
        from erp_tax_engine.repositories.sqlite import SQLiteTaxGroupRepository

        return SQLiteTaxGroupRepository(self.database)

    @cached_property
    def tax_rule_repository(self) -> "SQLiteTaxRuleRepository":
        from erp_tax_engine.repositories.sqlite import SQLiteTaxRuleRepository

        return SQLiteTaxRuleRepository(self.database)

    @cached_property
    def item_repository(self) -> "SQLiteItemRepository":
        from erp_tax_engine.repositories.sqlite import SQLiteItemRepository

        return SQLiteItemRepository(self.database)

    @cached_property
    def customer_repository(self) -> "SQLiteCustomerRepository":
        from erp_tax_engine.repositories.sqlite import SQLiteCustomerRepository

        return SQLiteCustomerRepository(self.database)

    @cached_property
    def vendor_repository(self) -> "SQLiteVendorRepository":
        from erp_tax_engine.repositories.sqlite import SQLiteVendorRepository

        return SQLiteVendorRepository(self.database)

    @cached_property
    def exchange_rate_repository(self) -> "SQLiteExchangeRateRepository":
        from erp_tax_engine.repositories.sqlite import SQLiteExchangeRateRepository

        return SQLiteExchangeRateRepository(self.database)

    @cached_property
    def order_repository(self) -> "SQLiteOrderRepository":
        from erp_tax_engine.repositories.sqlite import SQLiteOrderRepository

        return SQLiteOrderRepository(self.database)

    @cached_property
    def tax_configuration_provider(self) -> "SQLiteTaxConfigurationProvider":
        from erp_tax_engine.repositories.sqlite import SQLiteTaxConfigurationProvider

        return SQLiteTaxConfigurationProvider(self.database)

    @cached_property
    def tax_resolver(self) -> "TaxResolverImpl":
        from erp_tax_engine.services.tax_resolver import TaxResolverImpl

        return TaxResolverImpl(self.tax_configuration_provider)

    @cached_property
    def order_tax_service(self) -> "OrderTaxServiceImpl":
        """Order tax aggregator, parallel when more than one worker is configured."""
        from erp_tax_engine.services.order_tax import OrderTaxServiceImpl

        return OrderTaxServiceImpl(
            self.tax_resolver, max_workers=self._settings.calculation_workers
        )

    @cached_property
    def currency_service(self) -> "CurrencyServiceImpl":
        from erp_tax_engine.services.currency import CurrencyServiceImpl

        return CurrencyServiceImpl(
            self.exchange_rate_repository, self._settings.base_currency
        )

    @cached_property
    def tax_configuration_service(self) -> "TaxConfigurationServiceImpl":
        from erp_tax_engine.services.tax_configuration import (
            TaxConfigurationServiceImpl,
        )

        return TaxConfigurationServiceImpl(
            self.tax_group_repository,
            self.tax_rule_repository,
            self.item_repository,
            self.customer_repository,
            self.vendor_repository,
            self.tax_configuration_provider,
            transaction=self.database.transaction,
        )

    @cached_property
    def order_service(self) -> "OrderServiceImpl":
        from erp_tax_engine.services.orders import OrderServiceImpl

        return OrderServiceImpl(
            self.order_tax_service,
            self.currency_service,
            self.order_repository,
            self.customer_repository,
            self.vendor_repository,
            monetary_precision=self._settings.monetary_precision,
            rate_precision=self._settings.rate_precision,
        )

    def close(self) -> None:
        """Close the database connection if it was opened."""
        if "database" in self.__dict__:
            logger.info("closing_database_connection")
            self.database.close()

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


_container: Container | None = None


@lru_cache
def get_container() -> Container:
    """Get the global container singleton.

    For tests, build a Container directly with custom settings instead.
    """
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    """Close and drop the global container."""
    global _container
    if _container is not None:
        _container.close()
        _container = None
    get_container.cache_clear()
