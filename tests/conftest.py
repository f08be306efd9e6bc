from datetime import date
from decimal import Decimal

import pytest
import structlog

from erp_tax_engine.domain.parties import Customer, Item, Vendor
from erp_tax_engine.domain.taxes import TaxRule
from erp_tax_engine.domain.value_objects import (
    ComputationKind,
    Currency,
    TaxApplicability,
)
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


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def db() -> SQLiteDatabase:
    """Create an in-memory SQLite database for testing."""
    database = SQLiteDatabase(":memory:")
    database.initialize()
    return database


@pytest.fixture
def tax_group_repo(db: SQLiteDatabase) -> SQLiteTaxGroupRepository:
    return SQLiteTaxGroupRepository(db)


@pytest.fixture
def tax_rule_repo(db: SQLiteDatabase) -> SQLiteTaxRuleRepository:
    return SQLiteTaxRuleRepository(db)


@pytest.fixture
def item_repo(db: SQLiteDatabase) -> SQLiteItemRepository:
    return SQLiteItemRepository(db)


@pytest.fixture
def customer_repo(db: SQLiteDatabase) -> SQLiteCustomerRepository:
    return SQLiteCustomerRepository(db)


@pytest.fixture
def vendor_repo(db: SQLiteDatabase) -> SQLiteVendorRepository:
    return SQLiteVendorRepository(db)


@pytest.fixture
def exchange_rate_repo(db: SQLiteDatabase) -> SQLiteExchangeRateRepository:
    return SQLiteExchangeRateRepository(db)


@pytest.fixture
def order_repo(db: SQLiteDatabase) -> SQLiteOrderRepository:
    return SQLiteOrderRepository(db)


@pytest.fixture
def provider(db: SQLiteDatabase) -> SQLiteTaxConfigurationProvider:
    return SQLiteTaxConfigurationProvider(db)


@pytest.fixture
def resolver(provider: SQLiteTaxConfigurationProvider) -> TaxResolverImpl:
    return TaxResolverImpl(provider)


@pytest.fixture
def order_tax_service(resolver: TaxResolverImpl) -> OrderTaxServiceImpl:
    return OrderTaxServiceImpl(resolver)


@pytest.fixture
def currency_service(
    exchange_rate_repo: SQLiteExchangeRateRepository,
) -> CurrencyServiceImpl:
    return CurrencyServiceImpl(exchange_rate_repo, "USD")


@pytest.fixture
def tax_config_service(
    db: SQLiteDatabase,
    tax_group_repo: SQLiteTaxGroupRepository,
    tax_rule_repo: SQLiteTaxRuleRepository,
    item_repo: SQLiteItemRepository,
    customer_repo: SQLiteCustomerRepository,
    vendor_repo: SQLiteVendorRepository,
    provider: SQLiteTaxConfigurationProvider,
) -> TaxConfigurationServiceImpl:
    return TaxConfigurationServiceImpl(
        tax_group_repo,
        tax_rule_repo,
        item_repo,
        customer_repo,
        vendor_repo,
        provider,
        transaction=db.transaction,
    )


@pytest.fixture
def order_service(
    order_tax_service: OrderTaxServiceImpl,
    currency_service: CurrencyServiceImpl,
    order_repo: SQLiteOrderRepository,
    customer_repo: SQLiteCustomerRepository,
    vendor_repo: SQLiteVendorRepository,
) -> OrderServiceImpl:
    return OrderServiceImpl(
        order_tax_service,
        currency_service,
        order_repo,
        customer_repo,
        vendor_repo,
    )


@pytest.fixture
def vat_10() -> TaxRule:
    return TaxRule(name="VAT 10%", rate=Decimal("10"), sequence=10)


@pytest.fixture
def ppn_11_inclusive() -> TaxRule:
    return TaxRule(name="PPN 11%", rate=Decimal("11"), inclusive=True, sequence=10)


@pytest.fixture
def service_5() -> TaxRule:
    return TaxRule(name="Service 5%", rate=Decimal("5"), sequence=20)


@pytest.fixture
def shipping_fixed() -> TaxRule:
    return TaxRule(
        name="Shipping Tax",
        computation_kind=ComputationKind.FIXED,
        fixed_amount=Decimal("50.00"),
        sequence=5,
    )


@pytest.fixture
def sales_only_5() -> TaxRule:
    return TaxRule(
        name="Sales Tax 5%",
        rate=Decimal("5"),
        applicability=TaxApplicability.SALES,
    )


@pytest.fixture
def sample_item() -> Item:
    return Item(name="Widget", sku="WID-001")


@pytest.fixture
def sample_customer() -> Customer:
    return Customer(name="Acme Retail")


@pytest.fixture
def sample_vendor() -> Vendor:
    return Vendor(name="Globex Supply", preferred_currency=Currency.EUR, tax_id="EU-123")


@pytest.fixture
def order_date() -> date:
    return date(2026, 3, 1)
