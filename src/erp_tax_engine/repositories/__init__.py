from erp_tax_engine.repositories.interfaces import (
    CustomerRepository,
    ExchangeRateRepository,
    ItemRepository,
    OrderRepository,
    TaxConfigurationProvider,
    TaxGroupRepository,
    TaxRuleRepository,
    VendorRepository,
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

__all__ = [
    "CustomerRepository",
    "ExchangeRateRepository",
    "ItemRepository",
    "OrderRepository",
    "TaxConfigurationProvider",
    "TaxGroupRepository",
    "TaxRuleRepository",
    "VendorRepository",
    "SQLiteCustomerRepository",
    "SQLiteDatabase",
    "SQLiteExchangeRateRepository",
    "SQLiteItemRepository",
    "SQLiteOrderRepository",
    "SQLiteTaxConfigurationProvider",
    "SQLiteTaxGroupRepository",
    "SQLiteTaxRuleRepository",
    "SQLiteVendorRepository",
]
