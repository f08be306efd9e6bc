from erp_tax_engine.services.currency import CurrencyServiceImpl
from erp_tax_engine.services.interfaces import (
    CurrencyService,
    OrderService,
    OrderTaxService,
    TaxConfigurationService,
    TaxResolutionService,
)
from erp_tax_engine.services.order_tax import OrderTaxServiceImpl
from erp_tax_engine.services.orders import OrderServiceImpl
from erp_tax_engine.services.tax_calculator import (
    calculate_line_taxes,
    calculate_price_excluding_tax,
    get_tax_breakdown,
    split_inclusive_price,
)
from erp_tax_engine.services.tax_configuration import (
    DEFAULT_TAXES,
    TaxConfigurationServiceImpl,
)
from erp_tax_engine.services.tax_resolver import TaxResolverImpl

__all__ = [
    "CurrencyService",
    "CurrencyServiceImpl",
    "DEFAULT_TAXES",
    "OrderService",
    "OrderServiceImpl",
    "OrderTaxService",
    "OrderTaxServiceImpl",
    "TaxConfigurationService",
    "TaxConfigurationServiceImpl",
    "TaxResolutionService",
    "TaxResolverImpl",
    "calculate_line_taxes",
    "calculate_price_excluding_tax",
    "get_tax_breakdown",
    "split_inclusive_price",
]
