from erp_tax_engine.domain.exchange_rates import CurrencyContext, ExchangeRate
from erp_tax_engine.domain.orders import (
    CalculatedLine,
    InclusivePriceSplit,
    LineTaxResult,
    Order,
    OrderLine,
    OrderLineRecord,
    OrderTaxResult,
    TaxBreakdownEntry,
    TaxDetail,
    TaxSummaryEntry,
)
from erp_tax_engine.domain.parties import Customer, Item, Vendor
from erp_tax_engine.domain.taxes import (
    ItemTaxProfile,
    PartyTaxProfile,
    TaxGroup,
    TaxRule,
)
from erp_tax_engine.domain.value_objects import (
    ComputationKind,
    Currency,
    ExchangeRateSource,
    PartyType,
    TaxApplicability,
    TaxDirection,
)

__all__ = [
    "CalculatedLine",
    "ComputationKind",
    "Currency",
    "CurrencyContext",
    "Customer",
    "ExchangeRate",
    "ExchangeRateSource",
    "InclusivePriceSplit",
    "Item",
    "ItemTaxProfile",
    "LineTaxResult",
    "Order",
    "OrderLine",
    "OrderLineRecord",
    "OrderTaxResult",
    "PartyTaxProfile",
    "PartyType",
    "TaxApplicability",
    "TaxBreakdownEntry",
    "TaxDetail",
    "TaxDirection",
    "TaxGroup",
    "TaxRule",
    "TaxSummaryEntry",
    "Vendor",
]
