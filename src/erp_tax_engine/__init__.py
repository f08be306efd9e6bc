from erp_tax_engine.domain.orders import (
    LineTaxResult,
    OrderLine,
    OrderTaxResult,
    TaxDetail,
    TaxSummaryEntry,
)
from erp_tax_engine.domain.taxes import TaxRule
from erp_tax_engine.domain.value_objects import (
    ComputationKind,
    TaxApplicability,
    TaxDirection,
)

__all__ = [
    "ComputationKind",
    "LineTaxResult",
    "OrderLine",
    "OrderTaxResult",
    "TaxApplicability",
    "TaxDetail",
    "TaxDirection",
    "TaxRule",
    "TaxSummaryEntry",
]

__version__ = "0.1.0"
