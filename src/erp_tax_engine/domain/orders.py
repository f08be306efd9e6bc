"""Order lines, tax calculation results and persisted order documents."""

from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from erp_tax_engine.domain.value_objects import (
    ZERO,
    ComputationKind,
    TaxDirection,
    to_decimal,
)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class OrderLine:
    """Caller-supplied line input. ``discount`` is a flat amount.

    ``item_id`` may be None for ad-hoc lines that are not tied to a catalog
    item; such lines fall straight through to the party's default taxes.
    """

    item_id: UUID | None
    unit_price: Decimal
    quantity: Decimal = Decimal("1")
    discount: Decimal = Decimal("0")
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit_price", to_decimal(self.unit_price))
        object.__setattr__(self, "quantity", to_decimal(self.quantity))
        object.__setattr__(self, "discount", to_decimal(self.discount))


@dataclass(frozen=True)
class TaxDetail:
    """One rule's contribution to a line, in computation order."""

    rule_id: UUID
    name: str
    rate: Decimal
    computation_kind: ComputationKind
    base_amount: Decimal
    tax_amount: Decimal
    inclusive: bool


@dataclass(frozen=True)
class LineTaxResult:
    subtotal: Decimal
    discount: Decimal
    subtotal_after_discount: Decimal
    tax_details: tuple[TaxDetail, ...]
    total_tax_amount: Decimal
    combined_tax_rate: Decimal
    line_total: Decimal
    price_includes_tax: bool

    @property
    def inclusive_tax_amount(self) -> Decimal:
        return sum((d.tax_amount for d in self.tax_details if d.inclusive), ZERO)

    @property
    def exclusive_tax_amount(self) -> Decimal:
        return sum((d.tax_amount for d in self.tax_details if not d.inclusive), ZERO)

    @property
    def amount_payable(self) -> Decimal:
        """Net amount plus only the taxes charged on top of the quoted price."""
        return self.subtotal_after_discount + self.exclusive_tax_amount


@dataclass(frozen=True)
class CalculatedLine:
    line: OrderLine
    calculation: LineTaxResult


@dataclass(frozen=True)
class TaxSummaryEntry:
    """Order-level total for a single rule across all lines."""

    rule_id: UUID
    name: str
    rate: Decimal
    computation_kind: ComputationKind
    base_amount: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")

    @classmethod
    def seed(cls, detail: TaxDetail) -> "TaxSummaryEntry":
        return cls(
            rule_id=detail.rule_id,
            name=detail.name,
            rate=detail.rate,
            computation_kind=detail.computation_kind,
        )

    def add(self, detail: TaxDetail) -> "TaxSummaryEntry":
        return replace(
            self,
            base_amount=self.base_amount + detail.base_amount,
            tax_amount=self.tax_amount + detail.tax_amount,
        )


@dataclass(frozen=True)
class OrderTaxResult:
    lines: tuple[CalculatedLine, ...]
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    tax_summary: tuple[TaxSummaryEntry, ...]


@dataclass(frozen=True)
class TaxBreakdownEntry:
    """Display grouping of tax details by rule name."""

    name: str
    base_amount: Decimal
    rate: Decimal
    tax_amount: Decimal


@dataclass(frozen=True)
class InclusivePriceSplit:
    exclusive_price: Decimal
    tax_amount: Decimal
    inclusive_price: Decimal


@dataclass
class OrderLineRecord:
    """A line as written to the store, rounded, with base-currency mirrors."""

    order_id: UUID
    line_number: int
    item_id: UUID | None
    unit_price: Decimal
    quantity: Decimal
    discount: Decimal
    subtotal: Decimal
    tax: Decimal
    tax_rate: Decimal
    applied_taxes: tuple[TaxDetail, ...]
    subtotal_before_tax: Decimal
    tax_inclusive_amount: Decimal
    total: Decimal
    base_currency_unit_price: Decimal
    base_currency_subtotal: Decimal
    base_currency_discount: Decimal
    base_currency_tax: Decimal
    base_currency_total: Decimal
    description: str = ""
    id: UUID = field(default_factory=uuid4)


@dataclass
class Order:
    """Sales or purchase order header with its calculated lines."""

    direction: TaxDirection
    party_id: UUID | None
    order_date: date
    currency: str
    base_currency: str
    exchange_rate: Decimal
    id: UUID = field(default_factory=uuid4)
    lines: list[OrderLineRecord] = field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    base_currency_tax: Decimal = Decimal("0")
    base_currency_total: Decimal = Decimal("0")
    created_at: datetime = field(default_factory=_utc_now)

    @property
    def customer_id(self) -> UUID | None:
        return self.party_id if self.direction is TaxDirection.SALES else None

    @property
    def vendor_id(self) -> UUID | None:
        return self.party_id if self.direction is TaxDirection.PURCHASE else None


__all__ = [
    "CalculatedLine",
    "InclusivePriceSplit",
    "LineTaxResult",
    "Order",
    "OrderLine",
    "OrderLineRecord",
    "OrderTaxResult",
    "TaxBreakdownEntry",
    "TaxDetail",
    "TaxSummaryEntry",
]
