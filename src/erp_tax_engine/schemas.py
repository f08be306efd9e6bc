"""Pydantic v2 schemas for inbound line payloads and serialized results.

The engine works on typed domain values. These schemas exist only at the
boundaries: reading line files, writing the ``applied_taxes`` JSON column,
and rendering calculation results.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from erp_tax_engine.domain.orders import (
    CalculatedLine,
    LineTaxResult,
    OrderLine,
    OrderTaxResult,
    TaxDetail,
    TaxSummaryEntry,
)
from erp_tax_engine.domain.value_objects import ComputationKind, TaxDirection


class OrderLineInput(BaseModel):
    """Schema for one order line. Negative amounts are rejected here, not in the engine."""

    model_config = ConfigDict(str_strip_whitespace=True)

    item_id: UUID | None = None
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    quantity: Decimal = Field(default=Decimal("1"), gt=0)
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    description: str = ""

    def to_domain(self) -> OrderLine:
        return OrderLine(
            item_id=self.item_id,
            unit_price=self.unit_price,
            quantity=self.quantity,
            discount=self.discount,
            description=self.description,
        )


class OrderInput(BaseModel):
    """Schema for an order calculation or creation request."""

    model_config = ConfigDict(str_strip_whitespace=True)

    direction: TaxDirection = TaxDirection.SALES
    customer_id: UUID | None = None
    vendor_id: UUID | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    order_date: date | None = None
    lines: list[OrderLineInput] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_party_matches_direction(self) -> "OrderInput":
        if self.direction is TaxDirection.SALES and self.vendor_id is not None:
            raise ValueError("vendor_id is not allowed on a sales order")
        if self.direction is TaxDirection.PURCHASE and self.customer_id is not None:
            raise ValueError("customer_id is not allowed on a purchase order")
        return self

    @property
    def party_id(self) -> UUID | None:
        if self.direction is TaxDirection.SALES:
            return self.customer_id
        return self.vendor_id

    def domain_lines(self) -> list[OrderLine]:
        return [line.to_domain() for line in self.lines]


class AppliedTaxSchema(BaseModel):
    """One entry of a line's ``applied_taxes`` breakdown."""

    tax_id: UUID
    tax_name: str
    tax_rate: Decimal
    computation_type: ComputationKind
    base_amount: Decimal
    tax_amount: Decimal
    included_in_price: bool

    @classmethod
    def from_detail(cls, detail: TaxDetail) -> "AppliedTaxSchema":
        return cls(
            tax_id=detail.rule_id,
            tax_name=detail.name,
            tax_rate=detail.rate,
            computation_type=detail.computation_kind,
            base_amount=detail.base_amount,
            tax_amount=detail.tax_amount,
            included_in_price=detail.inclusive,
        )

    def to_detail(self) -> TaxDetail:
        return TaxDetail(
            rule_id=self.tax_id,
            name=self.tax_name,
            rate=self.tax_rate,
            computation_kind=self.computation_type,
            base_amount=self.base_amount,
            tax_amount=self.tax_amount,
            inclusive=self.included_in_price,
        )


_applied_taxes_adapter = TypeAdapter(list[AppliedTaxSchema])


def dump_applied_taxes(details: tuple[TaxDetail, ...] | list[TaxDetail]) -> str:
    """Serialize a tax breakdown to the JSON stored alongside a line."""
    payload = [AppliedTaxSchema.from_detail(detail) for detail in details]
    return _applied_taxes_adapter.dump_json(payload).decode("utf-8")


def load_applied_taxes(raw: str | None) -> tuple[TaxDetail, ...]:
    if not raw:
        return ()
    return tuple(item.to_detail() for item in _applied_taxes_adapter.validate_json(raw))


class LineTaxResultResponse(BaseModel):
    item_id: UUID | None
    description: str
    unit_price: Decimal
    quantity: Decimal
    subtotal: Decimal
    discount: Decimal
    subtotal_after_discount: Decimal
    tax_details: list[AppliedTaxSchema]
    total_tax_amount: Decimal
    combined_tax_rate: Decimal
    line_total: Decimal
    price_includes_tax: bool

    @classmethod
    def from_calculated(cls, calculated: CalculatedLine) -> "LineTaxResultResponse":
        result: LineTaxResult = calculated.calculation
        return cls(
            item_id=calculated.line.item_id,
            description=calculated.line.description,
            unit_price=calculated.line.unit_price,
            quantity=calculated.line.quantity,
            subtotal=result.subtotal,
            discount=result.discount,
            subtotal_after_discount=result.subtotal_after_discount,
            tax_details=[AppliedTaxSchema.from_detail(d) for d in result.tax_details],
            total_tax_amount=result.total_tax_amount,
            combined_tax_rate=result.combined_tax_rate,
            line_total=result.line_total,
            price_includes_tax=result.price_includes_tax,
        )


class TaxSummaryResponse(BaseModel):
    tax_id: UUID
    tax_name: str
    tax_rate: Decimal
    computation_type: ComputationKind
    base_amount: Decimal
    tax_amount: Decimal

    @classmethod
    def from_entry(cls, entry: TaxSummaryEntry) -> "TaxSummaryResponse":
        return cls(
            tax_id=entry.rule_id,
            tax_name=entry.name,
            tax_rate=entry.rate,
            computation_type=entry.computation_kind,
            base_amount=entry.base_amount,
            tax_amount=entry.tax_amount,
        )


class OrderTaxResultResponse(BaseModel):
    lines: list[LineTaxResultResponse]
    order_subtotal: Decimal
    order_tax_amount: Decimal
    order_total: Decimal
    tax_summary: list[TaxSummaryResponse]

    @classmethod
    def from_result(cls, result: OrderTaxResult) -> "OrderTaxResultResponse":
        return cls(
            lines=[LineTaxResultResponse.from_calculated(line) for line in result.lines],
            order_subtotal=result.subtotal,
            order_tax_amount=result.tax_amount,
            order_total=result.total,
            tax_summary=[TaxSummaryResponse.from_entry(e) for e in result.tax_summary],
        )
