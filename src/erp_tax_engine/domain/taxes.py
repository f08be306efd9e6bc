"""Tax configuration domain: groups, rules and the rule assignments that the
resolver reads for items and parties."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from erp_tax_engine.domain.value_objects import (
    HUNDRED,
    ComputationKind,
    PartyType,
    TaxApplicability,
    TaxDirection,
    to_decimal,
)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class TaxGroup:
    name: str
    id: UUID = field(default_factory=uuid4)
    description: str = ""
    is_active: bool = True
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def deactivate(self) -> None:
        self.is_active = False
        self.updated_at = _utc_now()


@dataclass
class TaxRule:
    """A single configured tax.

    ``rate`` is in percentage points and only meaningful for percentage
    rules; ``fixed_amount`` is only meaningful for fixed rules. ``inclusive``
    marks a tax that is already embedded in the quoted price. Rules are
    applied in ascending ``sequence``; equal sequences keep retrieval order.
    """

    name: str
    computation_kind: ComputationKind | str = ComputationKind.PERCENTAGE
    id: UUID = field(default_factory=uuid4)
    description: str = ""
    applicability: TaxApplicability | str = TaxApplicability.BOTH
    rate: Decimal = Decimal("0")
    fixed_amount: Decimal = Decimal("0")
    inclusive: bool = False
    sequence: int = 10
    is_active: bool = True
    tax_group_id: UUID | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.computation_kind = ComputationKind.parse(self.computation_kind, self.name)
        self.applicability = TaxApplicability(self.applicability)
        self.rate = to_decimal(self.rate)
        self.fixed_amount = to_decimal(self.fixed_amount)

    @property
    def is_fixed(self) -> bool:
        return self.computation_kind is ComputationKind.FIXED

    def applies_to(self, direction: TaxDirection) -> bool:
        return self.applicability.applies_to(direction)

    def compute_tax(self, base_amount: Decimal) -> Decimal:
        """Tax owed by this rule against ``base_amount``.

        Fixed rules return their amount unconditionally, whatever the base
        and whether or not they are flagged inclusive.
        """
        if self.computation_kind is ComputationKind.FIXED:
            return self.fixed_amount
        if self.inclusive:
            return base_amount - base_amount / (1 + self.rate / HUNDRED)
        return base_amount * (self.rate / HUNDRED)

    def deactivate(self) -> None:
        self.is_active = False
        self.updated_at = _utc_now()

    def activate(self) -> None:
        self.is_active = True
        self.updated_at = _utc_now()


@dataclass(frozen=True)
class ItemTaxProfile:
    """An item's tax assignments, partitioned by direction.

    Lists are kept in assignment order and may contain inactive rules;
    filtering is the resolver's job.
    """

    item_id: UUID
    sales_taxes: tuple[TaxRule, ...] = ()
    purchase_taxes: tuple[TaxRule, ...] = ()

    def for_direction(self, direction: TaxDirection) -> tuple[TaxRule, ...]:
        if direction is TaxDirection.SALES:
            return self.sales_taxes
        return self.purchase_taxes


@dataclass(frozen=True)
class PartyTaxProfile:
    """Default tax rules of a customer or vendor."""

    party_type: PartyType
    party_id: UUID
    default_taxes: tuple[TaxRule, ...] = ()

    def defaults_for(self, direction: TaxDirection) -> tuple[TaxRule, ...]:
        return tuple(rule for rule in self.default_taxes if rule.applies_to(direction))


__all__ = [
    "ItemTaxProfile",
    "PartyTaxProfile",
    "TaxGroup",
    "TaxRule",
]
