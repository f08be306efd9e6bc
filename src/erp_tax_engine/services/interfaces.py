from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from erp_tax_engine.domain.exchange_rates import CurrencyContext, ExchangeRate
from erp_tax_engine.domain.orders import (
    Order,
    OrderLine,
    OrderTaxResult,
    TaxBreakdownEntry,
)
from erp_tax_engine.domain.parties import Customer, Item, Vendor
from erp_tax_engine.domain.taxes import ItemTaxProfile, TaxGroup, TaxRule
from erp_tax_engine.domain.value_objects import ComputationKind, TaxApplicability, TaxDirection


class TaxResolutionService(ABC):
    @abstractmethod
    def resolve(
        self,
        item_id: UUID | None,
        direction: TaxDirection,
        customer_id: UUID | None = None,
        vendor_id: UUID | None = None,
    ) -> list[TaxRule]:
        """Active rules for one line, in ascending sequence."""


class OrderTaxService(ABC):
    @abstractmethod
    def calculate_order(
        self,
        lines: Sequence[OrderLine],
        direction: TaxDirection,
        customer_id: UUID | None = None,
        vendor_id: UUID | None = None,
    ) -> OrderTaxResult:
        pass


class CurrencyService(ABC):
    @property
    @abstractmethod
    def base_currency(self) -> str:
        pass

    @abstractmethod
    def add_rate(self, rate: ExchangeRate) -> None:
        pass

    @abstractmethod
    def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        effective_date: date,
    ) -> ExchangeRate | None:
        pass

    @abstractmethod
    def get_latest_rate(
        self,
        from_currency: str,
        to_currency: str,
    ) -> ExchangeRate | None:
        pass

    @abstractmethod
    def get_rate_as_of(
        self,
        from_currency: str,
        to_currency: str,
        as_of_date: date,
    ) -> ExchangeRate | None:
        """Newest rate for the pair effective on or before ``as_of_date``."""

    @abstractmethod
    def resolve_context(
        self,
        document_currency: str,
        as_of_date: date,
    ) -> CurrencyContext:
        pass


class TaxConfigurationService(ABC):
    @abstractmethod
    def create_tax(
        self,
        name: str,
        *,
        computation_kind: ComputationKind | str = ComputationKind.PERCENTAGE,
        rate: Decimal = Decimal("0"),
        fixed_amount: Decimal = Decimal("0"),
        applicability: TaxApplicability | str = TaxApplicability.BOTH,
        inclusive: bool = False,
        sequence: int = 10,
        description: str = "",
        group_name: str | None = None,
    ) -> TaxRule:
        pass

    @abstractmethod
    def list_taxes(self, direction: TaxDirection | None = None) -> list[TaxRule]:
        pass

    @abstractmethod
    def list_tax_groups(self) -> list[tuple[TaxGroup, list[TaxRule]]]:
        pass

    @abstractmethod
    def add_item(self, name: str, sku: str | None = None) -> Item:
        pass

    @abstractmethod
    def add_customer(self, name: str, preferred_currency: str | None = None) -> Customer:
        pass

    @abstractmethod
    def add_vendor(
        self, name: str, preferred_currency: str | None = None, tax_id: str | None = None
    ) -> Vendor:
        pass

    @abstractmethod
    def assign_item_taxes(
        self,
        item_id: UUID,
        sales_tax_ids: Sequence[UUID],
        purchase_tax_ids: Sequence[UUID],
    ) -> ItemTaxProfile:
        pass

    @abstractmethod
    def assign_customer_taxes(self, customer_id: UUID, tax_ids: Sequence[UUID]) -> None:
        pass

    @abstractmethod
    def assign_vendor_taxes(self, vendor_id: UUID, tax_ids: Sequence[UUID]) -> None:
        pass

    @abstractmethod
    def get_item_taxes(self, item_id: UUID) -> ItemTaxProfile:
        pass

    @abstractmethod
    def seed_default_taxes(self) -> list[TaxRule]:
        pass


class OrderService(ABC):
    @abstractmethod
    def create_order(
        self,
        direction: TaxDirection,
        party_id: UUID | None,
        lines: Sequence[OrderLine],
        currency: str | None = None,
        order_date: date | None = None,
    ) -> Order:
        pass

    @abstractmethod
    def get_order(self, order_id: UUID) -> Order | None:
        pass

    @abstractmethod
    def get_tax_breakdown(self, order_id: UUID) -> list[TaxBreakdownEntry]:
        pass
