from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from datetime import date
from uuid import UUID

from erp_tax_engine.domain.exchange_rates import ExchangeRate
from erp_tax_engine.domain.orders import Order
from erp_tax_engine.domain.parties import Customer, Item, Vendor
from erp_tax_engine.domain.taxes import (
    ItemTaxProfile,
    PartyTaxProfile,
    TaxGroup,
    TaxRule,
)
from erp_tax_engine.domain.value_objects import PartyType, TaxDirection


class TaxGroupRepository(ABC):
    @abstractmethod
    def add(self, group: TaxGroup) -> None:
        pass

    @abstractmethod
    def get(self, group_id: UUID) -> TaxGroup | None:
        pass

    @abstractmethod
    def get_by_name(self, name: str) -> TaxGroup | None:
        pass

    @abstractmethod
    def list_active(self) -> Iterable[TaxGroup]:
        pass


class TaxRuleRepository(ABC):
    @abstractmethod
    def add(self, rule: TaxRule) -> None:
        pass

    @abstractmethod
    def get(self, rule_id: UUID) -> TaxRule | None:
        pass

    @abstractmethod
    def get_by_name(self, name: str) -> TaxRule | None:
        pass

    @abstractmethod
    def list_active(self, direction: TaxDirection | None = None) -> Iterable[TaxRule]:
        pass

    @abstractmethod
    def list_by_group(self, group_id: UUID, active_only: bool = True) -> Iterable[TaxRule]:
        pass

    @abstractmethod
    def update(self, rule: TaxRule) -> None:
        pass


class ItemRepository(ABC):
    @abstractmethod
    def add(self, item: Item) -> None:
        pass

    @abstractmethod
    def get(self, item_id: UUID) -> Item | None:
        pass

    @abstractmethod
    def list_all(self) -> Iterable[Item]:
        pass

    @abstractmethod
    def replace_taxes(
        self,
        item_id: UUID,
        sales_rule_ids: Sequence[UUID],
        purchase_rule_ids: Sequence[UUID],
    ) -> None:
        pass


class CustomerRepository(ABC):
    @abstractmethod
    def add(self, customer: Customer) -> None:
        pass

    @abstractmethod
    def get(self, customer_id: UUID) -> Customer | None:
        pass

    @abstractmethod
    def list_all(self) -> Iterable[Customer]:
        pass

    @abstractmethod
    def replace_default_taxes(self, customer_id: UUID, rule_ids: Sequence[UUID]) -> None:
        pass


class VendorRepository(ABC):
    @abstractmethod
    def add(self, vendor: Vendor) -> None:
        pass

    @abstractmethod
    def get(self, vendor_id: UUID) -> Vendor | None:
        pass

    @abstractmethod
    def list_all(self) -> Iterable[Vendor]:
        pass

    @abstractmethod
    def replace_default_taxes(self, vendor_id: UUID, rule_ids: Sequence[UUID]) -> None:
        pass


class TaxConfigurationProvider(ABC):
    """Read-only view of tax assignments consumed by the tax resolver.

    ``None`` means the item or party does not exist; an empty profile means
    it exists with nothing assigned.
    """

    @abstractmethod
    def get_item_tax_profile(self, item_id: UUID) -> ItemTaxProfile | None:
        pass

    @abstractmethod
    def get_party_tax_profile(
        self, party_type: PartyType, party_id: UUID
    ) -> PartyTaxProfile | None:
        pass


class ExchangeRateRepository(ABC):
    @abstractmethod
    def add(self, rate: ExchangeRate) -> None:
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
        pass


class OrderRepository(ABC):
    @abstractmethod
    def add(self, order: Order) -> None:
        """Persist the order header and all of its lines atomically."""

    @abstractmethod
    def get(self, order_id: UUID) -> Order | None:
        pass

    @abstractmethod
    def list_by_party(self, party_id: UUID) -> Iterable[Order]:
        pass
