"""Tax configuration workflow: rules, groups and their assignments."""

import contextlib
from collections.abc import Callable, Sequence
from contextlib import AbstractContextManager
from decimal import Decimal
from typing import Any
from uuid import UUID

from erp_tax_engine.domain.parties import Customer, Item, Vendor
from erp_tax_engine.domain.taxes import ItemTaxProfile, TaxGroup, TaxRule
from erp_tax_engine.domain.value_objects import (
    HUNDRED,
    ComputationKind,
    Currency,
    PartyType,
    TaxApplicability,
    TaxDirection,
    to_decimal,
)
from erp_tax_engine.exceptions import (
    DuplicateTaxRuleError,
    EmptyTaxAssignmentError,
    InvalidAmountError,
    ItemNotFoundError,
    PartyNotFoundError,
    TaxRuleNotFoundError,
)
from erp_tax_engine.logging_config import get_logger
from erp_tax_engine.repositories.interfaces import (
    CustomerRepository,
    ItemRepository,
    TaxConfigurationProvider,
    TaxGroupRepository,
    TaxRuleRepository,
    VendorRepository,
)
from erp_tax_engine.services.interfaces import TaxConfigurationService

logger = get_logger(__name__)


DEFAULT_TAX_GROUPS: list[dict[str, str]] = [
    {"name": "Sales Tax", "description": "Standard sales taxes"},
    {"name": "VAT", "description": "Value Added Tax"},
    {"name": "Service Tax", "description": "Taxes for services"},
]

DEFAULT_TAXES: list[dict[str, Any]] = [
    {
        "name": "VAT 10%",
        "description": "Value Added Tax 10% (Tax Exclusive)",
        "applicability": TaxApplicability.BOTH,
        "rate": Decimal("10"),
        "group_name": "VAT",
    },
    {
        "name": "PPN 11%",
        "description": "Pajak Pertambahan Nilai 11% (Tax Inclusive)",
        "applicability": TaxApplicability.BOTH,
        "rate": Decimal("11"),
        "inclusive": True,
        "group_name": "VAT",
    },
    {
        "name": "Sales Tax 5%",
        "description": "Standard Sales Tax 5%",
        "applicability": TaxApplicability.SALES,
        "rate": Decimal("5"),
        "group_name": "Sales Tax",
    },
    {
        "name": "Shipping Tax",
        "description": "Fixed shipping tax amount",
        "applicability": TaxApplicability.BOTH,
        "computation_kind": ComputationKind.FIXED,
        "fixed_amount": Decimal("50.00"),
        "sequence": 20,
        "group_name": "Service Tax",
    },
    {
        "name": "Service Tax 6%",
        "description": "Service Tax 6%",
        "applicability": TaxApplicability.BOTH,
        "rate": Decimal("6"),
        "sequence": 15,
        "group_name": "Service Tax",
    },
    {
        "name": "VAT 10% + Service 2%",
        "description": "Combined VAT and Service Tax",
        "applicability": TaxApplicability.SALES,
        "rate": Decimal("12"),
        "group_name": "VAT",
    },
    {
        "name": "Zero Rate",
        "description": "Zero rate tax for exports",
        "applicability": TaxApplicability.BOTH,
        "rate": Decimal("0"),
        "sequence": 5,
        "group_name": "VAT",
    },
    {
        "name": "Luxury Tax 20%",
        "description": "High rate tax for luxury items",
        "applicability": TaxApplicability.BOTH,
        "rate": Decimal("20"),
        "group_name": "Sales Tax",
    },
]


class TaxConfigurationServiceImpl(TaxConfigurationService):
    """Creates and assigns tax rules.

    ``transaction`` is a factory for a context manager that groups several
    repository writes into one commit; without it each write stands alone.
    """

    def __init__(
        self,
        tax_group_repo: TaxGroupRepository,
        tax_rule_repo: TaxRuleRepository,
        item_repo: ItemRepository,
        customer_repo: CustomerRepository,
        vendor_repo: VendorRepository,
        provider: TaxConfigurationProvider,
        transaction: Callable[[], AbstractContextManager[Any]] | None = None,
    ) -> None:
        self._group_repo = tax_group_repo
        self._rule_repo = tax_rule_repo
        self._item_repo = item_repo
        self._customer_repo = customer_repo
        self._vendor_repo = vendor_repo
        self._provider = provider
        self._transaction = transaction or contextlib.nullcontext

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
        """Create a new active tax rule.

        Only the amount that matches the computation kind is kept; the other
        one is stored as zero.

        Raises:
            DuplicateTaxRuleError: If a rule with this name already exists
            UnknownComputationKindError: If the computation kind is unsupported
            InvalidAmountError: If the rate or fixed amount is out of range
        """
        name = name.strip()
        if self._rule_repo.get_by_name(name) is not None:
            raise DuplicateTaxRuleError(name)

        kind = ComputationKind.parse(computation_kind, name)
        rate = to_decimal(rate)
        fixed_amount = to_decimal(fixed_amount)

        if kind is ComputationKind.PERCENTAGE:
            if rate < 0 or rate > HUNDRED:
                raise InvalidAmountError(str(rate), "rate must be between 0 and 100")
            fixed_amount = Decimal("0")
        else:
            if fixed_amount < 0:
                raise InvalidAmountError(str(fixed_amount), "fixed amount must not be negative")
            rate = Decimal("0")

        tax_group_id = None
        if group_name is not None:
            group = self._group_repo.get_by_name(group_name)
            if group is None:
                group = TaxGroup(name=group_name)
                self._group_repo.add(group)
            tax_group_id = group.id

        rule = TaxRule(
            name=name,
            computation_kind=kind,
            description=description,
            applicability=TaxApplicability(applicability),
            rate=rate,
            fixed_amount=fixed_amount,
            inclusive=inclusive,
            sequence=sequence,
            tax_group_id=tax_group_id,
        )
        self._rule_repo.add(rule)
        logger.info(
            "tax_rule_created",
            tax_id=str(rule.id),
            name=rule.name,
            computation_kind=rule.computation_kind.value,
            inclusive=rule.inclusive,
        )
        return rule

    def list_taxes(self, direction: TaxDirection | None = None) -> list[TaxRule]:
        if direction is not None:
            direction = TaxDirection.parse(direction)
        return list(self._rule_repo.list_active(direction))

    def list_tax_groups(self) -> list[tuple[TaxGroup, list[TaxRule]]]:
        return [
            (group, list(self._rule_repo.list_by_group(group.id)))
            for group in self._group_repo.list_active()
        ]

    def add_item(self, name: str, sku: str | None = None) -> Item:
        item = Item(name=name, sku=sku)
        self._item_repo.add(item)
        return item

    def add_customer(self, name: str, preferred_currency: str | None = None) -> Customer:
        customer = Customer(
            name=name,
            preferred_currency=Currency.parse(preferred_currency)
            if preferred_currency
            else None,
        )
        self._customer_repo.add(customer)
        return customer

    def add_vendor(
        self, name: str, preferred_currency: str | None = None, tax_id: str | None = None
    ) -> Vendor:
        vendor = Vendor(
            name=name,
            preferred_currency=Currency.parse(preferred_currency)
            if preferred_currency
            else None,
            tax_id=tax_id,
        )
        self._vendor_repo.add(vendor)
        return vendor

    def assign_item_taxes(
        self,
        item_id: UUID,
        sales_tax_ids: Sequence[UUID],
        purchase_tax_ids: Sequence[UUID],
    ) -> ItemTaxProfile:
        """Replace both of an item's assignment lists. Either list may be empty.

        Raises:
            ItemNotFoundError: If the item does not exist
            TaxRuleNotFoundError: If any rule id is unknown
        """
        if self._item_repo.get(item_id) is None:
            raise ItemNotFoundError(item_id)
        self._require_rules([*sales_tax_ids, *purchase_tax_ids])

        self._item_repo.replace_taxes(item_id, sales_tax_ids, purchase_tax_ids)
        logger.info(
            "item_taxes_assigned",
            item_id=str(item_id),
            sales_count=len(sales_tax_ids),
            purchase_count=len(purchase_tax_ids),
        )
        return self.get_item_taxes(item_id)

    def assign_customer_taxes(self, customer_id: UUID, tax_ids: Sequence[UUID]) -> None:
        """Replace a customer's default taxes.

        Raises:
            EmptyTaxAssignmentError: If ``tax_ids`` is empty
            PartyNotFoundError: If the customer does not exist
            TaxRuleNotFoundError: If any rule id is unknown
        """
        if not tax_ids:
            raise EmptyTaxAssignmentError(PartyType.CUSTOMER.value, customer_id)
        if self._customer_repo.get(customer_id) is None:
            raise PartyNotFoundError(PartyType.CUSTOMER.value, customer_id)
        self._require_rules(tax_ids)

        self._customer_repo.replace_default_taxes(customer_id, tax_ids)
        logger.info(
            "party_taxes_assigned",
            party_type=PartyType.CUSTOMER.value,
            party_id=str(customer_id),
            tax_count=len(tax_ids),
        )

    def assign_vendor_taxes(self, vendor_id: UUID, tax_ids: Sequence[UUID]) -> None:
        if not tax_ids:
            raise EmptyTaxAssignmentError(PartyType.VENDOR.value, vendor_id)
        if self._vendor_repo.get(vendor_id) is None:
            raise PartyNotFoundError(PartyType.VENDOR.value, vendor_id)
        self._require_rules(tax_ids)

        self._vendor_repo.replace_default_taxes(vendor_id, tax_ids)
        logger.info(
            "party_taxes_assigned",
            party_type=PartyType.VENDOR.value,
            party_id=str(vendor_id),
            tax_count=len(tax_ids),
        )

    def get_item_taxes(self, item_id: UUID) -> ItemTaxProfile:
        profile = self._provider.get_item_tax_profile(item_id)
        if profile is None:
            raise ItemNotFoundError(item_id)
        return profile

    def seed_default_taxes(self) -> list[TaxRule]:
        """Create the stock groups and rules in a single transaction.

        Raises:
            DuplicateTaxRuleError: If any stock rule already exists; nothing
                is written in that case
        """
        created: list[TaxRule] = []
        with self._transaction():
            for group in DEFAULT_TAX_GROUPS:
                if self._group_repo.get_by_name(group["name"]) is None:
                    self._group_repo.add(
                        TaxGroup(name=group["name"], description=group["description"])
                    )
            for definition in DEFAULT_TAXES:
                created.append(self.create_tax(**definition))

        logger.info("default_taxes_seeded", tax_count=len(created))
        return created

    def _require_rules(self, rule_ids: Sequence[UUID]) -> None:
        for rule_id in rule_ids:
            if self._rule_repo.get(rule_id) is None:
                raise TaxRuleNotFoundError(rule_id)
