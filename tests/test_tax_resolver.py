"""Tests for TaxResolverImpl."""

import sqlite3
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from structlog.testing import capture_logs

from erp_tax_engine.domain.taxes import ItemTaxProfile, PartyTaxProfile, TaxRule
from erp_tax_engine.domain.value_objects import PartyType, TaxApplicability, TaxDirection
from erp_tax_engine.exceptions import UnknownTaxDirectionError
from erp_tax_engine.repositories.interfaces import TaxConfigurationProvider
from erp_tax_engine.services.tax_resolver import TaxResolverImpl


def _provider(
    item_profile: ItemTaxProfile | None = None,
    party_profile: PartyTaxProfile | None = None,
) -> MagicMock:
    provider = MagicMock(spec=TaxConfigurationProvider)
    provider.get_item_tax_profile.return_value = item_profile
    provider.get_party_tax_profile.return_value = party_profile
    return provider


class TestItemRules:
    def test_item_rules_win_over_party_defaults(self, vat_10: TaxRule, service_5: TaxRule):
        item_id, customer_id = uuid4(), uuid4()
        provider = _provider(
            ItemTaxProfile(item_id, sales_taxes=(vat_10,)),
            PartyTaxProfile(PartyType.CUSTOMER, customer_id, (service_5,)),
        )
        resolver = TaxResolverImpl(provider)

        rules = resolver.resolve(item_id, TaxDirection.SALES, customer_id=customer_id)

        assert rules == [vat_10]
        provider.get_party_tax_profile.assert_not_called()

    def test_uses_rules_for_requested_direction(self, vat_10: TaxRule, service_5: TaxRule):
        item_id = uuid4()
        provider = _provider(
            ItemTaxProfile(item_id, sales_taxes=(vat_10,), purchase_taxes=(service_5,))
        )
        resolver = TaxResolverImpl(provider)

        assert resolver.resolve(item_id, TaxDirection.SALES) == [vat_10]
        assert resolver.resolve(item_id, TaxDirection.PURCHASE) == [service_5]

    def test_inactive_item_rules_are_dropped(self, vat_10: TaxRule, service_5: TaxRule):
        service_5.deactivate()
        item_id = uuid4()
        provider = _provider(ItemTaxProfile(item_id, sales_taxes=(vat_10, service_5)))

        rules = TaxResolverImpl(provider).resolve(item_id, TaxDirection.SALES)

        assert rules == [vat_10]

    def test_item_rules_are_not_filtered_by_applicability(self):
        purchase_only = TaxRule(
            name="Import duty", rate=Decimal("3"), applicability=TaxApplicability.PURCHASE
        )
        item_id = uuid4()
        provider = _provider(ItemTaxProfile(item_id, sales_taxes=(purchase_only,)))

        rules = TaxResolverImpl(provider).resolve(item_id, TaxDirection.SALES)

        assert rules == [purchase_only]

    def test_sorted_by_sequence(self, vat_10: TaxRule, service_5: TaxRule, shipping_fixed: TaxRule):
        item_id = uuid4()
        provider = _provider(
            ItemTaxProfile(item_id, sales_taxes=(service_5, vat_10, shipping_fixed))
        )

        rules = TaxResolverImpl(provider).resolve(item_id, TaxDirection.SALES)

        assert [r.sequence for r in rules] == [5, 10, 20]

    def test_equal_sequences_keep_provider_order(self):
        first = TaxRule(name="B first", rate=Decimal("1"), sequence=10)
        second = TaxRule(name="A second", rate=Decimal("2"), sequence=10)
        earlier = TaxRule(name="Z earlier", rate=Decimal("3"), sequence=1)
        item_id = uuid4()
        provider = _provider(ItemTaxProfile(item_id, sales_taxes=(first, second, earlier)))

        rules = TaxResolverImpl(provider).resolve(item_id, TaxDirection.SALES)

        assert rules == [earlier, first, second]


class TestPartyFallback:
    def test_falls_back_to_customer_defaults(self, vat_10: TaxRule):
        item_id, customer_id = uuid4(), uuid4()
        provider = _provider(
            ItemTaxProfile(item_id),
            PartyTaxProfile(PartyType.CUSTOMER, customer_id, (vat_10,)),
        )

        rules = TaxResolverImpl(provider).resolve(
            item_id, TaxDirection.SALES, customer_id=customer_id
        )

        assert rules == [vat_10]
        provider.get_party_tax_profile.assert_called_once_with(
            PartyType.CUSTOMER, customer_id
        )

    def test_purchase_uses_vendor_not_customer(self, vat_10: TaxRule):
        item_id, customer_id, vendor_id = uuid4(), uuid4(), uuid4()
        provider = _provider(
            ItemTaxProfile(item_id),
            PartyTaxProfile(PartyType.VENDOR, vendor_id, (vat_10,)),
        )

        rules = TaxResolverImpl(provider).resolve(
            item_id, TaxDirection.PURCHASE, customer_id=customer_id, vendor_id=vendor_id
        )

        assert rules == [vat_10]
        provider.get_party_tax_profile.assert_called_once_with(PartyType.VENDOR, vendor_id)

    def test_sales_without_customer_ignores_vendor(self, vat_10: TaxRule):
        item_id = uuid4()
        provider = _provider(
            ItemTaxProfile(item_id),
            PartyTaxProfile(PartyType.VENDOR, uuid4(), (vat_10,)),
        )

        rules = TaxResolverImpl(provider).resolve(
            item_id, TaxDirection.SALES, vendor_id=uuid4()
        )

        assert rules == []
        provider.get_party_tax_profile.assert_not_called()

    def test_party_defaults_filtered_by_applicability(self, vat_10: TaxRule, sales_only_5: TaxRule):
        item_id, vendor_id = uuid4(), uuid4()
        provider = _provider(
            ItemTaxProfile(item_id),
            PartyTaxProfile(PartyType.VENDOR, vendor_id, (sales_only_5, vat_10)),
        )

        rules = TaxResolverImpl(provider).resolve(
            item_id, TaxDirection.PURCHASE, vendor_id=vendor_id
        )

        assert rules == [vat_10]

    def test_inactive_party_defaults_are_dropped(self, vat_10: TaxRule):
        vat_10.deactivate()
        item_id, customer_id = uuid4(), uuid4()
        provider = _provider(
            ItemTaxProfile(item_id),
            PartyTaxProfile(PartyType.CUSTOMER, customer_id, (vat_10,)),
        )

        rules = TaxResolverImpl(provider).resolve(
            item_id, TaxDirection.SALES, customer_id=customer_id
        )

        assert rules == []

    def test_missing_party_resolves_to_no_rules(self):
        item_id = uuid4()
        provider = _provider(ItemTaxProfile(item_id), None)

        rules = TaxResolverImpl(provider).resolve(
            item_id, TaxDirection.SALES, customer_id=uuid4()
        )

        assert rules == []

    def test_ad_hoc_line_uses_party_defaults(self, vat_10: TaxRule):
        customer_id = uuid4()
        provider = _provider(
            None, PartyTaxProfile(PartyType.CUSTOMER, customer_id, (vat_10,))
        )

        rules = TaxResolverImpl(provider).resolve(
            None, TaxDirection.SALES, customer_id=customer_id
        )

        assert rules == [vat_10]
        provider.get_item_tax_profile.assert_not_called()

    def test_no_item_rules_and_no_party_is_zero_tax(self):
        item_id = uuid4()
        provider = _provider(ItemTaxProfile(item_id))

        assert TaxResolverImpl(provider).resolve(item_id, TaxDirection.SALES) == []


class TestMissingItem:
    def test_missing_item_resolves_to_no_rules(self, vat_10: TaxRule):
        customer_id = uuid4()
        provider = _provider(
            None, PartyTaxProfile(PartyType.CUSTOMER, customer_id, (vat_10,))
        )

        rules = TaxResolverImpl(provider).resolve(
            uuid4(), TaxDirection.SALES, customer_id=customer_id
        )

        assert rules == []
        provider.get_party_tax_profile.assert_not_called()

    def test_missing_item_logs_warning(self):
        item_id = uuid4()
        provider = _provider(None)

        with capture_logs() as logs:
            TaxResolverImpl(provider).resolve(item_id, TaxDirection.SALES)

        warnings = [log for log in logs if log["event"] == "item_not_found_zero_tax"]
        assert len(warnings) == 1
        assert warnings[0]["log_level"] == "warning"
        assert warnings[0]["item_id"] == str(item_id)


class TestErrors:
    def test_provider_errors_propagate(self):
        provider = MagicMock(spec=TaxConfigurationProvider)
        provider.get_item_tax_profile.side_effect = sqlite3.OperationalError("disk I/O error")

        with pytest.raises(sqlite3.OperationalError):
            TaxResolverImpl(provider).resolve(uuid4(), TaxDirection.SALES)

    def test_direction_accepts_string(self, vat_10: TaxRule):
        item_id = uuid4()
        provider = _provider(ItemTaxProfile(item_id, sales_taxes=(vat_10,)))

        assert TaxResolverImpl(provider).resolve(item_id, "sales") == [vat_10]

    def test_unknown_direction_raises(self):
        with pytest.raises(UnknownTaxDirectionError):
            TaxResolverImpl(_provider()).resolve(uuid4(), "transfer")


class TestWithSQLiteProvider:
    def test_resolves_from_stored_assignments(self, resolver, tax_config_service):
        item = tax_config_service.add_item("Widget")
        customer = tax_config_service.add_customer("Acme")
        vat = tax_config_service.create_tax("VAT 10%", rate=Decimal("10"))
        svc = tax_config_service.create_tax("Service 5%", rate=Decimal("5"), sequence=20)
        tax_config_service.assign_customer_taxes(customer.id, [vat.id])

        assert [r.id for r in resolver.resolve(item.id, TaxDirection.SALES, customer.id)] == [
            vat.id
        ]

        tax_config_service.assign_item_taxes(item.id, [svc.id], [])

        assert [r.id for r in resolver.resolve(item.id, TaxDirection.SALES, customer.id)] == [
            svc.id
        ]
