"""Tests for OrderServiceImpl against an in-memory SQLite store."""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from structlog.testing import capture_logs

from erp_tax_engine.domain.exchange_rates import ExchangeRate
from erp_tax_engine.domain.orders import OrderLine
from erp_tax_engine.domain.value_objects import TaxDirection
from erp_tax_engine.exceptions import (
    ExchangeRateNotFoundError,
    OrderNotFoundError,
    PartyNotFoundError,
)
from erp_tax_engine.services.orders import OrderServiceImpl


@pytest.fixture
def catalog(tax_config_service):
    vat = tax_config_service.create_tax("VAT 10%", rate=Decimal("10"))
    ppn = tax_config_service.create_tax("PPN 11%", rate=Decimal("11"), inclusive=True)
    service = tax_config_service.create_tax("Service 5%", rate=Decimal("5"), sequence=20)
    widget = tax_config_service.add_item("Widget")
    gadget = tax_config_service.add_item("Gadget")
    tax_config_service.assign_item_taxes(widget.id, [vat.id, service.id], [vat.id])
    tax_config_service.assign_item_taxes(gadget.id, [ppn.id], [ppn.id])
    return {"vat": vat, "ppn": ppn, "service": service, "widget": widget, "gadget": gadget}


class TestCreateOrder:
    def test_sales_order_is_saved_with_lines(self, order_service, catalog, order_date):
        order = order_service.create_order(
            TaxDirection.SALES,
            None,
            [OrderLine(catalog["widget"].id, Decimal("100"), Decimal("2"), Decimal("0"))],
            order_date=order_date,
        )

        assert order.currency == "USD"
        assert order.exchange_rate == Decimal("1")
        assert order.subtotal == Decimal("200.00")
        assert order.tax_amount == Decimal("31.00")
        assert order.total_amount == Decimal("231.00")
        assert [line.line_number for line in order.lines] == [1]

        stored = order_service.get_order(order.id)
        assert stored is not None
        assert stored.total_amount == Decimal("231.00")
        assert stored.lines[0].tax == Decimal("31.00")
        assert stored.lines[0].tax_rate == Decimal("15.5000")

    def test_amounts_are_rounded_half_up(self, order_service, catalog, order_date):
        order = order_service.create_order(
            TaxDirection.PURCHASE,
            None,
            [OrderLine(catalog["widget"].id, Decimal("33.33"), Decimal("3"))],
            order_date=order_date,
        )

        line = order.lines[0]
        assert line.subtotal == Decimal("99.99")
        assert line.tax == Decimal("10.00")
        assert line.total == Decimal("109.99")
        assert order.tax_amount == Decimal("10.00")

    def test_header_equals_sum_of_stored_lines(self, order_service, catalog, order_date):
        lines = [OrderLine(catalog["widget"].id, Decimal("0.05")) for _ in range(2)]

        order = order_service.create_order(
            TaxDirection.PURCHASE, None, lines, order_date=order_date
        )

        assert [line.tax for line in order.lines] == [Decimal("0.01")] * 2
        assert [line.total for line in order.lines] == [Decimal("0.06")] * 2
        assert order.subtotal == Decimal("0.10")
        assert order.tax_amount == Decimal("0.02")
        assert order.total_amount == Decimal("0.12")

        stored = order_service.get_order(order.id)
        assert stored.tax_amount == sum(line.tax for line in stored.lines)
        assert stored.total_amount == sum(line.total for line in stored.lines)

    def test_inclusive_line_records_tax_inclusive_amount(
        self, order_service, catalog, order_date
    ):
        order = order_service.create_order(
            TaxDirection.SALES,
            None,
            [
                OrderLine(catalog["gadget"].id, Decimal("111")),
                OrderLine(catalog["widget"].id, Decimal("10")),
            ],
            order_date=order_date,
        )

        gadget_line, widget_line = order.lines
        assert gadget_line.tax == Decimal("11.00")
        assert gadget_line.tax_inclusive_amount == gadget_line.total
        assert widget_line.tax_inclusive_amount == Decimal("0.00")

    def test_applied_taxes_survive_storage(self, order_service, catalog, order_date):
        order = order_service.create_order(
            TaxDirection.SALES,
            None,
            [OrderLine(catalog["widget"].id, Decimal("100"))],
            order_date=order_date,
        )

        stored = order_service.get_order(order.id)

        vat, service = stored.lines[0].applied_taxes
        assert vat.rule_id == catalog["vat"].id
        assert vat.tax_amount == Decimal("10.00")
        assert service.name == "Service 5%"
        assert service.base_amount == Decimal("110.00")
        assert service.tax_amount == Decimal("5.50")
        assert service.rate == Decimal("5.0000")

    def test_customer_defaults_apply_to_untaxed_items(
        self, order_service, tax_config_service, catalog, order_date
    ):
        plain = tax_config_service.add_item("Plain")
        customer = tax_config_service.add_customer("Acme")
        tax_config_service.assign_customer_taxes(customer.id, [catalog["vat"].id])

        order = order_service.create_order(
            TaxDirection.SALES,
            customer.id,
            [OrderLine(plain.id, Decimal("40"))],
            order_date=order_date,
        )

        assert order.customer_id == customer.id
        assert order.vendor_id is None
        assert order.tax_amount == Decimal("4.00")

    def test_logs_saved_order(self, order_service, catalog, order_date):
        with capture_logs() as logs:
            order = order_service.create_order(
                TaxDirection.SALES,
                None,
                [OrderLine(catalog["widget"].id, Decimal("100"))],
                order_date=order_date,
            )

        saved = [log for log in logs if log["event"] == "order_saved"]
        assert len(saved) == 1
        assert saved[0]["line_count"] == 1
        assert saved[0]["total_amount"] == str(order.total_amount)


class TestCurrency:
    def test_vendor_currency_with_base_mirrors(
        self, order_service, currency_service, tax_config_service, catalog, order_date
    ):
        vendor = tax_config_service.add_vendor("Globex", preferred_currency="EUR")
        currency_service.add_rate(ExchangeRate("EUR", "USD", Decimal("1.10"), order_date))

        order = order_service.create_order(
            TaxDirection.PURCHASE,
            vendor.id,
            [OrderLine(catalog["widget"].id, Decimal("100"))],
            order_date=order_date,
        )

        assert order.currency == "EUR"
        assert order.base_currency == "USD"
        assert order.exchange_rate == Decimal("1.10")
        assert order.total_amount == Decimal("110.00")
        assert order.base_currency_total == Decimal("121.00")
        line = order.lines[0]
        assert line.base_currency_unit_price == Decimal("110.00")
        assert line.base_currency_tax == Decimal("11.00")
        assert line.base_currency_total == Decimal("121.00")

    def test_base_mirror_uses_unrounded_amount(
        self, order_service, currency_service, catalog, order_date
    ):
        currency_service.add_rate(ExchangeRate("EUR", "USD", Decimal("3"), order_date))

        order = order_service.create_order(
            TaxDirection.PURCHASE,
            None,
            [OrderLine(catalog["widget"].id, Decimal("0.05"))],
            currency="EUR",
            order_date=order_date,
        )

        line = order.lines[0]
        assert line.tax == Decimal("0.01")
        assert line.base_currency_tax == Decimal("0.02")

    def test_base_header_equals_sum_of_line_mirrors(
        self, order_service, currency_service, catalog, order_date
    ):
        currency_service.add_rate(ExchangeRate("EUR", "USD", Decimal("3"), order_date))

        order = order_service.create_order(
            TaxDirection.PURCHASE,
            None,
            [OrderLine(catalog["widget"].id, Decimal("0.05")) for _ in range(2)],
            currency="EUR",
            order_date=order_date,
        )

        assert [line.base_currency_tax for line in order.lines] == [Decimal("0.02")] * 2
        assert [line.base_currency_total for line in order.lines] == [Decimal("0.17")] * 2
        assert order.base_currency_tax == Decimal("0.04")
        assert order.base_currency_total == Decimal("0.34")

    def test_rate_from_earlier_date_applies(
        self, order_service, currency_service, catalog, order_date
    ):
        currency_service.add_rate(ExchangeRate("EUR", "USD", Decimal("1.10"), order_date))

        order = order_service.create_order(
            TaxDirection.PURCHASE,
            None,
            [OrderLine(catalog["widget"].id, Decimal("100"))],
            currency="EUR",
            order_date=order_date + timedelta(days=1),
        )

        assert order.exchange_rate == Decimal("1.10")
        assert order.base_currency_total == Decimal("121.00")

    def test_explicit_currency_overrides_party(
        self, order_service, tax_config_service, catalog, order_date
    ):
        vendor = tax_config_service.add_vendor("Globex", preferred_currency="EUR")

        order = order_service.create_order(
            TaxDirection.PURCHASE,
            vendor.id,
            [OrderLine(catalog["widget"].id, Decimal("100"))],
            currency="USD",
            order_date=order_date,
        )

        assert order.currency == "USD"
        assert order.base_currency_total == order.total_amount

    def test_missing_rate_saves_nothing(
        self, order_service, order_repo, tax_config_service, catalog, order_date
    ):
        vendor = tax_config_service.add_vendor("Globex", preferred_currency="GBP")

        with pytest.raises(ExchangeRateNotFoundError):
            order_service.create_order(
                TaxDirection.PURCHASE,
                vendor.id,
                [OrderLine(catalog["widget"].id, Decimal("100"))],
                order_date=order_date,
            )

        assert list(order_repo.list_by_party(vendor.id)) == []


class TestLookups:
    def test_unknown_party_rejected(self, order_service, catalog):
        with pytest.raises(PartyNotFoundError):
            order_service.create_order(
                TaxDirection.SALES, uuid4(), [OrderLine(catalog["widget"].id, Decimal("1"))]
            )

    def test_get_missing_order(self, order_service: OrderServiceImpl):
        assert order_service.get_order(uuid4()) is None

    def test_breakdown_for_missing_order(self, order_service: OrderServiceImpl):
        with pytest.raises(OrderNotFoundError):
            order_service.get_tax_breakdown(uuid4())

    def test_tax_breakdown_groups_lines(self, order_service, catalog, order_date):
        order = order_service.create_order(
            TaxDirection.SALES,
            None,
            [
                OrderLine(catalog["widget"].id, Decimal("100")),
                OrderLine(catalog["widget"].id, Decimal("50")),
                OrderLine(catalog["gadget"].id, Decimal("111")),
            ],
            order_date=order_date,
        )

        breakdown = order_service.get_tax_breakdown(order.id)

        assert [entry.name for entry in breakdown] == ["VAT 10%", "Service 5%", "PPN 11%"]
        vat = breakdown[0]
        assert vat.base_amount == Decimal("150.00")
        assert vat.tax_amount == Decimal("15.00")

    def test_order_date_defaults_to_today(self, order_service, catalog):
        order = order_service.create_order(
            TaxDirection.SALES, None, [OrderLine(catalog["widget"].id, Decimal("1"))]
        )

        assert order.order_date == date.today()
