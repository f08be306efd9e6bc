"""Command-line interface for the ERP tax engine."""

import argparse
import json
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
from uuid import UUID

from erp_tax_engine import __version__
from erp_tax_engine.config import get_settings
from erp_tax_engine.container import Container
from erp_tax_engine.domain.exchange_rates import ExchangeRate
from erp_tax_engine.domain.orders import Order, OrderTaxResult
from erp_tax_engine.domain.taxes import TaxRule
from erp_tax_engine.domain.value_objects import (
    Currency,
    ExchangeRateSource,
    TaxDirection,
)
from erp_tax_engine.exceptions import ErpTaxError
from erp_tax_engine.logging_config import configure_logging
from erp_tax_engine.repositories.sqlite import SQLiteDatabase
from erp_tax_engine.schemas import OrderInput, OrderTaxResultResponse


def get_default_db_path() -> Path:
    """Get the default database path in user's home directory."""
    return Path.home() / ".erp_tax_engine" / "erp.db"


def _db_path(args: argparse.Namespace) -> Path:
    return Path(args.database) if args.database else get_default_db_path()


def _open_container(args: argparse.Namespace) -> Container | None:
    db_path = _db_path(args)
    if not db_path.exists():
        print(f"Error: Database not found at {db_path}")
        print("Run 'erptax init' to create a new database")
        return None
    settings = get_settings().model_copy(update={"sqlite_path": db_path})
    return Container(settings=settings)


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid decimal value: {value!r}") from None


def _date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"invalid date (expected YYYY-MM-DD): {value!r}"
        ) from None


def _fmt(amount: Decimal) -> str:
    return f"{amount:,.2f}"


def _describe_rule(rule: TaxRule) -> str:
    if rule.is_fixed:
        amount = f"fixed {_fmt(rule.fixed_amount)}"
    else:
        amount = f"{rule.rate}%"
    flags = "inclusive" if rule.inclusive else "exclusive"
    return (
        f"{rule.name}: {amount} {flags}, {rule.applicability.value}, "
        f"seq {rule.sequence} [{rule.id}]"
    )


def _load_order_input(args: argparse.Namespace) -> OrderInput:
    """Read a line file and apply any direction/party overrides from flags.

    The file holds either a list of lines or an object with a ``lines`` key.
    """
    payload: Any = json.loads(Path(args.file).read_text(encoding="utf-8"))
    if isinstance(payload, list):
        payload = {"lines": payload}
    if args.direction:
        payload["direction"] = args.direction
    if args.customer_id:
        payload["customer_id"] = str(args.customer_id)
    if args.vendor_id:
        payload["vendor_id"] = str(args.vendor_id)
    if getattr(args, "currency", None):
        payload["currency"] = args.currency
    if getattr(args, "date", None):
        payload["order_date"] = args.date.isoformat()
    return OrderInput.model_validate(payload)


def _print_result(result: OrderTaxResult) -> None:
    for number, calculated in enumerate(result.lines, start=1):
        line = calculated.line
        calc = calculated.calculation
        label = line.description or (str(line.item_id) if line.item_id else "ad-hoc")
        print(f"Line {number}: {label}")
        print(
            f"  Subtotal: {_fmt(calc.subtotal)}  Discount: {_fmt(calc.discount)}  "
            f"Net: {_fmt(calc.subtotal_after_discount)}"
        )
        for detail in calc.tax_details:
            marker = " (included)" if detail.inclusive else ""
            print(
                f"    {detail.name}: {_fmt(detail.tax_amount)} on "
                f"{_fmt(detail.base_amount)}{marker}"
            )
        print(
            f"  Tax: {_fmt(calc.total_tax_amount)} "
            f"({calc.combined_tax_rate:.2f}%)  Total: {_fmt(calc.line_total)}"
        )

    print()
    print(f"Order subtotal: {_fmt(result.subtotal)}")
    print(f"Order tax:      {_fmt(result.tax_amount)}")
    print(f"Order total:    {_fmt(result.total)}")
    if result.tax_summary:
        print("Tax summary:")
        for entry in result.tax_summary:
            print(
                f"  {entry.name}: base {_fmt(entry.base_amount)}, "
                f"tax {_fmt(entry.tax_amount)}"
            )


def _print_order(order: Order) -> None:
    print(f"Order: {order.id}")
    print(f"  Direction: {order.direction.value}")
    if order.party_id:
        print(f"  Party: {order.party_id}")
    print(f"  Date: {order.order_date.isoformat()}")
    print(f"  Currency: {order.currency} (base {order.base_currency} @ {order.exchange_rate})")
    for line in order.lines:
        label = line.description or (str(line.item_id) if line.item_id else "ad-hoc")
        print(
            f"  {line.line_number}. {label}: {line.quantity} x {line.unit_price} "
            f"- {line.discount} -> tax {line.tax} ({line.tax_rate}%), total {line.total}"
        )
    print(f"  Subtotal: {order.subtotal}")
    print(f"  Tax: {order.tax_amount}")
    print(f"  Total: {order.total_amount}")
    if order.currency != order.base_currency:
        print(f"  Base tax: {order.base_currency_tax} {order.base_currency}")
        print(f"  Base total: {order.base_currency_total} {order.base_currency}")


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize a new database."""
    db_path = _db_path(args)

    if db_path.exists() and not args.force:
        print(f"Database already exists at {db_path}")
        print("Use --force to reinitialize (WARNING: will delete existing data)")
        return 1

    if db_path.exists() and args.force:
        db_path.unlink()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = SQLiteDatabase(str(db_path))
    db.initialize()
    db.close()

    print(f"Initialized database at {db_path}")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show database status."""
    container = _open_container(args)
    if container is None:
        return 1

    with container:
        rules = list(container.tax_rule_repository.list_active())
        items = list(container.item_repository.list_all())
        customers = list(container.customer_repository.list_all())
        vendors = list(container.vendor_repository.list_all())

        print(f"Database: {_db_path(args)}")
        print(f"Base currency: {container.settings.base_currency}")
        print(f"Active tax rules: {len(rules)}")
        print(f"Items: {len(items)}")
        print(f"Customers: {len(customers)}")
        print(f"Vendors: {len(vendors)}")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    print(f"ERP Tax Engine v{__version__}")
    return 0


def cmd_tax_seed(args: argparse.Namespace) -> int:
    """Create the stock tax groups and rules."""
    container = _open_container(args)
    if container is None:
        return 1

    with container:
        try:
            rules = container.tax_configuration_service.seed_default_taxes()
        except ErpTaxError as e:
            print(f"Error: {e}")
            return 1

        print(f"Seeded {len(rules)} tax rules:")
        for rule in rules:
            print(f"  - {_describe_rule(rule)}")
    return 0


def cmd_tax_list(args: argparse.Namespace) -> int:
    """List active tax rules."""
    container = _open_container(args)
    if container is None:
        return 1

    with container:
        direction = TaxDirection(args.direction) if args.direction else None
        rules = container.tax_configuration_service.list_taxes(direction)
        if not rules:
            print("No tax rules found")
            return 0

        for rule in rules:
            print(f"  - {_describe_rule(rule)}")
    return 0


def cmd_tax_add(args: argparse.Namespace) -> int:
    """Create a tax rule."""
    container = _open_container(args)
    if container is None:
        return 1

    with container:
        try:
            rule = container.tax_configuration_service.create_tax(
                args.name,
                computation_kind=args.kind,
                rate=args.rate,
                fixed_amount=args.amount,
                applicability=args.applicability,
                inclusive=args.inclusive,
                sequence=args.sequence,
                description=args.description or "",
                group_name=args.group,
            )
        except ErpTaxError as e:
            print(f"Error: {e}")
            return 1

        print(f"Tax rule created: {rule.id}")
        print(f"  {_describe_rule(rule)}")
    return 0


def cmd_tax_groups(args: argparse.Namespace) -> int:
    """List active tax groups with their rules."""
    container = _open_container(args)
    if container is None:
        return 1

    with container:
        groups = container.tax_configuration_service.list_tax_groups()
        if not groups:
            print("No tax groups found")
            return 0

        for group, rules in groups:
            print(f"{group.name} ({len(rules)} rules)")
            for rule in rules:
                print(f"  - {_describe_rule(rule)}")
    return 0


def cmd_item_add(args: argparse.Namespace) -> int:
    """Add a catalog item."""
    container = _open_container(args)
    if container is None:
        return 1

    with container:
        try:
            item = container.tax_configuration_service.add_item(args.name, sku=args.sku)
        except ErpTaxError as e:
            print(f"Error: {e}")
            return 1

        print(f"Item created: {item.id}")
        print(f"  Name: {item.name}")
        if item.sku:
            print(f"  SKU: {item.sku}")
    return 0


def cmd_item_assign(args: argparse.Namespace) -> int:
    """Replace an item's sales and purchase tax assignments."""
    container = _open_container(args)
    if container is None:
        return 1

    with container:
        try:
            profile = container.tax_configuration_service.assign_item_taxes(
                args.item_id, args.sales or [], args.purchase or []
            )
        except ErpTaxError as e:
            print(f"Error: {e}")
            return 1

        print(f"Item taxes assigned: {args.item_id}")
        print(f"  Sales taxes: {len(profile.sales_taxes)}")
        print(f"  Purchase taxes: {len(profile.purchase_taxes)}")
    return 0


def cmd_item_show(args: argparse.Namespace) -> int:
    """Show an item's tax configuration."""
    container = _open_container(args)
    if container is None:
        return 1

    with container:
        try:
            profile = container.tax_configuration_service.get_item_taxes(args.item_id)
        except ErpTaxError as e:
            print(f"Error: {e}")
            return 1

        print(f"Item: {args.item_id}")
        for label, rules in (
            ("Sales taxes", profile.sales_taxes),
            ("Purchase taxes", profile.purchase_taxes),
        ):
            print(f"  {label}:")
            if not rules:
                print("    (none)")
            for rule in rules:
                print(f"    - {_describe_rule(rule)}")
    return 0


def cmd_customer_add(args: argparse.Namespace) -> int:
    """Add a customer."""
    container = _open_container(args)
    if container is None:
        return 1

    with container:
        try:
            customer = container.tax_configuration_service.add_customer(
                args.name, preferred_currency=args.currency
            )
        except ErpTaxError as e:
            print(f"Error: {e}")
            return 1

        print(f"Customer created: {customer.id}")
        print(f"  Name: {customer.name}")
        if customer.preferred_currency:
            print(f"  Currency: {customer.preferred_currency.value}")
    return 0


def cmd_customer_assign(args: argparse.Namespace) -> int:
    """Replace a customer's default taxes."""
    container = _open_container(args)
    if container is None:
        return 1

    with container:
        try:
            container.tax_configuration_service.assign_customer_taxes(
                args.customer_id, args.taxes
            )
        except ErpTaxError as e:
            print(f"Error: {e}")
            return 1

        print(f"Customer taxes assigned: {args.customer_id} ({len(args.taxes)} rules)")
    return 0


def cmd_vendor_add(args: argparse.Namespace) -> int:
    """Add a vendor."""
    container = _open_container(args)
    if container is None:
        return 1

    with container:
        try:
            vendor = container.tax_configuration_service.add_vendor(
                args.name, preferred_currency=args.currency, tax_id=args.tax_number
            )
        except ErpTaxError as e:
            print(f"Error: {e}")
            return 1

        print(f"Vendor created: {vendor.id}")
        print(f"  Name: {vendor.name}")
        if vendor.preferred_currency:
            print(f"  Currency: {vendor.preferred_currency.value}")
        if vendor.tax_id:
            print(f"  Tax ID: {vendor.tax_id}")
    return 0


def cmd_vendor_assign(args: argparse.Namespace) -> int:
    """Replace a vendor's default taxes."""
    container = _open_container(args)
    if container is None:
        return 1

    with container:
        try:
            container.tax_configuration_service.assign_vendor_taxes(
                args.vendor_id, args.taxes
            )
        except ErpTaxError as e:
            print(f"Error: {e}")
            return 1

        print(f"Vendor taxes assigned: {args.vendor_id} ({len(args.taxes)} rules)")
    return 0


def cmd_rate_add(args: argparse.Namespace) -> int:
    """Add an exchange rate."""
    container = _open_container(args)
    if container is None:
        return 1

    with container:
        try:
            rate = ExchangeRate(
                from_currency=Currency.parse(args.from_currency).value,
                to_currency=Currency.parse(args.to_currency).value,
                rate=args.rate,
                effective_date=args.date,
                source=ExchangeRateSource(args.source),
            )
            container.currency_service.add_rate(rate)
        except (ErpTaxError, ValueError) as e:
            print(f"Error: {e}")
            return 1

        print(
            f"Added rate: {rate.pair} = {rate.rate} "
            f"(effective {rate.effective_date.isoformat()})"
        )
    return 0


def cmd_calculate(args: argparse.Namespace) -> int:
    """Preview an order's taxes from a JSON line file without saving anything."""
    file_path = Path(args.file)
    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        return 1

    container = _open_container(args)
    if container is None:
        return 1

    with container:
        try:
            order_input = _load_order_input(args)
            result = container.order_tax_service.calculate_order(
                order_input.domain_lines(),
                order_input.direction,
                customer_id=order_input.customer_id,
                vendor_id=order_input.vendor_id,
            )
        except (ErpTaxError, ValueError) as e:
            print(f"Error: {e}")
            return 1

        if args.json:
            print(OrderTaxResultResponse.from_result(result).model_dump_json(indent=2))
        else:
            _print_result(result)
    return 0


def cmd_order_create(args: argparse.Namespace) -> int:
    """Calculate and save an order from a JSON line file."""
    file_path = Path(args.file)
    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        return 1

    container = _open_container(args)
    if container is None:
        return 1

    with container:
        try:
            order_input = _load_order_input(args)
            order = container.order_service.create_order(
                order_input.direction,
                order_input.party_id,
                order_input.domain_lines(),
                currency=order_input.currency,
                order_date=order_input.order_date,
            )
        except (ErpTaxError, ValueError) as e:
            print(f"Error: {e}")
            return 1

        print("Order created")
        _print_order(order)
    return 0


def cmd_order_show(args: argparse.Namespace) -> int:
    """Show a saved order with its tax breakdown."""
    container = _open_container(args)
    if container is None:
        return 1

    with container:
        order = container.order_service.get_order(args.order_id)
        if order is None:
            print(f"Error: Order not found: {args.order_id}")
            return 1

        _print_order(order)
        breakdown = container.order_service.get_tax_breakdown(order.id)
        if breakdown:
            print("  Tax breakdown:")
            for entry in breakdown:
                print(
                    f"    {entry.name}: base {entry.base_amount}, "
                    f"rate {entry.rate}, tax {entry.tax_amount}"
                )
    return 0


def _add_order_file_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("file", help="JSON file with order lines")
    parser.add_argument(
        "--direction",
        choices=[d.value for d in TaxDirection],
        help="Order direction (overrides the file)",
    )
    parser.add_argument("--customer-id", type=UUID, help="Customer for sales orders")
    parser.add_argument("--vendor-id", type=UUID, help="Vendor for purchase orders")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="erptax",
        description="ERP Tax Engine - Order tax configuration and calculation",
    )
    parser.add_argument(
        "--database",
        "-d",
        help="Path to SQLite database file",
        default=None,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init command
    init_parser = subparsers.add_parser("init", help="Initialize a new database")
    init_parser.add_argument(
        "--force",
        "-f",
        action="store_true",
        help="Force reinitialization (deletes existing data)",
    )
    init_parser.set_defaults(func=cmd_init)

    # status command
    status_parser = subparsers.add_parser("status", help="Show database status")
    status_parser.set_defaults(func=cmd_status)

    # version command
    version_parser = subparsers.add_parser("version", help="Show version")
    version_parser.set_defaults(func=cmd_version)

    # tax command group
    tax_parser = subparsers.add_parser("tax", help="Tax rule commands")
    tax_subparsers = tax_parser.add_subparsers(
        dest="tax_command", help="Tax subcommands"
    )

    tax_seed_parser = tax_subparsers.add_parser(
        "seed", help="Create the stock tax groups and rules"
    )
    tax_seed_parser.set_defaults(func=cmd_tax_seed)

    tax_list_parser = tax_subparsers.add_parser("list", help="List active tax rules")
    tax_list_parser.add_argument(
        "--direction",
        choices=[d.value for d in TaxDirection],
        help="Only rules applicable to this direction",
    )
    tax_list_parser.set_defaults(func=cmd_tax_list)

    tax_add_parser = tax_subparsers.add_parser("add", help="Create a tax rule")
    tax_add_parser.add_argument("name", help="Unique rule name")
    tax_add_parser.add_argument(
        "--kind", choices=["percentage", "fixed"], default="percentage"
    )
    tax_add_parser.add_argument(
        "--rate", type=_decimal, default=Decimal("0"), help="Rate in percent"
    )
    tax_add_parser.add_argument(
        "--amount", type=_decimal, default=Decimal("0"), help="Fixed amount"
    )
    tax_add_parser.add_argument(
        "--applicability", choices=["sales", "purchase", "both"], default="both"
    )
    tax_add_parser.add_argument(
        "--inclusive", action="store_true", help="Tax is included in the price"
    )
    tax_add_parser.add_argument("--sequence", type=int, default=10)
    tax_add_parser.add_argument("--description", help="Rule description")
    tax_add_parser.add_argument("--group", help="Tax group name")
    tax_add_parser.set_defaults(func=cmd_tax_add)

    tax_groups_parser = tax_subparsers.add_parser(
        "groups", help="List tax groups with their rules"
    )
    tax_groups_parser.set_defaults(func=cmd_tax_groups)

    # item command group
    item_parser = subparsers.add_parser("item", help="Item commands")
    item_subparsers = item_parser.add_subparsers(
        dest="item_command", help="Item subcommands"
    )

    item_add_parser = item_subparsers.add_parser("add", help="Add an item")
    item_add_parser.add_argument("name", help="Item name")
    item_add_parser.add_argument("--sku", help="Stock keeping unit")
    item_add_parser.set_defaults(func=cmd_item_add)

    item_assign_parser = item_subparsers.add_parser(
        "assign", help="Replace an item's tax assignments"
    )
    item_assign_parser.add_argument("--item-id", type=UUID, required=True)
    item_assign_parser.add_argument(
        "--sales", type=UUID, nargs="*", help="Sales tax rule IDs in order"
    )
    item_assign_parser.add_argument(
        "--purchase", type=UUID, nargs="*", help="Purchase tax rule IDs in order"
    )
    item_assign_parser.set_defaults(func=cmd_item_assign)

    item_show_parser = item_subparsers.add_parser(
        "show", help="Show an item's tax configuration"
    )
    item_show_parser.add_argument("--item-id", type=UUID, required=True)
    item_show_parser.set_defaults(func=cmd_item_show)

    # customer command group
    customer_parser = subparsers.add_parser("customer", help="Customer commands")
    customer_subparsers = customer_parser.add_subparsers(
        dest="customer_command", help="Customer subcommands"
    )

    customer_add_parser = customer_subparsers.add_parser("add", help="Add a customer")
    customer_add_parser.add_argument("name", help="Customer name")
    customer_add_parser.add_argument("--currency", help="Preferred currency code")
    customer_add_parser.set_defaults(func=cmd_customer_add)

    customer_assign_parser = customer_subparsers.add_parser(
        "assign", help="Replace a customer's default taxes"
    )
    customer_assign_parser.add_argument("--customer-id", type=UUID, required=True)
    customer_assign_parser.add_argument(
        "--taxes", type=UUID, nargs="+", required=True, help="Tax rule IDs"
    )
    customer_assign_parser.set_defaults(func=cmd_customer_assign)

    # vendor command group
    vendor_parser = subparsers.add_parser("vendor", help="Vendor commands")
    vendor_subparsers = vendor_parser.add_subparsers(
        dest="vendor_command", help="Vendor subcommands"
    )

    vendor_add_parser = vendor_subparsers.add_parser("add", help="Add a vendor")
    vendor_add_parser.add_argument("name", help="Vendor name")
    vendor_add_parser.add_argument("--currency", help="Preferred currency code")
    vendor_add_parser.add_argument("--tax-number", help="Vendor tax registration number")
    vendor_add_parser.set_defaults(func=cmd_vendor_add)

    vendor_assign_parser = vendor_subparsers.add_parser(
        "assign", help="Replace a vendor's default taxes"
    )
    vendor_assign_parser.add_argument("--vendor-id", type=UUID, required=True)
    vendor_assign_parser.add_argument(
        "--taxes", type=UUID, nargs="+", required=True, help="Tax rule IDs"
    )
    vendor_assign_parser.set_defaults(func=cmd_vendor_assign)

    # rate command group
    rate_parser = subparsers.add_parser("rate", help="Exchange rate commands")
    rate_subparsers = rate_parser.add_subparsers(
        dest="rate_command", help="Exchange rate subcommands"
    )

    rate_add_parser = rate_subparsers.add_parser("add", help="Add an exchange rate")
    rate_add_parser.add_argument("--from", dest="from_currency", required=True)
    rate_add_parser.add_argument("--to", dest="to_currency", required=True)
    rate_add_parser.add_argument("--rate", type=_decimal, required=True)
    rate_add_parser.add_argument(
        "--date", type=_date, default=date.today(), help="Effective date (YYYY-MM-DD)"
    )
    rate_add_parser.add_argument(
        "--source",
        choices=[s.value for s in ExchangeRateSource],
        default=ExchangeRateSource.MANUAL.value,
    )
    rate_add_parser.set_defaults(func=cmd_rate_add)

    # calculate command
    calculate_parser = subparsers.add_parser(
        "calculate", help="Preview order taxes from a JSON line file"
    )
    _add_order_file_arguments(calculate_parser)
    calculate_parser.add_argument(
        "--json", action="store_true", help="Print the result as JSON"
    )
    calculate_parser.set_defaults(func=cmd_calculate)

    # order command group
    order_parser = subparsers.add_parser("order", help="Order commands")
    order_subparsers = order_parser.add_subparsers(
        dest="order_command", help="Order subcommands"
    )

    order_create_parser = order_subparsers.add_parser(
        "create", help="Calculate and save an order from a JSON line file"
    )
    _add_order_file_arguments(order_create_parser)
    order_create_parser.add_argument("--currency", help="Document currency")
    order_create_parser.add_argument(
        "--date", type=_date, help="Order date (YYYY-MM-DD)"
    )
    order_create_parser.set_defaults(func=cmd_order_create)

    order_show_parser = order_subparsers.add_parser("show", help="Show a saved order")
    order_show_parser.add_argument("--order-id", type=UUID, required=True)
    order_show_parser.set_defaults(func=cmd_order_show)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    groups = {
        "tax": (tax_parser, "tax_command"),
        "item": (item_parser, "item_command"),
        "customer": (customer_parser, "customer_command"),
        "vendor": (vendor_parser, "vendor_command"),
        "rate": (rate_parser, "rate_command"),
        "order": (order_parser, "order_command"),
    }
    if args.command in groups:
        group_parser, dest = groups[args.command]
        if getattr(args, dest, None) is None:
            group_parser.print_help()
            return 0

    configure_logging()

    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
