"""Order creation: tax calculation, rounding and atomic persistence."""

from collections.abc import Sequence
from dataclasses import replace
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from erp_tax_engine.domain.exchange_rates import CurrencyContext
from erp_tax_engine.domain.orders import (
    CalculatedLine,
    Order,
    OrderLine,
    OrderLineRecord,
    TaxBreakdownEntry,
    TaxDetail,
)
from erp_tax_engine.domain.value_objects import ZERO, PartyType, TaxDirection
from erp_tax_engine.exceptions import OrderNotFoundError, PartyNotFoundError
from erp_tax_engine.logging_config import LogContext, get_logger
from erp_tax_engine.repositories.interfaces import (
    CustomerRepository,
    OrderRepository,
    VendorRepository,
)
from erp_tax_engine.services.interfaces import (
    CurrencyService,
    OrderService,
    OrderTaxService,
)
from erp_tax_engine.services.tax_calculator import get_tax_breakdown

logger = get_logger(__name__)


def _quantizer(places: int) -> Decimal:
    return Decimal(1).scaleb(-places)


class OrderServiceImpl(OrderService):
    """Builds and stores sales and purchase orders.

    Amounts are carried at full precision through the calculation and are
    rounded only when the order is mapped to its stored form. Base-currency
    mirrors are computed from the unrounded document amounts. Header totals
    are the sums of the rounded stored lines.
    """

    def __init__(
        self,
        order_tax_service: OrderTaxService,
        currency_service: CurrencyService,
        order_repo: OrderRepository,
        customer_repo: CustomerRepository,
        vendor_repo: VendorRepository,
        monetary_precision: int = 2,
        rate_precision: int = 4,
    ) -> None:
        self._order_tax = order_tax_service
        self._currency = currency_service
        self._order_repo = order_repo
        self._customer_repo = customer_repo
        self._vendor_repo = vendor_repo
        self._money_q = _quantizer(monetary_precision)
        self._rate_q = _quantizer(rate_precision)

    def create_order(
        self,
        direction: TaxDirection,
        party_id: UUID | None,
        lines: Sequence[OrderLine],
        currency: str | None = None,
        order_date: date | None = None,
    ) -> Order:
        """Calculate taxes for ``lines`` and store the order with all lines.

        The document currency defaults to the party's preferred currency,
        then to the base currency.

        Raises:
            PartyNotFoundError: If ``party_id`` is given but unknown
            ExchangeRateNotFoundError: If no rate converts the document currency
            IntegrityError: If the store rejects the write; nothing is saved
        """
        direction = TaxDirection.parse(direction)
        order_date = order_date or date.today()
        party_currency = self._party_currency(direction, party_id)
        document_currency = currency or party_currency or self._currency.base_currency
        context = self._currency.resolve_context(document_currency, order_date)

        customer_id = party_id if direction is TaxDirection.SALES else None
        vendor_id = party_id if direction is TaxDirection.PURCHASE else None
        result = self._order_tax.calculate_order(
            lines, direction, customer_id=customer_id, vendor_id=vendor_id
        )

        order = Order(
            direction=direction,
            party_id=party_id,
            order_date=order_date,
            currency=context.document_currency,
            base_currency=context.base_currency,
            exchange_rate=context.exchange_rate,
        )
        order.lines = [
            self._to_record(order.id, number, calculated, context)
            for number, calculated in enumerate(result.lines, start=1)
        ]
        # header totals must equal the sum of the stored lines
        order.subtotal = sum((line.subtotal_before_tax for line in order.lines), ZERO)
        order.tax_amount = sum((line.tax for line in order.lines), ZERO)
        order.total_amount = sum((line.total for line in order.lines), ZERO)
        order.base_currency_tax = sum((line.base_currency_tax for line in order.lines), ZERO)
        order.base_currency_total = sum(
            (line.base_currency_total for line in order.lines), ZERO
        )

        with LogContext(order_id=str(order.id), direction=direction.value):
            self._order_repo.add(order)
            logger.info(
                "order_saved",
                line_count=len(order.lines),
                currency=order.currency,
                total_amount=str(order.total_amount),
                tax_amount=str(order.tax_amount),
            )
        return order

    def get_order(self, order_id: UUID) -> Order | None:
        return self._order_repo.get(order_id)

    def get_tax_breakdown(self, order_id: UUID) -> list[TaxBreakdownEntry]:
        order = self._order_repo.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        details = [detail for line in order.lines for detail in line.applied_taxes]
        return get_tax_breakdown(details)

    def _party_currency(self, direction: TaxDirection, party_id: UUID | None) -> str | None:
        if party_id is None:
            return None
        if direction is TaxDirection.SALES:
            party = self._customer_repo.get(party_id)
        else:
            party = self._vendor_repo.get(party_id)
        if party is None:
            raise PartyNotFoundError(PartyType.for_direction(direction).value, party_id)
        if party.preferred_currency is None:
            return None
        return party.preferred_currency.value

    def _to_record(
        self,
        order_id: UUID,
        line_number: int,
        calculated: CalculatedLine,
        context: CurrencyContext,
    ) -> OrderLineRecord:
        line = calculated.line
        calc = calculated.calculation
        inclusive_amount = calc.line_total if calc.price_includes_tax else ZERO

        return OrderLineRecord(
            order_id=order_id,
            line_number=line_number,
            item_id=line.item_id,
            unit_price=self._money(line.unit_price),
            quantity=line.quantity,
            discount=self._money(calc.discount),
            subtotal=self._money(calc.subtotal),
            tax=self._money(calc.total_tax_amount),
            tax_rate=self._rate(calc.combined_tax_rate),
            applied_taxes=tuple(self._round_detail(d) for d in calc.tax_details),
            subtotal_before_tax=self._money(calc.subtotal_after_discount),
            tax_inclusive_amount=self._money(inclusive_amount),
            total=self._money(calc.line_total),
            base_currency_unit_price=self._money(context.to_base(line.unit_price)),
            base_currency_subtotal=self._money(context.to_base(calc.subtotal)),
            base_currency_discount=self._money(context.to_base(calc.discount)),
            base_currency_tax=self._money(context.to_base(calc.total_tax_amount)),
            base_currency_total=self._money(context.to_base(calc.line_total)),
            description=line.description,
        )

    def _round_detail(self, detail: TaxDetail) -> TaxDetail:
        return replace(
            detail,
            rate=self._rate(detail.rate),
            base_amount=self._money(detail.base_amount),
            tax_amount=self._money(detail.tax_amount),
        )

    def _money(self, amount: Decimal) -> Decimal:
        return amount.quantize(self._money_q, rounding=ROUND_HALF_UP)

    def _rate(self, rate: Decimal) -> Decimal:
        return rate.quantize(self._rate_q, rounding=ROUND_HALF_UP)
