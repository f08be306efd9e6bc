"""Order-level tax aggregation over independently calculated lines."""

import contextvars
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from uuid import UUID

from erp_tax_engine.domain.orders import (
    CalculatedLine,
    OrderLine,
    OrderTaxResult,
    TaxSummaryEntry,
)
from erp_tax_engine.domain.value_objects import ZERO, TaxDirection
from erp_tax_engine.logging_config import LogContext, get_logger
from erp_tax_engine.services.interfaces import OrderTaxService, TaxResolutionService
from erp_tax_engine.services.tax_calculator import calculate_line_taxes

logger = get_logger(__name__)


class OrderTaxServiceImpl(OrderTaxService):
    """Runs resolution and calculation per line, then reduces serially.

    With ``max_workers`` above 1 lines are resolved and calculated on a
    thread pool; results come back in input order and the summary merge
    always happens on the calling thread.
    """

    def __init__(self, resolver: TaxResolutionService, max_workers: int = 1) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self._resolver = resolver
        self._max_workers = max_workers

    def calculate_order(
        self,
        lines: Sequence[OrderLine],
        direction: TaxDirection,
        customer_id: UUID | None = None,
        vendor_id: UUID | None = None,
    ) -> OrderTaxResult:
        """Calculate every line and aggregate order totals and a per-rule summary.

        Args:
            lines: Line inputs in document order
            direction: Sales or purchase
            customer_id: Customer whose defaults apply to sales lines
            vendor_id: Vendor whose defaults apply to purchase lines

        Returns:
            OrderTaxResult whose summary lists rules in first-seen order
        """
        direction = TaxDirection.parse(direction)

        def calculate(line: OrderLine) -> CalculatedLine:
            rules = self._resolver.resolve(
                line.item_id, direction, customer_id=customer_id, vendor_id=vendor_id
            )
            calculation = calculate_line_taxes(
                line.unit_price, line.quantity, line.discount, rules
            )
            return CalculatedLine(line=line, calculation=calculation)

        with LogContext(direction=direction.value, line_count=len(lines)):
            if self._max_workers > 1 and len(lines) > 1:
                workers = min(self._max_workers, len(lines))
                # each worker runs in a copy of the bound log context
                with ThreadPoolExecutor(max_workers=workers) as pool:
                    futures = [
                        pool.submit(contextvars.copy_context().run, calculate, line)
                        for line in lines
                    ]
                    calculated = [future.result() for future in futures]
            else:
                calculated = [calculate(line) for line in lines]

            result = self._aggregate(calculated)

            logger.info(
                "order_taxes_calculated",
                subtotal=str(result.subtotal),
                tax_amount=str(result.tax_amount),
                total=str(result.total),
                taxes_applied=len(result.tax_summary),
            )
        return result

    def _aggregate(self, calculated: list[CalculatedLine]) -> OrderTaxResult:
        subtotal = ZERO
        tax_amount = ZERO
        total = ZERO
        summary: dict[UUID, TaxSummaryEntry] = {}

        for item in calculated:
            calculation = item.calculation
            subtotal += calculation.subtotal_after_discount
            tax_amount += calculation.total_tax_amount
            total += calculation.line_total
            for detail in calculation.tax_details:
                entry = summary.get(detail.rule_id) or TaxSummaryEntry.seed(detail)
                summary[detail.rule_id] = entry.add(detail)

        return OrderTaxResult(
            lines=tuple(calculated),
            subtotal=subtotal,
            tax_amount=tax_amount,
            total=total,
            tax_summary=tuple(summary.values()),
        )
