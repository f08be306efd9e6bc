"""Line-level tax arithmetic.

Everything here is a pure function of its arguments: no I/O, no logging,
no rounding. Amounts stay at full ``Decimal`` precision until they are
written to the store.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal

from erp_tax_engine.domain.orders import (
    InclusivePriceSplit,
    LineTaxResult,
    TaxBreakdownEntry,
    TaxDetail,
)
from erp_tax_engine.domain.taxes import TaxRule
from erp_tax_engine.domain.value_objects import HUNDRED, ZERO, to_decimal


def calculate_line_taxes(
    unit_price: Decimal,
    quantity: Decimal,
    discount: Decimal,
    rules: Sequence[TaxRule],
) -> LineTaxResult:
    """Apply ``rules`` in the given order to one line.

    Each rule is computed against the running base. Exclusive taxes are
    added to that base before the next rule; inclusive taxes are not.
    Negative inputs are not rejected and flow through the arithmetic.

    Args:
        unit_price: Price per unit as quoted on the line
        quantity: Number of units
        discount: Flat discount amount for the whole line
        rules: Resolved rules, already in ascending sequence

    Returns:
        LineTaxResult with one TaxDetail per rule in computation order
    """
    unit_price = to_decimal(unit_price)
    quantity = to_decimal(quantity)
    discount = to_decimal(discount)

    subtotal = unit_price * quantity
    subtotal_after_discount = subtotal - discount

    base_amount = subtotal_after_discount
    total_tax = ZERO
    details: list[TaxDetail] = []

    for rule in rules:
        tax_amount = rule.compute_tax(base_amount)
        details.append(
            TaxDetail(
                rule_id=rule.id,
                name=rule.name,
                rate=rule.rate,
                computation_kind=rule.computation_kind,
                base_amount=base_amount,
                tax_amount=tax_amount,
                inclusive=rule.inclusive,
            )
        )
        total_tax += tax_amount
        if not rule.inclusive:
            base_amount += tax_amount

    if subtotal_after_discount > 0:
        combined_rate = total_tax / subtotal_after_discount * HUNDRED
    else:
        combined_rate = ZERO

    return LineTaxResult(
        subtotal=subtotal,
        discount=discount,
        subtotal_after_discount=subtotal_after_discount,
        tax_details=tuple(details),
        total_tax_amount=total_tax,
        combined_tax_rate=combined_rate,
        line_total=subtotal_after_discount + total_tax,
        price_includes_tax=any(detail.inclusive for detail in details),
    )


def calculate_price_excluding_tax(
    including_price: Decimal, rules: Iterable[TaxRule]
) -> Decimal:
    """Strip the inclusive rules out of a tax-inclusive price.

    Fixed inclusive amounts are subtracted first; the percentage rates of
    the remaining inclusive rules are summed and divided out in one step.
    Exclusive rules are ignored.
    """
    excluding_price = to_decimal(including_price)
    total_rate = ZERO

    for rule in rules:
        if not rule.inclusive:
            continue
        if rule.is_fixed:
            excluding_price -= rule.fixed_amount
        else:
            total_rate += rule.rate

    if total_rate > 0:
        excluding_price = excluding_price / (1 + total_rate / HUNDRED)
    return excluding_price


def split_inclusive_price(
    inclusive_price: Decimal, rules: Iterable[TaxRule]
) -> InclusivePriceSplit:
    inclusive_price = to_decimal(inclusive_price)
    exclusive_price = calculate_price_excluding_tax(inclusive_price, rules)
    return InclusivePriceSplit(
        exclusive_price=exclusive_price,
        tax_amount=inclusive_price - exclusive_price,
        inclusive_price=inclusive_price,
    )


def get_tax_breakdown(details: Iterable[TaxDetail]) -> list[TaxBreakdownEntry]:
    """Group tax details by rule name for display.

    Base and tax amounts are summed; the rate is the plain average of the
    grouped details. Groups keep first-seen order.
    """
    grouped: dict[str, list[TaxDetail]] = {}
    for detail in details:
        grouped.setdefault(detail.name, []).append(detail)

    breakdown = []
    for name, entries in grouped.items():
        breakdown.append(
            TaxBreakdownEntry(
                name=name,
                base_amount=sum((e.base_amount for e in entries), ZERO),
                rate=sum((e.rate for e in entries), ZERO) / len(entries),
                tax_amount=sum((e.tax_amount for e in entries), ZERO),
            )
        )
    return breakdown


__all__ = [
    "calculate_line_taxes",
    "calculate_price_excluding_tax",
    "get_tax_breakdown",
    "split_inclusive_price",
]
