"""Domain exception hierarchy for the ERP tax engine.

All domain-specific exceptions inherit from ErpTaxError so callers can catch
every application error with one base class while keeping the specific
types available.

The calculation core itself raises none of these for numeric input.
Configuration gaps (no item rules, no party defaults) resolve to zero tax;
only configuration that cannot be computed at all, such as an unsupported
computation kind, is reported as an error.
"""

from typing import Any
from uuid import UUID


class ErpTaxError(Exception):
    """Base exception for all ERP tax engine errors."""

    error_code: str = "ERP_TAX_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Tax Configuration Errors
# =============================================================================


class TaxConfigurationError(ErpTaxError):
    """Base exception for tax configuration data that cannot be used."""

    error_code = "TAX_CONFIGURATION_ERROR"
    status_code = 400


class UnknownComputationKindError(TaxConfigurationError):
    """Raised when a tax rule carries a computation kind the engine cannot apply."""

    error_code = "UNKNOWN_COMPUTATION_KIND"

    def __init__(self, computation_kind: object, rule_name: str | None = None) -> None:
        subject = f" on tax rule '{rule_name}'" if rule_name else ""
        super().__init__(
            f"Unknown computation kind{subject}: {computation_kind!r}",
            context={"computation_kind": str(computation_kind), "rule_name": rule_name},
        )


class UnknownTaxDirectionError(TaxConfigurationError):
    """Raised when a direction other than sales/purchase is requested."""

    error_code = "UNKNOWN_TAX_DIRECTION"

    def __init__(self, direction: object) -> None:
        super().__init__(
            f"Unknown tax direction: {direction!r}",
            context={"direction": str(direction)},
        )


class TaxRuleNotFoundError(TaxConfigurationError):
    error_code = "TAX_RULE_NOT_FOUND"
    status_code = 404

    def __init__(self, rule_id: UUID | str) -> None:
        super().__init__(
            f"Tax rule not found: {rule_id}",
            context={"rule_id": str(rule_id)},
        )


class DuplicateTaxRuleError(TaxConfigurationError):
    error_code = "DUPLICATE_TAX_RULE"
    status_code = 409

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Tax rule already exists: {name}",
            context={"rule_name": name},
        )


class EmptyTaxAssignmentError(TaxConfigurationError):
    """Raised when a party default assignment is replaced with no rules."""

    error_code = "EMPTY_TAX_ASSIGNMENT"

    def __init__(self, party_type: str, party_id: UUID | str) -> None:
        super().__init__(
            f"At least one tax rule is required for {party_type} {party_id}",
            context={"party_type": party_type, "party_id": str(party_id)},
        )


class ItemNotFoundError(TaxConfigurationError):
    error_code = "ITEM_NOT_FOUND"
    status_code = 404

    def __init__(self, item_id: UUID | str) -> None:
        super().__init__(
            f"Item not found: {item_id}",
            context={"item_id": str(item_id)},
        )


class PartyNotFoundError(TaxConfigurationError):
    """Raised when a customer or vendor cannot be found."""

    error_code = "PARTY_NOT_FOUND"
    status_code = 404

    def __init__(self, party_type: str, party_id: UUID | str) -> None:
        super().__init__(
            f"{party_type.capitalize()} not found: {party_id}",
            context={"party_type": party_type, "party_id": str(party_id)},
        )


# =============================================================================
# Currency Errors
# =============================================================================


class CurrencyError(ErpTaxError):
    error_code = "CURRENCY_ERROR"
    status_code = 400


class ExchangeRateNotFoundError(CurrencyError):
    """Raised when no direct or inverse rate exists for a pair on a date."""

    error_code = "EXCHANGE_RATE_NOT_FOUND"
    status_code = 404

    def __init__(self, from_currency: str, to_currency: str, as_of: str) -> None:
        super().__init__(
            f"No exchange rate found for {from_currency}/{to_currency} on {as_of}",
            context={
                "from_currency": from_currency,
                "to_currency": to_currency,
                "as_of": as_of,
            },
        )


# =============================================================================
# Order Errors
# =============================================================================


class OrderError(ErpTaxError):
    error_code = "ORDER_ERROR"
    status_code = 400


class OrderNotFoundError(OrderError):
    error_code = "ORDER_NOT_FOUND"
    status_code = 404

    def __init__(self, order_id: UUID | str) -> None:
        super().__init__(
            f"Order not found: {order_id}",
            context={"order_id": str(order_id)},
        )


# =============================================================================
# Database Errors
# =============================================================================


class DatabaseError(ErpTaxError):
    error_code = "DATABASE_ERROR"
    status_code = 500


class IntegrityError(DatabaseError):
    """Raised when a database integrity constraint is violated."""

    error_code = "DATABASE_INTEGRITY_ERROR"
    status_code = 409


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(ErpTaxError):
    error_code = "VALIDATION_ERROR"
    status_code = 422


class InvalidCurrencyError(ValidationError):
    error_code = "INVALID_CURRENCY"

    def __init__(self, currency_code: str) -> None:
        super().__init__(
            f"Invalid currency code: {currency_code}",
            context={"currency_code": currency_code},
        )


class InvalidAmountError(ValidationError):
    """Raised when an invalid monetary amount or rate is provided."""

    error_code = "INVALID_AMOUNT"

    def __init__(self, amount: str, reason: str) -> None:
        super().__init__(
            f"Invalid amount '{amount}': {reason}",
            context={"amount": amount, "reason": reason},
        )
