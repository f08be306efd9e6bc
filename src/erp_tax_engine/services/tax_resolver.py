"""Resolution of the ordered tax rules that apply to a single order line."""

from uuid import UUID

from erp_tax_engine.domain.taxes import TaxRule
from erp_tax_engine.domain.value_objects import PartyType, TaxDirection
from erp_tax_engine.logging_config import get_logger
from erp_tax_engine.repositories.interfaces import TaxConfigurationProvider
from erp_tax_engine.services.interfaces import TaxResolutionService

logger = get_logger(__name__)


class TaxResolverImpl(TaxResolutionService):
    """Two-tier lookup: the item's own rules, else the party's defaults.

    A non-empty item assignment for the direction always wins and is never
    merged with party defaults. Missing items and missing parties resolve to
    no rules. Provider failures propagate unchanged.
    """

    def __init__(self, provider: TaxConfigurationProvider) -> None:
        self._provider = provider

    def resolve(
        self,
        item_id: UUID | None,
        direction: TaxDirection,
        customer_id: UUID | None = None,
        vendor_id: UUID | None = None,
    ) -> list[TaxRule]:
        """Return the active rules for a line, sorted by ascending sequence.

        Args:
            item_id: Catalog item on the line; None for an ad-hoc line
            direction: Sales or purchase
            customer_id: Party consulted for sales defaults
            vendor_id: Party consulted for purchase defaults

        Returns:
            Active rules; ties in sequence keep the provider's order
        """
        direction = TaxDirection.parse(direction)
        source = "none"
        candidates: tuple[TaxRule, ...] = ()

        if item_id is not None:
            profile = self._provider.get_item_tax_profile(item_id)
            if profile is None:
                logger.warning(
                    "item_not_found_zero_tax",
                    item_id=str(item_id),
                    direction=direction.value,
                )
                return []
            candidates = profile.for_direction(direction)
            if candidates:
                source = "item"

        if not candidates:
            candidates = self._party_defaults(direction, customer_id, vendor_id)
            if candidates:
                source = "party"

        rules = sorted(
            (rule for rule in candidates if rule.is_active),
            key=lambda rule: rule.sequence,
        )

        logger.debug(
            "tax_rules_resolved",
            item_id=str(item_id) if item_id else None,
            direction=direction.value,
            source=source,
            rule_count=len(rules),
        )
        return rules

    def _party_defaults(
        self,
        direction: TaxDirection,
        customer_id: UUID | None,
        vendor_id: UUID | None,
    ) -> tuple[TaxRule, ...]:
        party_type = PartyType.for_direction(direction)
        party_id = customer_id if party_type is PartyType.CUSTOMER else vendor_id
        if party_id is None:
            return ()

        profile = self._provider.get_party_tax_profile(party_type, party_id)
        if profile is None:
            return ()
        return profile.defaults_for(direction)
