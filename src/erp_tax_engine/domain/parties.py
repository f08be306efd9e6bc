from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID, uuid4

from erp_tax_engine.domain.value_objects import Currency


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class Item:
    name: str
    id: UUID = field(default_factory=uuid4)
    sku: str | None = None
    is_active: bool = True
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)


@dataclass
class Customer:
    name: str
    id: UUID = field(default_factory=uuid4)
    preferred_currency: Currency | None = None
    contact_email: str | None = None
    is_active: bool = True
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def deactivate(self) -> None:
        self.is_active = False
        self.updated_at = _utc_now()


@dataclass
class Vendor:
    name: str
    id: UUID = field(default_factory=uuid4)
    preferred_currency: Currency | None = None
    tax_id: str | None = None
    contact_email: str | None = None
    is_active: bool = True
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def deactivate(self) -> None:
        self.is_active = False
        self.updated_at = _utc_now()
