"""SQLite implementations of repository interfaces."""

from __future__ import annotations

import contextlib
import sqlite3
import threading
from collections.abc import Iterable, Iterator, Sequence
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from uuid import UUID

from erp_tax_engine.domain.exchange_rates import ExchangeRate
from erp_tax_engine.domain.orders import Order, OrderLineRecord
from erp_tax_engine.domain.parties import Customer, Item, Vendor
from erp_tax_engine.domain.taxes import (
    ItemTaxProfile,
    PartyTaxProfile,
    TaxGroup,
    TaxRule,
)
from erp_tax_engine.domain.value_objects import (
    Currency,
    ExchangeRateSource,
    PartyType,
    TaxApplicability,
    TaxDirection,
)
from erp_tax_engine.exceptions import IntegrityError
from erp_tax_engine.repositories.interfaces import (
    CustomerRepository,
    ExchangeRateRepository,
    ItemRepository,
    OrderRepository,
    TaxConfigurationProvider,
    TaxGroupRepository,
    TaxRuleRepository,
    VendorRepository,
)
from erp_tax_engine.schemas import dump_applied_taxes, load_applied_taxes


class SQLiteDatabase:
    """SQLite database connection manager."""

    def __init__(
        self, path: str | Path = ":memory:", check_same_thread: bool = True
    ) -> None:
        self._path = str(path)
        self._check_same_thread = check_same_thread
        self._connection: sqlite3.Connection | None = None
        self._depth = 0
        self.lock = threading.RLock()

    def get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._connection is None:
            self._connection = sqlite3.connect(
                self._path, check_same_thread=self._check_same_thread
            )
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Group writes into one commit; nested blocks join the outer one.

        Constraint violations surface as the domain IntegrityError.
        """
        with self.lock:
            conn = self.get_connection()
            self._depth += 1
            try:
                yield conn
            except sqlite3.IntegrityError as exc:
                self._depth -= 1
                if self._depth == 0:
                    conn.rollback()
                raise IntegrityError(str(exc)) from exc
            except BaseException:
                self._depth -= 1
                if self._depth == 0:
                    conn.rollback()
                raise
            else:
                self._depth -= 1
                if self._depth == 0:
                    conn.commit()

    def initialize(self) -> None:
        """Create all database tables."""
        conn = self.get_connection()
        conn.executescript(
            """
            -- Tax groups table
            CREATE TABLE IF NOT EXISTS tax_groups (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL UNIQUE,
                description TEXT NOT NULL DEFAULT '',
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            -- Tax rules table
            CREATE TABLE IF NOT EXISTS tax_rules (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL UNIQUE,
                description TEXT NOT NULL DEFAULT '',
                applicability TEXT NOT NULL DEFAULT 'both'
                    CHECK (applicability IN ('sales', 'purchase', 'both')),
                computation_kind TEXT NOT NULL DEFAULT 'percentage',
                rate TEXT NOT NULL DEFAULT '0',
                fixed_amount TEXT NOT NULL DEFAULT '0',
                inclusive INTEGER NOT NULL DEFAULT 0,
                sequence INTEGER NOT NULL DEFAULT 10,
                is_active INTEGER NOT NULL DEFAULT 1,
                tax_group_id TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY (tax_group_id) REFERENCES tax_groups(id) ON DELETE SET NULL
            );

            -- Items table
            CREATE TABLE IF NOT EXISTS items (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                sku TEXT UNIQUE,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            -- Customers table
            CREATE TABLE IF NOT EXISTS customers (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                preferred_currency TEXT,
                contact_email TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            -- Vendors table
            CREATE TABLE IF NOT EXISTS vendors (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                preferred_currency TEXT,
                tax_id TEXT,
                contact_email TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            -- Item tax assignments, per direction; seq preserves assignment order
            CREATE TABLE IF NOT EXISTS item_taxes (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                item_id TEXT NOT NULL,
                tax_rule_id TEXT NOT NULL,
                direction TEXT NOT NULL CHECK (direction IN ('sales', 'purchase')),
                UNIQUE(item_id, tax_rule_id, direction),
                FOREIGN KEY (item_id) REFERENCES items(id) ON DELETE CASCADE,
                FOREIGN KEY (tax_rule_id) REFERENCES tax_rules(id) ON DELETE CASCADE
            );

            -- Customer default taxes
            CREATE TABLE IF NOT EXISTS customer_taxes (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                customer_id TEXT NOT NULL,
                tax_rule_id TEXT NOT NULL,
                UNIQUE(customer_id, tax_rule_id),
                FOREIGN KEY (customer_id) REFERENCES customers(id) ON DELETE CASCADE,
                FOREIGN KEY (tax_rule_id) REFERENCES tax_rules(id) ON DELETE CASCADE
            );

            -- Vendor default taxes
            CREATE TABLE IF NOT EXISTS vendor_taxes (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                vendor_id TEXT NOT NULL,
                tax_rule_id TEXT NOT NULL,
                UNIQUE(vendor_id, tax_rule_id),
                FOREIGN KEY (vendor_id) REFERENCES vendors(id) ON DELETE CASCADE,
                FOREIGN KEY (tax_rule_id) REFERENCES tax_rules(id) ON DELETE CASCADE
            );

            -- Exchange rates table
            CREATE TABLE IF NOT EXISTS exchange_rates (
                id TEXT PRIMARY KEY,
                from_currency TEXT NOT NULL,
                to_currency TEXT NOT NULL,
                rate TEXT NOT NULL,
                effective_date TEXT NOT NULL,
                source TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            -- Orders table (sales and purchase share one header layout)
            CREATE TABLE IF NOT EXISTS orders (
                id TEXT PRIMARY KEY,
                direction TEXT NOT NULL CHECK (direction IN ('sales', 'purchase')),
                party_id TEXT,
                order_date TEXT NOT NULL,
                currency TEXT NOT NULL,
                base_currency TEXT NOT NULL,
                exchange_rate TEXT NOT NULL,
                subtotal TEXT NOT NULL,
                tax_amount TEXT NOT NULL,
                total_amount TEXT NOT NULL,
                base_currency_tax TEXT NOT NULL,
                base_currency_total TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            -- Order lines table
            CREATE TABLE IF NOT EXISTS order_lines (
                id TEXT PRIMARY KEY,
                order_id TEXT NOT NULL,
                line_number INTEGER NOT NULL,
                item_id TEXT,
                description TEXT NOT NULL DEFAULT '',
                unit_price TEXT NOT NULL,
                quantity TEXT NOT NULL,
                discount TEXT NOT NULL,
                subtotal TEXT NOT NULL,
                tax TEXT NOT NULL,
                tax_rate TEXT NOT NULL,
                applied_taxes TEXT,
                subtotal_before_tax TEXT NOT NULL,
                tax_inclusive_amount TEXT NOT NULL,
                total TEXT NOT NULL,
                base_currency_unit_price TEXT NOT NULL,
                base_currency_subtotal TEXT NOT NULL,
                base_currency_discount TEXT NOT NULL,
                base_currency_tax TEXT NOT NULL,
                base_currency_total TEXT NOT NULL,
                UNIQUE(order_id, line_number),
                FOREIGN KEY (order_id) REFERENCES orders(id) ON DELETE CASCADE
            );

            -- Indexes for common queries
            CREATE INDEX IF NOT EXISTS idx_tax_rules_applicability ON tax_rules(applicability, is_active);
            CREATE INDEX IF NOT EXISTS idx_tax_rules_sequence ON tax_rules(sequence);
            CREATE INDEX IF NOT EXISTS idx_item_taxes_item ON item_taxes(item_id, direction);
            CREATE INDEX IF NOT EXISTS idx_exchange_rates_pair_date ON exchange_rates(from_currency, to_currency, effective_date);
            CREATE INDEX IF NOT EXISTS idx_orders_party ON orders(party_id);
            CREATE INDEX IF NOT EXISTS idx_order_lines_order ON order_lines(order_id);
            """
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None


def _row_to_tax_rule(row: sqlite3.Row) -> TaxRule:
    # TaxRule rejects unknown computation kinds on construction
    rule = TaxRule(
        name=row["name"],
        computation_kind=row["computation_kind"],
        id=UUID(row["id"]),
        description=row["description"] or "",
        applicability=TaxApplicability(row["applicability"]),
        rate=Decimal(row["rate"]),
        fixed_amount=Decimal(row["fixed_amount"]),
        inclusive=bool(row["inclusive"]),
        sequence=row["sequence"],
        is_active=bool(row["is_active"]),
        tax_group_id=UUID(row["tax_group_id"]) if row["tax_group_id"] else None,
    )
    rule.created_at = datetime.fromisoformat(row["created_at"])
    rule.updated_at = datetime.fromisoformat(row["updated_at"])
    return rule


class SQLiteTaxGroupRepository(TaxGroupRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, group: TaxGroup) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO tax_groups (id, name, description, is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    str(group.id),
                    group.name,
                    group.description,
                    1 if group.is_active else 0,
                    group.created_at.isoformat(),
                    group.updated_at.isoformat(),
                ),
            )

    def get(self, group_id: UUID) -> TaxGroup | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM tax_groups WHERE id = ?", (str(group_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_group(row)

    def get_by_name(self, name: str) -> TaxGroup | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM tax_groups WHERE name = ?", (name,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_group(row)

    def list_active(self) -> Iterable[TaxGroup]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM tax_groups WHERE is_active = 1 ORDER BY name"
        ).fetchall()
        return [self._row_to_group(row) for row in rows]

    def _row_to_group(self, row: sqlite3.Row) -> TaxGroup:
        return TaxGroup(
            name=row["name"],
            id=UUID(row["id"]),
            description=row["description"] or "",
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLiteTaxRuleRepository(TaxRuleRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, rule: TaxRule) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO tax_rules (id, name, description, applicability, computation_kind,
                                       rate, fixed_amount, inclusive, sequence, is_active,
                                       tax_group_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(rule.id),
                    rule.name,
                    rule.description,
                    rule.applicability.value,
                    rule.computation_kind.value,
                    str(rule.rate),
                    str(rule.fixed_amount),
                    1 if rule.inclusive else 0,
                    rule.sequence,
                    1 if rule.is_active else 0,
                    str(rule.tax_group_id) if rule.tax_group_id else None,
                    rule.created_at.isoformat(),
                    rule.updated_at.isoformat(),
                ),
            )

    def get(self, rule_id: UUID) -> TaxRule | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM tax_rules WHERE id = ?", (str(rule_id),)
        ).fetchone()
        if row is None:
            return None
        return _row_to_tax_rule(row)

    def get_by_name(self, name: str) -> TaxRule | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM tax_rules WHERE name = ?", (name,)
        ).fetchone()
        if row is None:
            return None
        return _row_to_tax_rule(row)

    def list_active(self, direction: TaxDirection | None = None) -> Iterable[TaxRule]:
        conn = self._db.get_connection()
        query = "SELECT * FROM tax_rules WHERE is_active = 1"
        params: list[str] = []
        if direction is not None:
            query += " AND applicability IN (?, 'both')"
            params.append(direction.value)
        query += " ORDER BY sequence, name"
        rows = conn.execute(query, params).fetchall()
        return [_row_to_tax_rule(row) for row in rows]

    def list_by_group(self, group_id: UUID, active_only: bool = True) -> Iterable[TaxRule]:
        conn = self._db.get_connection()
        query = "SELECT * FROM tax_rules WHERE tax_group_id = ?"
        if active_only:
            query += " AND is_active = 1"
        query += " ORDER BY sequence, name"
        rows = conn.execute(query, (str(group_id),)).fetchall()
        return [_row_to_tax_rule(row) for row in rows]

    def update(self, rule: TaxRule) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE tax_rules SET
                    name = ?,
                    description = ?,
                    applicability = ?,
                    computation_kind = ?,
                    rate = ?,
                    fixed_amount = ?,
                    inclusive = ?,
                    sequence = ?,
                    is_active = ?,
                    tax_group_id = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    rule.name,
                    rule.description,
                    rule.applicability.value,
                    rule.computation_kind.value,
                    str(rule.rate),
                    str(rule.fixed_amount),
                    1 if rule.inclusive else 0,
                    rule.sequence,
                    1 if rule.is_active else 0,
                    str(rule.tax_group_id) if rule.tax_group_id else None,
                    rule.updated_at.isoformat(),
                    str(rule.id),
                ),
            )


class SQLiteItemRepository(ItemRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, item: Item) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO items (id, name, sku, is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    str(item.id),
                    item.name,
                    item.sku,
                    1 if item.is_active else 0,
                    item.created_at.isoformat(),
                    item.updated_at.isoformat(),
                ),
            )

    def get(self, item_id: UUID) -> Item | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM items WHERE id = ?", (str(item_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_item(row)

    def list_all(self) -> Iterable[Item]:
        conn = self._db.get_connection()
        rows = conn.execute("SELECT * FROM items ORDER BY name").fetchall()
        return [self._row_to_item(row) for row in rows]

    def replace_taxes(
        self,
        item_id: UUID,
        sales_rule_ids: Sequence[UUID],
        purchase_rule_ids: Sequence[UUID],
    ) -> None:
        with self._db.transaction() as conn:
            conn.execute("DELETE FROM item_taxes WHERE item_id = ?", (str(item_id),))
            for direction, rule_ids in (
                (TaxDirection.SALES, sales_rule_ids),
                (TaxDirection.PURCHASE, purchase_rule_ids),
            ):
                for rule_id in rule_ids:
                    conn.execute(
                        """
                        INSERT INTO item_taxes (item_id, tax_rule_id, direction)
                        VALUES (?, ?, ?)
                        """,
                        (str(item_id), str(rule_id), direction.value),
                    )

    def _row_to_item(self, row: sqlite3.Row) -> Item:
        return Item(
            name=row["name"],
            id=UUID(row["id"]),
            sku=row["sku"],
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


def _replace_party_taxes(
    db: SQLiteDatabase, table: str, column: str, party_id: UUID, rule_ids: Sequence[UUID]
) -> None:
    with db.transaction() as conn:
        conn.execute(f"DELETE FROM {table} WHERE {column} = ?", (str(party_id),))
        for rule_id in rule_ids:
            conn.execute(
                f"INSERT INTO {table} ({column}, tax_rule_id) VALUES (?, ?)",
                (str(party_id), str(rule_id)),
            )


class SQLiteCustomerRepository(CustomerRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, customer: Customer) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO customers (id, name, preferred_currency, contact_email,
                                       is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(customer.id),
                    customer.name,
                    customer.preferred_currency.value if customer.preferred_currency else None,
                    customer.contact_email,
                    1 if customer.is_active else 0,
                    customer.created_at.isoformat(),
                    customer.updated_at.isoformat(),
                ),
            )

    def get(self, customer_id: UUID) -> Customer | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM customers WHERE id = ?", (str(customer_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_customer(row)

    def list_all(self) -> Iterable[Customer]:
        conn = self._db.get_connection()
        rows = conn.execute("SELECT * FROM customers ORDER BY name").fetchall()
        return [self._row_to_customer(row) for row in rows]

    def replace_default_taxes(self, customer_id: UUID, rule_ids: Sequence[UUID]) -> None:
        _replace_party_taxes(self._db, "customer_taxes", "customer_id", customer_id, rule_ids)

    def _row_to_customer(self, row: sqlite3.Row) -> Customer:
        return Customer(
            name=row["name"],
            id=UUID(row["id"]),
            preferred_currency=Currency(row["preferred_currency"])
            if row["preferred_currency"]
            else None,
            contact_email=row["contact_email"],
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLiteVendorRepository(VendorRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, vendor: Vendor) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO vendors (id, name, preferred_currency, tax_id, contact_email,
                                     is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(vendor.id),
                    vendor.name,
                    vendor.preferred_currency.value if vendor.preferred_currency else None,
                    vendor.tax_id,
                    vendor.contact_email,
                    1 if vendor.is_active else 0,
                    vendor.created_at.isoformat(),
                    vendor.updated_at.isoformat(),
                ),
            )

    def get(self, vendor_id: UUID) -> Vendor | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM vendors WHERE id = ?", (str(vendor_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_vendor(row)

    def list_all(self) -> Iterable[Vendor]:
        conn = self._db.get_connection()
        rows = conn.execute("SELECT * FROM vendors ORDER BY name").fetchall()
        return [self._row_to_vendor(row) for row in rows]

    def replace_default_taxes(self, vendor_id: UUID, rule_ids: Sequence[UUID]) -> None:
        _replace_party_taxes(self._db, "vendor_taxes", "vendor_id", vendor_id, rule_ids)

    def _row_to_vendor(self, row: sqlite3.Row) -> Vendor:
        return Vendor(
            name=row["name"],
            id=UUID(row["id"]),
            preferred_currency=Currency(row["preferred_currency"])
            if row["preferred_currency"]
            else None,
            tax_id=row["tax_id"],
            contact_email=row["contact_email"],
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLiteTaxConfigurationProvider(TaxConfigurationProvider):
    """Reads item and party tax assignments in assignment order."""

    _PARTY_TABLES = {
        PartyType.CUSTOMER: ("customers", "customer_taxes", "customer_id"),
        PartyType.VENDOR: ("vendors", "vendor_taxes", "vendor_id"),
    }

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def get_item_tax_profile(self, item_id: UUID) -> ItemTaxProfile | None:
        with self._db.lock:
            conn = self._db.get_connection()
            exists = conn.execute(
                "SELECT 1 FROM items WHERE id = ?", (str(item_id),)
            ).fetchone()
            if exists is None:
                return None
            rows = conn.execute(
                """
                SELECT r.*, it.direction AS assigned_direction
                FROM item_taxes it
                JOIN tax_rules r ON r.id = it.tax_rule_id
                WHERE it.item_id = ?
                ORDER BY it.seq
                """,
                (str(item_id),),
            ).fetchall()
        sales: list[TaxRule] = []
        purchase: list[TaxRule] = []
        for row in rows:
            rule = _row_to_tax_rule(row)
            if row["assigned_direction"] == TaxDirection.SALES.value:
                sales.append(rule)
            else:
                purchase.append(rule)
        return ItemTaxProfile(
            item_id=item_id, sales_taxes=tuple(sales), purchase_taxes=tuple(purchase)
        )

    def get_party_tax_profile(
        self, party_type: PartyType, party_id: UUID
    ) -> PartyTaxProfile | None:
        party_table, link_table, column = self._PARTY_TABLES[party_type]
        with self._db.lock:
            conn = self._db.get_connection()
            exists = conn.execute(
                f"SELECT 1 FROM {party_table} WHERE id = ?", (str(party_id),)
            ).fetchone()
            if exists is None:
                return None
            rows = conn.execute(
                f"""
                SELECT r.*
                FROM {link_table} pt
                JOIN tax_rules r ON r.id = pt.tax_rule_id
                WHERE pt.{column} = ?
                ORDER BY pt.seq
                """,
                (str(party_id),),
            ).fetchall()
        return PartyTaxProfile(
            party_type=party_type,
            party_id=party_id,
            default_taxes=tuple(_row_to_tax_rule(row) for row in rows),
        )


class SQLiteExchangeRateRepository(ExchangeRateRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, rate: ExchangeRate) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO exchange_rates (id, from_currency, to_currency, rate,
                                            effective_date, source, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(rate.id),
                    rate.from_currency,
                    rate.to_currency,
                    str(rate.rate),
                    rate.effective_date.isoformat(),
                    rate.source.value,
                    rate.created_at.isoformat(),
                ),
            )

    def get_rate(
        self,
        from_currency: str,
        to_currency: str,
        effective_date: date,
    ) -> ExchangeRate | None:
        conn = self._db.get_connection()
        row = conn.execute(
            """
            SELECT * FROM exchange_rates
            WHERE from_currency = ? AND to_currency = ? AND effective_date = ?
            ORDER BY created_at DESC
            LIMIT 1
            """,
            (from_currency, to_currency, effective_date.isoformat()),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_exchange_rate(row)

    def get_latest_rate(
        self,
        from_currency: str,
        to_currency: str,
    ) -> ExchangeRate | None:
        conn = self._db.get_connection()
        row = conn.execute(
            """
            SELECT * FROM exchange_rates
            WHERE from_currency = ? AND to_currency = ?
            ORDER BY effective_date DESC
            LIMIT 1
            """,
            (from_currency, to_currency),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_exchange_rate(row)

    def get_rate_as_of(
        self,
        from_currency: str,
        to_currency: str,
        as_of_date: date,
    ) -> ExchangeRate | None:
        conn = self._db.get_connection()
        row = conn.execute(
            """
            SELECT * FROM exchange_rates
            WHERE from_currency = ? AND to_currency = ? AND effective_date <= ?
            ORDER BY effective_date DESC, created_at DESC
            LIMIT 1
            """,
            (from_currency, to_currency, as_of_date.isoformat()),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_exchange_rate(row)

    def _row_to_exchange_rate(self, row: sqlite3.Row) -> ExchangeRate:
        return ExchangeRate(
            from_currency=row["from_currency"],
            to_currency=row["to_currency"],
            rate=Decimal(row["rate"]),
            effective_date=date.fromisoformat(row["effective_date"]),
            id=UUID(row["id"]),
            source=ExchangeRateSource(row["source"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteOrderRepository(OrderRepository):
    """Stores order headers and lines; applied taxes are kept as JSON."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, order: Order) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO orders (id, direction, party_id, order_date, currency,
                                    base_currency, exchange_rate, subtotal, tax_amount,
                                    total_amount, base_currency_tax, base_currency_total,
                                    created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(order.id),
                    order.direction.value,
                    str(order.party_id) if order.party_id else None,
                    order.order_date.isoformat(),
                    order.currency,
                    order.base_currency,
                    str(order.exchange_rate),
                    str(order.subtotal),
                    str(order.tax_amount),
                    str(order.total_amount),
                    str(order.base_currency_tax),
                    str(order.base_currency_total),
                    order.created_at.isoformat(),
                ),
            )
            for line in order.lines:
                conn.execute(
                    """
                    INSERT INTO order_lines (id, order_id, line_number, item_id, description,
                                             unit_price, quantity, discount, subtotal, tax,
                                             tax_rate, applied_taxes, subtotal_before_tax,
                                             tax_inclusive_amount, total,
                                             base_currency_unit_price, base_currency_subtotal,
                                             base_currency_discount, base_currency_tax,
                                             base_currency_total)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(line.id),
                        str(order.id),
                        line.line_number,
                        str(line.item_id) if line.item_id else None,
                        line.description,
                        str(line.unit_price),
                        str(line.quantity),
                        str(line.discount),
                        str(line.subtotal),
                        str(line.tax),
                        str(line.tax_rate),
                        dump_applied_taxes(line.applied_taxes),
                        str(line.subtotal_before_tax),
                        str(line.tax_inclusive_amount),
                        str(line.total),
                        str(line.base_currency_unit_price),
                        str(line.base_currency_subtotal),
                        str(line.base_currency_discount),
                        str(line.base_currency_tax),
                        str(line.base_currency_total),
                    ),
                )

    def get(self, order_id: UUID) -> Order | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM orders WHERE id = ?", (str(order_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_order(row)

    def list_by_party(self, party_id: UUID) -> Iterable[Order]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM orders WHERE party_id = ? ORDER BY order_date, created_at",
            (str(party_id),),
        ).fetchall()
        return [self._row_to_order(row) for row in rows]

    def _row_to_order(self, row: sqlite3.Row) -> Order:
        order = Order(
            direction=TaxDirection(row["direction"]),
            party_id=UUID(row["party_id"]) if row["party_id"] else None,
            order_date=date.fromisoformat(row["order_date"]),
            currency=row["currency"],
            base_currency=row["base_currency"],
            exchange_rate=Decimal(row["exchange_rate"]),
            id=UUID(row["id"]),
            subtotal=Decimal(row["subtotal"]),
            tax_amount=Decimal(row["tax_amount"]),
            total_amount=Decimal(row["total_amount"]),
            base_currency_tax=Decimal(row["base_currency_tax"]),
            base_currency_total=Decimal(row["base_currency_total"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
        order.lines = self._load_lines(order.id)
        return order

    def _load_lines(self, order_id: UUID) -> list[OrderLineRecord]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM order_lines WHERE order_id = ? ORDER BY line_number",
            (str(order_id),),
        ).fetchall()
        return [
            OrderLineRecord(
                order_id=order_id,
                line_number=row["line_number"],
                item_id=UUID(row["item_id"]) if row["item_id"] else None,
                unit_price=Decimal(row["unit_price"]),
                quantity=Decimal(row["quantity"]),
                discount=Decimal(row["discount"]),
                subtotal=Decimal(row["subtotal"]),
                tax=Decimal(row["tax"]),
                tax_rate=Decimal(row["tax_rate"]),
                applied_taxes=load_applied_taxes(row["applied_taxes"]),
                subtotal_before_tax=Decimal(row["subtotal_before_tax"]),
                tax_inclusive_amount=Decimal(row["tax_inclusive_amount"]),
                total=Decimal(row["total"]),
                base_currency_unit_price=Decimal(row["base_currency_unit_price"]),
                base_currency_subtotal=Decimal(row["base_currency_subtotal"]),
                base_currency_discount=Decimal(row["base_currency_discount"]),
                base_currency_tax=Decimal(row["base_currency_tax"]),
                base_currency_total=Decimal(row["base_currency_total"]),
                description=row["description"] or "",
                id=UUID(row["id"]),
            )
            for row in rows
        ]
