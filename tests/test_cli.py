"""Tests for CLI module."""

import json
import logging
from decimal import Decimal
from pathlib import Path

import pytest
import structlog

from erp_tax_engine import cli
from erp_tax_engine.cli import cmd_init, cmd_version, get_default_db_path, main
from erp_tax_engine.repositories.sqlite import (
    SQLiteDatabase,
    SQLiteItemRepository,
    SQLiteOrderRepository,
    SQLiteTaxRuleRepository,
)


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda: None)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL)
    )


@pytest.fixture
def db_path(tmp_path) -> Path:
    path = tmp_path / "test.db"
    db = SQLiteDatabase(str(path))
    db.initialize()
    db.close()
    return path


def _run(db_path: Path, *argv: str) -> int:
    return main(["--database", str(db_path), *argv])


def _rule_id(db_path: Path, name: str) -> str:
    db = SQLiteDatabase(str(db_path))
    rule = SQLiteTaxRuleRepository(db).get_by_name(name)
    db.close()
    return str(rule.id)


def _only_item_id(db_path: Path) -> str:
    db = SQLiteDatabase(str(db_path))
    (item,) = SQLiteItemRepository(db).list_all()
    db.close()
    return str(item.id)


class TestGetDefaultDbPath:
    def test_returns_path_in_home_directory(self):
        result = get_default_db_path()

        assert isinstance(result, Path)
        assert ".erp_tax_engine" in str(result)
        assert result.name == "erp.db"


class TestCmdInit:
    def test_creates_new_database(self, tmp_path, capsys):
        db_path = tmp_path / "nested" / "test.db"

        class Args:
            database = str(db_path)
            force = False

        result = cmd_init(Args())

        assert result == 0
        assert db_path.exists()
        assert "Initialized database" in capsys.readouterr().out

    def test_refuses_existing_database(self, db_path, capsys):
        class Args:
            database = str(db_path)
            force = False

        assert cmd_init(Args()) == 1
        assert "already exists" in capsys.readouterr().out

    def test_force_reinitializes(self, db_path):
        main(["--database", str(db_path), "item", "add", "Widget"])

        result = main(["--database", str(db_path), "init", "--force"])

        assert result == 0
        db = SQLiteDatabase(str(db_path))
        assert list(SQLiteItemRepository(db).list_all()) == []
        db.close()


class TestMainBasics:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "erptax" in capsys.readouterr().out

    def test_version(self, capsys):
        class Args:
            pass

        assert cmd_version(Args()) == 0
        assert "ERP Tax Engine v0.1.0" in capsys.readouterr().out

    def test_group_without_subcommand_prints_help(self, db_path, capsys):
        assert _run(db_path, "tax") == 0
        assert "seed" in capsys.readouterr().out

    def test_missing_database(self, tmp_path, capsys):
        result = main(["--database", str(tmp_path / "missing.db"), "status"])

        assert result == 1
        assert "Database not found" in capsys.readouterr().out

    def test_status(self, db_path, capsys):
        _run(db_path, "tax", "seed")

        assert _run(db_path, "status") == 0
        out = capsys.readouterr().out
        assert "Active tax rules: 8" in out
        assert "Items: 0" in out


class TestTaxCommands:
    def test_seed_and_list(self, db_path, capsys):
        assert _run(db_path, "tax", "seed") == 0
        assert "Seeded 8 tax rules" in capsys.readouterr().out

        assert _run(db_path, "tax", "list", "--direction", "purchase") == 0
        out = capsys.readouterr().out
        assert "PPN 11%" in out
        assert "Sales Tax 5%" not in out

    def test_seed_twice_fails(self, db_path, capsys):
        _run(db_path, "tax", "seed")

        assert _run(db_path, "tax", "seed") == 1
        assert "already exists" in capsys.readouterr().out

    def test_add_fixed_rule(self, db_path, capsys):
        result = _run(
            db_path, "tax", "add", "Stamp", "--kind", "fixed", "--amount", "2.50",
            "--group", "Duties",
        )

        assert result == 0
        assert "fixed 2.50" in capsys.readouterr().out
        assert _run(db_path, "tax", "groups") == 0
        assert "Duties (1 rules)" in capsys.readouterr().out

    def test_add_invalid_rate(self, db_path, capsys):
        assert _run(db_path, "tax", "add", "Bad", "--rate", "150") == 1
        assert "Invalid amount" in capsys.readouterr().out

    def test_list_empty(self, db_path, capsys):
        assert _run(db_path, "tax", "list") == 0
        assert "No tax rules found" in capsys.readouterr().out


class TestItemAndPartyCommands:
    def test_item_assign_and_show(self, db_path, capsys):
        _run(db_path, "tax", "seed")
        _run(db_path, "item", "add", "Widget", "--sku", "W-1")
        item_id = _only_item_id(db_path)
        vat = _rule_id(db_path, "VAT 10%")
        capsys.readouterr()

        assert _run(db_path, "item", "assign", "--item-id", item_id, "--sales", vat) == 0
        assert "Sales taxes: 1" in capsys.readouterr().out

        assert _run(db_path, "item", "show", "--item-id", item_id) == 0
        out = capsys.readouterr().out
        assert "VAT 10%" in out
        assert "(none)" in out

    def test_show_unknown_item(self, db_path, capsys):
        result = _run(
            db_path, "item", "show", "--item-id", "00000000-0000-0000-0000-000000000001"
        )

        assert result == 1
        assert "Item not found" in capsys.readouterr().out

    def test_vendor_add_with_currency(self, db_path, capsys):
        result = _run(
            db_path, "vendor", "add", "Globex", "--currency", "eur", "--tax-number", "EU-1"
        )

        assert result == 0
        out = capsys.readouterr().out
        assert "Currency: EUR" in out
        assert "Tax ID: EU-1" in out

    def test_customer_add_invalid_currency(self, db_path, capsys):
        assert _run(db_path, "customer", "add", "Acme", "--currency", "XXX") == 1
        assert "Invalid currency" in capsys.readouterr().out

    def test_customer_assign_unknown_customer(self, db_path, capsys):
        _run(db_path, "tax", "seed")
        vat = _rule_id(db_path, "VAT 10%")
        capsys.readouterr()

        result = _run(
            db_path, "customer", "assign",
            "--customer-id", "00000000-0000-0000-0000-000000000002",
            "--taxes", vat,
        )

        assert result == 1
        assert "Customer not found" in capsys.readouterr().out

    def test_rate_add(self, db_path, capsys):
        result = _run(
            db_path, "rate", "add", "--from", "EUR", "--to", "USD",
            "--rate", "1.10", "--date", "2026-03-01",
        )

        assert result == 0
        assert "EUR/USD = 1.10" in capsys.readouterr().out


class TestOrderCommands:
    @pytest.fixture
    def lines_file(self, db_path, tmp_path):
        _run(db_path, "tax", "seed")
        _run(db_path, "item", "add", "Widget")
        item_id = _only_item_id(db_path)
        _run(
            db_path, "item", "assign", "--item-id", item_id,
            "--sales", _rule_id(db_path, "VAT 10%"),
        )
        path = tmp_path / "lines.json"
        path.write_text(
            json.dumps(
                [
                    {"item_id": item_id, "unit_price": "100", "quantity": "2"},
                    {"unit_price": "50", "description": "Handling"},
                ]
            ),
            encoding="utf-8",
        )
        return path

    def test_calculate_preview(self, db_path, lines_file, capsys):
        capsys.readouterr()

        assert _run(db_path, "calculate", str(lines_file)) == 0
        out = capsys.readouterr().out
        assert "VAT 10%: 20.00 on 200.00" in out
        assert "Order total:    270.00" in out

        db = SQLiteDatabase(str(db_path))
        assert db.get_connection().execute("SELECT COUNT(*) FROM orders").fetchone()[0] == 0
        db.close()

    def test_calculate_json(self, db_path, lines_file, capsys):
        capsys.readouterr()

        assert _run(db_path, "calculate", str(lines_file), "--json") == 0
        out = capsys.readouterr().out
        payload = json.loads(out)
        assert Decimal(payload["order_tax_amount"]) == Decimal("20")
        assert payload["tax_summary"][0]["tax_name"] == "VAT 10%"

    def test_calculate_rejects_negative_price(self, db_path, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([{"unit_price": "-1"}]), encoding="utf-8")

        assert _run(db_path, "calculate", str(path)) == 1
        assert "Error" in capsys.readouterr().out

    def test_calculate_missing_file(self, db_path, tmp_path, capsys):
        assert _run(db_path, "calculate", str(tmp_path / "nope.json")) == 1
        assert "File not found" in capsys.readouterr().out

    def test_order_create_and_show(self, db_path, lines_file, capsys):
        capsys.readouterr()

        result = _run(db_path, "order", "create", str(lines_file), "--date", "2026-03-01")

        assert result == 0
        assert "Total: 270.00" in capsys.readouterr().out

        db = SQLiteDatabase(str(db_path))
        order_id = db.get_connection().execute("SELECT id FROM orders").fetchone()[0]
        order = SQLiteOrderRepository(db).get(order_id)
        db.close()
        assert len(order.lines) == 2

        assert _run(db_path, "order", "show", "--order-id", order_id) == 0
        out = capsys.readouterr().out
        assert "Tax breakdown:" in out
        assert "VAT 10%: base 200.00" in out

    def test_show_unknown_order(self, db_path, capsys):
        result = _run(
            db_path, "order", "show", "--order-id", "00000000-0000-0000-0000-000000000003"
        )

        assert result == 1
        assert "Order not found" in capsys.readouterr().out
