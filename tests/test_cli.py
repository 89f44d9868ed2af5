"""Tests for the CLI interface."""

import json
import os
import tempfile
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path

import pytest
from typer.testing import CliRunner

from circulation.catalog import BookCreate, CatalogManager
from circulation.cli import app, console
from circulation.config import reset_config
from circulation.db.sqlite import get_db, reset_db
from circulation.fines import FineManager
from circulation.loans import LoanManager, LoanStatus
from circulation.patrons import EmployeeCreate, PatronCreate, PatronManager
from circulation.utils import utc_now


def parse_utc(value: str) -> datetime:
    """Parse a JSON timestamp, which pydantic writes with a Z suffix."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@pytest.fixture(autouse=True)
def setup_test_db():
    """Set up a test database for each test."""
    reset_db()
    reset_config()

    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    os.environ["CIRCULATION_DB_PATH"] = db_path

    yield

    # Cleanup
    reset_db()
    reset_config()
    if "CIRCULATION_DB_PATH" in os.environ:
        del os.environ["CIRCULATION_DB_PATH"]
    if Path(db_path).exists():
        Path(db_path).unlink()


@pytest.fixture
def runner(monkeypatch):
    """Create a CLI test runner with a console wide enough for ID columns."""
    monkeypatch.setattr(console, "width", 200)
    return CliRunner()


@pytest.fixture
def ids():
    """A patron, an employee and a copy in the CLI's database."""
    db = get_db()
    patrons = PatronManager(db)
    catalog = CatalogManager(db)

    patron = patrons.create_patron(
        PatronCreate(name="Maria Silva", document="12345678901", email="maria@example.com")
    )
    employee = patrons.create_employee(
        EmployeeCreate(name="Ana Costa", document="55566677788", email="ana@library.org")
    )
    book = catalog.create_book(
        BookCreate(title="Dom Casmurro", author="Machado de Assis", value=Decimal("20.00")),
        copies=1,
    )
    copy = catalog.list_copies(book_id=book.id)[0]
    return {"patron": patron.id, "employee": employee.id, "copy": copy.id, "book": book.id}


class TestCLIBasics:
    """Tests for basic CLI functionality."""

    def test_help(self, runner: CliRunner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Library circulation" in result.stdout

    def test_version(self, runner: CliRunner):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.stdout


class TestPatronCommands:
    """Tests for patron and employee commands."""

    def test_add_patron(self, runner: CliRunner):
        result = runner.invoke(
            app,
            [
                "patron", "add",
                "--name", "Joao Souza",
                "--document", "10987654321",
                "--email", "joao@example.com",
            ],
        )
        assert result.exit_code == 0
        assert "Patron registered" in result.stdout
        assert PatronManager(get_db()).get_patron_by_document("10987654321") is not None

    def test_add_patron_invalid_document(self, runner: CliRunner):
        result = runner.invoke(
            app,
            ["patron", "add", "--name", "X", "--document", "123", "--email", "x@example.com"],
        )
        assert result.exit_code == 1
        assert "Error" in result.stdout

    def test_add_duplicate_patron(self, runner: CliRunner, ids):
        result = runner.invoke(
            app,
            [
                "patron", "add",
                "--name", "Copycat",
                "--document", "12345678901",
                "--email", "copy@example.com",
            ],
        )
        assert result.exit_code == 1
        assert "already exists" in result.stdout

    def test_list_patrons(self, runner: CliRunner, ids):
        result = runner.invoke(app, ["patron", "list"])
        assert result.exit_code == 0
        assert "Maria Silva" in result.stdout

    def test_show_patron(self, runner: CliRunner, ids):
        result = runner.invoke(app, ["patron", "show", ids["patron"]])
        assert result.exit_code == 0
        assert "Open loans: 0" in result.stdout

    def test_show_unknown_patron(self, runner: CliRunner):
        result = runner.invoke(app, ["patron", "show", "no-such-patron"])
        assert result.exit_code == 1

    def test_unblock(self, runner: CliRunner, ids):
        PatronManager(get_db()).set_blocked(ids["patron"], True)
        result = runner.invoke(app, ["patron", "unblock", ids["patron"]])
        assert result.exit_code == 0
        assert not PatronManager(get_db()).get_patron(ids["patron"]).blocked

    def test_add_employee(self, runner: CliRunner):
        result = runner.invoke(
            app,
            [
                "employee", "add",
                "--name", "Pedro Lima",
                "--document", "11122233344",
                "--email", "pedro@library.org",
            ],
        )
        assert result.exit_code == 0
        assert "Employee registered" in result.stdout


class TestCatalogCommands:
    """Tests for book and copy commands."""

    def test_add_book(self, runner: CliRunner):
        result = runner.invoke(
            app,
            ["book", "add", "--title", "Iracema", "--author", "Jose de Alencar", "--value", "12.50", "--copies", "2"],
        )
        assert result.exit_code == 0
        assert "Added: Iracema" in result.stdout

        result = runner.invoke(app, ["book", "list"])
        assert "Iracema" in result.stdout

    def test_add_book_invalid_value(self, runner: CliRunner):
        result = runner.invoke(
            app, ["book", "add", "--title", "Free", "--author", "Nobody", "--value", "0"]
        )
        assert result.exit_code == 1

    def test_add_copies(self, runner: CliRunner, ids):
        result = runner.invoke(app, ["copy", "add", ids["book"], "--count", "2"])
        assert result.exit_code == 0
        assert len(CatalogManager(get_db()).list_copies(book_id=ids["book"])) == 3

    def test_add_copies_unknown_book(self, runner: CliRunner):
        result = runner.invoke(app, ["copy", "add", "no-such-book"])
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_mark_copy_damaged(self, runner: CliRunner, ids):
        result = runner.invoke(app, ["copy", "status", ids["copy"], "damaged"])
        assert result.exit_code == 0
        assert CatalogManager(get_db()).get_copy(ids["copy"]).status == "damaged"

    def test_cannot_mark_copy_loaned(self, runner: CliRunner, ids):
        result = runner.invoke(app, ["copy", "status", ids["copy"], "loaned"])
        assert result.exit_code == 1


class TestLoanCommands:
    """Tests for loan commands."""

    def test_create_loan(self, runner: CliRunner, ids):
        result = runner.invoke(
            app,
            ["loan", "create", "--patron", ids["patron"], "--copy", ids["copy"], "--employee", ids["employee"]],
        )
        assert result.exit_code == 0
        assert "Loan created" in result.stdout
        assert len(LoanManager(get_db()).list_loans(open_only=True)) == 1

    def test_create_loan_blocked_patron(self, runner: CliRunner, ids):
        PatronManager(get_db()).set_blocked(ids["patron"], True)
        result = runner.invoke(
            app,
            ["loan", "create", "--patron", ids["patron"], "--copy", ids["copy"], "--employee", ids["employee"]],
        )
        assert result.exit_code == 1
        assert "blocked" in result.stdout

    def test_renew_and_return(self, runner: CliRunner, ids):
        loan = LoanManager(get_db()).create_loan(ids["patron"], ids["copy"], ids["employee"])

        result = runner.invoke(app, ["loan", "renew", loan.id, "--employee", ids["employee"]])
        assert result.exit_code == 0
        assert "renewed" in result.stdout

        result = runner.invoke(
            app, ["loan", "return", loan.id, "--patron", ids["patron"], "--employee", ids["employee"]]
        )
        assert result.exit_code == 0
        assert LoanManager(get_db()).get_loan(loan.id).status == LoanStatus.RETURNED.value

        result = runner.invoke(
            app, ["loan", "return", loan.id, "--patron", ids["patron"], "--employee", ids["employee"]]
        )
        assert result.exit_code == 1
        assert "already returned" in result.stdout

    def test_late_return_reports_fine(self, runner: CliRunner, ids):
        loans = LoanManager(get_db())
        loan = loans.create_loan(
            ids["patron"], ids["copy"], ids["employee"], now=utc_now() - timedelta(days=20)
        )

        result = runner.invoke(
            app, ["loan", "return", loan.id, "--patron", ids["patron"], "--employee", ids["employee"]]
        )
        assert result.exit_code == 0
        assert "Fine of" in result.stdout

    def test_show_and_list(self, runner: CliRunner, ids):
        loan = LoanManager(get_db()).create_loan(ids["patron"], ids["copy"], ids["employee"])

        result = runner.invoke(app, ["loan", "show", loan.id])
        assert result.exit_code == 0
        assert "in_progress" in result.stdout

        result = runner.invoke(app, ["loan", "list", "--open"])
        assert result.exit_code == 0
        assert "Loans" in result.stdout

    def test_overdue(self, runner: CliRunner, ids):
        result = runner.invoke(app, ["loan", "overdue"])
        assert result.exit_code == 0
        assert "No overdue loans" in result.stdout

        LoanManager(get_db()).create_loan(
            ids["patron"], ids["copy"], ids["employee"], now=utc_now() - timedelta(days=20)
        )
        result = runner.invoke(app, ["loan", "overdue"])
        assert result.exit_code == 0
        assert "Maria Silva" in result.stdout


class TestFineCommands:
    """Tests for fine commands."""

    @pytest.fixture
    def fine_id(self, ids):
        loans = LoanManager(get_db())
        loan = loans.create_loan(
            ids["patron"], ids["copy"], ids["employee"], now=utc_now() - timedelta(days=12)
        )
        loans.return_loan(ids["employee"], ids["patron"], loan.id)

        return FineManager(get_db()).get_fine_for_loan(loan.id).id

    def test_list_fines(self, runner: CliRunner, ids, fine_id):
        result = runner.invoke(app, ["fine", "list", "--patron", ids["patron"]])
        assert result.exit_code == 0
        assert "pending" in result.stdout

    def test_pay_fine(self, runner: CliRunner, fine_id):
        result = runner.invoke(app, ["fine", "pay", fine_id])
        assert result.exit_code == 0
        assert "paid" in result.stdout

        result = runner.invoke(app, ["fine", "pay", fine_id])
        assert result.exit_code == 1
        assert "already paid" in result.stdout

    def test_cancel_fine(self, runner: CliRunner, fine_id):
        result = runner.invoke(app, ["fine", "cancel", fine_id])
        assert result.exit_code == 0
        assert "cancelled" in result.stdout

    def test_add_fine_to_open_loan(self, runner: CliRunner, ids):
        loan = LoanManager(get_db()).create_loan(ids["patron"], ids["copy"], ids["employee"])
        result = runner.invoke(app, ["fine", "add", loan.id, "--days", "3"])
        assert result.exit_code == 1


class TestJSONOutput:
    """Tests for --json output."""

    def test_patron_show_json(self, runner: CliRunner, ids):
        result = runner.invoke(app, ["patron", "show", ids["patron"], "--json"])
        assert result.exit_code == 0

        data = json.loads(result.stdout)
        assert data["id"] == ids["patron"]
        assert data["document"] == "12345678901"
        assert data["status"] == "active"
        assert data["blocked"] is False

    def test_employee_list_json(self, runner: CliRunner, ids):
        result = runner.invoke(app, ["employee", "list", "-j"])
        assert result.exit_code == 0

        data = json.loads(result.stdout)
        assert [e["id"] for e in data] == [ids["employee"]]
        assert data[0]["status"] == "active"

    def test_book_and_copy_list_json(self, runner: CliRunner, ids):
        result = runner.invoke(app, ["book", "list", "--json"])
        assert result.exit_code == 0
        books = json.loads(result.stdout)
        assert books[0]["id"] == ids["book"]
        assert books[0]["title"] == "Dom Casmurro"
        assert Decimal(books[0]["value"]) == Decimal("20.00")

        result = runner.invoke(app, ["copy", "list", "--book", ids["book"], "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == [
            {"id": ids["copy"], "book_id": ids["book"], "status": "available"}
        ]

    def test_loan_show_json_includes_renewals(self, runner: CliRunner, ids):
        loans = LoanManager(get_db())
        loan = loans.create_loan(ids["patron"], ids["copy"], ids["employee"])
        renewed = loans.renew_loan(loan.id, ids["employee"])

        result = runner.invoke(app, ["loan", "show", loan.id, "--json"])
        assert result.exit_code == 0

        data = json.loads(result.stdout)
        assert data["id"] == loan.id
        assert data["status"] == "renewed"
        assert data["return_date"] is None
        assert data["renewal_count"] == 1
        assert data["is_overdue"] is False
        assert len(data["renewals"]) == 1
        renewal = data["renewals"][0]
        assert renewal["loan_id"] == loan.id
        assert parse_utc(renewal["previous_due_date"]) == loan.due_at
        assert parse_utc(renewal["new_due_date"]) == renewed.due_at == parse_utc(data["due_date"])

    def test_loan_list_json(self, runner: CliRunner, ids):
        loan = LoanManager(get_db()).create_loan(ids["patron"], ids["copy"], ids["employee"])

        result = runner.invoke(app, ["loan", "list", "--open", "--json"])
        assert result.exit_code == 0

        data = json.loads(result.stdout)
        assert [item["id"] for item in data] == [loan.id]
        assert data[0]["status"] == "in_progress"

    def test_fine_list_json(self, runner: CliRunner, ids):
        loans = LoanManager(get_db())
        loan = loans.create_loan(
            ids["patron"], ids["copy"], ids["employee"], now=utc_now() - timedelta(days=20)
        )
        loans.return_loan(ids["employee"], ids["patron"], loan.id)

        result = runner.invoke(app, ["fine", "list", "--patron", ids["patron"], "--json"])
        assert result.exit_code == 0

        data = json.loads(result.stdout)
        assert len(data) == 1
        assert data[0]["loan_id"] == loan.id
        assert data[0]["status"] == "pending"
        assert data[0]["end_date"] is None
        assert Decimal(data[0]["value"]) > 0

    def test_empty_list_json(self, runner: CliRunner):
        result = runner.invoke(app, ["fine", "list", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == []


class TestConfigValidation:
    """Tests for configuration checks at startup."""

    def test_invalid_config_exits(self, runner: CliRunner, monkeypatch):
        monkeypatch.setenv("CIRCULATION_MAX_ACTIVE_LOANS", "0")
        reset_config()

        result = runner.invoke(app, ["patron", "list"])
        assert result.exit_code == 1
        assert "max_active_loans must be positive" in result.stdout

    def test_every_error_reported(self, runner: CliRunner, monkeypatch):
        monkeypatch.setenv("CIRCULATION_RENEWAL_DAYS", "0")
        monkeypatch.setenv("CIRCULATION_DAILY_FINE_RATE", "-1")
        reset_config()

        result = runner.invoke(app, ["version"])
        assert result.exit_code == 1
        assert "renewal_days must be positive" in result.stdout
        assert "daily_fine_rate must not be negative" in result.stdout
