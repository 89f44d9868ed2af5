"""Tests for PatronManager."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from circulation.exceptions import InvalidStateError, NotFoundError
from circulation.patrons.schemas import (
    EmployeeCreate,
    PatronCreate,
    PatronResponse,
    PatronStatus,
    PatronUpdate,
)


class TestPatronManagement:
    """Tests for patron records."""

    def test_create_patron(self, patron):
        assert patron.id is not None
        assert patron.name == "Maria Silva"
        assert patron.status == PatronStatus.ACTIVE.value
        assert not patron.blocked

    def test_duplicate_document(self, patrons, patron):
        """Test that a document number is registered only once."""
        with pytest.raises(InvalidStateError):
            patrons.create_patron(
                PatronCreate(name="Someone Else", document=patron.document, email="x@example.com")
            )

    @pytest.mark.parametrize("document", ["123", "1234567890a", "123456789012"])
    def test_document_must_be_eleven_digits(self, document):
        with pytest.raises(ValidationError):
            PatronCreate(name="Bad Document", document=document, email="bad@example.com")

    def test_email_is_validated(self):
        with pytest.raises(ValidationError):
            PatronCreate(name="Bad Email", document="12345678901", email="not-an-email")

    def test_get_patron(self, patrons, patron):
        found = patrons.get_patron(patron.id)
        assert found.email == "maria@example.com"

    def test_get_patron_not_found(self, patrons):
        assert patrons.get_patron("no-such-patron") is None

    def test_get_patron_by_document(self, patrons, patron):
        assert patrons.get_patron_by_document("12345678901").id == patron.id

    def test_list_patrons(self, patrons, patron, other_patron):
        names = [p.name for p in patrons.list_patrons()]
        assert names == ["Joao Souza", "Maria Silva"]

    def test_list_patrons_by_status(self, patrons, patron, other_patron):
        patrons.set_blocked(other_patron.id, True)
        blocked = patrons.list_patrons(status=PatronStatus.BLOCKED)
        assert [p.id for p in blocked] == [other_patron.id]

    def test_update_patron(self, patrons, patron):
        updated = patrons.update_patron(patron.id, PatronUpdate(email="maria.silva@example.com"))

        assert updated.email == "maria.silva@example.com"
        assert updated.name == patron.name

    def test_update_patron_not_found(self, patrons):
        assert patrons.update_patron("no-such-patron", PatronUpdate(name="Nobody")) is None

    def test_response_schema(self, patron):
        response = PatronResponse.model_validate(patron)
        assert response.status == PatronStatus.ACTIVE
        assert response.blocked is False


class TestStanding:
    """Tests for blocking and loan history lookups."""

    def test_block_and_unblock(self, patrons, patron):
        blocked = patrons.set_blocked(patron.id, True)
        assert blocked.blocked
        assert blocked.status == PatronStatus.BLOCKED.value

        unblocked = patrons.set_blocked(patron.id, False)
        assert unblocked.status == PatronStatus.ACTIVE.value

    def test_block_unknown_patron(self, patrons):
        with pytest.raises(NotFoundError):
            patrons.set_blocked("no-such-patron", True)

    def test_count_active_loans(self, patrons, loans, patron, employee, make_copy, now):
        first = loans.create_loan(patron.id, make_copy(), employee.id, now=now)
        loans.create_loan(patron.id, make_copy(), employee.id, now=now)
        assert patrons.count_active_loans(patron.id) == 2

        loans.return_loan(employee.id, patron.id, first.id, now=now + timedelta(days=1))
        assert patrons.count_active_loans(patron.id) == 1

    def test_history_is_clean_by_default(self, patrons, patron):
        assert not patrons.has_overdue_history(patron.id)
        assert not patrons.has_pending_fines(patron.id)
        assert patrons.count_active_loans(patron.id) == 0

    def test_overdue_history(self, patrons, loans, patron, employee, make_copy, now):
        loan = loans.create_loan(patron.id, make_copy("5.00"), employee.id, now=now)
        loans.return_loan(employee.id, patron.id, loan.id, now=now + timedelta(days=30))

        assert patrons.has_overdue_history(patron.id)
        assert patrons.has_pending_fines(patron.id)


class TestEmployeeManagement:
    """Tests for employee records."""

    def test_create_employee(self, employee):
        assert employee.id is not None
        assert employee.is_active

    def test_duplicate_employee_document(self, patrons, employee):
        with pytest.raises(InvalidStateError):
            patrons.create_employee(
                EmployeeCreate(name="Clone", document=employee.document, email="c@library.org")
            )

    def test_get_employee(self, patrons, employee):
        assert patrons.get_employee(employee.id).name == "Ana Costa"
        assert patrons.get_employee("no-such-employee") is None

    def test_list_employees(self, patrons, employee):
        assert [e.id for e in patrons.list_employees()] == [employee.id]
