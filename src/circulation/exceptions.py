"""Domain exceptions for circulation operations.

Every rule the lifecycle engine enforces surfaces as one of these. They are
expected outcomes, carry a stable ``code`` for front ends, and are independent
of how the caller is reached (CLI, HTTP, tests).
"""

from typing import Optional


class CirculationError(Exception):
    """Base exception for all circulation errors."""

    code = "circulation_error"

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(CirculationError):
    """Raised when a referenced entity does not exist."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"{entity} not found: {entity_id}",
            details={"entity": entity, "id": entity_id},
        )


class InvalidStateError(CirculationError):
    """Raised when an object is not in a state valid for the operation."""

    code = "invalid_state"


class LimitExceededError(CirculationError):
    """Raised when a patron is at their open-loan limit."""

    code = "limit_exceeded"

    def __init__(self, patron_id: str, limit: int, message: Optional[str] = None):
        super().__init__(
            message or f"Patron {patron_id} reached the limit of {limit} active loans",
            details={"patron_id": patron_id, "limit": limit},
        )


class PolicyViolationError(CirculationError):
    """Raised when lending policy forbids the operation (blocked, late history)."""

    code = "policy_violation"


class AlreadyReturnedError(CirculationError):
    """Raised when acting on a loan that has already been closed."""

    code = "already_returned"

    def __init__(self, loan_id: str):
        super().__init__(f"Loan {loan_id} was already returned", details={"loan_id": loan_id})


class AlreadyPaidError(CirculationError):
    """Raised when settling a fine that is no longer pending."""

    code = "already_paid"

    def __init__(self, fine_id: str):
        super().__init__(f"Fine {fine_id} was already paid", details={"fine_id": fine_id})


class UnauthorizedError(CirculationError):
    """Raised when the acting party may not perform the operation."""

    code = "unauthorized"
