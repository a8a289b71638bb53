"""CadenceIQ Exception Hierarchy.

All custom exceptions inherit from CadenceIQError.
None of them is fatal: callers report, correct input, or retry.

Exception Hierarchy:
    CadenceIQError (base)
    ├── ConfigurationError
    ├── ValidationError
    ├── NotFoundError
    ├── DatabaseError
    ├── ImportError_
    ├── SequenceError
    │   └── AlreadyCompletedError
    └── IntegrationError
        ├── ExternalFetchFailure
        └── PaymentError
"""

from typing import Iterable, Optional


class CadenceIQError(Exception):
    """Base exception for all CadenceIQ errors.

    All custom exceptions in CadenceIQ inherit from this class,
    allowing for broad exception handling when needed.
    """

    pass


class ConfigurationError(CadenceIQError):
    """Configuration is invalid or missing.

    Raised when:
        - Required environment variable is missing
        - Path is not writable
        - Credential needed for an operation is absent
    """

    pass


class ValidationError(CadenceIQError):
    """Contact data validation failed.

    Raised when:
        - A required contact field is blank
        - A day bucket or stage label is not recognized

    Attributes:
        missing_fields: Names of the required fields that were blank
    """

    def __init__(self, message: str, missing_fields: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.missing_fields: list[str] = list(missing_fields or [])


class NotFoundError(CadenceIQError):
    """Operation referenced a contact id that does not exist.

    No state change happens when this is raised.
    """

    def __init__(self, contact_id: str):
        super().__init__(f"Contact not found: {contact_id}")
        self.contact_id = contact_id


class DatabaseError(CadenceIQError):
    """Snapshot storage failed.

    Raised when:
        - Database file cannot be opened
        - Snapshot cannot be read or written
        - Stored snapshot is not valid JSON
    """

    pass


class ImportError_(CadenceIQError):
    """Import operation failed.

    Named with underscore to avoid shadowing builtin ImportError.

    Raised when:
        - File cannot be read
        - File format is invalid
        - Parse error occurs
    """

    pass


class SequenceError(CadenceIQError):
    """Outreach sequence operation was rejected."""

    pass


class AlreadyCompletedError(SequenceError):
    """Advance attempted on a contact that finished its sequence.

    Benign: the store is left untouched and the caller just reports it.
    """

    def __init__(self, contact_id: str):
        super().__init__(f"Contact {contact_id} has already completed its sequence")
        self.contact_id = contact_id


class IntegrationError(CadenceIQError):
    """External integration failed.

    Base class for integration-specific errors.
    """

    pass


class ExternalFetchFailure(IntegrationError):
    """Insight fetch failed.

    The message carries the original cause. The contact's
    social profile is left unchanged.
    """

    pass


class PaymentError(IntegrationError):
    """Checkout session could not be created.

    Raised when:
        - Stripe credentials are missing
        - Stripe API call fails
        - Response is missing the checkout URL
    """

    pass
