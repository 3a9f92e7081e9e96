"""Typed errors raised by the leasing services.

Every error carries an HTTP-equivalent ``status_code`` so the web layer can
map it with a single exception handler. A failed operation never leaves a
customer's payments and aggregates half-written: callers run the services
inside ``RecordStore.transaction()``, which rolls back before re-raising.
"""


class LeasingError(Exception):
    """Base class for all service errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LeasingError):
    """A customer, payment or document id does not exist."""

    status_code = 404


class InvalidInputError(LeasingError):
    """Bad lease terms or a forbidden field/transition. Do not retry as-is."""

    status_code = 400


class AlreadyInStateError(LeasingError):
    """The requested transition is already applied (e.g. paying a paid installment)."""

    status_code = 409


class PersistenceFailureError(LeasingError):
    """The record store aborted the transaction. Safe to retry the whole operation."""

    status_code = 503
