# app/core/exceptions.py


class PersistenceError(Exception):
    """Base class for failures reported by the hosted database."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code


class NotFoundError(PersistenceError):
    """Lookup, update or delete of a record that does not exist."""


class ConflictError(PersistenceError):
    """A unique column (e.g. affiliates.referral_code) already holds the value."""


class PersistenceUnavailableError(PersistenceError):
    """Network failure, timeout or a 5xx answer from the database service."""
