from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, OperationalError


class LibraryError(Exception):
    """Base class for every error raised by the circulation core."""

    status_code = 500

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class ValidationError(LibraryError):
    """Bad input shape or range."""

    status_code = 400


class NotFoundError(LibraryError):
    """Title, copy or loan record does not exist."""

    status_code = 404


class ConflictError(LibraryError):
    """Request conflicts with the current state."""

    status_code = 409


class DuplicateError(ConflictError):
    """A uniqueness rule would be violated."""


class SequenceExhaustedError(ConflictError):
    """No identifier prefix is left after ZZ."""


class StorageUnavailableError(LibraryError):
    """Backing store is unreachable; safe to retry."""

    status_code = 503

    def __init__(self, message: str = None, partial=None):
        super().__init__(message)
        # batch result gathered before the fault, if any
        self.partial = partial


@contextmanager
def storage_guard(what: str = "storage"):
    """Translate connectivity failures from SQLAlchemy into StorageUnavailableError."""
    try:
        yield
    except OperationalError as e:
        raise StorageUnavailableError(f"{what} unavailable: {e.orig}") from e
    except DBAPIError as e:
        if e.connection_invalidated:
            raise StorageUnavailableError(f"{what} connection lost") from e
        raise
