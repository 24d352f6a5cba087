"""Exceptions raised by projectionguard.

A version conflict is not an exception: compare-and-swap reports it as
``False``. Backend driver errors are never wrapped; they propagate unchanged
so the caller's delivery layer can decide whether to retry.
"""


class ProjectionError(Exception):
    """Base class for errors raised by projectionguard itself."""

    pass


class IncompatibleBackendError(ProjectionError):
    """Raised when a backend connection does not match the expected dialect.

    This is a setup-time failure. Stores check compatibility when they are
    constructed so that no event is processed against the wrong backend.
    """

    pass


class ProtectedFieldModifiedError(ProjectionError):
    """Raised when a request decorator alters a field used by compare-and-swap.

    Decorators may only add out-of-band request options (consumed capacity
    reporting, timeouts, tracing metadata). The table, key, condition and the
    position of the version item in a transaction are owned by the store.
    """

    def __init__(self, operation: str, field: str):
        super().__init__(
            f"Request decorator for {operation} must not modify protected field '{field}'"
        )
        self.operation = operation
        self.field = field
