class LedgerError(Exception):
    """Base class for errors that terminate a single ledger operation."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError, ValueError):
    """Malformed, missing or out-of-range input.

    ``fields`` maps each offending field to a short reason.
    """

    def __init__(self, fields: dict[str, str], message: str | None = None):
        self.fields = dict(fields)
        if message is None:
            message = "; ".join(f"{name}: {reason}" for name, reason in self.fields.items())
        super().__init__(message)


class AuthenticationError(LedgerError):
    pass


class AuthorizationError(LedgerError):
    pass


class NotFoundError(LedgerError):
    pass
