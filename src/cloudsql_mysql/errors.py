"""Errors raised by resource operations.

None of them are retried: each is terminal for the operation it was raised in.
"""


class ProviderError(Exception):
    """Base class of all errors raised by cloudsql_mysql."""


class StructuralValidationError(ProviderError, ValueError):
    """The resource definition is invalid. Raised before any SQL is issued."""


class ConfigurationError(ProviderError):
    """The provider settings are missing or invalid."""


class ConnectionFailedError(ProviderError):
    """A connection to the instance could not be opened or was lost."""


class NotFoundError(ProviderError):
    """An expected grant row, role, audit rule or database does not exist."""


class OperationCancelledError(ProviderError):
    """The operation's context was cancelled or its deadline passed."""


class ExecutionError(ProviderError):
    """A statement was rejected by the database engine."""

    def __init__(self, statement: str, detail: str, code: int | None = None):
        super().__init__(f'Error executing "{statement}": {detail}')
        self.statement = statement
        self.detail = detail
        self.code = code


class ProtocolOutcomeError(ProviderError):
    """An audit rule stored procedure reported failure through its session output."""

    def __init__(self, procedure: str, status: int, message: str | None):
        super().__init__(f'{procedure} failed with status {status}: {message}')
        self.procedure = procedure
        self.status = status
        self.message = message


class CorrelationError(ProviderError):
    """A newly created audit rule could not be found when listing audit rules."""
