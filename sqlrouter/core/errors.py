"""
Error taxonomy for the router.

ConfigError and a BindError on the default table stop the process at
startup. Every other BindError and every RecordFormatError only degrades
functionality. BatchImportError is left to the caller's retry policy.
"""


class SQLRouterError(Exception):
    """Base class for all router errors."""


class ConfigError(SQLRouterError):
    """Raised when the output configuration is invalid."""


class TableNotFoundError(SQLRouterError, LookupError):
    """Raised by the schema catalog when a table does not exist."""

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"Table '{table}' does not exist")


class BindError(SQLRouterError):
    """Raised when a table cannot be bound to the destination schema."""

    def __init__(self, table: str, cause: BaseException):
        self.table = table
        self.cause = cause
        super().__init__(f"Can't bind '{table}' table: {cause}")


class RecordFormatError(SQLRouterError):
    """Raised when a single record cannot become a valid row."""

    def __init__(self, column: str, message: str):
        self.column = column
        self.message = message
        super().__init__(f"{column}: {message}")


class BatchImportError(SQLRouterError):
    """Raised when the bulk insert for a batch fails."""

    def __init__(self, table: str, cause: BaseException):
        self.table = table
        self.cause = cause
        super().__init__(f"Bulk insert into '{table}' failed: {cause}")
