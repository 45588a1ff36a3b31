"""rowgate — Exception hierarchy.

All exceptions raised by rowgate inherit from RowGateError so that callers
can catch the full family with a single except clause when needed.

Hierarchy:
    RowGateError
    ├── DriverError
    │   ├── ConnectionClosedError
    │   ├── StatementError
    │   ├── ExecutionError
    │   └── ProtocolError
    ├── SchemaError
    ├── ArityError
    └── RowError
        ├── UnknownColumnError
        ├── ImmutabilityError
        ├── MissingKeyError
        └── RefreshError
"""

from __future__ import annotations

from typing import Any, Sequence


class RowGateError(Exception):
    """Base exception for all rowgate errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context})"


# ---------------------------------------------------------------------------
# Driver layer
# ---------------------------------------------------------------------------


class DriverError(RowGateError):
    """Base for errors raised while talking to the database session."""


class ConnectionClosedError(DriverError):
    """The driver has no open connection."""

    def __init__(self) -> None:
        super().__init__("Database connection is closed; a connection is required")


class StatementError(DriverError):
    """A statement could not be prepared."""

    def __init__(self, sql: Any, reason: str) -> None:
        super().__init__(
            f"Cannot prepare statement: {reason}",
            context={"sql": sql, "reason": reason},
        )
        self.sql = sql
        self.reason = reason


class ExecutionError(DriverError):
    """The engine rejected a prepared statement at execution time."""

    def __init__(self, sql: str, code: Any, engine_message: str) -> None:
        super().__init__(
            f"Error #{code}: {engine_message}",
            context={"sql": sql, "code": code, "engine_message": engine_message},
        )
        self.sql = sql
        self.code = code
        self.engine_message = engine_message


class ProtocolError(DriverError):
    """A driver method was called out of sequence (e.g. fetch after INSERT)."""


# ---------------------------------------------------------------------------
# Schema / lookup
# ---------------------------------------------------------------------------


class SchemaError(RowGateError):
    """Table metadata is missing or does not match the supplied data."""

    def __init__(self, table: str, message: str, **context: Any) -> None:
        super().__init__(message, context={"table": table, **context})
        self.table = table


class ArityError(RowGateError):
    """The number of key values does not match the primary key."""

    def __init__(self, table: str, expected: int, supplied: int) -> None:
        super().__init__(
            f"Table '{table}' has {expected} column(s) in its primary key; "
            f"{supplied} value(s) were supplied",
            context={"table": table, "expected": expected, "supplied": supplied},
        )
        self.table = table
        self.expected = expected
        self.supplied = supplied


# ---------------------------------------------------------------------------
# Row layer
# ---------------------------------------------------------------------------


class RowError(RowGateError):
    """Base for record-gateway errors."""


class UnknownColumnError(RowError):
    """The column is not part of the row's field set."""

    def __init__(self, column: str, available: Sequence[str]) -> None:
        super().__init__(
            f"Column '{column}' does not exist in this row",
            context={"column": column, "available": list(available)},
        )
        self.column = column


class ImmutabilityError(RowError):
    """The row is read-only or has been deleted."""

    def __init__(self, table: str, operation: str, reason: str = "row is read-only") -> None:
        super().__init__(
            f"Cannot {operation} on a row of '{table}': {reason}",
            context={"table": table, "operation": operation, "reason": reason},
        )
        self.operation = operation


class MissingKeyError(RowError):
    """The row's primary key could not be resolved."""

    def __init__(self, table: str, operation: str, primary_key: Sequence[str]) -> None:
        super().__init__(
            f"Cannot {operation} a row of '{table}' without a primary key "
            f"({', '.join(primary_key) or 'none declared'})",
            context={"table": table, "operation": operation, "primary_key": list(primary_key)},
        )
        self.operation = operation


class RefreshError(RowError):
    """The row could not be read back from the database."""

    def __init__(self, table: str, key: Any) -> None:
        super().__init__(
            f"Could not refresh row of '{table}': no record found for key {key!r}",
            context={"table": table, "key": key},
        )
        self.key = key
