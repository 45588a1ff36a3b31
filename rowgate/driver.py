"""Driver — statement execution and schema discovery over one DB-API session.

Covers:
  - Statement building for INSERT / UPDATE / DELETE / SELECT
  - Raw parameterised queries, classified by leading keyword
  - Fetching rows as tuples, dicts, namespaces or combined dicts
  - Schema discovery (``DESCRIBE`` / ``PRAGMA table_info``)
  - Transactions: begin, commit, rollback

One Driver owns one connection and at most one open statement.  Preparing a
new statement closes the previous cursor, so callers must not interleave
operations on the same Driver.  Blocking calls are synchronous; no locking is
done here.
"""

from __future__ import annotations

import copy
import re
import sqlite3
import sys
import time
from contextlib import contextmanager
from types import ModuleType, SimpleNamespace
from typing import Any, Iterator, Mapping, Sequence

from rowgate.binding import adapt_placeholders, bind_params
from rowgate.exceptions import (
    ConnectionClosedError,
    ExecutionError,
    ProtocolError,
    StatementError,
)
from rowgate.introspection import describe_statement, to_describe_rows
from rowgate.logging import get_logger
from rowgate.schema import TableSchema, build_schema
from rowgate.types import FetchMode, Operation

log = get_logger(__name__)

FieldSpec = Sequence[str] | Mapping[Any, str] | str | None

_LEADING_KEYWORD = re.compile(r"^\s*([a-zA-Z]+)")
_READ_KEYWORDS = frozenset({"select", "describe", "show", "pragma"})

# sqlite3 compiles at execute time and reports these as OperationalError.
_SQLITE_PREPARE_FAILURES = re.compile(
    r"syntax error|incomplete input|unrecognized token|no such (?:table|column|function)",
    re.IGNORECASE,
)

# DB-API modules that send everything but %s to the server verbatim.
_VERBATIM_PERCENT_MODULES = ("mysql.connector",)


class Driver:
    """Executes statements on a DB-API 2.0 connection.

    Args:
        connection: An open DB-API connection (``sqlite3``, ``mysql.connector``,
                    or a SQLAlchemy raw connection).
        dialect:    ``"sqlite"`` or ``"mysql"``; detected for ``sqlite3``
                    connections, ``"mysql"`` otherwise.
        paramstyle: DB-API paramstyle; read from the driver module if omitted.

    Error classes and the paramstyle are taken from the connection's DB-API
    module (``sqlite3``, ``mysql.connector``, ...), falling back to attributes
    of the connection itself.
        fetch_mode: Default row shape for :meth:`fetch_one` / :meth:`fetch_all`.
    """

    def __init__(
        self,
        connection: Any,
        *,
        dialect: str | None = None,
        paramstyle: str | None = None,
        fetch_mode: FetchMode | str = FetchMode.ASSOC,
    ) -> None:
        self._connection: Any = None
        self._dialect = dialect or _detect_dialect(connection)
        self._paramstyle = paramstyle or getattr(_dbapi_module(connection), "paramstyle", "qmark")
        self._fetch_mode = FetchMode(fetch_mode)
        self._cursor: Any = None
        self._columns: list[str] = []
        self._operation: Operation | None = None
        self._last_insert_id: Any = None
        self._in_transaction = False
        self._restore_autocommit = False
        self.connect(connection)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def connect(self, connection: Any = None) -> Driver:
        if not self.is_connected and connection is None:
            raise ConnectionClosedError()
        if not self.is_connected:
            module = _dbapi_module(connection)
            self._connection = connection
            self._errors = _exception_class("Error", Exception, module, connection)
            self._programming_errors = _exception_class("ProgrammingError", (), module, connection)
            self._escape_percent = not (
                module is not None and module.__name__.startswith(_VERBATIM_PERCENT_MODULES)
            )
        return self

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    @property
    def connection(self) -> Any:
        if self._connection is None:
            raise ConnectionClosedError()
        return self._connection

    @property
    def dialect(self) -> str:
        return self._dialect

    @property
    def paramstyle(self) -> str:
        return self._paramstyle

    @property
    def fetch_mode(self) -> FetchMode:
        return self._fetch_mode

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def set_fetch_mode(self, mode: FetchMode | str) -> Driver:
        self._fetch_mode = FetchMode(mode)
        return self

    def close(self) -> None:
        if not self.is_connected:
            return
        self._close_cursor()
        self._connection.close()
        self._connection = None
        self._in_transaction = False
        log.debug("connection_closed", dialect=self._dialect)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def begin(self) -> Driver:
        conn = self.connection
        if getattr(conn, "autocommit", None) is True:
            conn.autocommit = False
            self._restore_autocommit = True
        elif self._dialect == "sqlite" and getattr(conn, "isolation_level", "") is None:
            # Autocommit sqlite3 connections never open transactions implicitly.
            self._run_control("BEGIN", lambda: conn.execute("BEGIN"))
        self._in_transaction = True
        log.debug("transaction_begin", dialect=self._dialect)
        return self

    def commit(self) -> Driver:
        conn = self.connection
        self._run_control("COMMIT", conn.commit)
        self._end_transaction()
        log.debug("transaction_commit", dialect=self._dialect)
        return self

    def rollback(self) -> Driver:
        conn = self.connection
        self._run_control("ROLLBACK", conn.rollback)
        self._end_transaction()
        log.debug("transaction_rollback", dialect=self._dialect)
        return self

    @contextmanager
    def transaction(self) -> Iterator[Driver]:
        """Commit on success, roll back and re-raise on any exception."""
        self.begin()
        try:
            yield self
        except Exception:
            self.rollback()
            raise
        self.commit()

    def _end_transaction(self) -> None:
        self._in_transaction = False
        if self._restore_autocommit:
            self.connection.autocommit = True
            self._restore_autocommit = False

    def _run_control(self, name: str, call: Any) -> None:
        try:
            call()
        except self._errors as exc:
            raise ExecutionError(name, _engine_code(exc), str(exc)) from exc

    # ------------------------------------------------------------------
    # Statement builders
    # ------------------------------------------------------------------

    def insert(self, table: str, fields: Mapping[str, Any]) -> int:
        cols = list(fields)
        sql = (
            f"INSERT INTO {table}({', '.join(cols)})"
            f" VALUES ({', '.join('?' for _ in cols)})"
        )
        self._execute(sql, list(fields.values()), Operation.INSERT)
        return self._affected()

    def update(
        self,
        table: str,
        fields: Mapping[str, Any],
        where: str,
        where_params: Sequence[Any] = (),
    ) -> int:
        assignments = ", ".join(f"{col}=?" for col in fields)
        sql = f"UPDATE {table} SET {assignments} WHERE {where}"
        params = [*fields.values(), *where_params]
        self._execute(sql, params, Operation.UPDATE)
        return self._affected()

    def delete(self, table: str, where: str, where_params: Sequence[Any] = ()) -> int:
        sql = f"DELETE FROM {table} WHERE {where}"
        self._execute(sql, list(where_params), Operation.DELETE)
        return self._affected()

    def select(
        self,
        table: str,
        order: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
        fields: FieldSpec = None,
    ) -> bool:
        """Run ``SELECT`` on *table*.

        *fields* is a list of column names or a mapping of alias to column;
        string keys render ``col AS alias``.  An offset without a limit skips
        rows and returns everything after them.
        """
        sql = f"SELECT {_render_fields(fields)} FROM {table}"

        if order is not None:
            sql += f" ORDER BY {order}"

        if not limit and offset is not None:
            limit = sys.maxsize

        if limit is not None and int(limit) > 0:
            if offset is None:
                offset = 0
            sql += f" LIMIT {int(limit)} OFFSET {int(offset)}"

        return self._execute(sql, [], Operation.SELECT)

    def query(self, sql: str, params: Sequence[Any] = ()) -> bool:
        """Execute raw *sql*; its leading keyword decides whether fetch is allowed."""
        if not isinstance(sql, str):
            raise StatementError(sql, "SQL must be a string")
        return self._execute(sql, list(params), classify(sql))

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def fetch_one(self, mode: FetchMode | str | None = None) -> Any:
        """Return the next row of the current result, or ``None`` when exhausted."""
        cursor = self._require_result()
        if cursor is None:
            return None
        raw = cursor.fetchone()
        if raw is None:
            self._reset(cursor)
            return None
        return _shape(raw, self._columns, FetchMode(mode or self._fetch_mode))

    def fetch_all(self, mode: FetchMode | str | None = None) -> Iterator[Any]:
        """Iterate over the remaining rows once; the cursor is released at the end."""
        cursor = self._require_result()
        if cursor is None:
            return iter(())
        shape_mode = FetchMode(mode or self._fetch_mode)
        columns = list(self._columns)

        def rows() -> Iterator[Any]:
            while (raw := cursor.fetchone()) is not None:
                yield _shape(raw, columns, shape_mode)
            self._reset(cursor)

        return rows()

    def last_insert_id(self) -> Any:
        return self._last_insert_id

    # ------------------------------------------------------------------
    # Schema discovery
    # ------------------------------------------------------------------

    def describe_table(self, table: str) -> TableSchema:
        self.query(describe_statement(self._dialect, table))
        rows = list(self.fetch_all(FetchMode.ASSOC))
        schema = build_schema(table, to_describe_rows(self._dialect, rows))
        log.debug(
            "table_described",
            table=table,
            columns=len(schema.columns),
            primary_key=list(schema.primary_key),
        )
        return schema

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _prepare(self, sql: Any) -> Any:
        if not isinstance(sql, str) or not sql.strip():
            raise StatementError(sql, "SQL must be a non-empty string")
        conn = self.connection
        self._close_cursor()
        try:
            return conn.cursor()
        except self._errors as exc:
            raise StatementError(sql, str(exc)) from exc

    def _execute(self, sql: str, params: Sequence[Any], operation: Operation) -> bool:
        cursor = self._prepare(sql)
        values, signature = bind_params(params)
        statement, bound = adapt_placeholders(
            sql, values, self._paramstyle, escape_percent=self._escape_percent
        )
        self._operation = None

        start = time.monotonic()
        try:
            cursor.execute(statement, bound)
        except self._programming_errors as exc:
            cursor.close()
            log.warning("statement_failed", sql=sql, error=str(exc))
            raise StatementError(sql, str(exc)) from exc
        except (OverflowError, TypeError) as exc:
            # Values the driver cannot bind, e.g. ints wider than 64 bits on sqlite3.
            cursor.close()
            log.warning("statement_failed", sql=sql, binds=signature, error=str(exc))
            raise StatementError(sql, str(exc)) from exc
        except self._errors as exc:
            cursor.close()
            if _rejected_at_prepare(exc):
                log.warning("statement_failed", sql=sql, error=str(exc))
                raise StatementError(sql, str(exc)) from exc
            code = _engine_code(exc)
            log.warning("statement_failed", sql=sql, code=code, error=str(exc))
            raise ExecutionError(sql, code, str(exc)) from exc
        elapsed = time.monotonic() - start

        self._cursor = cursor
        self._operation = operation
        self._columns = [desc[0] for desc in cursor.description or ()]

        if operation is Operation.INSERT:
            self._last_insert_id = getattr(cursor, "lastrowid", None)
        if operation is not Operation.SELECT and not self._in_transaction:
            self._run_control("COMMIT", self.connection.commit)

        log.debug(
            "statement_executed",
            sql=sql,
            operation=operation.value,
            binds=signature,
            rowcount=cursor.rowcount,
            elapsed_ms=round(elapsed * 1000, 2),
        )
        return True

    def _affected(self) -> int:
        rowcount = getattr(self._cursor, "rowcount", -1)
        return rowcount if rowcount >= 0 else 0

    def _require_result(self) -> Any:
        if self._operation is not Operation.SELECT:
            raise ProtocolError(
                "Fetch can only be used after a SELECT-class statement",
                context={"operation": self._operation.value if self._operation else None},
            )
        return self._cursor

    def _reset(self, cursor: Any) -> None:
        if cursor is self._cursor:
            self._close_cursor()

    def _close_cursor(self) -> None:
        if self._cursor is not None:
            self._cursor.close()
            self._cursor = None


# ---------------------------------------------------------------------------
# Module helpers
# ---------------------------------------------------------------------------


def classify(sql: str) -> Operation:
    m = _LEADING_KEYWORD.match(sql)
    keyword = m.group(1).lower() if m else ""
    if keyword in _READ_KEYWORDS:
        return Operation.SELECT
    if keyword == "insert":
        return Operation.INSERT
    if keyword == "update":
        return Operation.UPDATE
    return Operation.DELETE


def _render_fields(fields: FieldSpec) -> str:
    if not fields:
        return "*"
    if isinstance(fields, str):
        return fields
    if isinstance(fields, Mapping):
        return ", ".join(
            f"{col} AS {alias}" if isinstance(alias, str) else col
            for alias, col in fields.items()
        )
    return ", ".join(fields)


def _shape(raw: Any, columns: list[str], mode: FetchMode) -> Any:
    # Copy every value so rows never share buffers with the cursor.
    values = copy.deepcopy(tuple(raw))
    if mode is FetchMode.NUM:
        return values
    if mode is FetchMode.ASSOC:
        return dict(zip(columns, values))
    if mode is FetchMode.OBJECT:
        return SimpleNamespace(**dict(zip(columns, values)))
    row: dict[Any, Any] = dict(enumerate(values))
    row.update(zip(columns, values))
    return row


def _detect_dialect(connection: Any) -> str:
    if isinstance(connection, sqlite3.Connection):
        return "sqlite"
    return "mysql"


def _dbapi_module(connection: Any) -> ModuleType | None:
    """The DB-API module behind *connection*, found by walking up its package.

    SQLAlchemy raw connections are unwrapped to the driver connection first.
    """
    target = getattr(connection, "dbapi_connection", None) or connection
    parts = type(target).__module__.split(".")
    while parts:
        module = sys.modules.get(".".join(parts))
        if isinstance(getattr(module, "paramstyle", None), str):
            return module
        parts.pop()
    return None


def _exception_class(name: str, default: Any, *sources: Any) -> Any:
    for source in sources:
        cls = getattr(source, name, None)
        if isinstance(cls, type) and issubclass(cls, BaseException):
            return cls
    return default


def _rejected_at_prepare(exc: BaseException) -> bool:
    return isinstance(exc, sqlite3.OperationalError) and bool(
        _SQLITE_PREPARE_FAILURES.search(str(exc))
    )


def _engine_code(exc: BaseException) -> Any:
    for attr in ("errno", "sqlite_errorcode", "pgcode"):
        code = getattr(exc, attr, None)
        if code is not None:
            return code
    if exc.args and isinstance(exc.args[0], int):
        return exc.args[0]
    return None
