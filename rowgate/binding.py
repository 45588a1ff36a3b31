"""Parameter binding helpers.

Statements are always built with ``?`` placeholders.  Before execution the
placeholders are rewritten for the connection's DB-API ``paramstyle`` and each
parameter is coerced to the bind kind inferred from its runtime type.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Any, Iterable, Sequence

from rowgate.exceptions import StatementError
from rowgate.types import BindKind

SUPPORTED_PARAMSTYLES = ("qmark", "format", "pyformat", "numeric", "named")

_PLACEHOLDER = re.compile(r"\?")


def infer_bind_kind(value: Any) -> BindKind:
    """Classify *value* purely by its runtime type."""
    if isinstance(value, (bool, int)):
        return BindKind.INTEGER
    if isinstance(value, float):
        return BindKind.FLOAT
    return BindKind.TEXT


def coerce(value: Any, kind: BindKind) -> Any:
    if value is None:
        return None
    if kind is BindKind.INTEGER:
        return int(value)
    if kind is BindKind.FLOAT:
        return float(value)
    if isinstance(value, (str, bytes, bytearray, memoryview)):
        return value
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def bind_params(params: Iterable[Any]) -> tuple[tuple[Any, ...], str]:
    """Coerce every parameter of one statement at once.

    Returns the coerced values and the bind signature (e.g. ``"iss"``).
    """
    kinds: list[BindKind] = []
    values: list[Any] = []
    for value in params:
        kind = infer_bind_kind(value)
        kinds.append(kind)
        values.append(coerce(value, kind))
    return tuple(values), "".join(k.value for k in kinds)


def adapt_placeholders(
    sql: str,
    params: Sequence[Any],
    paramstyle: str,
    *,
    escape_percent: bool = True,
) -> tuple[str, Sequence[Any] | dict[str, Any]]:
    """Rewrite ``?`` placeholders in *sql* for *paramstyle*.

    With ``format``/``pyformat`` a literal ``%`` is doubled when the driver
    interpolates with Python's ``%`` operator (pymysql, psycopg).  Pass
    ``escape_percent=False`` for drivers that only substitute ``%s`` and send
    everything else verbatim, such as mysql-connector.
    """
    if paramstyle not in SUPPORTED_PARAMSTYLES:
        raise StatementError(sql, f"unsupported paramstyle '{paramstyle}'")
    if paramstyle == "qmark" or not params:
        return sql, params
    if paramstyle in ("format", "pyformat"):
        if escape_percent:
            sql = sql.replace("%", "%%")
        return _PLACEHOLDER.sub("%s", sql), params
    if paramstyle == "numeric":
        counter = iter(range(1, len(params) + 1))
        return _PLACEHOLDER.sub(lambda _m: f":{next(counter, 0)}", sql), params
    # named
    counter = iter(range(1, len(params) + 1))
    named_sql = _PLACEHOLDER.sub(lambda _m: f":p{next(counter, 0)}", sql)
    return named_sql, {f"p{i}": v for i, v in enumerate(params, start=1)}
