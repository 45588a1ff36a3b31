"""Schema discovery queries per dialect.

Every dialect yields rows of the MySQL ``DESCRIBE`` shape so that
:func:`rowgate.schema.build_schema` only has to understand one format.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from rowgate.exceptions import SchemaError

SUPPORTED_DIALECTS = ("mysql", "mariadb", "sqlite")


def describe_statement(dialect: str, table: str) -> str:
    if dialect in ("mysql", "mariadb"):
        return f"DESCRIBE `{table.replace('`', '``')}`"
    if dialect == "sqlite":
        return f'PRAGMA table_info("{table.replace(chr(34), chr(34) * 2)}")'
    raise SchemaError(
        table,
        f"Schema discovery is not supported for dialect '{dialect}'",
        dialect=dialect,
        supported=list(SUPPORTED_DIALECTS),
    )


def to_describe_rows(dialect: str, rows: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    if dialect == "sqlite":
        return _sqlite_rows(list(rows))
    return [dict(row) for row in rows]


def _sqlite_rows(rows: list[Mapping[str, Any]]) -> list[dict[str, Any]]:
    pk_count = sum(1 for row in rows if row["pk"])
    described = []
    for row in rows:
        declared = row["type"] or ""
        # A lone INTEGER PRIMARY KEY aliases the rowid and is generated on insert.
        rowid_alias = bool(row["pk"]) and pk_count == 1 and declared.upper() == "INTEGER"
        described.append({
            "Field": row["name"],
            "Type": declared,
            "Null": "NO" if row["notnull"] or rowid_alias else "YES",
            "Key": "PRI" if row["pk"] else "",
            "Default": _unquote(row["dflt_value"]),
            "Extra": "auto_increment" if rowid_alias else "",
        })
    return described


def _unquote(default: Any) -> Any:
    if isinstance(default, str) and len(default) >= 2 and default[0] == default[-1] == "'":
        return default[1:-1].replace("''", "'")
    if isinstance(default, str) and default.upper() == "NULL":
        return None
    return default
