"""Table metadata models and declared-type normalization.

``build_schema`` turns engine rows of the DESCRIBE shape
(``Field, Type, Null, Key, Default, Extra``) into a :class:`TableSchema`.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field

from rowgate.exceptions import SchemaError

_CHAR = re.compile(r"^((?:var)?char)\((\d+)\)")
_DECIMAL = re.compile(r"^(decimal|float)\((\d+),\s*(\d+)\)")
_INTEGER = re.compile(r"^((?:big|medium|small|tiny)?int)\((\d+)\)")


class ColumnMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    table: str
    name: str
    position: int = Field(ge=1, description="1-based declaration ordinal.")
    data_type: str
    declared_type: str
    nullable: bool = True
    default: Any = None
    length: int | None = None
    precision: int | None = None
    scale: int | None = None
    unsigned: bool = False
    primary: bool = False
    primary_position: int | None = Field(
        default=None, description="1-based ordinal within the primary key."
    )
    identity: bool = False


class TableSchema(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    columns: dict[str, ColumnMetadata]
    primary_key: tuple[str, ...] = ()
    identity_index: int | None = Field(
        default=None, description="0-based index of the identity column in primary_key."
    )

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(self.columns)

    @property
    def identity(self) -> str | None:
        if self.identity_index is None:
            return None
        return self.primary_key[self.identity_index]


def parse_declared_type(declared: str) -> dict[str, Any]:
    """Normalize an engine type string.

    >>> parse_declared_type("decimal(10,2)")["precision"]
    10
    """
    lowered = declared.strip().lower()
    info: dict[str, Any] = {
        "data_type": lowered,
        "length": None,
        "precision": None,
        "scale": None,
        "unsigned": "unsigned" in lowered,
    }

    if m := _CHAR.match(lowered):
        info["data_type"] = m.group(1)
        info["length"] = int(m.group(2))
    elif m := _DECIMAL.match(lowered):
        info["data_type"] = m.group(1)
        info["precision"] = int(m.group(2))
        info["scale"] = int(m.group(3))
    elif m := _INTEGER.match(lowered):
        info["data_type"] = m.group(1)
    else:
        base = lowered.split("(", 1)[0]
        base = base.replace("unsigned", "").replace("zerofill", "")
        info["data_type"] = base.strip() or lowered
    return info


def build_schema(table: str, rows: Iterable[Mapping[str, Any]]) -> TableSchema:
    columns: dict[str, ColumnMetadata] = {}
    primary_key: list[str] = []
    identities: list[int] = []

    for position, row in enumerate(rows, start=1):
        declared = str(row["Type"])
        is_primary = str(row.get("Key") or "").upper() == "PRI"
        is_identity = is_primary and "auto_increment" in str(row.get("Extra") or "").lower()

        if is_primary:
            primary_key.append(row["Field"])
            if is_identity:
                identities.append(len(primary_key) - 1)

        columns[row["Field"]] = ColumnMetadata(
            table=table,
            name=row["Field"],
            position=position,
            declared_type=declared,
            nullable=str(row.get("Null") or "").upper() == "YES",
            default=row.get("Default"),
            primary=is_primary,
            primary_position=len(primary_key) if is_primary else None,
            identity=is_identity,
            **parse_declared_type(declared),
        )

    if not columns:
        raise SchemaError(table, f"Unable to describe table '{table}': no columns returned")

    return TableSchema(
        name=table,
        columns=columns,
        primary_key=tuple(primary_key),
        identity_index=identities[0] if len(identities) == 1 else None,
    )
