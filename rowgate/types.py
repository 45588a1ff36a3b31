"""Enumerations shared by the driver, table and row layers."""

from __future__ import annotations

from enum import Enum


class Operation(str, Enum):
    """Class of the statement most recently issued by a Driver."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    SELECT = "select"


class FetchMode(str, Enum):
    """Shape in which fetched rows are materialized."""

    NUM = "num"
    """Tuple of values in column order."""

    ASSOC = "assoc"
    """``dict`` of column name to value."""

    ARRAY = "array"
    """``dict`` keyed by both position and column name."""

    OBJECT = "object"
    """``types.SimpleNamespace`` with one attribute per column."""


class BindKind(str, Enum):
    INTEGER = "i"
    FLOAT = "d"
    TEXT = "s"


class RowState(str, Enum):
    NEW = "new"
    CLEAN = "clean"
    DIRTY = "dirty"
    READ_ONLY = "read_only"
    DELETED = "deleted"
