"""rowgate — Schema-driven table and row gateways over DB-API connections.

Layers (bottom to top):
    1. Driver — statement building, execution, fetching, schema discovery
    2. Table  — per-table gateway with memoized schema and a Row factory
    3. Row    — per-record gateway with dirty tracking and save/delete
"""

__version__ = "0.1.0"

from rowgate.config import Settings, get_settings
from rowgate.connect import open_driver
from rowgate.driver import Driver
from rowgate.exceptions import (
    ArityError,
    ConnectionClosedError,
    DriverError,
    ExecutionError,
    ImmutabilityError,
    MissingKeyError,
    ProtocolError,
    RefreshError,
    RowError,
    RowGateError,
    SchemaError,
    StatementError,
    UnknownColumnError,
)
from rowgate.logging import configure_logging, get_logger
from rowgate.row import Row
from rowgate.schema import ColumnMetadata, TableSchema
from rowgate.table import Table
from rowgate.types import FetchMode, Operation, RowState

__all__ = [
    "__version__",
    "ArityError",
    "ColumnMetadata",
    "ConnectionClosedError",
    "Driver",
    "DriverError",
    "ExecutionError",
    "FetchMode",
    "ImmutabilityError",
    "MissingKeyError",
    "Operation",
    "ProtocolError",
    "RefreshError",
    "Row",
    "RowError",
    "RowGateError",
    "RowState",
    "SchemaError",
    "Settings",
    "StatementError",
    "Table",
    "TableSchema",
    "UnknownColumnError",
    "configure_logging",
    "get_logger",
    "get_settings",
    "open_driver",
]
