"""Table gateway — one object per database table.

The table's schema is discovered through the :class:`~rowgate.driver.Driver`
on first use and memoized for the lifetime of the instance.  CRUD calls are
filtered against the discovered columns before they reach the driver, and
query results are wrapped in :class:`~rowgate.row.Row` objects.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Sequence

from rowgate.exceptions import ArityError, SchemaError
from rowgate.logging import get_logger
from rowgate.row import Row
from rowgate.types import FetchMode

if TYPE_CHECKING:
    from rowgate.driver import Driver, FieldSpec
    from rowgate.schema import TableSchema

log = get_logger(__name__)


class Table:
    """Gateway for the table *name*, executing through *driver*.

    With ``integrity_check`` enabled (the default) every row carries exactly
    the table's columns.  Disable it to build read-only rows from joined or
    aliased result sets.
    """

    def __init__(self, name: str, driver: Driver, *, integrity_check: bool = True) -> None:
        self._name = name
        self._driver = driver
        self._integrity_check = bool(integrity_check)
        self._schema: TableSchema | None = None

    def __repr__(self) -> str:
        return f"Table({self._name!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def driver(self) -> Driver:
        return self._driver

    @property
    def integrity_check(self) -> bool:
        return self._integrity_check

    def set_integrity_check(self, enabled: bool) -> Table:
        self._integrity_check = bool(enabled)
        return self

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def schema(self) -> TableSchema:
        if self._schema is None:
            self._schema = self._driver.describe_table(self._name)
            log.info(
                "schema_discovered",
                table=self._name,
                columns=list(self._schema.columns),
                primary_key=list(self._schema.primary_key),
                identity=self._schema.identity,
            )
        return self._schema

    def columns(self) -> tuple[str, ...]:
        return self.schema().column_names

    def primary_key(self) -> str | tuple[str, ...]:
        """The key column name, or a tuple of names for composite keys."""
        pk = self.schema().primary_key
        return pk[0] if len(pk) == 1 else pk

    def identity(self) -> str | None:
        """The auto-increment key column, or ``None`` for natural keys."""
        return self.schema().identity

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def insert(self, fields: Mapping[str, Any]) -> int:
        return self._driver.insert(self._name, self._known(fields))

    def update(
        self,
        fields: Mapping[str, Any],
        cond: str,
        cond_params: Sequence[Any] = (),
    ) -> int:
        return self._driver.update(self._name, self._known(fields), cond, cond_params)

    def delete(self, cond: str, cond_params: Sequence[Any] = ()) -> int:
        return self._driver.delete(self._name, cond, cond_params)

    def get_by_id(self, id: Any) -> Row | None:
        """Fetch one row by primary key.

        *id* may be a scalar for single-column keys, or for composite keys
        either a sequence in key order or a mapping by column name::

            table.get_by_id((1, "foo"))
            table.get_by_id({"campo2": "foo", "campo1": 1})
        """
        pk = self.schema().primary_key

        if isinstance(id, Mapping):
            supplied: Sequence[Any] | Mapping[str, Any] = id
        elif isinstance(id, Sequence) and not isinstance(id, (str, bytes, bytearray)):
            supplied = tuple(id)
        else:
            supplied = (id,)

        if len(supplied) != len(pk):
            raise ArityError(self._name, expected=len(pk), supplied=len(supplied))

        if isinstance(supplied, Mapping):
            missing = [col for col in pk if col not in supplied]
            if missing:
                raise SchemaError(
                    self._name,
                    f"Table '{self._name}' has primary key ({', '.join(pk)}); "
                    f"supplied fields were ({', '.join(map(str, supplied))})",
                    expected=list(pk),
                    supplied=list(supplied),
                )
            values = [supplied[col] for col in pk]
        else:
            values = list(supplied)

        where = " AND ".join(f"{col}=?" for col in pk)
        self._driver.query(f"SELECT * FROM {self._name} WHERE {where}", values)
        data = self._driver.fetch_one(FetchMode.ASSOC)
        if data is None:
            return None
        return self._create_row(data, stored=True)

    def get_all(
        self,
        fields: FieldSpec = None,
        order: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Row]:
        """Select rows, optionally restricted to *fields*.

        Rows built from a subset of the columns (or from aliases) are
        read-only because they lack the data a correct update needs.
        """
        previous = self._integrity_check
        if not fields or (isinstance(fields, str) and fields.strip() == "*"):
            fields = list(self.columns())
        elif set(self.columns()) - set(_result_names(fields)):
            self._integrity_check = False

        try:
            self._driver.select(self._name, order, limit, offset, fields)
            return [
                self._create_row(data, stored=True)
                for data in self._driver.fetch_all(FetchMode.ASSOC)
            ]
        finally:
            self._integrity_check = previous

    def create_row(self, fields: Mapping[str, Any] | None = None) -> Row:
        """Build a new, unstored row; every field starts dirty."""
        return self._create_row(dict(fields or {}), stored=False)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _create_row(self, data: Mapping[str, Any], stored: bool) -> Row:
        if not self._integrity_check and data:
            return Row(self, dict(data), stored=stored, read_only=True)

        row_data = {col: data.get(col) for col in self.columns()}
        return Row(self, row_data, stored=stored, read_only=False)

    def _known(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        columns = self.schema().columns
        return {col: value for col, value in fields.items() if col in columns}


def _result_names(fields: FieldSpec) -> list[str]:
    """Keys the selected rows will carry for *fields*."""
    if isinstance(fields, str):
        return [name.strip() for name in fields.split(",")]
    if isinstance(fields, Mapping):
        return [alias if isinstance(alias, str) else col for alias, col in fields.items()]
    return list(fields or ())
