"""Row gateway — one in-memory record of a table.

A row keeps three pieces of state:

- ``data``  — current values, keyed by column, in column order
- ``clean`` — the values last known to be persisted (empty for new rows)
- ``dirty`` — the columns changed since then

``save()`` inserts new rows and updates stored ones with only the dirty
columns, then re-reads the record so ``data`` reflects what the database holds.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator, Mapping

from rowgate.exceptions import (
    ImmutabilityError,
    MissingKeyError,
    RefreshError,
    UnknownColumnError,
)
from rowgate.logging import get_logger
from rowgate.types import RowState

if TYPE_CHECKING:
    from rowgate.table import Table

log = get_logger(__name__)


class Row:
    """A record of *table*.

    Args:
        table:     The owning :class:`~rowgate.table.Table`.
        data:      Column values; their keys become the row's fixed field set.
        stored:    ``True`` when *data* was read from the database.
        read_only: Reject every mutation with :class:`ImmutabilityError`.
    """

    def __init__(
        self,
        table: Table,
        data: Mapping[str, Any],
        *,
        stored: bool = False,
        read_only: bool = False,
    ) -> None:
        self._table = table
        self._data: dict[str, Any] = dict(data)
        self._clean: dict[str, Any] = {}
        self._dirty: set[str] = set()
        self._read_only = bool(read_only)
        self._deleted = False

        if stored:
            self._clean = dict(self._data)
        else:
            self._dirty = set(self._data)

    def __repr__(self) -> str:
        return f"Row({self._table.name!r}, {self._data!r}, state={self.state.value!r})"

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def table(self) -> Table:
        return self._table

    @property
    def read_only(self) -> bool:
        return self._read_only

    @property
    def stored(self) -> bool:
        return bool(self._clean)

    @property
    def dirty(self) -> frozenset[str]:
        return frozenset(self._dirty)

    @property
    def state(self) -> RowState:
        if self._deleted:
            return RowState.DELETED
        if self._read_only:
            return RowState.READ_ONLY
        if not self._clean:
            return RowState.NEW
        return RowState.DIRTY if self._dirty else RowState.CLEAN

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    def clean_data(self) -> dict[str, Any]:
        return dict(self._clean)

    # ------------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------------

    def has(self, column: str) -> bool:
        return column in self._data

    def get(self, column: str) -> Any:
        self._verify_column(column)
        return self._data[column]

    def set(self, column: str, value: Any) -> Row:
        self._verify_column(column)
        self._check_writable("set a column")
        if not _same(value, self._data[column]):
            self._data[column] = value
            self._dirty.add(column)
        return self

    def set_from_dict(self, data: Mapping[str, Any]) -> Row:
        for column, value in data.items():
            self.set(column, value)
        return self

    def keys(self) -> list[str]:
        return list(self._data)

    def items(self) -> list[tuple[str, Any]]:
        return list(self._data.items())

    def __getitem__(self, column: str) -> Any:
        return self.get(column)

    def __setitem__(self, column: str, value: Any) -> None:
        self.set(column, value)

    def __contains__(self, column: object) -> bool:
        return column in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def get_pk(self, use_dirty: bool = True) -> Any:
        """Primary key from the current data, or from the clean snapshot.

        Composite keys come back as a ``{column: value}`` mapping of the key
        columns present; a single key as its value, or ``None``.
        """
        pk = self._table.primary_key()
        data = self._data if use_dirty else self._clean
        if isinstance(pk, tuple):
            return {col: data[col] for col in pk if col in data}
        return data.get(pk)

    def save(self) -> int:
        """Insert or update the row; returns the number of affected rows."""
        self._check_writable("save")
        if not self._clean:
            return self._insert()
        return self._update()

    def delete(self) -> int:
        """Delete the record keyed by the clean snapshot's primary key.

        The row is left as a tombstone: every field is ``None`` and further
        mutation is rejected.
        """
        self._check_writable("delete")
        pk_cols, pk_values = self._resolve_pk(use_dirty=False, operation="delete")

        where = " AND ".join(f"{col}=?" for col in pk_cols)
        result = self._table.delete(where, pk_values)

        self._data = dict.fromkeys(self._data)
        self._dirty.clear()
        self._deleted = True
        log.debug("row_deleted", table=self._table.name, key=pk_values, affected=result)
        return result

    def refresh(self) -> Row:
        """Reload the row from the database by its current primary key."""
        self._check_writable("refresh")
        pk = self._key_for_lookup(use_dirty=True, operation="refresh")
        fresh = self._table.get_by_id(pk)
        if fresh is None:
            raise RefreshError(self._table.name, pk)

        self._data = fresh.to_dict()
        self._clean = dict(self._data)
        self._dirty.clear()
        return self

    def _insert(self) -> int:
        data = {col: self._data[col] for col in self._data if col in self._dirty}
        result = self._table.insert(data)

        identity = self._table.identity()
        if identity is not None and data.get(identity) is None:
            self._data[identity] = self._table.driver.last_insert_id()

        log.debug("row_inserted", table=self._table.name, columns=list(data), affected=result)
        self._after_write()
        return result

    def _update(self) -> int:
        changes = {col: self._data[col] for col in self._data if col in self._dirty}
        if not changes:
            return 0

        pk_cols, pk_values = self._resolve_pk(use_dirty=True, operation="update")
        where = " AND ".join(f"{col}=?" for col in pk_cols)
        result = self._table.update(changes, where, pk_values)

        log.debug("row_updated", table=self._table.name, columns=list(changes), affected=result)
        self._after_write()
        return result

    def _after_write(self) -> None:
        if not self._table.schema().primary_key:
            # Keyless tables cannot be read back; trust what was written.
            self._clean = dict(self._data)
            self._dirty.clear()
            return
        self.refresh()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve_pk(self, use_dirty: bool, operation: str) -> tuple[tuple[str, ...], list[Any]]:
        pk_cols = self._table.schema().primary_key
        data = self._data if use_dirty else self._clean
        values = [data.get(col) for col in pk_cols]
        if not pk_cols or any(value is None for value in values):
            raise MissingKeyError(self._table.name, operation, pk_cols)
        return pk_cols, values

    def _key_for_lookup(self, use_dirty: bool, operation: str) -> Any:
        pk_cols, values = self._resolve_pk(use_dirty, operation)
        if len(pk_cols) == 1:
            return values[0]
        return dict(zip(pk_cols, values))

    def _verify_column(self, column: str) -> None:
        if column not in self._data:
            raise UnknownColumnError(column, list(self._data))

    def _check_writable(self, operation: str) -> None:
        if self._deleted:
            raise ImmutabilityError(self._table.name, operation, "row has been deleted")
        if self._read_only:
            raise ImmutabilityError(self._table.name, operation)


def _same(a: Any, b: Any) -> bool:
    """Strict equality: ``1``, ``1.0`` and ``True`` are different values."""
    return type(a) is type(b) and a == b
