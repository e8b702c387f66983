"""
Table descriptors and table handles.

``TableInfo`` is the immutable schema fact behind a table: keyspace, table
name, key layout and the entity descriptor of its rows. ``Table`` pairs it
with the keyspace that built it and marshals records to parameter dicts and
rows back to records. The archetype handles (``MapTable``,
``MultimapTable``, ``TimeSeriesTable``, ``MultiTimeSeriesTable``) wrap a
``Table`` and remember which fields play the id / index / time roles so a
query builder can address records by role instead of by raw key layout.

Tags:
    tables, schema, descriptors, widetable
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from widetable.errors import InvalidEntityError
from widetable.keys import Keys
from widetable.reflect import EntityDescriptor

if TYPE_CHECKING:
    from widetable.keyspace import Keyspace


@dataclass(frozen=True)
class TableInfo:
    """Immutable schema of one table."""

    keyspace_name: str
    table_name: str
    keys: Keys
    descriptor: EntityDescriptor
    # Row prototype (dataclass type or instance) supplied at construction
    entity: Any = field(default=None, compare=False)

    @property
    def qualified_name(self) -> str:
        return f"{self.keyspace_name}.{self.table_name}"

    @property
    def columns(self) -> tuple[str, ...]:
        return self.descriptor.keys


class Table:
    """A table handle built by a ``Keyspace``."""

    def __init__(self, keyspace: Keyspace, info: TableInfo):
        self._keyspace = keyspace
        self._info = info

    @property
    def keyspace(self) -> Keyspace:
        return self._keyspace

    @property
    def info(self) -> TableInfo:
        return self._info

    @property
    def name(self) -> str:
        return self._info.table_name

    @property
    def keys(self) -> Keys:
        return self._info.keys

    @property
    def descriptor(self) -> EntityDescriptor:
        return self._info.descriptor

    def new_record(self) -> Any:
        """
        Fresh record built from the row prototype.

        An instance prototype is shallow-copied; a class prototype is called
        with no arguments, so every field needs a default.
        """
        entity = self._info.entity
        if not isinstance(entity, type):
            return copy.copy(entity)
        try:
            return entity()
        except TypeError as e:
            raise InvalidEntityError(
                f"Cannot build an empty {self.descriptor.name}; pass `into=` or a prototype instance",
                cause=e,
            ).with_context(table=self.name, entity=self.descriptor.name) from e

    def to_params(self, record: Any) -> dict[str, Any]:
        """Column -> value parameters for ``record``."""
        return self.descriptor.to_map(record)

    def from_row(self, row: Mapping[str, Any], into: Any = None) -> Any:
        """Unmarshal a result row into ``into`` (or a fresh record)."""
        record = self.new_record() if into is None else into
        return self.descriptor.from_map(row, record)

    def __repr__(self) -> str:
        return f"Table({self._info.qualified_name!r}, keys={self.keys!r})"


class _TableView:
    """Delegates the plain table surface to the wrapped ``table``."""

    table: Table

    @property
    def info(self) -> TableInfo:
        return self.table.info

    @property
    def name(self) -> str:
        return self.table.name

    @property
    def keys(self) -> Keys:
        return self.table.keys

    def to_params(self, record: Any) -> dict[str, Any]:
        return self.table.to_params(record)

    def from_row(self, row: Mapping[str, Any], into: Any = None) -> Any:
        return self.table.from_row(row, into)


@dataclass(frozen=True)
class MapTable(_TableView):
    """Key-value table: one row per ``id_field``."""

    table: Table
    id_field: str


@dataclass(frozen=True)
class MultimapTable(_TableView):
    """Rows grouped by ``index_field``, unique by ``id_field`` within a group."""

    table: Table
    index_field: str
    id_field: str


@dataclass(frozen=True)
class TimeSeriesTable(_TableView):
    """Rows partitioned into time buckets of ``bucket_size``."""

    table: Table
    time_field: str
    id_field: str
    bucket_size: timedelta


@dataclass(frozen=True)
class MultiTimeSeriesTable(_TableView):
    """Time series partitioned by ``index_field`` and time bucket."""

    table: Table
    index_field: str
    time_field: str
    id_field: str
    bucket_size: timedelta


__all__ = [
    "TableInfo",
    "Table",
    "MapTable",
    "MultimapTable",
    "TimeSeriesTable",
    "MultiTimeSeriesTable",
]
