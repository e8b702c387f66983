"""
Keyspace: table construction policy and keyspace introspection.

A ``Keyspace`` turns a record type plus a logical table shape into a table
handle with a consistent physical key layout, and answers questions about
the tables that already exist through the query executor.

Architecture:
    ::

        caller
          │  map_table / multimap_table / time_series_table / ...
          ▼
        Keyspace ── derives Keys ──► new_table(name, entity, keys)
          │                               │
          │                    describe(entity)  (memoized)
          │                               │
          │              factory is self? ─┴─ no ──► factory.new_table(...)
          │                    │ yes
          │                    ▼
          │             TableInfo ──► Table ──► archetype handle
          │
          └── tables() / exists() / drop_table() ──► QueryExecutor

    Archetype key layouts:

        plain              caller-supplied
        map                partition [id]           clustering []
        multimap           partition [index]        clustering [id]
        time series        partition [bucket]       clustering [time, id]
        multi time series  partition [index, bucket] clustering [time, id]

Guardrails:
    - Reflection and key layout errors surface when the table is built
    - Catalog results are never cached; every call queries the executor
    - Executor errors propagate unchanged, nothing is retried

Examples:
    >>> ks = Keyspace(executor, "app")
    >>> events = ks.time_series_table("events", "ts", "id", timedelta(hours=1), Event)
    >>> events.keys
    Keys(partition_keys=('bucket',), clustering_columns=('ts', 'id'))
    >>> ks.exists("EVENTS")
    False

Tags:
    keyspace, tables, factory, schema, introspection, widetable
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Any

from widetable.errors import KeySpecError
from widetable.keys import BUCKET_FIELD_NAME, Keys
from widetable.logging import ensure_configured, get_logger
from widetable.protocols import QueryExecutor, TableFactory
from widetable.reflect import EntityDescriptor, describe
from widetable.settings import WidetableSettings, get_settings
from widetable.tables import (
    MapTable,
    MultimapTable,
    MultiTimeSeriesTable,
    Table,
    TableInfo,
    TimeSeriesTable,
)

logger = get_logger(__name__)

_IDENTIFIER = re.compile(r"[A-Za-z][A-Za-z0-9_]*")


class Keyspace:
    """
    Builds tables in one keyspace and inspects the tables it holds.

    Parameters:
        executor: Runs the catalog query and DDL statements.
        name: Keyspace name.
        factory: Alternate table factory. Calls to ``new_table`` are
            forwarded to it unchanged after the entity has been reflected.
            Defaults to the keyspace itself.
        settings: Defaults to the cached ``get_settings()``.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        name: str,
        *,
        factory: TableFactory | None = None,
        settings: WidetableSettings | None = None,
    ) -> None:
        self._executor = executor
        self._name = name
        self._settings = settings or get_settings()
        self._debug = self._settings.debug
        self._factory: TableFactory = factory if factory is not None else self

    # -- Properties ----------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    def set_name(self, name: str) -> None:
        """Point this handle at another keyspace. Existing tables keep theirs."""
        self._name = name

    @property
    def executor(self) -> QueryExecutor:
        return self._executor

    @property
    def debug(self) -> bool:
        return self._debug

    def debug_mode(self, enabled: bool) -> None:
        """Log every statement sent to the executor."""
        self._debug = enabled

    # -- Table construction --------------------------------------------------

    def table(self, name: str, entity: Any, keys: Keys) -> Table:
        return self.new_table(name, entity, keys)

    def new_table(self, name: str, entity: Any, keys: Keys) -> Table:
        """
        Build a table over ``entity`` with the given key layout.

        Raises:
            InvalidEntityError: ``entity`` is not a dataclass type or instance.
            DuplicateColumnKeyError: two fields of ``entity`` share a column key.
            KeySpecError: a key column is not a column of ``entity``.
        """
        descriptor = describe(entity)

        if self._factory is not self:
            return self._factory.new_table(name, entity, keys)

        self._check_key_columns(name, descriptor, keys)
        info = TableInfo(
            keyspace_name=self._name,
            table_name=name,
            keys=keys,
            descriptor=descriptor,
            entity=entity,
        )
        logger.debug(
            "table_created",
            keyspace=self._name,
            table=name,
            entity=descriptor.name,
            partition_keys=list(keys.partition_keys),
            clustering_columns=list(keys.clustering_columns),
        )
        return Table(self, info)

    def _check_key_columns(self, name: str, descriptor: EntityDescriptor, keys: Keys) -> None:
        for column in keys.columns:
            if column == BUCKET_FIELD_NAME or column in descriptor.fields_by_key:
                continue
            raise KeySpecError(
                f"key column '{column}' is not a column of {descriptor.name}"
            ).with_context(keyspace=self._name, table=name, entity=descriptor.name, column=column)

    def _check_bucket_free(self, name: str, entity: Any) -> None:
        descriptor = describe(entity)
        if BUCKET_FIELD_NAME in descriptor.fields_by_key:
            raise KeySpecError(
                f"column '{BUCKET_FIELD_NAME}' is reserved for time series buckets"
            ).with_context(
                keyspace=self._name,
                table=name,
                entity=descriptor.name,
                column=BUCKET_FIELD_NAME,
            )

    def map_table(self, name: str, id_field: str, row: Any) -> MapTable:
        table = self.new_table(name, row, Keys(partition_keys=(id_field,)))
        return MapTable(table=table, id_field=id_field)

    def multimap_table(self, name: str, index_field: str, id_field: str, row: Any) -> MultimapTable:
        table = self.new_table(
            name,
            row,
            Keys(partition_keys=(index_field,), clustering_columns=(id_field,)),
        )
        return MultimapTable(table=table, index_field=index_field, id_field=id_field)

    def time_series_table(
        self,
        name: str,
        time_field: str,
        id_field: str,
        bucket_size: timedelta,
        row: Any,
    ) -> TimeSeriesTable:
        self._check_bucket_free(name, row)
        table = self.new_table(
            name,
            row,
            Keys(partition_keys=(BUCKET_FIELD_NAME,), clustering_columns=(time_field, id_field)),
        )
        return TimeSeriesTable(
            table=table,
            time_field=time_field,
            id_field=id_field,
            bucket_size=bucket_size,
        )

    def multi_time_series_table(
        self,
        name: str,
        index_field: str,
        time_field: str,
        id_field: str,
        bucket_size: timedelta,
        row: Any,
    ) -> MultiTimeSeriesTable:
        self._check_bucket_free(name, row)
        table = self.new_table(
            name,
            row,
            Keys(
                partition_keys=(index_field, BUCKET_FIELD_NAME),
                clustering_columns=(time_field, id_field),
            ),
        )
        return MultiTimeSeriesTable(
            table=table,
            index_field=index_field,
            time_field=time_field,
            id_field=id_field,
            bucket_size=bucket_size,
        )

    # -- Introspection -------------------------------------------------------

    def tables(self) -> list[str]:
        """Names of the tables in this keyspace, as the catalog reports them."""
        rows = self._query(self._settings.tables_query, self._name)
        column = self._settings.tables_column
        names = [row[column] for row in rows]
        logger.debug("tables_listed", keyspace=self._name, count=len(names))
        return names

    list_tables = tables

    def exists(self, name: str) -> bool:
        """Case-insensitive check that table ``name`` exists."""
        wanted = name.lower()
        return any(table.lower() == wanted for table in self.tables())

    def drop_table(self, name: str) -> None:
        """Drop table ``name``; a missing table is not an error."""
        self._check_identifier(self._name, "keyspace")
        self._check_identifier(name, "table")
        self._execute(f"DROP TABLE IF EXISTS {self._name}.{name}")
        logger.info("table_dropped", keyspace=self._name, table=name)

    def _check_identifier(self, value: str, kind: str) -> None:
        if not isinstance(value, str) or not _IDENTIFIER.fullmatch(value):
            raise KeySpecError(f"invalid {kind} name {value!r}").with_context(
                keyspace=self._name, table=value if kind == "table" else None
            )

    # -- Executor access -----------------------------------------------------

    def _execute(self, statement: str, *params: Any) -> None:
        if self._debug:
            logger.info("statement_issued", keyspace=self._name, statement=statement, params=list(params))
        self._executor.execute(statement, *params)

    def _query(self, statement: str, *params: Any) -> list[Any]:
        if self._debug:
            logger.info("statement_issued", keyspace=self._name, statement=statement, params=list(params))
        return list(self._executor.query(statement, *params))

    def __repr__(self) -> str:
        return f"Keyspace({self._name!r})"


def connect_to_keyspace(
    keyspace: str,
    hosts: list[str] | None = None,
    username: str | None = None,
    password: str | None = None,
    *,
    settings: WidetableSettings | None = None,
) -> Keyspace:
    """
    Connect to a cluster and return a ``Keyspace`` over the session.

    Unset arguments fall back to ``settings`` (``WIDETABLE_HOSTS``,
    ``WIDETABLE_USERNAME``, ...). Requires the ``cassandra`` extra.
    """
    from widetable.adapters.cassandra import SessionExecutor

    settings = settings or get_settings()
    ensure_configured(settings)
    executor = SessionExecutor.connect(
        hosts if hosts is not None else settings.hosts,
        port=settings.port,
        username=username if username is not None else settings.username,
        password=password if password is not None else settings.password,
    )
    return Keyspace(executor, keyspace, settings=settings)


__all__ = [
    "Keyspace",
    "connect_to_keyspace",
]
