"""
Protocol definitions for widetable's collaborators.

Protocols define contracts without inheritance: any object with the right
methods is a ``QueryExecutor`` or a ``TableFactory``, so tests can pass a
small fake and applications can wrap whatever driver they use.

Architecture:
    ::

        protocols.py
        ├── QueryExecutor  — runs statements/queries (driver boundary)
        └── TableFactory   — builds tables (Keyspace, or a substitute)

Tags:
    protocol, executor, factory, contracts, widetable
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from widetable.keys import Keys
    from widetable.tables import Table


@runtime_checkable
class QueryExecutor(Protocol):
    """
    Minimal statement execution interface.

    Implementations own connections, retries and timeouts. Whatever they
    raise is propagated by widetable without interpretation.

    Examples:
        >>> rows = executor.query(
        ...     "SELECT columnfamily_name FROM system.schema_columnfamilies "
        ...     "WHERE keyspace_name = ?",
        ...     "app",
        ... )
        >>> executor.execute("DROP TABLE IF EXISTS app.events")
    """

    def execute(self, statement: str, *params: Any) -> None:
        """Run a side-effecting statement that returns no rows."""
        ...

    def query(self, statement: str, *params: Any) -> Sequence[Mapping[str, Any]]:
        """Run a read statement and return rows as column -> value mappings."""
        ...


@runtime_checkable
class TableFactory(Protocol):
    """Builds a table handle from a name, a row prototype and a key layout."""

    def new_table(self, name: str, entity: Any, keys: Keys) -> Table:
        ...


__all__ = [
    "QueryExecutor",
    "TableFactory",
]
