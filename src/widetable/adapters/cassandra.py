"""Cassandra / ScyllaDB query executor."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from widetable.errors import ConfigError, DatabaseConnectionError, QueryError
from widetable.logging import get_logger

logger = get_logger(__name__)


def _row_to_dict(row: Any) -> dict[str, Any]:
    if isinstance(row, Mapping):
        return dict(row)
    if hasattr(row, "_asdict"):
        return dict(row._asdict())
    return dict(row)


class SessionExecutor:
    """
    ``QueryExecutor`` over a cassandra-driver ``Session``.

    Statements with parameters are prepared once per statement text and
    executed bound, so they use ``?`` placeholders. Driver failures are
    raised as ``QueryError`` with the driver exception chained.
    """

    def __init__(self, session: Any, cluster: Any = None):
        self._session = session
        self._cluster = cluster
        self._prepared: dict[str, Any] = {}

    @classmethod
    def connect(
        cls,
        hosts: Iterable[str],
        *,
        port: int = 9042,
        username: str | None = None,
        password: str | None = None,
        keyspace: str | None = None,
    ) -> SessionExecutor:
        """Open a cluster connection. Requires ``cassandra-driver``."""
        try:
            from cassandra.auth import PlainTextAuthProvider
            from cassandra.cluster import Cluster
        except ImportError:
            raise ConfigError(
                "cassandra-driver is required for SessionExecutor. "
                "Install with: pip install widetable[cassandra]"
            ) from None

        contact_points = list(hosts)
        auth_provider = None
        if username and password:
            auth_provider = PlainTextAuthProvider(username=username, password=password)

        try:
            cluster = Cluster(contact_points=contact_points, port=port, auth_provider=auth_provider)
            session = cluster.connect(keyspace) if keyspace else cluster.connect()
        except Exception as e:
            raise DatabaseConnectionError(
                f"Failed to connect to {contact_points}: {e}",
                cause=e,
            ) from e

        logger.info("cluster_connected", hosts=contact_points, port=port, keyspace=keyspace)
        return cls(session, cluster)

    @property
    def session(self) -> Any:
        return self._session

    def _statement(self, statement: str, params: tuple) -> Any:
        if not params:
            return statement
        prepared = self._prepared.get(statement)
        if prepared is None:
            prepared = self._session.prepare(statement)
            self._prepared[statement] = prepared
        return prepared

    def _run(self, statement: str, params: tuple) -> Any:
        try:
            stmt = self._statement(statement, params)
            if params:
                return self._session.execute(stmt, params)
            return self._session.execute(stmt)
        except Exception as e:
            raise QueryError(f"Statement failed: {e}", cause=e).with_context(
                statement=statement
            ) from e

    def execute(self, statement: str, *params: Any) -> None:
        self._run(statement, params)

    def query(self, statement: str, *params: Any) -> list[dict[str, Any]]:
        result = self._run(statement, params)
        return [_row_to_dict(row) for row in result]

    def close(self) -> None:
        """Shut down the owned cluster, if any."""
        if self._cluster is not None:
            self._cluster.shutdown()
            self._cluster = None

    def __enter__(self) -> SessionExecutor:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


__all__ = [
    "SessionExecutor",
]
