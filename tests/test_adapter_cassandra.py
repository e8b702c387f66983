"""Tests for ``widetable.adapters.cassandra`` — cassandra-driver executor."""

from collections import namedtuple
from unittest.mock import MagicMock, patch

import pytest

from widetable.adapters.cassandra import SessionExecutor
from widetable.errors import ConfigError, DatabaseConnectionError, QueryError
from widetable.keyspace import Keyspace
from widetable.protocols import QueryExecutor
from widetable.settings import WidetableSettings

Row = namedtuple("Row", ["columnfamily_name"])


@pytest.fixture
def session() -> MagicMock:
    return MagicMock()


@pytest.fixture
def driver():
    """Skip unless cassandra-driver imports cleanly on this interpreter."""
    try:
        import cassandra.cluster  # noqa: F401
    except Exception as e:
        pytest.skip(f"cassandra-driver unavailable: {e}")


class TestSessionExecutor:
    def test_is_query_executor(self, session):
        assert isinstance(SessionExecutor(session), QueryExecutor)

    def test_execute_without_params_not_prepared(self, session):
        SessionExecutor(session).execute("DROP TABLE IF EXISTS app.users")
        session.prepare.assert_not_called()
        session.execute.assert_called_once_with("DROP TABLE IF EXISTS app.users")

    def test_params_use_prepared_statement(self, session):
        executor = SessionExecutor(session)
        executor.execute("INSERT INTO t (id) VALUES (?)", "a")
        executor.execute("INSERT INTO t (id) VALUES (?)", "b")
        session.prepare.assert_called_once_with("INSERT INTO t (id) VALUES (?)")
        prepared = session.prepare.return_value
        session.execute.assert_called_with(prepared, ("b",))

    def test_query_converts_named_tuples(self, session):
        session.execute.return_value = [Row("users"), Row("events")]
        rows = SessionExecutor(session).query("SELECT columnfamily_name FROM x")
        assert rows == [{"columnfamily_name": "users"}, {"columnfamily_name": "events"}]

    def test_query_converts_dict_rows(self, session):
        session.execute.return_value = [{"a": 1}]
        assert SessionExecutor(session).query("SELECT a FROM t") == [{"a": 1}]

    def test_driver_error_wrapped(self, session):
        cause = RuntimeError("Unavailable")
        session.execute.side_effect = cause
        with pytest.raises(QueryError, match="Statement failed") as exc_info:
            SessionExecutor(session).execute("DROP TABLE IF EXISTS app.users")
        assert exc_info.value.cause is cause
        assert exc_info.value.context.statement == "DROP TABLE IF EXISTS app.users"

    def test_close_shuts_down_cluster(self, session):
        cluster = MagicMock()
        with SessionExecutor(session, cluster):
            pass
        cluster.shutdown.assert_called_once()

    def test_close_without_cluster(self, session):
        SessionExecutor(session).close()  # No-op; should not raise

    def test_keyspace_over_session(self, session):
        session.execute.return_value = [Row("Users")]
        ks = Keyspace(SessionExecutor(session), "app", settings=WidetableSettings(_env_file=None))
        assert ks.exists("users")
        session.execute.assert_called_once_with(session.prepare.return_value, ("app",))


class TestSessionExecutorConnect:
    def test_missing_driver(self):
        with patch.dict("sys.modules", {"cassandra": None, "cassandra.auth": None, "cassandra.cluster": None}):
            with pytest.raises(ConfigError, match="cassandra-driver is required"):
                SessionExecutor.connect(["127.0.0.1"])

    def test_connect_success(self, driver):
        with patch("cassandra.cluster.Cluster") as cluster_cls:
            executor = SessionExecutor.connect(["10.0.0.1"], port=9043, keyspace="app")
        cluster_cls.assert_called_once_with(contact_points=["10.0.0.1"], port=9043, auth_provider=None)
        cluster_cls.return_value.connect.assert_called_once_with("app")
        assert executor.session is cluster_cls.return_value.connect.return_value

    def test_connect_with_credentials(self, driver):
        with patch("cassandra.cluster.Cluster") as cluster_cls, patch(
            "cassandra.auth.PlainTextAuthProvider"
        ) as auth_cls:
            SessionExecutor.connect(["10.0.0.1"], username="u", password="p")
        auth_cls.assert_called_once_with(username="u", password="p")
        assert cluster_cls.call_args.kwargs["auth_provider"] is auth_cls.return_value

    def test_connect_failure(self, driver):
        with patch("cassandra.cluster.Cluster") as cluster_cls:
            cluster_cls.return_value.connect.side_effect = RuntimeError("no hosts")
            with pytest.raises(DatabaseConnectionError, match="Failed to connect"):
                SessionExecutor.connect(["10.0.0.1"])

    def test_connect_to_keyspace_uses_settings(self, driver):
        from widetable.keyspace import connect_to_keyspace

        settings = WidetableSettings(_env_file=None, hosts=["10.0.0.9"], port=9999)
        with patch("cassandra.cluster.Cluster") as cluster_cls:
            ks = connect_to_keyspace("app", settings=settings)
        cluster_cls.assert_called_once_with(contact_points=["10.0.0.9"], port=9999, auth_provider=None)
        assert ks.name == "app"
        assert isinstance(ks.executor, SessionExecutor)
