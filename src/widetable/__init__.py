"""
widetable - schema mapping and table taxonomy for wide-row databases.

Declare a record once as a dataclass and get key-value, multimap and
time-series table handles with a consistent key layout::

    from dataclasses import dataclass, field
    from datetime import datetime, timedelta

    from widetable import Keyspace

    @dataclass
    class Event:
        id: str = ""
        ts: datetime = datetime.min
        owner: str = field(default="", metadata={"cql": "owner_id"})

    ks = Keyspace(executor, "app")
    events = ks.time_series_table("events", "ts", "id", timedelta(hours=1), Event)
    params = events.to_params(Event(id="e1", ts=datetime.now()))

Modules
-------
reflect     Entity descriptors, record <-> dict marshalling
keys        Partition / clustering key layouts
tables      TableInfo and table handles
keyspace    Keyspace (table factory + introspection)
protocols   QueryExecutor / TableFactory contracts
errors      Error hierarchy
settings    WIDETABLE_* configuration
logging     structlog setup
adapters    Driver-backed executors
"""

__version__ = "0.1.0"

from widetable.errors import (
    DatabaseError,
    DuplicateColumnKeyError,
    InvalidEntityError,
    KeySpecError,
    QueryError,
    SchemaError,
    WidetableError,
)
from widetable.keys import BUCKET_FIELD_NAME, Keys
from widetable.keyspace import Keyspace, connect_to_keyspace
from widetable.protocols import QueryExecutor, TableFactory
from widetable.reflect import (
    EntityDescriptor,
    FieldInfo,
    describe,
    fields_and_values,
    from_map,
    map_to_record,
    record_to_map,
    to_map,
)
from widetable.settings import WidetableSettings, get_settings
from widetable.tables import (
    MapTable,
    MultimapTable,
    MultiTimeSeriesTable,
    Table,
    TableInfo,
    TimeSeriesTable,
)

__all__ = [
    "__version__",
    # Errors
    "WidetableError",
    "InvalidEntityError",
    "SchemaError",
    "DuplicateColumnKeyError",
    "KeySpecError",
    "DatabaseError",
    "QueryError",
    # Reflection
    "EntityDescriptor",
    "FieldInfo",
    "describe",
    "to_map",
    "from_map",
    "fields_and_values",
    "record_to_map",
    "map_to_record",
    # Keys and tables
    "BUCKET_FIELD_NAME",
    "Keys",
    "TableInfo",
    "Table",
    "MapTable",
    "MultimapTable",
    "TimeSeriesTable",
    "MultiTimeSeriesTable",
    # Keyspace
    "Keyspace",
    "connect_to_keyspace",
    "QueryExecutor",
    "TableFactory",
    # Settings
    "WidetableSettings",
    "get_settings",
]
