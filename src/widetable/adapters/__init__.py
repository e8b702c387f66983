"""Query executors for concrete database drivers.

Each adapter is import-guarded: its driver is only required when it
connects, not when ``widetable`` is imported. Install the matching extra::

    pip install widetable[cassandra]   # cassandra-driver

Modules
-------
cassandra       ``SessionExecutor`` over a cassandra-driver session
"""

from widetable.adapters.cassandra import SessionExecutor

__all__ = [
    "SessionExecutor",
]
