"""
Structured error types for widetable.

Every failure the mapping layer can report is a ``WidetableError``: it
carries a category for routing, an ``ErrorContext`` naming the keyspace,
table, entity or statement involved, and the chained underlying exception
when one exists.

Manifesto:
    - **Fail at definition time:** malformed entities and key layouts are
      rejected when a table is built, never on first query
    - **Typed hierarchy:** callers catch ``SchemaError`` or ``DatabaseError``
      instead of parsing messages
    - **Context travels with the error:** keyspace/table/entity metadata is
      attached with ``with_context()`` and serialized by ``to_dict()``

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                     WidetableError                         │
        │            (category, context, cause, to_dict)             │
        ├───────────────────────────────────────────────────────────┤
        │  ValidationError          ConfigError     DatabaseError    │
        │  (VALIDATION)             (CONFIG)        (DATABASE)       │
        │    │                                         │             │
        │  InvalidEntityError                       QueryError       │
        │  SchemaError                              DatabaseConnec-  │
        │    ├── DuplicateColumnKeyError            tionError        │
        │    └── KeySpecError                                        │
        └───────────────────────────────────────────────────────────┘

Examples:
    >>> err = KeySpecError("partition keys must not be empty")
    >>> err.with_context(table="events").to_dict()["context"]
    {'table': 'events'}

Tags:
    errors, exceptions, schema, reflection, widetable
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for classification in logs."""

    VALIDATION = "VALIDATION"  # Entity shape, key layout
    CONFIG = "CONFIG"  # Settings, missing optional drivers
    DATABASE = "DATABASE"  # Executor / driver failures
    INTERNAL = "INTERNAL"  # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set are emitted by ``to_dict()``; anything that has
    no dedicated attribute goes to ``metadata``.

    Attributes:
        keyspace: Keyspace the failing operation targeted
        table: Table (column family) name
        entity: Qualified name of the record type involved
        column: Column (or record field) name
        statement: Statement text sent to the executor
        metadata: Additional key-value pairs
    """

    keyspace: str | None = None
    table: str | None = None
    entity: str | None = None
    column: str | None = None
    statement: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["keyspace", "table", "entity", "column", "statement"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class WidetableError(Exception):
    """
    Base exception for all widetable errors.

    Subclasses set ``default_category``; an explicit ``category`` passed to
    the constructor wins. When ``cause`` is given it is also installed as
    ``__cause__`` so tracebacks show the chain.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> WidetableError:
        """
        Add context to this error (fluent API).

        Usage:
            raise KeySpecError("unknown column").with_context(
                table="users", column="uid"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(WidetableError):
    """Entity or key layout is malformed and must be fixed by the caller."""

    default_category = ErrorCategory.VALIDATION


class InvalidEntityError(ValidationError):
    """Reflection target is not a record (dataclass) type or instance."""

    def __init__(self, message: str, *, value: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.value = value


class SchemaError(ValidationError):
    """Derived schema is internally inconsistent."""


class DuplicateColumnKeyError(SchemaError):
    """Two fields of one record resolve to the same column key."""

    def __init__(self, key: str, entity: str, **kwargs: Any):
        super().__init__(f"Duplicated key '{key}' in record {entity}", **kwargs)
        self.key = key
        self.with_context(entity=entity, column=key)


class KeySpecError(SchemaError):
    """Partition/clustering key layout is malformed."""


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(WidetableError):
    """Configuration error, including a missing optional driver."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(WidetableError):
    """Failure reported by the query executor or its driver."""

    default_category = ErrorCategory.DATABASE


class QueryError(DatabaseError):
    """A statement or query sent to the database failed."""


class DatabaseConnectionError(DatabaseError):
    """Could not connect to the database cluster."""


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "WidetableError",
    "ValidationError",
    "InvalidEntityError",
    "SchemaError",
    "DuplicateColumnKeyError",
    "KeySpecError",
    "ConfigError",
    "DatabaseError",
    "QueryError",
    "DatabaseConnectionError",
]
