"""Tests for widetable.errors module."""

import pytest

from widetable.errors import (
    ConfigError,
    DatabaseError,
    DuplicateColumnKeyError,
    ErrorCategory,
    ErrorContext,
    InvalidEntityError,
    KeySpecError,
    QueryError,
    SchemaError,
    ValidationError,
    WidetableError,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_create_empty_context(self):
        ctx = ErrorContext()
        assert ctx.keyspace is None
        assert ctx.metadata == {}
        assert ctx.to_dict() == {}

    def test_to_dict_includes_set_fields(self):
        ctx = ErrorContext(keyspace="app", table="users", metadata={"hint": "x"})
        assert ctx.to_dict() == {"keyspace": "app", "table": "users", "hint": "x"}


class TestWidetableError:
    """Test WidetableError base class."""

    def test_create_minimal_error(self):
        err = WidetableError("Something failed")
        assert err.message == "Something failed"
        assert str(err) == "Something failed"
        assert err.category == ErrorCategory.INTERNAL
        assert err.cause is None

    def test_explicit_category_wins(self):
        err = KeySpecError("bad", category=ErrorCategory.CONFIG)
        assert err.category == ErrorCategory.CONFIG

    def test_cause_is_chained(self):
        cause = RuntimeError("driver")
        err = QueryError("failed", cause=cause)
        assert err.cause is cause
        assert err.__cause__ is cause

    def test_with_context_known_and_extra_keys(self):
        err = KeySpecError("bad").with_context(table="users", hint="rename")
        assert err.context.table == "users"
        assert err.context.metadata == {"hint": "rename"}

    def test_to_dict(self):
        err = QueryError("failed", cause=RuntimeError("timeout")).with_context(
            statement="SELECT 1"
        )
        assert err.to_dict() == {
            "error_type": "QueryError",
            "message": "failed",
            "category": "DATABASE",
            "context": {"statement": "SELECT 1"},
            "cause": "timeout",
        }

    def test_repr(self):
        assert repr(KeySpecError("bad")) == "KeySpecError('bad', category=VALIDATION)"


class TestHierarchy:
    @pytest.mark.parametrize(
        "error,parents,category",
        [
            (InvalidEntityError("x"), (ValidationError,), ErrorCategory.VALIDATION),
            (DuplicateColumnKeyError("k", "mod.Rec"), (SchemaError, ValidationError), ErrorCategory.VALIDATION),
            (KeySpecError("x"), (SchemaError, ValidationError), ErrorCategory.VALIDATION),
            (QueryError("x"), (DatabaseError,), ErrorCategory.DATABASE),
            (ConfigError("x"), (WidetableError,), ErrorCategory.CONFIG),
        ],
    )
    def test_parents_and_category(self, error, parents, category):
        assert isinstance(error, WidetableError)
        for parent in parents:
            assert isinstance(error, parent)
        assert error.category == category

    def test_duplicate_key_message_and_context(self):
        err = DuplicateColumnKeyError("x", "mod.Rec")
        assert str(err) == "Duplicated key 'x' in record mod.Rec"
        assert err.context.entity == "mod.Rec"
        assert err.context.column == "x"

    def test_invalid_entity_keeps_value(self):
        assert InvalidEntityError("bad", value=42).value == 42

