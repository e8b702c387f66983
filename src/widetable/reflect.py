"""
Entity reflection: record types to column mappings and back.

A record is any ``dataclass``. ``describe()`` inspects its fields once and
returns an ``EntityDescriptor`` holding the ordered field list, the
column-key lookup and the set of nullable columns. Descriptors are cached
per class for the life of the process, so tables built over the same record
share one descriptor.

Column keys:
    The key of a field is resolved in priority order:

    1. the ``cql`` entry of the field's metadata, or the ``cql:"..."`` entry
       of a raw tag string attached with ``typing.Annotated``;
    2. when the field carries no mapping metadata at all, a raw tag without
       any ``key:"value"`` pair is used verbatim;
    3. otherwise the field name.

    A tag may end in ``;null`` to mark the column nullable::

        @dataclass
        class Event:
            id: str                                            # key "id"
            owner: str = field(metadata={"cql": "owner_id"})   # key "owner_id"
            note: Annotated[str, "remark;null"] = ""           # key "remark", nullable
            kind: Annotated[str, 'cql:"type" json:"k"'] = ""   # key "type"

Marshalling:
    ``to_map`` projects a record into a ``dict`` keyed by column, in field
    order. ``from_map`` is deliberately lenient: keys that match no field,
    and values whose runtime type is not exactly the field's declared type,
    are skipped without error so partial rows merge into a record.

Tags:
    reflection, dataclasses, marshalling, schema, widetable
"""

from __future__ import annotations

import ast
import copy
import dataclasses
import inspect
import re
import sys
import threading
import types
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Annotated, Any, ForwardRef, Union, get_args, get_origin, get_type_hints

from widetable.errors import DuplicateColumnKeyError, InvalidEntityError
from widetable.logging import get_logger

logger = get_logger(__name__)

TAG_KEY = "cql"
NULL_OPTION = "null"
OPTION_SEPARATOR = ";"
_ANNOTATED_TEXT = re.compile(r"\bAnnotated\[")


@dataclass(frozen=True)
class FieldInfo:
    """One record field and the column it maps to."""

    key: str
    ordinal: int
    name: str
    type: Any = Any


@dataclass(frozen=True)
class EntityDescriptor:
    """
    Column mapping derived from one record type.

    Attributes:
        entity_type: The dataclass described
        fields: Fields in declaration order
        fields_by_key: Column key -> field, in declaration order
        nullable_fields: Column keys tagged ``;null``
    """

    entity_type: type
    fields: tuple[FieldInfo, ...]
    fields_by_key: Mapping[str, FieldInfo] = field(compare=False)
    nullable_fields: frozenset[str] = frozenset()

    @property
    def name(self) -> str:
        return _qualified_name(self.entity_type)

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(info.key for info in self.fields)

    def is_nullable(self, key: str) -> bool:
        return key in self.nullable_fields

    def to_map(self, record: Any) -> dict[str, Any]:
        return to_map(self, record)

    def from_map(self, mapping: Mapping[str, Any], record: Any) -> Any:
        return from_map(self, mapping, record)


# =============================================================================
# TAGS
# =============================================================================


def parse_tag(raw: str, key: str = TAG_KEY) -> str | None:
    """
    Look up ``key`` in a struct-tag string.

    A struct tag is a space separated list of ``name:"value"`` pairs, values
    double-quoted with backslash escapes. Returns ``None`` when the key is
    absent or the tag is malformed before the key is reached.

    >>> parse_tag('cql:"user_id;null" json:"uid"')
    'user_id;null'
    >>> parse_tag("legacyName") is None
    True
    """
    tag = raw
    while tag:
        tag = tag.lstrip(" ")
        if not tag:
            break

        i = 0
        while i < len(tag) and tag[i] > " " and tag[i] not in ':"\x7f':
            i += 1
        if i == 0 or i + 1 >= len(tag) or tag[i] != ":" or tag[i + 1] != '"':
            break
        name = tag[:i]
        tag = tag[i + 1 :]

        i = 1
        while i < len(tag) and tag[i] != '"':
            if tag[i] == "\\":
                i += 1
            i += 1
        if i >= len(tag):
            break
        quoted = tag[: i + 1]
        tag = tag[i + 1 :]

        if name == key:
            try:
                return ast.literal_eval(quoted)
            except (ValueError, SyntaxError):
                break
    return None


def _raw_tag(hint: Any) -> str:
    """First string extra of an ``Annotated`` hint, or ``""``."""
    if get_origin(hint) is Annotated:
        for extra in hint.__metadata__:
            if isinstance(extra, str):
                return extra
    return ""


def _field_tag(f: dataclasses.Field, hint: Any) -> str:
    tag = f.metadata.get(TAG_KEY, "") if f.metadata else ""
    if tag:
        return tag

    raw = _raw_tag(hint)
    if raw:
        tag = parse_tag(raw) or ""
        # No mapping metadata anywhere: the whole raw tag is the key
        if not tag and ":" not in raw and not f.metadata:
            tag = raw
    return tag


def _strip_annotated(hint: Any) -> Any:
    if get_origin(hint) is Annotated:
        return hint.__origin__
    return hint


# =============================================================================
# DESCRIPTORS
# =============================================================================

_descriptors: dict[type, EntityDescriptor] = {}
_descriptors_lock = threading.Lock()


def _qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def _entity_type(record: Any) -> type:
    if record is None:
        raise InvalidEntityError("You must pass a valid record, got None")
    if not dataclasses.is_dataclass(record):
        raise InvalidEntityError(
            f"You must pass a dataclass type or instance, got {type(record).__name__}",
            value=record,
        )
    return record if isinstance(record, type) else type(record)


def _defining_class(cls: type, name: str) -> type:
    for base in cls.__mro__:
        if name in inspect.get_annotations(base):
            return base
    return cls


def _resolve_field_hint(cls: type, f: dataclasses.Field) -> Any:
    annotation = f.type
    if isinstance(annotation, ForwardRef):
        annotation = annotation.__forward_arg__
    if not isinstance(annotation, str):
        return annotation

    owner = _defining_class(cls, f.name)
    module = sys.modules.get(owner.__module__)
    globalns = dict(vars(module)) if module is not None else {}
    try:
        return eval(annotation, globalns, dict(vars(owner)))
    except (NameError, AttributeError, TypeError, SyntaxError) as e:
        if _ANNOTATED_TEXT.search(annotation):
            raise InvalidEntityError(
                f"Cannot resolve the tagged annotation of {_qualified_name(cls)}.{f.name}: {annotation}",
                cause=e,
            ).with_context(entity=_qualified_name(cls), column=f.name) from e
        # Untagged annotations that cannot be resolved keep their text
        return annotation


def _resolve_hints(cls: type) -> dict[str, Any]:
    try:
        return get_type_hints(cls, include_extras=True)
    except (NameError, AttributeError, TypeError, SyntaxError):
        return {f.name: _resolve_field_hint(cls, f) for f in dataclasses.fields(cls)}


def _build_descriptor(cls: type) -> EntityDescriptor:
    hints = _resolve_hints(cls)
    fields_list: list[FieldInfo] = []
    fields_by_key: dict[str, FieldInfo] = {}
    nullable: list[str] = []

    for ordinal, f in enumerate(dataclasses.fields(cls)):
        hint = hints.get(f.name, f.type)
        opts = _field_tag(f, hint).split(OPTION_SEPARATOR)
        key = opts[0] or f.name

        if key in fields_by_key:
            raise DuplicateColumnKeyError(key, _qualified_name(cls))

        info = FieldInfo(key=key, ordinal=ordinal, name=f.name, type=_strip_annotated(hint))
        if len(opts) > 1 and opts[1] == NULL_OPTION:
            nullable.append(key)

        fields_list.append(info)
        fields_by_key[key] = info

    return EntityDescriptor(
        entity_type=cls,
        fields=tuple(fields_list),
        fields_by_key=types.MappingProxyType(fields_by_key),
        nullable_fields=frozenset(nullable),
    )


def describe(record: Any) -> EntityDescriptor:
    """
    Return the (cached) descriptor of a dataclass type or instance.

    Raises:
        InvalidEntityError: ``record`` is not a dataclass type or instance.
        DuplicateColumnKeyError: two fields resolve to the same column key.
    """
    cls = _entity_type(record)
    descriptor = _descriptors.get(cls)
    if descriptor is not None:
        return descriptor

    with _descriptors_lock:
        descriptor = _descriptors.get(cls)
        if descriptor is None:
            descriptor = _build_descriptor(cls)
            _descriptors[cls] = descriptor
            logger.debug(
                "entity_described",
                entity=descriptor.name,
                fields=len(descriptor.fields),
                nullable=sorted(descriptor.nullable_fields),
            )
    return descriptor


def clear_cache() -> None:
    """Forget every cached descriptor."""
    with _descriptors_lock:
        _descriptors.clear()


# =============================================================================
# MARSHALLING
# =============================================================================


def _check_instance(descriptor: EntityDescriptor, record: Any) -> None:
    if isinstance(record, type) or not isinstance(record, descriptor.entity_type):
        raise InvalidEntityError(
            f"Expected an instance of {descriptor.name}, got {type(record).__name__}",
            value=record,
        ).with_context(entity=descriptor.name)


def type_matches(declared: Any, value: Any) -> bool:
    """
    Exact runtime type check used by ``from_map``.

    Subclasses do not match (``True`` is not accepted for ``int``). For a
    parameterized generic only the origin is compared, any member of a union
    matches, and ``Any`` matches everything.
    """
    if declared is Any:
        return True
    if isinstance(declared, str):
        return type(value).__name__ == declared
    if declared is None or declared is type(None):
        return value is None

    origin = get_origin(declared)
    if origin is Union or origin is types.UnionType:
        return any(type_matches(arg, value) for arg in get_args(declared))
    if origin is not None:
        return type(value) is origin
    return type(value) is declared


def to_map(descriptor: EntityDescriptor, record: Any) -> dict[str, Any]:
    """Project every field of ``record`` by column key, in field order."""
    _check_instance(descriptor, record)
    return {info.key: getattr(record, info.name) for info in descriptor.fields}


def from_map(descriptor: EntityDescriptor, mapping: Mapping[str, Any], record: Any) -> Any:
    """
    Merge ``mapping`` into ``record`` and return the result.

    Unknown keys and values of the wrong type are skipped. Mutable records
    are updated in place; for frozen dataclasses an updated copy is returned
    and the original is left untouched.
    """
    _check_instance(descriptor, record)

    updates: dict[str, Any] = {}
    for key, value in mapping.items():
        info = descriptor.fields_by_key.get(key)
        if info is None or not type_matches(info.type, value):
            continue
        updates[info.name] = value

    if not updates:
        return record

    if record.__dataclass_params__.frozen:
        record = copy.copy(record)
        for name, value in updates.items():
            object.__setattr__(record, name, value)
        return record

    for name, value in updates.items():
        setattr(record, name, value)
    return record


def fields_and_values(record: Any) -> tuple[list[str], list[Any]]:
    """Column keys and the matching field values of ``record``, in field order."""
    descriptor = describe(record)
    _check_instance(descriptor, record)
    keys = [info.key for info in descriptor.fields]
    values = [getattr(record, info.name) for info in descriptor.fields]
    return keys, values


def record_to_map(record: Any) -> dict[str, Any]:
    return to_map(describe(record), record)


def map_to_record(mapping: Mapping[str, Any], record: Any) -> Any:
    return from_map(describe(record), mapping, record)


__all__ = [
    "TAG_KEY",
    "FieldInfo",
    "EntityDescriptor",
    "parse_tag",
    "describe",
    "clear_cache",
    "type_matches",
    "to_map",
    "from_map",
    "fields_and_values",
    "record_to_map",
    "map_to_record",
]
