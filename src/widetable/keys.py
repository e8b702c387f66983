"""Partition / clustering key layouts."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from widetable.errors import KeySpecError

# Synthetic partition column injected into time-series tables
BUCKET_FIELD_NAME = "bucket"


def _as_tuple(columns: Iterable[str] | str) -> tuple[str, ...]:
    if isinstance(columns, str):
        return (columns,)
    return tuple(columns)


@dataclass(frozen=True)
class Keys:
    """
    Physical key layout of a table.

    ``partition_keys`` decide placement, ``clustering_columns`` order rows
    inside a partition. Order matters in both. Lists are normalized to
    tuples so a ``Keys`` is hashable and cannot change after construction.

    Raises:
        KeySpecError: no partition key, a column repeated within one list,
            or a column present in both lists.
    """

    partition_keys: tuple[str, ...]
    clustering_columns: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        partition = _as_tuple(self.partition_keys)
        clustering = _as_tuple(self.clustering_columns)
        object.__setattr__(self, "partition_keys", partition)
        object.__setattr__(self, "clustering_columns", clustering)

        if not partition:
            raise KeySpecError("partition keys must not be empty")
        for label, columns in (("partition", partition), ("clustering", clustering)):
            if any(not isinstance(c, str) or not c for c in columns):
                raise KeySpecError(f"{label} key columns must be non-empty strings: {columns!r}")
            seen: set[str] = set()
            for column in columns:
                if column in seen:
                    raise KeySpecError(
                        f"column '{column}' appears twice in {label} keys"
                    ).with_context(column=column)
                seen.add(column)

        overlap = [c for c in partition if c in clustering]
        if overlap:
            raise KeySpecError(
                f"column '{overlap[0]}' is both a partition and a clustering key"
            ).with_context(column=overlap[0])

    @property
    def columns(self) -> tuple[str, ...]:
        """Every key column, partition keys first."""
        return self.partition_keys + self.clustering_columns

    @property
    def is_bucketed(self) -> bool:
        return BUCKET_FIELD_NAME in self.partition_keys

    def __contains__(self, column: object) -> bool:
        return column in self.columns


__all__ = [
    "BUCKET_FIELD_NAME",
    "Keys",
]
