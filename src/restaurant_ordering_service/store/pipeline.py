"""Declarative aggregation pipeline.

A pipeline is an ordered list of stages applied to the rows of a source collection.
Stages mirror document-store aggregation operators:

- ``Unwind`` expands an array field into one row per element
- ``Lookup`` joins rows against another collection
- ``Group`` folds rows sharing a key through accumulators
- ``Project`` reshapes rows
- ``Sort`` orders rows

The ``ResourceStore`` executes pipelines; stages only see rows and a resolver that
returns the rows of a named collection.
"""

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

Row = dict[str, Any]
CollectionResolver = Callable[[str], list[Row]]


def get_path(row: Row, path: str) -> Any:
    """Read a dotted field path from a row, returning None when any segment is missing."""
    value: Any = row
    for segment in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(segment)
    return value


def set_path(row: Row, path: str, value: Any) -> Row:
    """Return a copy of ``row`` with a dotted field path set, copying each dict along the way."""
    head, _, rest = path.partition(".")
    if not rest:
        return {**row, head: value}
    child = row.get(head)
    return {**row, head: set_path(child if isinstance(child, dict) else {}, rest, value)}


class Stage(Protocol):
    def apply(self, rows: list[Row], resolve: CollectionResolver) -> list[Row]: ...


@dataclass(frozen=True)
class Unwind:
    """Emit one row per element of an array field.

    ``path`` may be dotted. Rows where the field is missing, null or an empty array
    are dropped. A scalar value is treated as a one-element array.
    """

    path: str

    def apply(self, rows: list[Row], resolve: CollectionResolver) -> list[Row]:
        unwound: list[Row] = []
        for row in rows:
            values = get_path(row, self.path)
            if values is None:
                continue
            if not isinstance(values, list):
                values = [values]
            for value in values:
                unwound.append(set_path(row, self.path, value))
        return unwound


@dataclass(frozen=True)
class Lookup:
    """Left-join each row against another collection.

    The matching foreign rows are stored as a list under ``as_field``; a row without
    matches gets an empty list. Pair with ``Unwind(as_field)`` to drop unmatched rows.
    """

    from_collection: str
    local_field: str
    foreign_field: str
    as_field: str

    def apply(self, rows: list[Row], resolve: CollectionResolver) -> list[Row]:
        index: dict[Any, list[Row]] = defaultdict(list)
        for foreign in resolve(self.from_collection):
            index[get_path(foreign, self.foreign_field)].append(foreign)

        joined: list[Row] = []
        for row in rows:
            local = get_path(row, self.local_field)
            keys = local if isinstance(local, list) else [local]
            matches = [match for key in keys for match in index.get(key, [])]
            joined.append({**row, self.as_field: matches})
        return joined


@dataclass(frozen=True)
class Sum:
    """Accumulator summing a field, or counting rows when no field is given."""

    path: str | None = None

    def initial(self) -> Any:
        return 0

    def step(self, total: Any, row: Row) -> Any:
        if self.path is None:
            return total + 1
        value = get_path(row, self.path)
        return total if value is None else total + value


@dataclass(frozen=True)
class Group:
    """Group rows by a field path (or everything, when ``by`` is None).

    Each output row holds the group value under ``key`` plus one field per accumulator.
    Groups appear in first-seen order.
    """

    by: str | None
    accumulators: dict[str, Sum] = field(default_factory=dict)

    def apply(self, rows: list[Row], resolve: CollectionResolver) -> list[Row]:
        groups: dict[Any, Row] = {}
        for row in rows:
            group_key = get_path(row, self.by) if self.by else None
            if group_key not in groups:
                groups[group_key] = {
                    "key": group_key,
                    **{name: acc.initial() for name, acc in self.accumulators.items()},
                }
            group = groups[group_key]
            for name, acc in self.accumulators.items():
                group[name] = acc.step(group[name], row)
        return list(groups.values())


@dataclass(frozen=True)
class Project:
    """Reshape rows: each output field is read from a source path of the input row."""

    fields: dict[str, str]

    def apply(self, rows: list[Row], resolve: CollectionResolver) -> list[Row]:
        return [{name: get_path(row, source) for name, source in self.fields.items()} for row in rows]


@dataclass(frozen=True)
class Sort:
    """Order rows by a field. Rows missing the field sort first."""

    path: str
    descending: bool = False

    def apply(self, rows: list[Row], resolve: CollectionResolver) -> list[Row]:
        def sort_key(row: Row) -> tuple[bool, Any]:
            value = get_path(row, self.path)
            return (value is not None, value)

        return sorted(rows, key=sort_key, reverse=self.descending)


def run_pipeline(rows: list[Row], stages: list[Stage], resolve: CollectionResolver) -> list[Row]:
    """Apply stages in order."""
    for stage in stages:
        rows = stage.apply(rows, resolve)
    return rows
