# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Iterator, Sequence
from typing import Any, overload

import pandas as pd

from dbdelta.errors import InternalError, InvalidUsage


_NAN = float("nan")


def _normalize(value: Any) -> Any:
    """Binary buffers are not hashable, store them as bytes.

    All float NaNs are replaced by one shared object, so NaN values of two rows
    compare and hash equal.
    """
    if isinstance(value, bytearray | memoryview):
        return bytes(value)
    if isinstance(value, float) and value != value:
        return _NAN
    return value


class Row(Sequence[Any]):
    """Immutable ordered tuple of column values.

    Rows compare equal if all values at the same positions are equal. The hash is
    computed once at construction.
    """

    __slots__ = ("_values", "_hash")

    def __init__(self, *values: Any):
        self._values = tuple(_normalize(value) for value in values)
        try:
            self._hash = hash(self._values)
        except TypeError as e:
            raise InvalidUsage(f"Row contains unhashable value: {e}") from e

    @staticmethod
    def of(values: Iterable[Any]) -> Row:
        """Create a row from any iterable of column values."""
        if isinstance(values, Row):
            return values
        return Row(*values)

    @property
    def values(self) -> tuple[Any, ...]:
        """Column values in column order."""
        return self._values

    def __len__(self) -> int:
        return len(self._values)

    @overload
    def __getitem__(self, index: int) -> Any: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Any, ...]: ...

    def __getitem__(self, index):
        return self._values[index]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Row):
            return NotImplemented
        return self._hash == other._hash and self._values == other._values

    def __hash__(self) -> int:
        return self._hash

    def __repr__(self) -> str:
        if len(self) == 1:
            return f"Row({self._values[0]!r})"
        return f"Row{self._values!r}"


class RowSet:
    """Multiset of :class:`Row`, i.e. a mapping from rows to occurrence counts.

    Iteration yields every row as often as it occurs, in order of first insertion.
    Use :code:`len()` to get the total number of occurrences.

    Methods
    -------
    add(row: Row, count: int = 1) -> None:
        Add occurrences of a row
    count(row: Row) -> int:
        Number of occurrences of a row
    distinct() -> Iterator[tuple[Row, int]]:
        Distinct rows and their counts
    to_frame(columns: Sequence[str]) -> pd.DataFrame:
        One DataFrame line per occurrence
    """

    __slots__ = ("_counts",)

    def __init__(self, rows: Iterable[Row] = ()):
        self._counts: Counter[Row] = Counter()
        for row in rows:
            self.add(row)

    @staticmethod
    def _from_counter(counts: Counter[Row]) -> RowSet:
        result = RowSet()
        for row, count in counts.items():
            if count < 0:
                raise InternalError(f"Negative multiplicity {count} for {row!r}.")
            if count:
                result._counts[row] = count
        return result

    def add(self, row: Row, count: int = 1) -> None:
        """Add :code:`count` occurrences of :code:`row`."""
        if not isinstance(row, Row):
            raise InvalidUsage(f"Expected Row, got {type(row).__name__}.")
        if count < 1:
            raise InvalidUsage(f"Invalid occurrence count: {count}")
        self._counts[row] += count

    def take(self, row: Row) -> bool:
        """Remove one occurrence of :code:`row`, returns whether there was one."""
        count = self._counts.get(row, 0)
        if count == 0:
            return False
        if count == 1:
            del self._counts[row]
        else:
            self._counts[row] = count - 1
        return True

    def count(self, row: Row) -> int:
        """Number of occurrences of :code:`row`."""
        return self._counts.get(row, 0)

    def distinct(self) -> Iterator[tuple[Row, int]]:
        """Distinct rows with their number of occurrences."""
        return iter(self._counts.items())

    def copy(self) -> RowSet:
        return RowSet._from_counter(self._counts)

    def to_frame(self, columns: Sequence[str]) -> pd.DataFrame:
        """One DataFrame line per row occurrence, using the given column names."""
        return pd.DataFrame(
            [row.values for row in self], columns=list(columns), dtype=object
        )

    def __len__(self) -> int:
        return self._counts.total()

    def __bool__(self) -> bool:
        return bool(self._counts)

    def __iter__(self) -> Iterator[Row]:
        for row, count in self._counts.items():
            for _ in range(count):
                yield row

    def __contains__(self, row: object) -> bool:
        return isinstance(row, Row) and row in self._counts

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RowSet):
            return NotImplemented
        return self._counts == other._counts

    def __repr__(self) -> str:
        return f"RowSet({list(self)!r})"


def diff(old: RowSet, new: RowSet) -> tuple[RowSet, RowSet]:
    """Multiset difference between two snapshots.

    Arguments:
        old :class:`RowSet`:
            Snapshot taken first.
        new :class:`RowSet`:
            Snapshot taken second.

    Returns :class:`tuple[RowSet, RowSet]`:
        Removed rows (:code:`max(0, old - new)` occurrences each) and added rows
        (:code:`max(0, new - old)` occurrences each).
    """
    removed = RowSet._from_counter(old._counts - new._counts)
    added = RowSet._from_counter(new._counts - old._counts)
    return removed, added
