# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

import itertools
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

import numpy as np
import pandas as pd

from dbdelta.errors import InvalidUsage
from dbdelta.rows import Row, RowSet

Filler = Callable[[np.random.Generator], Any]
"""Produces the next value of a column, may draw from the given generator."""
FillerFactory = Callable[[], Filler]

RNG_SEED = 0xDA7ABA5E
"""Seed of the generator used whenever a data set materializes its rows."""


@dataclass(frozen=True)
class _Generated:
    """Batch of :code:`count` rows produced by one filler factory per column."""

    factories: tuple[FillerFactory, ...]
    count: int


class DataSet:
    """Ordered rows for a fixed list of columns, used for setup and declarations.

    Rows are either given explicitly (:meth:`row`, :meth:`rows`) or generated by
    setting one filler per column and calling :meth:`generate`. Pseudo-random
    fillers draw from a :class:`np.random.Generator` that is re-seeded with
    :data:`RNG_SEED` every time the rows are materialized, so a data set always
    yields the same rows.

    Fillers keep their state across :meth:`generate` calls: a sequence set once
    continues where the previous batch stopped. Setting a filler again restarts it.

    Example:

    .. code-block:: python

        ds = (
            DataSet(["id", "login", "created"])
            .sequence("id", 1)
            .cycle("login", ["alice", "bob"])
            .random_range("created", date(2024, 1, 1), date(2024, 12, 31))
            .generate(10)
        )
    """

    def __init__(self, columns: Sequence[str], name: str = ""):
        if not columns:
            raise InvalidUsage("Data set needs at least one column.")
        self._columns = tuple(columns)
        self._name = name
        self._index = {column.lower(): i for i, column in enumerate(self._columns)}
        self._fillers: list[FillerFactory | None] = [None] * len(self._columns)
        self._batches: list[_Generated | list[Row]] = []
        self._cache: list[Row] | None = None

    @staticmethod
    def from_frame(df: pd.DataFrame, columns: Sequence[str] | None = None) -> DataSet:
        """Data set holding the rows of a DataFrame.

        Arguments:
            df :class:`pd.DataFrame`:
                Rows to hold, missing values become :code:`None`.
            columns :class:`Sequence[str]` | :code:`None`:
                Columns to take (in this order), all columns of the DataFrame if None.
        """
        columns = list(columns) if columns is not None else [str(c) for c in df.columns]
        return DataSet(columns).rows(_frame_rows(df, columns))

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def name(self) -> str:
        return self._name

    def _column_index(self, column: str) -> int:
        if not isinstance(column, str):
            raise InvalidUsage(f"Column name must be a string, got {column!r}.")
        idx = self._index.get(column.lower())
        if idx is None:
            raise InvalidUsage(f"Invalid column name: '{column}'.")
        return idx

    def _changed(self) -> DataSet:
        self._cache = None
        return self

    # Explicit rows

    def row(self, *values: Any) -> DataSet:
        """Add one row with the given column values."""
        return self.rows([values])

    def rows(self, rows: Iterable[Sequence[Any] | Mapping[str, Any]]) -> DataSet:
        """Add rows given as sequences of values or mappings from column names."""
        if rows is None:
            raise InvalidUsage("Null rows.")
        batch = as_rows([list(rows)], self._columns)
        self._batches.append(batch)
        return self._changed()

    # Fillers

    def set(self, column: str, filler: Filler) -> DataSet:
        """Set a stateless filler for a column."""
        if filler is None:
            raise InvalidUsage("Null filler.")
        return self._set_factory(column, lambda: filler)

    def _set_factory(self, column: str, factory: FillerFactory) -> DataSet:
        self._fillers[self._column_index(column)] = factory
        return self

    def value(self, column: str, value: Any) -> DataSet:
        """Use a constant value for a column."""
        return self.set(column, lambda rng: value)

    def null_value(self, column: str) -> DataSet:
        return self.value(column, None)

    def remaining_columns_null(self) -> DataSet:
        """Use :code:`None` for all columns without filler."""
        for idx, factory in enumerate(self._fillers):
            if factory is None:
                self._set_factory(self._columns[idx], lambda: lambda rng: None)
        return self

    def sequence(
        self, column: str, initial: Any, step: Any | Callable[[Any], Any] = 1
    ) -> DataSet:
        """Use a sequence starting at :code:`initial` for a column.

        :code:`step` is either added to the previous value, or called with it when
        callable. For :class:`date` and :class:`datetime` values an integer step
        counts days.
        """
        if initial is None or step is None:
            raise InvalidUsage("Null argument.")
        if callable(step):
            advance = step
        elif isinstance(initial, date) and isinstance(step, int):
            days = timedelta(days=step)
            advance = lambda prev: prev + days  # noqa: E731
        else:
            advance = lambda prev: prev + step  # noqa: E731

        def factory() -> Filler:
            state = [initial]

            def fill(rng: np.random.Generator) -> Any:
                value = state[0]
                state[0] = advance(value)
                return value

            return fill

        return self._set_factory(column, factory)

    def indexed(
        self, column: str, func: Callable[[int], Any], start: int = 0
    ) -> DataSet:
        """Use :code:`func(i)` for a column, with i counting up from :code:`start`."""
        if func is None:
            raise InvalidUsage("Null argument.")

        def factory() -> Filler:
            counter = itertools.count(start)
            return lambda rng: func(next(counter))

        return self._set_factory(column, factory)

    def cycle(self, column: str, values: Sequence[Any]) -> DataSet:
        """Repeat the given values in order for a column."""
        values = _non_empty(values)
        return self.indexed(column, lambda i: values[i % len(values)])

    def random_choice(self, column: str, values: Sequence[Any]) -> DataSet:
        """Pick uniformly among the given values for a column."""
        values = _non_empty(values)
        return self.set(column, lambda rng: values[int(rng.integers(len(values)))])

    def random_range(self, column: str, low: Any, high: Any) -> DataSet:
        """Draw uniformly from a range for a column.

        Integers, dates and datetimes are drawn from :code:`[low, high]`, floats
        from :code:`[low, high)`. Datetimes have microsecond resolution.
        """
        if low is None or high is None:
            raise InvalidUsage("Null value for range bound.")
        if type(low) is not type(high):
            raise InvalidUsage(f"Range bounds of different types: {low!r}, {high!r}")
        if not low < high:
            raise InvalidUsage(f"Invalid range: {low!r} >= {high!r}")
        if isinstance(low, datetime):
            span = (high - low) // timedelta(microseconds=1)
            return self.set(
                column,
                lambda rng: low
                + timedelta(microseconds=int(rng.integers(span, endpoint=True))),
            )
        if isinstance(low, date):
            a, b = low.toordinal(), high.toordinal()
            return self.set(
                column,
                lambda rng: date.fromordinal(int(rng.integers(a, b, endpoint=True))),
            )
        if isinstance(low, int):
            return self.set(
                column, lambda rng: int(rng.integers(low, high, endpoint=True))
            )
        if isinstance(low, float):
            return self.set(column, lambda rng: float(rng.uniform(low, high)))
        raise InvalidUsage(f"Unsupported range type: {type(low).__name__}")

    def random_with(
        self, column: str, func: Callable[[np.random.Generator], Any]
    ) -> DataSet:
        """Use :code:`func(rng)` for a column, drawing from the seeded generator."""
        return self.set(column, func)

    def reset(self) -> DataSet:
        """Unset all fillers, generated rows are kept."""
        self._fillers = [None] * len(self._columns)
        return self

    def generate(self, count: int) -> DataSet:
        """Add :code:`count` rows produced by the current fillers."""
        if count is None or count <= 0:
            raise InvalidUsage(f"Invalid value for parameter: {count}")
        for column, factory in zip(self._columns, self._fillers):
            if factory is None:
                raise InvalidUsage(f"No filler is set for column '{column}'.")
        factories = tuple(f for f in self._fillers if f is not None)
        self._batches.append(_Generated(factories, count))
        return self._changed()

    # Materialization

    def _materialize(self) -> list[Row]:
        rng = np.random.default_rng(RNG_SEED)
        live: dict[FillerFactory, Filler] = {}
        rows: list[Row] = []
        for batch in self._batches:
            if isinstance(batch, list):
                rows.extend(batch)
                continue
            for factory in batch.factories:
                if factory not in live:
                    live[factory] = factory()
            fillers = [live[factory] for factory in batch.factories]
            for _ in range(batch.count):
                rows.append(Row(*(fill(rng) for fill in fillers)))
        return rows

    def row_list(self) -> list[Row]:
        if self._cache is None:
            self._cache = self._materialize()
        return list(self._cache)

    def row_set(self) -> RowSet:
        return RowSet(self.row_list())

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [row.values for row in self], columns=list(self._columns), dtype=object
        )

    def __iter__(self) -> Iterator[Row]:
        return iter(self.row_list())

    def __len__(self) -> int:
        return sum(
            batch.count if isinstance(batch, _Generated) else len(batch)
            for batch in self._batches
        )

    def __repr__(self) -> str:
        return f"DataSet({list(self._columns)!r}, rows={len(self)})"


def _non_empty(values: Sequence[Any]) -> Sequence[Any]:
    if values is None:
        raise InvalidUsage("Null list argument.")
    values = list(values)
    if not values:
        raise InvalidUsage("Empty list argument.")
    return values


def _frame_rows(df: pd.DataFrame, columns: Sequence[str]) -> list[Row]:
    """Rows of a DataFrame in the given column order, NaN/NaT become None."""
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise InvalidUsage(f"DataFrame lacks columns {missing}.")
    selected = df[list(columns)].astype(object)
    selected = selected.where(selected.notna(), None)
    return [Row(*values) for values in selected.itertuples(index=False, name=None)]


def _mapping_row(mapping: Mapping[str, Any], columns: Sequence[str]) -> Row:
    if not columns:
        raise InvalidUsage("Mappings need known column names.")
    lowered = {str(key).lower(): value for key, value in mapping.items()}
    if set(lowered) != {c.lower() for c in columns}:
        raise InvalidUsage(
            f"Keys {list(mapping)} do not match columns {list(columns)}."
        )
    return Row(*(lowered[c.lower()] for c in columns))


def _entry_row(entry: Any, columns: Sequence[str]) -> Row:
    if isinstance(entry, Row):
        return entry
    if isinstance(entry, Mapping):
        return _mapping_row(entry, columns)
    if isinstance(entry, tuple | list):
        return Row(*entry)
    raise InvalidUsage(f"Not a row: {entry!r}")


def _item_rows(item: Any, columns: Sequence[str]) -> list[Row]:
    if item is None:
        raise InvalidUsage("Null data.")
    if isinstance(item, Row):
        return [item]
    if isinstance(item, DataSet):
        lowered = [c.lower() for c in columns]
        if columns and [c.lower() for c in item.columns] != lowered:
            raise InvalidUsage(
                f"Data set columns {list(item.columns)} differ from {list(columns)}."
            )
        return item.row_list()
    if isinstance(item, pd.DataFrame):
        return _frame_rows(item, columns or [str(c) for c in item.columns])
    if isinstance(item, Mapping):
        return [_mapping_row(item, columns)]
    if isinstance(item, str | bytes) or not isinstance(item, Iterable):
        raise InvalidUsage(f"Not a row or collection of rows: {item!r}")
    return [_entry_row(entry, columns) for entry in item]


def as_rows(data: Iterable[Any], columns: Sequence[str] = ()) -> list[Row]:
    """Flatten declaration arguments into rows.

    Arguments:
        data :class:`Iterable`:
            Items that are each a :class:`Row`, :class:`DataSet`, :class:`pd.DataFrame`,
            mapping from column names, or iterable of rows / tuples / lists / mappings.
        columns :class:`Sequence[str]`:
            Expected column names, empty if unknown.

    Returns :class:`list[Row]`:
        All rows in declaration order.
    """
    rows = [row for item in data for row in _item_rows(item, columns)]
    for row in rows:
        if columns and len(row) != len(columns):
            raise InvalidUsage(
                f"{row!r} has {len(row)} values, expected {len(columns)} "
                f"for columns {list(columns)}."
            )
    return rows
