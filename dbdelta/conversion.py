# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import pandas as pd

from dbdelta.dataset import DataSet, as_rows
from dbdelta.errors import InvalidUsage
from dbdelta.rows import Row

T = TypeVar("T")


@dataclass(frozen=True)
class Conversion(Generic[T]):
    """Bidirectional mapping between domain objects and rows.

    Both functions must agree on the column order of the source they are used with,
    and :code:`decode(encode(obj)) == obj` must hold.

    Methods
    -------
    to_row(obj: T) -> Row:
        Encode a domain object
    from_row(row: Row) -> T:
        Decode a row
    for_namedtuple(cls: type[T]) -> Conversion[T]:
        Conversion for a NamedTuple whose fields follow the column order
    rows(items: Iterable[Any], columns: Sequence[str] = ()) -> list[Row]:
        Rows for objects, lists of objects, rows, data sets, DataFrames and
        mappings
    """

    encode: Callable[[T], Sequence[Any]]
    """Turns a domain object into column values."""
    decode: Callable[[Row], T]
    """Turns a row into a domain object."""

    def to_row(self, obj: T) -> Row:
        if obj is None:
            raise InvalidUsage("Null object.")
        return Row.of(self.encode(obj))

    def from_row(self, row: Row) -> T:
        return self.decode(row)

    @staticmethod
    def for_namedtuple(cls: type[T]) -> Conversion[T]:
        return Conversion(tuple, lambda row: cls(*row))  # type: ignore

    def rows(self, items: Iterable[Any], columns: Sequence[str] = ()) -> list[Row]:
        """Rows for a mix of domain objects, lists of them and raw row data.

        Data sets, DataFrames and mappings from column names are read as rows for
        :code:`columns`, everything else is encoded.
        """
        result: list[Row] = []
        for item in items:
            if isinstance(item, Row):
                result.append(item)
            elif isinstance(item, DataSet | pd.DataFrame | Mapping):
                result.extend(as_rows([item], columns))
            elif isinstance(item, list):
                result.extend(self.rows(item, columns))
            else:
                result.append(self.to_row(item))
        return result
