# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from dbdelta.rows import RowSet


@dataclass(frozen=True)
class Column:
    """Describes one column of the rows returned by a :class:`SnapshotProvider`."""

    name: str
    """Name of the column, or the SQL expression it was selected with."""


class SnapshotProvider(Protocol):
    """Protocol for data sources an :class:`Observer` can watch.

    Methods
    -------
    columns() -> tuple[Column, ...]:
        Columns of the returned rows, in order
    query() -> RowSet:
        Read the current rows
    """

    @property
    def name(self) -> str:
        """Name used in reports."""
        ...

    def columns(self) -> tuple[Column, ...]:
        """Columns of the returned rows, in order."""
        ...

    def query(self) -> RowSet:
        """Read the current rows.

        Executes the underlying read on every call, without caching.

        Raises :class:`DatabaseError`:
            If the read fails.
        """
        ...
