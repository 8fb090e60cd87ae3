# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from dbdelta.conversion import Conversion
from dbdelta.dataset import as_rows
from dbdelta.errors import InvalidUsage
from dbdelta.rows import RowSet
from dbdelta.sources.source import Column


@dataclass
class FrameSource:
    """Implements :class:`SnapshotProvider` for data held in pandas DataFrames.

    :attr:`produce` is called on every query, e.g. to read a file or an in-memory
    table that the code under test modifies.
    """

    column_names: Sequence[str]
    """Columns to observe, in order. Each must exist in the produced DataFrames."""
    produce: Callable[[], pd.DataFrame]
    """Returns the current data."""
    name: str = ""
    """Name used in reports."""
    conversion: Conversion[Any] | None = None
    """Mapping to domain objects, makes observers of this source typed."""

    def __post_init__(self):
        if not self.column_names:
            raise InvalidUsage("At least one column is required.")
        self.column_names = tuple(self.column_names)

    def columns(self) -> tuple[Column, ...]:
        return tuple(Column(name) for name in self.column_names)

    def query(self) -> RowSet:
        return RowSet(as_rows([self.produce()], self.column_names))
