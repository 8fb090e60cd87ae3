# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

import logging
from typing import Any, Generic, TypeVar

from dbdelta.config import DEFAULT_CONFIG, DeltaConfig
from dbdelta.conversion import Conversion
from dbdelta.dataset import as_rows
from dbdelta.deltas import Delta, TypedDelta
from dbdelta.errors import InvalidUsage
from dbdelta.log import Log
from dbdelta.rows import Row, RowSet
from dbdelta.sources.source import SnapshotProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Observer:
    """Watches a table or query and reports what changed between checkpoints.

    The observer keeps the last known state (the baseline). Each call to
    :meth:`get_delta` queries the source, returns the changes since the baseline
    and makes the new state the baseline.

    Arguments:
        source :class:`SnapshotProvider`:
            Table or query to observe. Connections are borrowed, never closed.
        data :class:`DataSet` | rows | :code:`None`:
            Current content of the source, if known. Skips the initial query; the
            content is trusted without verification.
        config :class:`DeltaConfig` | :code:`None`:
            Error log and report settings, :data:`DEFAULT_CONFIG` if None.
    """

    def __init__(
        self,
        source: SnapshotProvider,
        data: Any = None,
        config: DeltaConfig | None = None,
    ):
        if source is None:
            raise InvalidUsage("Null source.")
        self._source = source
        self._config = config or DEFAULT_CONFIG
        self._columns = tuple(column.name for column in source.columns())
        if data is None:
            self._baseline = source.query()
        else:
            self._baseline = RowSet(self._initial_rows(data))
        logger.debug("Observing %s with %d rows.", source.name, len(self._baseline))

    def _initial_rows(self, data: Any) -> list[Row]:
        return as_rows([data], self._columns)

    @property
    def source(self) -> SnapshotProvider:
        return self._source

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def baseline(self) -> RowSet:
        """Rows as of the last checkpoint."""
        return self._baseline

    @property
    def config(self) -> DeltaConfig:
        return self._config

    def log_errors_to(self, log: Log | None) -> None:
        """Write reports of failed verifications of future deltas to :code:`log`."""
        self._config = self._config.with_error_log(log)

    def _next_delta(self) -> Delta:
        snapshot = self._source.query()
        delta = Delta(
            self._baseline,
            snapshot,
            columns=self._columns,
            name=self._source.name,
            config=self._config,
        )
        self._baseline = snapshot
        return delta

    def get_delta(self) -> Delta:
        """Query the source and return the changes since the last checkpoint.

        The new snapshot becomes the baseline for the next call.
        """
        return self._next_delta()

    def __repr__(self) -> str:
        name, rows = self._source.name, len(self._baseline)
        return f"{type(self).__name__}({name!r}, rows={rows})"


class TypedObserver(Observer, Generic[T]):
    """:class:`Observer` whose deltas are declared in terms of domain objects.

    The :class:`Conversion` is taken from the source unless given explicitly.
    Initial data may be given as domain objects.
    """

    def __init__(
        self,
        source: SnapshotProvider,
        data: Any = None,
        config: DeltaConfig | None = None,
        conversion: Conversion[T] | None = None,
    ):
        conversion = conversion or getattr(source, "conversion", None)
        if conversion is None:
            raise InvalidUsage("Typed observation needs a conversion.")
        self._conversion: Conversion[T] = conversion
        super().__init__(source, data, config)

    @property
    def conversion(self) -> Conversion[T]:
        return self._conversion

    def _initial_rows(self, data: Any) -> list[Row]:
        return as_rows([self._conversion.rows([data], self._columns)], self._columns)

    def get_delta(self) -> TypedDelta[T]:  # type: ignore[override]
        return TypedDelta(self._next_delta(), self._conversion)
