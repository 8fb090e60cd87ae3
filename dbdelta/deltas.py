# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from dbdelta.config import DEFAULT_CONFIG, DeltaConfig
from dbdelta.conversion import Conversion
from dbdelta.dataset import as_rows
from dbdelta.errors import DeltaAssertionError, InternalError, InvalidUsage
from dbdelta.report import DeltaReport
from dbdelta.rows import Row, RowSet, diff

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Delta:
    """Changes between two snapshots, together with their verification.

    Declare expected changes with :meth:`before` (removed rows) and :meth:`after`
    (added rows), in any order and over as many calls as needed, then call
    :meth:`end`. Declarations are only checked by :meth:`end`, which fails unless
    the declarations account for every change and every declaration matches a
    change.

    Methods
    -------
    before(*data) -> Delta:
        Declare removed rows
    after(*data) -> Delta:
        Declare added rows
    end() -> int:
        Verify declarations, returns number of matched changes
    """

    def __init__(
        self,
        old: RowSet,
        new: RowSet,
        columns: Sequence[str] = (),
        name: str = "",
        config: DeltaConfig | None = None,
    ):
        if old is None or new is None:
            raise InvalidUsage("Null snapshot.")
        self._columns = tuple(columns)
        self._name = name
        self._config = config or DEFAULT_CONFIG
        self._removed, self._added = diff(old, new)
        self._removed_total = len(self._removed)
        self._added_total = len(self._added)
        self._matched_removed = 0
        self._matched_added = 0
        self._unsatisfied_before: list[Row] = []
        self._unsatisfied_after: list[Row] = []
        self._ended = False
        logger.debug(
            "Delta %s: %d removed, %d added.",
            name or "<unnamed>",
            self._removed_total,
            self._added_total,
        )

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def pending_removed(self) -> RowSet:
        """Removed rows not declared yet."""
        return self._removed.copy()

    @property
    def pending_added(self) -> RowSet:
        """Added rows not declared yet."""
        return self._added.copy()

    @property
    def unsatisfied_before(self) -> list[Row]:
        return list(self._unsatisfied_before)

    @property
    def unsatisfied_after(self) -> list[Row]:
        return list(self._unsatisfied_after)

    @property
    def matched(self) -> int:
        """Number of declarations matched so far."""
        return self._matched_removed + self._matched_added

    @property
    def ended(self) -> bool:
        return self._ended

    def before(self, *data: Any) -> Delta:
        """Declare rows that were removed.

        Arguments:
            *data :class:`Row` | :class:`DataSet` | :class:`pd.DataFrame` | rows:
                Rows, data sets, DataFrames, mappings or iterables of rows /
                tuples / mappings.

        Returns :class:`Delta`:
            This delta, for chaining.
        """
        for row in self._declarations(data):
            if self._removed.take(row):
                self._matched_removed += 1
            else:
                self._unsatisfied_before.append(row)
        return self

    def after(self, *data: Any) -> Delta:
        """Declare rows that were added.

        Accepts the same arguments as :meth:`before`.
        """
        for row in self._declarations(data):
            if self._added.take(row):
                self._matched_added += 1
            else:
                self._unsatisfied_after.append(row)
        return self

    def _declarations(self, data: tuple[Any, ...]) -> list[Row]:
        self._ensure_open()
        if not data:
            raise InvalidUsage("No rows declared.")
        return as_rows(data, self._columns)

    def _ensure_open(self) -> None:
        if self._ended:
            raise InvalidUsage("Delta verification has already ended.")

    def _check_accounting(self) -> None:
        """Every observed change is either matched or still pending."""
        if self._matched_removed + len(self._removed) != self._removed_total:
            raise InternalError(
                f"Removed rows lost: {self._removed_total} observed, "
                f"{self._matched_removed} matched, {len(self._removed)} pending."
            )
        if self._matched_added + len(self._added) != self._added_total:
            raise InternalError(
                f"Added rows lost: {self._added_total} observed, "
                f"{self._matched_added} matched, {len(self._added)} pending."
            )

    def report(self) -> DeltaReport:
        """Current state of the verification."""
        return DeltaReport(
            name=self._name,
            columns=self._columns,
            removed=self._removed.copy(),
            added=self._added.copy(),
            unsatisfied_before=tuple(self._unsatisfied_before),
            unsatisfied_after=tuple(self._unsatisfied_after),
            matched=self.matched,
        )

    def end(self) -> int:
        """Verify declarations against the observed changes.

        On failure the report is written to the configured error log before raising.

        Returns :class:`int`:
            Number of matched changes.

        Raises :class:`DeltaAssertionError`:
            If a change was not declared or a declaration matched no change.
        """
        self._ensure_open()
        self._ended = True
        self._check_accounting()
        report = self.report()
        if report.ok:
            logger.debug("Delta %s verified: %d changes.", self._name, report.matched)
            return report.matched
        if self._config.error_log is not None:
            self._config.error_log.write(report)
        raise DeltaAssertionError(self._config.formatter.format(report), report)

    def __repr__(self) -> str:
        state = "ended" if self._ended else "open"
        return (
            f"Delta({self._name!r}, removed={len(self._removed)}, "
            f"added={len(self._added)}, {state})"
        )


class TypedDelta(Generic[T]):
    """:class:`Delta` declared in terms of domain objects.

    Objects are encoded with the :class:`Conversion` of the observer. Lists of
    objects are accepted wherever a single object is.
    """

    def __init__(self, delta: Delta, conversion: Conversion[T]):
        self._delta = delta
        self._conversion = conversion

    @property
    def delta(self) -> Delta:
        """Underlying row-level delta."""
        return self._delta

    def _encode(self, objects: tuple[T | list[T], ...]) -> list[Row]:
        if not objects:
            raise InvalidUsage("No objects declared.")
        return self._conversion.rows(objects, self._delta.columns)

    def before(self, *objects: T | list[T]) -> TypedDelta[T]:
        """Declare objects that were removed."""
        self._delta.before(self._encode(objects))
        return self

    def after(self, *objects: T | list[T]) -> TypedDelta[T]:
        """Declare objects that were added."""
        self._delta.after(self._encode(objects))
        return self

    def removed(self) -> list[T]:
        """Removed objects not declared yet."""
        return [self._conversion.from_row(row) for row in self._delta.pending_removed]

    def added(self) -> list[T]:
        """Added objects not declared yet."""
        return [self._conversion.from_row(row) for row in self._delta.pending_added]

    def end(self) -> int:
        return self._delta.end()
