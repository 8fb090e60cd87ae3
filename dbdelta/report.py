# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from dbdelta.rows import Row, RowSet


@dataclass(frozen=True)
class DeltaReport:
    """Outcome of a delta verification.

    Carried by :class:`DeltaAssertionError` and written to error logs.
    """

    name: str = ""
    """Name of the observed table or query."""
    columns: Sequence[str] = ()
    """Column names of the observed rows, empty if unknown."""
    removed: RowSet = field(default_factory=RowSet)
    """Removed rows no declaration accounted for."""
    added: RowSet = field(default_factory=RowSet)
    """Added rows no declaration accounted for."""
    unsatisfied_before: Sequence[Row] = ()
    """Rows declared as removed that were not removed."""
    unsatisfied_after: Sequence[Row] = ()
    """Rows declared as added that were not added."""
    matched: int = 0
    """Number of declarations that matched an actual change."""

    @property
    def ok(self) -> bool:
        """Whether declarations and changes match exactly."""
        return not (
            self.removed
            or self.added
            or self.unsatisfied_before
            or self.unsatisfied_after
        )
