# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from dbdelta.report import DeltaReport
from dbdelta.rows import Row


def _cell(value: Any) -> str:
    """Deterministic, type-revealing representation of a column value."""
    if value is None:
        return "NULL"
    return repr(value)


@dataclass(frozen=True)
class DetailedTextFormatter:
    """Implements :class:`Formatter` protocol for a text report of a failed delta.

    Lists unclaimed changes grouped under REMOVED and ADDED, followed by
    expectations that did not match any change.

    Methods
    -------
    format(report: DeltaReport) -> str:
        Formats verification result
    """

    row_limit: int | None = None
    """How many distinct rows per section to show in the report.

    None to show all.
    """
    width: int = 80
    """Width of the report header."""

    def format(self, report: DeltaReport) -> str:
        """Formats verification result.

        Arguments:
            report :class:`DeltaReport`:
                Unclaimed changes and unsatisfied expectations of a delta.

        Returns :class:`str`:
            Line-separated report.
        """
        title = " DbDelta Report "
        if report.name:
            title = f" DbDelta Report: {report.name} "
        lines = [title.center(self.width, "-")]
        if report.columns:
            lines.append(f"Columns: {list(report.columns)}")
        lines.append(f"{report.matched} declared changes matched.")

        sections: list[tuple[str, str, Iterable[tuple[Row, int]]]] = [
            ("REMOVED", "unclaimed", report.removed.distinct()),
            ("ADDED", "unclaimed", report.added.distinct()),
            ("REMOVED", "expected but not found", _grouped(report.unsatisfied_before)),
            ("ADDED", "expected but not found", _grouped(report.unsatisfied_after)),
        ]
        for name, kind, rows in sections:
            listed = list(rows)
            if listed:
                total = sum(count for _, count in listed)
                lines.append("")
                lines.append(f"{name} - {total} {kind}:")
                lines.extend(_show_rows(listed, report.columns, self.row_limit))

        if report.ok:
            lines.append("No differences.")
        return "\n".join(lines)


def _grouped(rows: Sequence[Row]) -> Iterable[tuple[Row, int]]:
    """Collapse repeated rows into (row, count) pairs, keeping first occurrence
    order."""
    return Counter(rows).items()


def _show_rows(
    rows: list[tuple[Row, int]], columns: Sequence[str] | None, limit: int | None
) -> list[str]:
    """Returns rows as column-aligned lines, prefixed by their multiplicity.

    > _show_rows([(Row("x", 9), 2), (Row("y", 1), 1)], ["login", "n"], None)
          login│n
    (2x)  'x'  │9
          'y'  │1
    """
    if not rows:
        return []
    width = max(len(row) for row, _ in rows)
    header = list(columns) if columns else [f"#{i}" for i in range(width)]
    shown = rows if limit is None else rows[:limit]
    cells = [header] + [[_cell(value) for value in row] for row, _ in shown]
    prefixes = [""] + [f"({count}x)" * (count > 1) for _, count in shown]
    widths = [
        max(len(ln[i]) for ln in cells if i < len(ln)) for i in range(len(header))
    ]
    pre = max(len(p) for p in prefixes) + 2 if any(prefixes) else 0
    result = []
    for prefix, line in zip(prefixes, cells):
        text = "│".join(c.ljust(w) for c, w in zip(line, widths))
        result.append((prefix.ljust(pre) + text).rstrip())
    if len(shown) < len(rows):
        hidden = sum(count for _, count in rows[len(shown) :])
        result.append(f"...{hidden} other rows")
    return result
