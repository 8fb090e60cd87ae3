# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import pandas as pd

from dbdelta.report import DeltaReport
from dbdelta.rows import Row, RowSet


@dataclass(frozen=True)
class FrameFormatter:
    """Implements :class:`Formatter` protocol returning one DataFrame per section.

    Keys are :code:`removed`, :code:`added`, :code:`unsatisfied_before` and
    :code:`unsatisfied_after`. Each DataFrame has one line per row occurrence.

    Methods
    -------
    format(report: DeltaReport) -> dict[str, pd.DataFrame]:
        Formats verification result
    """

    def format(self, report: DeltaReport) -> dict[str, pd.DataFrame]:
        columns = _column_names(report)
        return {
            "removed": report.removed.to_frame(columns),
            "added": report.added.to_frame(columns),
            "unsatisfied_before": RowSet(report.unsatisfied_before).to_frame(columns),
            "unsatisfied_after": RowSet(report.unsatisfied_after).to_frame(columns),
        }


def _column_names(report: DeltaReport) -> Sequence[str]:
    if report.columns:
        return report.columns
    rows: list[Row] = [
        *report.removed,
        *report.added,
        *report.unsatisfied_before,
        *report.unsatisfied_after,
    ]
    width = max((len(row) for row in rows), default=0)
    return [f"#{i}" for i in range(width)]
