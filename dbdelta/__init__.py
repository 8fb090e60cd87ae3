# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo

import importlib.metadata
import warnings

try:
    __version__ = importlib.metadata.version(__name__)
except importlib.metadata.PackageNotFoundError as e:  # pragma: no cover
    warnings.warn(f"Could not determine version of {__name__}\n{e!s}", stacklevel=2)
    __version__ = "unknown"

from dbdelta.api import (
    assert_changed,
    assert_deleted,
    assert_inserted,
    assert_no_changes,
    data,
    delete_all,
    delta,
    execute,
    insert,
    observe,
    select_from,
    select_using,
    table,
    truncate,
    verify,
)
from dbdelta.config import DEFAULT_CONFIG, DeltaConfig
from dbdelta.conversion import Conversion
from dbdelta.dataset import DataSet
from dbdelta.deltas import Delta, TypedDelta
from dbdelta.errors import (
    DatabaseError,
    DbDeltaError,
    DeltaAssertionError,
    InternalError,
    InvalidUsage,
)
from dbdelta.formatters.detailed_text_formatter import DetailedTextFormatter
from dbdelta.formatters.formatter import Formatter
from dbdelta.formatters.frame_formatter import FrameFormatter
from dbdelta.log import FileLog, Log, LoggerLog, StreamLog
from dbdelta.observer import Observer, TypedObserver
from dbdelta.report import DeltaReport
from dbdelta.rows import Row, RowSet, diff
from dbdelta.sources import (
    Column,
    FrameSource,
    Query,
    SnapshotProvider,
    SqlQuery,
    Table,
)

__all__ = [
    "Row",
    "RowSet",
    "diff",
    "Delta",
    "TypedDelta",
    "DeltaReport",
    "Observer",
    "TypedObserver",
    "Conversion",
    "DataSet",
    "DeltaConfig",
    "DEFAULT_CONFIG",
    "Log",
    "StreamLog",
    "FileLog",
    "LoggerLog",
    "Formatter",
    "DetailedTextFormatter",
    "FrameFormatter",
    "SnapshotProvider",
    "Column",
    "Table",
    "Query",
    "SqlQuery",
    "FrameSource",
    "DbDeltaError",
    "InvalidUsage",
    "DeltaAssertionError",
    "DatabaseError",
    "InternalError",
    "table",
    "select_from",
    "select_using",
    "data",
    "observe",
    "delta",
    "verify",
    "assert_no_changes",
    "assert_inserted",
    "assert_deleted",
    "assert_changed",
    "insert",
    "delete_all",
    "truncate",
    "execute",
]
