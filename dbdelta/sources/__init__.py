# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo

from dbdelta.sources.frame_source import FrameSource
from dbdelta.sources.source import Column, SnapshotProvider
from dbdelta.sources.sql import Query, SqlQuery, Table

__all__ = ["Column", "FrameSource", "Query", "SnapshotProvider", "SqlQuery", "Table"]
