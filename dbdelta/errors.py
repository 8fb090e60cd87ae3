# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dbdelta.report import DeltaReport


class DbDeltaError(Exception):
    """Base class for all errors raised by dbdelta."""


class InvalidUsage(DbDeltaError, ValueError):
    """The library was called in a way it does not support.

    Raised immediately at the call site, before any database access.
    """


class DeltaAssertionError(DbDeltaError, AssertionError):
    """Declared changes and observed changes of a delta disagree.

    The complete mismatch is available as :attr:`report`.
    """

    def __init__(self, message: str, report: DeltaReport):
        super().__init__(message)
        self.report = report


class DatabaseError(DbDeltaError):
    """A database operation failed.

    The original exception is kept as :code:`__cause__`.
    """


class InternalError(DbDeltaError, RuntimeError):
    """An invariant of the delta engine was violated, which indicates a bug in
    dbdelta rather than in the calling test."""
