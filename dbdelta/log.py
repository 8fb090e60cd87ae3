# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, TextIO

from dbdelta.formatters.detailed_text_formatter import DetailedTextFormatter
from dbdelta.formatters.formatter import Formatter
from dbdelta.report import DeltaReport


class Log(Protocol):
    """Protocol for sinks receiving reports of failed delta verifications.

    Logs are owned by the caller; dbdelta only writes to them and never closes them.

    Methods
    -------
    write(report: DeltaReport) -> None:
        Record a failed verification
    """

    def write(self, report: DeltaReport) -> None: ...


@dataclass
class StreamLog:
    """Implements :class:`Log` protocol by writing text reports to a stream."""

    stream: TextIO
    """Text stream, e.g. :code:`sys.stderr`."""
    formatter: Formatter[str] = field(default_factory=DetailedTextFormatter)
    """Renders a report as text."""

    def write(self, report: DeltaReport) -> None:
        self.stream.write(self.formatter.format(report) + "\n")
        self.stream.flush()


@dataclass
class FileLog:
    """Implements :class:`Log` protocol by appending text reports to a file.

    The file is opened for each report and closed right after.
    """

    path: Path
    """File to append reports to, created if missing."""
    formatter: Formatter[str] = field(default_factory=DetailedTextFormatter)
    """Renders a report as text."""

    def __post_init__(self):
        self.path = Path(self.path)

    def write(self, report: DeltaReport) -> None:
        with self.path.open("a", encoding="utf-8") as file:
            file.write(self.formatter.format(report) + "\n")


@dataclass
class LoggerLog:
    """Implements :class:`Log` protocol by emitting text reports as log records."""

    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger("dbdelta.errors")
    )
    """Logger receiving one record per report."""
    level: int = logging.ERROR
    """Level of the emitted records."""
    formatter: Formatter[str] = field(default_factory=DetailedTextFormatter)
    """Renders a report as text."""

    def write(self, report: DeltaReport) -> None:
        self.logger.log(
            self.level, "Delta verification failed:\n%s", self.formatter.format(report)
        )
