# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from __future__ import annotations

from dataclasses import dataclass, field, replace

from dbdelta.formatters.detailed_text_formatter import DetailedTextFormatter
from dbdelta.formatters.formatter import Formatter
from dbdelta.log import Log


@dataclass(frozen=True)
class DeltaConfig:
    """Settings shared by an observer and the deltas it produces.

    Pass an instance to :class:`Observer` (or :func:`observe`); observers without
    one use :data:`DEFAULT_CONFIG`.

    Methods
    -------
    with_error_log(log: Log | None) -> DeltaConfig:
        Copy with a different error log
    """

    error_log: Log | None = None
    """Receives the report of every failed verification, None to disable."""
    formatter: Formatter[str] = field(default_factory=DetailedTextFormatter)
    """Renders the message of :class:`DeltaAssertionError`."""

    def with_error_log(self, log: Log | None) -> DeltaConfig:
        return replace(self, error_log=log)


DEFAULT_CONFIG = DeltaConfig()
"""Configuration used when none is given: no error log, full text reports."""
