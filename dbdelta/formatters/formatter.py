# Copyright (c) QuantCo 2022-2024
# SPDX-License-Identifier: LicenseRef-QuantCo


from typing import Protocol, TypeVar

from dbdelta.report import DeltaReport

T = TypeVar("T", covariant=True)


class Formatter(Protocol[T]):
    """Protocol for rendering the report of a failed delta verification.

    Used by error logs and for the message of :class:`DeltaAssertionError`.

    Methods
    -------
    format(report: DeltaReport) -> T:
        Formats verification result
    """

    def format(self, report: DeltaReport) -> T:
        """Formats verification result.

        Arguments:
            report :class:`DeltaReport`:
                Unclaimed changes and unsatisfied expectations of a delta.

        Returns :class:`T`:
            Arbitrary output. Usually a string listing the mismatches.
        """
        ...
