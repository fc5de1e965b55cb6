"""Shot counting and classical outcome counts.

The basic results layer under the snapshot statistics: it tracks how
many shots an engine has processed (the denominator used to average
snapshot sums) and, when the backend exposes a classical register
readout, a histogram of measured bit strings.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


class ShotCounts:
    """Shot total and classical-register histogram of one engine."""

    def __init__(self) -> None:
        self.total_shots = 0
        self.counts: Dict[str, int] = {}

    def compute(self, backend: Any) -> None:
        """Record one finished shot.

        The outcome is read from ``backend.access_creg()`` when the
        backend provides it; empty readouts are not counted.
        """
        self.total_shots += 1
        read_creg = getattr(backend, "access_creg", None)
        if read_creg is None:
            return
        outcome = read_creg()
        if outcome:
            self.counts[outcome] = self.counts.get(outcome, 0) + 1

    def merge(self, other: "ShotCounts") -> "ShotCounts":
        self.total_shots += other.total_shots
        for outcome, count in other.counts.items():
            self.counts[outcome] = self.counts.get(outcome, 0) + count
        return self

    def encode(self) -> Dict[str, Any]:
        document: Dict[str, Any] = {"shots": self.total_shots}
        if self.counts:
            document["counts"] = dict(sorted(self.counts.items()))
        return document
