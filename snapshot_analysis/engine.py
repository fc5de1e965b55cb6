"""Statevector results engine.

``VectorEngine`` composes the basic shot counter with the snapshot
statistics, accumulator and renderer.  One engine is owned by each
worker; after all shots ran, worker engines are merged in shot order
with ``merge`` (or ``combine_engines``) and the final engine is rendered
with ``to_document``.

Collaborator contracts:
    backend: ``access_snapshots() -> {label: amplitude_vector}`` for the
        current shot and ``access_qreg()`` for the working vector;
        optionally ``access_creg() -> str`` for classical outcomes.
    circuit: ``qubit_sizes`` as ``(register_name, n_qudits)`` pairs in
        declaration order.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Sequence, Tuple

from numpy.typing import ArrayLike

from snapshot_analysis.accumulator import SnapshotAccumulator
from snapshot_analysis.config import SnapshotConfig, resolve_config
from snapshot_analysis.counts import ShotCounts
from snapshot_analysis.renderer import SnapshotRenderer
from snapshot_analysis.statistics import SnapshotStatistics

logger = logging.getLogger(__name__)


class SnapshotBackend(Protocol):
    def access_qreg(self) -> ArrayLike: ...

    def access_snapshots(self) -> Mapping[int, ArrayLike]: ...


class RegisterLayout(Protocol):
    qubit_sizes: Sequence[Tuple[str, int]]


class VectorEngine:
    """Aggregates shot results and snapshot statistics for one worker.

    Args:
        config: Resolved snapshot configuration.  Defaults to everything
            disabled.
    """

    def __init__(self, config: Optional[SnapshotConfig] = None):
        self.config = config or SnapshotConfig()
        self.base = ShotCounts()
        self.statistics = SnapshotStatistics(self.config)
        self.accumulator = SnapshotAccumulator()
        self.renderer = SnapshotRenderer(self.config)
        logger.info(
            "VectorEngine initialized: %s, chop=%g, qudit_dim=%d, %d target states",
            self.config.selectors, self.config.chop, self.config.qudit_dim,
            len(self.config.target_states),
        )

    @classmethod
    def from_config(cls, document: Mapping[str, Any] | None) -> "VectorEngine":
        """Create an engine from a decoded configuration document."""
        return cls(resolve_config(document))

    @property
    def total_shots(self) -> int:
        return self.base.total_shots

    def compute_results(self, circuit: RegisterLayout, backend: SnapshotBackend) -> None:
        """Record the shot that *backend* just finished.

        Raises:
            SizeMismatchError: If a target state does not match a snapshot
                length.  The shot is neither counted nor accumulated.
        """
        register_sizes = getattr(circuit, "qubit_sizes", ())
        self.statistics.compute(
            backend.access_snapshots(), self.accumulator, register_sizes
        )
        self.base.compute(backend)

    def merge(self, other: "VectorEngine") -> "VectorEngine":
        """Merge the results of *other* (later shots) into this engine.

        Both engines must have been built from the same configuration;
        this is not re-checked.
        """
        self.base.merge(other.base)
        self.accumulator.merge(other.accumulator)
        return self

    def to_document(self) -> Dict[str, Any]:
        """Render the base results followed by the snapshot fields."""
        document = self.base.encode()
        document.update(self.renderer.encode(self.accumulator, self.base.total_shots))
        return document


def combine_engines(engines: Iterable[VectorEngine]) -> VectorEngine:
    """Reduce worker engines, in order, into the first one.

    Raises:
        ValueError: If *engines* is empty.
    """
    iterator = iter(engines)
    try:
        combined = next(iterator)
    except StopIteration:
        raise ValueError("combine_engines requires at least one engine") from None
    n_merged = 1
    for engine in iterator:
        combined.merge(engine)
        n_merged += 1
    logger.info(
        "Combined %d engines: %d total shots", n_merged, combined.total_shots
    )
    return combined
