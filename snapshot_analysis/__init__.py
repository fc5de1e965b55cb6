"""Snapshot analysis: results aggregation for statevector simulations.

Merges labeled amplitude-vector snapshots captured across many shots into
running statistics and renders shot-averaged, noise-chopped views of
them: ket forms, density matrices, basis probabilities, and inner
products and overlaps with reference target states.

Modules:
    numerics: Chop, ket-label, probability and product helpers
    config: Configuration document resolution (output tokens, chop, radix, targets)
    accumulator: Additive/concatenating per-label statistics with merge
    statistics: Per-shot computation of the enabled quantities
    renderer: Shot averaging, chopping and JSON-compatible encoding
    counts: Shot totals and classical outcome counts
    engine: Worker engine composing the above, and the merge reduction
"""

from snapshot_analysis.accumulator import AdditiveMap, ConcatMap, SnapshotAccumulator
from snapshot_analysis.config import (
    DEFAULT_CHOP,
    DEFAULT_QUDIT_DIM,
    OutputSelectors,
    SnapshotConfig,
    resolve_config,
)
from snapshot_analysis.counts import ShotCounts
from snapshot_analysis.engine import VectorEngine, combine_engines
from snapshot_analysis.renderer import SnapshotRenderer, dumps
from snapshot_analysis.statistics import SizeMismatchError, SnapshotStatistics

__all__ = [
    "AdditiveMap",
    "ConcatMap",
    "SnapshotAccumulator",
    "DEFAULT_CHOP",
    "DEFAULT_QUDIT_DIM",
    "OutputSelectors",
    "SnapshotConfig",
    "resolve_config",
    "ShotCounts",
    "VectorEngine",
    "combine_engines",
    "SnapshotRenderer",
    "dumps",
    "SizeMismatchError",
    "SnapshotStatistics",
]
