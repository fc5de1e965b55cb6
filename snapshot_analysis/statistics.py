"""Per-shot snapshot statistics.

For every shot the backend hands over a ``{label: amplitude_vector}``
mapping of captured snapshots.  ``SnapshotStatistics.compute`` derives
the enabled quantities from it and folds them into a
``SnapshotAccumulator``:

    ket form        sparse {digit_string: amplitude}, chopped
    density         |psi><psi|
    probabilities   |psi_i|^2 (dense) and |amp|^2 (ket form)
    inner products  <t_j|psi> for every target state t_j, chopped
    overlaps        |<t_j|psi>|^2

Disabled categories are never computed.  Target-state sizes are checked
against every snapshot before anything is folded, so a failing shot
leaves the accumulator untouched.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import ArrayLike, NDArray

from snapshot_analysis.accumulator import SnapshotAccumulator
from snapshot_analysis.config import SnapshotConfig
from snapshot_analysis.numerics import (
    chop_array,
    inner_product,
    ket_probabilities,
    outer_product,
    probabilities,
    vector_to_ket,
)

logger = logging.getLogger(__name__)


class SizeMismatchError(ValueError):
    """A target state does not have the length of a snapshot vector.

    Attributes:
        expected: Length of the snapshot vector.
        actual: Length of the offending target state.
        label: Snapshot label the target was compared against.
    """

    def __init__(self, expected: int, actual: int, label: Optional[int] = None):
        self.expected = expected
        self.actual = actual
        self.label = label
        where = f" (snapshot {label})" if label is not None else ""
        super().__init__(
            f"target_state vector size {actual} should be {expected}{where}"
        )


class SnapshotStatistics:
    """Computes derived snapshot quantities for one shot at a time.

    Args:
        config: Resolved snapshot configuration (selectors, chop
            threshold, qudit radix, target states).
    """

    def __init__(self, config: SnapshotConfig):
        self.config = config

    def compute(
        self,
        snapshots: Mapping[int, ArrayLike],
        accumulator: SnapshotAccumulator,
        register_sizes: Sequence[Tuple[str, int]] = (),
    ) -> None:
        """Fold one shot's snapshots into *accumulator*.

        Args:
            snapshots: Captured amplitude vectors keyed by label.
            accumulator: Running statistics to update in place.
            register_sizes: ``(name, n_qudits)`` pairs in declaration
                order; used only to group ket-label digits.

        Raises:
            SizeMismatchError: If a target state's length differs from a
                snapshot's length.  Nothing is folded for the shot.
        """
        if not snapshots:
            logger.debug("No snapshots captured this shot; skipping")
            return

        selectors = self.config.selectors
        if not selectors.any:
            logger.debug("No snapshot outputs enabled; skipping")
            return

        vectors: Dict[int, NDArray[np.complex128]] = {
            label: np.asarray(vec, dtype=complex).ravel()
            for label, vec in sorted(snapshots.items())
        }
        use_targets = selectors.target_products and len(self.config.target_states) > 0
        if use_targets:
            self._validate_target_sizes(vectors)

        if selectors.ket_form:
            # Digit groups run from the last declared register to the first
            groups = [int(size) for _, size in reversed(list(register_sizes))]
            self._add_kets(vectors, accumulator, groups)

        if selectors.density:
            for label, vec in vectors.items():
                accumulator.density.fold(label, outer_product(vec, vec))

        if selectors.probs:
            for label, vec in vectors.items():
                accumulator.probs.fold(label, probabilities(vec))

        if use_targets:
            self._add_target_products(vectors, accumulator)

    def _validate_target_sizes(self, vectors: Mapping[int, NDArray]) -> None:
        for label, vec in vectors.items():
            for target in self.config.target_states:
                if len(target) != len(vec):
                    raise SizeMismatchError(len(vec), len(target), label)

    def _add_kets(
        self,
        vectors: Mapping[int, NDArray],
        accumulator: SnapshotAccumulator,
        groups: List[int],
    ) -> None:
        kets = {
            label: vector_to_ket(vec, self.config.qudit_dim, self.config.chop, groups)
            for label, vec in vectors.items()
        }
        if self.config.selectors.ket:
            accumulator.kets.append(kets)
        if self.config.selectors.probs_ket:
            for label, ket in kets.items():
                accumulator.probs_ket.fold(label, ket_probabilities(ket))

    def _add_target_products(
        self,
        vectors: Mapping[int, NDArray],
        accumulator: SnapshotAccumulator,
    ) -> None:
        selectors = self.config.selectors
        targets = self.config.target_states
        for label, vec in vectors.items():
            inprods = chop_array(
                np.array([inner_product(vec, target) for target in targets], dtype=complex),
                self.config.chop,
            )
            if selectors.inner_products:
                accumulator.inner_products.append(label, inprods)
            if selectors.overlaps:
                accumulator.overlaps.fold(label, np.abs(inprods) ** 2)
