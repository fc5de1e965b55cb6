"""Rendering of accumulated snapshot statistics into an output document.

Summed quantities (density matrices, probabilities, ket probabilities and
overlaps) are averaged over shots by multiplying with ``1 / total_shots``.
Per-shot quantities (ket snapshots and inner products) are emitted as
they were recorded.  Every component is then chopped at the configured
threshold.

The document is JSON compatible: complex numbers are ``[re, im]`` pairs,
arrays are nested lists and snapshot labels are ``int`` keys.  Fields
for disabled or empty categories are omitted.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping

import numpy as np
from numpy.typing import ArrayLike

from snapshot_analysis.accumulator import AdditiveMap, SnapshotAccumulator
from snapshot_analysis.config import SnapshotConfig
from snapshot_analysis.numerics import chop_array, chop_mapping

logger = logging.getLogger(__name__)


def encode_complex(value: complex) -> List[float]:
    return [float(value.real), float(value.imag)]


def encode_array(values: ArrayLike) -> list:
    """Encode a real or complex array as nested lists.

    Complex entries become ``[re, im]`` pairs, adding one trailing axis.
    """
    arr = np.asarray(values)
    if np.iscomplexobj(arr):
        return np.stack((arr.real, arr.imag), axis=-1).tolist()
    return arr.tolist()


def encode_ket(ket: Mapping[str, complex]) -> Dict[str, List[float]]:
    return {key: encode_complex(amp) for key, amp in ket.items()}


def dumps(document: Mapping[str, Any], **kwargs: Any) -> str:
    """Serialize a rendered document to JSON text."""
    return json.dumps(document, **kwargs)


class SnapshotRenderer:
    """Turns a final ``SnapshotAccumulator`` into output document fields.

    Rendering only reads the accumulator, so it can be repeated.

    Args:
        config: Resolved snapshot configuration.
    """

    def __init__(self, config: SnapshotConfig):
        self.config = config

    def encode(
        self, accumulator: SnapshotAccumulator, total_shots: int
    ) -> Dict[str, Any]:
        """Render every enabled, non-empty category.

        Args:
            accumulator: Aggregated statistics of the whole run.
            total_shots: Number of shots the sums were taken over.

        Raises:
            ValueError: If a shot-averaged category has data but
                ``total_shots`` is less than one.
        """
        selectors = self.config.selectors
        eps = self.config.chop
        document: Dict[str, Any] = {}

        if selectors.ket and accumulator.kets:
            document["quantum_state_ket"] = [
                {
                    label: encode_ket(chop_mapping(ket, eps))
                    for label, ket in sorted(shot.items())
                }
                for shot in accumulator.kets
            ]

        if selectors.density and accumulator.density:
            document["density_matrix"] = self._averaged(accumulator.density, total_shots)

        if selectors.probs and accumulator.probs:
            document["probabilities"] = self._averaged(accumulator.probs, total_shots)

        if selectors.probs_ket and accumulator.probs_ket:
            renorm = _renormalization(total_shots)
            document["probabilities_ket"] = {
                label: chop_mapping(
                    {key: value * renorm for key, value in probs.items()}, eps
                )
                for label, probs in sorted(accumulator.probs_ket.items())
            }

        if selectors.inner_products and accumulator.inner_products:
            document["inner_products"] = {
                label: [encode_array(chop_array(ip, eps)) for ip in shots]
                for label, shots in sorted(accumulator.inner_products.items())
            }

        if selectors.overlaps and accumulator.overlaps:
            document["overlaps"] = self._averaged(accumulator.overlaps, total_shots)

        logger.debug("Rendered snapshot fields %s over %d shots", list(document), total_shots)
        return document

    def _averaged(self, sums: AdditiveMap, total_shots: int) -> Dict[int, list]:
        renorm = _renormalization(total_shots)
        return {
            label: encode_array(chop_array(value * renorm, self.config.chop))
            for label, value in sorted(sums.items())
        }


def _renormalization(total_shots: int) -> float:
    if total_shots < 1:
        raise ValueError(
            f"Cannot average snapshot sums over {total_shots} shots"
        )
    return 1.0 / total_shots
