"""Running per-label snapshot statistics and their merge operation.

Two mapping types keep additive and concatenating semantics explicit at
the call sites:

- ``AdditiveMap`` folds values into per-label sums.  The zero for a
  first-seen label is "nothing stored yet": the first fold stores a copy
  of the value and later folds add to it (elementwise for arrays, per key
  for sparse ``{ket_label: value}`` dicts).
- ``ConcatMap`` appends per-shot values to per-label lists and never sums.

``SnapshotAccumulator`` bundles one of these per derived quantity and
merges partial results from independent workers.  Every summed field is
associative and commutative under ``merge``; the per-shot lists are
concatenated, so workers must be merged in shot order to keep document
order.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List

import numpy as np

logger = logging.getLogger(__name__)


def _copy_value(value: Any) -> Any:
    if isinstance(value, dict):
        return dict(value)
    return np.array(value, copy=True)


class AdditiveMap(Mapping):
    """Label-keyed running sums with an explicit ``fold`` operation.

    Stored values are owned by the map; callers may keep using the
    arrays or dicts they fold in.
    """

    def __init__(self) -> None:
        self._store: Dict[int, Any] = {}

    def __getitem__(self, key: int) -> Any:
        return self._store[key]

    def __iter__(self) -> Iterator[int]:
        return iter(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"AdditiveMap({sorted(self._store)})"

    def fold(self, key: int, value: Any) -> None:
        """Add *value* into the sum stored under *key*."""
        current = self._store.get(key)
        if current is None:
            self._store[key] = _copy_value(value)
        elif isinstance(current, dict):
            for k, v in value.items():
                current[k] = current.get(k, 0.0) + v
        else:
            current += value

    def fold_all(self, other: "AdditiveMap") -> None:
        """Fold every entry of *other* into this map."""
        for key, value in other.items():
            self.fold(key, value)


class ConcatMap(Mapping):
    """Label-keyed lists of per-shot values, concatenated on merge."""

    def __init__(self) -> None:
        self._store: Dict[int, List[Any]] = {}

    def __getitem__(self, key: int) -> List[Any]:
        return self._store[key]

    def __iter__(self) -> Iterator[int]:
        return iter(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"ConcatMap({sorted(self._store)})"

    def append(self, key: int, item: Any) -> None:
        self._store.setdefault(key, []).append(item)

    def extend_all(self, other: "ConcatMap") -> None:
        """Append every list of *other* after the matching list here."""
        for key, items in other.items():
            self._store.setdefault(key, []).extend(items)


@dataclass
class SnapshotAccumulator:
    """Per-label running statistics for every derived snapshot quantity.

    Attributes:
        kets: One ``{label: {ket_label: amplitude}}`` entry per shot.
        density: Sum of ``|psi><psi|`` per label.
        probs: Sum of ``|psi_i|^2`` per label.
        probs_ket: Sum of ket-form squared moduli per label.
        inner_products: Per-shot inner-product vectors per label.
        overlaps: Sum of squared inner-product moduli per label.
    """

    kets: List[Dict[int, Dict[str, complex]]] = field(default_factory=list)
    density: AdditiveMap = field(default_factory=AdditiveMap)
    probs: AdditiveMap = field(default_factory=AdditiveMap)
    probs_ket: AdditiveMap = field(default_factory=AdditiveMap)
    inner_products: ConcatMap = field(default_factory=ConcatMap)
    overlaps: AdditiveMap = field(default_factory=AdditiveMap)

    def merge(self, other: "SnapshotAccumulator") -> "SnapshotAccumulator":
        """Combine *other* into this accumulator and return ``self``.

        Sums are folded; per-shot lists of *other* are appended after
        those of ``self``.  *other* is left unchanged.
        """
        self.kets.extend(other.kets)
        self.density.fold_all(other.density)
        self.probs.fold_all(other.probs)
        self.probs_ket.fold_all(other.probs_ket)
        self.inner_products.extend_all(other.inner_products)
        self.overlaps.fold_all(other.overlaps)
        logger.debug(
            "Merged accumulator: %d ket shots, labels density=%s probs=%s overlaps=%s",
            len(self.kets), sorted(self.density), sorted(self.probs), sorted(self.overlaps),
        )
        return self

    def is_empty(self) -> bool:
        return not (
            self.kets
            or self.density
            or self.probs
            or self.probs_ket
            or self.inner_products
            or self.overlaps
        )
