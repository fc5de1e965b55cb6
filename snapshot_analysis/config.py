"""Configuration resolution for snapshot output.

Turns a decoded configuration document (a plain mapping, usually parsed
from JSON) into a typed ``SnapshotConfig``.  Parsing is permissive:
unknown output tokens are ignored and malformed optional settings fall
back to their defaults with a warning, so resolution never fails.

Recognized keys::

    data                  list of output tokens (see _OUTPUT_TOKENS)
    chop                  threshold below which components are zeroed
    qudit_dim             radix used for ket labels
    target_states         reference vectors for inner products/overlaps
    renorm_target_states  normalize each target state (default true)
    initial_state         optional simulator initial state, always normalized

Vectors may be given as lists of real numbers or as lists of
``[re, im]`` pairs.
"""

from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

import numpy as np
from numpy.typing import NDArray

from snapshot_analysis.numerics import MAX_RADIX, normalize_state

logger = logging.getLogger(__name__)

DEFAULT_CHOP = 1e-10
DEFAULT_QUDIT_DIM = 2

# Normalized token -> OutputSelectors field
_OUTPUT_TOKENS: Dict[str, str] = {
    "quantumstateket": "ket",
    "quantumstatesket": "ket",
    "densitymatrix": "density",
    "probabilities": "probs",
    "probs": "probs",
    "probabilitiesket": "probs_ket",
    "probsket": "probs_ket",
    "targetstatesinner": "inner_products",
    "targetstatesprobs": "overlaps",
}


@dataclass(frozen=True)
class OutputSelectors:
    """Independent switches for each derived snapshot quantity.

    Attributes:
        ket: Per-shot sparse ket form (``quantum_state_ket``).
        density: Shot-averaged density matrix (``density_matrix``).
        probs: Shot-averaged basis probabilities (``probabilities``).
        probs_ket: Shot-averaged probabilities in ket form (``probabilities_ket``).
        inner_products: Per-shot inner products with target states.
        overlaps: Shot-averaged squared overlaps with target states.
    """

    ket: bool = False
    density: bool = False
    probs: bool = False
    probs_ket: bool = False
    inner_products: bool = False
    overlaps: bool = False

    @property
    def ket_form(self) -> bool:
        """Whether the sparse ket form has to be built at all."""
        return self.ket or self.probs_ket

    @property
    def target_products(self) -> bool:
        return self.inner_products or self.overlaps

    @property
    def any(self) -> bool:
        return (
            self.ket_form or self.density or self.probs or self.target_products
        )

    @classmethod
    def from_tokens(cls, tokens: Iterable[Any]) -> "OutputSelectors":
        """Build selectors from output tokens, ignoring unrecognized ones."""
        enabled: Dict[str, bool] = {}
        for token in tokens:
            if not isinstance(token, str):
                logger.debug("Ignoring non-string output token %r", token)
                continue
            name = _OUTPUT_TOKENS.get(token.strip().lower())
            if name is None:
                logger.debug("Ignoring unrecognized output token %r", token)
                continue
            enabled[name] = True
        return cls(**enabled)


@dataclass
class SnapshotConfig:
    """Resolved snapshot settings shared by computation and rendering.

    Attributes:
        selectors: Enabled output categories.
        chop: Non-negative chop threshold.
        qudit_dim: Radix used for ket labels (>= 2).
        target_states: Reference vectors, normalized unless disabled.
        renorm_target_states: Whether target states were normalized on load.
        initial_state: Normalized initial state for the backend, if given.
    """

    selectors: OutputSelectors = field(default_factory=OutputSelectors)
    chop: float = DEFAULT_CHOP
    qudit_dim: int = DEFAULT_QUDIT_DIM
    target_states: List[NDArray[np.complex128]] = field(default_factory=list)
    renorm_target_states: bool = True
    initial_state: Optional[NDArray[np.complex128]] = None

    @classmethod
    def from_dict(cls, document: Mapping[str, Any] | None) -> "SnapshotConfig":
        return resolve_config(document)


def decode_vector(data: Any) -> NDArray[np.complex128]:
    """Decode a JSON vector into a 1-D complex array.

    Accepts a flat list of numbers or a list of ``[re, im]`` pairs.

    Raises:
        ValueError: If *data* is not one of the accepted layouts.
    """
    try:
        arr = np.asarray(data)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Cannot decode state vector: {exc}") from exc
    numeric = np.issubdtype(arr.dtype, np.number)
    if numeric and arr.ndim == 1 and arr.size > 0:
        return arr.astype(complex)
    if numeric and arr.ndim == 2 and arr.shape[0] > 0 and arr.shape[1] == 2:
        pairs = arr.real.astype(float)
        return pairs[:, 0] + 1j * pairs[:, 1]
    raise ValueError(
        f"State vector must be a non-empty list of numbers or [re, im] pairs, "
        f"got array of shape {arr.shape} and dtype {arr.dtype}"
    )


def _resolve_chop(document: Mapping[str, Any]) -> float:
    value = document.get("chop")
    if value is None:
        return DEFAULT_CHOP
    if (
        isinstance(value, bool)
        or not isinstance(value, numbers.Real)
        or not math.isfinite(value)
        or value < 0
    ):
        logger.warning("Ignoring invalid chop value %r; using %g", value, DEFAULT_CHOP)
        return DEFAULT_CHOP
    return float(value)


def _resolve_qudit_dim(document: Mapping[str, Any]) -> int:
    value = document.get("qudit_dim")
    if value is None:
        return DEFAULT_QUDIT_DIM
    if (
        isinstance(value, bool)
        or not isinstance(value, numbers.Integral)
        or not 2 <= value <= MAX_RADIX
    ):
        logger.warning(
            "Ignoring invalid qudit_dim %r (expected integer in [2, %d]); using %d",
            value, MAX_RADIX, DEFAULT_QUDIT_DIM,
        )
        return DEFAULT_QUDIT_DIM
    return int(value)


def _resolve_flag(document: Mapping[str, Any], key: str, default: bool) -> bool:
    value = document.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        logger.warning("Ignoring non-boolean %s %r; using %s", key, value, default)
        return default
    return value


def _resolve_target_states(
    document: Mapping[str, Any], renormalize: bool
) -> List[NDArray[np.complex128]]:
    raw = document.get("target_states")
    if raw is None:
        return []
    if not isinstance(raw, (list, tuple)):
        logger.warning("Ignoring target_states of type %s", type(raw).__name__)
        return []

    states: List[NDArray[np.complex128]] = []
    for i, entry in enumerate(raw):
        try:
            vec = decode_vector(entry)
        except ValueError as exc:
            logger.warning("Skipping target state %d: %s", i, exc)
            continue
        if renormalize:
            try:
                vec = normalize_state(vec)
            except ValueError:
                logger.warning("Target state %d has zero norm; left unnormalized", i)
        states.append(vec)
    return states


def _resolve_initial_state(
    document: Mapping[str, Any],
) -> Optional[NDArray[np.complex128]]:
    raw = document.get("initial_state")
    if raw is None:
        return None
    try:
        return normalize_state(decode_vector(raw))
    except ValueError as exc:
        logger.warning("Ignoring initial_state: %s", exc)
        return None


def resolve_config(document: Mapping[str, Any] | None) -> SnapshotConfig:
    """Resolve a configuration document into a ``SnapshotConfig``.

    Never raises for malformed optional input; see the module docstring
    for the recognized keys.
    """
    if not document:
        return SnapshotConfig()

    tokens = document.get("data", [])
    if not isinstance(tokens, (list, tuple)):
        logger.warning("Ignoring output tokens of type %s", type(tokens).__name__)
        tokens = []
    selectors = OutputSelectors.from_tokens(tokens)

    renorm = _resolve_flag(document, "renorm_target_states", True)
    config = SnapshotConfig(
        selectors=selectors,
        chop=_resolve_chop(document),
        qudit_dim=_resolve_qudit_dim(document),
        target_states=_resolve_target_states(document, renorm),
        renorm_target_states=renorm,
        initial_state=_resolve_initial_state(document),
    )
    logger.debug(
        "Resolved snapshot config: %s, chop=%g, qudit_dim=%d, %d target states",
        selectors, config.chop, config.qudit_dim, len(config.target_states),
    )
    return config
