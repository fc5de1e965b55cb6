"""Pure numeric helpers for snapshot post-processing.

Every helper takes its chop threshold and qudit radix as explicit
arguments; none of them read engine state.

Ket labels follow the register layout of the simulated circuit: the
basis index is written as a big-endian digit string in the qudit radix
and split into one group per register, separated by a single space.
Callers pass the register sizes already in the order the digit groups
should appear (reverse declaration order for circuits).
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)

# np.base_repr only supports digit alphabets up to base 36
MAX_RADIX = 36


def chop_array(values: ArrayLike, epsilon: float) -> NDArray:
    """Return a copy of *values* with components below *epsilon* set to zero.

    Real and imaginary parts of complex input are chopped independently.
    """
    arr = np.array(values, copy=True)
    if np.iscomplexobj(arr):
        real = arr.real.copy()
        imag = arr.imag.copy()
        real[np.abs(real) < epsilon] = 0.0
        imag[np.abs(imag) < epsilon] = 0.0
        return real + 1j * imag
    arr[np.abs(arr) < epsilon] = 0.0
    return arr


def chop_scalar(value: complex, epsilon: float) -> complex:
    """Chop a single (possibly complex) number."""
    real = 0.0 if abs(value.real) < epsilon else float(value.real)
    imag = 0.0 if abs(value.imag) < epsilon else float(value.imag)
    return complex(real, imag)


def chop_mapping(values: Mapping[str, complex], epsilon: float) -> Dict[str, complex]:
    """Chop every value of a sparse ket-style mapping, keeping all keys."""
    chopped: Dict[str, complex] = {}
    for key, value in values.items():
        if isinstance(value, complex):
            chopped[key] = chop_scalar(value, epsilon)
        else:
            chopped[key] = 0.0 if abs(value) < epsilon else float(value)
    return chopped


def qudit_count(dim: int, radix: int) -> int:
    """Number of radix digits needed to label every index below *dim*."""
    n_digits = 0
    span = 1
    while span < dim:
        span *= radix
        n_digits += 1
    return n_digits


def digit_groups(n_digits: int, group_sizes: Sequence[int]) -> List[int]:
    """Resolve the digit grouping used for ket labels.

    Register sizes that do not add up to the number of digits in the
    vector cannot describe its layout, so a single group is used instead.
    """
    groups = [int(size) for size in group_sizes if int(size) > 0]
    if sum(groups) != n_digits:
        if groups:
            logger.debug(
                "Register sizes %s do not cover %d digits; using a single group",
                groups, n_digits,
            )
        return [n_digits]
    return groups


def ket_label(index: int, radix: int, n_digits: int, groups: Sequence[int]) -> str:
    """Render basis *index* as a space-separated radix digit string.

    >>> ket_label(5, 2, 3, [1, 2])
    '1 01'
    """
    digits = np.base_repr(index, base=radix).zfill(n_digits)
    parts = []
    start = 0
    for size in groups:
        parts.append(digits[start : start + size])
        start += size
    return " ".join(parts)


def vector_to_ket(
    vector: ArrayLike,
    radix: int,
    epsilon: float,
    group_sizes: Sequence[int] = (),
) -> Dict[str, complex]:
    """Sparse ket form of an amplitude vector.

    Indices whose raw amplitude has modulus above *epsilon* are kept, with
    the real and imaginary parts of the kept amplitudes chopped. Keys are
    produced in ascending basis-index order.
    """
    raw = np.asarray(vector, dtype=complex).ravel()
    n_digits = qudit_count(len(raw), radix)
    groups = digit_groups(n_digits, group_sizes)
    ket: Dict[str, complex] = {}
    for idx in np.flatnonzero(np.abs(raw) > epsilon):
        ket[ket_label(int(idx), radix, n_digits, groups)] = chop_scalar(
            complex(raw[idx]), epsilon
        )
    return ket


def probabilities(vector: ArrayLike) -> NDArray[np.float64]:
    """Elementwise squared modulus of an amplitude vector."""
    vec = np.asarray(vector)
    return np.abs(vec) ** 2


def ket_probabilities(ket: Mapping[str, complex]) -> Dict[str, float]:
    return {key: float(abs(amp) ** 2) for key, amp in ket.items()}


def outer_product(left: ArrayLike, right: ArrayLike) -> NDArray[np.complex128]:
    """``|left><right|``, i.e. ``left_i * conj(right_j)``."""
    return np.outer(np.asarray(left, dtype=complex), np.conj(np.asarray(right, dtype=complex)))


def inner_product(vector: ArrayLike, target: ArrayLike) -> complex:
    """``sum_i vector_i * conj(target_i)``."""
    return complex(np.vdot(np.asarray(target), np.asarray(vector)))


def normalize_state(vector: ArrayLike) -> NDArray[np.complex128]:
    """Return *vector* scaled to unit 2-norm.

    Raises:
        ValueError: If the vector has zero norm.
    """
    vec = np.asarray(vector, dtype=complex)
    norm = float(np.linalg.norm(vec))
    if norm == 0.0:
        raise ValueError("Cannot normalize a zero-norm state vector")
    return vec / norm
