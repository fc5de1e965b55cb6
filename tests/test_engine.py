"""End-to-end tests for the worker engine and merge reduction."""

from __future__ import annotations

import json

import numpy as np
import pytest

from snapshot_analysis import SizeMismatchError, VectorEngine, combine_engines, dumps
from tests.sim_utils import (
    MockBackend,
    MockCircuit,
    plus_state,
    random_shot_snapshots,
    run_shots,
)

ALL_TOKENS = [
    "QuantumStateKet",
    "DensityMatrix",
    "Probabilities",
    "ProbabilitiesKet",
    "TargetStatesInner",
    "TargetStatesProbs",
]


def test_single_qubit_end_to_end():
    amp = 1 / np.sqrt(2)
    engine = VectorEngine.from_config({
        "data": ALL_TOKENS,
        "chop": 1e-10,
        "target_states": [[amp, amp]],
    })
    circuit = MockCircuit([("q", 1)])
    run_shots(engine, circuit, [{0: plus_state()}, {0: plus_state()}])

    doc = engine.to_document()
    assert doc["shots"] == 2
    np.testing.assert_allclose(doc["probabilities"][0], [0.5, 0.5])
    np.testing.assert_allclose(
        np.array(doc["density_matrix"][0])[..., 0], np.full((2, 2), 0.5)
    )
    np.testing.assert_allclose(np.array(doc["density_matrix"][0])[..., 1], 0.0)
    assert len(doc["quantum_state_ket"]) == 2
    for shot in doc["quantum_state_ket"]:
        assert list(shot[0]) == ["0", "1"]
        np.testing.assert_allclose(shot[0]["0"], [amp, 0.0])
        np.testing.assert_allclose(shot[0]["1"], [amp, 0.0])
    assert doc["probabilities_ket"][0] == pytest.approx({"0": 0.5, "1": 0.5})
    np.testing.assert_allclose(doc["overlaps"][0], [1.0])
    assert len(doc["inner_products"][0]) == 2
    np.testing.assert_allclose(doc["inner_products"][0][0], [[1.0, 0.0]])


def test_no_outputs_enabled_renders_base_only():
    engine = VectorEngine.from_config({"data": []})
    run_shots(engine, MockCircuit([("q", 1)]), [{0: plus_state()}], cregs=["1"])
    assert engine.to_document() == {"shots": 1, "counts": {"1": 1}}


def test_shots_without_snapshots_are_counted_but_sparse():
    engine = VectorEngine.from_config({"data": ALL_TOKENS, "target_states": [[1, 0]]})
    run_shots(engine, MockCircuit([("q", 1)]), [{}, {}, {1: plus_state()}])
    doc = engine.to_document()
    assert doc["shots"] == 3
    assert list(doc["probabilities"]) == [1]
    # Averaged over all shots, including those without a snapshot
    np.testing.assert_allclose(doc["probabilities"][1], [1 / 6, 1 / 6])
    assert len(doc["quantum_state_ket"]) == 1


def test_size_mismatch_propagates_and_shot_is_not_counted():
    engine = VectorEngine.from_config(
        {"data": ["targetstatesprobs"], "target_states": [[1, 0, 0, 0]]}
    )
    with pytest.raises(SizeMismatchError) as excinfo:
        engine.compute_results(MockCircuit([("q", 1)]), MockBackend({0: plus_state()}))
    assert (excinfo.value.expected, excinfo.value.actual) == (2, 4)
    assert engine.total_shots == 0
    assert engine.accumulator.is_empty()


class TestWorkerReduction:
    """Partitioned workers merged in shot order match a single engine."""

    CONFIG = {
        "data": ALL_TOKENS,
        "target_states": [[1, 0, 0, 0, 0, 0, 0, 1], [0, 1, 1, 0, 0, 0, 0, 0]],
    }

    def _shots(self):
        rng = np.random.default_rng(42)
        return random_shot_snapshots(3, 12, labels=[0, 4], rng=rng)

    @pytest.mark.parametrize("sizes", [[12], [6, 6], [1, 5, 2, 4], [3, 3, 3, 3]])
    def test_partition_matches_single_engine(self, sizes):
        circuit = MockCircuit([("a", 1), ("b", 2)])
        shots = self._shots()
        cregs = ["0", "1"] * 6

        reference = VectorEngine.from_config(self.CONFIG)
        run_shots(reference, circuit, shots, cregs)

        workers = []
        start = 0
        for size in sizes:
            worker = VectorEngine.from_config(self.CONFIG)
            run_shots(worker, circuit, shots[start : start + size], cregs[start : start + size])
            workers.append(worker)
            start += size
        combined = combine_engines(workers)

        expected = reference.to_document()
        actual = combined.to_document()
        assert actual["shots"] == 12
        assert actual["counts"] == {"0": 6, "1": 6}
        assert actual["quantum_state_ket"] == expected["quantum_state_ket"]
        for field in ("density_matrix", "probabilities", "overlaps", "inner_products"):
            for label in (0, 4):
                np.testing.assert_allclose(
                    actual[field][label], expected[field][label], atol=1e-12
                )
        for label in (0, 4):
            assert actual["probabilities_ket"][label] == pytest.approx(
                expected["probabilities_ket"][label], abs=1e-12
            )

    def test_density_is_a_valid_mixed_state(self):
        engine = VectorEngine.from_config(self.CONFIG)
        run_shots(engine, MockCircuit([("q", 3)]), self._shots())
        raw = np.array(engine.to_document()["density_matrix"][0])
        rho = raw[..., 0] + 1j * raw[..., 1]
        assert np.trace(rho).real == pytest.approx(1.0)
        np.testing.assert_allclose(rho, rho.conj().T, atol=1e-12)
        assert np.linalg.eigvalsh(rho).min() > -1e-9

    def test_render_twice_is_stable(self):
        engine = VectorEngine.from_config(self.CONFIG)
        run_shots(engine, MockCircuit([("q", 3)]), self._shots())
        assert dumps(engine.to_document()) == dumps(engine.to_document())
        json.loads(dumps(engine.to_document()))


def test_combine_engines_requires_input():
    with pytest.raises(ValueError, match="at least one engine"):
        combine_engines([])


def test_merge_returns_receiver():
    left = VectorEngine.from_config({"data": ["probs"]})
    right = VectorEngine.from_config({"data": ["probs"]})
    run_shots(right, MockCircuit([("q", 1)]), [{0: plus_state()}])
    assert left.merge(right) is left
    assert left.total_shots == 1
    assert right.total_shots == 1
