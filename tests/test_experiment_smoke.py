"""Smoke tests for the experiment scripts.

Verifies that the CLI entrypoint parses --help and that a small run
produces a consistent document.
"""
import importlib.util
import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

EXPERIMENTS_DIR = Path(__file__).resolve().parents[1] / "experiments"


def _load(script):
    spec = importlib.util.spec_from_file_location(script, EXPERIMENTS_DIR / f"{script}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.mark.parametrize("script", ["ghz_snapshots"])
def test_experiment_help(script):
    """Scripts with argparse must respond to --help without error."""
    env = dict(os.environ, PYTHONPATH=str(EXPERIMENTS_DIR.parent))
    result = subprocess.run(
        [sys.executable, str(EXPERIMENTS_DIR / f"{script}.py"), "--help"],
        capture_output=True, text=True, timeout=60,
        cwd=str(EXPERIMENTS_DIR.parent),
        env=env,
    )
    assert result.returncode == 0, f"--help failed for {script}: {result.stderr[:500]}"
    assert "usage" in result.stdout.lower()


def test_ghz_run_small():
    ghz = _load("ghz_snapshots")
    doc = ghz.run(n_qubits=2, shots=10, workers=3, noise=0.0, seed=0)

    assert doc["shots"] == 10
    # Noise-free: every shot is the ideal Bell state
    assert doc["overlaps"][1][0] == pytest.approx(1.0)
    assert doc["probabilities"][1] == pytest.approx([0.5, 0.0, 0.0, 0.5])
    assert doc["probabilities_ket"][0] == pytest.approx({"00": 0.5, "10": 0.5})
    json.loads(ghz.dumps(doc))


def test_ghz_run_without_shots():
    ghz = _load("ghz_snapshots")
    doc = ghz.run(n_qubits=2, shots=0, workers=2, noise=0.0, seed=0)

    assert doc["shots"] == 0
    assert "overlaps" not in doc
