"""
Tests for pooled batch execution.

Results must not depend on the pool size, the executor type or the order in
which batches finish.
"""

import pytest

from src.config import Settings
from src.simulation.engine import MonteCarloEngine

GBM = {"type": "gbm", "parameters": {"value": 100, "drift": 4, "volatility": 25}}
SETTINGS = {"iterations": 1000, "years": 6, "seed": 2024}


def results_for(**config) -> list:
    engine = MonteCarloEngine(config=Settings(BATCH_SIZE=100, **config))
    response = engine.simulate_distribution(GBM, SETTINGS)
    assert response["success"], response["simulationInfo"][0]["errors"]
    return response["simulationInfo"][0]["results"]


class TestPoolIndependence:
    """Same seed, same results, whatever the pool."""

    def test_threads_match_serial(self) -> None:
        assert results_for(MAX_WORKERS=1) == results_for(MAX_WORKERS=4, EXECUTOR="thread")

    def test_pool_size_irrelevant(self) -> None:
        assert results_for(MAX_WORKERS=2) == results_for(MAX_WORKERS=7)

    def test_processes_match_serial(self) -> None:
        assert results_for(MAX_WORKERS=1) == results_for(MAX_WORKERS=4, EXECUTOR="process")

    def test_batch_size_changes_streams(self) -> None:
        engine = MonteCarloEngine(config=Settings(BATCH_SIZE=300))
        other = engine.simulate_distribution(GBM, SETTINGS)["simulationInfo"][0]["results"]
        assert other != results_for(MAX_WORKERS=1)


class TestPoolFailures:
    """Errors inside pooled batches still reach the envelope."""

    @pytest.mark.parametrize("executor", ["thread", "process"])
    def test_timeout(self, executor) -> None:
        engine = MonteCarloEngine(config=Settings(BATCH_SIZE=50, MAX_WORKERS=2, EXECUTOR=executor))
        response = engine.simulate_distribution(GBM, {"iterations": 5000, "years": 20, "seed": 1}, timeout=0)
        assert response["success"] is False
        assert response["simulationInfo"][0]["results"] == []
        assert "timed out" in response["simulationInfo"][0]["errors"][0]

    def test_invalid_parameters_never_reach_pool(self) -> None:
        engine = MonteCarloEngine(config=Settings(BATCH_SIZE=50, MAX_WORKERS=4))
        response = engine.simulate_distribution(
            {"type": "gbm", "parameters": {"value": -1, "drift": 4, "volatility": 25}}, SETTINGS
        )
        assert response["success"] is False
        assert any("Initial value" in message for message in response["simulationInfo"][0]["errors"])
