"""
Unit tests for the module-level API.

Tests cover:
- End-to-end simulation through the module entry points
- Parameter validation and curve fitting by type name
- Distribution metadata
- Registry injection and extension
"""

import numpy as np
import pytest

from src.distributions import GammaDistribution, create_default_registry
from src.errors import NotRegisteredError
from src.simulation import (
    calculate_percentiles,
    fit_distribution,
    get_distributions_info,
    register_distribution,
    simulate_distribution,
    validate_parameters,
)


class TestModuleApi:
    """Tests for module-level entry points."""

    def test_simulate_end_to_end(self) -> None:
        response = simulate_distribution(
            {"type": "normal", "parameters": {"mean": 10, "std": 2}},
            {"iterations": 1000, "years": 5, "seed": 42},
        )
        info = response["simulationInfo"][0]
        assert response["success"] is True
        assert info["seed"] == 42
        assert len(info["results"]) == 5
        assert info["timeElapsed"] >= 0
        assert info["errors"] == []

    def test_validate_unknown_type(self) -> None:
        result = validate_parameters("unknown_dist", {})
        assert result["isValid"] is False
        assert len(result["errors"]) == 1
        assert "unknown_dist" in result["errors"][0]

    def test_validate_known_type(self) -> None:
        assert validate_parameters("Normal", {"mean": 0, "std": 1}) == {"isValid": True, "errors": []}
        assert validate_parameters("normal", {"mean": 0, "std": -1})["isValid"] is False

    def test_distributions_info(self) -> None:
        info = get_distributions_info()
        assert "normal" in info
        assert info["weibull"]["name"] == "Weibull"

    def test_fit_distribution(self) -> None:
        result = fit_distribution("normal", [1, 2, 3])
        assert result["parameters"]["mean"] == pytest.approx(2.0)
        assert result["errors"] == []

    def test_fit_unknown_type_raises(self) -> None:
        with pytest.raises(NotRegisteredError):
            fit_distribution("unknown_dist", [1, 2, 3])

    def test_register_into_injected_registry(self) -> None:
        registry = create_default_registry()
        register_distribution("RepairCost", GammaDistribution, registry=registry)
        assert validate_parameters("repaircost", {"shape": 2, "scale": 1}, registry=registry)["isValid"]
        # The process-wide registry is untouched
        assert validate_parameters("repaircost", {"shape": 2, "scale": 1})["isValid"] is False

        response = simulate_distribution(
            {"type": "REPAIRCOST", "parameters": {"shape": 2, "scale": 1}},
            {"iterations": 100, "years": 1, "seed": 1},
            registry=registry,
        )
        assert response["success"] is True

    def test_calculate_percentiles_reexported(self) -> None:
        assert calculate_percentiles([], [10, 50, 90]) == {"P10": 0, "P50": 0, "P90": 0}

    def test_validate_mixed_uniform_bounds(self) -> None:
        result = validate_parameters("uniform", {"min": 5, "max": [{"year": 1, "value": 3}]})
        assert result["isValid"] is False
        assert any("year 1" in message for message in result["errors"])

    def test_fit_distribution_from_numpy_array(self) -> None:
        result = fit_distribution("normal", np.array([1.0, 2.0, 3.0]))
        assert result["parameters"]["mean"] == pytest.approx(2.0)
        assert result["errors"] == []
