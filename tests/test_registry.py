"""
Unit tests for the distribution registry and nearest-rank percentiles.

Tests cover:
- Case-insensitive registration and lookup
- Metadata-name aliases and primary types
- Instance creation with validation
- Percentile formula, ordering and empty-input contract
"""

from typing import Any, Dict, List, Mapping

import numpy as np
import pytest
from numpy.testing import assert_allclose

from src.distributions import (
    BUILTIN_DISTRIBUTIONS,
    Distribution,
    DistributionMetadata,
    DistributionRegistry,
    GBMDistribution,
    NormalDistribution,
    ParameterSpec,
    SampleContext,
    calculate_percentiles,
    create_default_registry,
    percentile_key,
)
from src.errors import NotRegisteredError, ValidationError


class ConstantDistribution(Distribution):
    """Minimal custom family used to exercise extension."""

    @classmethod
    def _validate(cls, parameters: Mapping[str, Any], errors: List[str]) -> None:
        if "value" not in parameters:
            errors.append("Value is required")

    def sample(self, rng: np.random.Generator, context: SampleContext) -> float:
        return float(self.parameters["value"])

    @classmethod
    def _fit(cls, points, errors) -> Dict[str, float]:
        return {"value": points[0][1]}

    @classmethod
    def metadata(cls) -> DistributionMetadata:
        return DistributionMetadata(
            name="Constant",
            description="Always the same value",
            parameter_spec=(ParameterSpec("value", "The value", default=1.0),),
        )


class TestRegistration:
    """Tests for registration and lookup."""

    def test_case_insensitive_round_trip(self) -> None:
        registry = DistributionRegistry()
        registry.register("Foo", ConstantDistribution)
        assert registry.resolve("foo") is ConstantDistribution
        assert registry.resolve("FOO") is ConstantDistribution
        assert registry.resolve("Foo") is ConstantDistribution

    def test_unknown_type_raises(self) -> None:
        registry = create_default_registry()
        with pytest.raises(NotRegisteredError, match="unknown_dist"):
            registry.resolve("unknown_dist")

    def test_not_registered_is_lookup_error(self) -> None:
        with pytest.raises(LookupError):
            DistributionRegistry().resolve("normal")

    def test_rejects_non_distribution(self) -> None:
        with pytest.raises(TypeError):
            DistributionRegistry().register("bad", dict)

    def test_rejects_empty_key(self) -> None:
        with pytest.raises(ValueError):
            DistributionRegistry().register("  ", ConstantDistribution)

    def test_override_replaces(self) -> None:
        registry = create_default_registry()
        registry.register("normal", ConstantDistribution)
        assert registry.resolve("normal") is ConstantDistribution
        # Primary types are not duplicated
        assert registry.primary_types.count("normal") == 1

    def test_aliases_resolve_identically(self) -> None:
        registry = create_default_registry()
        assert registry.resolve("gbm") is GBMDistribution
        assert registry.resolve("Geometric Brownian Motion") is GBMDistribution
        assert registry.resolve("NORMAL") is NormalDistribution

    def test_builtin_types(self) -> None:
        registry = create_default_registry()
        assert registry.primary_types == [key for key, _ in BUILTIN_DISTRIBUTIONS]
        assert len(registry) == 10
        assert "weibull" in registry
        assert "kaimal" not in registry
        assert set(registry.primary_types) <= set(registry.registered_types())

    def test_custom_manifest(self) -> None:
        registry = create_default_registry([("constant", ConstantDistribution)])
        assert registry.primary_types == ["constant"]
        assert registry.resolve("Constant") is ConstantDistribution


class TestMetadata:
    """Tests for metadata enumeration."""

    def test_all_metadata_keyed_by_primary_type(self) -> None:
        metadata = create_default_registry().all_metadata()
        assert list(metadata) == [key for key, _ in BUILTIN_DISTRIBUTIONS]
        assert metadata["normal"]["name"] == "Normal"
        assert metadata["gbm"]["name"] == "Geometric Brownian Motion"

    def test_metadata_of(self) -> None:
        descriptor = create_default_registry().metadata_of("Triangular")
        names = [spec["name"] for spec in descriptor["parameterSpec"]]
        assert names == ["min", "mode", "max"]


class TestCreate:
    """Tests for validated instance creation."""

    def test_create_valid(self) -> None:
        distribution = create_default_registry().create(
            {"type": "normal", "parameters": {"mean": 1, "stdDev": 2}}
        )
        assert isinstance(distribution, NormalDistribution)
        # Alias keys are canonicalized
        assert distribution.parameters == {"mean": 1, "std": 2}

    def test_create_invalid_parameters(self) -> None:
        with pytest.raises(ValidationError) as excinfo:
            create_default_registry().create({"type": "normal", "parameters": {"mean": 1, "std": -1}})
        assert excinfo.value.errors

    def test_create_unknown_type(self) -> None:
        with pytest.raises(NotRegisteredError):
            create_default_registry().create({"type": "nope", "parameters": {}})


class TestCalculatePercentiles:
    """Tests for the nearest-rank percentile formula."""

    def test_empty_input_contract(self) -> None:
        assert calculate_percentiles([], [10, 50, 90]) == {"P10": 0, "P50": 0, "P90": 0}

    def test_nearest_rank_indices(self) -> None:
        values = list(range(1, 11))  # 1..10
        result = calculate_percentiles(values, [0, 10, 50, 90, 100])
        # index = min(floor(p/100 * n), n - 1)
        assert result == {"P0": 1.0, "P10": 2.0, "P50": 6.0, "P90": 10.0, "P100": 10.0}

    def test_single_value(self) -> None:
        result = calculate_percentiles([7.5], [1, 50, 99])
        assert result == {"P1": 7.5, "P50": 7.5, "P99": 7.5}

    def test_unsorted_input(self) -> None:
        assert calculate_percentiles([5, 1, 3], [50]) == {"P50": 3.0}

    def test_default_percentiles(self) -> None:
        result = calculate_percentiles(np.arange(100.0))
        assert list(result) == ["P10", "P25", "P50", "P75", "P90"]
        assert_allclose(list(result.values()), [10, 25, 50, 75, 90])

    def test_mapping_specs_and_fractional_keys(self) -> None:
        result = calculate_percentiles([1, 2, 3, 4], [{"value": 97.5, "description": "tail"}])
        assert list(result) == ["P97.5"]
        assert result["P97.5"] == 4.0

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_monotonic(self, seed: int) -> None:
        values = np.random.default_rng(seed).lognormal(0, 1, size=137)
        result = calculate_percentiles(values, [10, 25, 50, 75, 90])
        ordered = [result[key] for key in ("P10", "P25", "P50", "P75", "P90")]
        assert ordered == sorted(ordered)

    def test_registry_exposes_calculator(self) -> None:
        assert DistributionRegistry.calculate_percentiles([1, 2], [50]) == {"P50": 2.0}

    def test_percentile_key(self) -> None:
        assert percentile_key(50) == "P50"
        assert percentile_key(50.0) == "P50"
        assert percentile_key(2.5) == "P2.5"

    def test_distinct_percentiles_keep_distinct_keys(self) -> None:
        result = calculate_percentiles(range(1, 11), [12.3456781, 12.3456782])
        assert len(result) == 2
        assert percentile_key(12.3456781) == "P12.3456781"

    @pytest.mark.parametrize("percentile", [-10, 150, -0.5, 100.5])
    def test_out_of_range_rejected(self, percentile: float) -> None:
        with pytest.raises(ValueError, match="between 0 and 100"):
            calculate_percentiles(range(1, 11), [50, percentile])

    def test_out_of_range_rejected_without_values(self) -> None:
        with pytest.raises(ValueError, match="between 0 and 100"):
            calculate_percentiles([], [-10])
