"""
Unit tests for request models and percentile aggregation.

Tests cover:
- Settings merging, defaults and validation
- Percentile list parsing
- Per-year aggregation with sample and closed-form statistics
- Cross-iteration summaries
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from src.distributions import FixedDistribution, NormalDistribution
from src.errors import ValidationError
from src.simulation.aggregation import aggregate_by_year, sample_statistics, summarize
from src.simulation.settings import (
    DEFAULT_PERCENTILES,
    DistributionConfig,
    PercentileConfig,
    SimulationSettings,
    parse_percentiles,
)
from src.simulation.worker import IterationMatrix


class TestSimulationSettings:
    """Tests for settings merging and validation."""

    def test_defaults(self) -> None:
        settings = SimulationSettings.from_mapping({})
        assert settings.iterations == 10000
        assert settings.years == 20
        assert settings.percentiles == DEFAULT_PERCENTILES
        assert settings.seed is None

    def test_default_percentile_labels(self) -> None:
        labels = {p.value: p.description for p in DEFAULT_PERCENTILES}
        assert labels == {
            50: "primary",
            75: "upper_bound",
            25: "lower_bound",
            10: "extreme_lower",
            90: "extreme_upper",
        }

    def test_merge_over_defaults(self) -> None:
        defaults = SimulationSettings(iterations=500, years=3, seed=7)
        settings = SimulationSettings.from_mapping({"years": 10, "seed": None}, defaults)
        assert settings.iterations == 500
        assert settings.years == 10
        assert settings.seed == 7

    def test_integral_floats_accepted(self) -> None:
        settings = SimulationSettings.from_mapping({"iterations": 100.0, "seed": 3.0})
        assert settings.iterations == 100
        assert isinstance(settings.iterations, int)
        assert settings.seed == 3

    @pytest.mark.parametrize(
        "raw",
        [
            {"iterations": 0},
            {"iterations": -5},
            {"iterations": 1.5},
            {"years": "5"},
            {"years": True},
            {"seed": -1},
            {"seed": 2.5},
        ],
    )
    def test_invalid_values(self, raw) -> None:
        with pytest.raises(ValidationError):
            SimulationSettings.from_mapping(raw)

    def test_collects_every_error(self) -> None:
        with pytest.raises(ValidationError) as excinfo:
            SimulationSettings.from_mapping({"iterations": 0, "years": 0})
        assert len(excinfo.value.errors) == 2

    def test_non_mapping_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SimulationSettings.from_mapping([1, 2])

    def test_immutable(self) -> None:
        settings = SimulationSettings()
        with pytest.raises(AttributeError):
            settings.iterations = 5

    def test_round_trip_through_dict(self) -> None:
        settings = SimulationSettings(iterations=10, years=2, seed=1)
        assert SimulationSettings.from_mapping(settings.to_dict()) == settings

    def test_with_seed(self) -> None:
        assert SimulationSettings().with_seed(5).seed == 5


class TestParsePercentiles:
    """Tests for percentile list parsing."""

    def test_mappings_and_numbers(self) -> None:
        parsed = parse_percentiles([{"value": 5, "description": "tail"}, 95])
        assert parsed == (PercentileConfig(5, "tail"), PercentileConfig(95, ""))

    @pytest.mark.parametrize("raw", [[], "50", None, [101], [-1], [50, 50.0], [{"description": "x"}]])
    def test_invalid(self, raw) -> None:
        with pytest.raises(ValidationError):
            parse_percentiles(raw)

    def test_order_preserved(self) -> None:
        parsed = parse_percentiles([90, 10, 50])
        assert [p.value for p in parsed] == [90, 10, 50]

    def test_numpy_array_accepted(self) -> None:
        parsed = parse_percentiles(np.array([10, 50, 90]))
        assert [p.value for p in parsed] == [10, 50, 90]

    def test_numpy_array_settings(self) -> None:
        merged = SimulationSettings.from_mapping({"percentiles": np.array([25.0, 75.0])})
        assert [p.value for p in merged.percentiles] == [25.0, 75.0]

    def test_multidimensional_array_rejected(self) -> None:
        with pytest.raises(ValidationError, match="one-dimensional"):
            parse_percentiles(np.array([[10, 50], [90, 95]]))



class TestDistributionConfig:
    """Tests for distribution configuration parsing."""

    def test_from_mapping(self) -> None:
        config = DistributionConfig.from_mapping({"type": "normal", "parameters": {"mean": 1}})
        assert config.type == "normal"
        assert config.to_dict() == {"type": "normal", "parameters": {"mean": 1}}

    @pytest.mark.parametrize(
        "raw",
        [None, {"parameters": {}}, {"type": "", "parameters": {}}, {"type": "normal"}, {"type": 3, "parameters": {}}],
    )
    def test_invalid(self, raw) -> None:
        with pytest.raises(ValidationError):
            DistributionConfig.from_mapping(raw)


class TestAggregateByYear:
    """Tests for per-year aggregation."""

    def setup_method(self) -> None:
        values = np.array([[float(i), float(10 * i)] for i in range(1, 11)])
        self.matrix = IterationMatrix(values=values, failed=np.zeros(10, dtype=bool))
        self.percentiles = (PercentileConfig(10), PercentileConfig(50), PercentileConfig(90))

    def test_one_entry_per_year(self) -> None:
        results = aggregate_by_year(self.matrix, self.percentiles)
        assert [entry["year"] for entry in results] == [1, 2]
        assert results[0]["percentiles"] == {"P10": 2.0, "P50": 6.0, "P90": 10.0}
        assert results[1]["percentiles"] == {"P10": 20.0, "P50": 60.0, "P90": 100.0}

    def test_statistics(self) -> None:
        statistics = aggregate_by_year(self.matrix, self.percentiles)[0]["statistics"]
        assert set(statistics) == {"mean", "stdDev", "min", "max", "skewness", "kurtosis"}
        assert_allclose(statistics["mean"], 5.5)
        assert_allclose(statistics["stdDev"], np.std(np.arange(1, 11), ddof=1))
        assert statistics["min"] == 1.0
        assert statistics["max"] == 10.0
        assert_allclose(statistics["skewness"], 0.0, atol=1e-12)

    def test_failed_rows_excluded(self) -> None:
        values = self.matrix.values.copy()
        values[9] = np.nan
        failed = np.zeros(10, dtype=bool)
        failed[9] = True
        results = aggregate_by_year(IterationMatrix(values=values, failed=failed), self.percentiles)
        assert results[0]["percentiles"]["P90"] == 9.0
        assert results[0]["statistics"]["max"] == 9.0

    def test_percentile_order_follows_request(self) -> None:
        percentiles = (PercentileConfig(90), PercentileConfig(10))
        results = aggregate_by_year(self.matrix, percentiles)
        assert list(results[0]["percentiles"]) == ["P90", "P10"]

    def test_analytic_statistics_override(self) -> None:
        distribution = NormalDistribution({"mean": 100, "std": 3})
        statistics = aggregate_by_year(self.matrix, self.percentiles, distribution)[0]["statistics"]
        assert statistics["mean"] == 100
        assert statistics["stdDev"] == 3
        # Sample values are kept where no closed form is given
        assert statistics["min"] == 1.0

    def test_fixed_distribution_zero_spread(self) -> None:
        matrix = IterationMatrix(values=np.full((5, 1), 50.0), failed=np.zeros(5, dtype=bool))
        statistics = aggregate_by_year(matrix, self.percentiles, FixedDistribution({"value": 50}))[0]["statistics"]
        assert statistics["stdDev"] == 0
        assert statistics["skewness"] == 0

    def test_sample_statistics_degenerate(self) -> None:
        assert sample_statistics(np.array([]))["mean"] == 0.0
        single = sample_statistics(np.array([4.0]))
        assert single["stdDev"] == 0.0
        assert single["skewness"] == 0.0
        constant = sample_statistics(np.full(10, 2.0))
        assert constant["kurtosis"] == 0.0


class TestSummarize:
    """Tests for cross-iteration summaries."""

    def setup_method(self) -> None:
        values = np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0], [7.0, 8.0]])
        self.matrix = IterationMatrix(values=values, failed=np.zeros(4, dtype=bool))
        self.percentiles = (PercentileConfig(50),)

    def test_terminal(self) -> None:
        assert summarize(self.matrix, self.percentiles) == {"P50": 6.0}

    def test_total(self) -> None:
        assert summarize(self.matrix, self.percentiles, mode="total") == {"P50": 11.0}

    def test_unknown_mode(self) -> None:
        with pytest.raises(ValueError, match="mode"):
            summarize(self.matrix, self.percentiles, mode="average")
