"""
Uniform distribution.

Every value in ``[min, max)`` is equally likely. Used when only a plausible
range is known (e.g. price forecasts under high uncertainty).
"""

import math
from typing import Any, Dict, List, Mapping, Tuple

import numpy as np
from scipy import stats

from src.distributions.base import (
    Distribution,
    DistributionMetadata,
    ParameterSpec,
    SampleContext,
)
from src.distributions.parameters import (
    check_parameter,
    comparison_years,
    parameter_value,
    year_suffix,
)

# Relative widening applied when fitting data with no spread
DEGENERATE_BUFFER = 0.05


class UniformDistribution(Distribution):
    """Continuous uniform distribution on ``[min, max)``."""

    @classmethod
    def _validate(cls, parameters: Mapping[str, Any], errors: List[str]) -> None:
        has_min = check_parameter(parameters, "min", "Minimum value", errors)
        has_max = check_parameter(parameters, "max", "Maximum value", errors)
        if not (has_min and has_max):
            return

        # Compare the values sampling will actually use, defaults included
        years = comparison_years(parameters, ("min", "max"))
        for year in years:
            low = parameter_value(parameters, "min", year, 0.0)
            high = parameter_value(parameters, "max", year, 1.0)
            if low >= high:
                errors.append(
                    f"Maximum value ({high}) must be greater than minimum value ({low})"
                    f"{year_suffix(year, years)}"
                )

    def sample(self, rng: np.random.Generator, context: SampleContext) -> float:
        low = self.value("min", context.year, 0.0)
        high = self.value("max", context.year, 1.0)
        return float(rng.uniform(low, high))

    def analytic_statistics(self, year: int) -> Dict[str, float]:
        low = self.value("min", year, 0.0)
        high = self.value("max", year, 1.0)
        return {
            "mean": (low + high) / 2.0,
            "stdDev": (high - low) / math.sqrt(12.0),
            "min": low,
            "max": high,
            "skewness": 0.0,
            "kurtosis": -1.2,
        }

    @classmethod
    def _fit(cls, points: List[Tuple[int, float]], errors: List[str]) -> Dict[str, float]:
        values = [value for _, value in points]
        low = min(values)
        high = max(values)

        if low == high:
            buffer = DEGENERATE_BUFFER * abs(low) or DEGENERATE_BUFFER
            errors.append(f"Data points have no spread; range widened by ±{buffer:g}")
            return {"min": low - buffer, "max": high + buffer}

        return {"min": low, "max": high}

    @classmethod
    def _scipy_distribution(cls, parameters: Mapping[str, float]):
        return stats.uniform(loc=parameters["min"], scale=parameters["max"] - parameters["min"])

    @classmethod
    def metadata(cls) -> DistributionMetadata:
        return DistributionMetadata(
            name="Uniform",
            description="Equal probability across all values in a defined range.",
            parameter_spec=(
                ParameterSpec("min", "Lower bound (typically -20% of expected value for pricing)", default=0.0),
                ParameterSpec("max", "Upper bound (typically +20% of expected value for pricing)", default=1.0),
            ),
            applications="Used when all values in a range are equally likely or when uncertainty is high.",
            examples=(
                {"description": "Standard uniform [0,1]", "parameters": {"min": 0, "max": 1}},
                {"description": "Energy price uncertainty", "parameters": {"min": 40, "max": 60}},
            ),
        )
