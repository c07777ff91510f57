"""
Triangular distribution.

Defined by a minimum, most likely value (mode) and maximum. Suited to expert
estimates when data is scarce (construction costs, capacity factors).
Sampled by inverse CDF:

    c = (mode - min) / (max - min)
    x = min + sqrt(u (max - min)(mode - min))        if u < c
    x = max - sqrt((1 - u)(max - min)(max - mode))   otherwise
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

# Number of histogram bins used to locate the mode when fitting
MODE_BINS = 10
# Below this many points the median stands in for the mode
MIN_POINTS_FOR_HISTOGRAM = 6


class TriangularDistribution(Distribution):
    """Triangular distribution on ``[min, max]`` peaking at ``mode``."""

    @classmethod
    def _validate(cls, parameters: Mapping[str, Any], errors: List[str]) -> None:
        has_min = check_parameter(parameters, "min", "Minimum value", errors)
        has_mode = check_parameter(parameters, "mode", "Mode value", errors)
        has_max = check_parameter(parameters, "max", "Maximum value", errors)
        if not (has_min and has_mode and has_max):
            return

        years = comparison_years(parameters, ("min", "mode", "max"))
        for year in years:
            low = parameter_value(parameters, "min", year, 0.0)
            mode = parameter_value(parameters, "mode", year, 0.5)
            high = parameter_value(parameters, "max", year, 1.0)
            where = year_suffix(year, years)
            if low > high:
                errors.append(
                    f"Minimum value ({low}) must be less than or equal to maximum value ({high}){where}"
                )
            if low > mode:
                errors.append(f"Minimum value ({low}) must be less than or equal to mode ({mode}){where}")
            if mode > high:
                errors.append(f"Mode ({mode}) must be less than or equal to maximum value ({high}){where}")

    def _bounds(self, year: int) -> Tuple[float, float, float]:
        low = self.value("min", year, 0.0)
        high = self.value("max", year, 1.0)
        mode = self.value("mode", year, 0.5)
        return low, min(max(mode, low), high), high

    def sample(self, rng: np.random.Generator, context: SampleContext) -> float:
        low, mode, high = self._bounds(context.year)
        if low >= high:
            return low

        c = (mode - low) / (high - low)
        u = rng.random()
        if u < c:
            return low + math.sqrt(u * (high - low) * (mode - low))
        return high - math.sqrt((1.0 - u) * (high - low) * (high - mode))

    def analytic_statistics(self, year: int) -> Dict[str, float]:
        low, mode, high = self._bounds(year)
        spread = low * low + mode * mode + high * high - low * mode - low * high - mode * high
        denominator = 5.0 * spread ** 1.5
        skewness = (
            math.sqrt(2.0) * (low + high - 2.0 * mode) * (2.0 * low - high - mode) * (low - 2.0 * high + mode)
            / denominator
            if denominator > 0
            else 0.0
        )
        return {
            "mean": (low + mode + high) / 3.0,
            "stdDev": math.sqrt(spread / 18.0),
            "min": low,
            "max": high,
            "skewness": skewness,
            "kurtosis": -0.6,
        }

    @classmethod
    def _fit(cls, points: List[Tuple[int, float]], errors: List[str]) -> Dict[str, float]:
        values = np.sort(np.array([value for _, value in points]))
        low = float(values[0])
        high = float(values[-1])

        if low == high:
            errors.append("Data points have no spread; min, mode and max are equal")
            return {"min": low, "mode": low, "max": high}

        if values.size < MIN_POINTS_FOR_HISTOGRAM:
            # Too few points for a histogram: the median stands in for the mode
            mode = float(values[values.size // 2])
        else:
            counts, edges = np.histogram(values, bins=MODE_BINS, range=(low, high))
            peak = int(np.argmax(counts))
            mode = float((edges[peak] + edges[peak + 1]) / 2.0)

        return {"min": low, "mode": mode, "max": high}

    @classmethod
    def _scipy_distribution(cls, parameters: Mapping[str, float]):
        width = parameters["max"] - parameters["min"]
        if width <= 0:
            return None
        return stats.triang(
            c=(parameters["mode"] - parameters["min"]) / width,
            loc=parameters["min"],
            scale=width,
        )

    @classmethod
    def metadata(cls) -> DistributionMetadata:
        return DistributionMetadata(
            name="Triangular",
            description="Simple distribution defined by minimum, maximum, and most likely values.",
            parameter_spec=(
                ParameterSpec("min", "Absolute minimum (e.g., 30% for capacity factor)", default=0.0),
                ParameterSpec("mode", "Most likely value (e.g., 40% for capacity factor)", default=0.5),
                ParameterSpec("max", "Maximum reasonable value (e.g., 50% for capacity factor)", default=1.0),
            ),
            applications=(
                "Useful when data is limited but min, max, and most likely values "
                "are known from expert judgment."
            ),
            examples=(
                {"description": "Capacity factor estimation", "parameters": {"min": 0.30, "mode": 0.40, "max": 0.50}},
                {"description": "Construction timeline (months)", "parameters": {"min": 12, "mode": 18, "max": 24}},
            ),
        )
