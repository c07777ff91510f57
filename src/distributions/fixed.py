"""
Fixed value with optional compound growth.

Deterministic stand-in for contractual quantities (PPA prices, guaranteed
availability) so they flow through the same engine as uncertain ones:

    x(year) = value (1 + drift/100)^(year - 1)
"""

from typing import Any, Dict, List, Mapping, Tuple

import numpy as np

from src.distributions.base import (
    Distribution,
    DistributionMetadata,
    ParameterSpec,
    SampleContext,
)
from src.distributions.parameters import check_parameter


class FixedDistribution(Distribution):
    """Deterministic value, escalated by ``drift`` percent per year."""

    @classmethod
    def _validate(cls, parameters: Mapping[str, Any], errors: List[str]) -> None:
        check_parameter(parameters, "value", "Value parameter", errors)
        check_parameter(parameters, "drift", "Drift parameter", errors, required=False)

    def _at(self, year: int) -> float:
        base = self.value("value", year, 0.0)
        drift = self.value("drift", year, 0.0) / 100.0
        if drift == 0.0 or year == 1:
            return base
        return base * (1.0 + drift) ** (year - 1)

    def sample(self, rng: np.random.Generator, context: SampleContext) -> float:
        return self._at(context.year)

    def analytic_statistics(self, year: int) -> Dict[str, float]:
        value = self._at(year)
        return {
            "mean": value,
            "stdDev": 0.0,
            "min": value,
            "max": value,
            "skewness": 0.0,
            "kurtosis": 0.0,
        }

    @classmethod
    def _fit(cls, points: List[Tuple[int, float]], errors: List[str]) -> Dict[str, float]:
        values = [value for _, value in points]
        mean = float(np.mean(values))

        # Compound annual growth between the first and last observed years
        drift = 0.0
        ordered = sorted(points, key=lambda point: point[0])
        first_year, first_value = ordered[0]
        last_year, last_value = ordered[-1]
        if last_year > first_year and first_value != 0:
            ratio = last_value / first_value
            if ratio > 0:
                drift = (ratio ** (1.0 / (last_year - first_year)) - 1.0) * 100.0
            else:
                errors.append("Sign change between first and last values; drift set to 0")

        return {"value": mean, "drift": round(drift, 2)}

    @classmethod
    def metadata(cls) -> DistributionMetadata:
        return DistributionMetadata(
            name="Fixed",
            description="Uses a single deterministic value with no variability.",
            parameter_spec=(
                ParameterSpec("value", "Set to the most likely or contractually agreed value", default=0.0),
                ParameterSpec("drift", "Annual growth rate (%)", required=False, default=0.0),
            ),
            applications=(
                "Deterministic analysis, base case scenarios, or when uncertainty "
                "is accounted for separately."
            ),
            examples=(
                {"description": "Fixed price with no growth", "parameters": {"value": 50, "drift": 0}},
                {"description": "Fixed price with 2% annual growth", "parameters": {"value": 50, "drift": 2}},
            ),
        )
