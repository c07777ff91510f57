"""
Weibull distribution.

Standard model for wind speed and for component time-to-failure in
reliability engineering:

    F(x) = 1 - exp(-(x / λ)^k)

with scale λ and shape k. k < 1 gives a decreasing failure rate (infant
mortality), k = 1 a constant rate, k > 1 wear-out.
"""

import math
from typing import Any, Dict, List, Mapping, Tuple

import numpy as np
from scipy import stats
from scipy.special import gamma as gamma_function

from src.distributions.base import (
    Distribution,
    DistributionMetadata,
    ParameterSpec,
    SampleContext,
)
from src.distributions.parameters import check_parameter


class WeibullDistribution(Distribution):
    """Two-parameter Weibull distribution (``scale``, ``shape``)."""

    @classmethod
    def _validate(cls, parameters: Mapping[str, Any], errors: List[str]) -> None:
        check_parameter(parameters, "scale", "Scale parameter", errors, positive=True)
        check_parameter(parameters, "shape", "Shape parameter", errors, positive=True)

    def sample(self, rng: np.random.Generator, context: SampleContext) -> float:
        scale = self.value("scale", context.year, 1.0)
        shape = self.value("shape", context.year, 1.0)
        return float(scale * rng.weibull(shape))

    def analytic_statistics(self, year: int) -> Dict[str, float]:
        scale = self.value("scale", year, 1.0)
        shape = self.value("shape", year, 1.0)
        g1 = gamma_function(1.0 + 1.0 / shape)
        g2 = gamma_function(1.0 + 2.0 / shape)
        return {
            "mean": float(scale * g1),
            "stdDev": float(scale * math.sqrt(max(g2 - g1 * g1, 0.0))),
            "min": 0.0,
        }

    @classmethod
    def _fit(cls, points: List[Tuple[int, float]], errors: List[str]) -> Dict[str, float]:
        positive = np.array([value for _, value in points if value > 0])
        if positive.size < len(points):
            errors.append(
                f"Ignored {len(points) - positive.size} non-positive data point(s); "
                "Weibull is defined only for positive values"
            )
        if positive.size == 0:
            errors.append("No positive values found in data points (required for Weibull fitting)")
            return {"scale": 1.0, "shape": 1.0}

        mean = float(np.mean(positive))
        std = float(np.std(positive))
        if std == 0.0:
            errors.append("Data points have no spread; shape set to 1 and scale to the mean")
            return {"scale": mean, "shape": 1.0}

        # Justus empirical approximation: k = (σ/μ)^-1.086, λ = μ / Γ(1 + 1/k)
        cv = std / mean
        shape = cv ** -1.086
        scale = mean / float(gamma_function(1.0 + 1.0 / shape))
        return {"scale": scale, "shape": shape}

    @classmethod
    def _scipy_distribution(cls, parameters: Mapping[str, float]):
        return stats.weibull_min(c=parameters["shape"], scale=parameters["scale"])

    @classmethod
    def metadata(cls) -> DistributionMetadata:
        return DistributionMetadata(
            name="Weibull",
            description="Common in reliability engineering, failure analysis and wind speed modeling",
            parameter_spec=(
                ParameterSpec(
                    "scale",
                    "Scale parameter (related to the characteristic life)",
                    constraints="must be positive",
                    default=1.0,
                ),
                ParameterSpec(
                    "shape",
                    "Shape parameter (determines the shape of the failure rate function)",
                    constraints="must be positive",
                    default=1.0,
                ),
            ),
            applications="Component time-to-failure and annual mean wind speed.",
            examples=(
                {"description": "Exponential distribution (constant failure rate)", "parameters": {"scale": 1, "shape": 1}},
                {"description": "Rayleigh distribution", "parameters": {"scale": 1, "shape": 2}},
                {"description": "Typical wind turbine failure model", "parameters": {"scale": 10000, "shape": 1.5}},
            ),
        )
