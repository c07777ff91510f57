"""
Lognormal distribution.

Used for strictly positive, right-skewed quantities such as repair times and
repair costs, where the logarithm is normally distributed:

    ln X ~ N(μ, σ²)
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
from src.distributions.parameters import check_parameter

# Fallback sigma when the data has no spread in log space
MIN_SIGMA = 0.1


class LognormalDistribution(Distribution):
    """Lognormal distribution with log-space location ``mu`` and scale ``sigma``."""

    @classmethod
    def _validate(cls, parameters: Mapping[str, Any], errors: List[str]) -> None:
        check_parameter(parameters, "mu", "Mu parameter (location)", errors)
        check_parameter(parameters, "sigma", "Sigma parameter (scale)", errors, positive=True)

    def sample(self, rng: np.random.Generator, context: SampleContext) -> float:
        mu = self.value("mu", context.year, 0.0)
        sigma = self.value("sigma", context.year, 1.0)
        return float(rng.lognormal(mu, sigma))

    def analytic_statistics(self, year: int) -> Dict[str, float]:
        mu = self.value("mu", year, 0.0)
        sigma = self.value("sigma", year, 1.0)
        variance_factor = math.exp(sigma * sigma) - 1.0
        return {
            "mean": math.exp(mu + sigma * sigma / 2.0),
            "stdDev": math.exp(mu + sigma * sigma / 2.0) * math.sqrt(variance_factor),
            "min": 0.0,
        }

    @classmethod
    def _fit(cls, points: List[Tuple[int, float]], errors: List[str]) -> Dict[str, float]:
        positive = np.array([value for _, value in points if value > 0])
        if positive.size < len(points):
            errors.append(
                f"Ignored {len(points) - positive.size} non-positive data point(s); "
                "lognormal is defined only for positive values"
            )
        if positive.size == 0:
            errors.append("No positive values found in data points (required for lognormal fitting)")
            return {"mu": 0.0, "sigma": 1.0}

        # Closed-form maximum likelihood: moments of the log values
        log_values = np.log(positive)
        mu = float(np.mean(log_values))
        sigma = float(np.std(log_values))
        if sigma <= 0.0:
            errors.append(f"Data points have no spread; sigma set to {MIN_SIGMA}")
            sigma = MIN_SIGMA

        return {"mu": mu, "sigma": sigma}

    @classmethod
    def _scipy_distribution(cls, parameters: Mapping[str, float]):
        return stats.lognorm(s=parameters["sigma"], scale=math.exp(parameters["mu"]))

    @classmethod
    def metadata(cls) -> DistributionMetadata:
        return DistributionMetadata(
            name="Lognormal",
            description="Used for modeling variables where the logarithm follows a normal distribution",
            parameter_spec=(
                ParameterSpec("mu", "Location parameter (mean of the logarithm)", default=0.0),
                ParameterSpec(
                    "sigma",
                    "Scale parameter (standard deviation of the logarithm)",
                    constraints="must be positive",
                    default=1.0,
                ),
            ),
            applications="Repair durations, repair costs and other positive, right-skewed quantities.",
            examples=(
                {"description": "Standard lognormal distribution", "parameters": {"mu": 0, "sigma": 1}},
                {"description": "Repair time distribution", "parameters": {"mu": 3, "sigma": 0.8}},
            ),
        )
