"""
Exponential distribution.

Time between independent events occurring at a constant rate λ, e.g. time
between random equipment failures:

    f(x) = λ exp(-λ x),   E[X] = 1/λ
"""

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

MIN_LAMBDA = 1e-5
MAX_LAMBDA = 1000.0


class ExponentialDistribution(Distribution):
    """Exponential distribution with rate ``lambda``."""

    aliases = {"rate": "lambda"}

    @classmethod
    def _validate(cls, parameters: Mapping[str, Any], errors: List[str]) -> None:
        check_parameter(parameters, "lambda", "Lambda parameter", errors, positive=True)

    def sample(self, rng: np.random.Generator, context: SampleContext) -> float:
        rate = self.value("lambda", context.year, 1.0)
        return float(rng.exponential(1.0 / rate))

    def analytic_statistics(self, year: int) -> Dict[str, float]:
        rate = self.value("lambda", year, 1.0)
        return {
            "mean": 1.0 / rate,
            "stdDev": 1.0 / rate,
            "min": 0.0,
            "skewness": 2.0,
            "kurtosis": 6.0,
        }

    @classmethod
    def _fit(cls, points: List[Tuple[int, float]], errors: List[str]) -> Dict[str, float]:
        positive = np.array([value for _, value in points if value > 0])
        if positive.size < len(points):
            errors.append(
                f"Ignored {len(points) - positive.size} non-positive data point(s); "
                "exponential is defined only for positive values"
            )
        if positive.size == 0:
            errors.append("No positive values found in data points (required for exponential fitting)")
            return {"lambda": 1.0}

        # Maximum likelihood: λ = 1 / mean
        rate = 1.0 / float(np.mean(positive))
        bounded = min(MAX_LAMBDA, max(MIN_LAMBDA, rate))
        if bounded != rate:
            errors.append(f"Fitted lambda {rate:.3g} clipped to [{MIN_LAMBDA}, {MAX_LAMBDA}]")
        return {"lambda": bounded}

    @classmethod
    def _scipy_distribution(cls, parameters: Mapping[str, float]):
        return stats.expon(scale=1.0 / parameters["lambda"])

    @classmethod
    def metadata(cls) -> DistributionMetadata:
        return DistributionMetadata(
            name="Exponential",
            description="Models time between independent events occurring at a constant rate.",
            parameter_spec=(
                ParameterSpec(
                    "lambda",
                    "Rate parameter (events per time unit)",
                    constraints="must be positive",
                    default=1.0,
                ),
            ),
            applications="Used for random failure events with constant failure rates.",
            examples=(
                {"description": "Random component failures (0.1 failures per year)", "parameters": {"lambda": 0.1}},
                {"description": "Grid outage frequency (5 per year)", "parameters": {"lambda": 5}},
            ),
        )
