"""
Normal (Gaussian) distribution.

Symmetric bell-shaped distribution, used for quantities that vary evenly
around an expected value (e.g. annual energy yield deviations).

    X ~ N(μ, σ²)
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


class NormalDistribution(Distribution):
    """Normal distribution parameterized by ``mean`` and ``std``."""

    aliases = {"value": "mean", "stdDev": "std"}

    @classmethod
    def _validate(cls, parameters: Mapping[str, Any], errors: List[str]) -> None:
        check_parameter(parameters, "mean", "Mean", errors)
        check_parameter(parameters, "std", "Standard deviation", errors, non_negative=True)

    def sample(self, rng: np.random.Generator, context: SampleContext) -> float:
        mean = self.value("mean", context.year, 0.0)
        std = self.value("std", context.year, 1.0)
        return float(rng.normal(mean, std))

    def analytic_statistics(self, year: int) -> Dict[str, float]:
        return {
            "mean": self.value("mean", year, 0.0),
            "stdDev": self.value("std", year, 1.0),
            "skewness": 0.0,
            "kurtosis": 0.0,
        }

    @classmethod
    def _fit(cls, points: List[Tuple[int, float]], errors: List[str]) -> Dict[str, float]:
        values = np.array([value for _, value in points])
        mean = float(np.mean(values))
        std = float(np.std(values))

        if len(values) == 1:
            errors.append("Only one data point; standard deviation set to 0")
        elif std == 0.0:
            errors.append("Data points have no spread; standard deviation set to 0")

        return {"mean": mean, "std": std}

    @classmethod
    def _scipy_distribution(cls, parameters: Mapping[str, float]):
        if parameters["std"] <= 0:
            return None
        return stats.norm(loc=parameters["mean"], scale=parameters["std"])

    @classmethod
    def metadata(cls) -> DistributionMetadata:
        return DistributionMetadata(
            name="Normal",
            description="Symmetric bell-shaped distribution centered around the mean",
            parameter_spec=(
                ParameterSpec("mean", "Center of the distribution", default=0.0),
                ParameterSpec(
                    "std",
                    "Standard deviation (spread)",
                    constraints="must be non-negative",
                    default=1.0,
                ),
            ),
            applications="Symmetric uncertainty around a central estimate.",
            examples=(
                {"description": "Standard normal distribution", "parameters": {"mean": 0, "std": 1}},
                {
                    "description": "Distribution centered at 100 with moderate spread",
                    "parameters": {"mean": 100, "std": 15},
                },
            ),
        )
