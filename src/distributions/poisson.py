"""
Poisson distribution.

Number of independent events in one year at a constant average rate λ, e.g.
major component failures per turbine per year.
"""

import math
from typing import Any, Dict, List, Mapping, Tuple

import numpy as np

from src.distributions.base import (
    Distribution,
    DistributionMetadata,
    ParameterSpec,
    SampleContext,
)
from src.distributions.parameters import check_parameter

MIN_LAMBDA = 1e-3


class PoissonDistribution(Distribution):
    """Poisson event count with mean ``lambda``."""

    aliases = {"rate": "lambda"}

    @classmethod
    def _validate(cls, parameters: Mapping[str, Any], errors: List[str]) -> None:
        check_parameter(parameters, "lambda", "Lambda parameter", errors, positive=True)

    def sample(self, rng: np.random.Generator, context: SampleContext) -> float:
        rate = self.value("lambda", context.year, 1.0)
        return float(rng.poisson(rate))

    def analytic_statistics(self, year: int) -> Dict[str, float]:
        rate = self.value("lambda", year, 1.0)
        return {
            "mean": rate,
            "stdDev": math.sqrt(rate),
            "min": 0.0,
            "skewness": 1.0 / math.sqrt(rate),
            "kurtosis": 1.0 / rate,
        }

    @classmethod
    def _fit(cls, points: List[Tuple[int, float]], errors: List[str]) -> Dict[str, float]:
        values = np.array([value for _, value in points])
        if np.any(values < 0):
            errors.append("Negative event counts found; Poisson counts must be non-negative")

        # Maximum likelihood: λ = mean count
        rate = float(np.mean(values))
        if rate < MIN_LAMBDA:
            errors.append(f"Mean event count {rate:.3g} raised to {MIN_LAMBDA}")
            rate = MIN_LAMBDA
        return {"lambda": rate}

    @classmethod
    def metadata(cls) -> DistributionMetadata:
        return DistributionMetadata(
            name="Poisson",
            description="Discrete distribution for the number of events in a fixed time interval.",
            parameter_spec=(
                ParameterSpec(
                    "lambda",
                    "Expected number of events per period (0.1-2 failures per turbine per year)",
                    constraints="must be positive",
                    default=1.0,
                ),
            ),
            applications="Models the frequency of rare, independent events over time.",
            examples=(
                {"description": "Rare failures (once per decade)", "parameters": {"lambda": 0.1}},
                {"description": "Frequent small issues", "parameters": {"lambda": 5.0}},
            ),
        )
