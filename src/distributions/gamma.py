"""
Gamma distribution.

Right-skewed two-parameter family for maintenance durations and repair
times:

    X ~ Gamma(k, θ),   E[X] = kθ,   Var[X] = kθ²
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

SHAPE_BOUNDS = (0.1, 100.0)
SCALE_BOUNDS = (0.1, 1000.0)


class GammaDistribution(Distribution):
    """Gamma distribution with ``shape`` k and ``scale`` θ."""

    @classmethod
    def _validate(cls, parameters: Mapping[str, Any], errors: List[str]) -> None:
        check_parameter(parameters, "shape", "Shape parameter", errors, positive=True)
        check_parameter(parameters, "scale", "Scale parameter", errors, positive=True)

    def sample(self, rng: np.random.Generator, context: SampleContext) -> float:
        shape = self.value("shape", context.year, 2.0)
        scale = self.value("scale", context.year, 1.0)
        return float(rng.gamma(shape, scale))

    def analytic_statistics(self, year: int) -> Dict[str, float]:
        shape = self.value("shape", year, 2.0)
        scale = self.value("scale", year, 1.0)
        return {
            "mean": shape * scale,
            "stdDev": math.sqrt(shape) * scale,
            "min": 0.0,
            "skewness": 2.0 / math.sqrt(shape),
            "kurtosis": 6.0 / shape,
        }

    @classmethod
    def _fit(cls, points: List[Tuple[int, float]], errors: List[str]) -> Dict[str, float]:
        positive = np.array([value for _, value in points if value > 0])
        if positive.size < len(points):
            errors.append(
                f"Ignored {len(points) - positive.size} non-positive data point(s); "
                "gamma is defined only for positive values"
            )
        if positive.size == 0:
            errors.append("No positive values found in data points (required for gamma fitting)")
            return {"shape": 2.0, "scale": 1.0}

        mean = float(np.mean(positive))
        variance = float(np.var(positive))
        if variance == 0.0:
            # High shape with matching scale gives a narrow peak at the mean
            errors.append("Data points have no spread; using a narrow peak at the mean")
            return {"shape": SHAPE_BOUNDS[1], "scale": mean / SHAPE_BOUNDS[1]}

        # Method of moments: k = μ²/σ², θ = σ²/μ
        shape = mean * mean / variance
        scale = variance / mean
        bounded_shape = min(SHAPE_BOUNDS[1], max(SHAPE_BOUNDS[0], shape))
        bounded_scale = min(SCALE_BOUNDS[1], max(SCALE_BOUNDS[0], scale))
        if bounded_shape != shape or bounded_scale != scale:
            errors.append(
                f"Fitted parameters (shape={shape:.3g}, scale={scale:.3g}) clipped to supported bounds"
            )
        return {"shape": bounded_shape, "scale": bounded_scale}

    @classmethod
    def _scipy_distribution(cls, parameters: Mapping[str, float]):
        return stats.gamma(a=parameters["shape"], scale=parameters["scale"])

    @classmethod
    def metadata(cls) -> DistributionMetadata:
        return DistributionMetadata(
            name="Gamma",
            description=(
                "Versatile right-skewed distribution ideal for modeling maintenance "
                "durations and repair times."
            ),
            parameter_spec=(
                ParameterSpec(
                    "shape",
                    "Controls distribution shape (k): 1-3 for maintenance tasks, 2-5 for complex repairs",
                    constraints="must be positive",
                    default=2.0,
                ),
                ParameterSpec(
                    "scale",
                    "Controls distribution spread (θ): typically 4-24 for maintenance tasks in hours",
                    constraints="must be positive",
                    default=1.0,
                ),
            ),
            applications="Repair times, maintenance durations and downtime events.",
            examples=(
                {"description": "Simple maintenance tasks", "parameters": {"shape": 2, "scale": 4}},
                {"description": "Major component replacement", "parameters": {"shape": 5, "scale": 24}},
            ),
        )
