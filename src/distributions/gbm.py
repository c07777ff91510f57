"""
Geometric Brownian Motion (GBM).

Time-evolving process for price series (electricity prices, tariffs) whose
log returns follow Brownian motion with drift. Year 1 is the initial value;
every later year steps from the previous year of the same path:

    S(t + Δt) = S(t) exp((μ - σ²/2) Δt + σ √Δt Z),   Z ~ N(0, 1)

Drift μ and volatility σ are given in percent per year.
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

MIN_DRIFT_PERCENT = -20.0
MIN_VOLATILITY_PERCENT = 0.1


class GBMDistribution(Distribution):
    """Geometric Brownian Motion path generator."""

    @classmethod
    def _validate(cls, parameters: Mapping[str, Any], errors: List[str]) -> None:
        check_parameter(parameters, "value", "Initial value", errors, positive=True)
        check_parameter(parameters, "drift", "Drift parameter", errors)
        check_parameter(parameters, "volatility", "Volatility parameter", errors, positive=True)
        check_parameter(parameters, "timeStep", "Time step parameter", errors, required=False, positive=True)

    def sample(self, rng: np.random.Generator, context: SampleContext) -> float:
        initial = self.value("value", context.year, 100.0)
        if context.year == 1 or context.previous is None:
            return initial

        drift = self.value("drift", context.year, 5.0) / 100.0
        volatility = self.value("volatility", context.year, 20.0) / 100.0
        time_step = self.value("timeStep", context.year, 1.0)

        z = rng.standard_normal()
        exponent = (drift - volatility * volatility / 2.0) * time_step + volatility * math.sqrt(time_step) * z
        return context.previous * math.exp(exponent)

    def analytic_statistics(self, year: int) -> Dict[str, float]:
        return {"min": 0.0}

    @classmethod
    def _fit(cls, points: List[Tuple[int, float]], errors: List[str]) -> Dict[str, float]:
        ordered = sorted(points, key=lambda point: point[0])
        positive = [(year, value) for year, value in ordered if value > 0]
        if len(positive) < len(ordered):
            errors.append(
                f"Ignored {len(ordered) - len(positive)} non-positive data point(s); "
                "GBM is defined only for positive values"
            )
        if len(positive) < 2:
            errors.append("At least two positive values are required for GBM fitting")
            initial = positive[0][1] if positive else 100.0
            return {"value": initial, "drift": 0.0, "volatility": MIN_VOLATILITY_PERCENT, "timeStep": 1.0}

        years = np.array([year for year, _ in positive], dtype=np.float64)
        values = np.array([value for _, value in positive])
        log_returns = np.diff(np.log(values))

        steps = np.diff(years)
        time_step = float(np.mean(steps)) if np.all(steps > 0) else 1.0
        if time_step <= 0:
            time_step = 1.0

        mean_log_return = float(np.mean(log_returns))
        var_log_return = float(np.var(log_returns))

        # σ² = Var[r]/Δt,  μ = E[r]/Δt + σ²/2  (converted to percent)
        volatility = math.sqrt(var_log_return / time_step) * 100.0
        drift = (mean_log_return / time_step + var_log_return / (2.0 * time_step)) * 100.0

        if volatility < MIN_VOLATILITY_PERCENT:
            errors.append(f"Observed volatility is negligible; set to {MIN_VOLATILITY_PERCENT}%")
            volatility = MIN_VOLATILITY_PERCENT
        if drift < MIN_DRIFT_PERCENT:
            errors.append(f"Fitted drift {drift:.3g}% clipped to {MIN_DRIFT_PERCENT}%")
            drift = MIN_DRIFT_PERCENT

        return {
            "value": float(values[0]),
            "drift": drift,
            "volatility": volatility,
            "timeStep": time_step,
        }

    @classmethod
    def metadata(cls) -> DistributionMetadata:
        return DistributionMetadata(
            name="Geometric Brownian Motion",
            description=(
                "A continuous-time stochastic process where logarithmic returns "
                "follow Brownian motion with drift."
            ),
            parameter_spec=(
                ParameterSpec("value", "Initial value at t=0", constraints="must be positive", default=100.0),
                ParameterSpec("drift", "Annual growth rate (2-5% typical)", constraints="percentage value", default=5.0),
                ParameterSpec(
                    "volatility",
                    "Annual standard deviation (15-30% for electricity prices)",
                    constraints="must be positive, percentage value",
                    default=20.0,
                ),
                ParameterSpec(
                    "timeStep",
                    "Time step for simulation (years)",
                    required=False,
                    constraints="must be positive",
                    default=1.0,
                ),
            ),
            applications="Price series and financial parameters that evolve over time.",
            examples=(
                {
                    "description": "Electricity price model with moderate growth",
                    "parameters": {"value": 50, "drift": 2, "volatility": 15, "timeStep": 1},
                },
                {
                    "description": "Asset price model with high volatility",
                    "parameters": {"value": 100, "drift": 5, "volatility": 25, "timeStep": 1},
                },
            ),
        )
