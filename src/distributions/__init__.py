"""
Probability distributions for Monte Carlo simulation.

This module provides the distribution families used to model uncertain
project quantities, and the registry that maps type identifiers to them:

**Families:**
- Normal, Lognormal, Weibull, Triangular, Uniform, Exponential, Gamma
- Geometric Brownian Motion (path-dependent price series)
- Fixed (deterministic value with optional growth)
- Poisson (annual event counts)

**Registry (registry.py):**
- Case-insensitive registration and lookup
- Metadata enumeration for client introspection
- Nearest-rank percentile calculation

**Usage:**
```python
from src.distributions import create_default_registry

registry = create_default_registry()
normal = registry.resolve("Normal")
normal.validate({"mean": 10, "std": 2}).is_valid   # True
normal.fit_curve([9.5, 10.2, 11.0]).parameters     # {"mean": ..., "std": ...}
```
"""

from src.distributions.base import (
    Distribution,
    DistributionMetadata,
    FitResult,
    ParameterSpec,
    SampleContext,
    ValidationResult,
)
from src.distributions.exponential import ExponentialDistribution
from src.distributions.fixed import FixedDistribution
from src.distributions.gamma import GammaDistribution
from src.distributions.gbm import GBMDistribution
from src.distributions.lognormal import LognormalDistribution
from src.distributions.normal import NormalDistribution
from src.distributions.poisson import PoissonDistribution
from src.distributions.registry import (
    BUILTIN_DISTRIBUTIONS,
    DistributionRegistry,
    calculate_percentiles,
    create_default_registry,
    get_default_registry,
    percentile_key,
)
from src.distributions.triangular import TriangularDistribution
from src.distributions.uniform import UniformDistribution
from src.distributions.weibull import WeibullDistribution

__all__ = [
    # Interface
    "Distribution",
    "DistributionMetadata",
    "FitResult",
    "ParameterSpec",
    "SampleContext",
    "ValidationResult",
    # Families
    "NormalDistribution",
    "LognormalDistribution",
    "WeibullDistribution",
    "TriangularDistribution",
    "UniformDistribution",
    "ExponentialDistribution",
    "GammaDistribution",
    "GBMDistribution",
    "FixedDistribution",
    "PoissonDistribution",
    # Registry
    "BUILTIN_DISTRIBUTIONS",
    "DistributionRegistry",
    "calculate_percentiles",
    "create_default_registry",
    "get_default_registry",
    "percentile_key",
]
