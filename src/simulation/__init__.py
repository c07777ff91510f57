"""
Monte Carlo simulation of distribution configurations over a project horizon.

This module provides:
- MonteCarloEngine: fault boundary returning a uniform response envelope
- SimulationWorker: seeded per-batch iteration over years
- Percentile aggregation per year (nearest rank, after batch merge)
- Chart and CSV formatting of aggregated results

**Usage:**
```python
from src.simulation import simulate_distribution, format_distribution_csv

response = simulate_distribution(
    {"type": "normal", "parameters": {"mean": 10, "std": 2}},
    {"iterations": 1000, "years": 5, "seed": 42},
)
info = response["simulationInfo"][0]
csv_text = format_distribution_csv(info["results"])
```
"""

from src.simulation.aggregation import aggregate_by_year, summarize
from src.simulation.api import (
    calculate_percentiles,
    fit_distribution,
    get_distributions_info,
    register_distribution,
    simulate_distribution,
    simulate_distribution_async,
    validate_parameters,
)
from src.simulation.engine import MonteCarloEngine, create_engine
from src.simulation.formatter import format_distribution_csv, format_for_charts, format_series
from src.simulation.settings import (
    DEFAULT_PERCENTILES,
    DistributionConfig,
    PercentileConfig,
    SimulationSettings,
)
from src.simulation.worker import (
    CancellationToken,
    IterationMatrix,
    SimulationWorker,
    WorkerState,
)

__all__ = [
    # Entry points
    "create_engine",
    "simulate_distribution",
    "simulate_distribution_async",
    "get_distributions_info",
    "validate_parameters",
    "fit_distribution",
    "register_distribution",
    "calculate_percentiles",
    "format_for_charts",
    "format_distribution_csv",
    "format_series",
    # Engine internals
    "MonteCarloEngine",
    "SimulationWorker",
    "WorkerState",
    "IterationMatrix",
    "CancellationToken",
    "aggregate_by_year",
    "summarize",
    # Request models
    "DistributionConfig",
    "SimulationSettings",
    "PercentileConfig",
    "DEFAULT_PERCENTILES",
]
