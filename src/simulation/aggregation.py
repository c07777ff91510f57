"""
Percentile aggregation over a merged iteration matrix.

Percentiles are always computed on the full, merged set of successful
iterations; sub-batch percentiles are never averaged.
"""

import logging
from typing import Any, Dict, List, Literal, Optional, Sequence

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from src.distributions.base import Distribution
from src.distributions.registry import calculate_percentiles
from src.simulation.settings import PercentileConfig
from src.simulation.worker import IterationMatrix

logger = logging.getLogger(__name__)

STATISTIC_KEYS = ("mean", "stdDev", "min", "max", "skewness", "kurtosis")


def sample_statistics(values: NDArray[np.float64]) -> Dict[str, float]:
    """
    Sample moments of one column.

    Kurtosis is excess kurtosis (0 for a normal). Zero-variance or single-value
    columns report 0 skewness and kurtosis.
    """
    if values.size == 0:
        return {key: 0.0 for key in STATISTIC_KEYS}

    std = float(np.std(values, ddof=1)) if values.size > 1 else 0.0
    if std > 0 and values.size > 2:
        skewness = float(stats.skew(values, bias=False))
        kurtosis = float(stats.kurtosis(values, fisher=True, bias=False)) if values.size > 3 else 0.0
    else:
        skewness = kurtosis = 0.0

    return {
        "mean": float(np.mean(values)),
        "stdDev": std,
        "min": float(np.min(values)),
        "max": float(np.max(values)),
        "skewness": skewness,
        "kurtosis": kurtosis,
    }


def _analytic_overrides(distribution: Optional[Distribution], year: int) -> Dict[str, float]:
    if distribution is None:
        return {}
    try:
        analytic = distribution.analytic_statistics(year)
    except (ArithmeticError, ValueError) as e:
        logger.debug(f"No closed-form statistics for year {year}: {e}")
        return {}
    return {
        key: float(value)
        for key, value in analytic.items()
        if key in STATISTIC_KEYS and np.isfinite(value)
    }


def aggregate_by_year(
    matrix: IterationMatrix,
    percentiles: Sequence[PercentileConfig],
    distribution: Optional[Distribution] = None,
) -> List[Dict[str, Any]]:
    """
    Per-year percentile maps and summary statistics.

    Parameters
    ----------
    matrix : IterationMatrix
        Merged samples; failed iterations are excluded.
    percentiles : Sequence[PercentileConfig]
        Requested percentiles, in output order.
    distribution : Distribution, optional
        If given, its closed-form moments replace the sample estimates.

    Returns
    -------
    List[Dict[str, Any]]
        One ``{"year", "percentiles", "statistics"}`` entry per year.
    """
    valid = matrix.valid_rows()
    requested = [p.value for p in percentiles]

    results = []
    for column in range(matrix.years):
        year = column + 1
        values = valid[:, column]
        statistics = sample_statistics(values)
        statistics.update(_analytic_overrides(distribution, year))
        results.append(
            {
                "year": year,
                "percentiles": calculate_percentiles(values, requested),
                "statistics": statistics,
            }
        )
    return results


def summarize(
    matrix: IterationMatrix,
    percentiles: Sequence[PercentileConfig],
    mode: Literal["terminal", "total"] = "terminal",
) -> Dict[str, float]:
    """
    Single cross-iteration percentile map.

    Parameters
    ----------
    mode : {"terminal", "total"}
        ``"terminal"`` ranks the last-year value of each iteration, ``"total"``
        the sum over all years.

    Raises
    ------
    ValueError
        Unknown mode.
    """
    valid = matrix.valid_rows()
    if mode == "terminal":
        reduced = valid[:, -1]
    elif mode == "total":
        reduced = valid.sum(axis=1)
    else:
        raise ValueError(f"mode must be 'terminal' or 'total'. Got {mode!r}")
    return calculate_percentiles(reduced, [p.value for p in percentiles])
