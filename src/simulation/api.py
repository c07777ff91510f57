"""
Module-level entry points.

Every function works against the process-wide default registry unless an
explicit ``registry`` is passed, so host applications can inject their own.
"""

import logging
from typing import Any, Dict, Iterable, Optional, Type

from src.distributions.base import Distribution
from src.distributions.registry import (
    DistributionRegistry,
    calculate_percentiles,
    get_default_registry,
)
from src.errors import NotRegisteredError
from src.simulation.engine import MonteCarloEngine, SettingsInput, create_engine
from src.simulation.formatter import format_distribution_csv, format_for_charts
from src.simulation.worker import CancellationToken

logger = logging.getLogger(__name__)


def _registry(registry: Optional[DistributionRegistry]) -> DistributionRegistry:
    return registry if registry is not None else get_default_registry()


def simulate_distribution(
    distribution_config: Any,
    simulation_settings: SettingsInput = None,
    registry: Optional[DistributionRegistry] = None,
    cancel_token: Optional[CancellationToken] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Run one simulation with default engine settings. Never raises.

    Example
    -------
    >>> response = simulate_distribution(
    ...     {"type": "normal", "parameters": {"mean": 10, "std": 2}},
    ...     {"iterations": 1000, "years": 5, "seed": 42},
    ... )
    >>> response["success"], len(response["simulationInfo"][0]["results"])
    (True, 5)
    """
    engine = MonteCarloEngine(registry=_registry(registry))
    return engine.simulate_distribution(distribution_config, simulation_settings, cancel_token, timeout)


async def simulate_distribution_async(
    distribution_config: Any,
    simulation_settings: SettingsInput = None,
    registry: Optional[DistributionRegistry] = None,
    cancel_token: Optional[CancellationToken] = None,
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """Suspending form of ``simulate_distribution``."""
    engine = MonteCarloEngine(registry=_registry(registry))
    return await engine.simulate_distribution_async(
        distribution_config, simulation_settings, cancel_token, timeout
    )


def get_distributions_info(registry: Optional[DistributionRegistry] = None) -> Dict[str, Dict[str, Any]]:
    """Metadata of every registered distribution, keyed by type."""
    return _registry(registry).all_metadata()


def validate_parameters(
    distribution_type: str,
    parameters: Any,
    registry: Optional[DistributionRegistry] = None,
) -> Dict[str, Any]:
    """
    Check parameters against a distribution's constraints.

    Returns
    -------
    Dict[str, Any]
        ``{"isValid": bool, "errors": [str, ...]}``. An unknown type is
        reported as invalid rather than raised.
    """
    try:
        implementation = _registry(registry).resolve(distribution_type)
    except NotRegisteredError as e:
        return {"isValid": False, "errors": [str(e)]}
    return implementation.validate(parameters).to_dict()


def fit_distribution(
    distribution_type: str,
    data_points: Any,
    registry: Optional[DistributionRegistry] = None,
) -> Dict[str, Any]:
    """
    Fit a distribution's parameters to observed data.

    Returns
    -------
    Dict[str, Any]
        ``{"parameters": {...}, "errors": [str, ...]}``. Degenerate data still
        yields parameters, with messages in ``errors``.

    Raises
    ------
    NotRegisteredError
        Unknown distribution type.
    """
    implementation = _registry(registry).resolve(distribution_type)
    result = implementation.fit_curve(data_points)
    if result.errors:
        logger.info(f"Fitted {distribution_type} with warnings: {'; '.join(result.errors)}")
    return result.to_dict()


def register_distribution(
    distribution_type: str,
    implementation: Type[Distribution],
    aliases: Iterable[str] = (),
    registry: Optional[DistributionRegistry] = None,
) -> None:
    """
    Add or replace a distribution type.

    Registration is expected at startup; callers must serialize it against
    running simulations.
    """
    _registry(registry).register(distribution_type, implementation, aliases=aliases)


__all__ = [
    "calculate_percentiles",
    "create_engine",
    "fit_distribution",
    "format_distribution_csv",
    "format_for_charts",
    "get_distributions_info",
    "register_distribution",
    "simulate_distribution",
    "simulate_distribution_async",
    "validate_parameters",
]
