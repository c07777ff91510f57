"""
Distribution registry.

Explicit table from type identifier to distribution implementation. The
default registry is built from an ordered manifest of the built-in families;
host applications add their own through ``register``.

Keys are case-insensitive. Each built-in family is registered under its short
type key (``"gbm"``) and its metadata name (``"Geometric Brownian Motion"``);
both resolve to the same class.

Registration is expected at startup (or in rare, caller-serialized extension
calls); lookups take no lock.
"""

import functools
import logging
import math
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type, Union

import numpy as np

from src.distributions.base import Distribution
from src.distributions.exponential import ExponentialDistribution
from src.distributions.fixed import FixedDistribution
from src.distributions.gamma import GammaDistribution
from src.distributions.gbm import GBMDistribution
from src.distributions.lognormal import LognormalDistribution
from src.distributions.normal import NormalDistribution
from src.distributions.poisson import PoissonDistribution
from src.distributions.triangular import TriangularDistribution
from src.distributions.uniform import UniformDistribution
from src.distributions.weibull import WeibullDistribution
from src.errors import NotRegisteredError, ValidationError

logger = logging.getLogger(__name__)

# Built-in families in registration order
BUILTIN_DISTRIBUTIONS: Tuple[Tuple[str, Type[Distribution]], ...] = (
    ("normal", NormalDistribution),
    ("lognormal", LognormalDistribution),
    ("weibull", WeibullDistribution),
    ("triangular", TriangularDistribution),
    ("uniform", UniformDistribution),
    ("exponential", ExponentialDistribution),
    ("gamma", GammaDistribution),
    ("gbm", GBMDistribution),
    ("fixed", FixedDistribution),
    ("poisson", PoissonDistribution),
)

PercentileSpec = Union[Real, Mapping[str, Any]]


def percentile_key(value: float) -> str:
    """
    Result key for a percentile: 50 -> ``"P50"``, 97.5 -> ``"P97.5"``.

    Uses the shortest round-tripping representation, so distinct percentile
    values always get distinct keys.
    """
    text = repr(float(value))
    if text.endswith(".0"):
        text = text[:-2]
    return f"P{text}"


def _percentile_value(spec: PercentileSpec) -> float:
    if isinstance(spec, Mapping):
        return float(spec["value"])
    return float(spec)


def calculate_percentiles(
    values: Iterable[float],
    percentiles: Sequence[PercentileSpec] = (10, 25, 50, 75, 90),
) -> Dict[str, float]:
    """
    Nearest-rank percentiles.

    Sorts ``values`` ascending and, for percentile ``p`` over ``n`` values,
    takes the element at index ``min(floor(p/100 * n), n - 1)``. This is not
    linear interpolation: existing consumers depend on these exact values,
    including the bias at small ``n`` (with ``n = 1`` every percentile is the
    single value).

    Parameters
    ----------
    values : Iterable[float]
        Sample values (any order).
    percentiles : Sequence
        Percentile values in [0, 100], or ``{"value": p, ...}`` mappings.

    Returns
    -------
    Dict[str, float]
        ``{"P<p>": value}``. Every key maps to 0 when ``values`` is empty.

    Raises
    ------
    ValueError
        If a percentile is outside [0, 100].
    """
    requested = [_percentile_value(spec) for spec in percentiles]
    for p in requested:
        if not (0 <= p <= 100):
            raise ValueError(f"Percentile must be between 0 and 100. Got {p}")

    ordered = np.sort(np.asarray(list(values), dtype=np.float64))
    n = ordered.size

    result: Dict[str, float] = {}
    for p in requested:
        if n == 0:
            result[percentile_key(p)] = 0
            continue
        index = min(math.floor((p / 100) * n), n - 1)
        result[percentile_key(p)] = float(ordered[index])
    return result


class DistributionRegistry:
    """
    Mapping from lowercase type key to distribution class.

    Attributes
    ----------
    primary_types : List[str]
        Keys registered as primary types, in registration order (aliases
        excluded). ``all_metadata`` reports one entry per primary type.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Type[Distribution]] = {}
        self.primary_types: List[str] = []

    def register(
        self,
        distribution_type: str,
        implementation: Type[Distribution],
        aliases: Iterable[str] = (),
    ) -> None:
        """
        Register ``implementation`` under ``distribution_type`` (case-folded).

        Re-registering an existing key overwrites it silently, so tests and
        host applications can substitute their own implementation.

        Raises
        ------
        TypeError
            If ``implementation`` is not a ``Distribution`` subclass.
        ValueError
            If ``distribution_type`` is empty.
        """
        if not isinstance(implementation, type) or not issubclass(implementation, Distribution):
            raise TypeError(
                f"implementation must be a Distribution subclass. Got {implementation!r}"
            )
        key = str(distribution_type).strip().lower()
        if not key:
            raise ValueError("distribution_type must be a non-empty string")

        if key in self._entries and self._entries[key] is not implementation:
            logger.info(f"Overriding distribution '{key}' with {implementation.__name__}")
        self._entries[key] = implementation
        if key not in self.primary_types:
            self.primary_types.append(key)

        for alias in aliases:
            alias_key = str(alias).strip().lower()
            if alias_key and alias_key != key:
                self._entries[alias_key] = implementation

    def resolve(self, distribution_type: str) -> Type[Distribution]:
        """
        Look up a distribution class.

        Raises
        ------
        NotRegisteredError
            If no implementation is registered under the case-folded type.
        """
        key = str(distribution_type).strip().lower() if distribution_type is not None else ""
        try:
            return self._entries[key]
        except KeyError:
            raise NotRegisteredError(str(distribution_type)) from None

    def is_registered(self, distribution_type: str) -> bool:
        return str(distribution_type).strip().lower() in self._entries

    def registered_types(self) -> List[str]:
        """Every registered key, aliases included."""
        return list(self._entries)

    def metadata_of(self, distribution_type: str) -> Dict[str, Any]:
        """Static descriptor of one type."""
        return self.resolve(distribution_type).metadata().to_dict()

    def all_metadata(self) -> Dict[str, Dict[str, Any]]:
        """Descriptors keyed by primary type, in registration order."""
        return {key: self._entries[key].metadata().to_dict() for key in self.primary_types}

    def create(self, config: Mapping[str, Any]) -> Distribution:
        """
        Build a validated distribution instance from ``{type, parameters}``.

        Raises
        ------
        NotRegisteredError
            Unknown type.
        ValidationError
            Parameters fail the distribution's constraints.
        """
        distribution_type = config.get("type")
        parameters = config.get("parameters")
        implementation = self.resolve(distribution_type)

        validation = implementation.validate(parameters)
        if not validation.is_valid:
            raise ValidationError(
                f"Invalid parameters for {distribution_type} distribution: "
                f"{', '.join(validation.errors)}",
                errors=validation.errors,
            )
        return implementation(parameters)

    # Exposed on the registry for callers that only hold a registry handle
    calculate_percentiles = staticmethod(calculate_percentiles)

    def __contains__(self, distribution_type: object) -> bool:
        return isinstance(distribution_type, str) and self.is_registered(distribution_type)

    def __len__(self) -> int:
        return len(self.primary_types)

    def __repr__(self) -> str:
        """String representation."""
        return f"DistributionRegistry(types={self.primary_types})"


def create_default_registry(
    manifest: Optional[Sequence[Tuple[str, Type[Distribution]]]] = None,
) -> DistributionRegistry:
    """
    Build a registry from an ordered manifest (built-ins by default).

    Each family is registered under its type key with its metadata name as an
    alias.
    """
    registry = DistributionRegistry()
    for distribution_type, implementation in manifest or BUILTIN_DISTRIBUTIONS:
        registry.register(
            distribution_type,
            implementation,
            aliases=(implementation.metadata().name,),
        )
    logger.debug(f"Registered distributions: {', '.join(registry.registered_types())}")
    return registry


@functools.lru_cache(maxsize=None)
def get_default_registry() -> DistributionRegistry:
    """Process-wide registry of the built-in families, built on first use."""
    return create_default_registry()
