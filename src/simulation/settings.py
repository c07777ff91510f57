"""
Request models for a simulation run.

``DistributionConfig`` and ``SimulationSettings`` are built per request from
plain mappings (the wire format), validated once, and immutable afterwards.
Invalid input raises ``ValidationError`` carrying every message, which the
engine converts into a failure response.
"""

from dataclasses import dataclass, field, replace
from numbers import Integral
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import numpy as np

from src.distributions.parameters import is_valid_number
from src.errors import ValidationError


@dataclass(frozen=True)
class PercentileConfig:
    """A requested percentile and its semantic label."""

    value: float
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "description": self.description}


DEFAULT_PERCENTILES: Tuple[PercentileConfig, ...] = (
    PercentileConfig(50, "primary"),
    PercentileConfig(75, "upper_bound"),
    PercentileConfig(25, "lower_bound"),
    PercentileConfig(10, "extreme_lower"),
    PercentileConfig(90, "extreme_upper"),
)


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, Integral):
        return True
    return isinstance(value, float) and value.is_integer()


def parse_percentiles(raw: Any) -> Tuple[PercentileConfig, ...]:
    """
    Parse a percentile list.

    Entries are ``{"value": p, "description": str}`` mappings or bare numbers.
    A one-dimensional numpy array is read as a list of bare numbers.

    Raises
    ------
    ValidationError
        Non-list input, values outside [0, 100], or duplicates.
    """
    if isinstance(raw, np.ndarray):
        if raw.ndim != 1:
            raise ValidationError(f"Percentile arrays must be one-dimensional. Got shape {raw.shape}")
        raw = raw.tolist()
    if isinstance(raw, (str, bytes)) or not isinstance(raw, (list, tuple)):
        raise ValidationError("Percentiles must be a non-empty list")
    if len(raw) == 0:
        raise ValidationError("Percentiles must be a non-empty list")

    errors: List[str] = []
    parsed: List[PercentileConfig] = []
    seen = set()
    for index, entry in enumerate(raw):
        if isinstance(entry, PercentileConfig):
            value, description = entry.value, entry.description
        elif isinstance(entry, Mapping):
            value, description = entry.get("value"), str(entry.get("description", ""))
        else:
            value, description = entry, ""

        if not is_valid_number(value) or not (0 <= value <= 100):
            errors.append(f"Percentile value at index {index} must be between 0 and 100. Got {value!r}")
            continue
        if float(value) in seen:
            errors.append(f"Percentile value {value} is duplicated")
            continue
        seen.add(float(value))
        parsed.append(PercentileConfig(value=value, description=description))

    if errors:
        raise ValidationError(f"Invalid percentiles: {'; '.join(errors)}", errors=errors)
    return tuple(parsed)


@dataclass(frozen=True)
class DistributionConfig:
    """
    Distribution type plus its parameters.

    Attributes
    ----------
    type : str
        Registry key (case-insensitive).
    parameters : Dict[str, Any]
        Parameter name to number or time series.
    """

    type: str
    parameters: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Any) -> "DistributionConfig":
        """
        Raises
        ------
        ValidationError
            Missing or malformed ``type`` / ``parameters``.
        """
        if isinstance(raw, DistributionConfig):
            return raw
        if not isinstance(raw, Mapping):
            raise ValidationError("Distribution configuration is required and must be an object")

        errors = []
        distribution_type = raw.get("type")
        parameters = raw.get("parameters")
        if not isinstance(distribution_type, str) or not distribution_type.strip():
            errors.append("Distribution type is required and must be a string")
        if not isinstance(parameters, Mapping):
            errors.append("Distribution parameters are required and must be an object")
        if errors:
            raise ValidationError(f"Invalid distribution configuration: {', '.join(errors)}", errors=errors)

        return cls(type=distribution_type, parameters=dict(parameters))

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "parameters": dict(self.parameters)}


@dataclass(frozen=True)
class SimulationSettings:
    """
    Validated settings of one simulation run.

    Attributes
    ----------
    iterations : int
        Number of Monte Carlo paths.
    years : int
        Horizon length (columns of the iteration matrix).
    percentiles : Tuple[PercentileConfig, ...]
        Percentiles to compute, in the requested order.
    seed : int, optional
        Seed for reproducibility. None means "pick one".
    """

    iterations: int = 10000
    years: int = 20
    percentiles: Tuple[PercentileConfig, ...] = DEFAULT_PERCENTILES
    seed: Optional[int] = None

    @classmethod
    def from_mapping(
        cls,
        raw: Optional[Union[Mapping[str, Any], "SimulationSettings"]] = None,
        defaults: Optional["SimulationSettings"] = None,
    ) -> "SimulationSettings":
        """
        Merge caller settings over ``defaults`` and validate.

        Keys that are absent (or None) take the default; a missing percentile
        list is replaced by the default five-tuple.

        Raises
        ------
        ValidationError
            Any setting outside its domain.
        """
        base = defaults or cls()
        if raw is None:
            return base
        if isinstance(raw, SimulationSettings):
            raw = raw.to_dict()
        if not isinstance(raw, Mapping):
            raise ValidationError("Simulation settings must be an object")

        errors: List[str] = []
        iterations = raw.get("iterations")
        years = raw.get("years")
        seed = raw.get("seed")
        percentiles = raw.get("percentiles")

        if iterations is None:
            iterations = base.iterations
        elif not _is_integer(iterations) or iterations <= 0:
            errors.append(f"Iterations must be a positive integer. Got {iterations!r}")

        if years is None:
            years = base.years
        elif not _is_integer(years) or years <= 0:
            errors.append(f"Years must be a positive integer. Got {years!r}")

        if seed is None:
            seed = base.seed
        elif not _is_integer(seed) or seed < 0:
            errors.append(f"Seed must be a non-negative integer if provided. Got {seed!r}")

        if percentiles is None:
            parsed_percentiles = base.percentiles
        else:
            try:
                parsed_percentiles = parse_percentiles(percentiles)
            except ValidationError as e:
                errors.extend(e.errors)
                parsed_percentiles = base.percentiles

        if errors:
            raise ValidationError(f"Invalid simulation settings: {'; '.join(errors)}", errors=errors)

        return cls(
            iterations=int(iterations),
            years=int(years),
            percentiles=parsed_percentiles,
            seed=None if seed is None else int(seed),
        )

    def with_seed(self, seed: int) -> "SimulationSettings":
        return replace(self, seed=seed)

    @property
    def percentile_values(self) -> List[float]:
        return [p.value for p in self.percentiles]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "iterations": self.iterations,
            "years": self.years,
            "percentiles": [p.to_dict() for p in self.percentiles],
            "seed": self.seed,
        }
