"""
Distribution capability interface.

Every distribution family implements the same four operations:

- ``validate(parameters)``: structural and domain checks, never raises
- ``sample(rng, context)``: draw one value for one year of one iteration
- ``fit_curve(data_points)``: best-effort parameter estimate from observations
- ``metadata()``: static descriptor used by clients to build input forms

Sampling uses an explicit ``numpy.random.Generator`` handed in by the worker,
so a distribution instance holds no random state and can be shared by
concurrent batches.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from scipy import stats

from src.distributions.parameters import canonicalize, normalize_data_points, parameter_value

# Minimum number of observations before a goodness-of-fit test is meaningful
MIN_POINTS_FOR_FIT_TEST = 8
FIT_TEST_ALPHA = 0.05


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a parameter validation."""

    is_valid: bool
    errors: Tuple[str, ...] = ()

    @classmethod
    def from_errors(cls, errors: Sequence[str]) -> "ValidationResult":
        return cls(is_valid=len(errors) == 0, errors=tuple(errors))

    def to_dict(self) -> Dict[str, Any]:
        return {"isValid": self.is_valid, "errors": list(self.errors)}


@dataclass(frozen=True)
class FitResult:
    """Fitted parameters plus any messages about fit quality."""

    parameters: Dict[str, float]
    errors: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"parameters": dict(self.parameters), "errors": list(self.errors)}


@dataclass(frozen=True)
class SampleContext:
    """
    Position of a draw within a Monte Carlo path.

    Attributes
    ----------
    year : int
        1-based year index within the horizon.
    previous : float, optional
        Value drawn for the previous year of the same iteration (None in year 1).
    iteration : int
        0-based iteration index within the worker's batch.
    """

    year: int
    previous: Optional[float] = None
    iteration: int = 0


@dataclass(frozen=True)
class ParameterSpec:
    """Description of one distribution parameter."""

    name: str
    description: str
    required: bool = True
    type: str = "number or time series"
    constraints: Optional[str] = None
    default: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        spec: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "required": self.required,
            "type": self.type,
        }
        if self.constraints is not None:
            spec["constraints"] = self.constraints
        if self.default is not None:
            spec["default"] = self.default
        return spec


@dataclass(frozen=True)
class DistributionMetadata:
    """Static descriptor of a distribution family."""

    name: str
    description: str
    parameter_spec: Tuple[ParameterSpec, ...]
    applications: str = ""
    examples: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameterSpec": [spec.to_dict() for spec in self.parameter_spec],
            "applications": self.applications,
            "examples": [dict(example) for example in self.examples],
        }


class Distribution(ABC):
    """
    Base class for all probability distributions.

    Subclasses declare their parameter ``aliases`` (alternate keys accepted
    from clients), implement ``_validate``, ``sample``, ``_fit`` and
    ``metadata``, and may provide ``_scipy_distribution`` to enable the
    goodness-of-fit check and ``analytic_statistics`` for closed-form moments.

    Attributes
    ----------
    parameters : Dict[str, Any]
        Canonicalized parameters (alias keys renamed).
    """

    aliases: Mapping[str, str] = {}

    def __init__(self, parameters: Optional[Mapping[str, Any]] = None) -> None:
        self.parameters = canonicalize(parameters, self.aliases)

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    @classmethod
    def validate(cls, parameters: Any) -> ValidationResult:
        """
        Validate distribution parameters.

        Never raises: malformed input is reported as a validation error.

        Parameters
        ----------
        parameters : Any
            Mapping of parameter name to number or time series.

        Returns
        -------
        ValidationResult
            ``is_valid`` plus human-readable messages.
        """
        if not isinstance(parameters, Mapping):
            return ValidationResult.from_errors(
                ["Distribution parameters are required and must be an object"]
            )
        errors: List[str] = []
        cls._validate(canonicalize(parameters, cls.aliases), errors)
        return ValidationResult.from_errors(errors)

    @classmethod
    @abstractmethod
    def _validate(cls, parameters: Mapping[str, Any], errors: List[str]) -> None:
        """Append messages for every violated constraint."""

    # ------------------------------------------------------------------ #
    # Sampling
    # ------------------------------------------------------------------ #

    @abstractmethod
    def sample(self, rng: np.random.Generator, context: SampleContext) -> float:
        """Draw one value for ``context.year``."""

    def value(self, name: str, year: int, default: float) -> float:
        """Parameter value for ``year``."""
        return parameter_value(self.parameters, name, year, default)

    def analytic_statistics(self, year: int) -> Dict[str, float]:
        """Closed-form moments for ``year`` where known (empty by default)."""
        return {}

    # ------------------------------------------------------------------ #
    # Fitting
    # ------------------------------------------------------------------ #

    @classmethod
    def fit_curve(cls, data_points: Any) -> FitResult:
        """
        Fit distribution parameters to observed data.

        Uses method of moments (or closed-form maximum likelihood where it is
        trivial). Degenerate input (empty, a single point, zero spread) still
        yields usable parameters, with messages explaining the fallback.

        Parameters
        ----------
        data_points : Sequence or numpy.ndarray
            Numbers, or mappings with ``value`` and optional ``year``.

        Returns
        -------
        FitResult
            Fitted parameters and messages. Never raises.
        """
        points, errors = normalize_data_points(data_points)
        if not points:
            errors.append("Data points are required for curve fitting")
            return FitResult(parameters=cls.default_parameters(), errors=tuple(errors))

        parameters = cls._fit(points, errors)
        errors.extend(cls._fit_quality(points, parameters))
        return FitResult(parameters=parameters, errors=tuple(errors))

    @classmethod
    @abstractmethod
    def _fit(cls, points: List[Tuple[int, float]], errors: List[str]) -> Dict[str, float]:
        """Estimate parameters from ``(year, value)`` points."""

    @classmethod
    def default_parameters(cls) -> Dict[str, float]:
        """Parameters returned when there is nothing to fit."""
        return {
            spec.name: spec.default
            for spec in cls.metadata().parameter_spec
            if spec.default is not None
        }

    @classmethod
    def _scipy_distribution(cls, parameters: Mapping[str, float]):
        """Frozen ``scipy.stats`` equivalent, or None if not applicable."""
        return None

    @classmethod
    def _fit_quality(
        cls,
        points: List[Tuple[int, float]],
        parameters: Mapping[str, float],
    ) -> List[str]:
        """Kolmogorov-Smirnov check of the fitted distribution."""
        if len(points) < MIN_POINTS_FOR_FIT_TEST:
            return []
        frozen = cls._scipy_distribution(parameters)
        if frozen is None:
            return []

        values = np.array([value for _, value in points])
        result = stats.kstest(values, frozen.cdf)
        if result.pvalue < FIT_TEST_ALPHA:
            return [
                f"Poor fit: Kolmogorov-Smirnov p-value {result.pvalue:.3g} "
                f"is below {FIT_TEST_ALPHA}"
            ]
        return []

    # ------------------------------------------------------------------ #
    # Metadata
    # ------------------------------------------------------------------ #

    @classmethod
    @abstractmethod
    def metadata(cls) -> DistributionMetadata:
        """Static descriptor of this family."""

    def __repr__(self) -> str:
        """String representation."""
        return f"{type(self).__name__}(parameters={self.parameters})"
