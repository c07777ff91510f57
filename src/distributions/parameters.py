"""
Parameter handling shared by every distribution.

A distribution parameter is either a plain number or a time series given as a
list of ``{"year": int, "value": float}`` points. Time series let a parameter
change over the project horizon (e.g. a repair cost that escalates); the value
for a year without a point falls back to the distribution default.
"""

import math
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np


def is_valid_number(value: Any) -> bool:
    """True for finite real numbers (booleans excluded)."""
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value)


def is_time_series(value: Any) -> bool:
    """True for a non-empty sequence of ``{year, value}`` mappings."""
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        return False
    if len(value) == 0:
        return False
    return all(
        isinstance(point, Mapping)
        and is_valid_number(point.get("year"))
        and is_valid_number(point.get("value"))
        for point in value
    )


def is_valid_parameter(value: Any) -> bool:
    """True for a finite number or a valid time series."""
    return is_valid_number(value) or is_time_series(value)


def parameter_points(value: Any) -> List[Tuple[Optional[int], float]]:
    """
    Enumerate the numeric values carried by a parameter.

    Returns ``[(None, value)]`` for a scalar and ``[(year, value), ...]`` for a
    time series, so constraint checks can report the offending year.
    """
    if is_valid_number(value):
        return [(None, float(value))]
    if is_time_series(value):
        return [(int(point["year"]), float(point["value"])) for point in value]
    return []


def check_parameter(
    parameters: Mapping[str, Any],
    name: str,
    label: str,
    errors: List[str],
    required: bool = True,
    positive: bool = False,
    non_negative: bool = False,
) -> bool:
    """
    Validate one parameter, appending human-readable messages to ``errors``.

    Parameters
    ----------
    parameters : Mapping[str, Any]
        Canonicalized distribution parameters.
    name : str
        Parameter key.
    label : str
        Name used in messages (e.g. "Standard deviation").
    errors : List[str]
        Message list to extend.
    required : bool
        If False, a missing parameter is accepted.
    positive, non_negative : bool
        Domain constraint applied to every value (scalar or per year).

    Returns
    -------
    bool
        True if the parameter is present and structurally valid.
    """
    value = parameters.get(name)
    if value is None:
        if required:
            errors.append(f"{label} is required and must be a number or a valid time series")
        return False

    if not is_valid_parameter(value):
        errors.append(f"{label} must be a number or a valid time series")
        return False

    for year, point in parameter_points(value):
        where = "" if year is None else f" for year {year}"
        if positive and point <= 0:
            errors.append(f"{label}{where} must be positive. Got {point}")
        elif non_negative and point < 0:
            errors.append(f"{label}{where} must be non-negative. Got {point}")

    return True


def parameter_value(
    parameters: Mapping[str, Any],
    name: str,
    year: Optional[int],
    default: float,
) -> float:
    """Resolve a parameter for ``year`` (scalar, time-series point, or default)."""
    value = parameters.get(name)
    if value is None:
        return default
    if is_valid_number(value):
        return float(value)
    if is_time_series(value):
        for point in value:
            if int(point["year"]) == year:
                return float(point["value"])
    return default


def comparison_years(parameters: Mapping[str, Any], names: Sequence[str]) -> List[Optional[int]]:
    """
    Years at which related parameters (e.g. ``min`` and ``max``) must be compared.

    Every year listed by any of their time series, followed by None for the
    remaining years, where scalars apply as given and time series fall back to
    their defaults.
    """
    years = {
        year
        for name in names
        for year, _ in parameter_points(parameters.get(name))
        if year is not None
    }
    return sorted(years) + [None]


def year_suffix(year: Optional[int], years: Sequence[Optional[int]]) -> str:
    """Message suffix locating a comparison returned by ``comparison_years``."""
    if year is not None:
        return f" for year {year}"
    if len(years) > 1:
        return " for years without a time-series value"
    return ""


def normalize_data_points(
    data_points: Any,
) -> Tuple[List[Tuple[int, float]], List[str]]:
    """
    Turn fitting input into ``(year, value)`` pairs.

    Accepts bare numbers (years assigned 1..n in order) and mappings with a
    ``value`` key and an optional ``year``. A one-dimensional numpy array
    counts as a list of bare numbers. Unusable entries are skipped and
    reported.

    Returns
    -------
    points : List[Tuple[int, float]]
        Usable points in input order.
    errors : List[str]
        Messages for skipped entries.
    """
    points: List[Tuple[int, float]] = []
    errors: List[str] = []

    if data_points is None:
        return points, errors
    if isinstance(data_points, np.ndarray):
        if data_points.ndim != 1:
            errors.append(f"Data point arrays must be one-dimensional. Got shape {data_points.shape}")
            return points, errors
        data_points = data_points.tolist()
    if isinstance(data_points, (str, bytes)) or not isinstance(data_points, Sequence):
        errors.append("Data points must be a list of numbers or {year, value} objects")
        return points, errors

    for index, point in enumerate(data_points):
        if isinstance(point, Mapping):
            value = point.get("value")
            year = point.get("year", index + 1)
        else:
            value = point
            year = index + 1

        if not is_valid_number(value) or not is_valid_number(year):
            errors.append(f"Data point at index {index} is not a finite number and was skipped")
            continue
        points.append((int(year), float(value)))

    return points, errors


def canonicalize(
    parameters: Optional[Mapping[str, Any]],
    aliases: Mapping[str, str],
) -> Dict[str, Any]:
    """Copy ``parameters`` with alias keys renamed; canonical keys win."""
    if not parameters:
        return {}
    result = dict(parameters)
    for alias, canonical in aliases.items():
        if alias in result:
            aliased = result.pop(alias)
            result.setdefault(canonical, aliased)
    return result
