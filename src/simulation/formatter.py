"""
Reshape aggregated per-year results for charts and CSV export.

All functions are pure: they read already computed results and never
re-sample. ``results`` is the ``results`` list of a ``simulationInfo`` entry;
a whole response envelope is accepted too.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from src.distributions.registry import percentile_key


def _year_entries(results: Any) -> List[Mapping[str, Any]]:
    if isinstance(results, Mapping) and "simulationInfo" in results:
        entries = results["simulationInfo"]
        results = entries[0].get("results", []) if entries else []
    if not isinstance(results, (list, tuple)):
        return []
    return [entry for entry in results if isinstance(entry, Mapping)]


def _percentile_keys(entries: List[Mapping[str, Any]]) -> List[str]:
    keys: List[str] = []
    for entry in entries:
        for key in entry.get("percentiles", {}):
            if key not in keys:
                keys.append(key)
    return keys


def format_for_charts(results: Any) -> List[Dict[str, Any]]:
    """
    Row-oriented records, one per year.

    Example
    -------
    >>> format_for_charts([{"year": 1, "percentiles": {"P50": 10.0}}])
    [{'year': 1, 'P50': 10.0}]
    """
    return [
        {"year": entry.get("year"), **dict(entry.get("percentiles", {}))}
        for entry in _year_entries(results)
    ]


def format_series(
    results: Any,
    percentiles: Optional[Sequence[Any]] = None,
) -> Dict[str, Any]:
    """
    Column-oriented chart form: one series per percentile plus the year axis.

    Parameters
    ----------
    results : list or envelope
        Aggregated per-year results.
    percentiles : Sequence, optional
        ``PercentileConfig`` objects or ``{"value", "description"}`` mappings
        used to label each series. Unlabelled series get an empty description.

    Returns
    -------
    Dict[str, Any]
        ``{"series": [{"name", "description", "data"}], "categories": [years]}``.
    """
    entries = _year_entries(results)

    descriptions: Dict[str, str] = {}
    for spec in percentiles or ():
        if isinstance(spec, Mapping):
            value, description = spec.get("value"), spec.get("description", "")
        else:
            value, description = getattr(spec, "value", spec), getattr(spec, "description", "")
        descriptions[percentile_key(value)] = str(description)

    series = [
        {
            "name": key,
            "description": descriptions.get(key, ""),
            "data": [entry.get("percentiles", {}).get(key) for entry in entries],
        }
        for key in _percentile_keys(entries)
    ]
    return {"series": series, "categories": [entry.get("year") for entry in entries]}


def format_distribution_csv(
    results: Any,
    delimiter: str = ",",
    include_headers: bool = True,
) -> str:
    """
    Delimited text: a ``Year,P50,...`` header (optional) and one row per year.

    Returns an empty string when there are no results.
    """
    records = format_for_charts(results)
    if not records:
        return ""

    columns = ["year"] + _percentile_keys(_year_entries(results))
    frame = pd.DataFrame.from_records(records, columns=columns).rename(columns={"year": "Year"})
    text = frame.to_csv(sep=delimiter, header=include_headers, index=False, lineterminator="\n")
    return text.rstrip("\n")
