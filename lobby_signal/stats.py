import math
from typing import Dict, Iterable, List

from .errors import InvalidArgumentError

SUMMARY_PERCENTILES = (25, 50, 75, 90)


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def _interpolate(sorted_values: List[float], p: float) -> float:
    # index = p/100 * (n-1), interpolated between floor and ceil ranks
    idx = (p / 100.0) * (len(sorted_values) - 1)
    lower = math.floor(idx)
    upper = math.ceil(idx)
    if lower == upper:
        return float(sorted_values[lower])
    frac = idx - lower
    return sorted_values[lower] + (sorted_values[upper] - sorted_values[lower]) * frac


def _check_p(p: float) -> None:
    if p is None or math.isnan(p) or p < 0 or p > 100:
        raise InvalidArgumentError(f"percentile must be within [0, 100], got {p!r}")


def calculate_percentile(values: Iterable[float], p: float) -> float:
    """
    Percentile with linear interpolation between ranked order statistics.

    Sorts a copy of `values`; the input is never mutated.

    Raises:
        InvalidArgumentError: p outside [0, 100] (or NaN), or `values` empty.
            Callers must handle the empty case themselves.
    """
    _check_p(p)
    ordered = sorted(float(v) for v in values)
    if not ordered:
        raise InvalidArgumentError("cannot take a percentile of an empty sequence")
    return _interpolate(ordered, p)


def percentile_summary(values: Iterable[float]) -> Dict[str, float]:
    """p25/p50/p75/p90 over one sorted copy; empty input yields zeros."""
    ordered = sorted(float(v) for v in values)
    if not ordered:
        return {f"p{p}": 0.0 for p in SUMMARY_PERCENTILES}
    return {f"p{p}": _interpolate(ordered, p) for p in SUMMARY_PERCENTILES}
