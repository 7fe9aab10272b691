"""
Statistics utility tests.
"""

import math

import pytest

from lobby_signal.errors import InvalidArgumentError
from lobby_signal.stats import calculate_percentile, clamp, percentile_summary


# ============================================================================
# PERCENTILE
# ============================================================================

def test_median_of_four_interpolates_between_middle_ranks():
    """Regression pin: index 1.5 sits halfway between 20 and 30."""
    assert calculate_percentile([10, 20, 30, 40], 50) == 25


def test_percentile_sorts_a_copy():
    values = [40, 10, 30, 20]
    assert calculate_percentile(values, 50) == 25
    assert values == [40, 10, 30, 20]


@pytest.mark.parametrize("p, expected", [
    (0, 10.0),
    (25, 17.5),
    (75, 32.5),
    (90, 37.0),
    (100, 40.0),
])
def test_percentile_interpolation(p, expected):
    assert calculate_percentile([10, 20, 30, 40], p) == pytest.approx(expected)


def test_single_value_is_every_percentile():
    assert calculate_percentile([7.5], 0) == 7.5
    assert calculate_percentile([7.5], 90) == 7.5


@pytest.mark.parametrize("p", [-0.1, 100.01, 1000, math.nan])
def test_percentile_out_of_range_raises(p):
    with pytest.raises(InvalidArgumentError):
        calculate_percentile([1, 2, 3], p)


def test_percentile_of_empty_sequence_raises():
    """Empty input is the caller's to handle; the utility refuses it."""
    with pytest.raises(InvalidArgumentError):
        calculate_percentile([], 50)


def test_invalid_argument_is_a_value_error():
    with pytest.raises(ValueError):
        calculate_percentile([1], 101)


def test_percentile_is_deterministic():
    values = [3.2, 9.1, 0.4, 7.7, 5.5, 1.0]
    first = calculate_percentile(values, 37)
    assert all(calculate_percentile(values, 37) == first for _ in range(10))


def test_summary_matches_single_calls():
    values = [10, 20, 30, 40, 50, 60]
    summary = percentile_summary(values)
    for p in (25, 50, 75, 90):
        assert summary[f"p{p}"] == calculate_percentile(values, p)


def test_summary_of_empty_is_zeroed():
    assert percentile_summary([]) == {"p25": 0.0, "p50": 0.0, "p75": 0.0, "p90": 0.0}


# ============================================================================
# CLAMP
# ============================================================================

@pytest.mark.parametrize("value, expected", [(-5, 0), (0, 0), (42, 42), (100, 100), (250, 100)])
def test_clamp(value, expected):
    assert clamp(value, 0, 100) == expected
