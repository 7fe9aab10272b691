"""
Signal Score engine tests.
Verifies compute_signal_score and its building blocks.
"""

import math
from datetime import datetime, timedelta

import pytest

from lobby_signal.config import ScoringConfig
from lobby_signal.models import Classification, Intensity, InterestRecord
from lobby_signal.signal_score import (
    amount_bucket,
    classify,
    compute_momentum,
    compute_signal_score,
    decay_multiplier,
    milestones_reached,
    normalize_score,
    pledge_contribution,
    record_contribution,
    score_band,
)
from lobby_signal.weights import MILESTONE_THRESHOLDS, SIGNAL_THRESHOLDS


# ============================================================================
# ZERO STATE
# ============================================================================

def test_zero_input_returns_cold_zero(now):
    for _ in range(3):
        signal = compute_signal_score([], [], now)
        assert signal.score == 0
        assert signal.classification is Classification.COLD
        assert signal.sample_size == 0
        assert signal.rejection_rate == 0.0
        assert signal.milestones == []


def test_unverified_records_count_as_rejections_only(now, make_record):
    records = [make_record(f"u{i}", verified=False) for i in range(4)]
    signal = compute_signal_score(records, [], now)

    assert signal.score == 0
    assert signal.sample_size == 0
    assert signal.rejected_count == 4
    assert signal.rejection_rate == 1.0


def test_single_fresh_high_lobby(now, make_record):
    # raw = 4 -> 100 * (1 - e^-0.02) = 1.98
    signal = compute_signal_score([make_record("u1", "HIGH")], [], now)
    assert signal.score == 2.0
    assert signal.sample_size == 1
    assert signal.components["interest_weight"] == pytest.approx(4.0)


# ============================================================================
# MONOTONICITY & BOUNDS
# ============================================================================

def test_adding_high_lobby_never_decreases_score(now, make_record, make_pledge):
    pledges = [make_pledge(f"p{i}", amount=30.0 * (i + 1)) for i in range(5)]
    records = []
    previous = compute_signal_score(records, pledges, now).score

    for i in range(300):
        records.append(make_record(f"u{i}", "HIGH", days_ago=i % 90))
        current = compute_signal_score(records, pledges, now).score
        assert current >= previous
        previous = current


def test_raising_intensity_never_decreases_score(now, make_record):
    base = [make_record(f"u{i}", "LOW", days_ago=i) for i in range(20)]
    score_low = compute_signal_score(base, [], now).score

    upgraded = list(base)
    upgraded[0] = make_record("u0", "CRITICAL", days_ago=0)
    assert compute_signal_score(upgraded, [], now).score >= score_low


def test_score_bounded_for_adversarial_volume(now, make_record, make_pledge):
    records = [make_record(f"u{i}", "CRITICAL") for i in range(50_000)]
    pledges = [make_pledge(f"p{i}", amount=999_999.0) for i in range(5_000)]
    pledges += [make_pledge("huge", amount=1e15), make_pledge("nan", amount=math.nan)]

    signal = compute_signal_score(records, pledges, now)
    assert 0.0 <= signal.score <= 100.0
    assert signal.classification is Classification.VIRAL


def test_normalize_score_saturates(scoring):
    assert normalize_score(0, scoring) == 0.0
    assert normalize_score(-10, scoring) == 0.0
    assert normalize_score(1e9, scoring) == 100.0
    assert normalize_score(100, scoring) < normalize_score(200, scoring) < 100.0


# ============================================================================
# DECAY
# ============================================================================

def test_old_lobby_contributes_less_but_not_zero(now, make_record, scoring):
    fresh = record_contribution(make_record("u1", "HIGH", days_ago=0), now, scoring)
    stale = record_contribution(make_record("u1", "HIGH", days_ago=365), now, scoring)

    assert stale < fresh
    assert stale > 0


def test_decay_halves_at_half_life(now, scoring):
    created = now - timedelta(days=scoring.decay_half_life_days)
    assert decay_multiplier(created, now, scoring) == pytest.approx(0.5)


def test_decay_floor_holds_for_ancient_lobbies(now, scoring):
    created = now - timedelta(days=3650)
    assert decay_multiplier(created, now, scoring) == scoring.decay_floor


def test_future_dated_lobby_is_not_boosted(now, scoring):
    created = now + timedelta(days=10)
    assert decay_multiplier(created, now, scoring) == 1.0


def test_naive_timestamps_are_treated_as_utc(now, scoring):
    naive = datetime(2026, 3, 1, 12, 0)
    record = InterestRecord(user_id="u1", intensity="LOW", created_at=naive, verified=True)
    assert record_contribution(record, now, scoring) == pytest.approx(1.0)


def test_unverified_record_contributes_nothing(now, make_record, scoring):
    assert record_contribution(make_record(verified=False), now, scoring) == 0.0


# ============================================================================
# PLEDGES
# ============================================================================

@pytest.mark.parametrize("amount, bucket", [
    (5, "micro"), (24.99, "micro"), (25, "small"), (99, "small"),
    (100, "medium"), (499, "medium"), (500, "large"), (50_000, "large"),
])
def test_amount_buckets(amount, bucket, scoring):
    assert amount_bucket(amount, scoring) == bucket


def test_paid_pledge_weight_uses_conversion_rate(make_pledge, scoring):
    assert pledge_contribution(make_pledge(amount=10), scoring) == pytest.approx(4.0)
    assert pledge_contribution(make_pledge(amount=1000), scoring) == pytest.approx(9.0)


@pytest.mark.parametrize("status", ["PENDING", "REFUNDED", "FAILED", "bogus"])
def test_unpaid_pledges_weigh_nothing(status, make_pledge, scoring):
    assert pledge_contribution(make_pledge(status=status), scoring) == 0.0


@pytest.mark.parametrize("amount", [-5.0, 0.0, math.nan, math.inf, 2_000_000.0])
def test_malformed_amounts_degrade_to_zero(amount, make_pledge, scoring):
    assert pledge_contribution(make_pledge(amount=amount), scoring) == 0.0


def test_pledges_are_additive(now, make_record, make_pledge):
    records = [make_record(f"u{i}") for i in range(10)]
    without = compute_signal_score(records, [], now)
    with_pledge = compute_signal_score(records, [make_pledge(amount=1000)], now)

    assert with_pledge.components["pledge_weight"] == pytest.approx(9.0)
    assert with_pledge.components["raw_total"] == pytest.approx(without.components["raw_total"] + 9.0)
    assert with_pledge.paid_pledge_count == 1


def test_negative_pledge_does_not_crash_scoring(now, make_record, make_pledge):
    records = [make_record("u1")]
    signal = compute_signal_score(records, [make_pledge(amount=-100)], now)
    assert signal.score == compute_signal_score(records, [], now).score


# ============================================================================
# CLASSIFICATION
# ============================================================================

@pytest.mark.parametrize("score, expected", [
    (0, Classification.COLD),
    (19.9, Classification.COLD),
    (20.0, Classification.WARM),
    (49.9, Classification.WARM),
    (50.0, Classification.HOT),
    (80.0, Classification.VIRAL),
    (100.0, Classification.VIRAL),
])
def test_classification_boundaries_go_to_upper_class(score, expected):
    assert classify(score, dict(SIGNAL_THRESHOLDS)) is expected


def test_thresholds_are_configurable(now, make_record):
    strict = ScoringConfig(signal_thresholds={"WARM": 1.0, "HOT": 1.5, "VIRAL": 1.9})
    signal = compute_signal_score([make_record("u1", "HIGH")], [], now, strict)
    assert signal.classification is Classification.VIRAL


def test_score_band_covers_classification(scoring):
    assert score_band(Classification.COLD, scoring.signal_thresholds) == (0.0, 20.0)
    assert score_band(Classification.HOT, scoring.signal_thresholds) == (50.0, 80.0)
    lo, hi = score_band(Classification.VIRAL, scoring.signal_thresholds)
    assert lo == 80.0 and math.isinf(hi)


def test_milestones_reached_in_threshold_order():
    assert milestones_reached(56.0, dict(MILESTONE_THRESHOLDS)) == ["trending", "notify_brand"]
    assert milestones_reached(10.0, dict(MILESTONE_THRESHOLDS)) == []


# ============================================================================
# DIAGNOSTICS
# ============================================================================

def test_momentum_compares_last_two_windows(now, make_record, scoring):
    recent = [make_record(f"r{i}", days_ago=1) for i in range(3)]
    previous = [make_record(f"p{i}", days_ago=10) for i in range(2)]
    assert compute_momentum(recent + previous, now, scoring) == pytest.approx(1.5)


def test_momentum_is_capped(now, make_record, scoring):
    recent = [make_record(f"r{i}", days_ago=1) for i in range(9)]
    assert compute_momentum(recent, now, scoring) == scoring.momentum_cap


def test_lobby_conviction_is_average_weight(now, make_record):
    records = [make_record("u1", "LOW"), make_record("u2", "CRITICAL")]
    assert compute_signal_score(records, [], now).lobby_conviction == pytest.approx(4.0)


def test_unknown_intensity_degrades_to_low(now):
    record = InterestRecord(user_id="u1", intensity="SUPER_MEGA", created_at=now, verified=True)
    assert record.intensity is Intensity.LOW
    assert compute_signal_score([record], [], now).score > 0


def test_ordinal_intensity_is_accepted(now):
    record = InterestRecord(user_id="u1", intensity=3, created_at=now, verified=True)
    assert record.intensity is Intensity.HIGH


# ============================================================================
# DETERMINISM
# ============================================================================

def test_identical_snapshots_give_identical_signals(now, make_record, make_pledge):
    records = [make_record(f"u{i}", ["LOW", "HIGH", "CRITICAL"][i % 3], days_ago=i) for i in range(40)]
    pledges = [make_pledge(f"p{i}", amount=12.5 * i) for i in range(8)]

    first = compute_signal_score(records, pledges, now)
    second = compute_signal_score(records, pledges, now)

    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


def test_computed_at_is_the_injected_clock(now):
    assert compute_signal_score([], [], now).computed_at == now
