"""
Lobby Signal Scoring & Privacy Configuration

Uses Pydantic BaseSettings so every tunable constant can be overridden from
the environment (or a .env file) without touching the algorithm. Both objects
are frozen: the engine and the aggregator receive them as immutable inputs.

Usage:
    from lobby_signal.config import scoring_config, privacy_config

    signal = compute_signal_score(records, pledges, now, scoring_config)

    # Per-call override (tests, simulations)
    strict = PrivacyConfig(k_anonymity_floor=10)

Environment examples:
    LOBBY_SIGNAL_DECAY_HALF_LIFE_DAYS=14
    LOBBY_SIGNAL_INTENSITY_WEIGHTS='{"LOW": 1, "MEDIUM": 3, "HIGH": 5, "CRITICAL": 8}'
    LOBBY_PRIVACY_K_ANONYMITY_FLOOR=8
"""

from typing import Dict, Tuple

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from .models import Classification, Intensity
from .weights import (
    CONVERSION_RATES,
    INTENSITY_CONVERSION_RATES,
    INTENSITY_WEIGHTS,
    LARGEST_PLEDGE_BUCKET,
    MILESTONE_THRESHOLDS,
    PLEDGE_BUCKETS,
    SIGNAL_THRESHOLDS,
)

_BANDS = (Classification.WARM, Classification.HOT, Classification.VIRAL)
_INTENSITIES = (Intensity.LOW, Intensity.MEDIUM, Intensity.HIGH, Intensity.CRITICAL)


class ScoringConfig(BaseSettings):
    """
    Signal Score engine constants.

    Invariants checked at construction:
    - intensity weights are positive and non-decreasing LOW -> CRITICAL
      (keeps the score monotone in average intensity)
    - signal thresholds cover WARM/HOT/VIRAL and strictly ascend
    - decay floor is in (0, 1] so old lobbies never vanish
    """

    intensity_weights: Dict[Intensity, float] = Field(
        default_factory=lambda: dict(INTENSITY_WEIGHTS)
    )
    conversion_rates: Dict[str, float] = Field(default_factory=lambda: dict(CONVERSION_RATES))
    pledge_buckets: Tuple[Tuple[str, float], ...] = PLEDGE_BUCKETS
    largest_pledge_bucket: str = LARGEST_PLEDGE_BUCKET
    pledge_unit_weight: float = Field(default=10.0, gt=0)
    max_pledge_amount: float = Field(default=1_000_000.0, gt=0)

    # Recency decay
    decay_half_life_days: float = Field(default=30.0, gt=0)
    decay_floor: float = Field(default=0.10, gt=0, le=1.0)

    # Saturation: raw weight at which the score reaches ~63
    calibration: float = Field(default=200.0, gt=0)

    signal_thresholds: Dict[Classification, float] = Field(
        default_factory=lambda: dict(SIGNAL_THRESHOLDS)
    )
    milestone_thresholds: Dict[str, float] = Field(
        default_factory=lambda: dict(MILESTONE_THRESHOLDS)
    )

    # Momentum diagnostic (not part of the score)
    momentum_window_days: int = Field(default=7, ge=1)
    momentum_cap: float = Field(default=2.0, gt=0)

    model_config = {
        "env_prefix": "LOBBY_SIGNAL_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "frozen": True,
    }

    @model_validator(mode="after")
    def check_tables(self) -> "ScoringConfig":
        missing = [i.value for i in _INTENSITIES if i not in self.intensity_weights]
        if missing:
            raise ValueError(f"intensity_weights missing {missing}")
        weights = [self.intensity_weights[i] for i in _INTENSITIES]
        if any(w <= 0 for w in weights):
            raise ValueError("intensity_weights must be positive")
        if any(b < a for a, b in zip(weights, weights[1:])):
            raise ValueError("intensity_weights must be non-decreasing from LOW to CRITICAL")

        if set(self.signal_thresholds) != set(_BANDS):
            raise ValueError("signal_thresholds must define exactly WARM, HOT and VIRAL")
        cuts = [self.signal_thresholds[b] for b in _BANDS]
        if any(b <= a for a, b in zip(cuts, cuts[1:])):
            raise ValueError("signal_thresholds must be strictly ascending WARM < HOT < VIRAL")

        bounds = [upper for _, upper in self.pledge_buckets]
        if any(b <= a for a, b in zip(bounds, bounds[1:])):
            raise ValueError("pledge_buckets bounds must be strictly ascending")
        labels = [label for label, _ in self.pledge_buckets] + [self.largest_pledge_bucket]
        unpriced = [label for label in labels if label not in self.conversion_rates]
        if unpriced:
            raise ValueError(f"conversion_rates missing buckets {unpriced}")
        return self


class PrivacyConfig(BaseSettings):
    """Privacy Aggregator constants."""

    k_anonymity_floor: int = Field(default=5, ge=2)
    trend_days: int = Field(default=30, ge=1)
    timeframe_windows: Tuple[int, ...] = (30, 90, 180)
    intensity_conversion_rates: Dict[Intensity, float] = Field(
        default_factory=lambda: dict(INTENSITY_CONVERSION_RATES)
    )
    reason_min_term_length: int = Field(default=4, ge=1)
    max_reason_themes: int = Field(default=10, ge=0)

    model_config = {
        "env_prefix": "LOBBY_PRIVACY_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "frozen": True,
    }


# Singleton defaults - import these directly
scoring_config = ScoringConfig()
privacy_config = PrivacyConfig()
