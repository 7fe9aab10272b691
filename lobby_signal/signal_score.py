"""
Signal Score engine.

Folds a campaign's lobbies and paid pledges into one bounded 0-100 score:

    interest = sum(INTENSITY_WEIGHTS[intensity] * decay(age))   verified lobbies
    pledges  = sum(unit_weight * CONVERSION_RATES[amount bucket]) PAID pledges
    score    = 100 * (1 - exp(-(interest + pledges) / calibration))

Pure: the clock is injected, nothing is read from globals except the default
config singleton, and identical inputs always give identical output. Records
must already be filtered to one campaign.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from .config import ScoringConfig, scoring_config
from .models import (
    CampaignSignal,
    Classification,
    InterestRecord,
    PledgeRecord,
    PledgeStatus,
    as_utc,
)
from .stats import clamp

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0

_BAND_ORDER = (Classification.VIRAL, Classification.HOT, Classification.WARM)


def decay_multiplier(created_at: datetime, now: datetime, w: ScoringConfig) -> float:
    # 1.0 for fresh lobbies, halves every half-life, never below the floor
    age_days = max(0.0, (as_utc(now) - as_utc(created_at)).total_seconds() / SECONDS_PER_DAY)
    return max(w.decay_floor, 0.5 ** (age_days / w.decay_half_life_days))


def record_contribution(record: InterestRecord, now: datetime, w: ScoringConfig) -> float:
    if not record.verified:
        return 0.0
    return w.intensity_weights[record.intensity] * decay_multiplier(record.created_at, now, w)


def amount_bucket(amount: float, w: ScoringConfig) -> str:
    for label, upper in w.pledge_buckets:
        if amount < upper:
            return label
    return w.largest_pledge_bucket


def pledge_contribution(pledge: PledgeRecord, w: ScoringConfig) -> float:
    """
    Additive weight of one pledge.

    Non-PAID pledges weigh nothing. Malformed amounts (NaN, inf, <= 0, above
    max_pledge_amount) also weigh nothing rather than failing the campaign.
    """
    if pledge.status is not PledgeStatus.PAID:
        return 0.0
    amount = pledge.amount
    if not math.isfinite(amount) or amount <= 0 or amount > w.max_pledge_amount:
        logger.debug(f"[SIGNAL] Ignoring out-of-range pledge amount {amount!r}")
        return 0.0
    return w.pledge_unit_weight * w.conversion_rates[amount_bucket(amount, w)]


def normalize_score(raw: float, w: ScoringConfig) -> float:
    if raw <= 0:
        return 0.0
    score = 100.0 * (1.0 - math.exp(-raw / w.calibration))
    return clamp(round(score, 1), 0.0, 100.0)


def classify(score: float, thresholds: Dict[Classification, float]) -> Classification:
    # Boundary is inclusive on the upper class
    for band in _BAND_ORDER:
        if score >= thresholds[band]:
            return band
    return Classification.COLD


def score_band(
    classification: Classification,
    thresholds: Dict[Classification, float],
) -> Tuple[float, float]:
    """Half-open [min, max) score range covered by a classification."""
    cuts = [0.0] + [thresholds[b] for b in reversed(_BAND_ORDER)] + [float("inf")]
    idx = list(Classification).index(classification)
    return cuts[idx], cuts[idx + 1]


def milestones_reached(score: float, milestones: Dict[str, float]) -> List[str]:
    reached = [(cut, name) for name, cut in milestones.items() if score >= cut]
    return [name for _, name in sorted(reached)]


def compute_momentum(records: Sequence[InterestRecord], now: datetime, w: ScoringConfig) -> float:
    """Verified lobbies in the last window vs the window before (1 = flat)."""
    now = as_utc(now)
    window = timedelta(days=w.momentum_window_days)
    recent_start = now - window
    previous_start = now - 2 * window

    recent = sum(1 for r in records if r.verified and recent_start <= r.created_at <= now)
    previous = sum(1 for r in records if r.verified and previous_start <= r.created_at < recent_start)
    return clamp(recent / max(1, previous), 0.0, w.momentum_cap)


def compute_signal_score(
    records: Sequence[InterestRecord],
    pledges: Sequence[PledgeRecord],
    now: datetime,
    w: Optional[ScoringConfig] = None,
) -> CampaignSignal:
    """
    Compute the CampaignSignal for one campaign snapshot.

    Returns score 0 / COLD / sample_size 0 for empty input. Never raises for
    malformed record fields; they degrade to zero or default weight.
    """
    w = w or scoring_config
    now = as_utc(now)

    verified = [r for r in records if r.verified]
    rejected = len(records) - len(verified)

    # 1) lobbies, weighted by intensity and recency
    interest_weight = 0.0
    intensity_sum = 0.0
    for record in verified:
        interest_weight += record_contribution(record, now, w)
        intensity_sum += w.intensity_weights[record.intensity]

    # 2) paid pledges, additive
    paid = [p for p in pledges if p.status is PledgeStatus.PAID]
    pledge_weight = 0.0
    for pledge in paid:
        pledge_weight += pledge_contribution(pledge, w)

    raw_total = interest_weight + pledge_weight

    # 3) saturate onto 0-100
    score = normalize_score(raw_total, w)
    classification = classify(score, w.signal_thresholds)

    return CampaignSignal(
        score=score,
        classification=classification,
        sample_size=len(verified),
        computed_at=now,
        rejected_count=rejected,
        rejection_rate=(rejected / len(records)) if records else 0.0,
        paid_pledge_count=len(paid),
        momentum=compute_momentum(verified, now, w),
        lobby_conviction=(intensity_sum / len(verified)) if verified else 0.0,
        milestones=milestones_reached(score, w.milestone_thresholds),
        components={
            "interest_weight": float(interest_weight),
            "pledge_weight": float(pledge_weight),
            "raw_total": float(raw_total),
        },
    )
