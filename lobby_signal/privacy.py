"""
Privacy layer for brand-facing data.

Brands see AGGREGATE data only. Never user ids, verbatim reasons, individual
pledge amounts or timestamps finer than a day.

Core rules (a property of these functions, not of the caller's role):
- Only verified lobbies and PAID pledges feed the views
- Any bucket with fewer than k distinct contributors is folded into "other"
- Percentiles, money totals and projections are zeroed below k contributors
- Distributions partition the whole population, so no visible figure can be
  subtracted from another to recover a folded bucket
- Every returned view passes assert_brand_safe() before it leaves this module

Usage:
    from lobby_signal.privacy import BrandAccess, sanitize_for_brand

    access = BrandAccess(gate)
    if access.is_brand_user(user_id, brand_id):
        view = sanitize_for_brand(campaign, lobbies, pledges, now)
        payload = view.model_dump_json()
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from pydantic import BaseModel

from .access import AccessGate, BrandRole
from .config import PrivacyConfig, ScoringConfig, privacy_config
from .errors import PrivacyViolationError
from .models import (
    AggregateView,
    BrandSafeCampaignView,
    Campaign,
    InterestRecord,
    Percentiles,
    PledgeRecord,
    PledgeStatus,
    ReasonTheme,
    RevenueAggregate,
    RevenueProjection,
    as_utc,
)
from .sanitize import reason_terms
from .signal_score import compute_signal_score
from .stats import clamp, percentile_summary

logger = logging.getLogger(__name__)

OTHER_BUCKET = "other"
UNKNOWN_REGION = "unknown"
EARLIER_BUCKET = "earlier"

# Keys that identify an individual record; never allowed in brand payloads
FORBIDDEN_KEYS = frozenset({
    "user_id", "userId", "user", "email", "reason", "reasons",
    "amount", "created_at", "createdAt", "updated_at", "updatedAt",
})

# Maps whose keys are bucket labels and whose values are counts
DISTRIBUTION_FIELDS = frozenset({
    "intensity_distribution", "region_breakdown", "daily_trend",
    "status_breakdown", "by_timeframe",
})

# Creator-authored campaign copy, not derived from lobbies
PUBLIC_TEXT_FIELDS = frozenset({"title", "description", "slug", "category", "status"})

_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:")


# ============================================================================
# BUCKET SUPPRESSION
# ============================================================================

def suppress_small_buckets(
    counts: Dict[str, int],
    contributors: Dict[str, Set[str]],
    floor: int,
) -> Tuple[Dict[str, int], int]:
    """
    Fold buckets with fewer than `floor` distinct contributors into "other".

    If "other" itself stays below the floor, the smallest visible buckets are
    folded in until it clears it. When the whole population is below the
    floor nothing is shown.

    Returns:
        (shown buckets in input order with "other" last, number of buckets folded)
    """
    visible = [k for k in counts if k != OTHER_BUCKET and len(contributors.get(k, ())) >= floor]
    hidden = [k for k in counts if k not in visible]
    if not hidden:
        return dict(counts), 0

    other_users: Set[str] = set()
    for k in hidden:
        other_users |= contributors.get(k, set())

    while len(other_users) < floor and visible:
        smallest = min(visible, key=lambda k: (len(contributors[k]), counts[k], k))
        visible.remove(smallest)
        hidden.append(smallest)
        other_users |= contributors[smallest]

    shown = {k: counts[k] for k in visible}
    if len(other_users) >= floor:
        shown[OTHER_BUCKET] = sum(counts[k] for k in hidden)
    return shown, len(hidden)


def _bucketize(pairs: Iterable[Tuple[str, str]]) -> Tuple[Dict[str, int], Dict[str, Set[str]]]:
    """(label, user_id) pairs -> record counts and distinct contributors per label."""
    counts: Dict[str, int] = {}
    contributors: Dict[str, Set[str]] = {}
    for label, user_id in pairs:
        counts[label] = counts.get(label, 0) + 1
        contributors.setdefault(label, set()).add(user_id)
    return counts, contributors


def _daily_pairs(items: Sequence[Any], trend_days: int) -> List[Tuple[str, str]]:
    """
    Day-granularity (date, user) pairs for the trailing window ending at the
    latest item. Older items share one "earlier" label so the trend always
    partitions the whole population.
    """
    if not items:
        return []
    latest = max(as_utc(i.created_at).date() for i in items)
    start = latest - timedelta(days=trend_days - 1)
    dated = []
    earlier = []
    for i in items:
        day = as_utc(i.created_at).date()
        if day >= start:
            dated.append((day.isoformat(), i.user_id))
        else:
            earlier.append((EARLIER_BUCKET, i.user_id))
    return sorted(dated, key=lambda p: p[0]) + earlier


def _timeframe_pairs(
    pledges: Sequence[PledgeRecord],
    anchor: datetime,
    windows: Sequence[int],
) -> List[Tuple[str, str]]:
    """
    Disjoint age bands ("0-30d", "30-90d", ..., "180d+") as (band, user) pairs,
    in band order. Future-dated pledges fall in the first band.
    """
    bounds = sorted(windows)
    labels = []
    lower = 0
    for days in bounds:
        labels.append(f"{lower}-{days}d")
        lower = days
    labels.append(f"{lower}d+")

    pairs = []
    for p in pledges:
        age = max(timedelta(0), anchor - p.created_at)
        idx = next((n for n, days in enumerate(bounds) if age < timedelta(days=days)), len(bounds))
        pairs.append((idx, labels[idx], p.user_id))
    return [(label, user_id) for _, label, user_id in sorted(pairs, key=lambda t: t[0])]


def _region_label(region: Optional[str]) -> str:
    label = (region or "").strip()
    return label or UNKNOWN_REGION


def _valid_amount(amount: float) -> bool:
    return math.isfinite(amount) and amount > 0


# ============================================================================
# IN-PROCESS GUARD
# ============================================================================

def _walk(node: Any, floor: int, path: str) -> None:
    if isinstance(node, dict):
        for key, value in node.items():
            where = f"{path}.{key}" if path else str(key)
            if key in FORBIDDEN_KEYS:
                raise PrivacyViolationError(f"identifying field '{where}' in brand payload")
            if key in PUBLIC_TEXT_FIELDS:
                continue
            if key in DISTRIBUTION_FIELDS:
                for label, count in value.items():
                    if 0 < count < floor:
                        raise PrivacyViolationError(
                            f"bucket '{where}.{label}' shows {count} < k={floor}"
                        )
                continue
            if key == "reason_themes":
                for theme in value:
                    if theme["contributors"] < floor:
                        raise PrivacyViolationError(f"reason theme below k={floor} in '{where}'")
                continue
            _walk(value, floor, where)
    elif isinstance(node, list):
        for i, value in enumerate(node):
            _walk(value, floor, f"{path}[{i}]")
    elif isinstance(node, str) and _DATETIME_RE.match(node):
        raise PrivacyViolationError(f"timestamp finer than a day at '{path}'")


def assert_brand_safe(payload: Any, floor: int) -> None:
    """
    Raise PrivacyViolationError if a brand-facing payload carries identifying
    keys, sub-threshold buckets or sub-day timestamps.
    """
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json")
    _walk(payload, floor, "")


# ============================================================================
# AGGREGATION FUNCTIONS
# ============================================================================

def aggregate_lobbies(
    records: Sequence[InterestRecord],
    config: Optional[PrivacyConfig] = None,
    price_point: float = 0.0,
) -> AggregateView:
    """
    Aggregate lobbies into distribution metrics.
    Returns counts and distributions, never individual lobbies.

    Args:
        records: lobbies for one campaign (verified and unverified)
        config: privacy constants, defaults to the module singleton
        price_point: expected unit price used for the revenue projection
    """
    cfg = config or privacy_config
    k = cfg.k_anonymity_floor
    if not records:
        return AggregateView()

    verified = [r for r in records if r.verified]
    users = {r.user_id for r in verified}
    suppressed = 0

    # Intensity, in ordinal order
    ordered = sorted(verified, key=lambda r: r.intensity.ordinal)
    counts, contributors = _bucketize((r.intensity.value, r.user_id) for r in ordered)
    intensity_distribution, folded = suppress_small_buckets(counts, contributors, k)
    suppressed += folded

    counts, contributors = _bucketize((_region_label(r.region), r.user_id) for r in verified)
    region_breakdown, folded = suppress_small_buckets(counts, contributors, k)
    suppressed += folded

    counts, contributors = _bucketize(_daily_pairs(verified, cfg.trend_days))
    daily_trend, folded = suppress_small_buckets(counts, contributors, k)
    suppressed += folded

    percentiles = Percentiles()
    if len(users) >= k:
        percentiles = Percentiles(**percentile_summary(r.intensity.ordinal for r in verified))

    # Reason themes: terms shared by at least k people, never the text itself
    term_users: Dict[str, Set[str]] = {}
    for r in verified:
        if not r.reason:
            continue
        for term in reason_terms(r.reason, cfg.reason_min_term_length):
            term_users.setdefault(term, set()).add(r.user_id)
    themes = sorted(
        ((term, len(u)) for term, u in term_users.items() if len(u) >= k),
        key=lambda t: (-t[1], t[0]),
    )[: cfg.max_reason_themes]

    # Hidden below k, like the percentiles
    projected_customers = 0
    if len(users) >= k:
        projected_customers = round(
            sum(cfg.intensity_conversion_rates.get(r.intensity, 0.0) for r in verified)
        )

    # Hidden while 1..k-1 users were rejected; total_count is public
    rejected_users = {r.user_id for r in records if not r.verified}
    verified_percentage = None
    if not rejected_users or len(rejected_users) >= k:
        verified_percentage = round(100 * len(verified) / len(records))

    price = price_point if price_point and math.isfinite(price_point) and price_point > 0 else 0.0

    view = AggregateView(
        total_count=len(verified),
        verified_percentage=verified_percentage,
        intensity_distribution=intensity_distribution,
        percentiles=percentiles,
        region_breakdown=region_breakdown,
        daily_trend=daily_trend,
        reason_themes=[ReasonTheme(term=t, contributors=n) for t, n in themes],
        projected_customers=projected_customers,
        revenue_projection=round(projected_customers * price, 2),
        suppressed_buckets=suppressed,
    )
    assert_brand_safe(view, k)
    return view


def _reporting_currency(paid: Sequence[PledgeRecord]) -> Optional[str]:
    tally = Counter(p.currency for p in paid)
    if not tally:
        return None
    # most common, ties alphabetical
    return sorted(tally.items(), key=lambda kv: (-kv[1], kv[0]))[0][0]


def aggregate_pledges(
    pledges: Sequence[PledgeRecord],
    now: Optional[datetime] = None,
    config: Optional[PrivacyConfig] = None,
    currency: Optional[str] = None,
) -> RevenueAggregate:
    """
    Aggregate pledges into revenue metrics.
    Returns totals and percentiles, never individual pledges.

    Money figures use PAID pledges in the reporting currency (explicit, else
    the most common one). Timeframes are disjoint age bands anchored at `now`,
    or at the latest pledge when `now` is not given.

    Every PAID-derived figure (paid_count, money, timeframes) is reported only
    while PAID is a visible status bucket.
    """
    cfg = config or privacy_config
    k = cfg.k_anonymity_floor
    if not pledges:
        return RevenueAggregate(currency=(currency or "USD").upper())

    suppressed = 0
    counts, contributors = _bucketize((p.status.value, p.user_id) for p in pledges)
    status_breakdown, folded = suppress_small_buckets(counts, contributors, k)
    suppressed += folded

    paid = [p for p in pledges if p.status is PledgeStatus.PAID]
    report_currency = (currency or _reporting_currency(paid) or "USD").upper()
    paid_visible = PledgeStatus.PAID.value in status_breakdown

    paid_count = 0
    paid_total = 0.0
    percentiles = Percentiles()
    by_timeframe: Dict[str, int] = {}
    if paid_visible:
        paid_count = len(paid)

        priced = [p for p in paid if p.currency == report_currency and _valid_amount(p.amount)]
        if len({p.user_id for p in priced}) >= k:
            paid_total = round(sum(p.amount for p in priced), 2)
            percentiles = Percentiles(**percentile_summary(p.amount for p in priced))

        anchor = as_utc(now) if now is not None else max(p.created_at for p in pledges)
        counts, contributors = _bucketize(_timeframe_pairs(paid, anchor, cfg.timeframe_windows))
        by_timeframe, folded = suppress_small_buckets(counts, contributors, k)
        suppressed += folded
    elif paid:
        logger.debug("[PRIVACY] PAID bucket folded; paid-derived figures withheld")

    view = RevenueAggregate(
        total_count=len(pledges),
        paid_count=paid_count,
        currency=report_currency,
        paid_total=paid_total,
        percentiles=percentiles,
        status_breakdown=status_breakdown,
        by_timeframe=by_timeframe,
        suppressed_buckets=suppressed,
    )
    assert_brand_safe(view, k)
    return view


def sanitize_for_brand(
    campaign: Campaign,
    records: Sequence[InterestRecord],
    pledges: Sequence[PledgeRecord],
    now: datetime,
    scoring: Optional[ScoringConfig] = None,
    privacy: Optional[PrivacyConfig] = None,
) -> BrandSafeCampaignView:
    """
    Sanitize campaign data for brand consumption.
    Removes all PII, returns aggregate metrics only.
    """
    cfg = privacy or privacy_config
    signal = compute_signal_score(records, pledges, now, scoring)

    pledge_view = aggregate_pledges(pledges, now=now, config=cfg, currency=campaign.currency)
    if campaign.target_price is not None:
        price_point = campaign.target_price
    else:
        price_point = pledge_view.percentiles.p50
    lobby_view = aggregate_lobbies(records, cfg, price_point)

    goal_progress = None
    if campaign.goal and campaign.goal > 0:
        goal_progress = round(clamp(100.0 * lobby_view.total_count / campaign.goal, 0.0, 100.0), 1)

    view = BrandSafeCampaignView(
        id=campaign.id,
        title=campaign.title,
        slug=campaign.slug,
        description=campaign.description,
        category=campaign.category,
        status=campaign.status,
        currency=pledge_view.currency,
        created_on=as_utc(campaign.created_at).date(),
        updated_on=as_utc(campaign.updated_at).date(),
        signal_score=signal.score,
        classification=signal.classification,
        goal=campaign.goal,
        goal_progress=goal_progress,
        lobbies=lobby_view,
        pledges=pledge_view,
        revenue_projection=RevenueProjection(
            estimated_total=lobby_view.revenue_projection,
            currency=pledge_view.currency,
        ),
    )
    assert_brand_safe(view, cfg.k_anonymity_floor)
    return view


# ============================================================================
# BRAND AUTHORIZATION
# ============================================================================

class BrandAccess:
    """
    Authorization predicates over an injected AccessGate.

    Lookups fail closed: a gate error is logged and treated as "no access".
    """

    def __init__(self, gate: AccessGate):
        self.gate = gate

    def _role(self, user_id: str, brand_id: str) -> Optional[BrandRole]:
        try:
            role = self.gate.brand_role(user_id, brand_id)
        except Exception as e:
            logger.warning(f"[BRAND-ACCESS] Role lookup failed for brand={brand_id}: {e}")
            return None
        if role is None:
            return None
        try:
            return BrandRole(str(role).upper())
        except ValueError:
            logger.warning(f"[BRAND-ACCESS] Unknown team role {role!r} for brand={brand_id}")
            return None

    def is_brand_user(self, user_id: str, brand_id: str) -> bool:
        """True if the user is OWNER, ADMIN or MEMBER of the brand."""
        return self._role(user_id, brand_id) is not None

    def is_brand_owner(self, user_id: str, brand_id: str) -> bool:
        return self._role(user_id, brand_id) is BrandRole.OWNER

    def accessible_campaigns(self, user_id: str) -> List[str]:
        """Campaign ids targeted at any brand the user belongs to."""
        try:
            brand_ids = self.gate.brand_ids_for_user(user_id)
            if not brand_ids:
                return []
            return list(self.gate.campaign_ids_for_brands(list(brand_ids)))
        except Exception as e:
            logger.warning(f"[BRAND-ACCESS] Campaign lookup failed: {e}")
            return []
