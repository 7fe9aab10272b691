"""
Lobby Signal Data Model

Pydantic models for the raw records supplied by the storage collaborator and
for the derived, non-persistent views returned by the scoring engine and the
privacy aggregator.

Raw records (InterestRecord, PledgeRecord) carry user identifiers and are
never returned to brands. Derived views are built only from aggregates.

Malformed enum values are degraded, not rejected: one bad record must not
fail scoring for an entire campaign.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class Intensity(Enum):
    """Ordinal strength of a lobby."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def ordinal(self) -> int:
        return _INTENSITY_ORDER.index(self) + 1

    @classmethod
    def from_ordinal(cls, value: int) -> "Intensity":
        return _INTENSITY_ORDER[value - 1]


_INTENSITY_ORDER = [Intensity.LOW, Intensity.MEDIUM, Intensity.HIGH, Intensity.CRITICAL]


class PledgeStatus(Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"
    FAILED = "FAILED"


class Classification(Enum):
    """Signal band, ordered coldest to hottest."""
    COLD = "COLD"
    WARM = "WARM"
    HOT = "HOT"
    VIRAL = "VIRAL"


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so aware and naive inputs compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def coerce_intensity(value: Any) -> Intensity:
    """
    Map an enum, name or ordinal (1-4) onto Intensity.

    Unknown values fall back to LOW.
    """
    if isinstance(value, Intensity):
        return value
    if isinstance(value, bool):
        value = None
    if isinstance(value, int) and 1 <= value <= len(_INTENSITY_ORDER):
        return Intensity.from_ordinal(value)
    if isinstance(value, str):
        name = value.strip().upper()
        if name in Intensity.__members__:
            return Intensity[name]
        if name.isdigit() and 1 <= int(name) <= len(_INTENSITY_ORDER):
            return Intensity.from_ordinal(int(name))
    logger.warning(f"[LOBBY-MODEL] Unknown intensity {value!r} - defaulting to LOW")
    return Intensity.LOW


def coerce_status(value: Any) -> PledgeStatus:
    if isinstance(value, PledgeStatus):
        return value
    if isinstance(value, str) and value.strip().upper() in PledgeStatus.__members__:
        return PledgeStatus[value.strip().upper()]
    logger.warning(f"[LOBBY-MODEL] Unknown pledge status {value!r} - treating as PENDING")
    return PledgeStatus.PENDING


# ------------------------------------
# Raw records (owned by storage)
# ------------------------------------
class InterestRecord(BaseModel):
    """
    One user's lobby for a campaign.

    Fields:
    - user_id: opaque identifier, never exposed downstream of the aggregator
    - intensity: LOW | MEDIUM | HIGH | CRITICAL (or ordinal 1-4)
    - created_at: used for recency decay and day-bucketed trends
    - verified: passed fraud/duplicate checks; unverified lobbies are excluded
    - region / reason: consumed only by aggregate views
    """
    user_id: str
    intensity: Intensity = Intensity.LOW
    created_at: datetime
    verified: bool = False
    region: Optional[str] = None
    reason: Optional[str] = None

    model_config = {"frozen": True}

    @field_validator("intensity", mode="before")
    @classmethod
    def _intensity(cls, value: Any) -> Intensity:
        return coerce_intensity(value)

    @field_validator("created_at")
    @classmethod
    def _created_at(cls, value: datetime) -> datetime:
        return as_utc(value)


class PledgeRecord(BaseModel):
    """A monetary commitment. Only PAID pledges count toward scores and revenue."""
    user_id: str
    amount: float = 0.0
    currency: str = "USD"
    status: PledgeStatus = PledgeStatus.PENDING
    created_at: datetime

    model_config = {"frozen": True}

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value: Any) -> PledgeStatus:
        return coerce_status(value)

    @field_validator("currency", mode="before")
    @classmethod
    def _currency(cls, value: Any) -> str:
        return (str(value or "USD")).strip().upper() or "USD"

    @field_validator("created_at")
    @classmethod
    def _created_at(cls, value: datetime) -> datetime:
        return as_utc(value)


class Campaign(BaseModel):
    """Campaign metadata as loaded by the storage collaborator."""
    id: str
    title: str
    slug: str
    description: str = ""
    category: str = ""
    status: str = "LIVE"
    currency: str = "USD"
    created_at: datetime
    updated_at: datetime
    goal: Optional[int] = None
    target_price: Optional[float] = None
    targeted_brand_id: Optional[str] = None

    model_config = {"frozen": True}


# ------------------------------------
# Derived views
# ------------------------------------
class CampaignSignal(BaseModel):
    score: float = 0.0
    classification: Classification = Classification.COLD
    sample_size: int = 0
    computed_at: datetime
    rejected_count: int = 0
    rejection_rate: float = 0.0
    paid_pledge_count: int = 0
    momentum: float = 0.0
    lobby_conviction: float = 0.0
    milestones: List[str] = Field(default_factory=list)
    components: Dict[str, float] = Field(default_factory=dict)

    model_config = {"frozen": True}


class Percentiles(BaseModel):
    p25: float = 0.0
    p50: float = 0.0
    p75: float = 0.0
    p90: float = 0.0

    model_config = {"frozen": True}


class ReasonTheme(BaseModel):
    term: str
    contributors: int

    model_config = {"frozen": True}


class AggregateView(BaseModel):
    """
    Brand-facing lobby aggregate.

    Distribution maps are keyed by bucket label; any bucket below the
    k-anonymity floor is folded into "other".
    """
    total_count: int = 0
    verified_percentage: Optional[int] = None
    intensity_distribution: Dict[str, int] = Field(default_factory=dict)
    percentiles: Percentiles = Field(default_factory=Percentiles)
    region_breakdown: Dict[str, int] = Field(default_factory=dict)
    daily_trend: Dict[str, int] = Field(default_factory=dict)
    reason_themes: List[ReasonTheme] = Field(default_factory=list)
    projected_customers: int = 0
    revenue_projection: float = 0.0
    suppressed_buckets: int = 0

    model_config = {"frozen": True}


class RevenueAggregate(BaseModel):
    """Brand-facing pledge aggregate. Monetary figures cover PAID pledges only."""
    total_count: int = 0
    paid_count: int = 0
    currency: str = "USD"
    paid_total: float = 0.0
    percentiles: Percentiles = Field(default_factory=Percentiles)
    status_breakdown: Dict[str, int] = Field(default_factory=dict)
    by_timeframe: Dict[str, int] = Field(default_factory=dict)
    suppressed_buckets: int = 0

    model_config = {"frozen": True}


class RevenueProjection(BaseModel):
    estimated_total: float = 0.0
    currency: str = "USD"

    model_config = {"frozen": True}


class BrandSafeCampaignView(BaseModel):
    id: str
    title: str
    slug: str
    description: str
    category: str
    status: str
    currency: str
    created_on: date
    updated_on: date
    signal_score: float = 0.0
    classification: Classification = Classification.COLD
    goal: Optional[int] = None
    goal_progress: Optional[float] = None
    lobbies: AggregateView
    pledges: RevenueAggregate
    revenue_projection: RevenueProjection

    model_config = {"frozen": True}
