"""
Lobby Signal Storage Collaborator

The narrow read/write contract between the pure core and PostgreSQL:
- read snapshots of one campaign's lobbies and pledges
- write back the cached signal score
- list campaigns whose cached score is stale or within a classification band
- answer brand team lookups for the Access Gate

Usage:
    from lobby_worker.repository import fetch_interest_records, fetch_pledges

    records = fetch_interest_records(campaign_id)
    pledges = fetch_pledges(campaign_id)
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from psycopg2.extras import RealDictCursor

from lobby_common.db import get_connection
from lobby_signal.models import Campaign, CampaignSignal, Classification, InterestRecord, PledgeRecord
from lobby_signal.signal_score import score_band

logger = logging.getLogger(__name__)


CAMPAIGN_SQL = """
SELECT id, title, slug, description, category, status, currency,
       created_at, updated_at, goal, target_price, targeted_brand_id
FROM campaigns
WHERE id = %s;
"""

LOBBIES_SQL = """
SELECT user_id, intensity, status, region, reason, created_at
FROM lobbies
WHERE campaign_id = %s;
"""

PLEDGES_SQL = """
SELECT user_id, amount, currency, status, created_at
FROM pledges
WHERE campaign_id = %s;
"""

SAVE_SIGNAL_SQL = """
UPDATE campaigns
SET signal_score = %(score)s,
    signal_classification = %(classification)s,
    signal_score_updated_at = %(computed_at)s
WHERE id = %(campaign_id)s;
"""

STALE_CAMPAIGNS_SQL = """
SELECT id
FROM campaigns
WHERE status = 'LIVE'
  AND (signal_score_updated_at IS NULL OR signal_score_updated_at < %s)
ORDER BY signal_score_updated_at ASC NULLS FIRST
LIMIT %s;
"""

CAMPAIGNS_IN_BAND_SQL = """
SELECT id, slug, title, signal_score
FROM campaigns
WHERE status = 'LIVE'
  AND signal_score >= %s
  AND signal_score < %s
ORDER BY signal_score DESC
LIMIT %s;
"""


def _interest_from_row(row: Dict[str, Any]) -> InterestRecord:
    return InterestRecord(
        user_id=str(row["user_id"]),
        intensity=row["intensity"],
        created_at=row["created_at"],
        verified=(row.get("status") == "VERIFIED"),
        region=row.get("region"),
        reason=row.get("reason"),
    )


def _pledge_from_row(row: Dict[str, Any]) -> PledgeRecord:
    amount = row.get("amount")
    return PledgeRecord(
        user_id=str(row["user_id"]),
        # NUMERIC columns arrive as Decimal
        amount=float(amount) if amount is not None else 0.0,
        currency=row.get("currency") or "USD",
        status=row.get("status"),
        created_at=row["created_at"],
    )


def fetch_campaign(campaign_id: str) -> Optional[Campaign]:
    with get_connection() as conn:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(CAMPAIGN_SQL, (campaign_id,))
            row = cur.fetchone()
    if row is None:
        return None
    row = dict(row)
    row["id"] = str(row["id"])
    if row.get("targeted_brand_id") is not None:
        row["targeted_brand_id"] = str(row["targeted_brand_id"])
    row["description"] = row.get("description") or ""
    row["category"] = row.get("category") or ""
    if row.get("target_price") is not None:
        row["target_price"] = float(row["target_price"])
    return Campaign(**row)


def fetch_interest_records(campaign_id: str) -> List[InterestRecord]:
    """All lobbies for one campaign, verified or not."""
    with get_connection() as conn:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(LOBBIES_SQL, (campaign_id,))
            rows = cur.fetchall()
    return [_interest_from_row(r) for r in rows]


def fetch_pledges(campaign_id: str) -> List[PledgeRecord]:
    with get_connection() as conn:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(PLEDGES_SQL, (campaign_id,))
            rows = cur.fetchall()
    return [_pledge_from_row(r) for r in rows]


def save_signal(campaign_id: str, signal: CampaignSignal) -> None:
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(
                SAVE_SIGNAL_SQL,
                {
                    "campaign_id": campaign_id,
                    "score": signal.score,
                    "classification": signal.classification.value,
                    "computed_at": signal.computed_at,
                },
            )
        conn.commit()


def fetch_stale_campaign_ids(now: datetime, stale_minutes: int, limit: int) -> List[str]:
    """LIVE campaigns whose cached score is missing or older than stale_minutes."""
    threshold = now - timedelta(minutes=stale_minutes)
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(STALE_CAMPAIGNS_SQL, (threshold, limit))
            rows = cur.fetchall()
    return [str(r[0]) for r in rows]


def fetch_campaigns_by_classification(
    classification: Classification,
    thresholds: Dict[Classification, float],
    limit: int = 20,
) -> List[Dict[str, Any]]:
    """LIVE campaigns whose cached score falls in the classification's band, hottest first."""
    lo, hi = score_band(classification, thresholds)
    # NUMERIC comparison; an infinite upper bound is clamped to the score ceiling
    hi = min(hi, 101.0)
    with get_connection() as conn:
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(CAMPAIGNS_IN_BAND_SQL, (lo, hi, limit))
            rows = cur.fetchall()
    return [
        {
            "id": str(r["id"]),
            "slug": r["slug"],
            "title": r["title"],
            "signal_score": float(r["signal_score"]),
        }
        for r in rows
    ]


# ------------------------------------
# Access Gate over brand_team
# ------------------------------------
class PostgresAccessGate:
    """AccessGate backed by the brand_team and campaigns tables."""

    ROLE_SQL = "SELECT role FROM brand_team WHERE brand_id = %s AND user_id = %s;"
    BRANDS_SQL = "SELECT brand_id FROM brand_team WHERE user_id = %s;"
    CAMPAIGNS_SQL = "SELECT id FROM campaigns WHERE targeted_brand_id = ANY(%s);"

    def brand_role(self, user_id: str, brand_id: str) -> Optional[str]:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(self.ROLE_SQL, (brand_id, user_id))
                row = cur.fetchone()
        return row[0] if row else None

    def brand_ids_for_user(self, user_id: str) -> List[str]:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(self.BRANDS_SQL, (user_id,))
                rows = cur.fetchall()
        return [str(r[0]) for r in rows]

    def campaign_ids_for_brands(self, brand_ids: List[str]) -> List[str]:
        with get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(self.CAMPAIGNS_SQL, (list(brand_ids),))
                rows = cur.fetchall()
        return [str(r[0]) for r in rows]
